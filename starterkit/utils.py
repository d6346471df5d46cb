"""Shared utility functions for starterkit.

Provides async command execution, Rich-based console reporting, and a few
formatting helpers.  Every subprocess the kit spawns goes through
:func:`run_command` so tests can intercept a single seam.
"""

from __future__ import annotations

import asyncio
import os
from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.rule import Rule
from rich.table import Table

console = Console()

# ---------------------------------------------------------------------------
# Async command execution
# ---------------------------------------------------------------------------


async def run_command(
    cmd: list[str],
    cwd: str | Path | None = None,
    timeout: int | None = 120,
    capture: bool = True,
    env: dict[str, str] | None = None,
) -> tuple[int, str, str]:
    """Run *cmd* and return ``(returncode, stdout, stderr)``.

    With ``capture=False`` docker output goes straight to the terminal and
    both strings are empty. A timeout kills the child and yields returncode
    -1. ``timeout=None`` is for commands that follow logs or attach a shell.
    A missing program raises :class:`FileNotFoundError`.
    """
    pipe = asyncio.subprocess.PIPE if capture else None
    process = await asyncio.create_subprocess_exec(
        *cmd,
        stdout=pipe,
        stderr=pipe,
        cwd=str(cwd) if cwd else None,
        env={**os.environ, **env} if env else None,
    )

    try:
        out, err = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        return -1, "", f"Command timed out after {timeout}s: {' '.join(cmd)}"

    return process.returncode or 0, _decode(out), _decode(err)


def _decode(output: bytes | None) -> str:
    return (output or b"").decode("utf-8", errors="replace").strip()


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------


def format_duration(seconds: float) -> str:
    """Render a deploy duration for the summary, e.g. ``3.7s`` or ``1m 5s``."""
    if seconds < 60:
        return f"{max(seconds, 0.0):.1f}s"

    minutes, secs = divmod(int(seconds), 60)
    hours, minutes = divmod(minutes, 60)
    parts = [f"{hours}h"] if hours else []
    if minutes:
        parts.append(f"{minutes}m")
    parts.append(f"{secs}s")
    return " ".join(parts)


def relative_display(path: Path, root: Path) -> str:
    """Return *path* relative to *root* for messages, or the path itself."""
    try:
        rel = path.relative_to(root)
    except ValueError:
        return str(path)
    return str(rel) if str(rel) != "." else "."


# ---------------------------------------------------------------------------
# Rich output helpers
# ---------------------------------------------------------------------------

STAGE_COLORS: dict[str, str] = {
    "backend": "bright_cyan",
    "seed": "bright_yellow",
    "storefront": "bright_green",
    "cleanup": "bright_magenta",
}


def print_stage_header(stage: str, title: str) -> None:
    """Print a full-width rule announcing a deployment stage."""
    color = STAGE_COLORS.get(stage, "white")
    console.print()
    console.print(Rule(f"[bold {color}] {title} [/bold {color}]", style=color))
    console.print()


def print_summary_table(data: dict[str, str], title: str = "Summary") -> None:
    """Print the end-of-deploy report, one row per label."""
    table = Table(title=title, header_style="bold cyan")
    table.add_column("Field", style="dim", no_wrap=True)
    table.add_column("Result")
    for label, value in data.items():
        table.add_row(label, str(value))
    console.print(table)
    console.print()


# Message text is escaped and never parsed as markup.
def print_success(message: str) -> None:
    console.print(f"[bold green]{escape(message)}[/bold green]")


def print_error(message: str) -> None:
    console.print(f"[bold red]{escape(message)}[/bold red]")


def print_warning(message: str) -> None:
    console.print(f"[bold yellow]{escape(message)}[/bold yellow]")


def print_info(message: str) -> None:
    console.print(escape(message))
