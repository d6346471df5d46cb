"""Thin async wrapper around the ``docker`` / ``docker compose`` CLI.

Every container operation the kit performs is delegated to the Docker CLI;
this module only builds argument lists, runs them through
:func:`starterkit.utils.run_command` and turns non-zero exits into
:class:`ComposeError`.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Iterable, Sequence

from .errors import StarterKitError
from .utils import print_info, print_warning, run_command


class ComposeError(StarterKitError):
    """Raised when a docker command exits non-zero."""

    def __init__(self, message: str, command: str = "", returncode: int = 1, stderr: str = ""):
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(message)


def _lines(output: str) -> list[str]:
    return [line.strip() for line in output.splitlines() if line.strip()]


class ComposeRunner:
    """Runs docker commands for one compose project.

    Streaming commands (build, up, logs, exec) inherit the terminal so the
    user sees Docker's own progress output; query commands capture stdout.
    """

    def __init__(
        self,
        compose_file: str | None = None,
        project_dir: str | Path | None = None,
    ) -> None:
        self.compose_file = compose_file
        self.project_dir = Path(project_dir) if project_dir else None

    # -- Internal helpers --------------------------------------------------

    def compose_cmd(self, *args: str) -> list[str]:
        cmd = ["docker", "compose"]
        if self.compose_file:
            cmd += ["-f", self.compose_file]
        return cmd + list(args)

    async def _run(
        self,
        cmd: list[str],
        *,
        capture: bool = True,
        timeout: int | None = 300,
        check: bool = True,
    ) -> str:
        cmd_str = " ".join(cmd)
        try:
            returncode, stdout, stderr = await run_command(
                cmd, cwd=self.project_dir, timeout=timeout, capture=capture
            )
        except FileNotFoundError as exc:
            raise ComposeError(
                f"{cmd[0]} is not installed or not on PATH", command=cmd_str
            ) from exc

        if returncode != 0 and check:
            raise ComposeError(
                f"Command failed (exit {returncode}): {cmd_str}"
                + (f"\n{stderr}" if stderr else ""),
                command=cmd_str,
                returncode=returncode,
                stderr=stderr,
            )
        return stdout

    # -- Compose lifecycle -------------------------------------------------

    async def build(self, services: Sequence[str] = (), no_cache: bool = False) -> None:
        args = ["build"] + (["--no-cache"] if no_cache else []) + list(services)
        await self._run(self.compose_cmd(*args), capture=False, timeout=None)

    async def up(
        self,
        services: Sequence[str] = (),
        extra_args: Sequence[str] = (),
        detach: bool = True,
    ) -> None:
        args = ["up"] + (["-d"] if detach else []) + list(extra_args) + list(services)
        await self._run(self.compose_cmd(*args), capture=False, timeout=None)

    async def down(
        self,
        services: Sequence[str] = (),
        volumes: bool = False,
        remove_orphans: bool = False,
        rmi: str | None = None,
    ) -> None:
        args = ["down"]
        if volumes:
            args.append("-v")
        if remove_orphans:
            args.append("--remove-orphans")
        if rmi:
            args += ["--rmi", rmi]
        await self._run(self.compose_cmd(*args, *services), capture=False)

    async def logs(self, follow: bool = True, services: Sequence[str] = ()) -> None:
        args = ["logs"] + (["-f"] if follow else []) + list(services)
        await self._run(self.compose_cmd(*args), capture=False, timeout=None)

    async def ps(self) -> None:
        await self._run(self.compose_cmd("ps"), capture=False)

    async def restart(self, services: Sequence[str] = ()) -> None:
        await self._run(self.compose_cmd("restart", *services), capture=False)

    async def exec(self, service: str, command: Sequence[str]) -> None:
        await self._run(self.compose_cmd("exec", service, *command), capture=False, timeout=None)

    async def list_services(self) -> list[str]:
        return _lines(await self._run(self.compose_cmd("ps", "--services")))

    async def service_ready(self, service: str) -> bool:
        """True when a shell can be started inside *service*."""
        returncode, _stdout, _stderr = await run_command(
            self.compose_cmd("exec", "-T", service, "/bin/sh", "-c", "exit 0"),
            cwd=self.project_dir,
            timeout=30,
        )
        return returncode == 0

    async def wait_until_running(self, interval: float = 5, max_attempts: int | None = None) -> bool:
        """Poll until every compose service accepts ``exec``.

        Returns ``False`` if *max_attempts* is exhausted first.
        """
        attempt = 0
        while True:
            attempt += 1
            services = await self.list_services()
            if services:
                ready = [await self.service_ready(s) for s in services]
                if all(ready):
                    return True
            if max_attempts is not None and attempt >= max_attempts:
                return False
            print_info("Waiting for services to be ready...")
            await asyncio.sleep(interval)

    # -- Docker engine level -----------------------------------------------

    async def list_volumes(self, prefix: str = "") -> list[str]:
        cmd = ["docker", "volume", "ls", "-q"]
        if prefix:
            cmd += ["-f", f"name={prefix}_"]
        return _lines(await self._run(cmd))

    async def remove_volumes(self, volumes: Iterable[str]) -> None:
        names = list(volumes)
        if names:
            await self._run(["docker", "volume", "rm", *names])

    async def list_project_images(self, project_name: str) -> list[str]:
        output = await self._run(
            ["docker", "images", "--format", "{{.Repository}}:{{.Tag}}"]
        )
        if not project_name:
            return []
        return [image for image in _lines(output) if image.startswith(project_name)]

    async def remove_images(self, images: Iterable[str]) -> None:
        names = list(images)
        if names:
            await self._run(["docker", "rmi", *names])

    async def prune_containers(self) -> None:
        await self._run(["docker", "container", "prune", "-f"], capture=False)

    async def prune_system(self) -> None:
        await self._run(
            ["docker", "system", "prune", "-af", "--volumes"], capture=False, timeout=None
        )

    async def prune_dangling_images(self) -> None:
        """Best-effort removal of dangling images; failures are only warned about."""
        try:
            images = _lines(
                await self._run(["docker", "images", "-q", "--filter", "dangling=true"])
            )
            if images:
                await self._run(["docker", "rmi", *images])
        except ComposeError as exc:
            print_warning(f"Could not remove dangling images: {exc}")

    async def find_container(self, name: str) -> str | None:
        """Return the id of the first running container whose name matches."""
        ids = _lines(await self._run(["docker", "ps", "-q", "-f", f"name={name}"]))
        return ids[0] if ids else None

    async def exec_container(self, container: str, command: Sequence[str]) -> None:
        await self._run(
            ["docker", "exec", "-it", container, *command], capture=False, timeout=None
        )
