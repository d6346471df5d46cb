"""Detection of the external tools the kit depends on.

``check`` verifies that Node.js, the package manager (pnpm) and Docker are
installed at or above the configured minimum versions.  Node.js and Docker
problems are fatal; an outdated package manager is upgraded in place
unless ``--no-update`` is given.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from .config import ToolRequirements
from .errors import StarterKitError
from .utils import print_info, print_success, print_warning, run_command
from .versions import meets_requirement, parse_version

_DOCKER_VERSION_RE = re.compile(r"Docker version\s+v?([0-9][0-9.]*)", re.IGNORECASE)


class ToolVersionError(StarterKitError):
    """Raised when a required tool is missing or older than required."""

    def __init__(self, tool: str, required: str, detected: str | None = None) -> None:
        self.tool = tool
        self.required = required
        self.detected = detected
        if detected is None:
            message = f"{tool} is not installed (version {required} or higher is required)"
        else:
            message = (
                f"{tool} version {detected} does not meet the minimum "
                f"requirement of {required}"
            )
        super().__init__(message)


@dataclass
class ToolStatus:
    """Result of checking a single tool."""

    name: str
    required: str
    detected: str | None = None
    ok: bool = False
    updated: bool = False


def extract_docker_version(output: str) -> str | None:
    """Pull the version out of ``docker --version`` output.

    ``"Docker version 26.1.4, build 5650f9b"`` -> ``"26.1.4"``
    """
    match = _DOCKER_VERSION_RE.search(output)
    if match:
        return match.group(1).rstrip(".")
    tokens = output.split()
    if len(tokens) >= 3:
        return tokens[2].rstrip(",")
    return None


async def detect_version(program: str) -> str | None:
    """Run ``<program> --version`` and return its raw output.

    Returns ``None`` when the program is not installed or exits non-zero.
    """
    try:
        returncode, stdout, _stderr = await run_command([program, "--version"], timeout=30)
    except (FileNotFoundError, PermissionError):
        return None
    if returncode != 0 or not stdout:
        return None
    return stdout.splitlines()[0].strip()


class ToolChecker:
    """Checks tool versions against a :class:`ToolRequirements`."""

    def __init__(
        self,
        requirements: ToolRequirements,
        update_package_manager: bool = True,
    ) -> None:
        self.requirements = requirements
        self.update_package_manager = update_package_manager

    async def check_node(self) -> ToolStatus:
        required = self.requirements.node
        raw = await detect_version("node")
        if raw is None:
            raise ToolVersionError("node", required)
        version = str(parse_version(raw))
        if not meets_requirement(raw, required):
            raise ToolVersionError("node", required, version)
        print_info(f"found node v{version}")
        return ToolStatus(name="node", required=required, detected=version, ok=True)

    async def check_package_manager(self) -> ToolStatus:
        name = self.requirements.package_manager_name
        required = self.requirements.package_manager
        raw = await detect_version(name)
        if raw is None:
            raise ToolVersionError(name, required)
        version = str(parse_version(raw))
        if meets_requirement(raw, required):
            print_info(f"found {name} v{version}")
            return ToolStatus(name=name, required=required, detected=version, ok=True)

        print_warning(
            f"warn: {name} version {required} or higher is required; found {version}"
        )
        if not self.update_package_manager:
            return ToolStatus(name=name, required=required, detected=version, ok=False)

        returncode, _stdout, stderr = await run_command(
            [name, "install", "-g", f"{name}@latest"], timeout=300
        )
        if returncode != 0:
            if stderr:
                print_warning(stderr)
            raise ToolVersionError(name, required, version)
        print_success(f"notice: updated {name} to the latest version")
        return ToolStatus(
            name=name, required=required, detected=version, ok=True, updated=True
        )

    async def check_docker(self) -> ToolStatus:
        required = self.requirements.docker
        raw = await detect_version("docker")
        detected = extract_docker_version(raw) if raw else None
        if detected is None:
            raise ToolVersionError("docker", required)
        version = str(parse_version(detected))
        if not meets_requirement(detected, required):
            raise ToolVersionError("docker", required, version)
        print_info(f"found docker v{version}")
        return ToolStatus(name="docker", required=required, detected=version, ok=True)

    async def check_all(self) -> list[ToolStatus]:
        """Check every tool in order, stopping at the first fatal problem."""
        return [
            await self.check_node(),
            await self.check_package_manager(),
            await self.check_docker(),
        ]
