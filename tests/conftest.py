"""Shared pytest fixtures for the starterkit test suite.

Provides reusable fixtures for:
- A starter project tree full of placeholders
- Snapshots of a tree's contents
- Mock subprocess helpers
- Environment isolation for commands that load ``.env``
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

# Keys the test .env files define or tests override; load_dotenv would leak them
# into os.environ across tests.
STARTER_ENV_KEYS = (
    "COMPOSE_PROJECT_NAME",
    "JWT_SECRET",
    "COOKIE_SECRET",
    "DATABASE_URL",
    "ADMIN_EMAIL",
    "ADMIN_PASSWORD",
    "STARTERKIT_HEALTH_TIMEOUT",
    "STARTERKIT_HEALTH_INTERVAL",
)


# ---------------------------------------------------------------------------
# Starter project tree
# ---------------------------------------------------------------------------

STARTER_FILES: dict[str, bytes] = {
    "package.json": b'{\n  "name": "changemename",\n  "version": "0.1.0"\n}\n',
    "README.md": b"# changemename\n\nRun changemename locally with docker compose.\n",
    "docker-compose.yml": (
        b"name: changemename\n"
        b"services:\n"
        b"  backend:\n"
        b"    image: changemename-backend\n"
    ),
    ".env.example": (
        b"COMPOSE_PROJECT_NAME=changemename\n"
        b"JWT_SECRET=changemesecret\n"
        b"COOKIE_SECRET=changemesecret\n"
    ),
    ".gitignore": b"changemename.log\n",
    "pnpm-lock.yaml": b"name: changemename\n",
    "node_modules/some-pkg/index.js": b"module.exports = 'changemename';\n",
    ".git/config": b"[remote]\n  url = changemename\n",
    "packages/backend/.env.example": (
        b"DATABASE_URL=postgres://changemename\n"
        b"JWT_SECRET=changemesecret\n"
    ),
    "packages/backend/src/index.ts": b"export const name = 'changemename';\r\n",
    "packages/storefront/src/config.ts": b"export const store = 'changemename';\n",
    "assets/logo.png": b"\x89PNG\r\n\x1a\n\xff\xfe changemename",
}


@pytest.fixture
def starter_tree(tmp_path: Path) -> Path:
    """A freshly cloned starter with placeholders, exclusions and templates."""
    root = tmp_path / "starter"
    for rel, content in STARTER_FILES.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
    yield root


@pytest.fixture
def starter_files() -> dict[str, bytes]:
    """The original contents of :func:`starter_tree`, keyed by relative path."""
    return dict(STARTER_FILES)


def snapshot_tree(root: Path) -> dict[str, bytes]:
    """Map every file under *root* (relative POSIX path) to its bytes."""
    return {
        p.relative_to(root).as_posix(): p.read_bytes()
        for p in sorted(root.rglob("*"))
        if p.is_file()
    }


@pytest.fixture
def snapshot():
    """Expose :func:`snapshot_tree` to tests."""
    return snapshot_tree


@pytest.fixture
def isolated_env(monkeypatch):
    """Make sure ``.env`` keys loaded during a test are removed afterwards."""
    for key in STARTER_ENV_KEYS:
        # setenv then delenv records "absent" as the value to restore.
        monkeypatch.setenv(key, "placeholder")
        monkeypatch.delenv(key)
    yield monkeypatch


# ---------------------------------------------------------------------------
# Mock Subprocess (generic)
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_subprocess():
    """Mock asyncio subprocess for testing command execution.

    Returns a factory that creates mock subprocess instances with configurable
    stdout, stderr, and return codes.

    Usage:
        def test_command(mock_subprocess):
            proc = mock_subprocess(stdout="output", returncode=0)
            with patch("asyncio.create_subprocess_exec", return_value=proc):
                ...
    """
    def factory(
        stdout: str = "",
        stderr: str = "",
        returncode: int = 0,
    ) -> AsyncMock:
        mock_proc = AsyncMock()
        mock_proc.communicate = AsyncMock(
            return_value=(stdout.encode("utf-8"), stderr.encode("utf-8"))
        )
        mock_proc.returncode = returncode
        mock_proc.pid = 99999
        mock_proc.kill = MagicMock()
        mock_proc.wait = AsyncMock(return_value=returncode)
        return mock_proc

    return factory


# ---------------------------------------------------------------------------
# Console
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def wide_console(monkeypatch):
    """Keep Rich from wrapping long paths in captured output."""
    from starterkit.utils import console

    monkeypatch.setattr(console, "width", 200)
    yield console
