"""Unit tests for the docker CLI wrapper (starterkit.compose).

Tests cover:
- compose_cmd construction with and without a compose file
- Lifecycle commands build the right argument lists
- Error mapping (missing docker, non-zero exit)
- Volume / image listing and removal
- wait_until_running polling
- prune_dangling_images best-effort behaviour
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest

from starterkit.compose import ComposeError, ComposeRunner


class FakeDocker:
    """Records commands and replies from a table keyed on argument prefixes."""

    def __init__(self, replies: dict[tuple[str, ...], tuple[int, str, str]] | None = None):
        self.replies = replies or {}
        self.calls: list[dict] = []

    async def __call__(self, cmd, cwd=None, timeout=120, capture=True, env=None):
        self.calls.append({"cmd": list(cmd), "cwd": cwd, "timeout": timeout, "capture": capture})
        best: tuple[str, ...] = ()
        for prefix in self.replies:
            if tuple(cmd[: len(prefix)]) == prefix and len(prefix) > len(best):
                best = prefix
        return self.replies.get(best, (0, "", ""))

    @property
    def commands(self) -> list[list[str]]:
        return [call["cmd"] for call in self.calls]


# ---------------------------------------------------------------------------
# Command construction
# ---------------------------------------------------------------------------


class TestComposeCmd:
    @pytest.mark.unit
    def test_without_file(self):
        assert ComposeRunner().compose_cmd("ps") == ["docker", "compose", "ps"]

    @pytest.mark.unit
    def test_with_file(self):
        runner = ComposeRunner(compose_file="docker-compose.prod.yml")
        assert runner.compose_cmd("up", "-d") == [
            "docker", "compose", "-f", "docker-compose.prod.yml", "up", "-d",
        ]


class TestLifecycle:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_build_no_cache(self, tmp_path):
        fake = FakeDocker()
        with patch("starterkit.compose.run_command", fake):
            await ComposeRunner(project_dir=tmp_path).build(["backend", "admin"], no_cache=True)

        call = fake.calls[0]
        assert call["cmd"] == ["docker", "compose", "build", "--no-cache", "backend", "admin"]
        assert call["cwd"] == Path(tmp_path)
        assert call["capture"] is False
        assert call["timeout"] is None

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_up_with_extra_args(self):
        fake = FakeDocker()
        with patch("starterkit.compose.run_command", fake):
            await ComposeRunner().up(["backend", "postgres"], extra_args=["--build"])

        assert fake.commands == [
            ["docker", "compose", "up", "-d", "--build", "backend", "postgres"]
        ]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_down_flags(self):
        fake = FakeDocker()
        with patch("starterkit.compose.run_command", fake):
            await ComposeRunner().down(volumes=True, remove_orphans=True, rmi="all")

        assert fake.commands == [
            ["docker", "compose", "down", "-v", "--remove-orphans", "--rmi", "all"]
        ]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_down_services(self):
        fake = FakeDocker()
        with patch("starterkit.compose.run_command", fake):
            await ComposeRunner().down(["backend"])

        assert fake.commands == [["docker", "compose", "down", "backend"]]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_logs_follow(self):
        fake = FakeDocker()
        with patch("starterkit.compose.run_command", fake):
            await ComposeRunner().logs()
            await ComposeRunner().logs(follow=False, services=["backend"])

        assert fake.commands == [
            ["docker", "compose", "logs", "-f"],
            ["docker", "compose", "logs", "backend"],
        ]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_exec(self):
        fake = FakeDocker()
        with patch("starterkit.compose.run_command", fake):
            await ComposeRunner().exec("backend", ["npx", "medusa", "seed"])

        assert fake.commands == [["docker", "compose", "exec", "backend", "npx", "medusa", "seed"]]


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class TestErrors:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_non_zero_exit(self):
        fake = FakeDocker({("docker", "compose", "ps"): (1, "", "no configuration file provided")})
        with patch("starterkit.compose.run_command", fake):
            with pytest.raises(ComposeError) as exc_info:
                await ComposeRunner().ps()

        assert exc_info.value.returncode == 1
        assert exc_info.value.command == "docker compose ps"
        assert "no configuration file provided" in str(exc_info.value)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_docker_missing(self):
        async def missing(cmd, **kwargs):
            raise FileNotFoundError(2, "No such file or directory", cmd[0])

        with patch("starterkit.compose.run_command", missing):
            with pytest.raises(ComposeError, match="docker is not installed"):
                await ComposeRunner().restart()


# ---------------------------------------------------------------------------
# Volumes and images
# ---------------------------------------------------------------------------


class TestEngineCommands:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_list_volumes_with_prefix(self):
        fake = FakeDocker({("docker", "volume", "ls"): (0, "shop_postgres_data\nshop_redis\n", "")})
        with patch("starterkit.compose.run_command", fake):
            volumes = await ComposeRunner().list_volumes(prefix="shop")

        assert volumes == ["shop_postgres_data", "shop_redis"]
        assert fake.commands == [["docker", "volume", "ls", "-q", "-f", "name=shop_"]]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_remove_nothing_runs_nothing(self):
        fake = FakeDocker()
        with patch("starterkit.compose.run_command", fake):
            await ComposeRunner().remove_volumes([])
            await ComposeRunner().remove_images([])

        assert fake.calls == []

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_list_project_images(self):
        output = "shop-backend:latest\nshop-storefront:latest\npostgres:16\nother:1\n"
        fake = FakeDocker({("docker", "images"): (0, output, "")})
        with patch("starterkit.compose.run_command", fake):
            images = await ComposeRunner().list_project_images("shop")

        assert images == ["shop-backend:latest", "shop-storefront:latest"]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_list_project_images_without_name(self):
        fake = FakeDocker({("docker", "images"): (0, "a:1\n", "")})
        with patch("starterkit.compose.run_command", fake):
            assert await ComposeRunner().list_project_images("") == []

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_find_container(self):
        fake = FakeDocker({("docker", "ps"): (0, "abc123\ndef456\n", "")})
        with patch("starterkit.compose.run_command", fake):
            assert await ComposeRunner().find_container("medusa") == "abc123"

        assert fake.commands == [["docker", "ps", "-q", "-f", "name=medusa"]]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_find_container_none(self):
        fake = FakeDocker()
        with patch("starterkit.compose.run_command", fake):
            assert await ComposeRunner().find_container("medusa") is None

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_prune_dangling_images(self):
        fake = FakeDocker({("docker", "images", "-q"): (0, "sha1\nsha2\n", "")})
        with patch("starterkit.compose.run_command", fake):
            await ComposeRunner().prune_dangling_images()

        assert fake.commands[-1] == ["docker", "rmi", "sha1", "sha2"]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_prune_dangling_images_failure_is_warning(self):
        fake = FakeDocker(
            {
                ("docker", "images", "-q"): (0, "sha1\n", ""),
                ("docker", "rmi"): (1, "", "image is being used"),
            }
        )
        with patch("starterkit.compose.run_command", fake):
            await ComposeRunner().prune_dangling_images()

        assert fake.commands[-1] == ["docker", "rmi", "sha1"]


# ---------------------------------------------------------------------------
# wait_until_running
# ---------------------------------------------------------------------------


class TestWaitUntilRunning:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_all_ready(self):
        fake = FakeDocker({("docker", "compose", "ps", "--services"): (0, "backend\npostgres\n", "")})
        with patch("starterkit.compose.run_command", fake):
            assert await ComposeRunner().wait_until_running(interval=0, max_attempts=1)

        exec_calls = [c for c in fake.commands if "exec" in c]
        assert exec_calls == [
            ["docker", "compose", "exec", "-T", "backend", "/bin/sh", "-c", "exit 0"],
            ["docker", "compose", "exec", "-T", "postgres", "/bin/sh", "-c", "exit 0"],
        ]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_gives_up(self):
        fake = FakeDocker(
            {
                ("docker", "compose", "ps", "--services"): (0, "backend\n", ""),
                ("docker", "compose", "exec"): (1, "", "service is not running"),
            }
        )
        with patch("starterkit.compose.run_command", fake):
            assert not await ComposeRunner().wait_until_running(interval=0, max_attempts=3)

        assert sum(1 for c in fake.commands if "--services" in c) == 3

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_no_services_yet(self):
        fake = FakeDocker()
        with patch("starterkit.compose.run_command", fake):
            assert not await ComposeRunner().wait_until_running(interval=0, max_attempts=2)
