"""Staged deployment of the backend and storefront.

Stages:

backend    -- rebuild and restart the backend group, wait for its health URL.
seed       -- load seed data once if the backend reports no regions.
storefront -- rebuild and restart the storefront, wait for its health URL.
cleanup    -- best-effort removal of dangling images.

A service that never becomes healthy is reported as a warning and the
deployment carries on; the backend's data is then assumed to be absent.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Sequence

import httpx
from rich.panel import Panel

from .compose import ComposeRunner
from .config import Config, ServiceSettings
from .readiness import HealthProbe, ProbeResult, ProbeTimeoutError, ReadinessPoller, should_seed
from .utils import (
    console,
    format_duration,
    print_info,
    print_stage_header,
    print_success,
    print_summary_table,
    print_warning,
)

ENVIRONMENTS = ("dev", "prod")


@dataclass
class DeployResult:
    """Summary of one deployment run."""

    environment: str
    backend_healthy: bool = False
    storefront_healthy: bool = False
    region_count: int | None = None
    seeded: bool = False
    duration_seconds: float = 0.0


class DeployPipeline:
    """Drives one deployment of the stack through ``docker compose``."""

    def __init__(
        self,
        config: Config,
        environment: str = "dev",
        up_args: Sequence[str] = (),
        runner: ComposeRunner | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if environment not in ENVIRONMENTS:
            raise ValueError(f"environment must be one of {ENVIRONMENTS}, got {environment!r}")
        self.config = config
        self.settings = config.deploy
        self.environment = environment
        self.up_args = list(up_args)
        self.runner = runner or ComposeRunner(
            compose_file=self.settings.compose_file(environment),
            project_dir=config.project_root,
        )
        self.transport = transport
        self.sleep = sleep

    @property
    def backend_group(self) -> list[str]:
        services = [self.settings.backend.name]
        if self.environment == "prod" and self.settings.admin_service:
            services.append(self.settings.admin_service)
        return services

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    async def _wait_healthy(
        self, service: ServiceSettings, with_count: bool = True
    ) -> ProbeResult | None:
        print_info(f"Waiting for {service.name} to become healthy...")
        if service.initial_delay:
            await self.sleep(service.initial_delay)
        probe = HealthProbe.for_service(service, self.settings)
        poller = ReadinessPoller(probe, transport=self.transport, sleep=self.sleep)
        try:
            return await poller.wait(with_count=with_count)
        except ProbeTimeoutError as exc:
            print_warning(f"{service.name}: {exc}")
            return None

    async def deploy_backend(self, result: DeployResult) -> None:
        print_stage_header("backend", "Backend")
        group = self.backend_group
        await self.runner.build(group, no_cache=True)
        await self.runner.down(group)
        await self.runner.up(group + list(self.settings.other_services), extra_args=self.up_args)

        probe_result = await self._wait_healthy(self.settings.backend)
        if probe_result is not None:
            result.backend_healthy = True
            result.region_count = probe_result.count

    async def seed_if_needed(self, result: DeployResult) -> None:
        print_stage_header("seed", "Seed data")
        if not should_seed(result.region_count):
            print_info("The application already has data")
            return
        print_info("Initialize seed data")
        await self.runner.exec(self.settings.backend.name, self.settings.seed_command)
        result.seeded = True

    async def deploy_storefront(self, result: DeployResult) -> None:
        print_stage_header("storefront", "Storefront")
        storefront = [self.settings.storefront.name]
        await self.runner.build(storefront, no_cache=True)
        await self.runner.down(storefront)
        await self.runner.up(storefront, extra_args=self.up_args)

        storefront = await self._wait_healthy(self.settings.storefront, with_count=False)
        result.storefront_healthy = storefront is not None

    async def run(self) -> DeployResult:
        """Run every stage in order and print a summary."""
        started = time.monotonic()
        result = DeployResult(environment=self.environment)
        console.print(
            Panel(f"[bold]Deploying the {self.environment} environment[/bold]", style="cyan")
        )

        await self.deploy_backend(result)
        await self.seed_if_needed(result)
        await self.deploy_storefront(result)

        print_stage_header("cleanup", "Cleanup")
        await self.runner.prune_dangling_images()

        result.duration_seconds = time.monotonic() - started
        print_summary_table(
            {
                "Environment": result.environment,
                "Backend healthy": "yes" if result.backend_healthy else "no",
                "Storefront healthy": "yes" if result.storefront_healthy else "no",
                "Region count": str(result.region_count) if result.region_count is not None else "unknown",
                "Seeded": "yes" if result.seeded else "no",
                "Duration": format_duration(result.duration_seconds),
            },
            title="Deployment",
        )
        print_success(f"Deployment completed for {self.environment} environment")
        return result
