"""HTTP readiness polling for freshly started services.

After ``docker compose up`` returns, the containers are running but the
applications inside may still be booting.  :class:`ReadinessPoller` probes a
health URL with a bounded number of retries and, once the service answers,
fetches the same URL as JSON to read a ``count`` field (the backend's region
count decides whether seed data must be loaded).
"""

from __future__ import annotations

import asyncio
import json
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Awaitable, Callable

import httpx
from pydantic import BaseModel, Field

from .config import DeploySettings, ServiceSettings
from .errors import StarterKitError
from .utils import print_info, print_success

# ---------------------------------------------------------------------------
# Count extraction
# ---------------------------------------------------------------------------


class CountExtractor(ABC):
    """Reads the ``count`` value out of a response body."""

    @abstractmethod
    def extract(self, body: str) -> int | None:
        """Return the count, or ``None`` if the body does not carry one."""


class PatternCountExtractor(CountExtractor):
    """Scans the raw text for ``"count": <digits>``.

    Works on truncated or otherwise malformed JSON as long as the field
    itself is intact.
    """

    def __init__(self, field_name: str = "count") -> None:
        self.pattern = re.compile(rf'"{re.escape(field_name)}"\s*:\s*(\d+)')

    def extract(self, body: str) -> int | None:
        match = self.pattern.search(body)
        return int(match.group(1)) if match else None


class JsonCountExtractor(CountExtractor):
    """Parses the body as JSON and reads a top-level integer field."""

    def __init__(self, field_name: str = "count") -> None:
        self.field_name = field_name

    def extract(self, body: str) -> int | None:
        try:
            data = json.loads(body)
        except ValueError:
            return None
        if not isinstance(data, dict):
            return None
        value = data.get(self.field_name)
        if isinstance(value, bool) or not isinstance(value, int):
            return None
        return value


# ---------------------------------------------------------------------------
# Probe model
# ---------------------------------------------------------------------------


class HealthProbe(BaseModel):
    """One readiness check: where to look and how long to keep trying."""

    url: str
    expected_status: int = Field(default=200)
    max_retries: int = Field(default=12, ge=0, description="Retries after the first attempt")
    interval_seconds: float = Field(default=5, ge=0)
    request_timeout: float = Field(default=5.0, gt=0)

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    @classmethod
    def for_service(cls, service: ServiceSettings, settings: DeploySettings) -> "HealthProbe":
        return cls(
            url=service.health_url,
            expected_status=settings.expected_status,
            max_retries=settings.max_retries,
            interval_seconds=settings.interval,
        )


@dataclass
class ProbeResult:
    """A successful probe."""

    url: str
    attempts: int
    status_code: int
    count: int | None = None


class ProbeTimeoutError(StarterKitError):
    """Raised when the expected status never arrived within the retry budget."""

    def __init__(
        self,
        url: str,
        attempts: int,
        last_status: int | None = None,
        last_error: str = "",
    ) -> None:
        self.url = url
        self.attempts = attempts
        self.last_status = last_status
        self.last_error = last_error
        detail = f"last status {last_status}" if last_status is not None else last_error
        super().__init__(
            f"{url} did not become healthy after {attempts} attempts ({detail or 'no response'})"
        )


def should_seed(count: int | None) -> bool:
    """Seed unless a positive count was observed."""
    return count is None or count <= 0


# ---------------------------------------------------------------------------
# Poller
# ---------------------------------------------------------------------------


class ReadinessPoller:
    """Polls a :class:`HealthProbe` until it succeeds or the budget runs out.

    A connection error, DNS failure or timeout in one attempt counts exactly
    like a wrong status code: the attempt failed and the loop goes on.
    """

    def __init__(
        self,
        probe: HealthProbe,
        extractor: CountExtractor | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.probe = probe
        self.extractor = extractor or PatternCountExtractor()
        self.transport = transport
        self.sleep = sleep

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=httpx.Timeout(self.probe.request_timeout, connect=3.0),
            transport=self.transport,
        )

    async def _attempt(self, client: httpx.AsyncClient) -> tuple[int | None, str]:
        """Issue one GET; return ``(status_code, error_text)``."""
        try:
            response = await client.get(self.probe.url)
        except httpx.HTTPError as exc:
            return None, f"{type(exc).__name__}: {exc}"
        return response.status_code, ""

    async def fetch_count(self, client: httpx.AsyncClient) -> int | None:
        """GET the probe URL as JSON and extract the count."""
        try:
            response = await client.get(
                self.probe.url,
                headers={"Content-Type": "application/json", "Accept": "application/json"},
            )
        except httpx.HTTPError:
            return None
        if response.status_code != self.probe.expected_status:
            return None
        return self.extractor.extract(response.text)

    async def wait(self, with_count: bool = True) -> ProbeResult:
        """Poll until healthy, then fetch the count unless *with_count* is false.

        Raises:
            ProbeTimeoutError: If no attempt returned the expected status.
        """
        last_status: int | None = None
        last_error = ""

        async with self._client() as client:
            for attempt in range(1, self.probe.max_attempts + 1):
                status, error = await self._attempt(client)
                if status == self.probe.expected_status:
                    print_success(f"{self.probe.url} is healthy")
                    count = await self.fetch_count(client) if with_count else None
                    return ProbeResult(
                        url=self.probe.url,
                        attempts=attempt,
                        status_code=status,
                        count=count,
                    )

                last_status, last_error = status, error
                if status is not None:
                    print_info(f"Health check failed. API returned HTTP status code: {status}")
                else:
                    print_info(f"Health check failed. {error}")

                if attempt < self.probe.max_attempts:
                    await self.sleep(self.probe.interval_seconds)

        raise ProbeTimeoutError(
            self.probe.url,
            self.probe.max_attempts,
            last_status=last_status,
            last_error=last_error,
        )
