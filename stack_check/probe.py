"""Single-shot probes used by readiness gates and checks."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

import aiohttp

from stack_check.models.definition import (
    ContainerProbeTarget,
    HttpProbeTarget,
    ProbeTarget,
)

log = logging.getLogger(__name__)


async def probe_http(session: aiohttp.ClientSession, target: HttpProbeTarget) -> bool:
    """Issue one GET and report whether it answered 2xx within the timeout.

    Retries are the caller's business; every failure mode maps to False.
    """
    timeout = aiohttp.ClientTimeout(total=target.timeout)
    try:
        async with session.get(target.url, timeout=timeout) as response:
            healthy = 200 <= response.status < 300
            if not healthy:
                log.debug("Probe %s answered %s", target.url, response.status)
            return healthy
    except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
        log.debug("Probe %s failed: %r", target.url, exc)
        return False


async def fetch_text(
    session: aiohttp.ClientSession, url: str, timeout: float
) -> str | None:
    """Return the body of a 2xx response, or None on any failure."""
    try:
        async with session.get(
            url, timeout=aiohttp.ClientTimeout(total=timeout)
        ) as response:
            if not 200 <= response.status < 300:
                log.debug("GET %s answered %s", url, response.status)
                return None
            return await response.text()
    except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
        log.debug("GET %s failed: %r", url, exc)
        return None


@dataclass(frozen=True, kw_only=True)
class Prober:
    """Dispatches a probe target to the matching probe implementation."""

    session: aiohttp.ClientSession = field(repr=False)
    health_status: Callable[[str], Awaitable[str]]

    async def __call__(self, target: ProbeTarget) -> bool:
        """Probe the target once."""
        match target:
            case HttpProbeTarget():
                return await probe_http(self.session, target)
            case ContainerProbeTarget(container=container):
                status = await self.health_status(container)
                log.debug("Container %s health status: %s", container, status)
                return status == "healthy"
