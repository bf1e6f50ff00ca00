"""Readiness gate: bounded fixed-interval polling until a probe succeeds."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from stack_check.models.definition import RetryPolicy

log = logging.getLogger(__name__)

T = TypeVar("T")

PROGRESS_EVERY = 5


class ReadinessTimeoutError(Exception):
    """Raised when a gate exhausts its attempts without a successful probe."""

    def __init__(self, name: str, attempts: int, diagnostics: str | None = None):
        super().__init__(f"{name} did not become ready within {attempts} attempts")
        self.name = name
        self.attempts = attempts
        self.diagnostics = diagnostics


async def await_ready(
    target: T,
    policy: RetryPolicy,
    *,
    probe: Callable[[T], Awaitable[bool]],
    name: str | None = None,
    on_failure: Callable[[], Awaitable[str]] | None = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    failure_level: int = logging.ERROR,
) -> int:
    """Probe the target until it succeeds or the policy is exhausted.

    Args:
        target: What to probe, passed unchanged to ``probe``
        policy: Attempt budget and the fixed interval between attempts
        probe: Single-shot probe returning True when the target is ready
        name: Name used in logs and errors (defaults to ``str(target)``)
        on_failure: Collects diagnostics once the last attempt failed
        sleep: Awaitable sleep, replaceable for tests
        failure_level: Log level for the timeout, for waits whose caller
            tolerates it

    Returns:
        Number of probe attempts that were made

    Raises:
        ReadinessTimeoutError: If no attempt succeeded

    """
    label = name or str(target)
    log.info(
        "Waiting for %s to be ready (%d attempts, %.1fs interval)...",
        label,
        policy.max_attempts,
        policy.interval,
    )

    for attempt in range(1, policy.max_attempts + 1):
        if await probe(target):
            log.info("%s is ready (attempt %d)", label, attempt)
            return attempt

        if attempt % PROGRESS_EVERY == 0:
            log.info(
                "Still waiting for %s (%d/%d)", label, attempt, policy.max_attempts
            )

        if attempt < policy.max_attempts:
            await sleep(policy.interval)

    log.log(
        failure_level,
        "%s did not become ready within %d attempts",
        label,
        policy.max_attempts,
    )

    diagnostics = None
    if on_failure is not None:
        diagnostics = await on_failure()
        if diagnostics:
            log.error("Recent output from %s:\n%s", label, diagnostics)

    raise ReadinessTimeoutError(label, policy.max_attempts, diagnostics)
