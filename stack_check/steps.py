"""Sequential step runner with soft-fail aggregation."""

import logging
import time
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Literal, TypeAlias

from stack_check.models.result import StepOutcome, StepResult

log = logging.getLogger(__name__)


@dataclass(frozen=True, kw_only=True)
class CheckOutcome:
    """What a check observed, before the runner applies criticality."""

    status: Literal["pass", "fail", "skip"]
    detail: str = ""

    @classmethod
    def passed(cls, detail: str = "") -> "CheckOutcome":
        return cls(status="pass", detail=detail)

    @classmethod
    def failed(cls, detail: str = "") -> "CheckOutcome":
        return cls(status="fail", detail=detail)

    @classmethod
    def skipped(cls, detail: str = "") -> "CheckOutcome":
        return cls(status="skip", detail=detail)


Check: TypeAlias = Callable[[], Awaitable[CheckOutcome]]


@dataclass(frozen=True, kw_only=True)
class Step:
    """A named check; a failing critical step fails the whole session."""

    name: str
    check: Check
    critical: bool = True


def classify(step: Step, outcome: CheckOutcome) -> StepOutcome:
    """Map a check outcome to a recorded step outcome."""
    if outcome.status == "pass":
        return "pass"
    if outcome.status == "fail" and step.critical:
        return "fail"
    return "warn"


async def run_step(step: Step) -> StepResult:
    """Run one step, turning any exception into a failed check."""
    log.info("[TEST] %s", step.name)
    started = time.monotonic()
    try:
        outcome = await step.check()
    except Exception as exc:
        log.error("Step %s raised: %s", step.name, exc, exc_info=exc)
        outcome = CheckOutcome.failed(f"{type(exc).__name__}: {exc}")
    duration = time.monotonic() - started

    result = StepResult(
        name=step.name,
        outcome=classify(step, outcome),
        detail=outcome.detail,
        critical=step.critical,
        duration=duration,
    )

    match result.outcome:
        case "pass":
            log.info("  ✓ %s %s", step.name, result.detail)
        case "warn":
            log.warning("  ⚠ %s %s", step.name, result.detail)
        case "fail":
            log.error("  ✗ %s %s", step.name, result.detail)

    return result


async def run_steps(steps: Sequence[Step]) -> Sequence[StepResult]:
    """Run every step in order, whatever the outcome of the previous ones."""
    results: list[StepResult] = []
    for step in steps:
        results.append(await run_step(step))
    return results
