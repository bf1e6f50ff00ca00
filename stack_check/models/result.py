"""Models for step and session results."""

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Literal, TypeAlias

StepOutcome: TypeAlias = Literal["pass", "fail", "warn"]
SessionOutcome: TypeAlias = Literal["pass", "fail"]


@dataclass(frozen=True, kw_only=True)
class StepResult:
    """Recorded outcome of a single step.

    Non-critical failures and skipped steps are recorded as "warn"; only a
    critical failure is recorded as "fail".
    """

    name: str
    outcome: StepOutcome
    detail: str = ""
    critical: bool = True
    duration: float = 0.0


@dataclass(frozen=True, kw_only=True)
class SessionReport:
    """Final report of a session."""

    stack: str
    tag: str
    outcome: SessionOutcome
    results: Sequence[StepResult]
