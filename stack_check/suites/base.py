"""Abstract base class for check suites."""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass

from stack_check.steps import Step


@dataclass(frozen=True, kw_only=True)
class Suite(ABC):
    """A configured group of checks against one service or the infrastructure.

    Suites are opened through their manifest's factory, which owns the
    lifecycle of any client session the checks share.
    """

    @abstractmethod
    def steps(self) -> Sequence[Step]:
        """Return the steps to run, in order."""
