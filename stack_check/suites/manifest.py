"""Suite manifest definition for the plugin system."""

from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass
from typing import Generic, TypeVar

from pydantic import BaseModel

from stack_check.suites.base import Suite

ConfigT = TypeVar("ConfigT", bound=BaseModel)


@dataclass(frozen=True, kw_only=True)
class SuiteManifest(Generic[ConfigT]):
    """Manifest describing a suite plugin.

    The manifest references the configuration class and the suite factory so
    suites are only imported and opened when a stack asks for them by key.
    """

    config_cls: type[ConfigT]
    suite_factory: Callable[[ConfigT], AbstractAsyncContextManager[Suite]]
