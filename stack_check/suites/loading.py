"""Loading of suites from entry points."""

from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass
from importlib.metadata import entry_points
from typing import Any

from stack_check.models.definition import SuiteSpec
from stack_check.suites.base import Suite
from stack_check.suites.manifest import SuiteManifest

ENTRY_POINT_GROUP = "stack_check.suites"


class SuiteNotFoundError(Exception):
    """Raised when a suite is not found."""


def load_suite_manifest(key: str) -> SuiteManifest[Any]:
    """Load a suite manifest by key.

    Args:
        key: The suite key as registered in pyproject.toml
             (e.g., "platform-registration", "connector-admin")

    Returns:
        The suite manifest instance

    Raises:
        SuiteNotFoundError: If no suite with the given key is found

    """
    entries = entry_points(group=ENTRY_POINT_GROUP)

    for entry in entries:
        if entry.name == key:
            manifest: SuiteManifest[Any] = entry.load()
            return manifest

    available = [e.name for e in entries]
    raise SuiteNotFoundError(f"Suite '{key}' not found. Available suites: {available}")


@dataclass(frozen=True, kw_only=True)
class PreparedSuite:
    """A suite whose manifest is loaded and whose configuration is validated."""

    key: str
    manifest: SuiteManifest[Any]
    config: Any

    def open(self) -> AbstractAsyncContextManager[Suite]:
        return self.manifest.suite_factory(self.config)


def prepare_suite(spec: SuiteSpec) -> PreparedSuite:
    """Load the manifest for a suite spec and validate its configuration."""
    manifest = load_suite_manifest(spec.key)
    config = manifest.config_cls(**spec.config)
    return PreparedSuite(key=spec.key, manifest=manifest, config=config)