"""Infrastructure suite module."""

from stack_check.suites.infrastructure.config import InfrastructureConfig
from stack_check.suites.infrastructure.manifest import infrastructure_manifest
from stack_check.suites.infrastructure.suite import InfrastructureSuite

__all__ = ["InfrastructureConfig", "InfrastructureSuite", "infrastructure_manifest"]
