"""Platform registration service suite module."""

from stack_check.suites.platform_registration.config import (
    PlatformRegistrationConfig,
)
from stack_check.suites.platform_registration.manifest import (
    platform_registration_manifest,
)
from stack_check.suites.platform_registration.suite import PlatformRegistrationSuite

__all__ = [
    "PlatformRegistrationConfig",
    "PlatformRegistrationSuite",
    "platform_registration_manifest",
]
