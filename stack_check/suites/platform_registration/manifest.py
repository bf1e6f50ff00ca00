"""Platform registration suite manifest."""

from stack_check.suites.manifest import SuiteManifest
from stack_check.suites.platform_registration.config import (
    PlatformRegistrationConfig,
)
from stack_check.suites.platform_registration.suite import PlatformRegistrationSuite

platform_registration_manifest = SuiteManifest(
    config_cls=PlatformRegistrationConfig,
    suite_factory=PlatformRegistrationSuite.from_config,
)
