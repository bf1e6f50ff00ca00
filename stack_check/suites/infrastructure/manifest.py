"""Infrastructure suite manifest."""

from stack_check.suites.infrastructure.config import InfrastructureConfig
from stack_check.suites.infrastructure.suite import InfrastructureSuite
from stack_check.suites.manifest import SuiteManifest

infrastructure_manifest = SuiteManifest(
    config_cls=InfrastructureConfig,
    suite_factory=InfrastructureSuite.from_config,
)
