"""Connector admin suite manifest."""

from stack_check.suites.connector_admin.config import ConnectorAdminConfig
from stack_check.suites.connector_admin.suite import ConnectorAdminSuite
from stack_check.suites.manifest import SuiteManifest

connector_admin_manifest = SuiteManifest(
    config_cls=ConnectorAdminConfig,
    suite_factory=ConnectorAdminSuite.from_config,
)
