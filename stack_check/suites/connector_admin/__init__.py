"""Connector admin suite module."""

from stack_check.suites.connector_admin.config import ConnectorAdminConfig
from stack_check.suites.connector_admin.manifest import connector_admin_manifest
from stack_check.suites.connector_admin.suite import ConnectorAdminSuite

__all__ = ["ConnectorAdminConfig", "ConnectorAdminSuite", "connector_admin_manifest"]
