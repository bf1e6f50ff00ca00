"""Checks against connector-admin."""

import re
import time
from collections.abc import AsyncGenerator, Callable, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass, field

import aiohttp

from stack_check.grpcurl import GrpcurlClient
from stack_check.steps import CheckOutcome, Step
from stack_check.suites.base import Suite
from stack_check.suites.checks import (
    GRPCURL_MISSING,
    apicurio_step,
    consul_registration_step,
    database_readiness_step,
    http_ok,
    quarkus_health_steps,
    quarkus_metrics_step,
    reflection_step,
)
from stack_check.suites.connector_admin.config import ConnectorAdminConfig

CONNECTOR_ID = re.compile(r'"connectorId"\s*:\s*"([^"]*)"|"connector_id"\s*:\s*"([^"]*)"')
API_KEY = re.compile(r'"apiKey"\s*:\s*"([^"]*)"|"api_key"\s*:\s*"([^"]*)"')


def extract_field(pattern: re.Pattern[str], response: str) -> str | None:
    """Pull a string field out of grpcurl's JSON output without decoding it."""
    if match := pattern.search(response):
        return next((group for group in match.groups() if group), None)
    return None


@dataclass
class RegisteredConnector:
    """Connector created by the registration step, reused by later steps."""

    connector_id: str | None = None
    api_key: str | None = None


@dataclass(frozen=True, kw_only=True)
class ConnectorAdminSuite(Suite):
    """Health, reflection, connector lifecycle RPCs and dependency checks.

    Registration needs a valid account, which the stack may not provide, so
    the connector lifecycle checks are non-critical and the ones that need a
    registered connector are skipped when registration did not yield one.
    """

    config: ConnectorAdminConfig
    session: aiohttp.ClientSession = field(repr=False)
    grpc: GrpcurlClient
    clock: Callable[[], float] = field(default=time.time, repr=False)
    registered: RegisteredConnector = field(default_factory=RegisteredConnector)

    @classmethod
    @asynccontextmanager
    async def from_config(
        cls, config: ConnectorAdminConfig
    ) -> AsyncGenerator["ConnectorAdminSuite", None]:
        """Create suite with managed session lifecycle."""
        async with aiohttp.ClientSession() as session:
            yield cls(
                config=config,
                session=session,
                grpc=GrpcurlClient(
                    endpoint=config.grpc_endpoint, executable=config.grpcurl
                ),
            )

    def method(self, name: str) -> str:
        return f"{self.config.grpc_service}/{name}"

    def steps(self) -> Sequence[Step]:
        timeout = self.config.request_timeout
        return [
            *quarkus_health_steps(self.session, self.config.base_url, timeout),
            reflection_step(self.grpc, self.config.grpc_service),
            Step(name="grpc.list_connectors", check=self.list_connectors),
            Step(
                name="grpc.register_connector",
                critical=False,
                check=self.register_connector,
            ),
            Step(name="grpc.get_connector", critical=False, check=self.get_connector),
            Step(
                name="grpc.validate_api_key",
                critical=False,
                check=self.validate_api_key,
            ),
            Step(
                name="grpc.set_connector_status",
                critical=False,
                check=self.set_connector_status,
            ),
            consul_registration_step(
                self.session, self.config.consul_url, self.config.service_name, timeout
            ),
            database_readiness_step(self.session, self.config.base_url, timeout),
            apicurio_step(self.session, self.config.apicurio_url, timeout),
            Step(
                name="infrastructure.platform_registration",
                critical=False,
                check=http_ok(
                    self.session,
                    [f"{self.config.platform_registration_url}/q/health/ready"],
                    timeout,
                    ok="platform-registration-service dependency is healthy",
                    failed="Could not verify platform-registration-service "
                    "(may not be accessible from host)",
                ),
            ),
            quarkus_metrics_step(self.session, self.config.base_url, timeout),
        ]

    async def list_connectors(self) -> CheckOutcome:
        if not self.grpc.is_available():
            return CheckOutcome.skipped(GRPCURL_MISSING)

        response = await self.grpc.invoke(
            self.method("ListConnectors"), {"page_size": 10}
        )
        if not response:
            return CheckOutcome.failed("listConnectors call failed")
        found = len(CONNECTOR_ID.findall(response))
        return CheckOutcome.passed(f"Found {found} connector(s)")

    async def register_connector(self) -> CheckOutcome:
        if not self.grpc.is_available():
            return CheckOutcome.skipped(GRPCURL_MISSING)

        stamp = int(self.clock())
        request = {
            "connector_name": f"test-connector-{stamp}",
            "connector_type": "test-type",
            "account_id": f"test-account-{stamp}",
            "s3_bucket": self.config.s3_bucket,
            "s3_base_path": self.config.s3_base_path,
            "max_file_size": self.config.max_file_size,
            "rate_limit_per_minute": self.config.rate_limit_per_minute,
        }

        response = await self.grpc.invoke(self.method("RegisterConnector"), request)
        if not response or "success" not in response:
            return CheckOutcome.failed(
                "registerConnector call may have failed "
                f"(account validation may be required); response: {response}"
            )

        connector_id = extract_field(CONNECTOR_ID, response)
        if connector_id is None:
            return CheckOutcome.passed(
                "registerConnector call succeeded; "
                "could not extract connector_id from response"
            )

        self.registered.connector_id = connector_id
        self.registered.api_key = extract_field(API_KEY, response)
        return CheckOutcome.passed(
            f"registerConnector call succeeded; connector ID: {connector_id}"
        )

    async def get_connector(self) -> CheckOutcome:
        if not self.grpc.is_available():
            return CheckOutcome.skipped(GRPCURL_MISSING)
        if (connector_id := self.registered.connector_id) is None:
            return CheckOutcome.skipped(
                "Skipping getConnector (no connector_id from register step)"
            )

        response = await self.grpc.invoke(
            self.method("GetConnector"), {"connector_id": connector_id}
        )
        if response and connector_id in response:
            return CheckOutcome.passed("getConnector call succeeded")
        return CheckOutcome.failed(
            "getConnector call may have failed (connector may not exist)"
        )

    async def validate_api_key(self) -> CheckOutcome:
        if not self.grpc.is_available():
            return CheckOutcome.skipped(GRPCURL_MISSING)
        connector_id, api_key = self.registered.connector_id, self.registered.api_key
        if connector_id is None or api_key is None:
            return CheckOutcome.skipped(
                "Skipping validateApiKey (no connector_id/api_key from register step)"
            )

        response = await self.grpc.invoke(
            self.method("ValidateApiKey"),
            {"connector_id": connector_id, "api_key": api_key},
        )
        if not response or "valid" not in response:
            return CheckOutcome.failed("validateApiKey call may have failed")
        if re.search(r'"valid"\s*:\s*true', response):
            return CheckOutcome.passed("API key validation returned valid=true")
        return CheckOutcome.passed(
            "validateApiKey call succeeded; API key validation returned valid=false"
        )

    async def set_connector_status(self) -> CheckOutcome:
        if not self.grpc.is_available():
            return CheckOutcome.skipped(GRPCURL_MISSING)
        if (connector_id := self.registered.connector_id) is None:
            return CheckOutcome.skipped(
                "Skipping setConnectorStatus (no connector_id from register step)"
            )

        response = await self.grpc.invoke(
            self.method("SetConnectorStatus"),
            {"connector_id": connector_id, "active": False, "reason": "Integration test"},
        )
        if response and "success" in response:
            return CheckOutcome.passed("setConnectorStatus call succeeded")
        return CheckOutcome.failed("setConnectorStatus call may have failed")
