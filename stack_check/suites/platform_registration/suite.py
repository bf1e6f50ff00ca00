"""Checks against platform-registration-service."""

import asyncio
import logging
import time
from collections.abc import AsyncGenerator, Awaitable, Callable, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass, field

import aiohttp

from stack_check.gate import ReadinessTimeoutError, await_ready
from stack_check.grpcurl import GrpcurlClient
from stack_check.steps import CheckOutcome, Step
from stack_check.suites.base import Suite
from stack_check.suites.checks import (
    GRPCURL_MISSING,
    apicurio_step,
    consul_registration_step,
    database_readiness_step,
    quarkus_health_steps,
    quarkus_metrics_step,
    reflection_step,
)
from stack_check.suites.platform_registration.config import (
    PlatformRegistrationConfig,
)

log = logging.getLogger(__name__)


@dataclass(frozen=True, kw_only=True)
class PlatformRegistrationSuite(Suite):
    """Health, reflection, registry RPCs and infrastructure wiring checks."""

    config: PlatformRegistrationConfig
    session: aiohttp.ClientSession = field(repr=False)
    grpc: GrpcurlClient
    sleep: Callable[[float], Awaitable[None]] = field(
        default=asyncio.sleep, repr=False
    )
    clock: Callable[[], float] = field(default=time.time, repr=False)

    @classmethod
    @asynccontextmanager
    async def from_config(
        cls, config: PlatformRegistrationConfig
    ) -> AsyncGenerator["PlatformRegistrationSuite", None]:
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
            Step(name="grpc.list_services", check=self.list_services),
            Step(name="grpc.list_modules", check=self.list_modules),
            Step(name="grpc.get_service", check=self.get_service),
            Step(name="grpc.register", check=self.register),
            consul_registration_step(
                self.session, self.config.consul_url, self.config.service_name, timeout
            ),
            database_readiness_step(self.session, self.config.base_url, timeout),
            apicurio_step(self.session, self.config.apicurio_url, timeout),
            quarkus_metrics_step(self.session, self.config.base_url, timeout),
        ]

    async def list_services(self) -> CheckOutcome:
        if not self.grpc.is_available():
            return CheckOutcome.skipped(GRPCURL_MISSING)

        response = await self.grpc.invoke(self.method("ListServices"))
        if not response:
            return CheckOutcome.failed("listServices call failed")

        found = response.count('"name"')
        if self.config.service_name in response:
            registration = f"{self.config.service_name} is self-registered"
        else:
            registration = f"{self.config.service_name} not found in service list"
            log.warning(registration)
        return CheckOutcome.passed(
            f"Found {found} registered service(s); {registration}"
        )

    async def list_modules(self) -> CheckOutcome:
        if not self.grpc.is_available():
            return CheckOutcome.skipped(GRPCURL_MISSING)

        response = await self.grpc.invoke(self.method("ListModules"))
        if not response:
            return CheckOutcome.failed("listModules call failed")
        found = response.count('"name"')
        return CheckOutcome.passed(f"Found {found} registered module(s)")

    async def get_service(self) -> CheckOutcome:
        if not self.grpc.is_available():
            return CheckOutcome.skipped(GRPCURL_MISSING)

        response = await self.grpc.invoke(
            self.method("GetService"), {"service_name": self.config.service_name}
        )
        if response and self.config.service_name in response:
            return CheckOutcome.passed("getService by name succeeded")
        return CheckOutcome.failed("getService by name failed")

    async def register(self) -> CheckOutcome:
        """Register a throwaway service, wait for it to be listed, unregister it."""
        if not self.grpc.is_available():
            return CheckOutcome.skipped(GRPCURL_MISSING)

        test_service_name = f"integration-test-service-{int(self.clock())}"
        request = {
            "name": test_service_name,
            "type": "SERVICE_TYPE_SERVICE",
            "connectivity": {"advertised_host": "localhost", "advertised_port": 9999},
            "version": "1.0.0-test",
            "tags": ["integration-test"],
            "capabilities": ["test"],
        }

        # Register streams progress events; the first one is enough
        response = await self.grpc.invoke(
            self.method("Register"), request, first_message_only=True
        )
        if not response:
            return CheckOutcome.failed("register call failed")

        notes = ["register call succeeded"]
        try:
            await await_ready(
                test_service_name,
                self.config.propagation,
                probe=self.is_listed,
                name=f"{test_service_name} in service list",
                sleep=self.sleep,
                failure_level=logging.INFO,
            )
            notes.append("test service appears in service list")
        except ReadinessTimeoutError:
            notes.append(
                "test service not found in service list "
                "(Consul propagation delay)"
            )

        unregistered = await self.grpc.invoke(
            self.method("Unregister"),
            {"name": test_service_name, "host": "localhost", "port": 9999},
        )
        if unregistered is not None:
            notes.append("test service unregistered")
        else:
            notes.append("test service unregistration may have failed (non-critical)")

        return CheckOutcome.passed("; ".join(notes))

    async def is_listed(self, service_name: str) -> bool:
        response = await self.grpc.invoke(self.method("ListServices"))
        return response is not None and service_name in response
