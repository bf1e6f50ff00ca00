"""Check builders shared by the suites."""

from collections.abc import Sequence
from urllib.parse import quote

import aiohttp

from stack_check.grpcurl import GrpcurlClient
from stack_check.models.definition import HttpProbeTarget
from stack_check.probe import fetch_text, probe_http
from stack_check.steps import Check, CheckOutcome, Step

GRPCURL_MISSING = (
    "grpcurl not found, skipping gRPC check "
    "(install from https://github.com/fullstorydev/grpcurl)"
)


def http_ok(
    session: aiohttp.ClientSession,
    urls: Sequence[str],
    timeout: float,
    *,
    ok: str,
    failed: str,
) -> Check:
    """Pass when any of the URLs answers 2xx, trying them in order."""

    async def check() -> CheckOutcome:
        for url in urls:
            if await probe_http(session, HttpProbeTarget(url=url, timeout=timeout)):
                return CheckOutcome.passed(ok)
        return CheckOutcome.failed(failed)

    return check


def http_contains(
    session: aiohttp.ClientSession,
    url: str,
    timeout: float,
    needle: str,
    *,
    ok: str,
    failed: str,
) -> Check:
    """Pass when the URL answers 2xx; report whether the body holds the needle."""

    async def check() -> CheckOutcome:
        body = await fetch_text(session, url, timeout)
        if body is None:
            return CheckOutcome.failed(failed)
        if needle in body:
            return CheckOutcome.passed(f"{ok}, contains '{needle}'")
        return CheckOutcome.passed(f"{ok}, '{needle}' not found in response")

    return check


def quarkus_health_steps(
    session: aiohttp.ClientSession, base_url: str, timeout: float
) -> Sequence[Step]:
    """Liveness, readiness, startup and full-health checks of a Quarkus service."""
    return [
        Step(
            name="health.live",
            check=http_ok(
                session,
                [f"{base_url}/q/health/live"],
                timeout,
                ok="Liveness check passed",
                failed="Liveness check failed",
            ),
        ),
        Step(
            name="health.ready",
            check=http_ok(
                session,
                [f"{base_url}/q/health/ready"],
                timeout,
                ok="Readiness check passed",
                failed="Readiness check failed",
            ),
        ),
        Step(
            name="health.started",
            critical=False,
            check=http_ok(
                session,
                [f"{base_url}/q/health/started"],
                timeout,
                ok="Startup check passed",
                failed="Startup check failed (may be normal if fully started)",
            ),
        ),
        Step(
            name="health.full",
            critical=False,
            check=http_contains(
                session,
                f"{base_url}/q/health",
                timeout,
                "UP",
                ok="Full health endpoint accessible",
                failed="Full health endpoint not accessible",
            ),
        ),
    ]


def quarkus_metrics_step(
    session: aiohttp.ClientSession, base_url: str, timeout: float
) -> Step:
    """Non-critical check that the metrics endpoint exposes JVM metrics."""
    return Step(
        name="metrics",
        critical=False,
        check=http_contains(
            session,
            f"{base_url}/q/metrics",
            timeout,
            "jvm_",
            ok="Metrics endpoint is accessible",
            failed="Metrics endpoint not accessible (may not be configured)",
        ),
    )


def consul_registration_step(
    session: aiohttp.ClientSession, consul_url: str, service_name: str, timeout: float
) -> Step:
    """Non-critical check that the service has a passing Consul registration."""
    encoded = quote(service_name, safe="")

    async def check() -> CheckOutcome:
        health_url = f"{consul_url}/v1/health/service/{encoded}?passing"
        if await fetch_text(session, health_url, timeout) is None:
            return CheckOutcome.failed(
                "Could not verify Consul registration (Consul may not be accessible)"
            )
        agent_services = await fetch_text(
            session, f"{consul_url}/v1/agent/services", timeout
        )
        if agent_services and service_name in agent_services:
            return CheckOutcome.passed(
                "Service registered in Consul and found in agent services"
            )
        return CheckOutcome.passed("Service registered in Consul")

    return Step(name="infrastructure.consul", critical=False, check=check)


def database_readiness_step(
    session: aiohttp.ClientSession, base_url: str, timeout: float
) -> Step:
    """Critical check: readiness covers the MySQL and Kafka connections."""
    return Step(
        name="infrastructure.mysql",
        check=http_ok(
            session,
            [f"{base_url}/q/health/ready"],
            timeout,
            ok="MySQL and Kafka connections verified (service is ready)",
            failed="MySQL connection may be failing (service not ready)",
        ),
    )


def apicurio_step(
    session: aiohttp.ClientSession, apicurio_url: str, timeout: float
) -> Step:
    """Non-critical check that Apicurio Registry is reachable from the host."""
    return Step(
        name="infrastructure.apicurio",
        critical=False,
        check=http_ok(
            session,
            [f"{apicurio_url}/health", f"{apicurio_url}/q/health"],
            timeout,
            ok="Apicurio Registry is accessible",
            failed="Could not verify Apicurio Registry (may not be accessible from host)",
        ),
    )


def reflection_step(grpc: GrpcurlClient, service: str) -> Step:
    """Critical check that server reflection lists services and methods."""

    async def check() -> CheckOutcome:
        if not grpc.is_available():
            return CheckOutcome.skipped(GRPCURL_MISSING)
        services = await grpc.list_services()
        if services is None:
            return CheckOutcome.failed("gRPC reflection test failed")
        methods = await grpc.list_methods(service) or []
        return CheckOutcome.passed(
            f"gRPC reflection is working; services: {', '.join(services)}; "
            f"methods in {service}: {', '.join(methods)}"
        )

    return Step(name="grpc.reflection", check=check)
