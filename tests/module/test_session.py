"""Module test running a whole session against services stubbed in WireMock."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from pathlib import Path

import aiohttp
from wiremock.client import (
    HttpMethods,
    Mapping,
    MappingRequest,
    MappingResponse,
    Mappings,
)

from stack_check.models.definition import (
    Dependency,
    HttpProbeTarget,
    RetryPolicy,
    StackDefinition,
    SuiteSpec,
)
from stack_check.probe import Prober
from stack_check.session import SessionController
from stack_check.suites.loading import prepare_suite
from stack_check.testing.payloads import health


@dataclass
class RecordingEnvironment:
    """Environment whose resources are already running in WireMock."""

    live: int = 0
    calls: list[str] = field(default_factory=list)

    async def provision(self) -> None:
        self.calls.append("provision")
        self.live += 1

    async def teardown(self) -> None:
        self.calls.append("teardown")
        self.live -= 1

    async def status(self) -> str:
        return "wiremock   running"

    async def container_logs(self, container: str, tail: int = 50) -> str:
        self.calls.append(f"logs:{container}")
        return ""

    async def health_status(self, container: str) -> str:
        return "healthy"


def stub(path: str, status: int = 200) -> None:
    Mappings.create_mapping(
        Mapping(
            request=MappingRequest(method=HttpMethods.GET, url=path),
            response=MappingResponse(
                status=status,
                headers={"Content-Type": "application/json"},
                json_body=health() if status == 200 else health("DOWN"),
            ),
        )
    )


def definition(wiremock_url: str) -> StackDefinition:
    return StackDefinition(
        name="infrastructure",
        compose_files=[Path("docker-compose.yml")],
        dependencies=[
            Dependency(
                name="consul",
                target=HttpProbeTarget(url=f"{wiremock_url}/v1/status/leader"),
                policy=RetryPolicy(max_attempts=2, interval=0.0),
            )
        ],
        suites=[
            SuiteSpec(
                key="infrastructure",
                config={
                    "consul_url": wiremock_url,
                    "opensearch_url": wiremock_url,
                    "minio_url": wiremock_url,
                    "apicurio_url": wiremock_url,
                    "grafana_url": wiremock_url,
                    "request_timeout": 5,
                },
            )
        ],
    )


@asynccontextmanager
async def controller(
    wiremock_url: str, environment: RecordingEnvironment
) -> AsyncGenerator[SessionController, None]:
    stack = definition(wiremock_url)
    async with aiohttp.ClientSession() as session:
        yield SessionController(
            definition=stack,
            tag="latest",
            environment=environment,
            probe=Prober(session=session, health_status=environment.health_status),
            suites=[prepare_suite(spec) for spec in stack.suites],
        )


async def test_infrastructure_session_passes(wiremock_url: str) -> None:
    """Gate, suite and teardown all run against real HTTP."""
    for path in (
        "/v1/status/leader",
        "/_cluster/health",
        "/minio/health/live",
        "/health",
        "/api/health",
    ):
        stub(path)
    environment = RecordingEnvironment()

    async with controller(wiremock_url, environment) as session:
        report = await session.run()

    assert report.outcome == "pass"
    assert [r.name for r in report.results] == [
        "endpoint.consul",
        "endpoint.opensearch",
        "endpoint.minio",
        "endpoint.apicurio",
        "endpoint.grafana",
    ]
    assert environment.calls == ["provision", "teardown"]
    assert environment.live == 0


async def test_unready_dependency_aborts_session(wiremock_url: str) -> None:
    """Consul never answering stops the session before any check."""
    stub("/v1/status/leader", status=500)
    environment = RecordingEnvironment()

    async with controller(wiremock_url, environment) as session:
        report = await session.run()

    assert report.outcome == "fail"
    assert [r.name for r in report.results] == ["ready:consul"]
    assert environment.live == 0


async def test_slow_grafana_only_warns(wiremock_url: str) -> None:
    """A non-critical endpoint failing leaves the session passing."""
    for path in ("/v1/status/leader", "/_cluster/health", "/minio/health/live"):
        stub(path)
    stub("/health")
    stub("/api/health", status=503)
    environment = RecordingEnvironment()

    async with controller(wiremock_url, environment) as session:
        report = await session.run()

    assert report.outcome == "pass"
    assert report.results[-1].outcome == "warn"
