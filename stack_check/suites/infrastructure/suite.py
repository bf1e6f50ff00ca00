"""Endpoint checks against the shared infrastructure services."""

from collections.abc import AsyncGenerator, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass, field

import aiohttp

from stack_check.steps import Step
from stack_check.suites.base import Suite
from stack_check.suites.checks import http_ok
from stack_check.suites.infrastructure.config import InfrastructureConfig


@dataclass(frozen=True, kw_only=True)
class InfrastructureSuite(Suite):
    """Checks that every infrastructure API answers from the host.

    Grafana LGTM takes the longest to start and is not needed by the
    services, so it only warns.
    """

    config: InfrastructureConfig
    session: aiohttp.ClientSession = field(repr=False)

    @classmethod
    @asynccontextmanager
    async def from_config(
        cls, config: InfrastructureConfig
    ) -> AsyncGenerator["InfrastructureSuite", None]:
        """Create suite with managed session lifecycle."""
        async with aiohttp.ClientSession() as session:
            yield cls(config=config, session=session)

    def steps(self) -> Sequence[Step]:
        config = self.config
        endpoints = [
            ("consul", [f"{config.consul_url}/v1/status/leader"], "Consul API", True),
            (
                "opensearch",
                [f"{config.opensearch_url}/_cluster/health"],
                "OpenSearch API",
                True,
            ),
            ("minio", [f"{config.minio_url}/minio/health/live"], "MinIO API", True),
            (
                "apicurio",
                [f"{config.apicurio_url}/health", f"{config.apicurio_url}/q/health"],
                "Apicurio Registry API",
                True,
            ),
            ("grafana", [f"{config.grafana_url}/api/health"], "Grafana LGTM", False),
        ]
        return [
            Step(
                name=f"endpoint.{key}",
                critical=critical,
                check=http_ok(
                    self.session,
                    urls,
                    config.request_timeout,
                    ok=f"{label} is responding",
                    failed=(
                        f"{label} is not responding"
                        if critical
                        else f"{label} may still be starting up"
                    ),
                ),
            )
            for key, urls, label, critical in endpoints
        ]
