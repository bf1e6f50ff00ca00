"""Built-in stack definitions for the pipeline compose layout."""

from collections.abc import Callable, Mapping, Sequence
from pathlib import Path

from stack_check.models.definition import (
    ContainerProbeTarget,
    Dependency,
    HttpProbeTarget,
    RetryPolicy,
    StackDefinition,
    SuiteSpec,
)

PLATFORM_REGISTRATION = "platform-registration-service"
CONNECTOR_ADMIN = "connector-admin"

INFRASTRUCTURE_CONTAINERS = {
    "consul": "pipeline-consul",
    "mysql": "pipeline-mysql",
    "kafka": "pipeline-kafka",
    "apicurio-registry": "pipeline-apicurio-registry",
    "opensearch": "pipeline-opensearch",
    "minio": "pipeline-minio",
}

# Services only need these to start; search and object storage are checked
# by the infrastructure stack itself.
SERVICE_PREREQUISITES = ("consul", "mysql", "kafka", "apicurio-registry")

CONTAINER_POLICY = RetryPolicy(max_attempts=60, interval=5.0)
SERVICE_POLICY = RetryPolicy(max_attempts=60, interval=2.0)
CONNECTOR_ADMIN_POLICY = RetryPolicy(max_attempts=90, interval=2.0)

TAG_VARIABLES = {"release": "VERSION", "snapshot": "GITHUB_SHA"}


class UnknownStackError(Exception):
    """Raised when a stack key is not part of the built-in catalog."""


def infrastructure_dependencies(
    names: Sequence[str] = tuple(INFRASTRUCTURE_CONTAINERS),
) -> Sequence[Dependency]:
    return tuple(
        Dependency(
            name=name,
            target=ContainerProbeTarget(container=INFRASTRUCTURE_CONTAINERS[name]),
            policy=CONTAINER_POLICY,
        )
        for name in names
    )


def service_compose_files(root: Path, service: str, channel: str) -> Sequence[Path]:
    """Compose file and channel override for one service."""
    service_dir = root / "services" / service
    return (
        service_dir / "docker-compose.yml",
        service_dir / f"docker-compose.{channel}.yml",
    )


def infrastructure_stack(root: Path) -> StackDefinition:
    return StackDefinition(
        name="infrastructure",
        description="Shared infrastructure services",
        compose_files=[root / "docker-compose.yml"],
        dependencies=infrastructure_dependencies(),
        suites=[SuiteSpec(key="infrastructure")],
    )


def platform_registration_stack(root: Path, channel: str) -> StackDefinition:
    """Infrastructure plus platform-registration-service on its own port."""
    return StackDefinition(
        name=channel,
        description=f"platform-registration-service {channel} images",
        compose_files=[
            root / "docker-compose.yml",
            *service_compose_files(root, PLATFORM_REGISTRATION, channel),
        ],
        tag_variable=TAG_VARIABLES[channel],
        dependencies=[
            *infrastructure_dependencies(SERVICE_PREREQUISITES),
            Dependency(
                name=PLATFORM_REGISTRATION,
                target=HttpProbeTarget(url="http://localhost:38101/q/health/ready"),
                policy=SERVICE_POLICY,
                log_container=PLATFORM_REGISTRATION,
                depends_on=SERVICE_PREREQUISITES,
            ),
        ],
        suites=[
            SuiteSpec(
                key="platform-registration",
                config={
                    "base_url": "http://localhost:38101",
                    "grpc_endpoint": "localhost:38101",
                },
            )
        ],
    )


def connector_admin_stack(root: Path, channel: str) -> StackDefinition:
    """Infrastructure, platform-registration-service and connector-admin.

    Behind the gateway paths both services are served under a path prefix,
    so their health URLs differ from the standalone registration stack.
    """
    return StackDefinition(
        name=f"connector-admin-{channel}",
        description=f"connector-admin {channel} images",
        compose_files=[
            root / "docker-compose.yml",
            *service_compose_files(root, PLATFORM_REGISTRATION, channel),
            *service_compose_files(root, CONNECTOR_ADMIN, channel),
        ],
        tag_variable=TAG_VARIABLES[channel],
        dependencies=[
            *infrastructure_dependencies(SERVICE_PREREQUISITES),
            Dependency(
                name=PLATFORM_REGISTRATION,
                target=HttpProbeTarget(
                    url="http://localhost:38201/platform-registration/q/health/ready"
                ),
                policy=SERVICE_POLICY,
                log_container=PLATFORM_REGISTRATION,
                depends_on=SERVICE_PREREQUISITES,
            ),
            Dependency(
                name=CONNECTOR_ADMIN,
                target=HttpProbeTarget(
                    url="http://localhost:38107/connector/q/health/ready"
                ),
                policy=CONNECTOR_ADMIN_POLICY,
                log_container=CONNECTOR_ADMIN,
                depends_on=[PLATFORM_REGISTRATION],
            ),
        ],
        suites=[SuiteSpec(key="connector-admin")],
    )


STACKS: Mapping[str, Callable[[Path], StackDefinition]] = {
    "infrastructure": infrastructure_stack,
    "release": lambda root: platform_registration_stack(root, "release"),
    "snapshot": lambda root: platform_registration_stack(root, "snapshot"),
    "connector-admin-release": lambda root: connector_admin_stack(root, "release"),
    "connector-admin-snapshot": lambda root: connector_admin_stack(root, "snapshot"),
}


def build_stack(key: str, root: Path) -> StackDefinition:
    """Build a built-in stack rooted at the compose checkout ``root``."""
    try:
        factory = STACKS[key]
    except KeyError:
        available = ", ".join(sorted(STACKS))
        raise UnknownStackError(
            f"Stack '{key}' not found. Available stacks: {available}"
        ) from None
    return factory(root)
