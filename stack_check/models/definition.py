"""Models for stack definitions: what to bring up, what to wait for, what to run."""

from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Annotated, Any, Literal, Self, TypeAlias

from pydantic import Field, model_validator

from stack_check.models.base import Model


class HttpProbeTarget(Model):
    """Health URL probed with a single bounded GET."""

    kind: Literal["http"] = "http"
    url: str = Field(..., description="Health endpoint URL")
    timeout: float = Field(default=5.0, gt=0, description="Request timeout in seconds")


class ContainerProbeTarget(Model):
    """Container whose Docker health status is inspected."""

    kind: Literal["container"] = "container"
    container: str = Field(..., description="Container name")


ProbeTarget: TypeAlias = Annotated[
    HttpProbeTarget | ContainerProbeTarget, Field(discriminator="kind")
]


class RetryPolicy(Model):
    """Fixed-interval retry budget for a readiness gate."""

    max_attempts: int = Field(default=60, ge=1, description="Probe attempts")
    interval: float = Field(
        default=2.0, ge=0, description="Seconds between two attempts"
    )

    @property
    def worst_case_wait(self) -> float:
        """Upper bound of the time spent sleeping between attempts."""
        return self.max_attempts * self.interval


class Dependency(Model):
    """A service the session waits for before running any step."""

    name: str = Field(..., description="Dependency name")
    target: ProbeTarget = Field(..., description="What to probe")
    policy: RetryPolicy = Field(default_factory=RetryPolicy)
    log_container: str | None = Field(
        default=None, description="Container whose logs are dumped on timeout"
    )
    depends_on: Sequence[str] = Field(
        default_factory=tuple,
        description="Dependencies that must be ready before this one",
    )

    @property
    def diagnostics_container(self) -> str | None:
        """Container to read logs from when the gate times out."""
        if self.log_container is not None:
            return self.log_container
        if isinstance(self.target, ContainerProbeTarget):
            return self.target.container
        return None


class SuiteSpec(Model):
    """Reference to a suite plugin and its configuration."""

    key: str = Field(..., description="Suite key as registered in entry points")
    config: Mapping[str, Any] = Field(default_factory=dict)


class StackDefinition(Model):
    """Complete description of one integration-test session."""

    name: str = Field(..., description="Stack name")
    description: str = Field(default="")
    compose_files: Sequence[Path] = Field(..., min_length=1)
    tag_variable: str = Field(
        default="VERSION", description="Environment variable carrying the tag"
    )
    settle_delay: float = Field(
        default=0.0, ge=0, description="Seconds to wait after bringing the stack up"
    )
    dependencies: Sequence[Dependency] = Field(default_factory=tuple)
    suites: Sequence[SuiteSpec] = Field(default_factory=tuple)

    @model_validator(mode="after")
    def check_dependency_order(self) -> Self:
        """Require unique names and depends_on pointing at earlier entries.

        Gates run in declaration order, so a dependency declared after the one
        it depends on is always gated after it.
        """
        seen: set[str] = set()
        for dependency in self.dependencies:
            if dependency.name in seen:
                raise ValueError(f"Duplicate dependency '{dependency.name}'")
            for required in dependency.depends_on:
                if required not in seen:
                    raise ValueError(
                        f"Dependency '{dependency.name}' depends on '{required}', "
                        "which must be declared before it"
                    )
            seen.add(dependency.name)
        return self
