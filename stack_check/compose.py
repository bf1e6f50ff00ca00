"""Docker Compose project lifecycle through the docker CLI."""

import asyncio
import logging
import os
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path

log = logging.getLogger(__name__)


class ProvisioningError(Exception):
    """Raised when the compose project cannot be brought up."""


class TeardownError(Exception):
    """Raised when the compose project cannot be brought down."""


@dataclass(frozen=True, kw_only=True)
class CommandResult:
    """Exit status and decoded output of a finished command."""

    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


async def run_command(
    *args: str, env: Mapping[str, str] | None = None, cwd: Path | None = None
) -> CommandResult:
    """Run a command to completion and capture its output."""
    log.debug("Running: %s", " ".join(args))
    process = await asyncio.create_subprocess_exec(
        *args,
        cwd=cwd,
        env=dict(env) if env is not None else None,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    try:
        stdout, stderr = await process.communicate()
    except asyncio.CancelledError:
        # A cancelled `up` must not keep starting containers after teardown
        if process.returncode is None:
            process.kill()
        await process.wait()
        raise
    return CommandResult(
        returncode=await process.wait(),
        stdout=stdout.decode(errors="replace"),
        stderr=stderr.decode(errors="replace"),
    )


@dataclass(frozen=True, kw_only=True)
class ComposeProject:
    """A set of compose files brought up and down together.

    The image tag is handed to compose through the ``tag_variable``
    environment variable, which the override files interpolate.
    """

    name: str
    compose_files: Sequence[Path]
    tag_variable: str
    tag: str
    docker: str = "docker"
    base_env: Mapping[str, str] = field(default_factory=lambda: dict(os.environ))

    @property
    def env(self) -> Mapping[str, str]:
        return {**self.base_env, self.tag_variable: self.tag}

    def compose_args(self, *args: str) -> Sequence[str]:
        file_args = [arg for path in self.compose_files for arg in ("-f", str(path))]
        return [self.docker, "compose", *file_args, *args]

    def missing_files(self) -> Sequence[Path]:
        return [path for path in self.compose_files if not path.is_file()]

    async def compose(self, *args: str) -> CommandResult:
        return await run_command(*self.compose_args(*args), env=self.env)

    async def provision(self) -> None:
        """Bring the project up from a clean state.

        Raises:
            ProvisioningError: If a compose file is missing or ``up`` fails

        """
        if missing := self.missing_files():
            raise ProvisioningError(
                "Compose file(s) not found: " + ", ".join(str(p) for p in missing)
            )

        try:
            log.info("Removing stale containers for %s...", self.name)
            stale = await self.compose("down", "-v", "--remove-orphans")
            if not stale.ok:
                log.debug("Pre-provision cleanup failed: %s", stale.stderr.strip())

            log.info(
                "Starting %s with %s=%s...", self.name, self.tag_variable, self.tag
            )
            result = await self.compose("up", "-d")
        except OSError as exc:
            raise ProvisioningError(f"Cannot run {self.docker}: {exc}") from exc
        if not result.ok:
            raise ProvisioningError(
                f"docker compose up failed ({result.returncode}): "
                f"{result.stderr.strip()}"
            )

    async def teardown(self) -> None:
        """Remove containers, networks and volumes of the project.

        Raises:
            TeardownError: If ``down`` fails

        """
        log.info("Cleaning up containers for %s...", self.name)
        try:
            result = await self.compose("down", "-v", "--remove-orphans")
        except OSError as exc:
            raise TeardownError(f"Cannot run {self.docker}: {exc}") from exc
        if not result.ok:
            raise TeardownError(
                f"docker compose down failed ({result.returncode}): "
                f"{result.stderr.strip()}"
            )

    async def status(self) -> str:
        """Return the ``docker compose ps`` table."""
        try:
            result = await self.compose("ps")
        except OSError as exc:
            return f"Cannot run {self.docker}: {exc}"
        return result.stdout if result.ok else result.stderr

    async def container_logs(self, container: str, tail: int = 50) -> str:
        """Return the last lines a container wrote to stdout and stderr."""
        try:
            result = await run_command(
                self.docker, "logs", container, "--tail", str(tail), env=self.env
            )
        except OSError as exc:
            return f"Cannot read logs of {container}: {exc}"
        return (result.stdout + result.stderr).strip()

    async def health_status(self, container: str) -> str:
        """Return the Docker health status of a container, or "not_found"."""
        try:
            result = await run_command(
                self.docker,
                "inspect",
                "--format",
                "{{.State.Health.Status}}",
                container,
                env=self.env,
            )
        except OSError as exc:
            log.debug("Cannot inspect %s: %s", container, exc)
            return "not_found"
        if not result.ok:
            return "not_found"
        return result.stdout.strip()
