"""Integration tests for the compose project against a fake docker CLI."""

import asyncio
from collections.abc import Callable
from pathlib import Path

import pytest

from stack_check.compose import (
    ComposeProject,
    ProvisioningError,
    TeardownError,
    run_command,
)

FakeExecutableFn = Callable[[str, str], Path]
InvocationsFn = Callable[[], list[str]]


@pytest.fixture
def compose_files(tmp_path: Path) -> list[Path]:
    """Base file and a release override."""
    base = tmp_path / "docker-compose.yml"
    override = tmp_path / "docker-compose.release.yml"
    base.write_text("services: {}\n")
    override.write_text("services: {}\n")
    return [base, override]


def project(docker: Path, compose_files: list[Path]) -> ComposeProject:
    return ComposeProject(
        name="release",
        compose_files=compose_files,
        tag_variable="VERSION",
        tag="1.2.3",
        docker=str(docker),
        base_env={"PATH": "/usr/bin:/bin"},
    )


async def test_run_command_captures_output(
    fake_executable: FakeExecutableFn,
) -> None:
    """Exit code, stdout and stderr are all captured."""
    tool = fake_executable("tool", 'echo out; echo err >&2; exit 3')

    result = await run_command(str(tool), "a", "b")

    assert result.returncode == 3
    assert not result.ok
    assert result.stdout == "out\n"
    assert result.stderr == "err\n"


async def test_provision_cleans_then_starts_with_tag(
    fake_executable: FakeExecutableFn,
    compose_files: list[Path],
    invocations: InvocationsFn,
    tmp_path: Path,
) -> None:
    """`down` stale state, then `up -d`, with the tag in the environment."""
    tag_file = tmp_path / "tag"
    docker = fake_executable("docker", f'echo "$VERSION" > "{tag_file}"')

    await project(docker, compose_files).provision()

    files = f"-f {compose_files[0]} -f {compose_files[1]}"
    assert invocations() == [
        f"compose {files} down -v --remove-orphans",
        f"compose {files} up -d",
    ]
    assert tag_file.read_text() == "1.2.3\n"


async def test_provision_fails_on_missing_compose_file(
    fake_executable: FakeExecutableFn,
    compose_files: list[Path],
    invocations: InvocationsFn,
    tmp_path: Path,
) -> None:
    """Missing files are reported before docker is invoked."""
    docker = fake_executable("docker", "exit 0")
    missing = tmp_path / "services" / "docker-compose.yml"

    with pytest.raises(ProvisioningError, match="Compose file\\(s\\) not found"):
        await project(docker, [*compose_files, missing]).provision()

    assert invocations() == []


async def test_provision_fails_when_up_fails(
    fake_executable: FakeExecutableFn, compose_files: list[Path]
) -> None:
    """A failed `up` surfaces docker's stderr."""
    docker = fake_executable(
        "docker",
        'if [[ "$*" == *"up -d"* ]]; then echo "pull access denied" >&2; exit 1; fi',
    )

    with pytest.raises(ProvisioningError, match="pull access denied"):
        await project(docker, compose_files).provision()


async def test_provision_tolerates_failed_cleanup(
    fake_executable: FakeExecutableFn, compose_files: list[Path]
) -> None:
    """Nothing to clean up is not an error."""
    docker = fake_executable(
        "docker", 'if [[ "$*" == *"down"* ]]; then exit 1; fi'
    )

    await project(docker, compose_files).provision()


async def test_cancelled_provision_kills_compose_up(
    fake_executable: FakeExecutableFn,
    compose_files: list[Path],
    invocations: InvocationsFn,
    tmp_path: Path,
) -> None:
    """An interrupted `up` is killed instead of outliving teardown."""
    finished = tmp_path / "up-finished"
    docker = fake_executable(
        "docker",
        f'if [[ "$*" == *"up -d"* ]]; then sleep 1; touch "{finished}"; fi',
    )

    task = asyncio.create_task(project(docker, compose_files).provision())
    async with asyncio.timeout(5):
        while not any("up -d" in call for call in invocations()):
            await asyncio.sleep(0.05)
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task
    await asyncio.sleep(1.5)

    assert not finished.exists()


async def test_provision_fails_without_docker(compose_files: list[Path]) -> None:
    """A missing docker CLI is a provisioning error."""
    with pytest.raises(ProvisioningError, match="Cannot run"):
        await project(Path("/nonexistent/docker"), compose_files).provision()


async def test_teardown_removes_volumes(
    fake_executable: FakeExecutableFn,
    compose_files: list[Path],
    invocations: InvocationsFn,
) -> None:
    """Teardown runs `down -v --remove-orphans`."""
    docker = fake_executable("docker", "exit 0")

    await project(docker, compose_files).teardown()

    assert invocations()[-1].endswith("down -v --remove-orphans")


async def test_teardown_raises_on_failure(
    fake_executable: FakeExecutableFn, compose_files: list[Path]
) -> None:
    """A failed `down` is a TeardownError."""
    docker = fake_executable("docker", 'echo "daemon gone" >&2; exit 1')

    with pytest.raises(TeardownError, match="daemon gone"):
        await project(docker, compose_files).teardown()


async def test_status_returns_ps_output(
    fake_executable: FakeExecutableFn, compose_files: list[Path]
) -> None:
    """Status is the `ps` table."""
    docker = fake_executable("docker", 'echo "NAME   STATUS"; echo "consul Up"')

    status = await project(docker, compose_files).status()

    assert status == "NAME   STATUS\nconsul Up\n"


async def test_container_logs_tail(
    fake_executable: FakeExecutableFn,
    compose_files: list[Path],
    invocations: InvocationsFn,
) -> None:
    """Logs are read with --tail and both streams are combined."""
    docker = fake_executable("docker", 'echo "started"; echo "WARN slow" >&2')

    logs = await project(docker, compose_files).container_logs("pipeline-mysql", 20)

    assert invocations() == ["logs pipeline-mysql --tail 20"]
    assert logs == "started\nWARN slow"


@pytest.mark.parametrize(
    ("body", "expected"),
    [
        ('echo "healthy"', "healthy"),
        ('echo "starting"', "starting"),
        ('echo "Error: No such object" >&2; exit 1', "not_found"),
    ],
)
async def test_health_status(
    fake_executable: FakeExecutableFn,
    compose_files: list[Path],
    invocations: InvocationsFn,
    body: str,
    expected: str,
) -> None:
    """Inspect output is the health status; a failed inspect is not_found."""
    docker = fake_executable("docker", body)

    status = await project(docker, compose_files).health_status("pipeline-kafka")

    assert status == expected
    assert invocations() == [
        "inspect --format {{.State.Health.Status}} pipeline-kafka"
    ]


async def test_health_status_without_docker(compose_files: list[Path]) -> None:
    """A missing docker CLI reads as not_found."""
    status = await project(
        Path("/nonexistent/docker"), compose_files
    ).health_status("pipeline-kafka")

    assert status == "not_found"
