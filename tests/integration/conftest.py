"""Fixtures for integration tests."""

import stat
from collections.abc import Callable
from pathlib import Path
from typing import TypeAlias

import pytest

FakeExecutableFn: TypeAlias = Callable[[str, str], Path]
InvocationsFn: TypeAlias = Callable[[], list[str]]


@pytest.fixture
def calls_log(tmp_path: Path) -> Path:
    """File the fake executables append their invocations to."""
    return tmp_path / "calls.log"


@pytest.fixture
def fake_executable(tmp_path: Path, calls_log: Path) -> FakeExecutableFn:
    """Return a function to create fake command-line tools.

    Every fake records its arguments, one invocation per line, before running
    the given bash body.
    """
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()

    def _create(name: str, body: str) -> Path:
        path = bin_dir / name
        path.write_text(
            f'#!/usr/bin/env bash\necho "$*" >> "{calls_log}"\n{body}\n'
        )
        path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return path

    return _create


@pytest.fixture
def invocations(calls_log: Path) -> InvocationsFn:
    """Return a function listing recorded invocations, oldest first."""

    def _read() -> list[str]:
        if not calls_log.exists():
            return []
        return calls_log.read_text().splitlines()

    return _read
