"""CLI entry point for stack integration tests."""

import argparse
import asyncio
import json
import logging
import os
import signal
import sys
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

import aiohttp

from stack_check.compose import ComposeProject
from stack_check.definition_loader import load_stack_definition
from stack_check.models.definition import StackDefinition
from stack_check.models.result import SessionReport
from stack_check.probe import Prober
from stack_check.session import SessionController
from stack_check.stacks import STACKS, UnknownStackError, build_stack
from stack_check.suites.loading import PreparedSuite, SuiteNotFoundError, prepare_suite

STATUS_SYMBOLS = {
    "pass": "✓",
    "fail": "✗",
    "warn": "⚠",
}

LOG_LEVEL_VARIABLE = "STACK_CHECK_LOG_LEVEL"
ROOT_VARIABLE = "STACK_CHECK_ROOT"
DEFAULT_TAG = "latest"


def log_results_summary(log: logging.Logger, report: SessionReport) -> None:
    """Log a formatted summary of step results."""
    log.info("=" * 80)
    log.info("Test Results Summary: %s (tag=%s)", report.stack, report.tag)
    log.info("=" * 80)

    for result in report.results:
        symbol = STATUS_SYMBOLS.get(result.outcome, "?")
        log.info(
            "%s %s: %s (%.2fs)", symbol, result.name, result.outcome, result.duration
        )
        if result.detail:
            log.info("  Detail: %s", result.detail)

    log.info("=" * 80)
    log.info("Overall: %s", report.outcome.upper())


def resolve_tag(
    argument: str | None,
    environ: Mapping[str, str],
    variable: str,
    default: str = DEFAULT_TAG,
) -> str:
    """Pick the image tag: explicit argument, then ``variable``, then default."""
    if argument:
        return argument
    return environ.get(variable) or default


def format_output(report: SessionReport) -> dict[str, Any]:
    """Format a session report for JSON output."""
    results = [
        {
            "name": result.name,
            "outcome": result.outcome,
            "critical": result.critical,
            "duration": result.duration,
            "detail": result.detail,
        }
        for result in report.results
    ]

    return {
        "stack": report.stack,
        "tag": report.tag,
        "outcome": report.outcome,
        "total": len(results),
        "passed": sum(1 for r in results if r["outcome"] == "pass"),
        "failed": sum(1 for r in results if r["outcome"] == "fail"),
        "warnings": sum(1 for r in results if r["outcome"] == "warn"),
        "results": results,
    }


async def load_definition(
    stack: str | None, root: Path, definition_path: Path | None
) -> StackDefinition:
    """Load a stack from a definition file or the built-in catalog."""
    if definition_path is not None:
        return await load_stack_definition(definition_path)
    if stack is None:
        raise ValueError("Either a stack name or --definition is required")
    return build_stack(stack, root)


async def run(
    definition: StackDefinition,
    tag: str,
    docker: str = "docker",
) -> int:
    """Run one stack session and return exit code."""
    log = logging.getLogger("stack_check")

    try:
        suites: Sequence[PreparedSuite] = [
            prepare_suite(spec) for spec in definition.suites
        ]
    except (SuiteNotFoundError, ValueError) as e:
        log.error("Cannot prepare suites for %s: %s", definition.name, e)
        return 1

    project = ComposeProject(
        name=definition.name,
        compose_files=definition.compose_files,
        tag_variable=definition.tag_variable,
        tag=tag,
        docker=docker,
    )

    async with aiohttp.ClientSession() as session:
        controller = SessionController(
            definition=definition,
            tag=tag,
            environment=project,
            probe=Prober(session=session, health_status=project.health_status),
            suites=suites,
            interrupt_signals=(signal.SIGINT, signal.SIGTERM),
        )
        report = await controller.run()

    log_results_summary(log, report)
    print(json.dumps(format_output(report), indent=2))

    return 0 if report.outcome == "pass" else 1


async def run_stack(
    stack: str | None,
    tag_argument: str | None,
    root: Path,
    definition_path: Path | None = None,
    docker: str = "docker",
    environ: Mapping[str, str] | None = None,
) -> int:
    """Resolve the stack and its tag, then run it."""
    log = logging.getLogger("stack_check")
    environ = os.environ if environ is None else environ

    try:
        definition = await load_definition(stack, root, definition_path)
    except (UnknownStackError, FileNotFoundError, ValueError) as e:
        log.error("%s", e)
        return 1

    tag = resolve_tag(tag_argument, environ, definition.tag_variable)
    log.info(
        "Running stack %s with %s=%s", definition.name, definition.tag_variable, tag
    )
    return await run(definition, tag, docker=docker)


def configure_logging(environ: Mapping[str, str]) -> None:
    logging.basicConfig(
        level=environ.get(LOG_LEVEL_VARIABLE, "INFO").upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


def add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "tag",
        nargs="?",
        default=None,
        help="Image tag to test (default: the stack's tag variable, then latest)",
    )
    parser.add_argument(
        "--root",
        type=Path,
        default=Path(os.environ.get(ROOT_VARIABLE, ".")),
        help=f"Directory holding the compose files (default: ${ROOT_VARIABLE} or .)",
    )
    parser.add_argument(
        "--docker",
        default="docker",
        help="Docker CLI executable",
    )


def main(argv: Sequence[str] | None = None) -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Bring up a compose stack, wait for it and run its checks"
    )
    parser.add_argument(
        "stack",
        nargs="?",
        help=f"Built-in stack to test ({', '.join(sorted(STACKS))})",
    )
    add_common_arguments(parser)
    parser.add_argument(
        "--definition",
        type=Path,
        help="YAML stack definition to use instead of a built-in stack",
    )

    args = parser.parse_args(argv)
    if args.definition is not None:
        # With a definition file the only positional is the tag
        if args.tag is not None:
            parser.error("a stack name cannot be combined with --definition")
        args.stack, args.tag = None, args.stack
    elif args.stack is None:
        parser.error("a stack name or --definition is required")
    elif args.stack not in STACKS:
        parser.error(f"unknown stack {args.stack!r}, choose from {sorted(STACKS)}")

    configure_logging(os.environ)
    exit_code = asyncio.run(
        run_stack(
            stack=args.stack,
            tag_argument=args.tag,
            root=args.root,
            definition_path=args.definition,
            docker=args.docker,
        )
    )
    sys.exit(exit_code)


def stack_main(stack: str, argv: Sequence[str] | None = None) -> None:
    """Entry point for a console script bound to one built-in stack."""
    parser = argparse.ArgumentParser(
        description=f"Bring up the {stack} stack, wait for it and run its checks"
    )
    add_common_arguments(parser)
    args = parser.parse_args(argv)

    configure_logging(os.environ)
    exit_code = asyncio.run(
        run_stack(
            stack=stack,
            tag_argument=args.tag,
            root=args.root,
            docker=args.docker,
        )
    )
    sys.exit(exit_code)


def infrastructure_main() -> None:
    stack_main("infrastructure")


def release_main() -> None:
    stack_main("release")


def snapshot_main() -> None:
    stack_main("snapshot")


def connector_admin_release_main() -> None:
    stack_main("connector-admin-release")


def connector_admin_snapshot_main() -> None:
    stack_main("connector-admin-snapshot")


if __name__ == "__main__":  # pragma: no cover
    main()
