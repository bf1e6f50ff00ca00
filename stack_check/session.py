"""Session controller: provision, gate readiness, run suites, report, tear down."""

import asyncio
import logging
import signal
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Protocol

from stack_check.compose import ProvisioningError
from stack_check.gate import ReadinessTimeoutError, await_ready
from stack_check.models.definition import Dependency, ProbeTarget, StackDefinition
from stack_check.models.result import SessionOutcome, SessionReport, StepResult
from stack_check.steps import run_steps
from stack_check.suites.loading import PreparedSuite

log = logging.getLogger(__name__)

DIAGNOSTIC_LOG_LINES = 50


class Phase(StrEnum):
    """Phases of a session, in the order they are entered."""

    IDLE = "idle"
    PROVISIONING = "provisioning"
    GATING_READINESS = "gating_readiness"
    RUNNING_STEPS = "running_steps"
    REPORTING = "reporting"
    TERMINATED = "terminated"


class Environment(Protocol):
    """External resources a session brings up and must always release."""

    async def provision(self) -> None: ...

    async def teardown(self) -> None: ...

    async def status(self) -> str: ...

    async def container_logs(self, container: str, tail: int = 50) -> str: ...


@dataclass
class SessionState:
    """Mutable state of one session."""

    phase: Phase = Phase.IDLE
    provisioned: set[str] = field(default_factory=set)
    results: list[StepResult] = field(default_factory=list)

    def enter(self, phase: Phase) -> None:
        log.debug("Session phase: %s -> %s", self.phase, phase)
        self.phase = phase

    def fail(self, name: str, detail: str) -> None:
        """Record a synthetic critical failure."""
        self.results.append(
            StepResult(name=name, outcome="fail", detail=detail, critical=True)
        )

    @property
    def outcome(self) -> SessionOutcome:
        return "fail" if any(r.outcome == "fail" for r in self.results) else "pass"


@dataclass
class Teardown:
    """Releases resources at most once, never raising."""

    release: Callable[[], Awaitable[None]]
    fired: bool = False

    async def __call__(self) -> None:
        if self.fired:
            return
        self.fired = True
        try:
            await self.release()
        except Exception as exc:
            log.error("Teardown failed: %s", exc, exc_info=exc)


@dataclass(frozen=True, kw_only=True)
class SessionController:
    """Runs one stack definition end to end.

    Every exit path, including interruption by one of ``interrupt_signals``,
    goes through the same teardown, which runs exactly once.
    """

    definition: StackDefinition
    tag: str
    environment: Environment
    probe: Callable[[ProbeTarget], Awaitable[bool]]
    suites: Sequence[PreparedSuite] = ()
    interrupt_signals: Sequence[signal.Signals] = ()
    sleep: Callable[[float], Awaitable[None]] = field(
        default=asyncio.sleep, repr=False
    )

    async def run(self) -> SessionReport:
        """Run the session and return its report."""
        state = SessionState()
        teardown = Teardown(release=lambda: self._release(state))
        restore_signals = self._install_signal_handlers(state)

        log.info("Starting %s session (tag=%s)", self.definition.name, self.tag)
        try:
            if await self._provision(state) and await self._gate(state):
                await self._run_suites(state)
            await self._report(state)
        except asyncio.CancelledError:
            if (task := asyncio.current_task()) is not None:
                task.uncancel()
            log.error("Session interrupted during %s", state.phase)
            state.fail("interrupted", f"Session interrupted during {state.phase}")
        except Exception as exc:
            log.error("Session failed during %s: %s", state.phase, exc, exc_info=exc)
            state.fail(state.phase.value, f"{type(exc).__name__}: {exc}")
        finally:
            state.enter(Phase.TERMINATED)
            await teardown()
            restore_signals()

        log.info("Session %s finished: %s", self.definition.name, state.outcome)
        return SessionReport(
            stack=self.definition.name,
            tag=self.tag,
            outcome=state.outcome,
            results=list(state.results),
        )

    async def _provision(self, state: SessionState) -> bool:
        state.enter(Phase.PROVISIONING)
        state.provisioned.add(self.definition.name)
        try:
            await self.environment.provision()
        except ProvisioningError as exc:
            log.error("Provisioning failed: %s", exc)
            state.fail("provision", str(exc))
            return False
        except Exception as exc:
            log.error("Provisioning crashed: %s", exc, exc_info=exc)
            state.fail("provision", f"{type(exc).__name__}: {exc}")
            return False

        if self.definition.settle_delay:
            log.info(
                "Giving services %.0fs to settle...", self.definition.settle_delay
            )
            await self.sleep(self.definition.settle_delay)
        return True

    async def _gate(self, state: SessionState) -> bool:
        """Gate each dependency in declared order; stop at the first timeout."""
        state.enter(Phase.GATING_READINESS)
        for dependency in self.definition.dependencies:
            try:
                await await_ready(
                    dependency.target,
                    dependency.policy,
                    probe=self.probe,
                    name=dependency.name,
                    on_failure=self._diagnostics(dependency),
                    sleep=self.sleep,
                )
            except ReadinessTimeoutError as exc:
                state.fail(f"ready:{dependency.name}", str(exc))
                return False
            except Exception as exc:
                log.error("Gate for %s crashed: %s", dependency.name, exc, exc_info=exc)
                state.fail(f"ready:{dependency.name}", f"{type(exc).__name__}: {exc}")
                return False
        return True

    def _diagnostics(
        self, dependency: Dependency
    ) -> Callable[[], Awaitable[str]] | None:
        if (container := dependency.diagnostics_container) is None:
            return None

        async def collect() -> str:
            return await self.environment.container_logs(
                container, tail=DIAGNOSTIC_LOG_LINES
            )

        return collect

    async def _run_suites(self, state: SessionState) -> None:
        state.enter(Phase.RUNNING_STEPS)
        for suite in self.suites:
            log.info("Running %s checks...", suite.key)
            try:
                async with suite.open() as opened:
                    state.results.extend(await run_steps(opened.steps()))
            except Exception as exc:
                log.error("Suite %s failed: %s", suite.key, exc, exc_info=exc)
                state.fail(f"suite:{suite.key}", f"{type(exc).__name__}: {exc}")

    async def _report(self, state: SessionState) -> None:
        state.enter(Phase.REPORTING)
        try:
            status = await self.environment.status()
        except Exception as exc:
            log.warning("Cannot read stack status: %s", exc)
            return
        log.info("Stack status:\n%s", status.rstrip())

    async def _release(self, state: SessionState) -> None:
        while state.provisioned:
            handle = state.provisioned.pop()
            log.info("Releasing %s...", handle)
            await self.environment.teardown()

    def _install_signal_handlers(self, state: SessionState) -> Callable[[], None]:
        task = asyncio.current_task()
        if task is None or not self.interrupt_signals:
            return lambda: None

        loop = asyncio.get_running_loop()

        def interrupt(sig: signal.Signals) -> None:
            if state.phase is Phase.TERMINATED:
                log.warning("Received %s, teardown already in progress", sig.name)
                return
            log.warning("Received %s, tearing down...", sig.name)
            task.cancel()

        for sig in self.interrupt_signals:
            loop.add_signal_handler(sig, interrupt, sig)

        def restore() -> None:
            for sig in self.interrupt_signals:
                loop.remove_signal_handler(sig)

        return restore
