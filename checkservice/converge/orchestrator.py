"""Startup state machine bringing the database and its dependents up in order."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional

from ..errors import CheckServiceError, ExternalCommandFailure, TimeoutExceeded
from ..models import (
    CheckServiceConfig,
    DatabaseState,
    OrchestrationAttempt,
    SystemSnapshot,
    WaitOutcome,
)
from ..runtime.base import DatabaseControl, ServiceManager
from ..storage import RunLog
from .inspector import StateInspector
from .retry import RetryPolicy

log = logging.getLogger(__name__)


class OrchestrationState(str, Enum):
    idle = "idle"
    ensuring_database = "ensuring_database"
    waiting_for_database = "waiting_for_database"
    starting_services = "starting_services"
    converged = "converged"
    failed = "failed"

    @property
    def terminal(self) -> bool:
        return self in (OrchestrationState.converged, OrchestrationState.failed)


@dataclass
class OrchestrationResult:
    state: OrchestrationState
    transitions: List[OrchestrationState] = field(default_factory=list)
    error: Optional[CheckServiceError] = None
    snapshot: Optional[SystemSnapshot] = None

    @property
    def ok(self) -> bool:
        return self.state is OrchestrationState.converged


class StartupOrchestrator:
    """Drives the host from whatever state it is in to "everything running".

    Each state has a handler returning the next state. Handlers raise
    ``CheckServiceError`` to abort; ``run`` turns the first one into the
    ``failed`` terminal state. Already-started services are left running.
    """

    def __init__(
        self,
        config: CheckServiceConfig,
        manager: ServiceManager,
        database: DatabaseControl,
        inspector: StateInspector,
        run_log: Optional[RunLog] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.config = config
        self.manager = manager
        self.database = database
        self.inspector = inspector
        self.run_log = run_log or RunLog()
        self.sleep = sleep
        self.retry = RetryPolicy(
            max_retries=config.wait.max_retries,
            interval_seconds=config.wait.interval_seconds,
            sleep=sleep,
        )
        self._database_healthy = False
        self._final_snapshot: Optional[SystemSnapshot] = None
        self._handlers: Dict[OrchestrationState, Callable[[], OrchestrationState]] = {
            OrchestrationState.idle: self._on_idle,
            OrchestrationState.ensuring_database: self._ensure_database,
            OrchestrationState.waiting_for_database: self._wait_for_database,
            OrchestrationState.starting_services: self._start_services,
        }

    def run(self) -> OrchestrationResult:
        self._database_healthy = False
        self._final_snapshot = None
        state = OrchestrationState.idle
        transitions = [state]
        error: Optional[CheckServiceError] = None

        while not state.terminal:
            try:
                state = self.step(state)
            except CheckServiceError as exc:
                error = exc
                state = OrchestrationState.failed
                self.run_log.warning(f"Orchestration failed: {exc}")
            transitions.append(state)

        return OrchestrationResult(
            state=state,
            transitions=transitions,
            error=error,
            snapshot=self._final_snapshot,
        )

    def step(self, state: OrchestrationState) -> OrchestrationState:
        """Execute the handler for ``state`` and return the next state."""
        if state.terminal:
            raise ValueError(f"{state.value} is terminal")
        next_state = self._handlers[state]()
        log.debug("Transition %s -> %s", state.value, next_state.value)
        return next_state

    # ------------------------------------------------------------------ states

    def _on_idle(self) -> OrchestrationState:
        return OrchestrationState.ensuring_database

    def _ensure_database(self) -> OrchestrationState:
        support_unit = self.config.database.support_unit
        if not self.manager.is_active(support_unit):
            self.run_log.event("database.support", "started", f"starting {support_unit}")
            ok, detail = self.manager.start(support_unit)
            if not ok:
                self.run_log.event("database.support", "failed", detail)
                raise ExternalCommandFailure(f"systemctl start {support_unit}", detail)
            self.run_log.event("database.support", "ok", f"{support_unit} started")
            self.sleep(self.config.settle.database_seconds)

        if self._probe() is DatabaseState.healthy:
            self.run_log.record("Database already running")
            return OrchestrationState.starting_services

        self.run_log.event("database.start", "started")
        ok, detail = self.database.start()
        if not ok:
            self.run_log.event("database.start", "failed", detail)
            raise ExternalCommandFailure("database start", detail)
        self.run_log.event("database.start", "ok", detail)
        return OrchestrationState.waiting_for_database

    def _wait_for_database(self) -> OrchestrationState:
        self.run_log.record(
            f"Waiting up to {self.retry.max_wait_seconds:g} seconds for the database to come online"
        )
        outcome = self.retry.wait_until(
            lambda: self._probe() is DatabaseState.healthy,
            on_retry=self._report_attempt,
        )
        if outcome is WaitOutcome.exhausted:
            self.run_log.event(
                "database.wait",
                "failed",
                f"not online after {self.retry.max_retries} retries",
            )
            raise TimeoutExceeded(self.retry.max_retries + 1, self.retry.interval_seconds)
        self.run_log.event("database.wait", "ok", "database online")
        self.sleep(self.config.settle.stabilize_seconds)
        return OrchestrationState.starting_services

    def _start_services(self) -> OrchestrationState:
        if not self._database_healthy:
            raise CheckServiceError("refusing to start services before the database is healthy")

        for name in self.config.services:
            if self.manager.is_active(name):
                continue
            stage = f"start.{name}"
            self.run_log.event(stage, "started")
            ok, detail = self.manager.start(name)
            if not ok:
                self.run_log.event(stage, "failed", detail)
                raise ExternalCommandFailure(f"systemctl start {name}", detail)
            self.run_log.event(stage, "ok")
            self.sleep(self.config.settle.service_seconds)

        snapshot = self.inspector.snapshot()
        self._final_snapshot = snapshot
        if not snapshot.converged:
            pending = ", ".join(snapshot.inactive_services) or "database"
            raise CheckServiceError(f"not running after startup: {pending}")
        return OrchestrationState.converged

    # ------------------------------------------------------------------ helpers

    def _probe(self) -> DatabaseState:
        state = self.database.health()
        if state is DatabaseState.healthy:
            self._database_healthy = True
        return state

    def _report_attempt(self, attempt: OrchestrationAttempt) -> None:
        self.run_log.record(
            f"Attempt {attempt.retry_count} of {attempt.max_retries}. "
            f"Waiting {attempt.interval_seconds:g} seconds..."
        )
