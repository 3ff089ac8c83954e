"""Converge runner tying installation, inspection, reconciliation and startup together."""
from __future__ import annotations

import sys
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

from ..models import CheckServiceConfig, InstallStatus, StageEvent
from ..runtime.base import DatabaseControl, ServiceManager
from ..runtime.sapcontrol import SapControl
from ..runtime.systemd import SystemctlManager
from ..storage import RunLog
from .inspector import StateInspector
from .installer import SelfInstaller
from .orchestrator import OrchestrationState, StartupOrchestrator
from .reconciler import AutostartReconciler


@dataclass
class RunOutcome:
    """What a run reports back: exit status, one status line, the event trail."""

    ok: bool
    message: str
    state: str
    events: List[StageEvent] = field(default_factory=list)

    @property
    def exit_code(self) -> int:
        return 0 if self.ok else 1


SETUP_MESSAGES = {
    InstallStatus.already_installed: "Already configured",
    InstallStatus.installed: "Configured OK",
    InstallStatus.install_failed: "ERROR: setup failed",
}


@dataclass
class ConvergeRunner:
    config: CheckServiceConfig
    inspector: StateInspector
    reconciler: AutostartReconciler
    orchestrator: StartupOrchestrator
    installer: Optional[SelfInstaller]
    run_log: RunLog

    def setup(self) -> RunOutcome:
        """Install the watcher unit and stop there."""
        if self.installer is None:
            return RunOutcome(ok=True, message="Self-install disabled", state="skipped")
        status = self.installer.ensure_installed()
        return self._setup_outcome(status)

    def run(self) -> RunOutcome:
        self.run_log.record("Starting check service run")

        if self.installer is not None:
            status = self.installer.ensure_installed()
            if status is InstallStatus.install_failed:
                return self._setup_outcome(status)
            if status is InstallStatus.installed and self.config.install.start_now:
                # The freshly started watcher performs the convergence itself.
                return self._setup_outcome(status)

        snapshot = self.inspector.snapshot()
        if snapshot.converged:
            self.run_log.record("All services are running")
            return self._outcome(True, "Services and database OK", "converged")

        if self.reconciler.reconcile(snapshot.services):
            self.run_log.record("Service autostart configuration updated")

        result = self.orchestrator.run()
        if result.ok:
            self.run_log.record("All services started successfully")
            return self._outcome(True, "Converged", result.state.value)

        message = f"Failed: {result.error}" if result.error is not None else "Failed"
        return self._outcome(False, message, OrchestrationState.failed.value)

    # ------------------------------------------------------------------ helpers

    def _setup_outcome(self, status: InstallStatus) -> RunOutcome:
        ok = status is not InstallStatus.install_failed
        return self._outcome(ok, SETUP_MESSAGES[status], status.value)

    def _outcome(self, ok: bool, message: str, state: str) -> RunOutcome:
        self.run_log.record(message)
        return RunOutcome(ok=ok, message=message, state=state, events=list(self.run_log.events))


def build_runner(
    config: CheckServiceConfig,
    manager: Optional[ServiceManager] = None,
    database: Optional[DatabaseControl] = None,
    run_log: Optional[RunLog] = None,
    argv0: Optional[str] = None,
    exec_args: Sequence[str] = (),
    sleep: Callable[[float], None] = time.sleep,
) -> ConvergeRunner:
    """Wire the components for ``config``, defaulting to the real systemd and sapcontrol."""
    run_log = run_log or RunLog(config.log_file)
    manager = manager or SystemctlManager(unit_dir=config.install.unit_dir)
    database = database or SapControl(config.database)
    inspector = StateInspector(manager, database, config.services, run_log=run_log)
    installer = None
    if config.install.enabled:
        installer = SelfInstaller(
            config,
            manager,
            argv0=argv0 if argv0 is not None else sys.argv[0],
            args=exec_args,
            run_log=run_log,
        )
    return ConvergeRunner(
        config=config,
        inspector=inspector,
        reconciler=AutostartReconciler(manager, run_log=run_log),
        orchestrator=StartupOrchestrator(
            config,
            manager,
            database,
            inspector,
            run_log=run_log,
            sleep=sleep,
        ),
        installer=installer,
        run_log=run_log,
    )
