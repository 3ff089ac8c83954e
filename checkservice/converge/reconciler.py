"""Disable autostart on units that are brought up by the orchestrator."""
from __future__ import annotations

from typing import Iterable, Optional

from ..errors import ExternalCommandFailure
from ..models import ServiceState
from ..runtime.base import ServiceManager
from ..storage import RunLog


class AutostartReconciler:
    """Turns off systemd autostart so units only come up in dependency order.

    Never enables anything. A failed disable is a warning and the remaining
    services are still handled.
    """

    def __init__(self, manager: ServiceManager, run_log: Optional[RunLog] = None) -> None:
        self.manager = manager
        self.run_log = run_log or RunLog()

    def reconcile(self, services: Iterable[ServiceState]) -> bool:
        changed = False
        for service in services:
            if not service.enabled:
                continue
            stage = f"autostart.{service.name}"
            self.run_log.event(stage, "started", "disabling autostart")
            try:
                ok, detail = self.manager.disable(service.name)
            except ExternalCommandFailure as exc:
                ok, detail = False, str(exc)
            if ok:
                changed = True
                self.run_log.event(stage, "ok", "autostart disabled")
            else:
                self.run_log.event(stage, "failed", detail)
        return changed
