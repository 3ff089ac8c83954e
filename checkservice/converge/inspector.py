"""Read-only inspection of the database and tracked services."""
from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from ..errors import ExternalCommandFailure
from ..models import DatabaseState, ServiceState, SystemSnapshot
from ..runtime.base import DatabaseControl, ServiceManager
from ..storage import RunLog

log = logging.getLogger(__name__)


class StateInspector:
    """Combines the service manager and the database probe into one snapshot.

    Never mutates host state. A unit that cannot be queried is reported as
    inactive and disabled, with a warning, instead of raising.
    """

    def __init__(
        self,
        manager: ServiceManager,
        database: DatabaseControl,
        services: Sequence[str],
        run_log: Optional[RunLog] = None,
    ) -> None:
        self.manager = manager
        self.database = database
        self.services = list(services)
        self.run_log = run_log or RunLog()

    def snapshot(self) -> SystemSnapshot:
        database = self.probe_database()
        services = [self.inspect_service(name) for name in self.services]
        return SystemSnapshot(database=database, services=services)

    def probe_database(self) -> DatabaseState:
        state = self.database.health()
        if state is DatabaseState.healthy:
            self.run_log.record("Database is online")
        else:
            self.run_log.record("Database is not online")
        return state

    def inspect_service(self, name: str) -> ServiceState:
        try:
            enabled = self.manager.is_enabled(name)
            active = self.manager.is_active(name)
        except ExternalCommandFailure as exc:
            self.run_log.warning(f"Could not query service {name}: {exc}")
            return ServiceState(name=name, enabled=False, active=False)
        self.run_log.record(f"Service {name} is {'active' if active else 'not active'}")
        return ServiceState(name=name, enabled=enabled, active=active)

    def summarize(self, snapshot: SystemSnapshot) -> List[str]:
        lines = [f"database: {snapshot.database.value}"]
        for service in snapshot.services:
            lines.append(
                f"{service.name}: {'active' if service.active else 'inactive'}"
                f"{', autostart enabled' if service.enabled else ''}"
            )
        return lines
