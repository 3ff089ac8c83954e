"""Database probe backed by SAP's sapcontrol command."""
from __future__ import annotations

import logging
from typing import List, Tuple

from ..errors import ExternalCommandFailure
from ..models import DatabaseConfig, DatabaseState
from .base import run_command

log = logging.getLogger(__name__)


class SapControl:
    """Runs sapcontrol functions as the database administration user."""

    def __init__(self, config: DatabaseConfig) -> None:
        self.config = config

    def health(self) -> DatabaseState:
        """Healthy when GetProcessList reports the configured status token.

        sapcontrol's exit status encodes the overall process state rather than
        success, so only the report text is inspected.
        """
        try:
            result = run_command(
                self._command("GetProcessList"),
                timeout=self.config.timeout_seconds,
            )
        except ExternalCommandFailure as exc:
            log.warning("Database probe could not run: %s", exc)
            return DatabaseState.unhealthy
        report = result.stdout + result.stderr
        if self.config.healthy_token in report:
            return DatabaseState.healthy
        log.debug("Database not healthy, report: %s", report.strip())
        return DatabaseState.unhealthy

    def start(self) -> Tuple[bool, str]:
        result = run_command(self._command("Start"), timeout=self.config.timeout_seconds)
        return result.ok, result.detail

    def _command(self, function: str) -> List[str]:
        inner = f"{self.config.control_command} -nr {self.config.instance} -function {function}"
        return ["su", "-", self.config.user, "-c", inner]
