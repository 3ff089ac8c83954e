"""Helpers for reading the check service configuration and writing its log."""
from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional

import yaml

from .constants import CONFIG_FILENAME
from .models import CheckServiceConfig, StageEvent

log = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


class ConfigRepository:
    """File-backed persistence for the check service configuration."""

    def __init__(self, root: Path) -> None:
        self.root = root
        self.config_path = root / CONFIG_FILENAME

    @classmethod
    def for_file(cls, path: Path) -> "ConfigRepository":
        repo = cls(path.parent)
        repo.config_path = path
        return repo

    def load_config(self) -> CheckServiceConfig:
        if not self.config_path.exists():
            raise FileNotFoundError(f"Missing check service configuration at {self.config_path}")
        data = yaml.safe_load(self.config_path.read_text()) or {}
        return CheckServiceConfig.model_validate(data)

    def load_or_default(self) -> CheckServiceConfig:
        if not self.config_path.exists():
            log.debug("No configuration at %s, using defaults", self.config_path)
            return CheckServiceConfig()
        return self.load_config()

    def save_config(self, config: CheckServiceConfig) -> None:
        payload = config.model_dump(mode="json")
        self.root.mkdir(parents=True, exist_ok=True)
        with self.config_path.open("w") as handle:
            yaml.safe_dump(payload, handle, sort_keys=False)


class RunLog:
    """Append-only, timestamped trail of what a run did.

    Every message is mirrored to the module logger. Stage events are kept in
    memory as well so callers can return them.
    """

    def __init__(
        self,
        path: Optional[Path] = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.path = path
        self.clock = clock
        self.events: List[StageEvent] = []

    def record(self, message: str) -> None:
        log.info(message)
        self._append(message)

    def warning(self, message: str) -> None:
        log.warning(message)
        self._append(f"WARNING: {message}")

    def event(self, stage: str, status: str, detail: Optional[str] = None) -> StageEvent:
        event = StageEvent(stage=stage, status=status, detail=detail)
        self.events.append(event)
        message = f"{stage} {status}"
        if detail:
            message += f": {detail}"
        if status == "failed":
            self.warning(message)
        else:
            self.record(message)
        return event

    def _append(self, message: str) -> None:
        if self.path is None:
            return
        line = f"{self.clock().strftime(TIMESTAMP_FORMAT)} - {message}\n"
        try:
            if not self.path.exists():
                self.path.parent.mkdir(parents=True, exist_ok=True)
                self.path.touch(mode=0o644)
            with self.path.open("a") as handle:
                handle.write(line)
        except OSError as exc:
            # The trail is best effort; losing it must not abort a run.
            log.warning("Could not write to log file %s: %s", self.path, exc)
