"""Utilities for invoking systemctl against named units."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Tuple

from ..constants import COMMAND_TIMEOUT, SYSTEMD_UNIT_DIR
from ..rendering import UnitRenderer, UnitSpec
from .base import CommandResult, run_command

log = logging.getLogger(__name__)


class SystemctlManager:
    """Wrapper around systemctl for querying, enabling and starting units."""

    def __init__(
        self,
        unit_dir: Path = SYSTEMD_UNIT_DIR,
        renderer: Optional[UnitRenderer] = None,
        timeout: float = COMMAND_TIMEOUT,
    ) -> None:
        self.unit_dir = unit_dir
        self.renderer = renderer or UnitRenderer()
        self.timeout = timeout

    # Queries -------------------------------------------------------------

    def is_enabled(self, name: str) -> bool:
        return self._run("is-enabled", name).ok

    def is_active(self, name: str) -> bool:
        return self._run("is-active", name).ok

    def unit_exists(self, name: str) -> bool:
        return self.unit_path(name).exists()

    def unit_path(self, name: str) -> Path:
        return self.unit_dir / name

    # Mutations -----------------------------------------------------------

    def enable(self, name: str) -> Tuple[bool, str]:
        return self._outcome("enable", name)

    def disable(self, name: str) -> Tuple[bool, str]:
        return self._outcome("disable", name)

    def start(self, name: str) -> Tuple[bool, str]:
        return self._outcome("start", name)

    def stop(self, name: str) -> Tuple[bool, str]:
        return self._outcome("stop", name)

    def reload_units(self) -> Tuple[bool, str]:
        return self._outcome("daemon-reload")

    def register_unit(
        self,
        name: str,
        exec_start: str,
        working_dir: Path,
        log_file: Path,
        description: str,
    ) -> Path:
        """Write a unit file for ``name``; raises OSError if it cannot be written."""
        spec = UnitSpec(
            description=description,
            exec_start=exec_start,
            working_dir=working_dir,
            log_file=log_file,
        )
        path = self.renderer.write(spec, self.unit_path(name))
        log.debug("Wrote unit file %s", path)
        return path

    def remove_unit(self, name: str) -> None:
        """Stop, disable and delete an existing unit. Stop/disable errors are ignored."""
        for action in ("stop", "disable"):
            ok, detail = self._outcome(action, name)
            if not ok:
                log.debug("systemctl %s %s: %s", action, name, detail)
        self.unit_path(name).unlink(missing_ok=True)

    # ------------------------------------------------------------------ helpers

    def _outcome(self, *args: str) -> Tuple[bool, str]:
        result = self._run(*args)
        return result.ok, result.detail

    def _run(self, *args: str) -> CommandResult:
        command = ["systemctl", *args]
        result = run_command(command, timeout=self.timeout)
        log.debug("%s -> %s", " ".join(command), result.returncode)
        return result
