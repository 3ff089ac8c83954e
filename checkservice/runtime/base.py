"""Capability protocols for the host init system and the database."""
from __future__ import annotations

import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol, Sequence, Tuple

from ..errors import ExternalCommandFailure
from ..models import DatabaseState


@dataclass
class CommandResult:
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def detail(self) -> str:
        detail = self.stdout.strip() if self.ok else (self.stderr.strip() or self.stdout.strip())
        if not detail:
            detail = "ok" if self.ok else f"exit status {self.returncode}"
        return detail


def run_command(command: Sequence[str], timeout: Optional[float] = None) -> CommandResult:
    """Run a command to completion, raising only when it could not run at all."""
    try:
        process = subprocess.run(
            list(command),
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except (OSError, subprocess.TimeoutExpired) as exc:
        raise ExternalCommandFailure(" ".join(command), str(exc)) from exc
    return CommandResult(process.returncode, process.stdout or "", process.stderr or "")


class ServiceManager(Protocol):
    """Narrow view of systemd used by the convergence engine."""

    def is_enabled(self, name: str) -> bool:
        ...

    def is_active(self, name: str) -> bool:
        ...

    def enable(self, name: str) -> Tuple[bool, str]:
        ...

    def disable(self, name: str) -> Tuple[bool, str]:
        ...

    def start(self, name: str) -> Tuple[bool, str]:
        ...

    def stop(self, name: str) -> Tuple[bool, str]:
        ...

    def unit_exists(self, name: str) -> bool:
        ...

    def register_unit(
        self,
        name: str,
        exec_start: str,
        working_dir: Path,
        log_file: Path,
        description: str,
    ) -> Path:
        ...

    def remove_unit(self, name: str) -> None:
        ...

    def reload_units(self) -> Tuple[bool, str]:
        ...


class DatabaseControl(Protocol):
    """Narrow view of the database's native control interface."""

    def health(self) -> DatabaseState:
        ...

    def start(self) -> Tuple[bool, str]:
        ...
