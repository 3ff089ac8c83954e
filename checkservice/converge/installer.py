"""Idempotent registration of the check service as a systemd watcher."""
from __future__ import annotations

import logging
import shlex
import shutil
import sys
from pathlib import Path
from typing import Optional, Sequence

from ..errors import CheckServiceError, InstallationFailure
from ..models import CheckServiceConfig, InstallStatus
from ..runtime.base import ServiceManager
from ..storage import RunLog

log = logging.getLogger(__name__)


def resolve_exec_start(
    argv0: str,
    python: str = sys.executable,
    args: Sequence[str] = (),
) -> str:
    """Build the ExecStart command line for the program being run.

    ``argv0`` is resolved to an existing absolute path. A Python file is run
    through the interpreter, and ``python -m`` invocations (argv0 pointing at
    a package's ``__main__.py``) are turned back into ``-m <package>``.
    """
    if not argv0:
        raise InstallationFailure("cannot determine the executable path")

    candidate = Path(argv0)
    if not candidate.is_absolute() and candidate.parent == Path("."):
        located = shutil.which(argv0)
        if located is not None:
            candidate = Path(located)
    try:
        resolved = candidate.resolve(strict=True)
    except (OSError, RuntimeError) as exc:
        raise InstallationFailure(f"executable not found: {argv0}") from exc
    if not resolved.is_file():
        raise InstallationFailure(f"executable is not a file: {resolved}")

    if resolved.suffix == ".py":
        interpreter = _resolve_interpreter(python)
        if resolved.name == "__main__.py":
            command = [interpreter, "-m", resolved.parent.name]
        else:
            command = [interpreter, str(resolved)]
    else:
        command = [str(resolved)]
    return shlex.join([*command, *args])


def _resolve_interpreter(python: str) -> str:
    try:
        interpreter = Path(python).resolve(strict=True)
    except (OSError, RuntimeError) as exc:
        raise InstallationFailure(f"python interpreter not found: {python}") from exc
    return str(interpreter)


class SelfInstaller:
    """Ensures exactly one enabled watcher unit points at this program."""

    def __init__(
        self,
        config: CheckServiceConfig,
        manager: ServiceManager,
        argv0: str,
        python: str = sys.executable,
        args: Sequence[str] = (),
        run_log: Optional[RunLog] = None,
    ) -> None:
        self.config = config
        self.manager = manager
        self.argv0 = argv0
        self.python = python
        self.args = list(args)
        self.run_log = run_log or RunLog()

    @property
    def unit_name(self) -> str:
        return self.config.install.unit_name

    def is_installed(self) -> bool:
        return self.manager.unit_exists(self.unit_name) and self.manager.is_enabled(self.unit_name)

    def ensure_installed(self) -> InstallStatus:
        try:
            if self.is_installed():
                log.debug("Watcher %s already installed", self.unit_name)
                return InstallStatus.already_installed
            self._install()
        except (CheckServiceError, OSError) as exc:
            self.run_log.event("install", "failed", str(exc))
            return InstallStatus.install_failed
        return InstallStatus.installed

    def _install(self) -> None:
        self.run_log.event("install", "started", f"configuring {self.unit_name}")

        # Resolve before touching anything so a bad path leaves the host as it was.
        exec_start = resolve_exec_start(self.argv0, python=self.python, args=self.args)
        working_dir = self.config.install.working_dir or self._default_working_dir()

        if self.manager.unit_exists(self.unit_name):
            self.run_log.record(f"Removing existing unit {self.unit_name}")
            self.manager.remove_unit(self.unit_name)

        path = self.manager.register_unit(
            self.unit_name,
            exec_start=exec_start,
            working_dir=working_dir,
            log_file=self.config.log_file,
            description=self.config.install.description,
        )
        self.run_log.record(f"Wrote {path}")

        ok, detail = self.manager.reload_units()
        if not ok:
            raise InstallationFailure(f"daemon-reload failed: {detail}")
        ok, detail = self.manager.enable(self.unit_name)
        if not ok or not self.manager.is_enabled(self.unit_name):
            raise InstallationFailure(f"could not enable {self.unit_name}: {detail}")

        if self.config.install.start_now:
            ok, detail = self.manager.start(self.unit_name)
            if not ok:
                raise InstallationFailure(f"could not start {self.unit_name}: {detail}")

        self.run_log.event("install", "ok", f"{self.unit_name} enabled")

    def _default_working_dir(self) -> Path:
        path = Path(self.argv0)
        try:
            resolved = path.resolve(strict=True)
        except (OSError, RuntimeError):
            return Path("/")
        # "python -m <package>" has to run from the directory holding the package.
        if resolved.name == "__main__.py":
            return resolved.parent.parent
        return resolved.parent
