"""Pytest configuration, shared fixtures and deterministic fakes."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Tuple

import pytest

# Add project root to path
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from checkservice.converge.inspector import StateInspector
from checkservice.converge.orchestrator import StartupOrchestrator
from checkservice.converge.runner import ConvergeRunner, build_runner
from checkservice.errors import ExternalCommandFailure
from checkservice.models import CheckServiceConfig, DatabaseState
from checkservice.storage import RunLog

MUTATING_CALLS = {"start", "stop", "enable", "disable", "register", "remove", "reload", "db_start"}

Call = Tuple[Any, ...]


class FakeServiceManager:
    """In-memory stand-in for systemctl that records every call."""

    def __init__(self, calls: List[Call], units: Optional[Dict[str, Dict[str, bool]]] = None) -> None:
        self.calls = calls
        self.units: Dict[str, Dict[str, bool]] = units or {}
        self.unit_files: Dict[str, str] = {}
        self.working_dirs: Dict[str, Path] = {}
        self.fail_start: Set[str] = set()
        self.fail_disable: Set[str] = set()
        self.unqueryable: Set[str] = set()
        self.fail_reload = False
        self.start_activates = True

    def _unit(self, name: str) -> Dict[str, bool]:
        return self.units.setdefault(name, {"enabled": False, "active": False})

    def is_enabled(self, name: str) -> bool:
        self.calls.append(("is_enabled", name))
        if name in self.unqueryable:
            raise ExternalCommandFailure(f"systemctl is-enabled {name}", "timed out")
        return self._unit(name)["enabled"]

    def is_active(self, name: str) -> bool:
        self.calls.append(("is_active", name))
        if name in self.unqueryable:
            raise ExternalCommandFailure(f"systemctl is-active {name}", "timed out")
        return self._unit(name)["active"]

    def enable(self, name: str) -> Tuple[bool, str]:
        self.calls.append(("enable", name))
        self._unit(name)["enabled"] = True
        return True, "ok"

    def disable(self, name: str) -> Tuple[bool, str]:
        self.calls.append(("disable", name))
        if name in self.fail_disable:
            return False, f"Failed to disable unit {name}"
        self._unit(name)["enabled"] = False
        return True, "ok"

    def start(self, name: str) -> Tuple[bool, str]:
        self.calls.append(("start", name))
        if name in self.fail_start:
            return False, f"Job for {name} failed"
        if self.start_activates:
            self._unit(name)["active"] = True
        return True, "ok"

    def stop(self, name: str) -> Tuple[bool, str]:
        self.calls.append(("stop", name))
        self._unit(name)["active"] = False
        return True, "ok"

    def unit_exists(self, name: str) -> bool:
        return name in self.unit_files

    def register_unit(
        self,
        name: str,
        exec_start: str,
        working_dir: Path,
        log_file: Path,
        description: str,
    ) -> Path:
        self.calls.append(("register", name))
        self.unit_files[name] = exec_start
        self.working_dirs[name] = working_dir
        return Path("/etc/systemd/system") / name

    def remove_unit(self, name: str) -> None:
        self.calls.append(("remove", name))
        self.unit_files.pop(name, None)
        self._unit(name)["enabled"] = False

    def reload_units(self) -> Tuple[bool, str]:
        self.calls.append(("reload",))
        if self.fail_reload:
            return False, "daemon-reload failed"
        return True, "ok"


class FakeDatabase:
    """Database probe that turns healthy a fixed number of polls after start."""

    def __init__(
        self,
        calls: List[Call],
        healthy: bool = False,
        healthy_after_start: Optional[int] = None,
    ) -> None:
        self.calls = calls
        self.healthy = healthy
        self.healthy_after_start = healthy_after_start
        self.start_ok = True
        self.started = False
        self.polls_since_start = 0

    def health(self) -> DatabaseState:
        if not self.healthy and self.started and self.healthy_after_start is not None:
            self.polls_since_start += 1
            if self.polls_since_start >= self.healthy_after_start:
                self.healthy = True
        state = DatabaseState.healthy if self.healthy else DatabaseState.unhealthy
        self.calls.append(("health", state.value))
        return state

    def start(self) -> Tuple[bool, str]:
        self.calls.append(("db_start",))
        if not self.start_ok:
            return False, "FAIL: NIECONN_REFUSED"
        self.started = True
        return True, "OK"


def mutating(calls: List[Call]) -> List[Call]:
    """Calls that change host state, plus sleeps, in order."""
    return [call for call in calls if call[0] in MUTATING_CALLS or call[0] == "sleep"]


@pytest.fixture
def calls() -> List[Call]:
    return []


@pytest.fixture
def sleep(calls: List[Call]):
    def _sleep(seconds: float) -> None:
        calls.append(("sleep", seconds))

    return _sleep


@pytest.fixture
def config(tmp_path: Path) -> CheckServiceConfig:
    """Three tracked services, fast wait bounds, self-install off."""
    return CheckServiceConfig.model_validate(
        {
            "services": ["db-support", "app-core", "app-auth"],
            "database": {"support_unit": "db-support"},
            "wait": {"max_retries": 3, "interval_seconds": 1},
            "settle": {"database_seconds": 30, "stabilize_seconds": 30, "service_seconds": 5},
            "install": {"enabled": False, "unit_dir": str(tmp_path / "units")},
            "log_file": str(tmp_path / "checkservice.log"),
        }
    )


@pytest.fixture
def manager(calls: List[Call]) -> FakeServiceManager:
    return FakeServiceManager(calls)


@pytest.fixture
def database(calls: List[Call]) -> FakeDatabase:
    return FakeDatabase(calls)


@pytest.fixture
def run_log(config: CheckServiceConfig) -> RunLog:
    return RunLog(config.log_file)


@pytest.fixture
def inspector(
    manager: FakeServiceManager,
    database: FakeDatabase,
    config: CheckServiceConfig,
    run_log: RunLog,
) -> StateInspector:
    return StateInspector(manager, database, config.services, run_log=run_log)


@pytest.fixture
def orchestrator(
    config: CheckServiceConfig,
    manager: FakeServiceManager,
    database: FakeDatabase,
    inspector: StateInspector,
    run_log: RunLog,
    sleep,
) -> StartupOrchestrator:
    return StartupOrchestrator(config, manager, database, inspector, run_log=run_log, sleep=sleep)


@pytest.fixture
def runner(
    config: CheckServiceConfig,
    manager: FakeServiceManager,
    database: FakeDatabase,
    run_log: RunLog,
    sleep,
) -> ConvergeRunner:
    return build_runner(config, manager=manager, database=database, run_log=run_log, sleep=sleep)


@pytest.fixture
def fake_executable(tmp_path: Path) -> Path:
    """An existing, executable file to point the watcher unit at."""
    path = tmp_path / "bin" / "checkservice"
    path.parent.mkdir(parents=True)
    path.write_text("#!/bin/sh\n")
    path.chmod(0o755)
    return path
