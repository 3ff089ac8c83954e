"""Pydantic models for check service configuration and observed host state."""
from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, validator

from .constants import (
    COMMAND_TIMEOUT,
    DEFAULT_CONTROL_COMMAND,
    DEFAULT_DATABASE_SETTLE,
    DEFAULT_DB_INSTANCE,
    DEFAULT_DB_USER,
    DEFAULT_HEALTHY_TOKEN,
    DEFAULT_LOG_FILE,
    DEFAULT_MAX_RETRIES,
    DEFAULT_RETRY_INTERVAL,
    DEFAULT_SERVICE_SETTLE,
    DEFAULT_SERVICES,
    DEFAULT_STABILIZE_SETTLE,
    DEFAULT_SUPPORT_UNIT,
    SYSTEMD_UNIT_DIR,
    WATCHER_DESCRIPTION,
    WATCHER_UNIT_NAME,
)


class FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True)


class DatabaseConfig(FrozenModel):
    user: str = DEFAULT_DB_USER
    instance: str = DEFAULT_DB_INSTANCE
    support_unit: str = DEFAULT_SUPPORT_UNIT
    control_command: str = DEFAULT_CONTROL_COMMAND
    healthy_token: str = DEFAULT_HEALTHY_TOKEN
    timeout_seconds: int = Field(default=COMMAND_TIMEOUT, ge=1)

    @validator("instance")
    def ensure_instance_number(cls, value: str) -> str:
        if len(value) != 2 or not value.isdigit():
            raise ValueError("Instance number must be two digits, e.g. '00'")
        return value

    @validator("healthy_token")
    def ensure_token(cls, value: str) -> str:
        if not value:
            raise ValueError("Healthy token must not be empty")
        return value


class WaitConfig(FrozenModel):
    max_retries: int = Field(default=DEFAULT_MAX_RETRIES, ge=0)
    interval_seconds: float = Field(default=DEFAULT_RETRY_INTERVAL, ge=0)


class SettleConfig(FrozenModel):
    """Fixed delays applied after starting things."""

    database_seconds: float = Field(default=DEFAULT_DATABASE_SETTLE, ge=0)
    stabilize_seconds: float = Field(default=DEFAULT_STABILIZE_SETTLE, ge=0)
    service_seconds: float = Field(default=DEFAULT_SERVICE_SETTLE, ge=0)


class InstallConfig(FrozenModel):
    enabled: bool = True
    unit_name: str = WATCHER_UNIT_NAME
    unit_dir: Path = SYSTEMD_UNIT_DIR
    working_dir: Optional[Path] = None
    description: str = WATCHER_DESCRIPTION
    start_now: bool = False

    @validator("unit_name")
    def ensure_unit_suffix(cls, value: str) -> str:
        if not value.endswith(".service"):
            raise ValueError("Watcher unit name must end with '.service'")
        return value

    @validator("unit_dir")
    def ensure_absolute(cls, value: Path) -> Path:
        if not value.is_absolute():
            raise ValueError("Paths must be absolute")
        return value

    @validator("working_dir")
    def ensure_absolute_optional(cls, value: Optional[Path]) -> Optional[Path]:
        if value is not None and not value.is_absolute():
            raise ValueError("Paths must be absolute")
        return value


class CheckServiceConfig(FrozenModel):
    version: int = 1
    services: List[str] = Field(default_factory=lambda: list(DEFAULT_SERVICES))
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    wait: WaitConfig = Field(default_factory=WaitConfig)
    settle: SettleConfig = Field(default_factory=SettleConfig)
    install: InstallConfig = Field(default_factory=InstallConfig)
    log_file: Path = DEFAULT_LOG_FILE

    @validator("services")
    def validate_services(cls, value: List[str]) -> List[str]:
        if not value:
            raise ValueError("At least one service must be tracked")
        if len(set(value)) != len(value):
            raise ValueError("Tracked services must be unique")
        if any(not name.strip() for name in value):
            raise ValueError("Service names must not be blank")
        return value

    @validator("log_file")
    def ensure_log_absolute(cls, value: Path) -> Path:
        if not value.is_absolute():
            raise ValueError("Paths must be absolute")
        return value


# ---------------------------------------------------------------- host state


class DatabaseState(str, Enum):
    healthy = "healthy"
    unhealthy = "unhealthy"
    unknown = "unknown"


class ServiceState(BaseModel):
    """Autostart and running flags of one tracked unit at inspection time."""

    name: str
    enabled: bool = False
    active: bool = False


class SystemSnapshot(BaseModel):
    database: DatabaseState
    services: List[ServiceState] = Field(default_factory=list)

    @property
    def database_ready(self) -> bool:
        return self.database is DatabaseState.healthy

    @property
    def inactive_services(self) -> List[str]:
        return [service.name for service in self.services if not service.active]

    @property
    def converged(self) -> bool:
        return self.database_ready and not self.inactive_services


class WaitOutcome(str, Enum):
    success = "success"
    exhausted = "exhausted"


class OrchestrationAttempt(BaseModel):
    """Progress of a single bounded database wait."""

    retry_count: int = 0
    max_retries: int
    interval_seconds: float


class InstallStatus(str, Enum):
    already_installed = "already_installed"
    installed = "installed"
    install_failed = "install_failed"


class StageEvent(BaseModel):
    stage: str
    status: Literal["started", "ok", "failed"]
    detail: Optional[str] = None


# ---------------------------------------------------------------- API payloads


class StatusResponse(BaseModel):
    """Wrapper returned from ``GET /api/status``."""

    converged: bool
    database: DatabaseState
    services: List[ServiceState] = Field(default_factory=list)


class ConvergeResponse(BaseModel):
    ok: bool
    state: str
    message: str
    events: List[StageEvent] = Field(default_factory=list)


class SetupResponse(BaseModel):
    ok: bool
    status: InstallStatus
    message: str
