"""FastAPI entrypoint exposing check service status and runs."""
from __future__ import annotations

import os
from pathlib import Path

import yaml
from fastapi import FastAPI, HTTPException
from pydantic import ValidationError

from .constants import CONFIG_DIR_ENV, DEFAULT_CONFIG_DIR
from .converge.runner import ConvergeRunner, build_runner
from .models import (
    CheckServiceConfig,
    ConvergeResponse,
    InstallStatus,
    SetupResponse,
    StatusResponse,
)
from .storage import ConfigRepository

CONFIG_DIR = Path(os.environ.get(CONFIG_DIR_ENV, DEFAULT_CONFIG_DIR))
PACKAGE_MAIN = Path(__file__).resolve().parent / "__main__.py"

app = FastAPI(title="HANA Check Service", version="0.1.0")
repo = ConfigRepository(CONFIG_DIR)


def _runner() -> ConvergeRunner:
    try:
        config = repo.load_or_default()
    except (ValidationError, yaml.YAMLError) as exc:
        raise HTTPException(status_code=500, detail=f"invalid configuration: {exc}") from exc
    # The watcher only gets --config when there is a file for it to load.
    exec_args = ["--config", str(repo.config_path)] if repo.config_path.exists() else []
    return build_runner(config, argv0=str(PACKAGE_MAIN), exec_args=exec_args)


@app.get("/api/config", response_model=CheckServiceConfig)
def get_config() -> CheckServiceConfig:
    """Return the saved configuration."""
    try:
        return repo.load_config()
    except FileNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@app.get("/api/status", response_model=StatusResponse)
def get_status() -> StatusResponse:
    """Inspect the database and tracked services without changing anything."""
    snapshot = _runner().inspector.snapshot()
    return StatusResponse(
        converged=snapshot.converged,
        database=snapshot.database,
        services=snapshot.services,
    )


@app.post("/api/converge", response_model=ConvergeResponse)
def converge() -> ConvergeResponse:
    """Run one full inspect, reconcile and start pass."""
    outcome = _runner().run()
    return ConvergeResponse(
        ok=outcome.ok,
        state=outcome.state,
        message=outcome.message,
        events=outcome.events,
    )


@app.post("/api/setup", response_model=SetupResponse)
def setup() -> SetupResponse:
    """Install the systemd watcher unit if it is missing."""
    runner = _runner()
    if runner.installer is None:
        raise HTTPException(status_code=409, detail="self-install is disabled in configuration")
    outcome = runner.setup()
    return SetupResponse(
        ok=outcome.ok,
        status=InstallStatus(outcome.state),
        message=outcome.message,
    )
