"""Tests for the FastAPI status endpoints and the command line entry point."""
from __future__ import annotations

from pathlib import Path
from typing import Generator
from unittest.mock import patch

import pytest
import yaml
from fastapi.testclient import TestClient

from checkservice import app as app_module
from checkservice import cli
from checkservice.app import app
from checkservice.models import CheckServiceConfig
from checkservice.storage import ConfigRepository


@pytest.fixture
def api_client(tmp_path: Path, runner) -> Generator[TestClient, None, None]:
    """Test client whose routes use the fake-backed runner."""
    repo = ConfigRepository(tmp_path)
    with patch("checkservice.app.repo", repo), patch("checkservice.app._runner", return_value=runner):
        with TestClient(app) as client:
            yield client


class TestEndpoints:
    """Tests for the HTTP surface."""

    def test_get_config_missing(self, api_client: TestClient):
        response = api_client.get("/api/config")
        assert response.status_code == 404

    def test_get_config(self, api_client: TestClient, tmp_path: Path, config):
        ConfigRepository(tmp_path).save_config(config)

        response = api_client.get("/api/config")

        assert response.status_code == 200
        assert response.json()["services"] == ["db-support", "app-core", "app-auth"]

    def test_status(self, api_client: TestClient, manager, database):
        database.healthy = True
        manager.units["db-support"] = {"enabled": True, "active": True}

        response = api_client.get("/api/status")

        assert response.status_code == 200
        data = response.json()
        assert data["database"] == "healthy"
        assert data["converged"] is False
        assert data["services"][0] == {"name": "db-support", "enabled": True, "active": True}

    def test_converge(self, api_client: TestClient, database):
        database.healthy_after_start = 1

        response = api_client.post("/api/converge")

        assert response.status_code == 200
        data = response.json()
        assert data["ok"] is True
        assert data["message"] == "Converged"
        assert any(event["stage"] == "start.app-core" for event in data["events"])

    def test_converge_timeout(self, api_client: TestClient):
        data = api_client.post("/api/converge").json()
        assert data["ok"] is False
        assert data["state"] == "failed"

    def test_setup_disabled(self, api_client: TestClient):
        response = api_client.post("/api/setup")
        assert response.status_code == 409


class TestRunnerWiring:
    """Tests for how the API builds its runner from the saved configuration."""

    def test_watcher_without_config_file_gets_no_config_flag(self, tmp_path: Path):
        with patch("checkservice.app.repo", ConfigRepository(tmp_path)):
            runner = app_module._runner()

        assert runner.installer is not None
        assert runner.installer.args == []
        assert runner.installer.argv0 == str(app_module.PACKAGE_MAIN)

    def test_watcher_points_at_saved_config(self, tmp_path: Path):
        repo = ConfigRepository(tmp_path)
        repo.save_config(
            CheckServiceConfig.model_validate(
                {
                    "install": {"enabled": True, "unit_dir": str(tmp_path / "units")},
                    "log_file": str(tmp_path / "checkservice.log"),
                }
            )
        )

        with patch("checkservice.app.repo", repo):
            runner = app_module._runner()

        assert runner.installer.args == ["--config", str(repo.config_path)]

    def test_default_watcher_args_load_in_cli(self, tmp_path: Path, runner):
        with patch("checkservice.app.repo", ConfigRepository(tmp_path)):
            args = app_module._runner().installer.args

        with patch("checkservice.cli.DEFAULT_CONFIG_PATH", tmp_path / "checkservice.yaml"), patch(
            "checkservice.cli.build_runner", return_value=runner
        ):
            assert cli.main(["setup", *args]) == 0

    def test_malformed_yaml_is_server_error(self, tmp_path: Path):
        (tmp_path / "checkservice.yaml").write_text("services: [a, b\n")

        with patch("checkservice.app.repo", ConfigRepository(tmp_path)):
            with TestClient(app) as client:
                response = client.get("/api/status")

        assert response.status_code == 500
        assert "invalid configuration" in response.json()["detail"]


class TestCli:
    """Tests for the checkservice command."""

    def test_missing_explicit_config(self, tmp_path: Path, capsys):
        assert cli.main(["--config", str(tmp_path / "absent.yaml")]) == 2
        assert "invalid configuration" in capsys.readouterr().err

    def test_invalid_config(self, tmp_path: Path):
        path = tmp_path / "checkservice.yaml"
        path.write_text(yaml.safe_dump({"services": []}))
        assert cli.main(["--config", str(path)]) == 2

    def test_malformed_yaml(self, tmp_path: Path, capsys):
        path = tmp_path / "checkservice.yaml"
        path.write_text("services: [a, b\n")

        assert cli.main(["status", "--config", str(path)]) == 2
        assert "invalid configuration" in capsys.readouterr().err

    def test_run_prints_status_line(self, tmp_path: Path, runner, database, capsys):
        path = tmp_path / "checkservice.yaml"
        path.write_text(yaml.safe_dump({"install": {"enabled": False}}))
        database.healthy_after_start = 1

        with patch("checkservice.cli.build_runner", return_value=runner) as build:
            code = cli.main(["run", "--config", str(path)])

        assert code == 0
        assert capsys.readouterr().out.strip() == "Converged"
        assert build.call_args.kwargs["exec_args"] == ["--config", str(path.resolve())]

    def test_timeout_exit_code(self, tmp_path: Path, runner, capsys):
        path = tmp_path / "checkservice.yaml"
        path.write_text("{}\n")

        with patch("checkservice.cli.build_runner", return_value=runner):
            code = cli.main(["--config", str(path)])

        assert code == 1
        assert "timeout" in capsys.readouterr().out

    def test_setup_command(self, tmp_path: Path, runner, capsys):
        path = tmp_path / "checkservice.yaml"
        path.write_text("{}\n")

        with patch("checkservice.cli.build_runner", return_value=runner):
            code = cli.main(["setup", "--config", str(path)])

        assert code == 0
        assert capsys.readouterr().out.strip() == "Self-install disabled"

    def test_status_command(self, tmp_path: Path, runner, manager, database, capsys):
        path = tmp_path / "checkservice.yaml"
        path.write_text("{}\n")
        database.healthy = True
        for name in ("db-support", "app-core", "app-auth"):
            manager.units[name] = {"enabled": False, "active": True}

        with patch("checkservice.cli.build_runner", return_value=runner):
            code = cli.main(["status", "--config", str(path)])

        out = capsys.readouterr().out
        assert code == 0
        assert "database: healthy" in out
        assert "app-auth: active" in out
