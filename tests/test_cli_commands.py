import json
import sys

import pytest
from loguru import logger
from typer.testing import CliRunner

from uiabridge import __version__
from uiabridge.cli.commands import _build_parameters, app
from uiabridge.config import access
from uiabridge.operations import ALL_OPERATIONS

runner = CliRunner()


@pytest.fixture
def isolated_home(tmp_path, monkeypatch, worker_env):
    """Point HOME and the config path at tmp_path and let workers import this checkout."""
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setenv("USERPROFILE", str(tmp_path))
    monkeypatch.setenv(access.CONFIG_PATH_ENV, str(tmp_path / "config.json"))
    for key, value in worker_env.items():
        monkeypatch.setenv(key, value)
    access.clear_config_cache()
    yield tmp_path
    access.clear_config_cache()
    logger.remove()
    logger.add(sys.stderr)


def test_version():
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert f"uiabridge v{__version__}" in result.stdout


def test_operations_json_lists_registry():
    result = runner.invoke(app, ["operations", "--json"])
    assert result.exit_code == 0
    assert '"InvokeElement"' in result.stdout
    assert '"GetSupportedOperations"' in result.stdout


def test_operations_table():
    result = runner.invoke(app, ["operations"])
    assert result.exit_code == 0
    assert f"Operations ({len(ALL_OPERATIONS)})" in result.stdout


def test_config_init_show_and_force(isolated_home):
    path = isolated_home / "cfg" / "config.json"
    first = runner.invoke(app, ["config", "init", "--path", str(path)])
    assert first.exit_code == 0
    assert path.exists()
    assert json.loads(path.read_text(encoding="utf-8"))["supervisor"]["poolSize"] == 1

    again = runner.invoke(app, ["config", "init", "--path", str(path)])
    assert again.exit_code == 1
    forced = runner.invoke(app, ["config", "init", "--path", str(path), "--force"])
    assert forced.exit_code == 0

    shown = runner.invoke(app, ["config", "show", "--path", str(path)])
    assert shown.exit_code == 0
    assert "defaultTimeoutSeconds" in shown.stdout


def test_config_show_reports_broken_file(isolated_home):
    path = isolated_home / "broken.json"
    path.write_text("{nope", encoding="utf-8")
    result = runner.invoke(app, ["config", "show", "--path", str(path)])
    assert result.exit_code == 1


def test_build_parameters_merges_json_and_pairs():
    params = _build_parameters('{"elementId": "A", "maxResults": 3}', ["maxResults=5", "visibleOnly=true", "name=OK"])
    assert params == {"elementId": "A", "maxResults": 5, "visibleOnly": True, "name": "OK"}


@pytest.mark.subprocess
def test_exec_runs_operation_in_worker(isolated_home):
    result = runner.invoke(app, ["exec", "Invoke", "-p", "elementId=OkButton", "--backend", "memory", "--raw"])
    assert result.exit_code == 0, result.stdout
    line = [ln for ln in result.stdout.splitlines() if ln.startswith("{")][-1]
    assert json.loads(line) == {"success": True, "data": "Element invoked successfully", "error": None}


@pytest.mark.subprocess
def test_exec_failure_exits_nonzero(isolated_home):
    result = runner.invoke(app, ["exec", "Invoke", "-p", "elementId=Nowhere", "--backend", "memory", "--raw"])
    assert result.exit_code == 1
    line = [ln for ln in result.stdout.splitlines() if ln.startswith("{")][-1]
    assert json.loads(line)["success"] is False


def test_exec_rejects_bad_params(isolated_home):
    result = runner.invoke(app, ["exec", "Ping", "--params", "[1, 2]"])
    assert result.exit_code == 2
    result = runner.invoke(app, ["exec", "Ping", "-p", "novalue"])
    assert result.exit_code == 2


@pytest.mark.subprocess
def test_doctor_pings_worker(isolated_home):
    result = runner.invoke(app, ["doctor", "--backend", "memory"])
    assert result.exit_code == 0, result.stdout
    assert "backend=memory" in result.stdout
