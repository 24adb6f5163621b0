"""Unit tests — CLI commands."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from typer.testing import CliRunner

from syndes_engine import __version__
from syndes_engine.cli.main import app

runner = CliRunner()

VALID_SCRIPT = "# metadata: code1\nif time 07:00\n- echo wake\nfi\necho hi\n"
UNRECOGNIZED_SCRIPT = "# metadata: code1\nif weather sunny\n- echo umbrella\nfi\n"


@pytest.fixture
def script_file(tmp_path: Path):
    def _write(text: str) -> Path:
        path = tmp_path / "script.syn"
        path.write_text(text)
        return path

    return _write


@pytest.mark.unit
class TestVersion:
    def test_prints_version(self) -> None:
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert __version__ in result.output


@pytest.mark.unit
class TestRun:
    def test_prints_output_lines(self) -> None:
        result = runner.invoke(app, ["run", "echo first; echo second"])
        assert result.exit_code == 0
        assert result.output.index("first") < result.output.index("second")

    def test_errors_are_printed(self) -> None:
        result = runner.invoke(app, ["run", "frobnicate"])
        assert result.exit_code == 0
        assert "Error: command not found: frobnicate" in result.output

    def test_linger_keeps_watchdogs_alive(self) -> None:
        result = runner.invoke(app, ["run", "watchdog 50ms echo late", "--for", "0.3"])
        assert result.exit_code == 0
        assert "late" in result.output


@pytest.mark.unit
class TestScript:
    def test_validate_ok(self, script_file) -> None:
        result = runner.invoke(app, ["script", "validate", str(script_file(VALID_SCRIPT))])
        assert result.exit_code == 0
        assert "OK: script syntax looks valid" in result.output

    def test_validate_reports_unrecognized(self, script_file) -> None:
        result = runner.invoke(app, ["script", "validate", str(script_file(UNRECOGNIZED_SCRIPT))])
        assert result.exit_code == 1
        assert "if weather sunny" in result.output

    def test_validate_missing_file(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["script", "validate", str(tmp_path / "nope.syn")])
        assert result.exit_code != 0

    def test_run_prints_log(self, script_file, tmp_path: Path) -> None:
        path = script_file("# metadata: code1\necho from script\n")
        result = runner.invoke(app, ["script", "run", str(path), "--work-dir", str(tmp_path)])
        assert result.exit_code == 0
        assert "Script started: script-1" in result.output
        assert "from script" in result.output

    def test_run_rejects_bad_header(self, script_file) -> None:
        result = runner.invoke(app, ["script", "run", str(script_file("echo hi\n"))])
        assert result.exit_code == 1
        assert "no #metadata or #modules specified" in result.output


@pytest.mark.unit
class TestServer:
    def test_start_invokes_uvicorn(self) -> None:
        with patch("syndes_engine.api.server.create_app", return_value=MagicMock()), \
             patch("syndes_engine.cli.commands.server.uvicorn.run") as mock_uvicorn:
            result = runner.invoke(app, ["server", "start", "--port", "40555"])

        assert result.exit_code == 0
        assert mock_uvicorn.call_args[1]["port"] == 40555

    def test_status_success(self) -> None:
        mock_resp = MagicMock()
        mock_resp.json.return_value = {"status": "ok", "version": __version__}

        with patch("httpx.get", return_value=mock_resp):
            result = runner.invoke(app, ["server", "status"])

        assert result.exit_code == 0
        assert "ok" in result.output

    def test_status_unreachable_exits_1(self) -> None:
        import httpx

        with patch("httpx.get", side_effect=httpx.ConnectError("unreachable")):
            result = runner.invoke(app, ["server", "status"])

        assert result.exit_code == 1
