"""Unit tests — Logging processors and configuration."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from syndes_engine.logging import (
    MAX_COMMAND_CHARS,
    _add_command_context,
    _shorten_command,
    bind_command_context,
    clear_command_context,
    configure_logging,
    get_logger,
)


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers = handlers
    root.setLevel(level)


@pytest.mark.unit
class TestProcessors:
    def test_context_added_when_bound(self) -> None:
        bind_command_context(session_id="script-1", command="echo hi")
        try:
            event = _add_command_context(None, "info", {"event": "x"})
        finally:
            clear_command_context()
        assert event["session_id"] == "script-1"
        assert event["command"] == "echo hi"

    def test_explicit_keys_win(self) -> None:
        bind_command_context(session_id="script-1")
        try:
            event = _add_command_context(None, "info", {"event": "x", "session_id": "console"})
        finally:
            clear_command_context()
        assert event["session_id"] == "console"

    def test_nothing_added_after_clear(self) -> None:
        bind_command_context(session_id="script-1", command="echo hi")
        clear_command_context()
        assert _add_command_context(None, "info", {"event": "x"}) == {"event": "x"}

    def test_long_command_is_shortened(self) -> None:
        event = _shorten_command(None, "info", {"command": "x" * 500})
        assert len(event["command"]) == MAX_COMMAND_CHARS
        assert event["command"].endswith("...")

    def test_short_command_untouched(self) -> None:
        assert _shorten_command(None, "info", {"command": "echo"}) == {"command": "echo"}


@pytest.mark.unit
class TestConfigure:
    def test_json_records_go_to_file(self, tmp_path: Path, restore_root_logger) -> None:
        path = tmp_path / "engine.log"
        configure_logging(level="info", format="json", log_file=path)

        bind_command_context(session_id="script-3", command="cycle 2t 1s=echo hi")
        try:
            get_logger("tests.logging").info("cycle_scheduled", times=2)
        finally:
            clear_command_context()
        for handler in logging.getLogger().handlers:
            handler.flush()

        record = json.loads(path.read_text().splitlines()[-1])
        assert record["event"] == "cycle_scheduled"
        assert record["level"] == "info"
        assert record["session_id"] == "script-3"
        assert record["command"] == "cycle 2t 1s=echo hi"
        assert record["times"] == 2

    def test_level_applies_to_root(self, restore_root_logger) -> None:
        configure_logging(level="warning")
        assert logging.getLogger().level == logging.WARNING
        assert logging.getLogger("httpx").level == logging.WARNING
