"""Unit tests — Script session manager."""

from __future__ import annotations

import asyncio
import textwrap
from datetime import datetime
from pathlib import Path

import pytest

from syndes_engine.triggers.runtime import Code1Runtime
from syndes_engine.triggers.session import ScriptSessionManager
from syndes_engine.triggers.workspace import Workspace


@pytest.fixture
def manager(processor, tmp_path: Path) -> ScriptSessionManager:
    (tmp_path / "notes.txt").write_text("hello")
    runtime = Code1Runtime(Workspace(tmp_path), clock=lambda: datetime(2026, 5, 1, 8, 0))
    return ScriptSessionManager(processor, {"code1": runtime})


def script(body: str) -> str:
    return "# metadata: code1\n" + textwrap.dedent(body)


@pytest.mark.unit
class TestStart:
    async def test_start_log(self, manager, processor, bus, wait_until) -> None:
        session_id, lines = manager.start(
            script(
                """\
                echo hello
                wait 50ms
                - echo later
                fi
                """
            )
        )
        assert session_id == "script-1"
        assert lines[0] == "Script started: script-1"
        assert lines[1] == "Executed immediate: echo hello"
        assert lines[2].startswith("Scheduled: scheduled at 2026-05-01 08:00:00 (rid=sch-script-1-")

        await wait_until(lambda: "later" in bus.results())
        later = [e for e in bus.events("syndes.output") if e["result"] == "later"][0]
        assert later["session_id"] == "script-1"

    async def test_ids_are_unique(self, manager) -> None:
        first, _ = manager.start(script("echo a\n"))
        second, _ = manager.start(script("echo b\n"))
        assert first != second
        assert manager.active_sessions == sorted([first, second])

    async def test_missing_header(self, manager) -> None:
        assert manager.start("echo hi") == (
            None,
            ["Error: no #metadata or #modules specified"],
        )

    async def test_unknown_module(self, manager) -> None:
        assert manager.start("# modules: code9\necho hi") == (
            None,
            ["Error: module 'code9' not found"],
        )

    async def test_exists_block_enqueues_actions(self, manager, bus, wait_until) -> None:
        _, lines = manager.start(script("if exists notes.txt\n- echo found\nfi\n"))
        assert lines[1] == "Executed: exists: notes.txt"
        await wait_until(lambda: "found" in bus.results())

    async def test_trigger_error_runs_nothing(self, manager, processor) -> None:
        _, lines = manager.start(script("if exists nope.txt\n- echo found\nfi\n"))
        assert lines[1] == "Module error: not found: nope.txt"
        assert processor.pending == 0

    async def test_unrecognized_condition(self, manager, processor) -> None:
        _, lines = manager.start(script("if weather sunny\n- echo umbrella\nfi\n"))
        assert lines[1] == "Unrecognized condition: if weather sunny"
        assert processor.pending == 0


@pytest.mark.unit
class TestStop:
    async def test_stop_cancels_scheduled_actions(self, manager, processor) -> None:
        session_id, _ = manager.start(script("wait 5s\n- echo never\nfi\n"))
        assert processor.registry.handle_count(session_id) == 1

        assert manager.stop(session_id) == 1
        assert not manager.is_active(session_id)
        assert processor.registry.handle_count(session_id) == 0
        assert manager.stop(session_id) == 0

    async def test_stop_cancels_cycles_started_by_script(
        self, manager, processor, wait_until
    ) -> None:
        session_id, _ = manager.start(script("cycle 10t 1s=echo tick\n"))
        await wait_until(lambda: processor.registry.handle_count(session_id) == 1)
        assert manager.stop(session_id) == 1

    async def test_stop_drops_queued_commands(
        self, manager, processor, bus, wait_until
    ) -> None:
        session_id, _ = manager.start(script("sleep 100ms\ncycle 4t 50ms=echo zombie\n"))
        await wait_until(lambda: processor.pending == 1)

        manager.stop(session_id)
        assert processor.pending == 0
        await processor.wait_idle()
        await asyncio.sleep(0.3)

        assert bus.results() == ["Info: slept 100ms"]
        assert not processor.registry.has(session_id)

    async def test_stop_leaves_other_sessions_queued(
        self, manager, processor, bus, wait_until
    ) -> None:
        first, _ = manager.start(script("sleep 100ms\necho first\n"))
        second, _ = manager.start(script("echo second\n"))
        await wait_until(lambda: processor.pending == 2)

        manager.stop(first)
        await processor.wait_idle()
        assert bus.results() == ["Info: slept 100ms", "second"]
        assert manager.is_active(second)

    async def test_stop_unknown(self, manager) -> None:
        assert manager.stop("script-42") == 0


@pytest.mark.unit
class TestValidate:
    async def test_valid(self, manager, processor) -> None:
        report = manager.validate(script("if time 07:00\n- echo wake\nfi\necho hi\n"))
        assert report == "OK: script syntax looks valid (modules found and conditions recognized)"
        assert processor.pending == 0
        assert processor.registry.handle_count() == 0

    async def test_unrecognized_listed(self, manager) -> None:
        report = manager.validate(
            script("if weather sunny\n- echo a\nfi\nif moon full\n- echo b\nfi\n")
        )
        assert report == (
            "Validation: found 2 unrecognized condition(s):\nif weather sunny\nif moon full"
        )

    async def test_header_error(self, manager) -> None:
        assert manager.validate("echo hi") == "Error: no #metadata or #modules specified"
