"""Unit tests — code1 trigger runtime."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

import pytest

from syndes_engine.triggers.models import Executed, Scheduled, TriggerError
from syndes_engine.triggers.runtime import Code1Runtime, build_runtimes
from syndes_engine.triggers.workspace import Workspace


class FakeScheduler:
    def __init__(self) -> None:
        self.calls: list[tuple[int, tuple[str, ...], str]] = []

    def schedule(self, delay_ms: int, actions: tuple[str, ...], description: str) -> str:
        self.calls.append((delay_ms, actions, description))
        return f"sch-test-{len(self.calls)}"


def fixed_clock(*args: int):
    moment = datetime(*args)
    return lambda: moment


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def workspace(tmp_path: Path) -> Workspace:
    (tmp_path / "data").mkdir()
    (tmp_path / "data" / "blob.bin").write_bytes(b"\0" * 2048)
    return Workspace(tmp_path)


def run(runtime: Code1Runtime, line: str, scheduler: FakeScheduler, actions=("echo go",)):
    match = runtime.match(line)
    assert match is not None, line
    return runtime.handle(match, tuple(actions), scheduler)


@pytest.mark.unit
class TestMatch:
    @pytest.mark.parametrize(
        "line, kind",
        [
            ("if time 23:59", "time"),
            ("IF TIME 7:05", "time"),
            ("wait:10 sec", "wait"),
            ("wait 5", "wait"),
            ("if exists notes.txt", "exists"),
            ("if size>1K data", "size"),
            ("if size >= 2M data/blob.bin", "size"),
        ],
    )
    def test_recognised(self, line: str, kind: str) -> None:
        match = Code1Runtime().match(line)
        assert match is not None
        assert match.kind == kind

    @pytest.mark.parametrize("line", ["echo hi", "if weather sunny", "waiting", "if time noon"])
    def test_unrecognised(self, line: str) -> None:
        assert Code1Runtime().match(line) is None


@pytest.mark.unit
class TestTime:
    def test_later_today(self, scheduler: FakeScheduler) -> None:
        runtime = Code1Runtime(clock=fixed_clock(2026, 3, 14, 23, 58, 30))
        result = run(runtime, "if time 23:59", scheduler)
        assert isinstance(result, Scheduled)
        assert 0 < result.delay_ms <= 60_000
        assert result.info == "scheduled at 2026-03-14 23:59:00"
        assert result.handle_id == "sch-test-1"
        assert scheduler.calls[0][1] == ("echo go",)

    def test_already_passed_rolls_to_tomorrow(self, scheduler: FakeScheduler) -> None:
        runtime = Code1Runtime(clock=fixed_clock(2026, 3, 14, 0, 2))
        result = run(runtime, "if time 00:01", scheduler)
        assert isinstance(result, Scheduled)
        assert result.delay_ms == (23 * 60 + 59) * 60_000
        assert result.run_at == datetime(2026, 3, 15, 0, 1)

    def test_out_of_range_is_clamped(self, scheduler: FakeScheduler) -> None:
        runtime = Code1Runtime(clock=fixed_clock(2026, 3, 14, 12, 0))
        result = run(runtime, "if time 99:99", scheduler)
        assert result.run_at == datetime(2026, 3, 14, 23, 59)


@pytest.mark.unit
class TestWait:
    @pytest.mark.parametrize(
        "line, expected_ms",
        [
            ("wait:10 sec", 10_000),
            ("wait 5", 5_000),
            ("wait 250ms", 250),
            ("wait 2m", 120_000),
            ("wait: 3 minutes", 180_000),
            ("wait 1 hour", 3_600_000),
        ],
    )
    def test_forms(self, scheduler: FakeScheduler, line: str, expected_ms: int) -> None:
        result = run(Code1Runtime(clock=fixed_clock(2026, 1, 1)), line, scheduler)
        assert isinstance(result, Scheduled)
        assert result.delay_ms == expected_ms
        assert scheduler.calls == [(expected_ms, ("echo go",), line)]

    def test_zero_is_rejected(self, scheduler: FakeScheduler) -> None:
        result = run(Code1Runtime(), "wait 0", scheduler)
        assert result == TriggerError("bad wait duration")
        assert scheduler.calls == []


@pytest.mark.unit
class TestFilesystem:
    def test_exists(self, workspace: Workspace, scheduler: FakeScheduler) -> None:
        result = run(Code1Runtime(workspace), "if exists data/blob.bin", scheduler)
        assert result == Executed("exists: data/blob.bin", ("echo go",))

    def test_exists_missing(self, workspace: Workspace, scheduler: FakeScheduler) -> None:
        result = run(Code1Runtime(workspace), "if exists nope.txt", scheduler)
        assert result == TriggerError("not found: nope.txt")

    def test_size_passes(self, workspace: Workspace, scheduler: FakeScheduler) -> None:
        result = run(Code1Runtime(workspace), "if size > 1K data/blob.bin", scheduler)
        assert isinstance(result, Executed)
        assert result.info == "size check passed (2048 bytes for data/blob.bin)"

    def test_size_fails(self, workspace: Workspace, scheduler: FakeScheduler) -> None:
        result = run(Code1Runtime(workspace), "if size > 2048 data/blob.bin", scheduler)
        assert result == TriggerError(
            "size check failed (2048 bytes for data/blob.bin, need > 2048)"
        )

    def test_directory_size(self, workspace: Workspace, scheduler: FakeScheduler) -> None:
        result = run(Code1Runtime(workspace), "if size >= 2K data", scheduler)
        assert isinstance(result, Executed)

    def test_without_workspace(self, scheduler: FakeScheduler) -> None:
        result = run(Code1Runtime(None), "if exists anything", scheduler)
        assert isinstance(result, TriggerError)
        assert "work directory not configured" in result.message


@pytest.mark.unit
class TestBuildRuntimes:
    def test_known_names_only(self) -> None:
        runtimes = build_runtimes(["CODE1", "code7"], None)
        assert list(runtimes) == ["code1"]
        assert isinstance(runtimes["code1"], Code1Runtime)


@pytest.mark.unit
class TestMidnight:
    def test_one_minute_before(self, scheduler: FakeScheduler) -> None:
        runtime = Code1Runtime(clock=fixed_clock(2026, 6, 30, 23, 59))
        result = run(runtime, "if time 00:00", scheduler)
        assert 0 < result.delay_ms <= 60_000

    def test_one_minute_after(self, scheduler: FakeScheduler) -> None:
        runtime = Code1Runtime(clock=fixed_clock(2026, 7, 1, 0, 1))
        result = run(runtime, "if time 00:00", scheduler)
        assert result.delay_ms == (23 * 60 + 59) * 60_000
