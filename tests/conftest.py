"""Shared pytest fixtures for the syndes-engine test suite."""

from __future__ import annotations

import asyncio
import time
from pathlib import Path
from typing import AsyncGenerator, Awaitable, Callable

import pytest
import pytest_asyncio

from syndes_engine.backends import ClockBackend, EchoBackend
from syndes_engine.config import QueueConfig, Settings, override_settings
from syndes_engine.engine import Engine
from syndes_engine.events.bus import MemoryEventBus
from syndes_engine.orchestration.executor import BackendChain, CommandBackend, CommandContext
from syndes_engine.orchestration.queue import QueueProcessor


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def wait_until(
    predicate: Callable[[], bool], timeout: float = 2.0, interval: float = 0.005
) -> None:
    """Poll *predicate* until it holds; fail the test on timeout."""
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            pytest.fail("condition not reached before timeout")
        await asyncio.sleep(interval)


class RecordingBackend(CommandBackend):
    """Accepts ``job <name> [seconds]``; records start/finish times."""

    name = "recording"

    def __init__(self) -> None:
        self.started: dict[str, float] = {}
        self.finished: dict[str, float] = {}
        self.order: list[str] = []

    def accepts(self, command: str) -> bool:
        return command.split()[0] == "job"

    async def execute(self, command: str, context: CommandContext) -> str | None:
        parts = command.split()
        name = parts[1]
        delay = float(parts[2]) if len(parts) > 2 else 0.0
        self.started[name] = time.monotonic()
        self.order.append(name)
        await asyncio.sleep(delay)
        self.finished[name] = time.monotonic()
        return f"done {name}"


class FailingBackend(CommandBackend):
    name = "failing"

    def accepts(self, command: str) -> bool:
        return command.startswith("explode")

    async def execute(self, command: str, context: CommandContext) -> str | None:
        raise RuntimeError("boom")


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    settings = Settings(
        queue={"cycle_poll_interval": 0.01},
        workspace={"work_dir": str(tmp_path)},
        logging={"level": "debug", "format": "console"},
    )
    override_settings(settings)
    return settings


# ---------------------------------------------------------------------------
# Orchestration
# ---------------------------------------------------------------------------


@pytest.fixture
def bus() -> MemoryEventBus:
    return MemoryEventBus()


@pytest.fixture
def recorder() -> RecordingBackend:
    return RecordingBackend()


@pytest.fixture
def chain(recorder: RecordingBackend) -> BackendChain:
    return BackendChain([EchoBackend(), ClockBackend(), recorder, FailingBackend()])


@pytest_asyncio.fixture
async def processor(
    chain: BackendChain, bus: MemoryEventBus
) -> AsyncGenerator[QueueProcessor, None]:
    proc = QueueProcessor(chain, QueueConfig(cycle_poll_interval=0.01), event_bus=bus)
    yield proc
    await proc.stop()


@pytest_asyncio.fixture
async def engine(
    test_settings: Settings, chain: BackendChain, bus: MemoryEventBus
) -> AsyncGenerator[Engine, None]:
    eng = Engine(test_settings, executor=chain, event_bus=bus)
    yield eng
    await eng.stop_queue()


RunText = Callable[[str], Awaitable[list[str]]]


@pytest.fixture
def run_text(processor: QueueProcessor, bus: MemoryEventBus) -> RunText:
    """Enqueue text, wait for the queue to drain, return the output results."""

    async def _run(text: str) -> list[str]:
        processor.enqueue_text(text)
        await processor.wait_idle()
        return bus.results()

    return _run


@pytest.fixture(name="wait_until")
def wait_until_fixture() -> Callable[..., Awaitable[None]]:
    return wait_until
