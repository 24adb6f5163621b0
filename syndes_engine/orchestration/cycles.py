"""Orchestration layer — Cycle engine.

Two kinds of repeating injection::

    cycle <N>t <interval>=<command>        every <interval>, N times
    cycle next <M>i <N>t=<command>         every M processed commands, N times

The interval accepts ``ms``, ``s`` and ``m`` suffixes (bare number = seconds)
and is waited before every injection, the first one included.  A ``cycle
next`` watcher polls the processed-command counter and fires each time it
has advanced by M since the previous trigger.

Both forms acknowledge immediately and run as a cancellable handle of the
session that issued them.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Callable

from syndes_engine.exceptions import CycleParseError
from syndes_engine.logging import get_logger
from syndes_engine.orchestration.history import ExecutionHistory
from syndes_engine.orchestration.registry import ScheduledHandle, SessionRegistry
from syndes_engine.protocol.units import parse_duration_ms

log = get_logger(__name__)

Injector = Callable[[str, str], None]

CYCLE_USAGE = "usage: cycle <N>t <interval>=<cmd> | cycle next <M>i <N>t=<cmd>"


@dataclass(frozen=True)
class IntervalCycle:
    times: int
    interval_ms: int
    command: str


@dataclass(frozen=True)
class ProcessedCycle:
    every: int
    times: int
    command: str


def parse_cycle(text: str) -> IntervalCycle | ProcessedCycle:
    """Parse a ``cycle`` command.  Raises ``CycleParseError`` on bad syntax."""
    rest = text.strip()[len("cycle"):].strip()
    if not rest:
        raise CycleParseError(f"cycle {CYCLE_USAGE}", text=text)
    left, sep, command = rest.partition("=")
    if not sep:
        raise CycleParseError("cycle requires '=' before command portion", text=text)
    command = command.strip()
    if not command:
        raise CycleParseError("cycle: missing command after '='", text=text)
    parts = left.split()
    if not parts:
        raise CycleParseError("cycle: invalid left-hand side", text=text)

    if parts[0].lower() == "next":
        if len(parts) < 3:
            raise CycleParseError("cycle next usage: cycle next <M>i <N>t=<cmd>", text=text)
        every = _count(parts[1], "i")
        times = _count(parts[2], "t")
        if every is None or times is None:
            raise CycleParseError(
                f"cycle next: invalid numbers in '{parts[1]}' or '{parts[2]}'", text=text
            )
        return ProcessedCycle(every=every, times=times, command=command)

    if len(parts) < 2:
        raise CycleParseError("cycle usage: cycle <N>t <interval>=<cmd>", text=text)
    times = _count(parts[0], "t")
    interval_ms = parse_duration_ms(parts[1])
    if times is None or interval_ms <= 0:
        raise CycleParseError(
            f"cycle: invalid count or interval ('{parts[0]}' / '{parts[1]}')", text=text
        )
    return IntervalCycle(times=times, interval_ms=interval_ms, command=command)


def _count(token: str, suffix: str) -> int | None:
    raw = token[:-1] if token.lower().endswith(suffix) else token
    try:
        value = int(raw)
    except ValueError:
        return None
    return value if value > 0 else None


class CycleEngine:
    """Schedules cycles as registry handles that feed the command queue."""

    def __init__(
        self,
        history: ExecutionHistory,
        registry: SessionRegistry,
        inject: Injector,
        poll_interval: float = 0.05,
    ) -> None:
        self._history = history
        self._registry = registry
        self._inject = inject
        self._poll_interval = poll_interval

    def schedule(self, text: str, session_id: str) -> str:
        cycle = parse_cycle(text)
        handle = self.start(cycle, session_id)
        if isinstance(cycle, ProcessedCycle):
            log.info(
                "cycle_next_scheduled",
                handle_id=handle.handle_id,
                every=cycle.every,
                times=cycle.times,
                target=cycle.command,
            )
            return (
                f"Info: cycle next scheduled: every {cycle.every} commands, "
                f"run '{cycle.command}' {cycle.times} times"
            )
        log.info(
            "cycle_scheduled",
            handle_id=handle.handle_id,
            times=cycle.times,
            interval_ms=cycle.interval_ms,
            target=cycle.command,
        )
        return (
            f"Info: cycle scheduled: run '{cycle.command}' {cycle.times} times "
            f"every {cycle.interval_ms}ms"
        )

    def start(self, cycle: IntervalCycle | ProcessedCycle, session_id: str) -> ScheduledHandle:
        if isinstance(cycle, ProcessedCycle):
            coro = self._run_processed(cycle, session_id)
            description = f"cycle next {cycle.every}i {cycle.times}t={cycle.command}"
        else:
            coro = self._run_interval(cycle, session_id)
            description = f"cycle {cycle.times}t {cycle.interval_ms}ms={cycle.command}"
        return self._registry.spawn(session_id, coro, description, prefix="cyc")

    async def _run_interval(self, cycle: IntervalCycle, session_id: str) -> None:
        delay = cycle.interval_ms / 1000
        for _ in range(cycle.times):
            await asyncio.sleep(delay)
            self._inject(cycle.command, session_id)

    async def _run_processed(self, cycle: ProcessedCycle, session_id: str) -> None:
        injected = 0
        next_trigger = self._history.processed_count + cycle.every
        while injected < cycle.times:
            if self._history.processed_count >= next_trigger:
                self._inject(cycle.command, session_id)
                injected += 1
                next_trigger += cycle.every
            else:
                await asyncio.sleep(self._poll_interval)
