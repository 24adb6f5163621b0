"""Event streaming — EventBus protocol and implementations.

Everything the engine wants a person to see goes through the EventBus as a
structured dict: one event per output line of a command, plus session and
interaction lifecycle events.  Consumers (CLI printer, WebSocket clients,
NDJSON log) subscribe independently:

  QueueProcessor ──emit("syndes.output")────►  ┌──────────────┐ ◄── CLI printer
  SessionManager ──emit("syndes.sessions")──►  │ EventBus impl│ ◄── WebSocket stream
  InteractionAPI ──emit("syndes.interactions")►└──────────────┘ ◄── NDJSON log

Backends:
  - NullEventBus    → default, discards everything
  - LogEventBus     → NDJSON append-only file
  - MemoryEventBus  → in-process subscriber queues (CLI, tests)
  - FanoutEventBus  → several of the above at once
"""

from __future__ import annotations

import asyncio
import json
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, AsyncIterator, Callable

from syndes_engine.logging import get_logger

log = get_logger(__name__)

# ---------------------------------------------------------------------------
# Standard topic constants
# ---------------------------------------------------------------------------

TOPIC_OUTPUT = "syndes.output"
TOPIC_SESSIONS = "syndes.sessions"
TOPIC_INTERACTIONS = "syndes.interactions"


# ---------------------------------------------------------------------------
# Abstract interface
# ---------------------------------------------------------------------------


class EventBus(ABC):
    """Abstract event bus.

    An event is a plain dict.  The bus adds a ``_topic`` key and a
    ``_timestamp`` (Unix epoch float) before forwarding it.
    """

    @abstractmethod
    async def emit(self, topic: str, event: dict[str, Any]) -> None:
        """Publish *event* to *topic*.

        Must not raise: a failing consumer never reaches the command path.
        """

    async def subscribe(self, topics: list[str]) -> AsyncIterator[dict[str, Any]]:
        raise NotImplementedError(
            f"{self.__class__.__name__} does not support event subscriptions."
        )
        yield {}  # pragma: no cover

    def _stamp(self, topic: str, event: dict[str, Any]) -> dict[str, Any]:
        event.setdefault("_topic", topic)
        event.setdefault("_timestamp", time.time())
        return event


class NullEventBus(EventBus):
    """Discards all events."""

    async def emit(self, topic: str, event: dict[str, Any]) -> None:
        pass


# ---------------------------------------------------------------------------
# LogEventBus — NDJSON file
# ---------------------------------------------------------------------------


class LogEventBus(EventBus):
    """Writes events as NDJSON to a file, one line per event."""

    def __init__(self, log_file: Path | None = None) -> None:
        self._file = log_file.expanduser() if log_file else None
        self._lock = asyncio.Lock()

    async def emit(self, topic: str, event: dict[str, Any]) -> None:
        self._stamp(topic, event)
        log.debug("event_bus_emit", topic=topic, event_type=event.get("event"))
        if self._file is None:
            return
        line = json.dumps(event, default=str) + "\n"
        async with self._lock:
            try:
                self._file.parent.mkdir(parents=True, exist_ok=True)
                with self._file.open("a", encoding="utf-8") as f:
                    f.write(line)
            except OSError as exc:
                log.error("event_bus_write_failed", topic=topic, error=str(exc))


# ---------------------------------------------------------------------------
# MemoryEventBus — in-process subscribers
# ---------------------------------------------------------------------------


class MemoryEventBus(EventBus):
    """Keeps recent events and fans them out to in-process listeners.

    Usage::

        bus = MemoryEventBus()
        bus.add_listener(lambda event: print(event["result"]), topics=[TOPIC_OUTPUT])
    """

    def __init__(self, max_history: int = 1000) -> None:
        self._max_history = max_history
        self.history: list[dict[str, Any]] = []
        self._listeners: list[tuple[Callable[[dict[str, Any]], Any], set[str] | None]] = []
        self._queues: list[tuple[asyncio.Queue[dict[str, Any]], set[str]]] = []

    def add_listener(
        self, callback: Callable[[dict[str, Any]], Any], topics: list[str] | None = None
    ) -> None:
        self._listeners.append((callback, set(topics) if topics else None))

    async def emit(self, topic: str, event: dict[str, Any]) -> None:
        self._stamp(topic, event)
        self.history.append(event)
        if len(self.history) > self._max_history:
            del self.history[: len(self.history) - self._max_history]

        for callback, topics in self._listeners:
            if topics is not None and topic not in topics:
                continue
            try:
                outcome = callback(event)
                if asyncio.iscoroutine(outcome):
                    await outcome
            except Exception as exc:
                log.warning("event_listener_failed", topic=topic, error=str(exc))

        for queue, topics in self._queues:
            if topic in topics:
                queue.put_nowait(event)

    async def subscribe(self, topics: list[str]) -> AsyncIterator[dict[str, Any]]:
        queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue()
        entry = (queue, set(topics))
        self._queues.append(entry)
        try:
            while True:
                yield await queue.get()
        finally:
            self._queues.remove(entry)

    def events(self, topic: str | None = None) -> list[dict[str, Any]]:
        if topic is None:
            return list(self.history)
        return [e for e in self.history if e.get("_topic") == topic]

    def results(self) -> list[str]:
        """Result strings of every output event so far, in order."""
        return [e["result"] for e in self.events(TOPIC_OUTPUT)]


# ---------------------------------------------------------------------------
# FanoutEventBus
# ---------------------------------------------------------------------------


class FanoutEventBus(EventBus):
    """Routes each event to multiple EventBus backends in parallel."""

    def __init__(self, backends: list[EventBus]) -> None:
        self._backends = backends

    async def emit(self, topic: str, event: dict[str, Any]) -> None:
        self._stamp(topic, event)
        await asyncio.gather(
            *(b.emit(topic, dict(event)) for b in self._backends),
            return_exceptions=True,
        )
