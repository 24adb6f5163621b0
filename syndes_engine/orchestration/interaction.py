"""Orchestration layer — Interaction gate.

Some commands cannot finish without a person: a ``button`` prompt waits for
a choice, and commands listed in ``queue.interactive_commands`` wait for a
confirmation.  The InteractionGate coordinates those waits between the
command (which awaits) and the API or CLI (which answers).

Each pending request is a single-shot ``asyncio.Future``:

    gate = InteractionGate()
    choice = await gate.request("button ...", "Continue?", ["Yes", "No"])

    # elsewhere
    gate.complete(request_id, "Yes")

A global stop calls ``cancel_all()``, which fails every pending future with
``InteractionCancelledError`` so a suspended command never hangs.
"""

from __future__ import annotations

import asyncio
import itertools
import time
from dataclasses import dataclass, field
from typing import Any

from syndes_engine.events.bus import TOPIC_INTERACTIONS, EventBus, NullEventBus
from syndes_engine.exceptions import InteractionCancelledError
from syndes_engine.logging import get_logger

log = get_logger(__name__)


@dataclass
class InteractionRequest:
    """Describes a command waiting for a response."""

    request_id: str
    command: str
    prompt: str
    options: list[str] = field(default_factory=list)
    session_id: str | None = None
    requested_at: float = field(default_factory=time.time)

    def to_dict(self) -> dict[str, Any]:
        return {
            "request_id": self.request_id,
            "command": self.command,
            "prompt": self.prompt,
            "options": list(self.options),
            "session_id": self.session_id,
            "requested_at": self.requested_at,
        }


class _PendingEntry:
    __slots__ = ("request", "future")

    def __init__(self, request: InteractionRequest, future: asyncio.Future[str]) -> None:
        self.request = request
        self.future = future


class InteractionGate:
    """Single-event-loop coordinator for interactive waits."""

    def __init__(self, event_bus: EventBus | None = None) -> None:
        self._pending: dict[str, _PendingEntry] = {}
        self._ids = itertools.count(1)
        self._listeners: list[asyncio.Queue[InteractionRequest]] = []
        self._bus = event_bus or NullEventBus()

    # ------------------------------------------------------------------
    # Command side
    # ------------------------------------------------------------------

    async def request(
        self,
        command: str,
        prompt: str,
        options: list[str] | None = None,
        session_id: str | None = None,
    ) -> str:
        """Block until a response arrives for this request.

        Raises:
            InteractionCancelledError: ``cancel_all()`` was called first.
        """
        request = InteractionRequest(
            request_id=f"int-{next(self._ids)}",
            command=command,
            prompt=prompt,
            options=list(options or []),
            session_id=session_id,
        )
        future: asyncio.Future[str] = asyncio.get_running_loop().create_future()
        self._pending[request.request_id] = _PendingEntry(request, future)
        log.info(
            "interaction_pending",
            request_id=request.request_id,
            command=command,
            options=request.options,
        )
        for listener in self._listeners:
            listener.put_nowait(request)
        try:
            await self._bus.emit(
                TOPIC_INTERACTIONS, {"event": "interaction_pending", **request.to_dict()}
            )
            return await future
        finally:
            self._pending.pop(request.request_id, None)

    # ------------------------------------------------------------------
    # Responder side
    # ------------------------------------------------------------------

    def complete(self, request_id: str, response: str) -> bool:
        """Resolve a pending request.  Returns False if it is unknown or done."""
        entry = self._pending.get(request_id)
        if entry is None or entry.future.done():
            return False
        entry.future.set_result(response)
        log.info("interaction_completed", request_id=request_id, response=response)
        return True

    def cancel_all(self, reason: str = "stopped by user") -> int:
        """Fail every pending wait with ``InteractionCancelledError``."""
        cancelled = 0
        for request_id, entry in list(self._pending.items()):
            if not entry.future.done():
                entry.future.set_exception(InteractionCancelledError(request_id, reason))
                cancelled += 1
        if cancelled:
            log.info("interactions_cancelled", count=cancelled, reason=reason)
        return cancelled

    def pending(self) -> list[InteractionRequest]:
        return [entry.request for entry in self._pending.values() if not entry.future.done()]

    def get(self, request_id: str) -> InteractionRequest | None:
        entry = self._pending.get(request_id)
        return entry.request if entry else None

    @property
    def pending_count(self) -> int:
        return len(self.pending())

    def listen(self) -> asyncio.Queue[InteractionRequest]:
        """Return a queue that receives every new request (CLI prompt loop)."""
        queue: asyncio.Queue[InteractionRequest] = asyncio.Queue()
        self._listeners.append(queue)
        return queue

    def unlisten(self, queue: asyncio.Queue[InteractionRequest]) -> None:
        if queue in self._listeners:
            self._listeners.remove(queue)
