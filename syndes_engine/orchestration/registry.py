"""Orchestration layer — Session registry.

Every delayed or repeating delivery (cycle timers, ``cycle next`` watchers,
watchdogs, scheduled trigger actions) runs as an asyncio task wrapped in a
``ScheduledHandle``.  Each handle belongs to exactly one session:

    console      commands typed into the interactive queue
    script-N     a running trigger script

Handles remove themselves from their session when their task finishes,
whether it fired or was cancelled, so the registry never holds dangling
entries.  ``cancel_session()`` / ``cancel_all()`` iterate over a snapshot
taken under the lock, so timers may register or finish concurrently.

A session must be opened before handles can be spawned in it, and
``cancel_session()`` closes it again.  A stopped script therefore cannot
grow new timers from commands it had already queued.
"""

from __future__ import annotations

import asyncio
import itertools
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Coroutine

from syndes_engine.exceptions import ResourceUnavailableError
from syndes_engine.logging import get_logger

log = get_logger(__name__)

CONSOLE_SESSION = "console"


@dataclass(eq=False)
class ScheduledHandle:
    """Cancellable reference to a pending timer or watcher task."""

    handle_id: str
    session_id: str
    description: str
    run_at: float | None = None
    created_at: float = field(default_factory=time.time)
    _task: asyncio.Task[Any] | None = field(default=None, repr=False)

    @property
    def done(self) -> bool:
        return self._task is None or self._task.done()

    def cancel(self) -> bool:
        """Cancel the underlying task.  Returns False if it already finished."""
        if self._task is None or self._task.done():
            return False
        return self._task.cancel()

    def to_dict(self) -> dict[str, Any]:
        return {
            "handle_id": self.handle_id,
            "session_id": self.session_id,
            "description": self.description,
            "run_at": self.run_at,
            "created_at": self.created_at,
        }


class SessionRegistry:
    """Thread-safe map of session id → {handle id → ScheduledHandle}."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._sessions: dict[str, dict[str, ScheduledHandle]] = {CONSOLE_SESSION: {}}
        self._ids = itertools.count(1)

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def open(self, session_id: str) -> None:
        with self._lock:
            self._sessions.setdefault(session_id, {})

    def has(self, session_id: str) -> bool:
        with self._lock:
            return session_id in self._sessions

    def session_ids(self) -> list[str]:
        with self._lock:
            return list(self._sessions)

    def handles(self, session_id: str) -> list[ScheduledHandle]:
        with self._lock:
            return list(self._sessions.get(session_id, {}).values())

    def handle_count(self, session_id: str | None = None) -> int:
        with self._lock:
            if session_id is not None:
                return len(self._sessions.get(session_id, {}))
            return sum(len(h) for h in self._sessions.values())

    # ------------------------------------------------------------------
    # Handles
    # ------------------------------------------------------------------

    def spawn(
        self,
        session_id: str,
        coro: Coroutine[Any, Any, Any],
        description: str,
        *,
        prefix: str = "sch",
        run_at: float | None = None,
    ) -> ScheduledHandle:
        """Start *coro* as a task and register it under *session_id*.

        Must be called from within the running event loop.

        Raises:
            ResourceUnavailableError: *session_id* is not open (never opened,
                or already stopped).  *coro* is closed without running.
        """
        handle = ScheduledHandle(
            handle_id=f"{prefix}-{session_id}-{next(self._ids)}",
            session_id=session_id,
            description=description,
            run_at=run_at,
        )
        with self._lock:
            handles = self._sessions.get(session_id)
            if handles is None:
                coro.close()
                raise ResourceUnavailableError(
                    f"session '{session_id}' is not active",
                    context={"session_id": session_id},
                )
            task = asyncio.get_running_loop().create_task(coro)
            handle._task = task
            handles[handle.handle_id] = handle
        task.add_done_callback(lambda t, h=handle: self._on_done(h, t))
        log.debug("handle_registered", session_id=session_id, handle_id=handle.handle_id)
        return handle

    def remove(self, session_id: str, handle_id: str) -> bool:
        with self._lock:
            handles = self._sessions.get(session_id)
            if handles is None:
                return False
            return handles.pop(handle_id, None) is not None

    def _on_done(self, handle: ScheduledHandle, task: asyncio.Task[Any]) -> None:
        self.remove(handle.session_id, handle.handle_id)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            log.error(
                "scheduled_task_failed",
                session_id=handle.session_id,
                handle_id=handle.handle_id,
                error=str(exc),
            )

    # ------------------------------------------------------------------
    # Cancellation
    # ------------------------------------------------------------------

    def cancel_session(self, session_id: str, *, drop: bool = True) -> int | None:
        """Cancel every handle of *session_id*.

        Returns the number of handles cancelled, or None if the session is
        unknown.  With ``drop=True`` the session itself is removed.
        """
        with self._lock:
            if session_id not in self._sessions:
                return None
            if drop and session_id != CONSOLE_SESSION:
                snapshot = list(self._sessions.pop(session_id).values())
            else:
                snapshot = list(self._sessions[session_id].values())
                self._sessions[session_id].clear()
        cancelled = sum(1 for handle in snapshot if handle.cancel())
        log.info("session_handles_cancelled", session_id=session_id, cancelled=cancelled)
        return cancelled

    def cancel_all(self) -> int:
        """Cancel every handle in every session; sessions stay registered."""
        with self._lock:
            snapshot = [h for handles in self._sessions.values() for h in handles.values()]
            for handles in self._sessions.values():
                handles.clear()
        return sum(1 for handle in snapshot if handle.cancel())
