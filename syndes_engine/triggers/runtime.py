"""Trigger scripts — Condition runtimes.

A runtime recognises condition lines and decides what happens to the
actions of a block.  ``code1`` understands::

    if time HH:MM                   next occurrence of that wall-clock time
    wait:<N> sec | wait <N>[s|m|h]  after a relative delay
    if exists <path>                now, if the path resolves
    if size <cmp> <N>[K|M] <path>   now, if the (recursive) size compares true

``match()`` returns None for lines it does not understand so the caller can
try another runtime or treat the line as a plain command.  ``handle()``
never raises: failures come back as ``TriggerError``.
"""

from __future__ import annotations

import operator
import re
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Callable, Protocol

from syndes_engine.exceptions import SyndesError
from syndes_engine.logging import get_logger
from syndes_engine.protocol.units import parse_bytes, parse_wait_ms
from syndes_engine.triggers.models import (
    Executed,
    Scheduled,
    TriggerError,
    TriggerMatch,
    TriggerResult,
)
from syndes_engine.triggers.workspace import Workspace, require_workspace

log = get_logger(__name__)

Clock = Callable[[], datetime]


class ActionScheduler(Protocol):
    def schedule(self, delay_ms: int, actions: tuple[str, ...], description: str) -> str:
        """Deliver *actions* after *delay_ms*; return the handle id."""


class TriggerRuntime(ABC):
    """Base class for condition runtimes named in a script header."""

    name: str = "runtime"

    @abstractmethod
    def match(self, line: str) -> TriggerMatch | None:
        """Recognise *line*, or return None."""

    @abstractmethod
    def handle(
        self, match: TriggerMatch, actions: tuple[str, ...], scheduler: ActionScheduler
    ) -> TriggerResult:
        """Act on a recognised condition."""


# ---------------------------------------------------------------------------
# code1
# ---------------------------------------------------------------------------

_TIME = re.compile(r"^if\s+time\s+(\d{1,2}):(\d{2})\s*$", re.IGNORECASE)
_WAIT = re.compile(
    r"^wait\s*:?\s*(\d+)\s*(ms|s|secs?|seconds?|m|mins?|minutes?|h|hrs?|hours?)?\s*$",
    re.IGNORECASE,
)
_EXISTS = re.compile(r"^if\s+exists\s+(.+)$", re.IGNORECASE)
_SIZE = re.compile(r"^if\s+size\s*(>=|<=|>|<|=)\s*([\dKMkm]+)\s+(.+)$", re.IGNORECASE)

_COMPARATORS = {
    ">": operator.gt,
    "<": operator.lt,
    ">=": operator.ge,
    "<=": operator.le,
    "=": operator.eq,
}


class Code1Runtime(TriggerRuntime):
    name = "code1"

    def __init__(self, workspace: Workspace | None = None, clock: Clock | None = None) -> None:
        self._workspace = workspace
        self._clock = clock or datetime.now

    def match(self, line: str) -> TriggerMatch | None:
        text = line.strip()
        for kind, pattern in (("time", _TIME), ("wait", _WAIT), ("exists", _EXISTS), ("size", _SIZE)):
            m = pattern.match(text)
            if m:
                groups = tuple(g if g is not None else "" for g in m.groups())
                return TriggerMatch(kind=kind, groups=groups, line=text)
        return None

    def handle(
        self, match: TriggerMatch, actions: tuple[str, ...], scheduler: ActionScheduler
    ) -> TriggerResult:
        try:
            handler = getattr(self, f"_handle_{match.kind}")
            return handler(match, actions, scheduler)
        except SyndesError as exc:
            return TriggerError(exc.message)
        except OSError as exc:
            return TriggerError(f"module error: {exc}")

    # ------------------------------------------------------------------

    def _handle_time(
        self, match: TriggerMatch, actions: tuple[str, ...], scheduler: ActionScheduler
    ) -> TriggerResult:
        hour = min(max(int(match.groups[0]), 0), 23)
        minute = min(max(int(match.groups[1]), 0), 59)
        now = self._clock()
        target = now.replace(hour=hour, minute=minute, second=0, microsecond=0)
        if target <= now:
            target += timedelta(days=1)
        delay_ms = int((target - now).total_seconds() * 1000)
        return self._schedule(delay_ms, target, actions, scheduler, match)

    def _handle_wait(
        self, match: TriggerMatch, actions: tuple[str, ...], scheduler: ActionScheduler
    ) -> TriggerResult:
        delay_ms = parse_wait_ms(match.groups[0], match.groups[1] or None)
        if delay_ms <= 0:
            return TriggerError("bad wait duration")
        target = self._clock() + timedelta(milliseconds=delay_ms)
        return self._schedule(delay_ms, target, actions, scheduler, match)

    def _handle_exists(
        self, match: TriggerMatch, actions: tuple[str, ...], scheduler: ActionScheduler
    ) -> TriggerResult:
        path = match.groups[0].strip()
        found = require_workspace(self._workspace).resolve(path)
        if found is None:
            return TriggerError(f"not found: {path}")
        return Executed(f"exists: {path}", actions)

    def _handle_size(
        self, match: TriggerMatch, actions: tuple[str, ...], scheduler: ActionScheduler
    ) -> TriggerResult:
        cmp, number, path = match.groups[0], match.groups[1], match.groups[2].strip()
        needed = parse_bytes(number)
        workspace = require_workspace(self._workspace)
        found = workspace.resolve(path)
        if found is None:
            return TriggerError(f"not found: {path}")
        size = workspace.total_size(found)
        if _COMPARATORS[cmp](size, needed):
            return Executed(f"size check passed ({size} bytes for {path})", actions)
        return TriggerError(f"size check failed ({size} bytes for {path}, need {cmp} {needed})")

    def _schedule(
        self,
        delay_ms: int,
        target: datetime,
        actions: tuple[str, ...],
        scheduler: ActionScheduler,
        match: TriggerMatch,
    ) -> Scheduled:
        handle_id = scheduler.schedule(delay_ms, actions, match.line)
        log.debug("trigger_scheduled", kind=match.kind, delay_ms=delay_ms, handle_id=handle_id)
        return Scheduled(
            info=f"scheduled at {target:%Y-%m-%d %H:%M:%S}",
            delay_ms=delay_ms,
            run_at=target,
            handle_id=handle_id,
            actions=actions,
        )


def build_runtimes(names: list[str], workspace: Workspace | None, clock: Clock | None = None) -> dict[str, TriggerRuntime]:
    """Instantiate the known runtimes listed in *names* (case-insensitive)."""
    factories: dict[str, Callable[[], TriggerRuntime]] = {
        Code1Runtime.name: lambda: Code1Runtime(workspace, clock),
    }
    return {n.lower(): factories[n.lower()]() for n in names if n.lower() in factories}
