"""Orchestration layer — Queue processor.

The QueueProcessor owns the command queue and a single drain task that
consumes it in FIFO order:

    SingleCommand              dispatched and awaited; the execution record
                               and the processed counter are updated
    SingleCommand (background) started as a separate task; counted as
                               processed at dispatch time, recorded when
                               it finishes
    ParallelGroup              members run concurrently and the drain waits
                               for all of them (barrier); counted by group
                               size afterwards
    if / else                  evaluated inline by the condition chain,
                               background flag ignored

Every dispatched unit produces one output event on ``syndes.output``.  A
failure inside one item becomes an ``Error: ...`` result and the loop
carries on; only ``stop()`` ends it early.

``stop()`` empties the queue, fails every pending interaction, cancels the
drain task, background tasks and every scheduled handle of every session.
Enqueueing afterwards starts a fresh drain task.
"""

from __future__ import annotations

import asyncio
from collections import deque
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, NamedTuple

from syndes_engine.config import QueueConfig
from syndes_engine.events.bus import TOPIC_OUTPUT, EventBus, NullEventBus
from syndes_engine.exceptions import InteractionCancelledError, SyndesError
from syndes_engine.logging import bind_command_context, clear_command_context, get_logger
from syndes_engine.orchestration.conditions import ConditionEvaluator
from syndes_engine.orchestration.control import ControlCommands
from syndes_engine.orchestration.cycles import CycleEngine
from syndes_engine.orchestration.executor import BackendChain, CommandContext, command_name
from syndes_engine.orchestration.history import ExecutionHistory
from syndes_engine.orchestration.interaction import InteractionGate
from syndes_engine.orchestration.registry import CONSOLE_SESSION, SessionRegistry
from syndes_engine.protocol.models import (
    CommandItem,
    ParallelGroup,
    SingleCommand,
    classify_result,
)
from syndes_engine.protocol.parser import CommandParser

log = get_logger(__name__)


class _QueueEntry(NamedTuple):
    item: CommandItem
    session_id: str


@dataclass
class StopReport:
    """What a global stop cancelled."""

    cleared: int = 0
    drain_cancelled: bool = False
    background_cancelled: int = 0
    interactions_cancelled: int = 0
    handles_cancelled: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "cleared": self.cleared,
            "drain_cancelled": self.drain_cancelled,
            "background_cancelled": self.background_cancelled,
            "interactions_cancelled": self.interactions_cancelled,
            "handles_cancelled": self.handles_cancelled,
        }

    def summary(self) -> str:
        return (
            f"Info: queue stopped ({self.cleared} queued item(s) dropped, "
            f"{self.background_cancelled} background task(s) and "
            f"{self.handles_cancelled} scheduled task(s) cancelled)"
        )


class QueueProcessor:
    """Sequential drain loop over a FIFO of command items."""

    def __init__(
        self,
        executor: BackendChain,
        settings: QueueConfig | None = None,
        *,
        registry: SessionRegistry | None = None,
        gate: InteractionGate | None = None,
        history: ExecutionHistory | None = None,
        event_bus: EventBus | None = None,
        parser: CommandParser | None = None,
        working_dir: Path | None = None,
    ) -> None:
        self._settings = settings or QueueConfig()
        self._executor = executor
        self.registry = registry or SessionRegistry()
        self.gate = gate or InteractionGate()
        self.history = history or ExecutionHistory()
        self._bus = event_bus or NullEventBus()
        self._parser = parser or CommandParser()
        self._working_dir = working_dir

        self.conditions = ConditionEvaluator(self.history)
        self.cycles = CycleEngine(
            self.history,
            self.registry,
            self.inject,
            poll_interval=self._settings.cycle_poll_interval,
        )
        self._control = ControlCommands(self)

        self._queue: deque[_QueueEntry] = deque()
        self._drain_task: asyncio.Task[None] | None = None
        self._background: set[asyncio.Task[Any]] = set()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self._drain_task is not None and not self._drain_task.done()

    @property
    def pending(self) -> int:
        return len(self._queue)

    @property
    def background_count(self) -> int:
        return len(self._background)

    def enqueue(self, items: Iterable[CommandItem], session_id: str | None = None) -> int:
        """Append *items* and start the drain task if it is idle.

        Must be called from within the running event loop.
        """
        owner = session_id or CONSOLE_SESSION
        added = 0
        for item in items:
            self._queue.append(_QueueEntry(item, owner))
            added += 1
        if added:
            self._ensure_draining()
        return added

    def enqueue_text(self, raw: str, session_id: str | None = None) -> list[CommandItem]:
        items = self._parser.parse(raw)
        self.enqueue(items, session_id)
        return items

    def inject(self, command: str, session_id: str) -> None:
        """Append a single foreground command (cycles, watchdogs, triggers)."""
        log.debug("command_injected", command=command, session_id=session_id)
        self.enqueue([SingleCommand(command)], session_id)

    def discard_session(self, session_id: str) -> int:
        """Drop every queued item owned by *session_id*; returns how many."""
        kept = [entry for entry in self._queue if entry.session_id != session_id]
        dropped = len(self._queue) - len(kept)
        if dropped:
            self._queue.clear()
            self._queue.extend(kept)
            log.info("session_items_discarded", session_id=session_id, dropped=dropped)
        return dropped

    async def wait_idle(self) -> None:
        """Wait until the queue is drained and no background task is running."""
        while True:
            task = self._drain_task
            if task is not None and not task.done():
                await asyncio.wait({task})
                continue
            if self._background:
                await asyncio.wait(set(self._background))
                continue
            if self._queue:
                self._ensure_draining()
                continue
            return

    async def stop(self) -> StopReport:
        """Global stop.  Safe to call repeatedly.

        Items enqueued while the stop is in progress are kept and run by a
        fresh drain task once the stop completes.
        """
        report = StopReport(cleared=len(self._queue))
        self._queue.clear()

        # Fail interactive waits before cancelling the drain task, which
        # would otherwise cancel the awaited future silently.
        report.interactions_cancelled = self.gate.cancel_all()
        task = self._drain_task
        if task is not None and not task.done():
            task.cancel()
            report.drain_cancelled = True

        background = [t for t in self._background if not t.done()]
        for bg in background:
            bg.cancel()
        report.background_cancelled = len(background)
        report.handles_cancelled = self.registry.cancel_all()

        pending = [t for t in [task, *background] if t is not None]
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._background.difference_update(background)
        if self._drain_task is task:
            self._drain_task = None
        self.conditions.break_chain()
        if self._queue:
            self._ensure_draining()

        log.info("queue_stopped", **report.to_dict())
        return report

    # ------------------------------------------------------------------
    # Drain loop
    # ------------------------------------------------------------------

    def _ensure_draining(self) -> None:
        if self.is_running:
            return
        self._drain_task = asyncio.get_running_loop().create_task(self._drain())

    async def _drain(self) -> None:
        try:
            while self._queue:
                entry = self._queue.popleft()
                try:
                    await self._process(entry)
                except asyncio.CancelledError:
                    raise
                except Exception as exc:
                    log.error("queue_item_failed", error=str(exc), item=repr(entry.item))
                    await self.announce(
                        _describe(entry.item),
                        f"Error: failed to execute item: {exc}",
                        entry.session_id,
                    )
                finally:
                    clear_command_context()
        finally:
            if self._drain_task is asyncio.current_task():
                self._drain_task = None

    async def _process(self, entry: _QueueEntry) -> None:
        item = entry.item
        if isinstance(item, ParallelGroup):
            await self._run_parallel(item, entry.session_id)
            return

        if self.conditions.is_conditional(item.text):
            outcome = await self.conditions.evaluate(
                item.text, lambda cmd: self.run_command(cmd, entry.session_id)
            )
            if not outcome.executed:
                await self.announce(item.text, outcome.result, entry.session_id)
            self.history.record_execution(outcome.command, outcome.result)
            self.history.advance(1)
            return

        self.conditions.break_chain()

        if item.background:
            task = asyncio.get_running_loop().create_task(
                self._run_background(item.text, entry.session_id)
            )
            self._background.add(task)
            task.add_done_callback(self._background.discard)
            # Counted when started, not when finished.
            self.history.advance(1)
            return

        result = await self.run_command(item.text, entry.session_id)
        self.history.record_execution(item.text, result)
        self.history.advance(1)

    async def _run_background(self, command: str, session_id: str) -> None:
        result = await self.run_command(command, session_id)
        self.history.record_execution(command, result)

    async def _run_parallel(self, group: ParallelGroup, session_id: str) -> None:
        blocked = [cmd for cmd in group.commands if self.requires_interaction(cmd)]
        if blocked:
            await self.announce(
                _describe(group),
                "Error: cannot run interactive commands in parallel group "
                f"({', '.join(blocked)}); skipping parallel group",
                session_id,
            )
            return

        self.conditions.break_chain()
        results = await asyncio.gather(
            *(self.run_command(cmd, session_id) for cmd in group.commands),
            return_exceptions=True,
        )
        last: str | None = None
        for cmd, res in zip(group.commands, results):
            if isinstance(res, BaseException):
                last = f"Error (parallel): {res}"
                await self.announce(cmd, last, session_id)
            else:
                last = res
        self.history.record_execution(group.commands[-1], last)
        self.history.advance(len(group))

    # ------------------------------------------------------------------
    # Single-command path
    # ------------------------------------------------------------------

    def requires_interaction(self, command: str) -> bool:
        return (
            command_name(command) in self._settings.interactive_commands
            or self._control.requires_interaction(command)
            or self._executor.requires_interaction(command)
        )

    def make_context(self, session_id: str) -> CommandContext:
        return CommandContext(
            session_id=session_id, gate=self.gate, working_dir=self._working_dir
        )

    async def run_command(self, command: str, session_id: str) -> str | None:
        """Dispatch *command* and publish its output line."""
        result = await self.dispatch(command, self.make_context(session_id))
        await self.announce(command, result, session_id)
        return result

    async def dispatch(self, command: str, context: CommandContext) -> str | None:
        """Run one command, converting every failure except cancellation to text."""
        bind_command_context(session_id=context.session_id, command=command)
        try:
            if self._control.accepts(command):
                return await self._control.execute(command, context)
            if command_name(command) in self._settings.interactive_commands:
                answer = await context.wait_for_interaction(
                    command, f"Confirm: {command}", ["yes", "no"]
                )
                if answer.strip().lower() not in self._settings.confirm_words:
                    return f"Info: cancelled by user: {command}"
            return await self._executor.execute(command, context)
        except asyncio.CancelledError:
            raise
        except InteractionCancelledError as exc:
            return f"Error: {exc.message}"
        except SyndesError as exc:
            return f"Error: {exc.message}"
        except Exception as exc:
            log.exception("command_failed", command=command)
            return f"Error: command execution failed: {exc}"

    async def announce(self, command: str, result: str | None, session_id: str) -> None:
        """Publish one human-readable output line."""
        kind = classify_result(result)
        if kind is None:
            return
        await self._bus.emit(
            TOPIC_OUTPUT,
            {
                "event": "output",
                "command": command,
                "result": result,
                "kind": kind.value,
                "session_id": session_id,
            },
        )


def _describe(item: CommandItem) -> str:
    if isinstance(item, ParallelGroup):
        return "parallel: " + "; ".join(item.commands)
    return item.text
