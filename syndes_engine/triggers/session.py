"""Trigger scripts — Script session manager.

``start(text)`` parses a script, allocates a ``script-N`` session and walks
its blocks.  Each condition goes to the runtimes named in the header:

    Executed       actions (or the bare line) are enqueued now
    Scheduled      actions are enqueued when the handle fires
    TriggerError   reported in the log, nothing runs
    no match       a bare line is enqueued now; a block with actions is
                   reported as an unrecognized condition

Every action ends up in the shared command queue tagged with the session
id, so cycles started by a script belong to that script and ``stop(id)``
cancels them along with its scheduled deliveries.  Commands of the session
still waiting in the queue are dropped, and the closed session refuses new
timers from the command that was already running.
"""

from __future__ import annotations

import asyncio
import itertools
from dataclasses import dataclass

from syndes_engine.config import ScriptConfig
from syndes_engine.exceptions import (
    ResourceUnavailableError,
    ScriptParseError,
    UnrecognizedConditionError,
)
from syndes_engine.logging import get_logger
from syndes_engine.orchestration.queue import QueueProcessor
from syndes_engine.orchestration.registry import SessionRegistry
from syndes_engine.protocol.models import SingleCommand
from syndes_engine.triggers.models import (
    Executed,
    ParsedScript,
    Scheduled,
    TriggerBlock,
    TriggerError,
    TriggerMatch,
)
from syndes_engine.triggers.runtime import TriggerRuntime
from syndes_engine.triggers.script import ScriptParser

log = get_logger(__name__)


@dataclass
class _SessionScheduler:
    """Schedules delayed action delivery as handles of one session."""

    session_id: str
    processor: QueueProcessor

    def schedule(self, delay_ms: int, actions: tuple[str, ...], description: str) -> str:
        handle = self.processor.registry.spawn(
            self.session_id,
            self._deliver(delay_ms / 1000, actions),
            description,
            prefix="sch",
        )
        return handle.handle_id

    async def _deliver(self, delay: float, actions: tuple[str, ...]) -> None:
        await asyncio.sleep(delay)
        log.info("scheduled_actions_fired", session_id=self.session_id, actions=len(actions))
        self.processor.enqueue([SingleCommand(a) for a in actions], self.session_id)


class ScriptSessionManager:
    def __init__(
        self,
        processor: QueueProcessor,
        runtimes: dict[str, TriggerRuntime],
        settings: ScriptConfig | None = None,
    ) -> None:
        self._processor = processor
        self._runtimes = runtimes
        self._parser = ScriptParser(settings)
        self._ids = itertools.count(1)
        self._active: set[str] = set()

    @property
    def registry(self) -> SessionRegistry:
        return self._processor.registry

    @property
    def active_sessions(self) -> list[str]:
        return sorted(self._active)

    def is_active(self, session_id: str) -> bool:
        return session_id in self._active

    # ------------------------------------------------------------------
    # Start / stop
    # ------------------------------------------------------------------

    def start(self, text: str) -> tuple[str | None, list[str]]:
        """Start a script.  Returns ``(session_id, log)``; id is None on header errors."""
        try:
            script = self._parser.parse(text)
            runtimes = self._select_runtimes(script)
        except (ScriptParseError, ResourceUnavailableError) as exc:
            log.warning("script_rejected", error=exc.message)
            return None, [f"Error: {exc.message}"]

        session_id = f"script-{next(self._ids)}"
        self.registry.open(session_id)
        self._active.add(session_id)
        scheduler = _SessionScheduler(session_id, self._processor)
        lines = [f"Script started: {session_id}"]

        for block in script.blocks:
            lines.append(self._start_block(block, runtimes, scheduler))

        log.info(
            "script_started",
            session_id=session_id,
            blocks=len(script.blocks),
            scheduled=self.registry.handle_count(session_id),
        )
        return session_id, lines

    def stop(self, session_id: str) -> int:
        """Cancel every handle of *session_id* and drop its queued commands.

        Returns the number of handles cancelled.  Unknown ids cancel nothing.
        """
        cancelled = self.registry.cancel_session(session_id) if session_id in self._active else None
        self._active.discard(session_id)
        if cancelled is None:
            log.info("script_stop_unknown", session_id=session_id)
            return 0
        dropped = self._processor.discard_session(session_id)
        log.info("script_stopped", session_id=session_id, cancelled=cancelled, dropped=dropped)
        return cancelled

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate(self, text: str) -> str:
        """Report unrecognized condition lines.  Never schedules or executes."""
        try:
            script = self._parser.parse(text)
            runtimes = self._select_runtimes(script)
        except (ScriptParseError, ResourceUnavailableError) as exc:
            return f"Error: {exc.message}"

        unrecognized = [
            block.condition
            for block in script.blocks
            if block.actions and self._match(block.condition, runtimes) is None
        ]
        if not unrecognized:
            return "OK: script syntax looks valid (modules found and conditions recognized)"
        return (
            f"Validation: found {len(unrecognized)} unrecognized condition(s):\n"
            + "\n".join(unrecognized)
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _select_runtimes(self, script: ParsedScript) -> list[TriggerRuntime]:
        selected: list[TriggerRuntime] = []
        for name in script.modules:
            runtime = self._runtimes.get(name.lower())
            if runtime is None:
                raise ResourceUnavailableError(f"module '{name}' not found")
            selected.append(runtime)
        return selected

    @staticmethod
    def _match(
        line: str, runtimes: list[TriggerRuntime]
    ) -> tuple[TriggerRuntime, TriggerMatch] | None:
        for runtime in runtimes:
            match = runtime.match(line)
            if match is not None:
                return runtime, match
        return None

    def _require_match(
        self, line: str, runtimes: list[TriggerRuntime]
    ) -> tuple[TriggerRuntime, TriggerMatch]:
        found = self._match(line, runtimes)
        if found is None:
            raise UnrecognizedConditionError(line)
        return found

    def _start_block(
        self, block: TriggerBlock, runtimes: list[TriggerRuntime], scheduler: _SessionScheduler
    ) -> str:
        if not block.actions and self._match(block.condition, runtimes) is None:
            self._processor.inject(block.condition, scheduler.session_id)
            return f"Executed immediate: {block.condition}"
        try:
            runtime, match = self._require_match(block.condition, runtimes)
        except UnrecognizedConditionError as exc:
            log.warning(
                "condition_unrecognized",
                session_id=scheduler.session_id,
                condition=exc.condition,
            )
            return exc.message

        result = runtime.handle(match, block.actions, scheduler)
        if isinstance(result, Executed):
            actions = result.actions or block.actions
            if actions:
                self._processor.enqueue(
                    [SingleCommand(a) for a in actions], scheduler.session_id
                )
            return f"Executed: {result.info}"
        if isinstance(result, Scheduled):
            return f"Scheduled: {result.info} (rid={result.handle_id})"
        if isinstance(result, TriggerError):
            return f"Module error: {result.message}"
        raise TypeError(f"unexpected trigger result {result!r}")
