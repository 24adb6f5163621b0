"""Engine facade — one object wiring every component together.

    engine = Engine(settings)
    engine.enqueue("echo hi; cycle 3t 1s=date")
    session_id, log = engine.start_session(script_text)
    await engine.wait_idle()
    await engine.stop_queue()

All methods must be called from within the running event loop because
they may start tasks.
"""

from __future__ import annotations

from datetime import datetime
from typing import Callable

from syndes_engine.backends import ClockBackend, EchoBackend, ShellBackend
from syndes_engine.config import Settings
from syndes_engine.events.bus import TOPIC_SESSIONS, EventBus, NullEventBus
from syndes_engine.logging import get_logger
from syndes_engine.orchestration.executor import BackendChain
from syndes_engine.orchestration.interaction import InteractionGate
from syndes_engine.orchestration.queue import QueueProcessor, StopReport
from syndes_engine.orchestration.registry import SessionRegistry
from syndes_engine.protocol.models import CommandItem
from syndes_engine.triggers.runtime import build_runtimes
from syndes_engine.triggers.session import ScriptSessionManager
from syndes_engine.triggers.workspace import Workspace

log = get_logger(__name__)


def default_backends(settings: Settings) -> BackendChain:
    """Backends enabled by *settings*, in priority order."""
    chain = BackendChain([EchoBackend(), ClockBackend()])
    if settings.backends.shell_enabled:
        chain.register(ShellBackend(timeout=settings.backends.shell_timeout))
    return chain


class Engine:
    def __init__(
        self,
        settings: Settings | None = None,
        executor: BackendChain | None = None,
        event_bus: EventBus | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.settings = settings or Settings()
        self.event_bus = event_bus or NullEventBus()
        self.workspace = Workspace.from_config(
            self.settings.workspace.work_dir, self.settings.workspace.current_dir
        )
        self.registry = SessionRegistry()
        self.gate = InteractionGate(self.event_bus)
        self.processor = QueueProcessor(
            executor or default_backends(self.settings),
            self.settings.queue,
            registry=self.registry,
            gate=self.gate,
            event_bus=self.event_bus,
            working_dir=self.workspace.current if self.workspace else None,
        )
        self.sessions = ScriptSessionManager(
            self.processor,
            build_runtimes(self.settings.scripts.available_runtimes, self.workspace, clock),
            self.settings.scripts,
        )

    # ------------------------------------------------------------------
    # Command queue
    # ------------------------------------------------------------------

    def enqueue(self, raw_text: str) -> list[CommandItem]:
        items = self.processor.enqueue_text(raw_text)
        log.debug("text_enqueued", items=len(items))
        return items

    async def stop_queue(self) -> StopReport:
        return await self.processor.stop()

    async def wait_idle(self) -> None:
        await self.processor.wait_idle()

    # ------------------------------------------------------------------
    # Script sessions
    # ------------------------------------------------------------------

    async def start_session(self, text: str) -> tuple[str | None, list[str]]:
        session_id, lines = self.sessions.start(text)
        if session_id is not None:
            await self.event_bus.emit(
                TOPIC_SESSIONS, {"event": "session_started", "session_id": session_id, "log": lines}
            )
        return session_id, lines

    async def stop_session(self, session_id: str) -> str:
        if not self.sessions.is_active(session_id):
            return f"No such active script: {session_id}"
        cancelled = self.sessions.stop(session_id)
        await self.event_bus.emit(
            TOPIC_SESSIONS,
            {"event": "session_stopped", "session_id": session_id, "cancelled": cancelled},
        )
        return f"Stopped script {session_id} and cancelled {cancelled} scheduled task(s)"

    def validate(self, text: str) -> str:
        return self.sessions.validate(text)
