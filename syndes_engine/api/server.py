"""API layer — FastAPI application factory.

``create_app()`` is the single entry point for building the FastAPI app.
Tests pass their own ``Settings`` or a ready ``Engine``.
"""

from __future__ import annotations

from fastapi import FastAPI

from syndes_engine import __version__
from syndes_engine.api.middleware import (
    AccessLogMiddleware,
    RequestIDMiddleware,
    build_error_handler,
)
from syndes_engine.api.routes import health, interactions, queue, sessions, websocket
from syndes_engine.api.routes.websocket import ConnectionManager, WebSocketEventBus
from syndes_engine.config import Settings, get_settings
from syndes_engine.engine import Engine
from syndes_engine.events.bus import EventBus, FanoutEventBus, LogEventBus
from syndes_engine.exceptions import SyndesError
from syndes_engine.logging import configure_logging, get_logger

log = get_logger(__name__)


def create_app(settings: Settings | None = None, engine: Engine | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Optional settings override (used in tests).
        engine:   Optional pre-built engine; its event bus is used as is.
    """
    if settings is None:
        settings = engine.settings if engine is not None else get_settings()

    configure_logging(
        level=settings.logging.level,
        format=settings.logging.format,
        log_file=str(settings.logging.file) if settings.logging.file else None,
    )

    app = FastAPI(
        title="Syndes Engine",
        description="Command queue and trigger-script execution engine.",
        version=__version__,
    )

    app.add_middleware(AccessLogMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_exception_handler(SyndesError, build_error_handler())  # type: ignore[arg-type]

    app.include_router(health.router)
    app.include_router(queue.router)
    app.include_router(sessions.router)
    app.include_router(interactions.router)
    app.include_router(websocket.router)

    ws_manager = ConnectionManager()
    if engine is None:
        backends: list[EventBus] = [WebSocketEventBus(ws_manager)]
        if settings.logging.events_file:
            backends.append(LogEventBus(settings.logging.events_file))
        engine = Engine(settings, event_bus=FanoutEventBus(backends))

    app.state.settings = settings
    app.state.engine = engine
    app.state.ws_manager = ws_manager

    @app.on_event("startup")
    async def startup() -> None:
        log.info(
            "engine_starting",
            version=__version__,
            workspace=str(settings.workspace.work_dir) if settings.workspace.work_dir else None,
            shell_enabled=settings.backends.shell_enabled,
        )

    @app.on_event("shutdown")
    async def shutdown() -> None:
        report = await engine.stop_queue()
        log.info("engine_stopped", **report.to_dict())

    return app
