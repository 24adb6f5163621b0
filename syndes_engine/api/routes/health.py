"""GET /health — engine health and queue summary."""

from __future__ import annotations

import time

from fastapi import APIRouter

from syndes_engine import __version__
from syndes_engine.api.dependencies import ConfigDep, EngineDep
from syndes_engine.api.schemas import HealthResponse

router = APIRouter(tags=["health"])

_start_time = time.time()


@router.get("/health", response_model=HealthResponse, summary="Engine health check")
async def health(engine: EngineDep, config: ConfigDep) -> HealthResponse:
    return HealthResponse(
        status="ok",
        version=__version__,
        uptime_seconds=round(time.time() - _start_time, 2),
        queue_running=engine.processor.is_running,
        queue_pending=engine.processor.pending,
        active_sessions=len(engine.sessions.active_sessions),
        pending_interactions=engine.gate.pending_count,
        shell_enabled=config.backends.shell_enabled,
        workspace_configured=config.workspace.work_dir is not None,
    )
