"""Script session endpoints.

    GET    /sessions               — active script sessions and their handles
    POST   /sessions               — start a script
    DELETE /sessions/{session_id}  — stop a script
    POST   /scripts/validate       — report unrecognized conditions
"""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, status

from syndes_engine.api.dependencies import EngineDep
from syndes_engine.api.schemas import (
    ScriptRequest,
    SessionStartResponse,
    SessionStopResponse,
    SessionSummary,
    ValidationResponse,
)

router = APIRouter(tags=["sessions"])


@router.get("/sessions", response_model=list[SessionSummary])
async def list_sessions(engine: EngineDep) -> list[SessionSummary]:
    return [
        SessionSummary(
            session_id=sid,
            handles=[h.to_dict() for h in engine.registry.handles(sid)],
        )
        for sid in engine.sessions.active_sessions
    ]


@router.post(
    "/sessions", response_model=SessionStartResponse, status_code=status.HTTP_201_CREATED
)
async def start_session(body: ScriptRequest, engine: EngineDep) -> SessionStartResponse:
    session_id, lines = await engine.start_session(body.script)
    if session_id is None:
        raise HTTPException(status_code=400, detail=lines[0] if lines else "Error: invalid script")
    return SessionStartResponse(session_id=session_id, log=lines)


@router.delete("/sessions/{session_id}", response_model=SessionStopResponse)
async def stop_session(session_id: str, engine: EngineDep) -> SessionStopResponse:
    if not engine.sessions.is_active(session_id):
        raise HTTPException(status_code=404, detail=f"No such active script: {session_id}")
    report = await engine.stop_session(session_id)
    return SessionStopResponse(session_id=session_id, report=report)


@router.post("/scripts/validate", response_model=ValidationResponse)
async def validate_script(body: ScriptRequest, engine: EngineDep) -> ValidationResponse:
    report = engine.validate(body.script)
    return ValidationResponse(ok=report.startswith("OK"), report=report)
