"""Interactive command endpoints.

    GET  /interactions                — commands waiting for an answer
    POST /interactions/{request_id}   — answer one of them
"""

from __future__ import annotations

from fastapi import APIRouter, HTTPException

from syndes_engine.api.dependencies import EngineDep
from syndes_engine.api.schemas import InteractionListResponse, InteractionResponseRequest
from syndes_engine.events.bus import TOPIC_INTERACTIONS

router = APIRouter(prefix="/interactions", tags=["interactions"])


@router.get("", response_model=InteractionListResponse)
async def list_interactions(engine: EngineDep) -> InteractionListResponse:
    pending = [r.to_dict() for r in engine.gate.pending()]
    return InteractionListResponse(interactions=pending, total=len(pending))


@router.post("/{request_id}")
async def respond(
    request_id: str, body: InteractionResponseRequest, engine: EngineDep
) -> dict[str, str]:
    request = engine.gate.get(request_id)
    if request is None or not engine.gate.complete(request_id, body.response):
        raise HTTPException(
            status_code=404, detail=f"No pending interaction with id '{request_id}'."
        )
    await engine.event_bus.emit(
        TOPIC_INTERACTIONS,
        {
            "event": "interaction_completed",
            "request_id": request_id,
            "command": request.command,
            "session_id": request.session_id,
            "response": body.response,
        },
    )
    return {"request_id": request_id, "status": "completed"}
