"""Command queue endpoints.

    GET  /queue        — queue status and last execution record
    POST /queue        — tokenize text and enqueue the resulting items
    POST /queue/stop   — global stop
"""

from __future__ import annotations

from fastapi import APIRouter, status

from syndes_engine.api.dependencies import EngineDep
from syndes_engine.api.schemas import (
    EnqueuedItem,
    EnqueueRequest,
    EnqueueResponse,
    QueueStatusResponse,
    StopQueueResponse,
)
from syndes_engine.protocol.models import CommandItem, ParallelGroup

router = APIRouter(prefix="/queue", tags=["queue"])


def _to_schema(item: CommandItem) -> EnqueuedItem:
    if isinstance(item, ParallelGroup):
        return EnqueuedItem(type="parallel", commands=list(item.commands))
    return EnqueuedItem(
        type="single",
        text=item.text,
        background=item.background,
        conditional_next=item.conditional_next,
    )


@router.get("", response_model=QueueStatusResponse)
async def queue_status(engine: EngineDep) -> QueueStatusResponse:
    history = engine.processor.history
    return QueueStatusResponse(
        running=engine.processor.is_running,
        pending=engine.processor.pending,
        background=engine.processor.background_count,
        processed=history.processed_count,
        last_command=history.last_command,
        last_result=history.last_result,
    )


@router.post("", response_model=EnqueueResponse, status_code=status.HTTP_202_ACCEPTED)
async def enqueue(body: EnqueueRequest, engine: EngineDep) -> EnqueueResponse:
    items = engine.enqueue(body.text)
    return EnqueueResponse(items=[_to_schema(i) for i in items], pending=engine.processor.pending)


@router.post("/stop", response_model=StopQueueResponse)
async def stop_queue(engine: EngineDep) -> StopQueueResponse:
    report = await engine.stop_queue()
    return StopQueueResponse(message=report.summary(), **report.to_dict())
