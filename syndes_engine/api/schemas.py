"""API layer — Request and response schemas."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    error: str
    code: str
    detail: Any | None = None
    request_id: str | None = None


class HealthResponse(BaseModel):
    status: str
    version: str
    uptime_seconds: float
    queue_running: bool
    queue_pending: int
    active_sessions: int
    pending_interactions: int
    shell_enabled: bool = False
    workspace_configured: bool = False


# ---------------------------------------------------------------------------
# Queue
# ---------------------------------------------------------------------------


class EnqueueRequest(BaseModel):
    text: str = Field(..., min_length=1, description="Raw command text, possibly multi-line.")


class EnqueuedItem(BaseModel):
    type: str
    text: str | None = None
    commands: list[str] | None = None
    background: bool = False
    conditional_next: bool = False


class EnqueueResponse(BaseModel):
    items: list[EnqueuedItem]
    pending: int


class QueueStatusResponse(BaseModel):
    running: bool
    pending: int
    background: int
    processed: int
    last_command: str | None = None
    last_result: str | None = None


class StopQueueResponse(BaseModel):
    message: str
    cleared: int
    drain_cancelled: bool
    background_cancelled: int
    interactions_cancelled: int
    handles_cancelled: int


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------


class ScriptRequest(BaseModel):
    script: str = Field(..., min_length=1)


class SessionStartResponse(BaseModel):
    session_id: str
    log: list[str]


class SessionSummary(BaseModel):
    session_id: str
    handles: list[dict[str, Any]]


class SessionStopResponse(BaseModel):
    session_id: str
    report: str


class ValidationResponse(BaseModel):
    ok: bool
    report: str


# ---------------------------------------------------------------------------
# Interactions
# ---------------------------------------------------------------------------


class InteractionResponseRequest(BaseModel):
    response: str = Field(..., min_length=1)


class InteractionListResponse(BaseModel):
    interactions: list[dict[str, Any]]
    total: int


class WSMessage(BaseModel):
    type: str
    payload: dict[str, Any] = Field(default_factory=dict)
