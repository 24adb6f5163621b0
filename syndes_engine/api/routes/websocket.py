"""WS /ws/output — live stream of engine output lines.

``WebSocketEventBus`` forwards every event it receives to the connected
clients; the server puts it in a ``FanoutEventBus`` next to the optional
NDJSON log.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from syndes_engine.api.schemas import WSMessage
from syndes_engine.events.bus import EventBus
from syndes_engine.logging import get_logger

log = get_logger(__name__)
router = APIRouter(tags=["websocket"])


class ConnectionManager:
    """Tracks WebSocket connections, optionally filtered by session id."""

    def __init__(self) -> None:
        self._connections: dict[str, list[WebSocket]] = {}

    async def connect(self, websocket: WebSocket, session_id: str | None = None) -> None:
        await websocket.accept()
        self._connections.setdefault(session_id or "__all__", []).append(websocket)
        log.debug("ws_connected", session_id=session_id)

    def disconnect(self, websocket: WebSocket, session_id: str | None = None) -> None:
        connections = self._connections.get(session_id or "__all__", [])
        if websocket in connections:
            connections.remove(websocket)
        log.debug("ws_disconnected", session_id=session_id)

    async def broadcast(self, message: WSMessage, session_id: str | None = None) -> None:
        targets: list[tuple[WebSocket, str | None]] = []
        if session_id:
            targets.extend((ws, session_id) for ws in self._connections.get(session_id, []))
        targets.extend((ws, None) for ws in self._connections.get("__all__", []))

        payload = message.model_dump_json()
        dead: list[tuple[WebSocket, str | None]] = []
        for ws, key in targets:
            try:
                await ws.send_text(payload)
            except Exception:
                dead.append((ws, key))
        for ws, key in dead:
            self.disconnect(ws, key)


class WebSocketEventBus(EventBus):
    def __init__(self, connection_manager: ConnectionManager) -> None:
        self._manager = connection_manager

    async def emit(self, topic: str, event: dict[str, Any]) -> None:
        self._stamp(topic, event)
        msg = WSMessage(type=str(event.get("event", topic)), payload=dict(event))
        try:
            await self._manager.broadcast(msg, session_id=event.get("session_id"))
        except Exception as exc:
            log.warning("ws_broadcast_failed", topic=topic, error=str(exc))


async def _serve(websocket: WebSocket, manager: ConnectionManager, session_id: str | None) -> None:
    await manager.connect(websocket, session_id)
    try:
        while True:
            data = await websocket.receive_text()
            if data == "ping":
                await websocket.send_text("pong")
    except WebSocketDisconnect:
        manager.disconnect(websocket, session_id)


@router.websocket("/ws/output")
async def stream_all(websocket: WebSocket) -> None:
    await _serve(websocket, websocket.app.state.ws_manager, None)


@router.websocket("/ws/sessions/{session_id}")
async def stream_session(websocket: WebSocket, session_id: str) -> None:
    await _serve(websocket, websocket.app.state.ws_manager, session_id)
