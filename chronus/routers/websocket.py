"""
WebSocket router for real-time notifications.

Provides a WebSocket endpoint that:
1. Authenticates users via the session token (?token=...)
2. Maintains persistent connections
3. Receives pushed notifications as {"type": "notification", "data": ...}
"""

from uuid import UUID

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect

from chronus.core.security import decode_session_token
from chronus.core.websocket import manager

router = APIRouter(prefix="/ws", tags=["WebSocket"])


def _optional_uuid(value) -> UUID | None:
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        return None


@router.websocket("/notifications")
async def websocket_notifications(
    websocket: WebSocket,
    token: str | None = Query(None),
):
    """Authenticated notification stream. Answers "ping" with "pong"."""
    if not token:
        await websocket.close(code=4001, reason="Authentication required")
        return
    try:
        payload = decode_session_token(token)
        user_id = UUID(payload["sub"])
    except Exception:
        await websocket.close(code=4001, reason="Invalid token")
        return
    org_id = _optional_uuid(payload.get("org_id"))

    await manager.connect(websocket, user_id, org_id)
    try:
        # Keep connection alive, handle heartbeat pings
        while True:
            try:
                data = await websocket.receive_text()
                if data == "ping":
                    await websocket.send_text("pong")
            except WebSocketDisconnect:
                break
    finally:
        await manager.disconnect(websocket, user_id)
