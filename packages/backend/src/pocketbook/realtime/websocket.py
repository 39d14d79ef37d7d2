"""WebSocket endpoint — live change notifications for the browser client.

Learn: Each tab connects to /ws and then sends
    {"type": "authenticate", "user_id": "<id>"}   (or "token": "<jwt>")
to join its user's channel. From then on it receives frames like
    {"event": "expense:created", "data": {...}}
whenever that user's data changes, from any device.

There is no acknowledgement for authenticate; a bad credential is just
ignored. {"type": "ping"} answers {"type": "pong"} for heartbeats.
However the socket ends, the connection is unregistered.
"""

import asyncio
import json
from typing import Any, Optional

import structlog
from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from starlette.websockets import WebSocketState

from pocketbook.realtime.connection import Connection
from pocketbook.realtime.hub import RealtimeHub

logger = structlog.get_logger()
router = APIRouter()

AUTH_TIMEOUT_CLOSE_CODE = 4008


@router.websocket("/ws")
async def realtime_websocket(websocket: WebSocket):
    hub: RealtimeHub = websocket.app.state.realtime

    await websocket.accept()
    connection = hub.lifecycle.connect(websocket)

    loop = asyncio.get_running_loop()
    deadline = None
    if hub.auth_timeout_seconds > 0:
        deadline = loop.time() + hub.auth_timeout_seconds

    try:
        while True:
            timeout = None
            if deadline is not None and not connection.is_authenticated:
                timeout = max(deadline - loop.time(), 0)
            text = await asyncio.wait_for(_receive_text(websocket), timeout)
            if text is None:
                continue
            await _handle_message(hub, connection, websocket, text)
    except WebSocketDisconnect:
        pass
    except asyncio.TimeoutError:
        logger.info("realtime.authenticate_timeout", connection_id=connection.id)
        await websocket.close(code=AUTH_TIMEOUT_CLOSE_CODE, reason="Authentication timeout")
    finally:
        hub.lifecycle.disconnect(connection)
        if (
            websocket.application_state == WebSocketState.CONNECTED
            and websocket.client_state == WebSocketState.CONNECTED
        ):
            await websocket.close()


async def _receive_text(websocket: WebSocket) -> Optional[str]:
    """Next text frame; None for binary frames. Raises on disconnect."""
    message = await websocket.receive()
    if message["type"] == "websocket.disconnect":
        raise WebSocketDisconnect(message.get("code", 1000))
    return message.get("text")


async def _handle_message(
    hub: RealtimeHub,
    connection: Connection,
    websocket: WebSocket,
    text: str,
) -> None:
    msg = _parse(text)
    if msg is None:
        return

    kind = msg.get("type")
    if kind == "authenticate":
        credential = msg.get("token") or msg.get("user_id")
        hub.lifecycle.authenticate(connection, credential)
    elif kind == "ping":
        await websocket.send_text(json.dumps({"type": "pong"}))


def _parse(text: str) -> Optional[dict[str, Any]]:
    try:
        msg = json.loads(text)
    except json.JSONDecodeError:
        return None
    return msg if isinstance(msg, dict) else None
