"""
WebSocket endpoint for real-time updates.

Connect with: ws://host/api/v1/ws?token=<access_token>

Client messages:
- {"type": "ping"} -> {"type": "pong"}

Server pushes task, comment, chat and channel events (see EventType) and a
keep-alive ping whenever the socket has been quiet for
WS_PING_INTERVAL_SECONDS.
"""
import asyncio
import json
from typing import Optional

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, Query, status

from teamdesk.core.config import settings
from teamdesk.core.database import get_session_local
from teamdesk.core.logging_config import logger
from teamdesk.modules.auth.dependencies import get_user_from_token
from teamdesk.services.connection_manager import connection_manager, build_frame, EventType


router = APIRouter()


@router.websocket("/ws")
async def realtime_websocket(
    websocket: WebSocket,
    token: Optional[str] = Query(None)
):
    user = None
    if token:
        async with get_session_local()() as db:
            user = await get_user_from_token(token, db)

    if user is None:
        logger.log_auth_event("ws_connect", success=False, reason="invalid_token")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason="Invalid token")
        return

    user_id = user.id
    await connection_manager.connect(websocket, user_id)

    try:
        while True:
            try:
                raw = await asyncio.wait_for(
                    websocket.receive_text(),
                    timeout=settings.WS_PING_INTERVAL_SECONDS
                )
            except asyncio.TimeoutError:
                await websocket.send_json(build_frame(EventType.PING))
                continue

            try:
                message = json.loads(raw)
                message_type = message.get("type")
            except (ValueError, AttributeError):
                await websocket.send_json(build_frame(EventType.ERROR, message="Failed to process message"))
                continue

            if message_type == "ping":
                await websocket.send_json(build_frame(EventType.PONG))
            else:
                logger.debug(f"[WS] Ignoring message type {message_type!r} from user {user_id}")

    except WebSocketDisconnect:
        pass
    finally:
        await connection_manager.disconnect(websocket, user_id)
