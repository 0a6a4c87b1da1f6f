"""
Realtime WebSocket endpoint.

Connect: WS {api_prefix}/ws?token=<jwt>. Frames are JSON objects of the form
``{"event": "bug:join", "data": {"bugId": "..."}}``.
"""

import json
from typing import Any, Optional

import structlog
from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect

from ..core.errors import AuthenticationError
from ..dependencies import load_user_from_token
from .presence import PresenceHub

logger = structlog.get_logger()

router = APIRouter(tags=["realtime"])

AUTH_FAILED_CLOSE_CODE = 4001


@router.websocket("/ws")
async def realtime_endpoint(websocket: WebSocket, token: str = Query("")):
    state = websocket.app.state
    presence: PresenceHub = state.presence

    with state.session_factory() as db:
        try:
            user = load_user_from_token(db, token, state.settings)
        except AuthenticationError as exc:
            logger.info("realtime_auth_failed", reason=exc.message)
            await websocket.close(code=AUTH_FAILED_CLOSE_CODE, reason=exc.message)
            return
        user_id, name, email = user.id, user.name, user.email

    await websocket.accept()
    connection = await presence.connect(user_id, name, email, websocket.send_json)
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000))
            # binary frames are treated as malformed
            frame = _decode_frame(message.get("text"))
            await presence.handle_message(connection.id, frame)
    except WebSocketDisconnect:
        pass
    finally:
        await presence.disconnect(connection.id)


def _decode_frame(raw: Optional[str]) -> Any:
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except ValueError:
        return None
