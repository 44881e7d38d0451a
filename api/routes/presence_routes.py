"""
Study presence: who is online right now. Display only.

WebSocket /study/presence/ws
  Auth: cookie access_token or query ?token=.
  Client sends {"type": "heartbeat"} at least every PRESENCE_TIMEOUT_SECONDS.
  Server broadcasts {"type": "presence:update", "onlineUserIds": [...], "timestamp": ...}
  whenever someone joins or leaves.
"""

import json
from datetime import datetime

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from sqlalchemy.orm import Session as DBSession

from api.bootstrap import presence_tracker
from api.config import get_db
from api.schemas.study_schemas import PresenceResponse
from api.schemas.user_schemas import User
from api.utils.auth import get_current_user, get_user_from_websocket
from api.utils.logger import configure_logging
from api.ws.presence_broadcast import (
    broadcast_presence,
    presence_payload,
    refresh_presence,
    subscribe_presence,
    unsubscribe_presence,
)

presence_routes = APIRouter()
logger = configure_logging()


@presence_routes.get("/presence")
def get_presence(current_user: User = Depends(get_current_user)) -> PresenceResponse:
    online = presence_tracker.online_user_ids()
    return PresenceResponse(online_user_ids=online, count=len(online), timestamp=datetime.utcnow())


@presence_routes.websocket("/presence/ws")
async def presence_websocket(websocket: WebSocket, db: DBSession = Depends(get_db)):
    user = get_user_from_websocket(websocket, db)
    db.close()
    if user is None:
        return  # do not accept; client gets connection rejected
    await websocket.accept()
    if not subscribe_presence(user.id, websocket):
        logger.warning("presence full user_id=%s online=%s", user.id, len(presence_tracker))
        await websocket.close(code=1013)
        return
    logger.info("presence join user_id=%s online=%s", user.id, len(presence_tracker))
    try:
        await broadcast_presence()
        while True:
            raw = await websocket.receive_text()
            try:
                message = json.loads(raw)
            except ValueError:
                message = {"type": raw.strip()}
            if isinstance(message, dict) and message.get("type") == "heartbeat":
                if refresh_presence(user.id):
                    await broadcast_presence()
            elif isinstance(message, dict) and message.get("type") == "presence:sync":
                await websocket.send_json(presence_payload())
    except WebSocketDisconnect:
        pass
    finally:
        went_offline = unsubscribe_presence(user.id, websocket)
        logger.info("presence leave user_id=%s offline=%s", user.id, went_offline)
        if went_offline:
            await broadcast_presence()
