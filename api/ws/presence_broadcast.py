"""
In-memory WebSocket subscribers for study presence.
Whenever the online set changes, every subscriber receives a `presence:update`.
Fire-and-forget: failed sends drop the socket, nothing is retried.
"""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Any

from fastapi import WebSocket

from api.bootstrap import presence_tracker, retry_dirty_achievements
from api.utils.common import iso_format
from api.utils.logger import configure_logging

logger = configure_logging()

# user_id -> set of WebSocket connections
_subscribers: dict[int, set[WebSocket]] = {}


def subscribe_presence(user_id: int, ws: WebSocket) -> bool:
    """Track the socket and its user. Returns False when the tracker is full."""
    if not presence_tracker.connect(user_id):
        return False
    _subscribers.setdefault(user_id, set()).add(ws)
    return True


def unsubscribe_presence(user_id: int, ws: WebSocket) -> bool:
    """Forget the socket. Returns True when the user went offline."""
    sockets = _subscribers.get(user_id)
    if sockets is None or ws not in sockets:
        return False
    sockets.discard(ws)
    if not sockets:
        del _subscribers[user_id]
    return presence_tracker.disconnect(user_id)


def refresh_presence(user_id: int) -> bool:
    """
    Heartbeat from an open socket. A user dropped from the tracker while still
    connected is tracked again, once per open socket. Returns True when that
    brought the user back online.
    """
    if presence_tracker.heartbeat(user_id):
        return False
    sockets = _subscribers.get(user_id)
    if not sockets:
        return False
    for _ in sockets:
        if not presence_tracker.connect(user_id):
            logger.warning("presence full, heartbeat not tracked user_id=%s", user_id)
            break
    return presence_tracker.is_online(user_id)


def presence_payload() -> dict[str, Any]:
    return {
        "type": "presence:update",
        "onlineUserIds": presence_tracker.online_user_ids(),
        "timestamp": iso_format(datetime.utcnow()),
    }


async def broadcast_presence(payload: dict[str, Any] | None = None) -> None:
    """Send the current online set to all subscribers."""
    payload = payload or presence_payload()
    dead: list[tuple[int, WebSocket]] = []
    for user_id, sockets in list(_subscribers.items()):
        for ws in list(sockets):
            try:
                await ws.send_json(payload)
            except Exception:
                dead.append((user_id, ws))
    for user_id, ws in dead:
        unsubscribe_presence(user_id, ws)


async def sweep_presence() -> list[int]:
    """Evict users whose heartbeat timed out and close their sockets."""
    expired = presence_tracker.evict_expired()
    for user_id in expired:
        for ws in list(_subscribers.pop(user_id, set())):
            try:
                await ws.close(code=1001)
            except Exception as e:
                logger.debug("presence close failed user_id=%s error=%s", user_id, e)
    if expired:
        await broadcast_presence()
    return expired


async def presence_sweeper(interval_seconds: float) -> None:
    """
    Background housekeeping until cancelled: evict stale presence entries and
    retry achievement evaluations that failed inside a request.
    """
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            expired = await sweep_presence()
            if expired:
                logger.info("presence sweep evicted=%s online=%s", len(expired), len(presence_tracker))
        except Exception:
            logger.exception("presence sweep failed")
        try:
            await asyncio.to_thread(retry_dirty_achievements)
        except Exception:
            logger.exception("achievement retry sweep failed")
