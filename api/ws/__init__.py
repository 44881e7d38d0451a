"""WebSocket broadcast for study presence."""

from api.ws.presence_broadcast import (
    broadcast_presence,
    presence_payload,
    presence_sweeper,
    subscribe_presence,
    sweep_presence,
    unsubscribe_presence,
)

__all__ = ["broadcast_presence", "presence_payload", "presence_sweeper", "subscribe_presence", "sweep_presence", "unsubscribe_presence"]
