"""
Online presence for the study area.

A bounded map keyed by user id. Entries are refreshed by heartbeats and evicted
once they miss the timeout, so abandoned connections cannot accumulate.
Presence is display-only and never read by scoring code.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, List, Optional


@dataclass
class PresenceRecord:
    user_id: int
    connected_at: datetime
    last_seen: float
    connections: int = 1


class PresenceTracker:
    def __init__(
        self,
        timeout_seconds: float = 45.0,
        max_entries: int = 10_000,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], datetime] = datetime.utcnow,
    ):
        self.timeout_seconds = timeout_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._wall_clock = wall_clock
        self._records: Dict[int, PresenceRecord] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def connect(self, user_id: int) -> bool:
        """Track a new connection. Returns False when the tracker is full."""
        now = self._clock()
        with self._lock:
            record = self._records.get(user_id)
            if record is not None:
                record.connections += 1
                record.last_seen = now
                return True
            if len(self._records) >= self.max_entries:
                self._evict_locked(now)
            if len(self._records) >= self.max_entries:
                return False
            self._records[user_id] = PresenceRecord(user_id, self._wall_clock(), now)
            return True

    def heartbeat(self, user_id: int) -> bool:
        with self._lock:
            record = self._records.get(user_id)
            if record is None:
                return False
            record.last_seen = self._clock()
            return True

    def disconnect(self, user_id: int) -> bool:
        """Drop one connection. Returns True when the user went offline."""
        with self._lock:
            record = self._records.get(user_id)
            if record is None:
                return False
            record.connections -= 1
            if record.connections <= 0:
                del self._records[user_id]
                return True
            return False

    def evict_expired(self, now: Optional[float] = None) -> List[int]:
        with self._lock:
            return self._evict_locked(self._clock() if now is None else now)

    def _evict_locked(self, now: float) -> List[int]:
        expired = [uid for uid, r in self._records.items() if now - r.last_seen > self.timeout_seconds]
        for uid in expired:
            del self._records[uid]
        return expired

    def is_online(self, user_id: int) -> bool:
        with self._lock:
            return user_id in self._records

    def online_user_ids(self) -> List[int]:
        with self._lock:
            return sorted(self._records)
