from __future__ import annotations

import time
from dataclasses import dataclass
from threading import Lock
from typing import Callable


@dataclass
class _Connection:
    opened_at: float
    last_seen: float
    active: bool = True


class SessionRegistry:
    """Connection bookkeeping behind /healthz and the inactive-session sweep."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._lock = Lock()
        self._connections: dict[str, _Connection] = {}

    def register(self, session_id: str) -> None:
        now = self._clock()
        with self._lock:
            self._connections[session_id] = _Connection(opened_at=now, last_seen=now)

    def touch(self, session_id: str) -> None:
        with self._lock:
            conn = self._connections.get(session_id)
            if conn is not None:
                conn.last_seen = self._clock()

    def mark_inactive(self, session_id: str) -> None:
        with self._lock:
            conn = self._connections.get(session_id)
            if conn is not None:
                conn.active = False
                conn.last_seen = self._clock()

    def active_count(self) -> int:
        with self._lock:
            return sum(1 for conn in self._connections.values() if conn.active)

    def cleanup_inactive(self, ttl_sec: float) -> int:
        cutoff = self._clock() - max(30.0, float(ttl_sec))
        with self._lock:
            stale = [
                session_id
                for session_id, conn in self._connections.items()
                if not conn.active and conn.last_seen <= cutoff
            ]
            for session_id in stale:
                del self._connections[session_id]
        return len(stale)


session_registry = SessionRegistry()
