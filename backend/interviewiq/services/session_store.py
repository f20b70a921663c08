import asyncio
import json
import time
from pathlib import Path
from threading import Lock
from typing import Any

from core.config import SESSION_STORE_PATH
from interviewiq.errors import PersistenceError


class SessionRecordStore:
    """Append-only JSON-lines file of finished interview sessions."""

    def __init__(self, path: Path = SESSION_STORE_PATH):
        self.path = Path(path)
        self._lock = Lock()

    def _append_sync(self, record: dict[str, Any]) -> None:
        line = json.dumps(record, ensure_ascii=False, default=str)
        with self._lock:
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                with self.path.open("a", encoding="utf-8") as handle:
                    handle.write(line + "\n")
            except OSError as exc:
                raise PersistenceError(f"cannot append session record: {exc}") from exc

    async def append(self, record: dict[str, Any]) -> None:
        payload = dict(record or {})
        payload.setdefault("timestamp", time.time())
        await asyncio.to_thread(self._append_sync, payload)

    def read_all(self) -> list[dict[str, Any]]:
        if not self.path.exists():
            return []
        rows = []
        with self._lock:
            for line in self.path.read_text(encoding="utf-8").splitlines():
                if not line.strip():
                    continue
                try:
                    item = json.loads(line)
                except ValueError:
                    continue
                if isinstance(item, dict):
                    rows.append(item)
        return rows

    def get(self, session_id: str) -> dict[str, Any] | None:
        sid = str(session_id or "").strip()
        if not sid:
            return None
        for item in reversed(self.read_all()):
            if str(item.get("sessionId") or "") == sid:
                return item
        return None
