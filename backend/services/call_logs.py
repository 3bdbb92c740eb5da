from datetime import datetime, timezone
from threading import Lock


class CallLog:
    """In-memory record of webhook activity shown on the dashboard."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._entries: list[dict] = []

    def record(self, **fields) -> dict:
        entry = {'timestamp': datetime.now(timezone.utc).isoformat(), **fields}
        with self._lock:
            self._entries.append(entry)
        return entry

    def recent(self, limit: int) -> list[dict]:
        with self._lock:
            return list(reversed(self._entries[-limit:])) if limit > 0 else []

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
