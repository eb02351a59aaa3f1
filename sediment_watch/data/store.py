from __future__ import annotations

import threading
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence


Row = Mapping[str, Any]


class StoreError(RuntimeError):
    """Raised when the reading store cannot be reached or rejects a query."""


class ReadingStore(Protocol):
    """Backing time-series store of turbidity readings.

    Rows are mappings with ``id``, ``value`` and ``created_at`` keys.
    """

    def fetch_range(
        self,
        start: Optional[datetime],
        end: Optional[datetime],
        limit: int,
        descending: bool = True,
    ) -> Sequence[Row]: ...

    def fetch_since(self, cursor_id: int) -> Sequence[Row]: ...

    def fetch_latest_id(self) -> Optional[int]: ...


class InMemoryReadingStore:
    """List-backed store used for replays and tests."""

    def __init__(self, rows: Optional[Sequence[Row]] = None) -> None:
        self._lock = threading.RLock()
        self._rows: List[Dict[str, Any]] = [dict(r) for r in rows or []]
        self._failures = 0
        self.calls: List[str] = []

    def insert(self, value: float, created_at: Optional[datetime] = None) -> int:
        with self._lock:
            next_id = max((int(r["id"]) for r in self._rows), default=0) + 1
            ts = created_at or datetime.now(timezone.utc)
            self._rows.append({"id": next_id, "value": value, "created_at": ts.isoformat()})
            return next_id

    def fail_next(self, n: int = 1) -> None:
        with self._lock:
            self._failures = n

    def _enter(self, name: str) -> None:
        self.calls.append(name)
        if self._failures > 0:
            self._failures -= 1
            raise StoreError(f"{name}: simulated store outage")

    def fetch_range(
        self,
        start: Optional[datetime],
        end: Optional[datetime],
        limit: int,
        descending: bool = True,
    ) -> List[Dict[str, Any]]:
        with self._lock:
            self._enter("fetch_range")
            rows = [r for r in self._rows if _in_range(r, start, end)]
            rows.sort(key=lambda r: _parse_ts(r["created_at"]), reverse=True)
            rows = rows[:limit]
            return rows if descending else list(reversed(rows))

    def fetch_since(self, cursor_id: int) -> List[Dict[str, Any]]:
        with self._lock:
            self._enter("fetch_since")
            return sorted(
                (r for r in self._rows if int(r["id"]) > cursor_id),
                key=lambda r: int(r["id"]),
            )

    def fetch_latest_id(self) -> Optional[int]:
        with self._lock:
            self._enter("fetch_latest_id")
            return max((int(r["id"]) for r in self._rows), default=None)


def _parse_ts(value: Any) -> datetime:
    ts = value if isinstance(value, datetime) else datetime.fromisoformat(str(value))
    return ts if ts.tzinfo else ts.replace(tzinfo=timezone.utc)


def _in_range(row: Row, start: Optional[datetime], end: Optional[datetime]) -> bool:
    ts = _parse_ts(row["created_at"])
    if start is not None and ts < start:
        return False
    if end is not None and ts > end:
        return False
    return True
