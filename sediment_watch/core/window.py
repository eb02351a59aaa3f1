from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from typing import Deque, Iterable, List, Optional


class InvariantViolation(ValueError):
    """Raised when a batch would break the ascending-id ordering of the window."""


@dataclass(frozen=True)
class Reading:
    id: int
    value: float
    timestamp: datetime
    # Value as reported by the sensor, before any polarity inversion
    raw_value: Optional[float] = None


class WindowBuffer:
    """Bounded window of readings, strictly ascending by id.

    The oldest readings are evicted first once `capacity` is exceeded.
    """

    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self._capacity: int = capacity
        self._buffer: Deque[Reading] = deque()
        self._lock = threading.RLock()

    def replace(self, readings: Iterable[Reading]) -> None:
        batch = list(readings)
        _check_ascending(batch, None)
        with self._lock:
            self._buffer = deque(batch[-self._capacity:])

    def append(self, readings: Iterable[Reading]) -> List[Reading]:
        """Append an ascending batch and return the readings evicted from the front.

        The whole batch is rejected with `InvariantViolation` if any id is not
        above the current maximum id; the window is left untouched in that case.
        """
        batch = list(readings)
        with self._lock:
            _check_ascending(batch, self.max_id())
            self._buffer.extend(batch)
            evicted: List[Reading] = []
            while len(self._buffer) > self._capacity:
                evicted.append(self._buffer.popleft())
            return evicted

    def size(self) -> int:
        with self._lock:
            return len(self._buffer)

    def capacity(self) -> int:
        return self._capacity

    def max_id(self) -> Optional[int]:
        with self._lock:
            return self._buffer[-1].id if self._buffer else None

    def snapshot(self) -> List[Reading]:
        with self._lock:
            return list(self._buffer)

    def values(self) -> List[float]:
        with self._lock:
            return [r.value for r in self._buffer]

    def tail(self, n: int) -> List[Reading]:
        with self._lock:
            if n <= 0:
                return []
            return list(self._buffer)[-n:]


def _check_ascending(batch: List[Reading], floor_id: Optional[int]) -> None:
    prev = floor_id
    for r in batch:
        if prev is not None and r.id <= prev:
            raise InvariantViolation(f"reading id {r.id} is not above {prev}")
        prev = r.id
