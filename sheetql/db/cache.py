from __future__ import annotations

import threading
import time
from collections import OrderedDict
from collections.abc import Callable

import pandas as pd

"""Bounded frame cache (table name -> DataFrame).

- capacity: least-recently-used entry is evicted on overflow
- ttl_seconds: entries expire after insertion + ttl; checked on access only
  (no background sweeper)
- synchronous, guarded by its own threading.Lock
"""

__all__ = [
    "FrameCache",
]


class FrameCache:
    def __init__(
        self,
        capacity: int = 10,
        ttl_seconds: float = 1800.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if capacity <= 0:
            raise ValueError(f"capacity must be positive: {capacity}")
        if ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be positive: {ttl_seconds}")
        self.capacity = capacity
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: OrderedDict[str, tuple[float, pd.DataFrame]] = OrderedDict()

    def put(self, key: str, frame: pd.DataFrame) -> None:
        with self._lock:
            expires_at = self._clock() + self.ttl_seconds
            self._entries[key] = (expires_at, frame)
            self._entries.move_to_end(key)
            while len(self._entries) > self.capacity:
                self._entries.popitem(last=False)

    def get(self, key: str) -> pd.DataFrame | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, frame = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                return None
            self._entries.move_to_end(key)
            return frame

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        # 期限切れを含む件数 (受動的失効のため)
        with self._lock:
            return len(self._entries)
