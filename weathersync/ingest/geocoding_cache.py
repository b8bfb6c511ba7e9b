"""Bounded, thread-safe TTL cache for geocoding lookups."""

import threading
import time
from collections import OrderedDict
from collections.abc import Callable
from typing import Any


class GeocodingCache:
    """In-process cache keyed case-insensitively.

    Scheduled and on-demand paths share one instance, so every access goes
    through a lock. Oldest entries are evicted once ``max_entries`` is hit.
    """

    def __init__(
        self,
        ttl_seconds: float = 3600.0,
        max_entries: int = 256,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: OrderedDict[str, tuple[float, Any]] = OrderedDict()

    @staticmethod
    def normalize(key: str) -> str:
        return key.strip().lower()

    def get(self, key: str) -> Any | None:
        k = self.normalize(key)
        with self._lock:
            entry = self._entries.get(k)
            if entry is None:
                return None
            expires_at, value = entry
            if self._clock() >= expires_at:
                del self._entries[k]
                return None
            return value

    def put(self, key: str, value: Any) -> None:
        k = self.normalize(key)
        with self._lock:
            self._entries.pop(k, None)
            self._entries[k] = (self._clock() + self.ttl_seconds, value)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
