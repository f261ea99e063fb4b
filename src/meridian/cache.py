"""Read-through rate cache.

The cache is advisory: the rate store stays authoritative and any entry may
disappear at any time. Backends raise CacheUnavailable when they cannot be
reached; callers treat that as a miss.
"""

import threading
import time
from abc import ABC, abstractmethod
from datetime import date
from typing import Any, Callable


def make_cache_key(prefix: str, base: str, target: str, on: date) -> str:
    """Build "{prefix}.{base}.{target}.{YYYY-MM-DD}"."""
    return f"{prefix}.{base}.{target}.{on.isoformat()}"


class RateCache(ABC):
    """Narrow key/value interface in front of the rate store."""

    @abstractmethod
    def get(self, key: str) -> Any | None:
        """Return the cached value, or None on a miss."""

    @abstractmethod
    def put(self, key: str, value: Any, ttl_seconds: int) -> None:
        """Store value for ttl_seconds."""

    @abstractmethod
    def forget(self, key: str) -> None:
        """Drop key if present."""


class InMemoryRateCache(RateCache):
    """Process-local TTL cache guarded by a lock.

    Keys are date-stamped, so the key space grows every day. Expired entries
    are purged on each put, and past `max_items` the oldest insert is evicted.
    """

    def __init__(self, max_items: int = 10_000, clock: Callable[[], float] = time.monotonic):
        self._max_items = max(1, max_items)
        self._clock = clock
        self._entries: dict[str, tuple[float, Any]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Any | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                return None
            return value

    def put(self, key: str, value: Any, ttl_seconds: int) -> None:
        if ttl_seconds <= 0:
            return
        with self._lock:
            now = self._clock()
            self._purge_expired(now)
            # re-insert so a refreshed key moves to the back of the eviction order
            self._entries.pop(key, None)
            self._entries[key] = (now + ttl_seconds, value)
            while len(self._entries) > self._max_items:
                del self._entries[next(iter(self._entries))]

    def _purge_expired(self, now: float) -> None:
        expired = [key for key, (expires_at, _) in self._entries.items() if now >= expires_at]
        for key in expired:
            del self._entries[key]

    def forget(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


class NullRateCache(RateCache):
    """Cache that never stores anything."""

    def get(self, key: str) -> Any | None:
        return None

    def put(self, key: str, value: Any, ttl_seconds: int) -> None:
        pass

    def forget(self, key: str) -> None:
        pass
