"""
Bounded, time-expiring response cache.
"""

import threading
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional, Tuple

from shared.logging import get_logger


@dataclass(frozen=True)
class CacheEntry:
    """A stored upstream response."""

    status: int
    headers: Dict[str, str] = field(default_factory=dict)
    body: str = ""


def make_cache_key(method: str, target_url: str) -> str:
    """Build the cache key for a method and resolved target."""
    return f"{method}:{target_url}"


class ResponseCache:
    """
    In-memory LRU cache with a per-entry time-to-live.

    Capacity bounds the number of entries; once exceeded the least recently
    used entry is evicted. An entry older than ``ttl_seconds`` is a miss even
    if it is still resident. All operations hold a single lock.
    """

    def __init__(self, max_entries: int = 1000, ttl_seconds: float = 30.0,
                 clock: Callable[[], float] = time.monotonic):
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self.logger = get_logger("proxy.response_cache")
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: "OrderedDict[str, Tuple[float, CacheEntry]]" = OrderedDict()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def get(self, key: str) -> Optional[CacheEntry]:
        """Return the live entry for ``key`` and mark it recently used."""
        with self._lock:
            item = self._entries.get(key)
            if item is None:
                self._misses += 1
                return None

            expires_at, entry = item
            if self._clock() >= expires_at:
                del self._entries[key]
                self._misses += 1
                return None

            self._entries.move_to_end(key)
            self._hits += 1
            return entry

    def set(self, key: str, entry: CacheEntry) -> None:
        """Store ``entry`` under ``key``, evicting the LRU entry when full."""
        with self._lock:
            self._entries[key] = (self._clock() + self.ttl_seconds, entry)
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                evicted_key, _ = self._entries.popitem(last=False)
                self._evictions += 1
                self.logger.debug("Evicted cache entry", key=evicted_key)

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __contains__(self, key: str) -> bool:
        # Does not refresh recency or count as a lookup
        with self._lock:
            item = self._entries.get(key)
            return item is not None and self._clock() < item[0]

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def stats(self) -> Dict[str, int]:
        with self._lock:
            return {
                "size": len(self._entries),
                "max_entries": self.max_entries,
                "hits": self._hits,
                "misses": self._misses,
                "evictions": self._evictions,
            }
