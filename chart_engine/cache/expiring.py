"""
Index Chart — Expiring Cache
──────────────────────────────
Key → value store with a per-entry time-to-live.

Expired entries are evicted lazily on read; cleanup() sweeps the rest so
a long-running server doesn't keep keys nobody asks for again.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, Generic, Hashable, Optional, TypeVar

log = logging.getLogger("chart.cache")

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


@dataclass
class CacheEntry(Generic[V]):
    value:      V
    created_at: float
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class ExpiringCache(Generic[K, V]):
    """
    In-memory TTL cache.

    `clock` returns epoch seconds; tests pass a fake one.
    TTLs are seconds.
    """

    def __init__(self, default_ttl: float, clock: Callable[[], float] = time.time):
        if default_ttl <= 0:
            raise ValueError("default_ttl must be positive")
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: Dict[K, CacheEntry[V]] = {}

    def get(self, key: K) -> Optional[V]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_expired(self._clock()):
            self.delete(key)
            return None
        return entry.value

    def set(self, key: K, value: V, ttl: Optional[float] = None):
        now = self._clock()
        self._entries[key] = CacheEntry(
            value=value,
            created_at=now,
            expires_at=now + (self.default_ttl if ttl is None else ttl),
        )

    def delete(self, key: K):
        self._entries.pop(key, None)

    def clear(self):
        self._entries.clear()

    def cleanup(self) -> int:
        """Evict every expired entry. Returns how many were dropped."""
        now = self._clock()
        stale = [k for k, e in self._entries.items() if e.is_expired(now)]
        for k in stale:
            del self._entries[k]
        if stale:
            log.debug(f"Cache cleanup evicted {len(stale)} of {len(stale) + len(self._entries)} entries")
        return len(stale)

    def __contains__(self, key: K) -> bool:
        entry = self._entries.get(key)
        return entry is not None and not entry.is_expired(self._clock())

    def __len__(self) -> int:
        return len(self._entries)

    def live_count(self) -> int:
        """Entries that have not expired yet; nothing is evicted."""
        now = self._clock()
        return sum(1 for e in self._entries.values() if not e.is_expired(now))
