"""In-memory cache with per-entry TTL and prefix invalidation."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

from mindtrack.errors import CacheMiss

KEY_SEPARATOR = ":"


def user_prefix(user_id: str) -> str:
    """Namespace shared by every cached view of one user.

    The id is percent-encoded, so an id containing the separator (``a:b``)
    never falls under another user's prefix (``a:``).
    """
    return f"{quote(user_id, safe='')}{KEY_SEPARATOR}"


def cache_key(user_id: str, *shape: object) -> str:
    """Build ``<user_id>:<shape...>`` keys, e.g. ``u1:month:2025-03``."""
    return user_prefix(user_id) + KEY_SEPARATOR.join(str(part) for part in shape)


@dataclass
class CacheEntry:
    value: Any
    created_at: float
    ttl: float

    def is_expired(self, now: float) -> bool:
        return now - self.created_at > self.ttl


class CacheStore:
    """Process-wide key/value store owned by one tracker session.

    Entries older than their TTL are treated as absent and dropped on the
    next access. There is no capacity limit; record sets are per-user and
    small. The lock keeps reads and invalidations ordered when the store is
    shared across threads.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._invalidations = 0

    def lookup(self, key: str) -> Any:
        """Return the live value for ``key`` or raise CacheMiss."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                raise CacheMiss(key)
            if entry.is_expired(self._clock()):
                del self._entries[key]
                self._misses += 1
                raise CacheMiss(key)
            self._hits += 1
            return entry.value

    def get(self, key: str, default: Any = None) -> Any:
        """Return the live value for ``key``, or ``default``."""
        try:
            return self.lookup(key)
        except CacheMiss:
            return default

    def set(self, key: str, value: Any, ttl: float) -> None:
        """Store ``value`` for ``ttl`` seconds, replacing any existing entry."""
        with self._lock:
            self._entries[key] = CacheEntry(value=value, created_at=self._clock(), ttl=ttl)

    def invalidate(self, key: str) -> bool:
        """Remove one entry. Absent keys are ignored."""
        with self._lock:
            removed = self._entries.pop(key, None) is not None
            if removed:
                self._invalidations += 1
        if removed:
            logging.debug("Cache invalidated: %s", key)
        return removed

    def invalidate_prefix(self, prefix: str) -> int:
        """Remove every entry whose key starts with ``prefix``."""
        with self._lock:
            doomed = [key for key in self._entries if key.startswith(prefix)]
            for key in doomed:
                del self._entries[key]
            self._invalidations += len(doomed)
        if doomed:
            logging.debug("Cache invalidated %d entries under %r", len(doomed), prefix)
        return len(doomed)

    def clear(self) -> None:
        """Drop every entry. Hit and miss counters are kept."""
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        logging.info("Cleared all cache (%d entries)", count)

    def keys(self) -> list[str]:
        """Keys of live entries. Does not evict."""
        now = self._clock()
        with self._lock:
            return [key for key, entry in self._entries.items() if not entry.is_expired(now)]

    def stats(self) -> dict[str, Any]:
        """Entry counts and lookup statistics, without evicting anything."""
        now = self._clock()
        with self._lock:
            total = len(self._entries)
            valid = sum(1 for entry in self._entries.values() if not entry.is_expired(now))
            lookups = self._hits + self._misses
            return {
                "total_entries": total,
                "valid_entries": valid,
                "expired_entries": total - valid,
                "hits": self._hits,
                "misses": self._misses,
                "hit_rate": round(self._hits / lookups, 3) if lookups else 0.0,
                "invalidations": self._invalidations,
            }

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
