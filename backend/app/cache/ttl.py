"""Process-wide TTL cache shared by retrieval, explainer and document lookups.

Entries are evicted lazily on read; an optional background sweep bounds memory
when reads are rare. One instance is created per application and injected into
every component that needs it (tests build their own).
"""

import asyncio
import hashlib
import logging
import threading
import time
from collections.abc import Callable, Hashable
from dataclasses import dataclass
from typing import Any

from backend.app.utils.metrics import cache_hits_total, cache_misses_total

logger = logging.getLogger(__name__)

CacheKey = tuple[Hashable, ...]


@dataclass
class CacheEntry:
    """Cached value with its absolute expiry instant."""

    value: Any
    expires_at: float

    def is_fresh(self, now: float) -> bool:
        """Check if cache entry is still valid."""
        return now < self.expires_at


def make_prompt_key(prompt: str) -> CacheKey:
    """Build the cache key for a model prompt from its SHA-256 digest."""
    return ("explain", hashlib.sha256(prompt.encode("utf-8")).hexdigest())


def make_clause_key(strategy: str, search_terms: list[str]) -> CacheKey:
    """Build the cache key for a retrieval result.

    Terms are sorted so the same term set hits the same entry regardless of order.
    """
    return ("clauses", strategy, tuple(sorted(search_terms)))


def make_document_names_key(document_ids: list[str]) -> CacheKey:
    """Build the cache key for a document-name lookup."""
    return ("docs", tuple(sorted(set(document_ids))))


def _namespace(key: CacheKey) -> str:
    return str(key[0]) if key else "unknown"


class TTLCache:
    """Thread-safe in-memory cache with per-entry TTL."""

    def __init__(
        self,
        default_ttl_seconds: float = 300,
        clock: Callable[[], float] | None = None,
    ) -> None:
        """Initialize cache.

        Args:
            default_ttl_seconds: TTL applied when set() is called without one
            clock: Injectable monotonic clock (default: time.monotonic)
        """
        self._default_ttl = default_ttl_seconds
        self._clock = clock or time.monotonic
        self._entries: dict[CacheKey, CacheEntry] = {}
        self._mutex = threading.Lock()
        self._key_locks: dict[CacheKey, asyncio.Lock] = {}

    @property
    def default_ttl_seconds(self) -> float:
        return self._default_ttl

    def get(self, key: CacheKey) -> Any | None:
        """Get cached value if fresh, None otherwise."""
        now = self._clock()
        with self._mutex:
            entry = self._entries.get(key)
            if entry is not None and entry.is_fresh(now):
                cache_hits_total.labels(namespace=_namespace(key)).inc()
                return entry.value
            if entry is not None:
                # Expired - remove
                del self._entries[key]
        cache_misses_total.labels(namespace=_namespace(key)).inc()
        return None

    def set(self, key: CacheKey, value: Any, ttl_seconds: float | None = None) -> None:
        """Store value, overwriting any existing entry."""
        ttl = self._default_ttl if ttl_seconds is None else ttl_seconds
        with self._mutex:
            self._entries[key] = CacheEntry(value=value, expires_at=self._clock() + ttl)

    def delete(self, key: CacheKey) -> None:
        with self._mutex:
            self._entries.pop(key, None)

    def clear(self) -> None:
        """Drop every entry (useful for testing).

        Held key locks are kept so callers already waiting on them still
        share one computation.
        """
        with self._mutex:
            self._entries.clear()
            for key in [k for k, lock in self._key_locks.items() if not lock.locked()]:
                del self._key_locks[key]

    def sweep_expired(self) -> int:
        """Purge expired entries.

        Returns:
            Number of entries removed
        """
        now = self._clock()
        with self._mutex:
            expired = [key for key, entry in self._entries.items() if not entry.is_fresh(now)]
            for key in expired:
                del self._entries[key]
            # Locks for keys that are gone and not held can be dropped too
            for key in [k for k, lock in self._key_locks.items() if not lock.locked()]:
                if key not in self._entries:
                    del self._key_locks[key]
        return len(expired)

    def lock_for(self, key: CacheKey) -> asyncio.Lock:
        """Per-key lock so concurrent callers compute a missing entry only once."""
        with self._mutex:
            lock = self._key_locks.get(key)
            if lock is None:
                lock = asyncio.Lock()
                self._key_locks[key] = lock
            return lock

    def __len__(self) -> int:
        with self._mutex:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        now = self._clock()
        with self._mutex:
            entry = self._entries.get(key)  # type: ignore[arg-type]
            return entry is not None and entry.is_fresh(now)


async def run_periodic_sweep(cache: TTLCache, interval_seconds: float) -> None:
    """Sweep expired entries forever; cancelled on application shutdown."""
    while True:
        await asyncio.sleep(interval_seconds)
        removed = cache.sweep_expired()
        logger.info(f"Cache cleanup completed: removed={removed}, active={len(cache)}")
