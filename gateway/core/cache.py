"""Simple in-memory TTL cache for AI replies.

Maps a request fingerprint to the reply text produced for it. Entries expire
``ttl_seconds`` after their last insertion; expired entries are dropped
lazily on lookup and in bulk by :meth:`ResponseCache.purge_expired`, which the
server calls every ``check_period`` seconds.

Safe for the single-process asyncio model used by FastAPI/Uvicorn: every
operation completes without awaiting, so no caller sees a half-written entry.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass

logger = logging.getLogger("gateway.cache")


@dataclass
class CacheEntry:
    value: str
    expires_at: float


class ResponseCache:
    """In-memory cache with per-entry TTL and an optional size cap."""

    def __init__(self, ttl_seconds: float = 300, max_size: int | None = 1000) -> None:
        self._cache: dict[str, CacheEntry] = {}
        self._ttl = ttl_seconds
        self._max_size = max_size
        self._hits = 0
        self._misses = 0

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get(self, key: str) -> str | None:
        """Return the cached reply or None on miss / expiry."""
        entry = self._cache.get(key)
        if entry is not None and time.time() >= entry.expires_at:
            del self._cache[key]
            entry = None

        if entry is None:
            self._misses += 1
            return None

        self._hits += 1
        logger.info("Cache HIT (key=%s…)", key[:16])
        return entry.value

    def set(self, key: str, value: str) -> None:
        """Insert or overwrite a reply, resetting its expiry."""
        now = time.time()
        self._cache.pop(key, None)

        # Enforce max size: evict the oldest insertion
        if self._max_size and len(self._cache) >= self._max_size:
            self.purge_expired()
            if len(self._cache) >= self._max_size:
                # dict order is insertion order; set() pops before reinserting
                oldest_key = next(iter(self._cache))
                del self._cache[oldest_key]

        self._cache[key] = CacheEntry(value=value, expires_at=now + self._ttl)
        logger.debug("Cached reply (key=%s…, size=%d)", key[:16], len(self._cache))

    def flush_all(self) -> None:
        """Drop every entry. Hit/miss counters are kept."""
        self._cache.clear()

    def keys(self) -> list[str]:
        """Keys of all live entries."""
        self.purge_expired()
        return list(self._cache)

    def stats(self) -> dict[str, int]:
        """Hit/miss counters since start and the live entry count."""
        return {"hits": self._hits, "misses": self._misses, "size": self.size}

    def purge_expired(self) -> int:
        """Remove expired entries; returns how many were removed."""
        now = time.time()
        expired = [k for k, e in self._cache.items() if now >= e.expires_at]
        for k in expired:
            del self._cache[k]
        if expired:
            logger.debug("Purged %d expired cache entries", len(expired))
        return len(expired)

    @property
    def size(self) -> int:
        """Current number of live entries."""
        self.purge_expired()
        return len(self._cache)
