"""
Price catalog cache.

An explicit, injected TTL cache for loaded price catalogs, keyed by
(tenant_email, frozenset(categories) or None). One instance per
application lives in app.extensions["price_catalog_cache"]; the catalog
loader only consults a cache that is passed to it.

Cached values are treated as read-only by callers.
"""

import logging
import time
from threading import Lock
from typing import Callable

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 300  # 5 minutes


def catalog_cache_key(tenant_email: str, categories) -> tuple:
    """None means "whole catalog"; any iterable becomes a frozenset."""
    return (tenant_email, None if categories is None else frozenset(categories))


class PriceCatalogCache:
    """In-memory TTL cache with per-tenant invalidation. TTL 0 disables it."""

    def __init__(self, ttl_seconds: int = DEFAULT_TTL_SECONDS,
                 clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._memory: dict[tuple, tuple] = {}  # key → (value, expires_at)
        self._lock = Lock()
        self._stats = {"hits": 0, "misses": 0, "sets": 0, "evictions": 0}

    @property
    def enabled(self) -> bool:
        return self.ttl_seconds > 0

    def get(self, key: tuple):
        """Return the cached value or None on miss/expiry."""
        if not self.enabled:
            return None
        now = self._clock()
        with self._lock:
            entry = self._memory.get(key)
            if entry and entry[1] > now:
                self._stats["hits"] += 1
                return entry[0]
            if entry:
                del self._memory[key]
                self._stats["evictions"] += 1
            self._stats["misses"] += 1
        return None

    def set(self, key: tuple, value) -> None:
        if not self.enabled:
            return
        with self._lock:
            self._memory[key] = (value, self._clock() + self.ttl_seconds)
            self._stats["sets"] += 1

    def get_or_load(self, key: tuple, loader: Callable[[], object]):
        """Cache-aside: call loader on miss and remember its result."""
        value = self.get(key)
        if value is not None:
            return value
        value = loader()
        self.set(key, value)
        return value

    def invalidate(self, tenant_email: str | None = None) -> int:
        """
        Drop entries for one tenant, or everything when tenant_email is None.

        Returns the number of entries removed.
        """
        with self._lock:
            if tenant_email is None:
                removed = len(self._memory)
                self._memory.clear()
            else:
                keys = [k for k in self._memory if k[0] == tenant_email]
                for k in keys:
                    del self._memory[k]
                removed = len(keys)
            self._stats["evictions"] += removed
        if removed:
            logger.debug("Price catalog cache: %d entries invalidated (tenant=%s)",
                         removed, tenant_email or "*")
        return removed

    def get_stats(self) -> dict:
        """Return cache statistics."""
        total = self._stats["hits"] + self._stats["misses"]
        hit_rate = (self._stats["hits"] / total * 100) if total > 0 else 0.0
        with self._lock:
            entries = len(self._memory)
        return {
            **self._stats,
            "hit_rate_pct": round(hit_rate, 2),
            "entries": entries,
            "ttl_seconds": self.ttl_seconds,
        }
