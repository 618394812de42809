"""In-memory TTL cache for remote lookups such as exchange rate tables."""

import asyncio
import logging
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


@dataclass
class _Entry:
    value: Any
    expires_at: float

    def expired(self, now: float) -> bool:
        return now > self.expires_at


class MemoryCache:
    """In-memory cache with TTL expiry and LRU eviction.

    Entries are kept in recency order: a hit moves the key to the end,
    so the first key is always the least recently used one.
    """

    def __init__(self, max_size: int = 1000, default_ttl: float = 3600):
        self.entries: "OrderedDict[str, _Entry]" = OrderedDict()
        self.max_size = max_size
        self.default_ttl = default_ttl
        self.hits = 0
        self.misses = 0
        self._lock = asyncio.Lock()

    async def get(self, key: str) -> Optional[Any]:
        """Get a value, or None when missing or expired."""
        async with self._lock:
            entry = self.entries.get(key)
            if entry is None or entry.expired(time.monotonic()):
                self.entries.pop(key, None)
                self.misses += 1
                return None

            self.entries.move_to_end(key)
            self.hits += 1
            return entry.value

    async def set(self, key: str, value: Any, ttl: Optional[float] = None):
        """Store a value, dropping expired then least recently used entries when full."""
        async with self._lock:
            now = time.monotonic()
            if key not in self.entries and len(self.entries) >= self.max_size:
                self._purge_expired(now)
                while len(self.entries) >= self.max_size:
                    evicted, _ = self.entries.popitem(last=False)
                    logger.debug(f"Evicted cache entry {evicted!r}")

            lifetime = self.default_ttl if ttl is None else ttl
            self.entries[key] = _Entry(value, now + lifetime)
            self.entries.move_to_end(key)

    async def delete(self, key: str):
        async with self._lock:
            self.entries.pop(key, None)

    async def clear(self):
        async with self._lock:
            self.entries.clear()

    def _purge_expired(self, now: float):
        for key in [key for key, entry in self.entries.items() if entry.expired(now)]:
            del self.entries[key]

    def get_stats(self) -> Dict[str, Any]:
        now = time.monotonic()
        expired = sum(1 for entry in self.entries.values() if entry.expired(now))
        lookups = self.hits + self.misses

        return {
            "total_entries": len(self.entries),
            "expired_entries": expired,
            "active_entries": len(self.entries) - expired,
            "max_size": self.max_size,
            "usage_percent": round(len(self.entries) / self.max_size * 100, 1),
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": round(self.hits / lookups * 100, 1) if lookups else 0.0,
        }
