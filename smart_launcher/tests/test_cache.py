"""Tests for the in-memory TTL cache."""

from contextlib import contextmanager
from unittest.mock import patch

import pytest

from smart_launcher.core.cache import MemoryCache


@contextmanager
def _clock(now):
    with patch("smart_launcher.core.cache.time") as mock_time:
        mock_time.monotonic.return_value = now
        yield


class TestMemoryCache:
    """Test in-memory cache implementation."""

    @pytest.fixture
    def cache(self):
        return MemoryCache(max_size=10, default_ttl=60)

    @pytest.mark.asyncio
    async def test_set_and_get(self, cache):
        await cache.set("rates:usd", {"eur": 0.9})

        assert await cache.get("rates:usd") == {"eur": 0.9}

    @pytest.mark.asyncio
    async def test_ttl_expiration(self, cache):
        """Entries expire once the monotonic clock passes their TTL."""
        with _clock(100.0):
            await cache.set("expire_key", "value", ttl=5)
            assert await cache.get("expire_key") == "value"

        with _clock(106.0):
            assert await cache.get("expire_key") is None

    @pytest.mark.asyncio
    async def test_default_ttl_applies(self, cache):
        with _clock(0.0):
            await cache.set("key", "value")
        with _clock(59.0):
            assert await cache.get("key") == "value"
        with _clock(61.0):
            assert await cache.get("key") is None

    @pytest.mark.asyncio
    async def test_lru_eviction(self):
        cache = MemoryCache(max_size=5)
        for index in range(5):
            await cache.set(f"key{index}", index)
        # Touch key0 so key1 becomes the least recently used
        await cache.get("key0")

        await cache.set("key5", 5)

        assert await cache.get("key1") is None
        assert await cache.get("key0") == 0
        assert await cache.get("key5") == 5

    @pytest.mark.asyncio
    async def test_delete_and_clear(self, cache):
        await cache.set("key1", "value1")
        await cache.set("key2", "value2")

        await cache.delete("key1")
        assert await cache.get("key1") is None

        await cache.clear()
        assert await cache.get("key2") is None

    @pytest.mark.asyncio
    async def test_stats(self, cache):
        await cache.set("key", "value")
        await cache.get("key")
        await cache.get("missing")

        stats = cache.get_stats()

        assert stats["total_entries"] == 1
        assert stats["max_size"] == 10
        assert stats["usage_percent"] == 10.0
        assert stats["hit_rate"] == 50.0
