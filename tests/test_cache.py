"""Tests for cache behavior."""

import json

import pytest

from benedict_cafe.services.cache import MemoryCache, NullCache, RedisCache, build_cache, get_or_populate

from tests.helpers import DownRedis, FakeRedis


class TestMemoryCache:
    @pytest.mark.asyncio
    async def test_fresh_entry_is_returned(self, clock):
        cache = MemoryCache(ttl=60, clock=clock)
        await cache.set("a", {"x": 1})
        clock.advance(59)
        assert await cache.get("a") == {"x": 1}

    @pytest.mark.asyncio
    async def test_stale_entry_is_missing_but_not_purged(self, clock):
        cache = MemoryCache(ttl=60, clock=clock)
        await cache.set("a", 1)
        clock.advance(60)
        assert await cache.get("a") is None
        assert len(cache) == 1

    @pytest.mark.asyncio
    async def test_set_supersedes_stale_entry(self, clock):
        cache = MemoryCache(ttl=60, clock=clock)
        await cache.set("a", 1)
        clock.advance(120)
        await cache.set("a", 2)
        assert await cache.get("a") == 2

    @pytest.mark.asyncio
    async def test_delete_and_clear(self, clock):
        cache = MemoryCache(ttl=60, clock=clock)
        await cache.set("a", 1)
        await cache.set("b", 2)
        await cache.delete("a")
        assert await cache.get("a") is None
        assert await cache.get("b") == 2
        await cache.clear()
        assert len(cache) == 0


class TestRedisCache:
    @pytest.mark.asyncio
    async def test_values_stored_as_json_with_ttl(self):
        client = FakeRedis()
        cache = RedisCache(client, ttl=1800, prefix="menu")
        await cache.set("mirabad", {"items": [1]})

        assert json.loads(client.data["menu:mirabad"]) == {"items": [1]}
        assert client.ttls["menu:mirabad"] == 1800
        assert await cache.get("mirabad") == {"items": [1]}

    @pytest.mark.asyncio
    async def test_clear_only_touches_prefix(self):
        client = FakeRedis()
        client.data["state:1"] = "{}"
        cache = RedisCache(client, ttl=10, prefix="menu")
        await cache.set("a", 1)
        await cache.set("b", 2)
        await cache.clear()

        assert await cache.get("a") is None
        assert "state:1" in client.data

    @pytest.mark.asyncio
    async def test_unreachable_server_acts_as_empty_cache(self):
        cache = RedisCache(DownRedis(), ttl=10, prefix="menu")

        await cache.set("a", 1)
        assert await cache.get("a") is None
        await cache.delete("a")
        await cache.clear()

    @pytest.mark.asyncio
    async def test_close_releases_client(self):
        client = FakeRedis()
        await RedisCache(client, ttl=10).close()
        assert client.closed


@pytest.mark.asyncio
async def test_null_cache_stores_nothing():
    cache = NullCache()
    await cache.set("a", 1)
    assert await cache.get("a") is None


def test_build_cache_backends():
    assert isinstance(build_cache("memory", 10), MemoryCache)
    assert isinstance(build_cache("none", 10), NullCache)


@pytest.mark.asyncio
async def test_get_or_populate_calls_loader_once(clock):
    cache = MemoryCache(ttl=60, clock=clock)
    calls = []

    async def loader():
        calls.append(1)
        return "value"

    assert await get_or_populate(cache, "k", loader) == "value"
    assert await get_or_populate(cache, "k", loader) == "value"
    assert len(calls) == 1
