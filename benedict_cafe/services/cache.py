import json
import logging
import time
from typing import Any, Awaitable, Callable, Dict, Optional, Protocol, Tuple

import redis.asyncio as redis
from redis.exceptions import RedisError


logger = logging.getLogger(__name__)


class Cache(Protocol):
    async def get(self, key: str) -> Optional[Any]: ...

    async def set(self, key: str, value: Any) -> None: ...

    async def delete(self, key: str) -> None: ...

    async def clear(self) -> None: ...

    async def close(self) -> None: ...


async def get_or_populate(cache: Cache, key: str, loader: Callable[[], Awaitable[Any]]) -> Any:
    """Return the cached value for key, or await loader() and cache its result."""
    value = await cache.get(key)
    if value is not None:
        return value

    value = await loader()
    await cache.set(key, value)
    return value


class MemoryCache:
    """Process-local cache with a fixed TTL.

    Stale entries are reported as missing but stay in memory until the next
    set() for the same key replaces them.
    """

    def __init__(self, ttl: float, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self._clock = clock
        self._entries: Dict[str, Tuple[Any, float]] = {}

    async def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, stored_at = entry
        if self._clock() - stored_at >= self.ttl:
            return None
        return value

    async def set(self, key: str, value: Any) -> None:
        self._entries[key] = (value, self._clock())

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    async def clear(self) -> None:
        self._entries.clear()

    async def close(self) -> None:
        pass

    def __len__(self) -> int:
        return len(self._entries)


class RedisCache:
    """JSON values in Redis with SETEX, so Redis expires them itself.

    An unreachable Redis is logged and behaves like an empty cache: reads
    miss and writes are dropped.
    """

    def __init__(self, client: "redis.Redis", ttl: int, prefix: str = "cache"):
        self.client = client
        self.ttl = ttl
        self.prefix = prefix

    @classmethod
    def from_url(cls, url: str, ttl: int, prefix: str = "cache") -> "RedisCache":
        return cls(redis.from_url(url, decode_responses=True), ttl, prefix)

    def _key(self, key: str) -> str:
        return f"{self.prefix}:{key}"

    async def get(self, key: str) -> Optional[Any]:
        try:
            data = await self.client.get(self._key(key))
        except RedisError as e:
            logger.warning(f"Redis read failed for {self._key(key)}: {e}")
            return None
        return json.loads(data) if data else None

    async def set(self, key: str, value: Any) -> None:
        try:
            await self.client.setex(self._key(key), self.ttl, json.dumps(value))
        except RedisError as e:
            logger.warning(f"Redis write failed for {self._key(key)}: {e}")

    async def delete(self, key: str) -> None:
        try:
            await self.client.delete(self._key(key))
        except RedisError as e:
            logger.warning(f"Redis delete failed for {self._key(key)}: {e}")

    async def clear(self) -> None:
        try:
            keys = [key async for key in self.client.scan_iter(match=f"{self.prefix}:*")]
            if keys:
                await self.client.delete(*keys)
        except RedisError as e:
            logger.warning(f"Redis clear failed for {self.prefix}: {e}")

    async def close(self) -> None:
        await self.client.aclose()


class NullCache:
    """Cache that never stores anything."""

    async def get(self, key: str) -> Optional[Any]:
        return None

    async def set(self, key: str, value: Any) -> None:
        pass

    async def delete(self, key: str) -> None:
        pass

    async def clear(self) -> None:
        pass

    async def close(self) -> None:
        pass


def build_cache(backend: str, ttl: int, redis_url: str = "", prefix: str = "cache") -> Cache:
    if backend == "redis":
        return RedisCache.from_url(redis_url, ttl, prefix)
    if backend == "none":
        return NullCache()
    return MemoryCache(ttl)
