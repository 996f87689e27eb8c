"""
Storage backends for the query cache.

Entries are JSON strings keyed by the serialized query key. The in-memory store
is the default; the Redis store lets several console processes share one mirror.
"""

from typing import Protocol

import redis.asyncio as redis
from redis.asyncio.connection import ConnectionPool

from crm_console.config import settings
from crm_console.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class CacheStore(Protocol):
    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str) -> bool: ...

    async def delete(self, key: str) -> bool: ...

    async def keys(self) -> list[str]: ...

    async def close(self) -> None: ...


class MemoryCacheStore:
    """Process-local store."""

    def __init__(self):
        self._data: dict[str, str] = {}

    async def get(self, key: str) -> str | None:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> bool:
        self._data[key] = value
        return True

    async def delete(self, key: str) -> bool:
        return self._data.pop(key, None) is not None

    async def keys(self) -> list[str]:
        return list(self._data.keys())

    async def close(self) -> None:
        self._data.clear()


class RedisCacheStore:
    """Redis-backed store with connection pooling; keys live under a namespace prefix."""

    def __init__(self, redis_url: str | None = None, namespace: str | None = None, client=None):
        self.redis_url = redis_url or settings.REDIS_URL
        self.namespace = namespace or settings.CACHE_NAMESPACE
        self.pool = None
        self.client = client
        self._initialized = client is not None

    async def initialize(self):
        """Initialize connection pool on first use"""
        if self._initialized:
            return

        if not self.redis_url:
            raise RuntimeError("REDIS_URL is required for the redis cache backend")

        try:
            self.pool = ConnectionPool.from_url(
                self.redis_url,
                max_connections=10,
                socket_connect_timeout=10,
                socket_timeout=10,
                health_check_interval=30,
                decode_responses=True,
            )
            self.client = redis.Redis(connection_pool=self.pool)

            result = await self.client.ping()
            logger.info("Redis cache store connected", ping=result)
            self._initialized = True

        except redis.RedisError as e:
            logger.error("Failed to initialize Redis cache store", error=str(e))
            self._initialized = False
            raise RuntimeError("Redis initialization failed") from e

    def _key(self, key: str) -> str:
        return f"{self.namespace}{key}"

    async def get(self, key: str) -> str | None:
        await self.initialize()
        return await self.client.get(self._key(key))

    async def set(self, key: str, value: str) -> bool:
        await self.initialize()
        return bool(await self.client.set(self._key(key), value))

    async def delete(self, key: str) -> bool:
        await self.initialize()
        return bool(await self.client.delete(self._key(key)))

    async def keys(self) -> list[str]:
        await self.initialize()
        prefix_len = len(self.namespace)
        found = []
        async for raw in self.client.scan_iter(match=f"{self.namespace}*"):
            found.append(raw[prefix_len:])
        return found

    async def close(self) -> None:
        """Clean shutdown"""
        if self.client is not None and self.pool is not None:
            await self.client.aclose()
            await self.pool.disconnect()
        self._initialized = False
        logger.info("Redis cache store closed")


def create_cache_store() -> CacheStore:
    """Build the store selected by CACHE_BACKEND."""
    if settings.CACHE_BACKEND == "redis":
        return RedisCacheStore()
    return MemoryCacheStore()
