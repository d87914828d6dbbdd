"""Read-through cache for catalog listings.

GET /v1/achievements is read far more often than the catalog or a
learner's awards change, so listings are cached per
(target learner, include_status) and dropped explicitly when:

  - an achievement is created      -> delete_pattern("catalog:*")
  - a learner receives an award    -> delete_pattern("catalog:{learner}:*")

The TTL (CATALOG_CACHE_TTL) bounds staleness if an invalidation is
ever missed.  Redis-backed when REDIS_URL is set so every API instance
sees the same invalidations; in-memory otherwise.
"""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

from redis.exceptions import RedisError

from achievement_service.core.metrics import CACHE_OPERATIONS
from achievement_service.db.redis import redis_pool

logger = logging.getLogger(__name__)


@runtime_checkable
class CacheService(Protocol):
    async def get(self, key: str) -> str | None:
        """Fetch a cached value.  Returns None on cache miss."""
        ...

    async def set(self, key: str, value: str, ttl_seconds: int) -> None: ...

    async def delete(self, key: str) -> None: ...

    async def delete_pattern(self, pattern: str) -> None:
        """Delete all keys matching a trailing-* glob (e.g. 'catalog:u1:*')."""
        ...


class InMemoryCacheService:
    """Process-local cache.  TTLs are not enforced."""

    def __init__(self) -> None:
        self._store: dict[str, str] = {}

    async def get(self, key: str) -> str | None:
        return self._store.get(key)

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        self._store[key] = value

    async def delete(self, key: str) -> None:
        self._store.pop(key, None)

    async def delete_pattern(self, pattern: str) -> None:
        prefix = pattern.rstrip("*")
        for k in [k for k in self._store if k.startswith(prefix)]:
            del self._store[k]


class RedisCacheService:
    """Redis-backed cache shared by all API instances.

    Every Redis failure is logged and swallowed here: a failed read is a
    miss, a failed write or invalidation leaves the entry to its TTL.
    The request that caused an award must never fail on the cache.
    """

    _PREFIX = "cache:"

    def __init__(self, redis_client) -> None:
        self._redis = redis_client

    async def get(self, key: str) -> str | None:
        try:
            return await self._redis.get(f"{self._PREFIX}{key}")
        except RedisError as e:
            logger.warning("Cache read failed key=%s: %s", key, e)
            return None

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        try:
            await self._redis.setex(f"{self._PREFIX}{key}", ttl_seconds, value)
        except RedisError as e:
            logger.warning("Cache write failed key=%s: %s", key, e)

    async def delete(self, key: str) -> None:
        try:
            await self._redis.delete(f"{self._PREFIX}{key}")
        except RedisError as e:
            logger.warning("Cache delete failed key=%s: %s", key, e)

    async def delete_pattern(self, pattern: str) -> None:
        # SCAN rather than KEYS so a large keyspace never blocks Redis.
        cursor = 0
        try:
            while True:
                cursor, keys = await self._redis.scan(
                    cursor, match=f"{self._PREFIX}{pattern}", count=100
                )
                if keys:
                    await self._redis.delete(*keys)
                if cursor == 0:
                    break
        except RedisError as e:
            # Entries left behind expire with CATALOG_CACHE_TTL.
            logger.warning("Cache invalidation failed pattern=%s: %s", pattern, e)


def catalog_key(learner_id: str | None, include_status: bool) -> str:
    return f"catalog:{learner_id or 'all'}:{int(include_status)}"


async def cached_get(cache: CacheService, key: str) -> str | None:
    value = await cache.get(key)
    CACHE_OPERATIONS.labels(operation="hit" if value is not None else "miss").inc()
    return value


async def invalidate_catalog(cache: CacheService, learner_id: str | None = None) -> None:
    if learner_id is None:
        await cache.delete_pattern("catalog:*")
    else:
        await cache.delete_pattern(f"catalog:{learner_id}:*")


if redis_pool is not None:
    cache_service: CacheService = RedisCacheService(redis_pool)
else:
    cache_service = InMemoryCacheService()
