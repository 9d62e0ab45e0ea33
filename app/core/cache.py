"""
Redis key-value layer.

Backs the token revocation list. Every operation degrades to a miss
when Redis is unreachable so authentication keeps working without it.
"""

import json
import logging
from typing import Any

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from app.config import settings

logger = logging.getLogger(__name__)

# Raised by `client` before init or after a failed connect
_UNAVAILABLE = (RedisError, RuntimeError)


class CacheManager:
    """
    JSON values under namespaced keys ({prefix}:{namespace}:{key}).

    Reads return None and writes return False while Redis is down.
    """

    def __init__(self, prefix: str = "tenantguard") -> None:
        self._client: aioredis.Redis | None = None
        self._prefix = prefix

    async def init(self) -> None:
        """Connect and ping; an unreachable server leaves the cache disabled."""
        client = aioredis.from_url(
            str(settings.redis_url),
            encoding="utf-8",
            decode_responses=True,
            max_connections=20,
        )
        try:
            await client.ping()
        except (RedisError, OSError) as e:
            logger.warning(f"Redis unavailable, token revocation disabled: {e}")
            await client.aclose()
            return

        self._client = client
        logger.info("Redis connection initialized")

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def available(self) -> bool:
        return self._client is not None

    @property
    def client(self) -> aioredis.Redis:
        if not self._client:
            raise RuntimeError("Cache not initialized")
        return self._client

    def _build_key(self, namespace: str, key: str) -> str:
        return f"{self._prefix}:{namespace}:{key}"

    async def get(self, namespace: str, key: str) -> Any | None:
        cache_key = self._build_key(namespace, key)
        try:
            raw = await self.client.get(cache_key)
        except _UNAVAILABLE as e:
            logger.warning(f"Cache read failed for {cache_key}: {e}")
            return None
        return None if raw is None else json.loads(raw)

    async def set(self, namespace: str, key: str, value: Any, ttl: int | None = None) -> bool:
        """
        Store a JSON-serializable value.

        Args:
            ttl: Seconds to keep the entry; settings.redis_cache_ttl when omitted

        Returns:
            False when the write did not reach Redis
        """
        cache_key = self._build_key(namespace, key)
        try:
            await self.client.set(
                cache_key, json.dumps(value, default=str), ex=ttl or settings.redis_cache_ttl
            )
        except _UNAVAILABLE as e:
            logger.warning(f"Cache write failed for {cache_key}: {e}")
            return False
        return True

    async def delete(self, namespace: str, key: str) -> bool:
        cache_key = self._build_key(namespace, key)
        try:
            return await self.client.delete(cache_key) > 0
        except _UNAVAILABLE as e:
            logger.warning(f"Cache delete failed for {cache_key}: {e}")
            return False


cache_manager = CacheManager()
