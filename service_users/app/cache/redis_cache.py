"""
Redis access for Users Service.
"""

from typing import Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from shared.errors import CacheUnavailable
from shared.logging import get_logger


_CACHE_ERRORS = (RedisError, OSError)


class RedisCache:
    """Key-value operations with expiry, backed by Redis."""

    def __init__(
        self,
        redis_url: str,
        *,
        socket_timeout: float = 5.0,
        client: Optional[redis.Redis] = None,
    ):
        self.redis_url = redis_url
        self.socket_timeout = socket_timeout
        self.logger = get_logger("users.cache.redis")
        self.redis: Optional[redis.Redis] = client

    async def start(self):
        """Create the client and verify connectivity."""
        if self.redis is None:
            self.redis = redis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=self.socket_timeout,
                socket_timeout=self.socket_timeout,
                health_check_interval=30
            )

        try:
            await self.redis.ping()
            self.logger.info("Connected to Redis", redis_url=self.redis_url)
        except _CACHE_ERRORS as e:
            # Reads fall back to the store while Redis is down.
            self.logger.error("Redis client error", error=str(e))

    async def stop(self):
        """Close the Redis client."""
        if self.redis is not None:
            await self.redis.aclose()
            self.redis = None
            self.logger.info("Redis connection closed")

    def _client(self) -> redis.Redis:
        if self.redis is None:
            raise CacheUnavailable("Cache not initialized")
        return self.redis

    async def get(self, key: str) -> Optional[str]:
        """Return the value stored under ``key`` or None when absent/expired."""
        try:
            return await self._client().get(key)
        except _CACHE_ERRORS as e:
            raise CacheUnavailable("Cache read failed", details={"key": key, "error": str(e)}) from e

    async def set_with_ttl(self, key: str, value: str, ttl_seconds: int) -> None:
        try:
            await self._client().setex(key, ttl_seconds, value)
        except _CACHE_ERRORS as e:
            raise CacheUnavailable("Cache write failed", details={"key": key, "error": str(e)}) from e

    async def delete(self, key: str) -> int:
        try:
            return await self._client().delete(key)
        except _CACHE_ERRORS as e:
            raise CacheUnavailable("Cache delete failed", details={"key": key, "error": str(e)}) from e

    async def increment(self, key: str) -> int:
        """Atomically add 1 to the integer under ``key`` and return the result."""
        try:
            return int(await self._client().incr(key))
        except _CACHE_ERRORS as e:
            raise CacheUnavailable("Cache increment failed", details={"key": key, "error": str(e)}) from e

    async def health_check(self) -> bool:
        """Check Redis health."""
        if self.redis is None:
            return False
        try:
            await self.redis.ping()
            return True
        except _CACHE_ERRORS:
            return False
