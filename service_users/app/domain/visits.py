"""
API visit counter kept in Redis.
"""

from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from ..cache.redis_cache import RedisCache


VISITS_KEY = "api_visits"


class VisitCounter:
    """Monotonic counter with no expiry. Not durable beyond Redis itself."""

    def __init__(self, cache: "RedisCache", key: str = VISITS_KEY):
        self.cache = cache
        self.key = key

    async def increment_and_get(self, key: Optional[str] = None) -> int:
        """Count one visit; raises ``CacheUnavailable`` if Redis is down."""
        return await self.cache.increment(key or self.key)
