"""
Read-through and write-invalidate accessors.
"""

from typing import Awaitable, Callable, Generic, List, Optional, Sequence, Tuple, TypeVar, TYPE_CHECKING

from shared.errors import CacheUnavailable
from shared.logging import get_logger

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from ..cache.redis_cache import RedisCache
    from shared.metrics import MetricsCollector


T = TypeVar("T")

SOURCE_CACHE = "cache"
SOURCE_STORE = "database"


class ReadThroughCache(Generic[T]):
    """Serve a collection from cache, loading it from the store on a miss.

    ``encode`` and ``decode`` convert between the collection and the string
    stored in Redis. A payload that fails to decode is treated as a miss.
    """

    def __init__(
        self,
        cache: "RedisCache",
        encode: Callable[[Sequence[T]], str],
        decode: Callable[[str], List[T]],
        *,
        metrics: Optional["MetricsCollector"] = None,
        cache_type: str = "collection",
    ):
        self.cache = cache
        self.encode = encode
        self.decode = decode
        self.metrics = metrics
        self.cache_type = cache_type
        self.logger = get_logger("users.caching.read_through")

    async def get_collection(
        self,
        key: str,
        ttl_seconds: int,
        loader: Callable[[], Awaitable[Sequence[T]]],
    ) -> Tuple[List[T], str]:
        """Return ``(items, source)`` where source is "cache" or "database".

        Store errors from ``loader`` propagate and nothing is cached.
        """
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")

        cached = await self._read(key)
        if cached is not None:
            self._count("cache_hits_total")
            self.logger.debug("Returning cached data", key=key)
            return cached, SOURCE_CACHE

        self._count("cache_misses_total")
        items = list(await loader())

        try:
            await self.cache.set_with_ttl(key, self.encode(items), ttl_seconds)
        except CacheUnavailable as e:
            self.logger.warning("Cache write skipped", key=key, error=e.details.get("error", e.message))

        return items, SOURCE_STORE

    async def _read(self, key: str) -> Optional[List[T]]:
        try:
            payload = await self.cache.get(key)
        except CacheUnavailable as e:
            self.logger.warning(
                "Cache unreachable, reading from store",
                key=key,
                error=e.details.get("error", e.message)
            )
            return None

        if payload is None:
            return None

        try:
            return self.decode(payload)
        except ValueError as e:
            self.logger.warning("Discarding undecodable cache entry", key=key, error=str(e))
            return None

    def _count(self, metric_name: str):
        if self.metrics:
            self.metrics.increment_counter(metric_name, cache_type=self.cache_type)


class WriteInvalidator:
    """Run a store mutation, then drop the cache key it makes stale."""

    def __init__(
        self,
        cache: "RedisCache",
        *,
        metrics: Optional["MetricsCollector"] = None,
        cache_type: str = "collection",
    ):
        self.cache = cache
        self.metrics = metrics
        self.cache_type = cache_type
        self.logger = get_logger("users.caching.write_invalidate")

    async def write(self, mutation: Callable[[], Awaitable[T]], key: str) -> T:
        """Apply ``mutation`` and invalidate ``key`` once it has succeeded.

        A failed mutation propagates and leaves the cache alone. A failed
        delete is logged only; the entry expires on its own TTL.
        """
        result = await mutation()

        try:
            await self.cache.delete(key)
        except CacheUnavailable as e:
            if self.metrics:
                self.metrics.increment_counter(
                    "cache_invalidation_failures_total",
                    cache_type=self.cache_type
                )
            self.logger.warning(
                "Cache invalidation failed after write",
                key=key,
                error=e.details.get("error", e.message)
            )

        return result
