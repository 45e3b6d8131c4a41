"""Redis caching for deals query responses.

A single shared cache service with TTL support, pattern-based invalidation
and health checking.  Every Redis failure is logged and treated as a cache
miss so the query path keeps working without Redis.
"""

from typing import Optional
import structlog

from redis.asyncio import Redis, from_url
from redis.exceptions import RedisError

from dealcatalog.config import settings

logger = structlog.get_logger(__name__)

DEALS_KEY_PATTERN = "deals:*"


class CacheService:
    """Async Redis cache service.

    When constructed with ``enabled=False`` every read misses and every
    write is skipped without touching Redis.
    """

    def __init__(self, redis_url: str, enabled: bool = True):
        """Initialize cache service.

        Args:
            redis_url: Redis connection URL (e.g., "redis://localhost:6379/0")
            enabled: Whether to talk to Redis at all
        """
        self.redis_url = redis_url
        self.enabled = enabled
        self._redis: Optional[Redis] = None
        self.logger = logger.bind(service="cache_service")

    async def _get_redis(self) -> Redis:
        """Get or create Redis connection."""
        if self._redis is None:
            self._redis = from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
            )
            self.logger.info("redis_connection_created", url=self.redis_url)

        return self._redis

    async def get(self, key: str) -> Optional[str]:
        """Get a value from cache.

        Args:
            key: Cache key

        Returns:
            Cached value as string, or None if not found, disabled or on error
        """
        if not self.enabled:
            return None
        try:
            redis = await self._get_redis()
            value = await redis.get(key)

            if value:
                self.logger.debug("cache_hit", key=key)
            else:
                self.logger.debug("cache_miss", key=key)

            return value

        except RedisError as e:
            self.logger.error("cache_get_failed", key=key, error=str(e))
            return None

    async def set(self, key: str, value: str, ttl: int = 30) -> bool:
        """Set a value in cache with TTL.

        Args:
            key: Cache key
            value: Value to cache (string)
            ttl: Time-to-live in seconds

        Returns:
            True if successful, False when disabled or on error
        """
        if not self.enabled:
            return False
        try:
            redis = await self._get_redis()
            await redis.set(key, value, ex=ttl)
            self.logger.debug("cache_set", key=key, ttl=ttl, value_length=len(value))
            return True

        except RedisError as e:
            self.logger.error("cache_set_failed", key=key, error=str(e))
            return False

    async def delete_pattern(self, pattern: str) -> int:
        """Delete all keys matching a pattern.

        Args:
            pattern: Redis pattern (e.g., "deals:*")

        Returns:
            Number of keys deleted, 0 when disabled or on error
        """
        if not self.enabled:
            return 0
        try:
            redis = await self._get_redis()

            keys = []
            async for key in redis.scan_iter(match=pattern, count=100):
                keys.append(key)

            deleted = await redis.delete(*keys) if keys else 0

            self.logger.info("cache_pattern_delete", pattern=pattern, keys_deleted=deleted)
            return deleted

        except RedisError as e:
            self.logger.error("cache_pattern_delete_failed", pattern=pattern, error=str(e))
            return 0

    async def health_check(self) -> bool:
        """Check Redis connectivity.

        Returns:
            True if Redis is healthy, False otherwise
        """
        if not self.enabled:
            return False
        try:
            redis = await self._get_redis()
            await redis.ping()
            return True

        except RedisError as e:
            self.logger.error("redis_health_check_failed", error=str(e))
            return False

    async def close(self) -> None:
        """Close Redis connection.

        This should be called on application shutdown.
        """
        if self._redis:
            await self._redis.aclose()
            self._redis = None
            self.logger.info("redis_connection_closed")


# Global cache instance
_cache_instance: Optional[CacheService] = None


def get_cache_service() -> CacheService:
    """Get or create the global cache service instance."""
    global _cache_instance

    if _cache_instance is None:
        _cache_instance = CacheService(settings.REDIS_URL, enabled=settings.CACHE_ENABLED)
        logger.info("cache_service_initialized", enabled=settings.CACHE_ENABLED)

    return _cache_instance


async def get_cache() -> CacheService:
    """FastAPI dependency for cache service.

    Usage:
        @router.get("/endpoint")
        async def endpoint(cache: CacheService = Depends(get_cache)):
            ...
    """
    return get_cache_service()


async def invalidate_deals_cache() -> int:
    """Drop every cached deals query.  Called after an import changed the catalog.

    Returns:
        Number of cache keys deleted
    """
    cache = get_cache_service()
    deleted = await cache.delete_pattern(DEALS_KEY_PATTERN)
    logger.info("deals_cache_invalidated", keys_deleted=deleted)
    return deleted
