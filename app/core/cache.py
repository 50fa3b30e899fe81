"""
Redis cache management.
Provides connection pooling and helper functions for caching operations.

Every helper degrades to a no-op when Redis is not configured, so the
database stays the source of truth.
"""
import json
import logging
from typing import Any, Optional
from redis import asyncio as aioredis
from app.config import settings

logger = logging.getLogger(__name__)


class RedisCache:
    """Redis cache manager with connection pooling."""

    def __init__(self):
        self.redis: Optional[aioredis.Redis] = None

    async def connect(self) -> None:
        """Establish connection to Redis."""
        if not settings.redis_url:
            logger.info("No Redis URL provided - running without Redis cache")
            self.redis = None
            return

        try:
            self.redis = aioredis.from_url(
                settings.redis_url,
                password=settings.redis_password or None,
                encoding="utf-8",
                decode_responses=True,
                max_connections=50,
            )
            await self.redis.ping()
            logger.info("Connected to Redis")
        except (aioredis.RedisError, OSError) as e:
            logger.warning("Could not connect to Redis, running without cache: %s", e)
            self.redis = None

    async def disconnect(self) -> None:
        """Close Redis connection."""
        if self.redis:
            await self.redis.aclose()
            self.redis = None

    async def get(self, key: str) -> Optional[Any]:
        """
        Get value from cache.

        Args:
            key: Cache key

        Returns:
            Cached value or None if not found
        """
        if not self.redis:
            return None

        value = await self.redis.get(key)
        if value:
            try:
                return json.loads(value)
            except json.JSONDecodeError:
                return value
        return None

    async def set(
        self,
        key: str,
        value: Any,
        ttl: Optional[int] = None
    ) -> bool:
        """
        Set value in cache with optional TTL.

        Args:
            key: Cache key
            value: Value to cache
            ttl: Time to live in seconds

        Returns:
            True if successful
        """
        if not self.redis:
            return False

        if isinstance(value, (dict, list)):
            value = json.dumps(value)

        if ttl:
            return bool(await self.redis.setex(key, ttl, value))
        return bool(await self.redis.set(key, value))

    async def delete(self, key: str) -> bool:
        """Delete key from cache."""
        if not self.redis:
            return False

        return bool(await self.redis.delete(key))


# Global cache instance
cache = RedisCache()


# Helper functions for common cache patterns
async def cache_user_profile(user_id: str, profile: dict) -> bool:
    """Cache a user's public profile."""
    return await cache.set(f"user:{user_id}", profile, ttl=settings.cache_user_ttl)


async def get_cached_user_profile(user_id: str) -> Optional[dict]:
    """Get a cached user profile."""
    return await cache.get(f"user:{user_id}")


async def invalidate_user_cache(user_id: str) -> bool:
    """Invalidate a cached user profile."""
    return await cache.delete(f"user:{user_id}")


async def set_user_presence(user_id: str, status: str) -> bool:
    """Set user presence status (online/offline)."""
    key = f"presence:{user_id}"
    return await cache.set(key, {"status": status}, ttl=settings.cache_presence_ttl)

