"""
Redis cache backend.
"""

from typing import Any, Optional

import redis.asyncio as redis
from shared.logging import get_logger
from shared.errors import ExternalServiceError
from .dependency import FileDependency, encode_entry, decode_entry


class RedisCache:
    """Redis-backed key-value cache with TTLs and file dependencies.

    Connection errors propagate to the caller. Entries that cannot be decoded,
    or whose dependency has changed, are deleted and reported as misses.
    """

    def __init__(self, redis_url: str, key_prefix: str = ""):
        self.redis_url = redis_url
        self.key_prefix = key_prefix
        self.logger = get_logger("authz.cache.redis")
        self.redis: Optional[redis.Redis] = None

    async def start(self):
        """Start the Redis cache."""
        try:
            self.redis = redis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                retry_on_timeout=True,
                health_check_interval=30
            )

            await self.redis.ping()

            self.logger.info("Redis cache started")

        except Exception as e:
            self.logger.error("Failed to start Redis cache", error=str(e))
            raise ExternalServiceError("redis", str(e)) from e

    async def stop(self):
        """Stop the Redis cache."""
        if self.redis:
            await self.redis.aclose()
            self.redis = None
            self.logger.info("Redis cache stopped")

    async def get(self, key: str) -> Optional[Any]:
        """Return the cached value for ``key`` or ``None`` on a miss."""
        cache_key = self._key(key)
        raw = await self.redis.get(cache_key)
        if raw is None:
            return None

        try:
            value, dependency = decode_entry(raw)
        except ValueError as e:
            self.logger.warning("Discarding corrupt cache entry", cache_key=cache_key, error=str(e))
            await self.redis.delete(cache_key)
            return None

        if dependency is not None and dependency.has_changed():
            self.logger.debug("Cache dependency changed", cache_key=cache_key, path=dependency.path)
            await self.redis.delete(cache_key)
            return None

        self.logger.debug("Cache hit", cache_key=cache_key)
        return value

    async def set(
        self,
        key: str,
        value: Any,
        ttl: Optional[int] = None,
        dependency: Optional[FileDependency] = None
    ) -> bool:
        """Store ``value`` under ``key``; no ``ttl`` means no expiry."""
        cache_key = self._key(key)
        payload = encode_entry(value, dependency)

        if ttl:
            await self.redis.setex(cache_key, ttl, payload)
        else:
            await self.redis.set(cache_key, payload)

        self.logger.debug("Cached value", cache_key=cache_key, ttl=ttl)
        return True

    async def delete(self, key: str) -> bool:
        """Delete ``key``; returns whether an entry existed."""
        removed = await self.redis.delete(self._key(key))
        return bool(removed)

    async def health_check(self) -> bool:
        """Check Redis health."""
        try:
            await self.redis.ping()
            return True
        except Exception:
            return False

    def _key(self, key: str) -> str:
        return f"{self.key_prefix}{key}"
