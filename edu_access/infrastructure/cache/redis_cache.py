"""Redis cache for resolved permission matrices"""
from __future__ import annotations

import json
from typing import Any

import redis.asyncio as redis

from edu_access.infrastructure.config.settings import Settings, get_settings
from edu_access.shared.logging import get_logger

logger = get_logger(__name__)

PERMISSIONS_PREFIX = "permissions"


def permissions_key(role: str) -> str:
    """
    Cache key of a role's effective-permission matrix.

    Grants match roles case-sensitively, so the key keeps the role as given.
    """
    return f"{PERMISSIONS_PREFIX}:{role}"


class CacheService:
    """
    Async Redis cache with TTL support.

    The cache is strictly optional. When Redis is disabled or unreachable
    every read is a miss and every write is a no-op, so callers always fall
    back to the permission store and never see a cache error.
    """

    def __init__(self, redis_client: redis.Redis | None = None, settings: Settings | None = None):
        """
        Args:
            redis_client: Pre-built client (tests inject a mock here)
            settings: Defaults to get_settings()
        """
        self.redis = redis_client
        self.settings = settings or get_settings()
        self._connected = redis_client is not None

    async def connect(self) -> None:
        """Open the Redis connection on startup; stays disabled on failure"""
        if self.redis is not None:
            return
        if not self.settings.redis_enabled:
            logger.info("Redis cache disabled by configuration")
            return

        client = redis.Redis(
            host=self.settings.redis_host,
            port=self.settings.redis_port,
            db=self.settings.redis_db,
            password=self.settings.redis_password or None,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_keepalive=True,
        )
        try:
            await client.ping()
        except (redis.ConnectionError, redis.TimeoutError) as e:
            logger.warning(f"Redis connection failed: {e}. Permission cache disabled.")
            await client.aclose()
            return

        self.redis = client
        self._connected = True
        logger.info(f"Redis cache connected: {self.settings.redis_host}:{self.settings.redis_port}")

    async def disconnect(self) -> None:
        if self.redis is not None:
            await self.redis.aclose()
            logger.info("Redis cache disconnected")
        self.redis = None
        self._connected = False

    def is_available(self) -> bool:
        return self._connected and self.redis is not None

    async def get(self, key: str) -> Any | None:
        """Deserialized value, or None on miss, error or unavailable cache"""
        if not self.is_available() or self.redis is None:
            return None

        try:
            raw = await self.redis.get(key)
        except Exception as e:
            logger.error(f"Cache get error for key {key}: {e}")
            return None

        if raw is None:
            logger.debug(f"Cache MISS: {key}")
            return None
        logger.debug(f"Cache HIT: {key}")
        try:
            return json.loads(raw)
        except (TypeError, ValueError) as e:
            logger.error(f"Cache value for {key} is not valid JSON: {e}")
            return None

    async def set(self, key: str, value: Any, ttl: int | None = None) -> bool:
        if not self.is_available() or self.redis is None:
            return False

        ttl = ttl if ttl is not None else self.settings.cache_ttl_permissions
        try:
            await self.redis.setex(key, ttl, json.dumps(value))
        except Exception as e:
            logger.error(f"Cache set error for key {key}: {e}")
            return False
        logger.debug(f"Cache SET: {key} (TTL: {ttl}s)")
        return True

    async def delete(self, key: str) -> bool:
        if not self.is_available() or self.redis is None:
            return False

        try:
            await self.redis.delete(key)
        except Exception as e:
            logger.error(f"Cache delete error for key {key}: {e}")
            return False
        logger.debug(f"Cache DELETE: {key}")
        return True

    async def delete_pattern(self, pattern: str) -> int:
        """
        Delete every key matching a glob pattern, e.g. "permissions:*".

        Returns:
            Number of keys deleted (0 when the cache is unavailable)
        """
        if not self.is_available() or self.redis is None:
            return 0

        deleted = 0
        try:
            async for key in self.redis.scan_iter(match=pattern):
                await self.redis.delete(key)
                deleted += 1
        except Exception as e:
            logger.error(f"Cache delete pattern error for {pattern}: {e}")
            return deleted

        if deleted:
            logger.info(f"Cache INVALIDATE: {pattern} ({deleted} keys deleted)")
        return deleted
