"""Fail-open Redis cache (infrastructure layer).

Every public coroutine on :class:`CacheService` is safe to call when Redis
is down or misconfigured: failures are logged as ``CacheError`` and turned
into a miss (``None``), a no-op, or ``0`` for counters. Callers never need
a try/except around cache access.
"""

import json
import logging
import time
from typing import Any

from redis.asyncio import Redis
from redis.exceptions import RedisError

from support_relay.config import get_settings
from support_relay.exceptions import CacheError

logger = logging.getLogger("cache")

_FAILURES = (RedisError, OSError, ValueError, TypeError)


class CacheService:
    """JSON key/value cache over ``redis.asyncio`` with fail-open semantics."""

    def __init__(
        self,
        redis: Redis | None = None,
        *,
        url: str | None = None,
        retry_interval_seconds: float | None = None,
    ) -> None:
        settings = get_settings()
        self._redis = redis
        self._url = url or settings.redis_url
        self._retry_interval = (
            settings.redis_retry_interval_seconds
            if retry_interval_seconds is None
            else retry_interval_seconds
        )
        self._disabled_until = 0.0

    def _client(self) -> Redis | None:
        if time.monotonic() < self._disabled_until:
            return None
        if self._redis is None:
            self._redis = Redis.from_url(self._url, decode_responses=True)
        return self._redis

    def _degrade(self, operation: str, key: str | None, exc: Exception) -> None:
        error = CacheError(
            message=f"{operation} failed: {type(exc).__name__}: {exc}",
            details={"operation": operation},
        )
        self._disabled_until = time.monotonic() + self._retry_interval
        logger.warning(
            "Cache unavailable, degrading",
            extra={
                "service": "cache",
                "operation": operation,
                "key": key,
                "error_code": error.code,
                "error_category": "cache",
                "error": error.message,
            },
        )

    @property
    def available(self) -> bool:
        """False while backing off after a failure."""
        return time.monotonic() >= self._disabled_until

    async def get_json(self, key: str) -> Any | None:
        """Return the decoded value for key, or None on miss or failure."""
        client = self._client()
        if client is None:
            return None
        try:
            raw = await client.get(key)
            if raw is None:
                logger.debug("Cache miss", extra={"service": "cache", "key": key})
                return None
            return json.loads(raw)
        except _FAILURES as exc:
            self._degrade("get", key, exc)
            return None

    async def set_json(self, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        """Store a JSON-serialisable value, with an optional TTL."""
        client = self._client()
        if client is None:
            return
        try:
            data = json.dumps(value, ensure_ascii=False, default=str)
            if ttl_seconds is not None:
                await client.set(key, data, ex=ttl_seconds)
            else:
                await client.set(key, data)
        except _FAILURES as exc:
            self._degrade("set", key, exc)

    async def delete(self, *keys: str) -> None:
        """Delete keys if they exist."""
        if not keys:
            return
        client = self._client()
        if client is None:
            return
        try:
            await client.delete(*keys)
        except _FAILURES as exc:
            self._degrade("delete", ",".join(keys), exc)

    async def increment(self, key: str) -> int:
        """Increment a counter; returns the new value, or 0 on failure."""
        client = self._client()
        if client is None:
            return 0
        try:
            return int(await client.incr(key))
        except _FAILURES as exc:
            self._degrade("incr", key, exc)
            return 0

    async def decrement(self, key: str) -> int:
        """Decrement a counter; returns the new value, or 0 on failure."""
        client = self._client()
        if client is None:
            return 0
        try:
            return int(await client.decr(key))
        except _FAILURES as exc:
            self._degrade("decr", key, exc)
            return 0

    async def ping(self) -> bool:
        """Return True if Redis answered a PING."""
        client = self._client()
        if client is None:
            return False
        try:
            return bool(await client.ping())
        except _FAILURES as exc:
            self._degrade("ping", None, exc)
            return False

    async def close(self) -> None:
        """Close the underlying connection pool."""
        if self._redis is None:
            return
        try:
            await self._redis.aclose()
        except _FAILURES as exc:
            logger.debug(
                "Cache close failed",
                extra={"service": "cache", "error": str(exc)},
            )
        self._redis = None


# Global cache instance
_cache: CacheService | None = None


def get_cache() -> CacheService:
    """Get the global cache service instance."""
    global _cache
    if _cache is None:
        _cache = CacheService()
    return _cache


__all__ = ["CacheService", "get_cache"]
