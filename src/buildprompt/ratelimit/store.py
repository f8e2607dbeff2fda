"""Storage backends for rate limit windows."""

import asyncio
import logging
from typing import Protocol

import redis.asyncio as redis

from buildprompt.config import Settings, get_settings
from buildprompt.ratelimit.models import RateWindow

logger = logging.getLogger(__name__)


class WindowStore(Protocol):
    """Minimal key/value interface the rate limiter needs."""

    async def get(self, key: str) -> RateWindow | None: ...

    async def set(self, key: str, window: RateWindow, ttl_seconds: int) -> None: ...

    async def delete(self, key: str) -> None: ...

    async def sweep(self, now: float) -> int: ...


class InMemoryWindowStore:
    """Process-local window store.

    Counters are not shared between service instances and are lost on
    restart. Use the Redis store when running more than one instance.
    """

    def __init__(self) -> None:
        self._windows: dict[str, RateWindow] = {}

    async def get(self, key: str) -> RateWindow | None:
        return self._windows.get(key)

    async def set(self, key: str, window: RateWindow, ttl_seconds: int) -> None:
        # Expiry is tracked by reset_time; ttl only matters for Redis.
        self._windows[key] = window

    async def delete(self, key: str) -> None:
        self._windows.pop(key, None)

    async def sweep(self, now: float) -> int:
        """Remove windows whose reset time has passed.

        Args:
            now: Current epoch seconds.

        Returns:
            Number of windows removed.
        """
        expired = [key for key, window in self._windows.items() if now > window.reset_time]
        for key in expired:
            del self._windows[key]
        return len(expired)

    def __len__(self) -> int:
        return len(self._windows)


class RedisWindowStore:
    """Redis-backed window store shared by all service instances."""

    KEY_PREFIX = "ratelimit"

    def __init__(self, settings: Settings | None = None):
        """Initialize the Redis store.

        Args:
            settings: Application settings.
        """
        self._settings = settings or get_settings()
        self._redis: redis.Redis | None = None
        self._lock = asyncio.Lock()

    async def _get_redis(self) -> redis.Redis:
        """Get Redis connection.

        Returns:
            Redis client.
        """
        if self._redis is None:
            async with self._lock:
                if self._redis is None:
                    self._redis = redis.from_url(  # type: ignore[no-untyped-call]
                        self._settings.redis_url,
                        encoding="utf-8",
                        decode_responses=True,
                    )
        return self._redis

    async def close(self) -> None:
        """Close Redis connection."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None

    def _key(self, key: str) -> str:
        return f"{self.KEY_PREFIX}:{key}"

    async def get(self, key: str) -> RateWindow | None:
        r = await self._get_redis()
        raw = await r.get(self._key(key))
        if raw is None:
            return None
        return RateWindow.model_validate_json(raw)

    async def set(self, key: str, window: RateWindow, ttl_seconds: int) -> None:
        r = await self._get_redis()
        await r.set(self._key(key), window.model_dump_json(), ex=max(1, ttl_seconds))

    async def delete(self, key: str) -> None:
        r = await self._get_redis()
        await r.delete(self._key(key))

    async def sweep(self, now: float) -> int:
        # Redis expires keys on its own
        return 0


def create_window_store(settings: Settings | None = None) -> WindowStore:
    """Create the window store selected in settings.

    Args:
        settings: Application settings.

    Returns:
        Window store instance.
    """
    settings = settings or get_settings()
    if settings.rate_limit_backend == "redis":
        logger.info("Using Redis rate limit store")
        return RedisWindowStore(settings)
    return InMemoryWindowStore()
