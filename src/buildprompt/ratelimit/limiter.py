"""Fixed-window rate limiter backed by a pluggable window store."""

import asyncio
import logging
import math
import time
from collections.abc import Callable

from buildprompt.config import Settings, get_settings
from buildprompt.ratelimit.models import (
    RateLimitResult,
    RateWindow,
    SubscriptionTier,
    get_policy_for_tier,
)
from buildprompt.ratelimit.store import WindowStore, create_window_store

logger = logging.getLogger(__name__)

# Remaining count reported for allowlisted identifiers
ALLOWLIST_REMAINING = 999_999


class RateLimiter:
    """Fixed-window rate limiter.

    Implements rate limiting for:
    - Requests per minute per user, sized by subscription tier
    - Requests per day per anonymous identifier (client IP), with an allowlist

    A window is created on the first request for a key and replaced once its
    reset time has passed. Check-and-increment for one key runs under a
    per-key lock.
    """

    MINUTE = 60
    DAY = 86400

    def __init__(
        self,
        store: WindowStore | None = None,
        settings: Settings | None = None,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize rate limiter.

        Args:
            store: Window store (defaults to the backend chosen in settings).
            settings: Application settings.
            clock: Returns the current time in epoch seconds.
        """
        self._settings = settings or get_settings()
        self._store = store or create_window_store(self._settings)
        self._clock = clock
        self._allowlist = frozenset(self._settings.rate_limit_allowlist)
        self._locks: dict[str, asyncio.Lock] = {}

    @property
    def store(self) -> WindowStore:
        return self._store

    def _get_lock(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    async def _hit(self, key: str, limit: int, window_seconds: int) -> RateLimitResult:
        """Count one request against a fixed window.

        Args:
            key: Store key for the identifier and window kind.
            limit: Requests allowed per window.
            window_seconds: Window length.

        Returns:
            Rate limit result for this request.
        """
        async with self._get_lock(key):
            now = self._clock()
            current = await self._store.get(key)

            if current is not None and now > current.reset_time:
                await self._store.delete(key)
                current = None

            if current is None:
                await self._store.set(
                    key,
                    RateWindow(count=1, reset_time=now + window_seconds),
                    window_seconds,
                )
                return RateLimitResult(
                    allowed=True,
                    remaining=limit - 1,
                    reset_in_seconds=window_seconds,
                )

            reset_in = math.ceil(current.reset_time - now)

            if current.count >= limit:
                return RateLimitResult(
                    allowed=False,
                    remaining=0,
                    reset_in_seconds=reset_in,
                )

            current.count += 1
            await self._store.set(key, current, max(1, reset_in))
            return RateLimitResult(
                allowed=True,
                remaining=limit - current.count,
                reset_in_seconds=reset_in,
            )

    async def check_rate_limit(
        self,
        identifier: str,
        tier: SubscriptionTier,
    ) -> RateLimitResult:
        """Check and count a request against the tier's per-minute budget.

        Args:
            identifier: User identifier.
            tier: Subscription tier of the user.

        Returns:
            Rate limit result.
        """
        policy = get_policy_for_tier(tier)
        result = await self._hit(f"{identifier}:minute", policy.requests_per_minute, self.MINUTE)
        if not result.allowed:
            logger.info(
                "Rate limit exceeded for %s (tier=%s), resets in %ds",
                identifier,
                tier.value,
                result.reset_in_seconds,
            )
        return result

    async def check_daily_rate_limit(
        self,
        identifier: str,
        max_per_day: int | None = None,
    ) -> RateLimitResult:
        """Check and count a request against a per-day budget.

        Used for anonymous callers keyed by client IP.

        Args:
            identifier: Caller identifier, usually a client IP.
            max_per_day: Requests per day (defaults to the anonymous limit).

        Returns:
            Rate limit result.
        """
        if identifier in self._allowlist:
            return RateLimitResult(
                allowed=True,
                remaining=ALLOWLIST_REMAINING,
                reset_in_seconds=0,
            )

        limit = max_per_day if max_per_day is not None else self._settings.anonymous_daily_limit
        result = await self._hit(f"{identifier}:daily", limit, self.DAY)
        if not result.allowed:
            logger.info("Daily limit exceeded for %s", identifier)
        return result

    async def cleanup_rate_limits(self) -> int:
        """Remove expired windows from the store.

        Returns:
            Number of windows removed.
        """
        removed = await self._store.sweep(self._clock())

        # Drop locks nobody is holding
        for key in [k for k, lock in self._locks.items() if not lock.locked()]:
            del self._locks[key]

        if removed:
            logger.debug("Swept %d expired rate limit windows", removed)
        return removed

    async def close(self) -> None:
        """Release store resources."""
        close = getattr(self._store, "close", None)
        if close is not None:
            await close()


# Global rate limiter instance
_rate_limiter: RateLimiter | None = None


def get_rate_limiter() -> RateLimiter:
    """Get the global rate limiter instance.

    Returns:
        RateLimiter instance.
    """
    global _rate_limiter
    if _rate_limiter is None:
        _rate_limiter = RateLimiter()
    return _rate_limiter
