"""Background sweep of expired rate limit windows."""

import asyncio
import logging
from datetime import datetime, timezone

from buildprompt.config import get_settings
from buildprompt.ratelimit.limiter import RateLimiter, get_rate_limiter

logger = logging.getLogger(__name__)


class RateLimitSweeper:
    """Periodically removes expired windows to bound memory use.

    Sweeping never decides whether a request is allowed; the limiter
    expires stale windows on access by itself.
    """

    def __init__(
        self,
        rate_limiter: RateLimiter | None = None,
        interval_seconds: int | None = None,
    ) -> None:
        """Initialize the sweeper.

        Args:
            rate_limiter: Rate limiter whose store is swept.
            interval_seconds: Seconds between sweeps (default from settings).
        """
        self._rate_limiter = rate_limiter or get_rate_limiter()
        self._interval = (
            interval_seconds
            if interval_seconds is not None
            else get_settings().rate_limit_sweep_interval_seconds
        )
        self._task: asyncio.Task | None = None
        self._running = False
        self._last_run: datetime | None = None
        self._run_count = 0
        self._removed_total = 0

    async def sweep_once(self) -> int:
        """Run a single sweep.

        Returns:
            Number of windows removed.
        """
        removed = await self._rate_limiter.cleanup_rate_limits()
        self._last_run = datetime.now(timezone.utc)
        self._run_count += 1
        self._removed_total += removed
        return removed

    async def _run_loop(self) -> None:
        while self._running:
            await asyncio.sleep(self._interval)
            try:
                await self.sweep_once()
            except Exception as e:
                logger.exception("Rate limit sweep failed: %s", e)

    async def start(self) -> None:
        """Start the background sweep task."""
        if self._running:
            logger.warning("Rate limit sweeper already running")
            return

        self._running = True
        self._task = asyncio.create_task(self._run_loop(), name="rate_limit_sweeper")
        logger.info("Rate limit sweeper started with interval=%ds", self._interval)

    async def stop(self) -> None:
        """Stop the sweep task gracefully."""
        if not self._running:
            return

        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        logger.info("Rate limit sweeper stopped")

    def get_status(self) -> dict:
        """Get sweeper status.

        Returns:
            Status dictionary.
        """
        return {
            "running": self._running,
            "interval_seconds": self._interval,
            "last_run": self._last_run.isoformat() if self._last_run else None,
            "run_count": self._run_count,
            "removed_total": self._removed_total,
        }

    @property
    def is_running(self) -> bool:
        return self._running
