"""Rate limiting and quota module.

This module implements the usage gates in front of build generation:
- Per-minute request limits sized by subscription tier
- Per-day limits for anonymous callers, with an allowlist
- Monthly build quotas
"""

from buildprompt.ratelimit.limiter import (
    ALLOWLIST_REMAINING,
    RateLimiter,
    get_rate_limiter,
)
from buildprompt.ratelimit.models import (
    TIER_POLICIES,
    UNLIMITED,
    MonthlyLimitResult,
    RateLimitResult,
    RateWindow,
    SubscriptionTier,
    TierPolicy,
    get_policy_for_tier,
    get_tier,
)
from buildprompt.ratelimit.quota import (
    check_monthly_limit,
    get_month_start,
    get_monthly_reset_time,
)
from buildprompt.ratelimit.store import (
    InMemoryWindowStore,
    RedisWindowStore,
    WindowStore,
    create_window_store,
)
from buildprompt.ratelimit.sweeper import RateLimitSweeper

__all__ = [
    # Limiter
    "ALLOWLIST_REMAINING",
    "RateLimiter",
    "get_rate_limiter",
    # Models
    "TIER_POLICIES",
    "UNLIMITED",
    "MonthlyLimitResult",
    "RateLimitResult",
    "RateWindow",
    "SubscriptionTier",
    "TierPolicy",
    "get_policy_for_tier",
    "get_tier",
    # Quota
    "check_monthly_limit",
    "get_month_start",
    "get_monthly_reset_time",
    # Store
    "InMemoryWindowStore",
    "RedisWindowStore",
    "WindowStore",
    "create_window_store",
    # Sweeper
    "RateLimitSweeper",
]
