"""Monthly build quota checks."""

from datetime import datetime, timezone

from buildprompt.ratelimit.models import (
    UNLIMITED,
    MonthlyLimitResult,
    SubscriptionTier,
    get_policy_for_tier,
)


def check_monthly_limit(builds_used: int, tier: SubscriptionTier) -> MonthlyLimitResult:
    """Check a user's monthly build count against the tier allowance.

    Args:
        builds_used: Builds recorded for the user this month.
        tier: Subscription tier.

    Returns:
        Monthly limit result. Unlimited tiers report -1 for remaining and limit.
    """
    limit = get_policy_for_tier(tier).monthly_builds

    if limit == UNLIMITED:
        return MonthlyLimitResult(allowed=True, remaining=UNLIMITED, limit=UNLIMITED)

    remaining = max(0, limit - builds_used)
    return MonthlyLimitResult(allowed=remaining > 0, remaining=remaining, limit=limit)


def get_month_start(now: datetime | None = None) -> datetime:
    """Get the first instant of the current UTC month."""
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    now = now.astimezone(timezone.utc)
    return datetime(now.year, now.month, 1, tzinfo=timezone.utc)


def get_monthly_reset_time(now: datetime | None = None) -> datetime:
    """Get the moment monthly quotas reset: the first of next month, UTC.

    Args:
        now: Reference time (defaults to the current time). Naive values are
            taken as UTC.

    Returns:
        Timezone-aware datetime at 00:00 UTC on the first of the next month.
    """
    start = get_month_start(now)
    if start.month == 12:
        return start.replace(year=start.year + 1, month=1)
    return start.replace(month=start.month + 1)
