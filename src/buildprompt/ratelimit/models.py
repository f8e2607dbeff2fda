"""Rate limiting data models and subscription tiers."""

from enum import Enum
from typing import NamedTuple

from pydantic import BaseModel, Field

# Sentinel for "no monthly cap"
UNLIMITED = -1


class SubscriptionTier(str, Enum):
    """Subscription tier levels."""

    FREE = "free"
    PRO = "pro"
    ENTERPRISE = "enterprise"


class TierPolicy(NamedTuple):
    """Limits and plan details for a subscription tier."""

    requests_per_minute: int
    requests_per_day: int
    monthly_builds: int
    price: int
    features: tuple[str, ...]


TIER_POLICIES: dict[SubscriptionTier, TierPolicy] = {
    SubscriptionTier.FREE: TierPolicy(
        requests_per_minute=5,
        requests_per_day=20,
        monthly_builds=5,
        price=0,
        features=(
            "5 builds per month",
            "Basic build guides",
            "Community support",
        ),
    ),
    SubscriptionTier.PRO: TierPolicy(
        requests_per_minute=30,
        requests_per_day=500,
        monthly_builds=100,
        price=15,
        features=(
            "100 builds per month",
            "Advanced guides with code examples",
            "Priority support",
            "Export to PDF",
            "Iterative refinements",
        ),
    ),
    SubscriptionTier.ENTERPRISE: TierPolicy(
        requests_per_minute=100,
        requests_per_day=10_000,
        monthly_builds=UNLIMITED,
        price=50,
        features=(
            "Unlimited builds",
            "Custom AI model fine-tuning",
            "Dedicated support",
            "Private instances",
            "Team management",
            "API access",
        ),
    ),
}


def get_tier(name: str | SubscriptionTier | None) -> SubscriptionTier:
    """Resolve a tier from a stored plan name.

    Args:
        name: Tier or plan name, any case.

    Returns:
        Subscription tier, FREE for unknown or missing names.
    """
    if isinstance(name, SubscriptionTier):
        return name
    if not name:
        return SubscriptionTier.FREE

    try:
        return SubscriptionTier(name.lower())
    except ValueError:
        return SubscriptionTier.FREE


def get_policy_for_tier(tier: SubscriptionTier) -> TierPolicy:
    """Get the policy for a subscription tier.

    Args:
        tier: Subscription tier.

    Returns:
        Policy for the tier.
    """
    return TIER_POLICIES.get(tier, TIER_POLICIES[SubscriptionTier.FREE])


class RateWindow(BaseModel):
    """Counter for one identifier within one fixed time window."""

    count: int = Field(0, ge=0, description="Requests seen in this window")
    reset_time: float = Field(..., description="Epoch seconds when the window ends")


class RateLimitResult(BaseModel):
    """Outcome of a rate limit check."""

    allowed: bool = Field(..., description="Whether the request may proceed")
    remaining: int = Field(..., description="Requests left in the window")
    reset_in_seconds: int = Field(..., description="Seconds until the window resets")


class MonthlyLimitResult(BaseModel):
    """Outcome of a monthly quota check."""

    allowed: bool = Field(..., description="Whether another build is allowed")
    remaining: int = Field(..., description="Builds left this month, -1 if unlimited")
    limit: int = Field(..., description="Monthly allowance, -1 if unlimited")
