"""Usage accounting models."""

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from buildprompt.ratelimit.models import SubscriptionTier


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UserAccount(BaseModel):
    """A user known to the usage repository."""

    id: str = Field(..., description="User ID from the identity provider")
    email: str = Field(default="", description="Contact email")
    subscription_tier: SubscriptionTier = Field(
        default=SubscriptionTier.FREE,
        description="Current subscription tier",
    )
    created_at: datetime = Field(default_factory=_utcnow, description="First seen")


class UsageEntry(BaseModel):
    """One generated build charged to a user."""

    id: str = Field(..., description="Unique entry ID")
    user_id: str = Field(..., description="User the build is charged to")
    build_id: str = Field(..., description="Generated build ID")
    tokens_used: int = Field(default=0, description="Tokens spent on the build")
    created_at: datetime = Field(default_factory=_utcnow, description="When it was recorded")


class UsageSnapshot(BaseModel):
    """Monthly usage view for one user."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    tier: SubscriptionTier
    builds_used: int
    monthly_limit: int
    remaining: int
    reset_date: datetime
    features: list[str]
