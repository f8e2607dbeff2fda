"""Usage accounting module.

This module tracks what each user has consumed:
- Users and their subscription tiers
- One usage entry per generated build, with token counts
- Monthly build counts for quota checks
"""

from buildprompt.metering.models import UsageEntry, UsageSnapshot, UserAccount
from buildprompt.metering.repository import (
    SqlUsageRepository,
    UsageRepository,
    UsageStore,
    create_usage_repository,
    get_usage_repository,
)

__all__ = [
    # Models
    "UsageEntry",
    "UsageSnapshot",
    "UserAccount",
    # Repository
    "SqlUsageRepository",
    "UsageRepository",
    "UsageStore",
    "create_usage_repository",
    "get_usage_repository",
]
