"""Repositories for users, tiers and build usage."""

import logging
from collections import defaultdict
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Protocol
from uuid import uuid4

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from buildprompt.config import Settings, get_settings
from buildprompt.db.models import UsageRecordModel, UserModel
from buildprompt.metering.models import UsageEntry, UserAccount
from buildprompt.ratelimit.models import SubscriptionTier, get_tier
from buildprompt.ratelimit.quota import get_month_start

logger = logging.getLogger(__name__)


class UsageStore(Protocol):
    """Operations the build pipeline needs from usage persistence."""

    async def get_or_create_user(self, user_id: str, email: str = "") -> UserAccount: ...

    async def get_tier(self, user_id: str) -> SubscriptionTier: ...

    async def set_tier(self, user_id: str, tier: SubscriptionTier) -> UserAccount: ...

    async def get_monthly_usage(self, user_id: str, now: datetime | None = None) -> int: ...

    async def record_usage(self, user_id: str, build_id: str, tokens_used: int) -> UsageEntry: ...


class UsageRepository:
    """In-memory usage repository.

    Suitable for development and tests. Use SqlUsageRepository when usage
    must survive restarts or be shared between instances.
    """

    def __init__(self, clock: Callable[[], datetime] | None = None) -> None:
        """Initialize the usage repository.

        Args:
            clock: Returns the current time (defaults to UTC now).
        """
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._users: dict[str, UserAccount] = {}
        # Entries indexed by user_id -> list of entries
        self._entries: dict[str, list[UsageEntry]] = defaultdict(list)

    async def get_or_create_user(self, user_id: str, email: str = "") -> UserAccount:
        """Get a user, creating a free-tier account on first sight.

        Args:
            user_id: User ID.
            email: Email to store for new users.

        Returns:
            The user account.
        """
        user = self._users.get(user_id)
        if user is None:
            user = UserAccount(id=user_id, email=email, created_at=self._clock())
            self._users[user_id] = user
            logger.info("Created user %s", user_id)
        return user

    async def get_tier(self, user_id: str) -> SubscriptionTier:
        user = await self.get_or_create_user(user_id)
        return user.subscription_tier

    async def set_tier(self, user_id: str, tier: SubscriptionTier) -> UserAccount:
        user = await self.get_or_create_user(user_id)
        user.subscription_tier = tier
        return user

    async def get_monthly_usage(self, user_id: str, now: datetime | None = None) -> int:
        """Count builds recorded for a user since the start of the month.

        Args:
            user_id: User ID.
            now: Reference time (defaults to the repository clock).

        Returns:
            Number of builds this month.
        """
        month_start = get_month_start(now or self._clock())
        return sum(1 for entry in self._entries.get(user_id, []) if entry.created_at >= month_start)

    async def record_usage(self, user_id: str, build_id: str, tokens_used: int) -> UsageEntry:
        """Record one build against a user.

        Args:
            user_id: User ID.
            build_id: Generated build ID.
            tokens_used: Tokens spent.

        Returns:
            The stored entry.
        """
        entry = UsageEntry(
            id=str(uuid4()),
            user_id=user_id,
            build_id=build_id,
            tokens_used=tokens_used,
            created_at=self._clock(),
        )
        self._entries[user_id].append(entry)

        logger.debug(
            "Recorded usage: user=%s, build=%s, tokens=%d",
            user_id,
            build_id,
            tokens_used,
        )
        return entry


def _to_account(row: UserModel) -> UserAccount:
    return UserAccount(
        id=row.id,
        email=row.email,
        subscription_tier=get_tier(row.subscription_tier),
        created_at=row.created_at,
    )


class SqlUsageRepository:
    """Usage repository backed by the SQL database."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
    ) -> None:
        """Initialize the repository.

        Args:
            session_factory: Session factory (defaults to the global one).
        """
        if session_factory is None:
            from buildprompt.db import get_session_factory

            session_factory = get_session_factory()
        self._session_factory = session_factory

    async def get_or_create_user(self, user_id: str, email: str = "") -> UserAccount:
        async with self._session_factory() as session:
            row = await session.get(UserModel, user_id)
            if row is None:
                row = UserModel(id=user_id, email=email, subscription_tier=SubscriptionTier.FREE.value)
                session.add(row)
                await session.commit()
                await session.refresh(row)
                logger.info("Created user %s", user_id)
            return _to_account(row)

    async def get_tier(self, user_id: str) -> SubscriptionTier:
        user = await self.get_or_create_user(user_id)
        return user.subscription_tier

    async def set_tier(self, user_id: str, tier: SubscriptionTier) -> UserAccount:
        await self.get_or_create_user(user_id)
        async with self._session_factory() as session:
            row = await session.get(UserModel, user_id)
            row.subscription_tier = tier.value
            await session.commit()
            await session.refresh(row)
            return _to_account(row)

    async def get_monthly_usage(self, user_id: str, now: datetime | None = None) -> int:
        month_start = get_month_start(now)
        async with self._session_factory() as session:
            result = await session.execute(
                select(func.count())
                .select_from(UsageRecordModel)
                .where(
                    UsageRecordModel.user_id == user_id,
                    UsageRecordModel.created_at >= month_start,
                )
            )
            return int(result.scalar_one())

    async def record_usage(self, user_id: str, build_id: str, tokens_used: int) -> UsageEntry:
        entry = UsageEntry(
            id=str(uuid4()),
            user_id=user_id,
            build_id=build_id,
            tokens_used=tokens_used,
        )
        async with self._session_factory() as session:
            session.add(
                UsageRecordModel(
                    id=entry.id,
                    user_id=entry.user_id,
                    build_id=entry.build_id,
                    tokens_used=entry.tokens_used,
                    created_at=entry.created_at,
                )
            )
            await session.commit()

        logger.debug(
            "Recorded usage: user=%s, build=%s, tokens=%d",
            user_id,
            build_id,
            tokens_used,
        )
        return entry


# Global repository instance
_usage_repo: UsageStore | None = None


def create_usage_repository(settings: Settings | None = None) -> UsageStore:
    """Create the usage repository selected in settings."""
    settings = settings or get_settings()
    if settings.usage_backend == "database":
        return SqlUsageRepository()
    return UsageRepository()


def get_usage_repository() -> UsageStore:
    """Get the global usage repository instance.

    Returns:
        Usage repository.
    """
    global _usage_repo
    if _usage_repo is None:
        _usage_repo = create_usage_repository()
    return _usage_repo
