"""Repositories for saved builds."""

import logging
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Protocol

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from buildprompt.config import Settings, get_settings
from buildprompt.db.models import BuildModel
from buildprompt.generation.models import BuildResult
from buildprompt.history.models import BuildPage, Pagination, SavedBuild

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 10


class BuildStore(Protocol):
    """Operations the API needs from build history persistence."""

    async def save_build(
        self,
        user_id: str,
        build: BuildResult,
        idea: str = "",
        agent: str = "unknown",
    ) -> bool: ...

    async def list_builds(self, user_id: str, page: int = 1, limit: int = DEFAULT_PAGE_SIZE) -> BuildPage: ...

    async def get_build(self, user_id: str, build_id: str) -> SavedBuild | None: ...

    async def delete_build(self, user_id: str, build_id: str) -> bool: ...


class BuildHistoryRepository:
    """In-memory build history.

    Suitable for development and tests. Use SqlBuildHistoryRepository when
    history must survive restarts.
    """

    def __init__(self, clock: Callable[[], datetime] | None = None) -> None:
        """Initialize the build history repository.

        Args:
            clock: Returns the current time (defaults to UTC now).
        """
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._builds: dict[str, SavedBuild] = {}

    async def save_build(
        self,
        user_id: str,
        build: BuildResult,
        idea: str = "",
        agent: str = "unknown",
    ) -> bool:
        """Save a build to a user's history.

        Args:
            user_id: Owner of the build.
            build: Generated build.
            idea: Idea the build was generated from.
            agent: Coding agent the build targets.

        Returns:
            True if saved, False if a build with this ID already exists.
        """
        if build.id in self._builds:
            return False

        self._builds[build.id] = SavedBuild(
            id=build.id,
            user_id=user_id,
            idea=idea,
            agent=agent,
            build=build,
            created_at=self._clock(),
        )
        logger.info("Saved build %s for user %s", build.id, user_id)
        return True

    async def list_builds(self, user_id: str, page: int = 1, limit: int = DEFAULT_PAGE_SIZE) -> BuildPage:
        """List a user's builds, newest first.

        Args:
            user_id: Owner of the builds.
            page: 1-based page number.
            limit: Builds per page.

        Returns:
            The requested page and paging totals.
        """
        owned = sorted(
            (b for b in self._builds.values() if b.user_id == user_id),
            key=lambda b: b.created_at,
            reverse=True,
        )
        offset = (page - 1) * limit
        return BuildPage(
            builds=owned[offset : offset + limit],
            pagination=Pagination.for_total(page, limit, len(owned)),
        )

    async def get_build(self, user_id: str, build_id: str) -> SavedBuild | None:
        build = self._builds.get(build_id)
        if build is None or build.user_id != user_id:
            return None
        return build

    async def delete_build(self, user_id: str, build_id: str) -> bool:
        if await self.get_build(user_id, build_id) is None:
            return False
        del self._builds[build_id]
        logger.info("Deleted build %s for user %s", build_id, user_id)
        return True


def _to_saved_build(row: BuildModel) -> SavedBuild:
    created_at = row.created_at
    # SQLite hands back naive timestamps
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)
    return SavedBuild(
        id=row.id,
        user_id=row.user_id,
        idea=row.idea,
        agent=row.agent,
        build=BuildResult.model_validate(row.data),
        created_at=created_at,
    )


class SqlBuildHistoryRepository:
    """Build history backed by the SQL database."""

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

    async def save_build(
        self,
        user_id: str,
        build: BuildResult,
        idea: str = "",
        agent: str = "unknown",
    ) -> bool:
        async with self._session_factory() as session:
            if await session.get(BuildModel, build.id) is not None:
                return False

            session.add(
                BuildModel(
                    id=build.id,
                    user_id=user_id,
                    project_name=build.project_name,
                    idea=idea,
                    agent=agent,
                    data=build.model_dump(mode="json", by_alias=True),
                )
            )
            await session.commit()

        logger.info("Saved build %s for user %s", build.id, user_id)
        return True

    async def list_builds(self, user_id: str, page: int = 1, limit: int = DEFAULT_PAGE_SIZE) -> BuildPage:
        async with self._session_factory() as session:
            total = await session.execute(
                select(func.count()).select_from(BuildModel).where(BuildModel.user_id == user_id)
            )
            rows = await session.execute(
                select(BuildModel)
                .where(BuildModel.user_id == user_id)
                .order_by(BuildModel.created_at.desc())
                .offset((page - 1) * limit)
                .limit(limit)
            )
            return BuildPage(
                builds=[_to_saved_build(row) for row in rows.scalars().all()],
                pagination=Pagination.for_total(page, limit, int(total.scalar_one())),
            )

    async def get_build(self, user_id: str, build_id: str) -> SavedBuild | None:
        async with self._session_factory() as session:
            row = await session.get(BuildModel, build_id)
            if row is None or row.user_id != user_id:
                return None
            return _to_saved_build(row)

    async def delete_build(self, user_id: str, build_id: str) -> bool:
        async with self._session_factory() as session:
            row = await session.get(BuildModel, build_id)
            if row is None or row.user_id != user_id:
                return False
            await session.delete(row)
            await session.commit()

        logger.info("Deleted build %s for user %s", build_id, user_id)
        return True


# Global repository instance
_build_repo: BuildStore | None = None


def create_build_repository(settings: Settings | None = None) -> BuildStore:
    """Create the build history repository.

    History lives next to usage records, so it follows the usage backend.
    """
    settings = settings or get_settings()
    if settings.usage_backend == "database":
        return SqlBuildHistoryRepository()
    return BuildHistoryRepository()


def get_build_repository() -> BuildStore:
    """Get the global build history repository instance.

    Returns:
        Build history repository.
    """
    global _build_repo
    if _build_repo is None:
        _build_repo = create_build_repository()
    return _build_repo
