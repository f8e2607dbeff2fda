"""Database engine and session configuration."""

import logging
from typing import Any

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from buildprompt.config import Settings, get_settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """SQLAlchemy declarative base for all models."""

    pass


# Global engine and session factory
_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def create_engine(settings: Settings) -> AsyncEngine:
    """Create an async engine for the configured database.

    SQLite does not take pool sizing arguments, so they are only passed
    to server databases.
    """
    kwargs: dict[str, Any] = {"echo": settings.debug}
    if not settings.database_url.startswith("sqlite"):
        kwargs["pool_size"] = settings.database_pool_size
        kwargs["max_overflow"] = settings.database_pool_max_overflow
    return create_async_engine(settings.database_url, **kwargs)


def get_engine() -> AsyncEngine:
    """Get the database engine, creating it if necessary.

    Returns:
        AsyncEngine instance.
    """
    global _engine
    if _engine is None:
        settings = get_settings()
        _engine = create_engine(settings)
        logger.info("Created database engine for %s", settings.database_url.split("@")[-1])
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get the session factory, creating it if necessary.

    Returns:
        async_sessionmaker instance.
    """
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(
            get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
        )
    return _session_factory


async def init_database() -> None:
    """Create all tables. Called on application startup."""
    engine = get_engine()

    # Import models to register them with Base
    from buildprompt.db import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    logger.info("Database tables created/verified")


async def close_database() -> None:
    """Dispose of the engine. Called on application shutdown."""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _session_factory = None
        logger.info("Database connection closed")
