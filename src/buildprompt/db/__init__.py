"""Database module for usage and build history persistence.

Provides SQLAlchemy async engine, session management, and ORM models
for PostgreSQL (production) or SQLite (development).
"""

from buildprompt.db.base import (
    Base,
    close_database,
    get_engine,
    get_session_factory,
    init_database,
)
from buildprompt.db.models import BuildModel, UsageRecordModel, UserModel

__all__ = [
    # Base and session management
    "Base",
    "get_engine",
    "get_session_factory",
    "init_database",
    "close_database",
    # Models
    "BuildModel",
    "UsageRecordModel",
    "UserModel",
]
