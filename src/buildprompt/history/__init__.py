"""Build history module.

Signed-in users keep the builds they generate:
- Builds are saved per user, keyed by build ID
- Listings are paginated, newest first
- Single builds can be fetched or deleted by their owner
"""

from buildprompt.history.models import BuildPage, Pagination, SavedBuild
from buildprompt.history.repository import (
    DEFAULT_PAGE_SIZE,
    BuildHistoryRepository,
    BuildStore,
    SqlBuildHistoryRepository,
    create_build_repository,
    get_build_repository,
)

__all__ = [
    # Models
    "BuildPage",
    "Pagination",
    "SavedBuild",
    # Repository
    "DEFAULT_PAGE_SIZE",
    "BuildHistoryRepository",
    "BuildStore",
    "SqlBuildHistoryRepository",
    "create_build_repository",
    "get_build_repository",
]
