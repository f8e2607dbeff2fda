"""Build history models."""

import math
from datetime import datetime, timezone

from pydantic import Field

from buildprompt.generation.models import BuildResult, CamelModel


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SavedBuild(CamelModel):
    """A build kept in a user's history."""

    id: str = Field(..., description="Build ID")
    user_id: str = Field(..., exclude=True, description="Owner of the build")
    idea: str = Field(default="", description="Idea the build was generated from")
    agent: str = Field(default="unknown", description="Coding agent the build targets")
    build: BuildResult = Field(..., description="The generated build")
    created_at: datetime = Field(default_factory=_utcnow, description="When it was saved")


class Pagination(CamelModel):
    """Paging information for a history listing."""

    page: int
    limit: int
    total: int
    total_pages: int

    @classmethod
    def for_total(cls, page: int, limit: int, total: int) -> "Pagination":
        return cls(page=page, limit=limit, total=total, total_pages=math.ceil(total / limit))


class BuildPage(CamelModel):
    """One page of a user's build history, newest first."""

    builds: list[SavedBuild]
    pagination: Pagination
