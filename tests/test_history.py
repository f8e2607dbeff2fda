"""Tests for build history repositories."""

from datetime import datetime, timedelta, timezone

import pytest

from buildprompt.config import Settings
from buildprompt.db import BuildModel
from buildprompt.generation import parse_build_response
from buildprompt.history import (
    BuildHistoryRepository,
    Pagination,
    SqlBuildHistoryRepository,
    create_build_repository,
)


@pytest.fixture
def build_result(sample_build_json):
    return parse_build_response(sample_build_json, 42)


def numbered(build_result, i):
    return build_result.model_copy(update={"id": f"bp_{i}"})


class StepClock:
    """Clock returning a settable datetime."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class TestPagination:
    """Tests for page totals."""

    @pytest.mark.parametrize(
        ("total", "limit", "pages"),
        [(0, 10, 0), (1, 10, 1), (10, 10, 1), (11, 10, 2), (25, 5, 5)],
    )
    def test_total_pages(self, total, limit, pages):
        assert Pagination.for_total(1, limit, total).total_pages == pages

    def test_camel_case(self):
        data = Pagination.for_total(2, 5, 12).model_dump(by_alias=True)
        assert data == {"page": 2, "limit": 5, "total": 12, "totalPages": 3}


class TestBuildHistoryRepository:
    """Tests for the in-memory build history."""

    @pytest.mark.asyncio
    async def test_save_and_get(self, build_repo, build_result):
        """Test a saved build comes back with its metadata."""
        assert await build_repo.save_build("user-1", build_result, idea="Recipes", agent="cursor")

        saved = await build_repo.get_build("user-1", build_result.id)

        assert saved.user_id == "user-1"
        assert saved.idea == "Recipes"
        assert saved.agent == "cursor"
        assert saved.build == build_result

    @pytest.mark.asyncio
    async def test_duplicate_save(self, build_repo, build_result):
        """Test a second save of the same build is refused."""
        await build_repo.save_build("user-1", build_result)
        assert await build_repo.save_build("user-1", build_result) is False

    @pytest.mark.asyncio
    async def test_get_is_owner_only(self, build_repo, build_result):
        await build_repo.save_build("user-1", build_result)

        assert await build_repo.get_build("user-2", build_result.id) is None
        assert await build_repo.get_build("user-1", "bp_missing") is None

    @pytest.mark.asyncio
    async def test_list_newest_first(self, build_result):
        """Test listing orders by save time and pages through."""
        clock = StepClock(datetime(2026, 10, 1, tzinfo=timezone.utc))
        repo = BuildHistoryRepository(clock=clock)
        for i in range(5):
            clock.now += timedelta(hours=1)
            await repo.save_build("user-1", numbered(build_result, i))
        await repo.save_build("user-2", numbered(build_result, 99))

        first = await repo.list_builds("user-1", page=1, limit=2)
        last = await repo.list_builds("user-1", page=3, limit=2)
        beyond = await repo.list_builds("user-1", page=4, limit=2)

        assert [b.id for b in first.builds] == ["bp_4", "bp_3"]
        assert first.pagination.total == 5
        assert first.pagination.total_pages == 3
        assert [b.id for b in last.builds] == ["bp_0"]
        assert beyond.builds == []

    @pytest.mark.asyncio
    async def test_delete(self, build_repo, build_result):
        """Test only the owner can delete, and only once."""
        await build_repo.save_build("user-1", build_result)

        assert await build_repo.delete_build("user-2", build_result.id) is False
        assert await build_repo.delete_build("user-1", build_result.id) is True
        assert await build_repo.delete_build("user-1", build_result.id) is False
        assert await build_repo.get_build("user-1", build_result.id) is None


class TestSqlBuildHistoryRepository:
    """Tests for the SQL build history on SQLite."""

    @pytest.mark.asyncio
    async def test_save_and_get(self, sql_session_factory, build_result):
        """Test the build survives a round trip through the JSON column."""
        repo = SqlBuildHistoryRepository(session_factory=sql_session_factory)

        assert await repo.save_build("user-1", build_result, idea="Recipes", agent="replit")
        saved = await repo.get_build("user-1", build_result.id)

        assert saved.idea == "Recipes"
        assert saved.agent == "replit"
        assert saved.build == build_result
        assert saved.created_at.tzinfo is not None
        assert await repo.get_build("user-2", build_result.id) is None

    @pytest.mark.asyncio
    async def test_duplicate_save(self, sql_session_factory, build_result):
        repo = SqlBuildHistoryRepository(session_factory=sql_session_factory)

        await repo.save_build("user-1", build_result)
        assert await repo.save_build("user-1", build_result) is False

    @pytest.mark.asyncio
    async def test_list_newest_first(self, sql_session_factory, build_result):
        """Test rows are counted per user and paged newest first."""
        repo = SqlBuildHistoryRepository(session_factory=sql_session_factory)
        start = datetime(2026, 10, 1, tzinfo=timezone.utc)

        async with sql_session_factory() as session:
            for i, user_id in enumerate(["user-1", "user-1", "user-1", "user-2"]):
                build = numbered(build_result, i)
                session.add(
                    BuildModel(
                        id=build.id,
                        user_id=user_id,
                        project_name=build.project_name,
                        data=build.model_dump(mode="json", by_alias=True),
                        created_at=start + timedelta(hours=i),
                    )
                )
            await session.commit()

        page = await repo.list_builds("user-1", page=1, limit=2)
        rest = await repo.list_builds("user-1", page=2, limit=2)

        assert [b.id for b in page.builds] == ["bp_2", "bp_1"]
        assert page.pagination.total == 3
        assert page.pagination.total_pages == 2
        assert [b.id for b in rest.builds] == ["bp_0"]
        assert rest.builds[0].agent == "unknown"

    @pytest.mark.asyncio
    async def test_delete(self, sql_session_factory, build_result):
        repo = SqlBuildHistoryRepository(session_factory=sql_session_factory)
        await repo.save_build("user-1", build_result)

        assert await repo.delete_build("user-2", build_result.id) is False
        assert await repo.delete_build("user-1", build_result.id) is True
        assert await repo.get_build("user-1", build_result.id) is None
        assert (await repo.list_builds("user-1")).pagination.total == 0


class TestCreateBuildRepository:
    """Tests for backend selection."""

    def test_memory_backend(self):
        settings = Settings(usage_backend="memory")
        assert isinstance(create_build_repository(settings), BuildHistoryRepository)
