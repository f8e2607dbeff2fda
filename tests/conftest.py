"""Pytest configuration and fixtures."""

import os
from datetime import datetime, timezone

import pytest
import pytest_asyncio

# Set test environment variables before importing application modules
os.environ["XAI_API_KEY"] = "test-api-key"
os.environ["XAI_API_BASE_URL"] = "https://model.test/v1"
os.environ["RATE_LIMIT_BACKEND"] = "memory"
os.environ["USAGE_BACKEND"] = "memory"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["GENERATION_RETRY_BASE_DELAY_SECONDS"] = "0"
os.environ["OTEL_ENABLED"] = "false"
os.environ["DEBUG"] = "true"


@pytest.fixture
def test_settings():
    """Provide test settings."""
    from buildprompt.config import Settings

    return Settings(
        xai_api_key="test-api-key",
        xai_api_base_url="https://model.test/v1",
        rate_limit_backend="memory",
        usage_backend="memory",
        database_url="sqlite+aiosqlite:///:memory:",
        generation_retry_base_delay_seconds=0,
        anonymous_daily_limit=5,
        rate_limit_allowlist=["10.0.0.1"],
        debug=True,
    )


class FakeClock:
    """Manually advanced epoch-seconds clock."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fake_clock():
    """Provide a controllable clock for the rate limiter."""
    return FakeClock()


@pytest.fixture
def rate_limiter(test_settings, fake_clock):
    """Provide a rate limiter with an in-memory store and fake clock."""
    from buildprompt.ratelimit import InMemoryWindowStore, RateLimiter

    return RateLimiter(store=InMemoryWindowStore(), settings=test_settings, clock=fake_clock)


@pytest.fixture
def usage_repo():
    """Provide an in-memory usage repository."""
    from buildprompt.metering import UsageRepository

    return UsageRepository()


@pytest.fixture
def build_repo():
    """Provide an in-memory build history repository."""
    from buildprompt.history import BuildHistoryRepository

    return BuildHistoryRepository()


@pytest.fixture
def sample_build_json():
    """A well-formed model answer."""
    return """{
  "projectName": "Recipe Share",
  "summary": "A small app for sharing family recipes.",
  "feasibilityScore": 8,
  "techStackRecommendation": {"frontend": ["Next.js 15"], "backend": ["FastAPI"]},
  "estimatedComplexity": "beginner",
  "guide": [
    {"step": 1, "title": "Set up", "description": "Create the project", "details": "Run the generator"},
    {"step": 2, "title": "Models", "description": "Add recipe models", "details": "Define tables"}
  ],
  "prompts": [
    {"order": 2, "title": "Second", "description": "Add models", "prompt": "Create the recipe model"},
    {"order": 1, "title": "First", "description": "Scaffold", "prompt": "Scaffold a Next.js 15 app"}
  ]
}"""


@pytest.fixture
def fixed_now():
    """A fixed reference time."""
    return datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


@pytest_asyncio.fixture
async def sql_session_factory(tmp_path):
    """Provide a session factory on a fresh SQLite database file."""
    from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

    from buildprompt.db import Base
    from buildprompt.db import models  # noqa: F401

    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'usage.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, expire_on_commit=False)

    await engine.dispose()
