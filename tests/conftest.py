"""Pytest configuration and fixtures for the catalog core.

Integration fixtures run against in-memory SQLite (aiosqlite, one shared
connection) and an in-process MemoryCache driven by a fake clock, so tests
need no external services.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("CACHE_BACKEND", "memory")

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

import catalog.infrastructure.persistence.models  # noqa: F401  (register tables)
from catalog.core.composition import CatalogRepositories, build_repositories
from catalog.core.config import Settings, get_settings
from catalog.infrastructure.cache.memory_cache import MemoryCache
from catalog.infrastructure.persistence.database import (
    Base,
    create_engine_from_settings,
    create_session_factory,
)
from catalog.shared.context import clear_current_actor


class FakeClock:
    """Monotonic clock the test advances by hand."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(autouse=True)
def _reset_context_and_settings():
    get_settings.cache_clear()
    clear_current_actor()
    yield
    clear_current_actor()
    get_settings.cache_clear()


@pytest.fixture
def settings() -> Settings:
    return Settings(database_url="sqlite+aiosqlite:///:memory:", cache_backend="memory")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache_store(clock: FakeClock) -> MemoryCache:
    return MemoryCache(clock=clock)


@pytest.fixture
async def engine(settings: Settings) -> AsyncEngine:
    engine = create_engine_from_settings(settings)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db_session(engine: AsyncEngine) -> AsyncSession:
    factory = create_session_factory(engine)
    async with factory() as session:
        yield session


@pytest.fixture
def repos(
    db_session: AsyncSession, cache_store: MemoryCache, settings: Settings
) -> CatalogRepositories:
    return build_repositories(db_session, cache_store, settings)
