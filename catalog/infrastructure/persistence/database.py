"""Persistence: async engine, session factory, and Base for SQLAlchemy ORM.

Engine and session factory are created lazily on first use (get_session)
so import does not trigger Settings validation. PostgreSQL (asyncpg) is the
production store; SQLite (aiosqlite) URLs are accepted for local runs and
get a single shared connection instead of a pool.

Sessions never commit on their own: writes go through TransactionCoordinator,
which owns commit and rollback for one logical operation.
"""

import logging
from collections.abc import AsyncIterator
from typing import Any

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

from catalog.core.config import Settings, get_settings

logger = logging.getLogger(__name__)

# Set by get_session_factory() on first use; avoids get_settings() at import time.
engine: AsyncEngine | None = None
AsyncSessionLocal: async_sessionmaker[AsyncSession] | None = None


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy declarative models."""


def create_engine_from_settings(settings: Settings) -> AsyncEngine:
    """Build an AsyncEngine for settings.database_url."""
    if settings.database_url.startswith("sqlite"):
        return create_async_engine(
            settings.database_url,
            echo=settings.database_echo,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    connect_args: dict[str, Any] = {}
    if "asyncpg" in settings.database_url:
        connect_args["command_timeout"] = (
            settings.db_command_timeout if settings.db_command_timeout is not None else 60
        )
    return create_async_engine(
        settings.database_url,
        echo=settings.database_echo,
        pool_pre_ping=True,
        pool_size=settings.db_pool_size if settings.db_pool_size is not None else 20,
        max_overflow=settings.db_max_overflow if settings.db_max_overflow is not None else 30,
        pool_recycle=3600,
        connect_args=connect_args,
    )


def create_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory used across the package (no expiry on commit, no autoflush)."""
    return async_sessionmaker(
        bind=bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Create engine and AsyncSessionLocal on first use."""
    global engine, AsyncSessionLocal
    if AsyncSessionLocal is None:
        engine = create_engine_from_settings(get_settings())
        AsyncSessionLocal = create_session_factory(engine)
        logger.info("Database engine created (%s)", engine.url.get_backend_name())
    return AsyncSessionLocal


async def get_session() -> AsyncIterator[AsyncSession]:
    """Yield a session and close it on exit.

    Does not commit; pass the session to build_repositories() and run writes
    inside coordinator.transaction().
    """
    factory = get_session_factory()
    async with factory() as session:
        yield session


async def dispose_engine() -> None:
    """Dispose the engine (call on shutdown)."""
    global engine, AsyncSessionLocal
    if engine is not None:
        await engine.dispose()
    engine = None
    AsyncSessionLocal = None
