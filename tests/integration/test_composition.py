"""Wiring from settings: cache backend selection and open_catalog."""

from catalog.core.composition import open_catalog
from catalog.infrastructure.cache.factory import create_cache_backend
from catalog.infrastructure.cache.memory_cache import MemoryCache
from catalog.infrastructure.persistence import database


async def test_memory_backend_selected(settings) -> None:
    assert isinstance(await create_cache_backend(settings), MemoryCache)


async def test_open_catalog_shares_one_unit_of_work() -> None:
    database.get_session_factory()
    async with database.engine.begin() as conn:
        await conn.run_sync(database.Base.metadata.create_all)
    try:
        async with open_catalog() as repos:
            assert repos.categories.coordinator is repos.admins.coordinator
            assert repos.categories.cache is repos.links.cache

            created = await repos.categories.save({"name": "Phones", "slug": "phones"})

            assert await repos.categories.find(created.id) == created
            assert await repos.audit_log.count() == 1
    finally:
        await database.dispose_engine()
