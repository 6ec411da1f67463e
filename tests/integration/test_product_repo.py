"""ProductRepository plus the generic cached CRUD surface it inherits."""

import pytest

from catalog.domain.exceptions import ResourceNotFoundException, ValidationException
from catalog.infrastructure.persistence.criteria import QuerySpec


@pytest.fixture
async def phones(repos):
    return await repos.categories.save({"name": "Phones", "slug": "phones"})


async def test_find_by_category(repos, phones) -> None:
    b = await repos.products.save({"name": "B phone", "slug": "b", "category_id": phones.id})
    a = await repos.products.save({"name": "A phone", "slug": "a", "category_id": phones.id})
    await repos.products.save({"name": "Loose", "slug": "loose"})
    await repos.products.save({"id": b.id, "active": False})

    assert [p.id for p in await repos.products.find_by_category(phones.id)] == [a.id, b.id]
    assert [p.id for p in await repos.products.find_by_category(phones.id, active_only=True)] == [
        a.id
    ]


async def test_unknown_category_rejected(repos) -> None:
    with pytest.raises(ResourceNotFoundException) as exc_info:
        await repos.products.save({"name": "P", "slug": "p", "category_id": 42})
    assert exc_info.value.details == {"resource_type": "category", "resource_id": "42"}


async def test_find_all_with_paging_and_ids(repos) -> None:
    created = [
        await repos.products.save({"name": f"P{i}", "slug": f"p{i}"}) for i in range(5)
    ]

    page = await repos.products.find_all(QuerySpec.of(order_by=("-id",), limit=2, offset=1))
    assert [p.id for p in page] == [created[3].id, created[2].id]
    assert [p.id for p in await repos.products.find_by_ids([created[4].id, created[0].id])] == [
        created[0].id,
        created[4].id,
    ]
    assert await repos.products.find_by_ids([]) == []
    assert await repos.products.count(QuerySpec.of(limit=1)) == 5


async def test_unknown_filter_field_rejected(repos) -> None:
    with pytest.raises(ValidationException) as exc_info:
        await repos.products.find_all({"colour": "red"})
    assert exc_info.value.details == {"field": "colour"}


async def test_cached_value_survives_round_trip(repos, cache_store) -> None:
    product = await repos.products.save({"name": "Phone", "slug": "phone"})

    loaded = await repos.products.find(product.id)
    cached = await repos.products.find(product.id)

    assert cached == loaded == product
    assert repos.products.entity_key(product.id) in cache_store.keys()


async def test_entity_cache_expires(repos, cache_store, clock, settings) -> None:
    product = await repos.products.save({"name": "Phone", "slug": "phone"})
    await repos.products.find(product.id)
    key = repos.products.entity_key(product.id)

    clock.advance(settings.cache_ttl_entity - 1)
    assert key in cache_store.keys()
    clock.advance(2)
    assert key not in cache_store.keys()


async def test_missing_entity_is_cached_until_created(repos) -> None:
    assert await repos.products.find(1) is None
    assert not await repos.products.exists(1)

    product = await repos.products.save({"name": "Phone", "slug": "phone"})

    assert product.id == 1
    assert await repos.products.find(1) == product


async def test_soft_delete_hides_from_lists(repos) -> None:
    keep = await repos.products.save({"name": "Keep", "slug": "keep"})
    drop = await repos.products.save({"name": "Drop", "slug": "drop"})
    assert await repos.products.count() == 2

    await repos.products.delete(drop.id)

    assert [p.id for p in await repos.products.find_all()] == [keep.id]
    assert await repos.products.count() == 1
    with pytest.raises(ResourceNotFoundException):
        await repos.products.delete(drop.id)
    history = await repos.audit_log.find_by_entity("product", drop.id)
    assert [h.action_type for h in history] == ["created", "deleted"]
    assert history[1].changes_summary == "Entity deleted"
