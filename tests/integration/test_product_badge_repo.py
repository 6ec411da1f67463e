"""ProductBadgeRepository: composite identity, exact-key invalidation and sync."""

import pytest

from catalog.domain.exceptions import (
    DomainRuleException,
    DuplicateAssociationException,
    ResourceNotFoundException,
    ValidationException,
)


@pytest.fixture
async def seeded(repos):
    product = await repos.products.save({"name": "Phone", "slug": "phone"})
    other = await repos.products.save({"name": "Laptop", "slug": "laptop"})
    hot = await repos.badges.save({"label": "Hot", "color": "#EF4444"})
    new = await repos.badges.save({"label": "New"})
    return product, other, hot, new


async def test_associate_and_lookup(repos, seeded) -> None:
    product, _, hot, _ = seeded
    result = await repos.product_badges.associate(product.id, hot.id)

    assert (result.product_id, result.badge_id) == (product.id, hot.id)
    assert result.assigned_at is not None
    assert result.composite_id == f"{product.id}_{hot.id}"

    assert await repos.product_badges.find_by_id(result.composite_id) == result
    assert await repos.product_badges.exists(result.composite_id)
    assert not await repos.product_badges.exists(f"{product.id}_{hot.id + 100}")
    assert await repos.product_badges.association_exists(product.id, hot.id)


async def test_audit_uses_composite_id(repos, seeded) -> None:
    product, _, hot, _ = seeded
    await repos.product_badges.associate(product.id, hot.id)
    await repos.product_badges.dissociate(product.id, hot.id)

    history = await repos.audit_log.find_by_entity("product_badge", f"{product.id}_{hot.id}")
    assert [h.action_type for h in history] == ["associated", "dissociated"]
    assert history[0].new_values["badge_id"] == hot.id
    assert history[1].new_values is None


async def test_duplicate_is_refused(repos, seeded) -> None:
    product, _, hot, _ = seeded
    await repos.product_badges.associate(product.id, hot.id)

    with pytest.raises(DuplicateAssociationException) as exc_info:
        await repos.product_badges.associate(product.id, hot.id)
    assert isinstance(exc_info.value, DomainRuleException)
    assert await repos.product_badges.count_for_owner(product.id) == 1


async def test_references_must_exist(repos, seeded) -> None:
    product, _, hot, _ = seeded
    with pytest.raises(ResourceNotFoundException):
        await repos.product_badges.associate(999, hot.id)
    with pytest.raises(ResourceNotFoundException):
        await repos.product_badges.associate(product.id, 999)
    assert await repos.product_badges.find_badges_for_product(product.id) == []


@pytest.mark.parametrize("composite_id", ["", "7", "7_", "a_b", "1_2_3", "0_4", "-1_2", "²_3", "7_٣"])
async def test_malformed_composite_ids(repos, composite_id) -> None:
    with pytest.raises(ValidationException):
        await repos.product_badges.find_by_id(composite_id)


async def test_delete_and_restore(repos, seeded) -> None:
    product, _, hot, _ = seeded
    await repos.product_badges.associate(product.id, hot.id)
    composite_id = f"{product.id}_{hot.id}"

    await repos.product_badges.delete(composite_id)

    assert await repos.product_badges.find_by_id(composite_id) is None
    with pytest.raises(ResourceNotFoundException):
        await repos.product_badges.delete(composite_id)
    with pytest.raises(DomainRuleException):
        await repos.product_badges.restore(composite_id)


async def test_writes_refresh_owner_and_related_lists(repos, seeded) -> None:
    product, other, hot, new = seeded
    assert await repos.product_badges.count_for_owner(product.id) == 0
    assert await repos.product_badges.count_for_related(hot.id) == 0
    assert await repos.product_badges.find_products_for_badge(hot.id) == []
    assert await repos.product_badges.find_by_composite_key(product.id, hot.id) is None

    await repos.product_badges.associate(product.id, hot.id)
    await repos.product_badges.associate(other.id, hot.id)

    assert await repos.product_badges.count_for_owner(product.id) == 1
    assert await repos.product_badges.count_for_related(hot.id) == 2
    assert [a.product_id for a in await repos.product_badges.find_products_for_badge(hot.id)] == [
        product.id,
        other.id,
    ]
    assert await repos.product_badges.find_by_composite_key(product.id, hot.id) is not None


async def test_unrelated_pairs_stay_cached(repos, cache_store, seeded) -> None:
    product, other, hot, new = seeded
    await repos.product_badges.find_badges_for_product(other.id)
    other_key = repos.product_badges._owner_keys(other.id)[0]
    assert other_key in cache_store.keys()

    await repos.product_badges.associate(product.id, new.id)

    assert other_key in cache_store.keys()


async def test_sync_replaces_associations(repos, seeded) -> None:
    product, _, hot, new = seeded
    await repos.product_badges.associate(product.id, hot.id)

    synced = await repos.product_badges.sync_for(product.id, [new.id, hot.id, new.id])
    assert [a.badge_id for a in synced] == [new.id, hot.id]

    synced = await repos.product_badges.sync_for(product.id, [new.id])
    assert [a.badge_id for a in await repos.product_badges.find_badges_for_product(product.id)] == [
        new.id
    ]
    assert len(synced) == 1


async def test_sync_failure_keeps_previous_set(repos, seeded) -> None:
    product, _, hot, _ = seeded
    await repos.product_badges.associate(product.id, hot.id)

    with pytest.raises(ResourceNotFoundException):
        await repos.product_badges.sync_for(product.id, [999])

    assert [a.badge_id for a in await repos.product_badges.find_badges_for_product(product.id)] == [
        hot.id
    ]


async def test_remove_all_for_owner(repos, seeded) -> None:
    product, _, hot, new = seeded
    await repos.product_badges.associate(product.id, hot.id)
    await repos.product_badges.associate(product.id, new.id)

    assert await repos.product_badges.remove_all_for_owner(product.id) == 2
    assert await repos.product_badges.count_for_owner(product.id) == 0
    assert await repos.product_badges.remove_all_for_owner(product.id) == 0


async def test_badge_in_use_cannot_be_archived(repos, seeded) -> None:
    product, _, hot, _ = seeded
    await repos.product_badges.associate(product.id, hot.id)

    assert not await repos.badges.can_be_archived(hot.id)
    with pytest.raises(DomainRuleException) as exc_info:
        await repos.badges.archive(hot.id)
    assert exc_info.value.reasons == ["Badge is assigned to 1 product(s)"]

    await repos.product_badges.dissociate(product.id, hot.id)
    await repos.badges.archive(hot.id)
    assert await repos.badges.find(hot.id) is None
