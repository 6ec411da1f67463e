"""CategoryRepository: tree reads, guards and hierarchical invalidation."""

import pytest

from catalog.domain.exceptions import (
    DomainRuleException,
    ResourceNotFoundException,
    ValidationException,
)
from catalog.domain.value_objects import Deleted
from catalog.infrastructure.cache.keys import entity_key


async def _tree(repos):
    """electronics -> phones -> android ; books (separate root)."""
    categories = repos.categories
    electronics = await categories.save({"name": "Electronics", "slug": "electronics"})
    phones = await categories.save(
        {"name": "Phones", "slug": "phones", "parent_id": electronics.id}
    )
    android = await categories.save(
        {"name": "Android", "slug": "android", "parent_id": phones.id}
    )
    books = await categories.save({"name": "Books", "slug": "books", "sort_order": 1})
    return electronics, phones, android, books


async def test_create_and_find(repos) -> None:
    created = await repos.categories.save({"name": "Phones", "slug": "phones"})
    assert created.parent_id is None
    assert created.active is True
    assert created.created_at is not None

    assert await repos.categories.find(created.id) == created
    assert (await repos.categories.find_by_slug("phones")).id == created.id
    assert await repos.categories.exists(created.id)
    with pytest.raises(ResourceNotFoundException):
        await repos.categories.find_or_fail(999)


async def test_required_fields_and_unknown_fields(repos) -> None:
    with pytest.raises(ValidationException):
        await repos.categories.save({"name": "", "slug": "x"})
    with pytest.raises(ValidationException) as exc_info:
        await repos.categories.save({"name": "X", "slug": "x", "colour": "red"})
    assert exc_info.value.details == {"field": "colour"}


async def test_sub_categories_and_tree(repos) -> None:
    electronics, phones, android, books = await _tree(repos)

    assert [c.id for c in await repos.categories.find_sub_categories(electronics.id)] == [phones.id]
    assert [c.id for c in await repos.categories.find_root_categories()] == [
        electronics.id,
        books.id,
    ]

    tree = await repos.categories.get_tree()
    assert [node.category.slug for node in tree] == ["electronics", "books"]
    assert tree[0].children[0].category.id == phones.id
    assert tree[0].children[0].children[0].category.id == android.id

    path = await repos.categories.get_parent_path(android.id)
    assert [c.slug for c in path] == ["electronics", "phones"]
    path_with_self = await repos.categories.get_parent_path(android.id, include_self=True)
    assert [c.slug for c in path_with_self] == ["electronics", "phones", "android"]


async def test_child_write_leaves_unrelated_children_lists_cached(repos, cache_store) -> None:
    electronics, phones, android, books = await _tree(repos)
    hierarchy = repos.categories.hierarchy
    await repos.categories.find_sub_categories(electronics.id)
    await repos.categories.find_sub_categories(books.id)
    await repos.categories.find(books.id)

    await repos.categories.save({"name": "Tablets", "slug": "tablets", "parent_id": electronics.id})

    keys = cache_store.keys()
    assert hierarchy.children_key(electronics.id) not in keys
    assert hierarchy.children_key(books.id) in keys
    assert entity_key("category", books.id) in keys
    assert [c.slug for c in await repos.categories.find_sub_categories(electronics.id)] == [
        "phones",
        "tablets",
    ]


async def test_move_refreshes_old_and_new_parent(repos) -> None:
    electronics, phones, android, books = await _tree(repos)
    assert len(await repos.categories.find_sub_categories(electronics.id)) == 1
    assert await repos.categories.find_sub_categories(books.id) == []

    moved = await repos.categories.move_to_parent(phones.id, books.id)

    assert moved.parent_id == books.id
    assert await repos.categories.find_sub_categories(electronics.id) == []
    assert [c.id for c in await repos.categories.find_sub_categories(books.id)] == [phones.id]
    assert [c.slug for c in await repos.categories.get_parent_path(android.id)] == [
        "books",
        "phones",
    ]
    history = await repos.audit_log.find_by_entity("category", phones.id)
    assert history[-1].action_type == "moved"


async def test_move_guards(repos) -> None:
    electronics, phones, android, books = await _tree(repos)

    with pytest.raises(ValidationException) as exc_info:
        await repos.categories.move_to_parent(electronics.id, android.id)
    assert exc_info.value.details == {"field": "parent_id"}
    with pytest.raises(ValidationException):
        await repos.categories.move_to_parent(phones.id, phones.id)
    with pytest.raises(ResourceNotFoundException):
        await repos.categories.move_to_parent(phones.id, 999)

    assert await repos.categories.would_create_circular_reference(electronics.id, android.id)
    assert not await repos.categories.would_create_circular_reference(android.id, books.id)
    assert await repos.categories.is_descendant_of(android.id, electronics.id)

    root = await repos.categories.move_to_parent(phones.id, None)
    assert root.parent_id is None


async def test_deactivate_refused_with_active_children(repos) -> None:
    electronics, phones, android, books = await _tree(repos)

    with pytest.raises(DomainRuleException) as exc_info:
        await repos.categories.deactivate(electronics.id)
    assert exc_info.value.reasons == ["cannot deactivate: 1 active children"]

    await repos.categories.deactivate(android.id)
    await repos.categories.deactivate(phones.id)
    result = await repos.categories.deactivate(electronics.id)
    assert result.active is False
    assert [c.slug for c in await repos.categories.find_inactive_categories()] == [
        "android",
        "electronics",
        "phones",
    ]
    assert [node.category.slug for node in await repos.categories.get_tree()] == ["books"]
    assert len(await repos.categories.get_tree(include_inactive=True)) == 2

    reactivated = await repos.categories.activate(electronics.id)
    assert reactivated.active is True


async def test_deactivate_refused_with_active_products(repos) -> None:
    category = await repos.categories.save({"name": "Phones", "slug": "phones"})
    await repos.products.save({"name": "P1", "slug": "p1", "category_id": category.id})

    with pytest.raises(DomainRuleException) as exc_info:
        await repos.categories.deactivate(category.id)
    assert exc_info.value.reasons == ["cannot deactivate: 1 active products"]


async def test_delete_guard_and_restore(repos) -> None:
    electronics, phones, android, books = await _tree(repos)
    await repos.products.save({"name": "P1", "slug": "p1", "category_id": phones.id})

    assert await repos.categories.can_delete(phones.id) == [
        "Category has 1 associated product(s)",
        "Category has 1 sub-category(s)",
    ]
    with pytest.raises(DomainRuleException):
        await repos.categories.delete(phones.id)

    await repos.categories.delete(books.id)
    assert await repos.categories.find(books.id) is None
    deleted = await repos.categories.find_with_deleted(books.id)
    assert isinstance(deleted.lifecycle, Deleted)
    assert [c.id for c in await repos.categories.find_root_categories()] == [electronics.id]

    restored = await repos.categories.restore(books.id)
    assert restored.lifecycle.state == "active"
    with pytest.raises(DomainRuleException):
        await repos.categories.restore(books.id)


async def test_restore_refused_under_deleted_parent(repos) -> None:
    electronics, phones, android, _ = await _tree(repos)
    await repos.categories.delete(android.id)
    await repos.categories.delete(phones.id)

    with pytest.raises(DomainRuleException) as exc_info:
        await repos.categories.restore(android.id)
    assert exc_info.value.reasons == [
        f"cannot restore: parent category {phones.id} is deleted"
    ]
    assert await repos.categories.find(android.id) is None
    assert await repos.categories.find_sub_categories(electronics.id) == []

    await repos.categories.restore(phones.id)
    restored = await repos.categories.restore(android.id)
    assert restored.parent_id == phones.id
    assert [c.id for c in await repos.categories.find_sub_categories(phones.id)] == [android.id]


async def test_statistics_and_counts(repos) -> None:
    await _tree(repos)
    stats = await repos.categories.get_statistics()
    assert (stats.total, stats.active, stats.inactive, stats.roots) == (4, 4, 0, 2)
    assert await repos.categories.count() == 4
    assert await repos.categories.count({"parent_id": None}) == 2

    await repos.categories.save({"name": "Music", "slug": "music"})
    assert (await repos.categories.get_statistics()).total == 5
    assert await repos.categories.count() == 5


async def test_update_read_after_write(repos) -> None:
    created = await repos.categories.save({"name": "Phones", "slug": "phones"})
    await repos.categories.find(created.id)
    await repos.categories.find_all()

    updated = await repos.categories.save({"id": created.id, "name": "Mobile Phones"})

    assert updated.name == "Mobile Phones"
    assert (await repos.categories.find(created.id)).name == "Mobile Phones"
    assert [c.name for c in await repos.categories.find_all()] == ["Mobile Phones"]
    history = await repos.audit_log.find_by_entity("category", created.id)
    assert [h.action_type for h in history] == ["created", "updated"]
    assert history[1].changes_summary == "Changed: Name: Phones -> Mobile Phones"
