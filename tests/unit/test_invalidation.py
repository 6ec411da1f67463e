"""Tests for invalidation targets, the pending set and hierarchical targets."""

from catalog.infrastructure.cache.hierarchy import HierarchicalInvalidator
from catalog.infrastructure.cache.invalidation import (
    InvalidationTarget,
    PendingInvalidationSet,
    apply_targets,
)
from catalog.infrastructure.cache.keys import entity_key, query_key, query_pattern
from catalog.infrastructure.cache.memory_cache import MemoryCache


def test_parse_detects_patterns() -> None:
    assert InvalidationTarget.parse("category:entity:1") == InvalidationTarget.key("category:entity:1")
    assert InvalidationTarget.parse("category:query:*").is_pattern
    target = InvalidationTarget.pattern("x:*")
    assert InvalidationTarget.parse(target) is target


def test_pending_set_is_ordered_and_deduplicated() -> None:
    pending = PendingInvalidationSet()
    pending.add("a:entity:1")
    pending.extend(["a:query:*", "a:entity:1", InvalidationTarget.key("a:entity:2")])

    assert [t.value for t in pending] == ["a:entity:1", "a:query:*", "a:entity:2"]
    assert len(pending) == 3
    assert "a:query:*" in pending
    assert "a:entity:3" not in pending

    pending.clear()
    assert len(pending) == 0


class FlakyCache(MemoryCache):
    async def delete(self, key: str) -> bool:
        if key == "bad":
            raise ConnectionError("redis down")
        return await super().delete(key)


async def test_apply_targets_skips_failures() -> None:
    """A failing target is logged and skipped; the rest are still applied."""
    cache = FlakyCache()
    for key in ("a:entity:1", "a:query:list:x", "a:query:list:y", "keep"):
        await cache.set(key, 1)

    applied = await apply_targets(
        cache,
        [
            InvalidationTarget.key("bad"),
            InvalidationTarget.key("a:entity:1"),
            InvalidationTarget.pattern("a:query:list:*"),
        ],
    )

    assert applied == 2
    assert cache.keys() == ["keep"]


def test_hierarchy_targets_for_move() -> None:
    hierarchy = HierarchicalInvalidator("category", ("tree", "roots"))

    targets = hierarchy.targets_for(5, old_parent_id=1, new_parent_id=2)

    assert targets == [
        InvalidationTarget.key(entity_key("category", 5)),
        InvalidationTarget.key(hierarchy.children_key(1)),
        InvalidationTarget.key(hierarchy.children_key(2)),
        InvalidationTarget.pattern(query_pattern("category", "tree")),
        InvalidationTarget.pattern(query_pattern("category", "roots")),
    ]


def test_hierarchy_same_parent_and_root_nodes() -> None:
    hierarchy = HierarchicalInvalidator("category", ())

    assert hierarchy.targets_for(5, 1, 1) == [
        InvalidationTarget.key(entity_key("category", 5)),
        InvalidationTarget.key(hierarchy.children_key(1)),
    ]
    assert hierarchy.targets_for(5, None, None) == [
        InvalidationTarget.key(entity_key("category", 5)),
    ]


def test_children_key_is_a_parent_scoped_query_key() -> None:
    hierarchy = HierarchicalInvalidator("category")
    assert hierarchy.children_key(3) == query_key("category", "children", {"parent_id": 3})
    assert hierarchy.children_key(3) != hierarchy.children_key(4)


async def test_hierarchy_targets_leave_unrelated_parents_cached() -> None:
    hierarchy = HierarchicalInvalidator("category")
    cache = MemoryCache()
    for parent_id in (1, 2, 3):
        await cache.set(hierarchy.children_key(parent_id), [])
    await cache.set(query_key("category", "tree", {"active": True}), [])
    await cache.set(entity_key("category", 9), None)

    await apply_targets(cache, hierarchy.targets_for(9, 1, 2))

    assert cache.keys() == [hierarchy.children_key(3)]
