"""Invalidation targets for self-referencing trees (categories).

Cached children lists are keyed by parent id. A structural write to a node
must drop the node's own entry, the children list of both its old and new
parent, and every aggregate built from the tree (tree listings, active and
inactive listings, counts, paths).
"""

from collections.abc import Iterable

from catalog.infrastructure.cache.invalidation import InvalidationTarget
from catalog.infrastructure.cache.keys import entity_key, query_key, query_pattern

CHILDREN_ACTION = "children"

DEFAULT_AGGREGATE_ACTIONS = (
    "tree",
    "roots",
    "active",
    "inactive",
    "list",
    "count",
    "exists",
    "subtree",
    "path",
    "stats",
)


class HierarchicalInvalidator:
    """Derives invalidation targets for writes to tree-shaped entities."""

    def __init__(
        self,
        namespace: str,
        aggregate_actions: Iterable[str] = DEFAULT_AGGREGATE_ACTIONS,
    ) -> None:
        self.namespace = namespace
        self.aggregate_actions = tuple(aggregate_actions)

    def children_key(self, parent_id: int | None) -> str:
        """Key of the cached children list of parent_id (None = roots)."""
        return query_key(self.namespace, CHILDREN_ACTION, {"parent_id": parent_id})

    def targets_for(
        self,
        node_id: int,
        old_parent_id: int | None,
        new_parent_id: int | None,
    ) -> list[InvalidationTarget]:
        """Targets for a write to node_id that moved it from old to new parent.

        Pass the same value for both parents when the parent did not change;
        the duplicate is dropped. A None parent has no children list to drop
        beyond the roots aggregate.
        """
        targets = [InvalidationTarget.key(entity_key(self.namespace, node_id))]
        for parent_id in dict.fromkeys((old_parent_id, new_parent_id)):
            if parent_id is not None:
                targets.append(InvalidationTarget.key(self.children_key(parent_id)))
        targets.extend(
            InvalidationTarget.pattern(query_pattern(self.namespace, action))
            for action in self.aggregate_actions
        )
        return targets
