"""Category repository: tree-shaped entity with hierarchical cache invalidation.

Children lists are cached per parent. Every write (create, update, delete,
restore, activate, deactivate, move) drops the node's entity key, the
children list of its old and new parent, and the tree/list aggregates; it
never uses a namespace-wide pattern, so unrelated parents keep their cached
children lists.

Safety checks (deactivate, delete, reparent) read fresh rows, never cache.
"""

from typing import Any

from sqlalchemy import func, select

from catalog.application.dtos.category import CategoryNode, CategoryResult, CategoryStats
from catalog.core.constants import CACHE_NS_CATEGORY
from catalog.domain.exceptions import (
    DomainRuleException,
    ResourceNotFoundException,
    ValidationException,
)
from catalog.domain.value_objects import lifecycle_of
from catalog.infrastructure.cache.hierarchy import (
    DEFAULT_AGGREGATE_ACTIONS,
    HierarchicalInvalidator,
)
from catalog.infrastructure.cache.invalidation import InvalidationTarget
from catalog.infrastructure.cache.read_through import CacheTtlPolicy, ReadThroughCache
from catalog.infrastructure.persistence.criteria import QuerySpec, apply_criteria
from catalog.infrastructure.persistence.models.category import Category
from catalog.infrastructure.persistence.models.product import Product
from catalog.infrastructure.persistence.repositories.cached_repo import CachedRepository
from catalog.infrastructure.persistence.transaction import TransactionCoordinator
from catalog.shared.enums import AuditAction
from catalog.shared.utils.datetime import ensure_utc

_ORDER = ("sort_order", "name", "id")


class CategoryRepository(CachedRepository[Category, CategoryResult]):
    """Categories with children-list caching and reparent/deactivate guards."""

    namespace = CACHE_NS_CATEGORY
    entity_type = "category"
    default_order = _ORDER

    def __init__(
        self,
        coordinator: TransactionCoordinator,
        cache: ReadThroughCache,
        ttls: CacheTtlPolicy | None = None,
    ) -> None:
        super().__init__(coordinator, cache, Category, CategoryResult, ttls)
        self.hierarchy = HierarchicalInvalidator(
            self.namespace, (*DEFAULT_AGGREGATE_ACTIONS, "slug")
        )

    def _to_result(self, obj: Category) -> CategoryResult:
        return CategoryResult(
            id=obj.id,
            name=obj.name,
            slug=obj.slug,
            parent_id=obj.parent_id,
            active=obj.active,
            sort_order=obj.sort_order,
            created_at=ensure_utc(obj.created_at),
            updated_at=ensure_utc(obj.updated_at),
            lifecycle=lifecycle_of(ensure_utc(obj.deleted_at)),
        )

    # Cached reads

    async def find_by_slug(self, slug: str) -> CategoryResult | None:
        spec = QuerySpec.of({"slug": slug})

        async def load() -> CategoryResult | None:
            obj = await self._fetch_one(apply_criteria(select(Category), Category, spec))
            return self._to_result(obj) if obj is not None else None

        return await self._remember(
            self.query_key("slug", spec.to_params()),
            self.ttls.entity,
            load,
            CategoryResult | None,
        )

    async def find_sub_categories(
        self, parent_id: int, active_only: bool = False
    ) -> list[CategoryResult]:
        """Direct children of parent_id. One cached list per parent."""

        async def load() -> list[CategoryResult]:
            spec = QuerySpec.of({"parent_id": parent_id}, order_by=_ORDER)
            rows = await self._fetch_all(apply_criteria(select(Category), Category, spec))
            return [self._to_result(row) for row in rows]

        children = await self._remember(
            self.hierarchy.children_key(parent_id),
            self.ttls.query,
            load,
            list[CategoryResult],
        )
        if active_only:
            return [c for c in children if c.active]
        return children

    async def find_root_categories(self) -> list[CategoryResult]:
        return await self._cached_list("roots", QuerySpec.of({"parent_id": None}, order_by=_ORDER))

    async def find_active_categories(self) -> list[CategoryResult]:
        return await self._cached_list("active", QuerySpec.of({"active": True}, order_by=_ORDER))

    async def find_inactive_categories(self) -> list[CategoryResult]:
        return await self._cached_list("inactive", QuerySpec.of({"active": False}, order_by=_ORDER))

    async def get_tree(self, include_inactive: bool = False) -> list[CategoryNode]:
        """Nested tree of live categories from the roots down.

        Without include_inactive, an inactive node hides its whole subtree.
        """
        filters = {} if include_inactive else {"active": True}
        spec = QuerySpec.of(filters, order_by=_ORDER)

        async def load() -> list[CategoryNode]:
            rows = await self._fetch_all(apply_criteria(select(Category), Category, spec))
            return _build_tree([self._to_result(row) for row in rows])

        return await self._remember(
            self.query_key("tree", spec.to_params()),
            self.ttls.query,
            load,
            list[CategoryNode],
        )

    async def get_parent_path(
        self, category_id: int, include_self: bool = False
    ) -> list[CategoryResult]:
        """Ancestors ordered root first (breadcrumbs)."""

        async def load() -> list[CategoryResult]:
            node = await self.get_entity(category_id)
            path = [self._to_result(node)] if include_self else []
            seen = {node.id}
            parent_id = node.parent_id
            while parent_id is not None and parent_id not in seen:
                parent = await self._load_live(parent_id)
                if parent is None:
                    break
                seen.add(parent.id)
                path.append(self._to_result(parent))
                parent_id = parent.parent_id
            path.reverse()
            return path

        return await self._remember(
            self.query_key("path", {"id": category_id, "include_self": include_self}),
            self.ttls.query,
            load,
            list[CategoryResult],
        )

    async def get_statistics(self) -> CategoryStats:
        async def load() -> CategoryStats:
            live = Category.deleted_at.is_(None)
            total = await self._scalar(select(func.count()).select_from(Category).where(live))
            active = await self._scalar(
                select(func.count()).select_from(Category).where(live, Category.active.is_(True))
            )
            roots = await self._scalar(
                select(func.count()).select_from(Category).where(live, Category.parent_id.is_(None))
            )
            return CategoryStats(total=total, active=active, inactive=total - active, roots=roots)

        return await self._remember(self.query_key("stats"), self.ttls.query, load, CategoryStats)

    # Fresh reads used by guards

    async def _load_live(self, category_id: int) -> Category | None:
        return await self._fetch_one(
            select(Category).where(Category.id == category_id, Category.deleted_at.is_(None))
        )

    async def is_descendant_of(self, category_id: int, ancestor_id: int) -> bool:
        """True if ancestor_id appears above category_id in the live tree."""
        node = await self._load_live(category_id)
        seen: set[int] = set()
        while node is not None and node.parent_id is not None and node.parent_id not in seen:
            if node.parent_id == ancestor_id:
                return True
            seen.add(node.id)
            node = await self._load_live(node.parent_id)
        return False

    async def would_create_circular_reference(
        self, category_id: int, new_parent_id: int | None
    ) -> bool:
        if new_parent_id is None:
            return False
        if new_parent_id == category_id:
            return True
        return await self.is_descendant_of(new_parent_id, category_id)

    async def _count_active_children(self, category_id: int) -> int:
        return await self._scalar(
            select(func.count())
            .select_from(Category)
            .where(
                Category.parent_id == category_id,
                Category.active.is_(True),
                Category.deleted_at.is_(None),
            )
        )

    async def _count_children(self, category_id: int) -> int:
        return await self._scalar(
            select(func.count())
            .select_from(Category)
            .where(Category.parent_id == category_id, Category.deleted_at.is_(None))
        )

    async def _count_products(self, category_id: int, active_only: bool) -> int:
        stmt = (
            select(func.count())
            .select_from(Product)
            .where(Product.category_id == category_id, Product.deleted_at.is_(None))
        )
        if active_only:
            stmt = stmt.where(Product.active.is_(True))
        return await self._scalar(stmt)

    async def can_delete(self, category_id: int) -> list[str]:
        """Reasons the category cannot be deleted; empty when it can."""
        reasons: list[str] = []
        products = await self._count_products(category_id, active_only=False)
        if products:
            reasons.append(f"Category has {products} associated product(s)")
        children = await self._count_children(category_id)
        if children:
            reasons.append(f"Category has {children} sub-category(s)")
        return reasons

    # Writes

    async def move_to_parent(self, category_id: int, new_parent_id: int | None) -> CategoryResult:
        """Reparent a category (None makes it a root)."""
        async with self.coordinator.transaction():
            obj = await self.get_entity(category_id)
            await self._check_parent(category_id, new_parent_id)
            return await self._apply_changes(obj, {"parent_id": new_parent_id}, AuditAction.MOVED)

    async def restore(self, entity_id: int) -> CategoryResult:
        """Undo a soft delete; refused while the parent is still deleted."""
        async with self.coordinator.transaction():
            obj = await self.get_entity(entity_id, include_deleted=True)
            if obj.parent_id is not None and await self._load_live(obj.parent_id) is None:
                raise DomainRuleException(
                    f"Category {entity_id} cannot be restored",
                    reasons=[f"cannot restore: parent category {obj.parent_id} is deleted"],
                )
            return await super().restore(entity_id)

    async def activate(self, category_id: int) -> CategoryResult:
        async with self.coordinator.transaction():
            obj = await self.get_entity(category_id)
            return await self._apply_changes(obj, {"active": True}, AuditAction.ACTIVATED)

    async def deactivate(self, category_id: int) -> CategoryResult:
        """Deactivate; refused while the category has active children or active products."""
        async with self.coordinator.transaction():
            obj = await self.get_entity(category_id)
            reasons: list[str] = []
            children = await self._count_active_children(category_id)
            if children:
                reasons.append(f"cannot deactivate: {children} active children")
            products = await self._count_products(category_id, active_only=True)
            if products:
                reasons.append(f"cannot deactivate: {products} active products")
            if reasons:
                raise DomainRuleException(
                    f"Category {category_id} cannot be deactivated", reasons=reasons
                )
            return await self._apply_changes(obj, {"active": False}, AuditAction.DEACTIVATED)

    async def _check_parent(self, category_id: int | None, parent_id: int | None) -> None:
        if parent_id is None:
            return
        if await self._load_live(parent_id) is None:
            raise ResourceNotFoundException(self.entity_type, parent_id)
        if category_id is not None and await self.would_create_circular_reference(
            category_id, parent_id
        ):
            raise ValidationException(
                "Cannot move a category under itself or one of its descendants",
                field="parent_id",
            )

    async def _validate(self, data: dict[str, Any], existing: Category | None) -> None:
        for field in ("name", "slug"):
            if existing is None or field in data:
                value = data.get(field)
                if not isinstance(value, str) or not value.strip():
                    raise ValidationException(f"{field} is required", field=field)
        if "parent_id" in data:
            await self._check_parent(existing.id if existing else None, data["parent_id"])

    async def _check_can_delete(self, obj: Category) -> None:
        reasons = await self.can_delete(obj.id)
        if reasons:
            raise DomainRuleException(f"Category {obj.id} cannot be deleted", reasons=reasons)

    def _invalidation_targets(
        self,
        old: dict[str, Any] | None,
        new: dict[str, Any] | None,
    ) -> list[InvalidationTarget]:
        snapshot = new or old or {}
        old_parent = (old or snapshot).get("parent_id")
        new_parent = snapshot.get("parent_id")
        return self.hierarchy.targets_for(snapshot["id"], old_parent, new_parent)


def _build_tree(categories: list[CategoryResult]) -> list[CategoryNode]:
    by_parent: dict[int | None, list[CategoryResult]] = {}
    for category in categories:
        by_parent.setdefault(category.parent_id, []).append(category)

    def build(parent_id: int | None, seen: frozenset[int]) -> tuple[CategoryNode, ...]:
        return tuple(
            CategoryNode(category=c, children=build(c.id, seen | {c.id}))
            for c in by_parent.get(parent_id, [])
            if c.id not in seen
        )

    return list(build(None, frozenset()))
