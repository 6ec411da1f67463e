"""Badge repository.

Archiving a badge is its soft delete and is refused while the badge is
assigned to any product. The common badges list is cached without expiry;
every badge write drops it together with the rest of the namespace queries.
"""

import re
from typing import Any

from sqlalchemy import func, select

from catalog.application.dtos.badge import BadgeResult, CommonBadge
from catalog.core.constants import CACHE_NS_BADGE
from catalog.domain.exceptions import DomainRuleException, ValidationException
from catalog.domain.value_objects import lifecycle_of
from catalog.infrastructure.cache.read_through import CacheTtlPolicy, ReadThroughCache
from catalog.infrastructure.persistence.criteria import QuerySpec, Visibility, apply_criteria
from catalog.infrastructure.persistence.models.badge import Badge, ProductBadge
from catalog.infrastructure.persistence.repositories.cached_repo import CachedRepository
from catalog.infrastructure.persistence.transaction import TransactionCoordinator
from catalog.shared.utils.datetime import ensure_utc

_COLOR_RE = re.compile(r"^#[0-9A-Fa-f]{6}$")

COMMON_BADGES: tuple[CommonBadge, ...] = (
    CommonBadge("best_seller", "Best Seller", "#EF4444"),
    CommonBadge("new_arrival", "New Arrival", "#10B981"),
    CommonBadge("limited", "Limited Edition", "#8B5CF6"),
    CommonBadge("exclusive", "Exclusive", "#F59E0B"),
    CommonBadge("trending", "Trending", "#3B82F6"),
    CommonBadge("verified", "Verified", "#059669"),
    CommonBadge("discount", "Discount", "#EC4899"),
    CommonBadge("premium", "Premium", "#D97706"),
)


class BadgeRepository(CachedRepository[Badge, BadgeResult]):
    namespace = CACHE_NS_BADGE
    entity_type = "badge"
    default_order = ("label", "id")

    def __init__(
        self,
        coordinator: TransactionCoordinator,
        cache: ReadThroughCache,
        ttls: CacheTtlPolicy | None = None,
    ) -> None:
        super().__init__(coordinator, cache, Badge, BadgeResult, ttls)

    def _to_result(self, obj: Badge) -> BadgeResult:
        return BadgeResult(
            id=obj.id,
            label=obj.label,
            color=obj.color,
            created_at=ensure_utc(obj.created_at),
            lifecycle=lifecycle_of(ensure_utc(obj.deleted_at)),
        )

    async def find_by_label(self, label: str) -> BadgeResult | None:
        spec = QuerySpec.of({"label": label})

        async def load() -> BadgeResult | None:
            obj = await self._fetch_one(apply_criteria(select(Badge), Badge, spec))
            return self._to_result(obj) if obj is not None else None

        return await self._remember(
            self.query_key("label", spec.to_params()), self.ttls.entity, load, BadgeResult | None
        )

    async def find_all_active(self) -> list[BadgeResult]:
        return await self._cached_list("active", QuerySpec.of(order_by=self.default_order))

    async def find_archived(self) -> list[BadgeResult]:
        spec = QuerySpec.of(order_by=self.default_order, visibility=Visibility.ONLY_DELETED)
        return await self._cached_list("archived", spec)

    async def find_common_badges(self) -> list[BadgeResult]:
        """Live badges whose label belongs to the common set, in set order."""
        order = {b.label: i for i, b in enumerate(COMMON_BADGES)}

        async def load() -> list[BadgeResult]:
            rows = await self._fetch_all(
                select(Badge).where(Badge.label.in_(list(order)), Badge.deleted_at.is_(None))
            )
            return sorted((self._to_result(r) for r in rows), key=lambda b: order[b.label])

        return await self.cache.remember_forever(
            self.query_key("common"), load, list[BadgeResult]
        )

    async def initialize_common_badges(self) -> list[BadgeResult]:
        """Create the common badges that do not exist yet. Returns the created ones."""
        created: list[BadgeResult] = []
        async with self.coordinator.transaction():
            existing = set((await self.db.execute(select(Badge.label))).scalars().all())
            for badge in COMMON_BADGES:
                if badge.label not in existing:
                    created.append(await self._create({"label": badge.label, "color": badge.color}))
        return created

    async def count_assignments(self, badge_id: int) -> int:
        """Products currently carrying the badge (fresh read)."""
        return await self._scalar(
            select(func.count()).select_from(ProductBadge).where(ProductBadge.badge_id == badge_id)
        )

    async def can_be_archived(self, badge_id: int) -> bool:
        return await self.count_assignments(badge_id) == 0

    async def archive(self, badge_id: int) -> None:
        await self.delete(badge_id)

    async def _check_can_delete(self, obj: Badge) -> None:
        assigned = await self.count_assignments(obj.id)
        if assigned:
            raise DomainRuleException(
                f"Badge {obj.id} cannot be archived",
                reasons=[f"Badge is assigned to {assigned} product(s)"],
            )

    async def _validate(self, data: dict[str, Any], existing: Badge | None) -> None:
        if existing is None or "label" in data:
            label = data.get("label")
            if not isinstance(label, str) or not label.strip():
                raise ValidationException("label is required", field="label")
            data["label"] = label.strip()
        if "color" in data and data["color"] is not None:
            if not isinstance(data["color"], str) or not _COLOR_RE.fullmatch(data["color"]):
                raise ValidationException("color must be a hex color like #3B82F6", field="color")
