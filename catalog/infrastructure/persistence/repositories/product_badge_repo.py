"""Product-badge associations: which badges a product carries."""

from typing import Any

from sqlalchemy import select

from catalog.application.dtos.badge import ProductBadgeResult
from catalog.core.constants import CACHE_NS_PRODUCT_BADGE
from catalog.domain.exceptions import ResourceNotFoundException
from catalog.domain.value_objects import CompositeIdentity
from catalog.infrastructure.cache.read_through import CacheTtlPolicy, ReadThroughCache
from catalog.infrastructure.persistence.models.badge import Badge, ProductBadge
from catalog.infrastructure.persistence.models.product import Product
from catalog.infrastructure.persistence.repositories.composite_repo import CompositeKeyRepository
from catalog.infrastructure.persistence.transaction import TransactionCoordinator
from catalog.shared.utils.datetime import ensure_utc


class ProductBadgeRepository(CompositeKeyRepository[ProductBadge, ProductBadgeResult]):
    """Owner is the product, related is the badge."""

    namespace = CACHE_NS_PRODUCT_BADGE
    entity_type = "product_badge"
    owner_field = "product_id"
    related_field = "badge_id"

    def __init__(
        self,
        coordinator: TransactionCoordinator,
        cache: ReadThroughCache,
        ttls: CacheTtlPolicy | None = None,
    ) -> None:
        super().__init__(coordinator, cache, ProductBadge, ProductBadgeResult, ttls)

    def _to_result(self, obj: ProductBadge) -> ProductBadgeResult:
        return ProductBadgeResult(
            product_id=obj.product_id,
            badge_id=obj.badge_id,
            assigned_by=obj.assigned_by,
            assigned_at=ensure_utc(obj.assigned_at),
        )

    async def find_badges_for_product(self, product_id: int) -> list[ProductBadgeResult]:
        return await self.find_by_owner(product_id)

    async def find_products_for_badge(self, badge_id: int) -> list[ProductBadgeResult]:
        return await self.find_by_related(badge_id)

    def _extra_values(self, assigned_by: int | None) -> dict[str, Any]:
        return {"assigned_by": assigned_by}

    async def _check_references(self, identity: CompositeIdentity) -> None:
        product = await self._fetch_one(
            select(Product).where(Product.id == identity.owner_id, Product.deleted_at.is_(None))
        )
        if product is None:
            raise ResourceNotFoundException("product", identity.owner_id)
        badge = await self._fetch_one(
            select(Badge).where(Badge.id == identity.related_id, Badge.deleted_at.is_(None))
        )
        if badge is None:
            raise ResourceNotFoundException("badge", identity.related_id)
