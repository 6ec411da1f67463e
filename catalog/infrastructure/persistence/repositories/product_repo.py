"""Product repository."""

from typing import Any

from sqlalchemy import select

from catalog.application.dtos.product import ProductResult
from catalog.core.constants import CACHE_NS_PRODUCT
from catalog.domain.exceptions import ResourceNotFoundException, ValidationException
from catalog.domain.value_objects import lifecycle_of
from catalog.infrastructure.cache.read_through import CacheTtlPolicy, ReadThroughCache
from catalog.infrastructure.persistence.criteria import QuerySpec
from catalog.infrastructure.persistence.models.category import Category
from catalog.infrastructure.persistence.models.product import Product
from catalog.infrastructure.persistence.repositories.cached_repo import CachedRepository
from catalog.infrastructure.persistence.transaction import TransactionCoordinator
from catalog.shared.utils.datetime import ensure_utc


class ProductRepository(CachedRepository[Product, ProductResult]):
    namespace = CACHE_NS_PRODUCT
    entity_type = "product"

    def __init__(
        self,
        coordinator: TransactionCoordinator,
        cache: ReadThroughCache,
        ttls: CacheTtlPolicy | None = None,
    ) -> None:
        super().__init__(coordinator, cache, Product, ProductResult, ttls)

    def _to_result(self, obj: Product) -> ProductResult:
        return ProductResult(
            id=obj.id,
            name=obj.name,
            slug=obj.slug,
            category_id=obj.category_id,
            active=obj.active,
            created_at=ensure_utc(obj.created_at),
            updated_at=ensure_utc(obj.updated_at),
            lifecycle=lifecycle_of(ensure_utc(obj.deleted_at)),
        )

    async def find_by_category(
        self, category_id: int, active_only: bool = False
    ) -> list[ProductResult]:
        filters: dict[str, Any] = {"category_id": category_id}
        if active_only:
            filters["active"] = True
        return await self._cached_list("by_category", QuerySpec.of(filters, order_by=("name", "id")))

    async def _validate(self, data: dict[str, Any], existing: Product | None) -> None:
        for field in ("name", "slug"):
            if existing is None or field in data:
                value = data.get(field)
                if not isinstance(value, str) or not value.strip():
                    raise ValidationException(f"{field} is required", field=field)
        category_id = data.get("category_id")
        if category_id is not None:
            found = await self._fetch_one(
                select(Category).where(Category.id == category_id, Category.deleted_at.is_(None))
            )
            if found is None:
                raise ResourceNotFoundException("category", category_id)
