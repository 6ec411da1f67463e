"""Link repository: affiliate links, price freshness and revenue accumulation.

Product-scoped lists are cached under exact query keys so a write to one
link drops only the lists of the product(s) it belongs to, plus the
cross-product aggregates (freshness queues, top performers, listings).
"""

import re
from collections.abc import Iterable
from datetime import timedelta
from decimal import Decimal
from typing import Any

from sqlalchemy import or_, select

from catalog.application.dtos.link import LinkResult
from catalog.core.constants import (
    CACHE_NS_LINK,
    LINK_PRICE_STALE_HOURS,
    LINK_VALIDATION_STALE_HOURS,
)
from catalog.domain.commands import (
    LinkUpdateCommand,
    MarkLinksValidated,
    SetLinkPrice,
    SetLinkStatus,
)
from catalog.domain.commission import CommissionRevenueDeriver
from catalog.domain.exceptions import ResourceNotFoundException, ValidationException
from catalog.domain.value_objects import lifecycle_of
from catalog.infrastructure.cache.invalidation import InvalidationTarget
from catalog.infrastructure.cache.keys import query_pattern
from catalog.infrastructure.cache.read_through import CacheTtlPolicy, ReadThroughCache
from catalog.infrastructure.persistence.criteria import QuerySpec
from catalog.infrastructure.persistence.models.link import Link
from catalog.infrastructure.persistence.models.product import Product
from catalog.infrastructure.persistence.repositories.cached_repo import CachedRepository
from catalog.infrastructure.persistence.transaction import TransactionCoordinator
from catalog.shared.enums import AuditAction
from catalog.shared.utils.datetime import ensure_utc, utc_now

_PRICE_RE = re.compile(r"^\d+(\.\d{1,2})?$")
_CENTS = Decimal("0.01")

# Cached queries that span products; dropped on every link write.
_AGGREGATE_ACTIONS = (
    "list",
    "count",
    "by_marketplace",
    "needs_price_update",
    "needs_validation",
    "top_performing",
)


def parse_price(value: Any) -> Decimal:
    """Accept "123", "123.4", "123.45" or an equivalent Decimal; reject anything else."""
    text = format(value, "f") if isinstance(value, Decimal) else str(value).strip()
    if isinstance(value, bool | float) or not _PRICE_RE.fullmatch(text):
        raise ValidationException(
            "Price must be a non-negative decimal with at most 2 decimals", field="price"
        )
    return Decimal(text).quantize(_CENTS)


class LinkRepository(CachedRepository[Link, LinkResult]):
    """Links with product-scoped caching and commission-derived revenue."""

    namespace = CACHE_NS_LINK
    entity_type = "link"

    def __init__(
        self,
        coordinator: TransactionCoordinator,
        cache: ReadThroughCache,
        ttls: CacheTtlPolicy | None = None,
        deriver: CommissionRevenueDeriver | None = None,
    ) -> None:
        super().__init__(coordinator, cache, Link, LinkResult, ttls)
        self.deriver = deriver or CommissionRevenueDeriver()

    def _to_result(self, obj: Link) -> LinkResult:
        return LinkResult(
            id=obj.id,
            product_id=obj.product_id,
            marketplace_id=obj.marketplace_id,
            store_name=obj.store_name,
            price=Decimal(obj.price).quantize(_CENTS),
            url=obj.url,
            active=obj.active,
            clicks=obj.clicks,
            sold_count=obj.sold_count,
            affiliate_revenue=Decimal(obj.affiliate_revenue or 0).quantize(_CENTS),
            last_price_update=ensure_utc(obj.last_price_update),
            last_validation=ensure_utc(obj.last_validation),
            created_at=ensure_utc(obj.created_at),
            updated_at=ensure_utc(obj.updated_at),
            lifecycle=lifecycle_of(ensure_utc(obj.deleted_at)),
        )

    # Cached reads

    @staticmethod
    def _product_spec(product_id: int, active_only: bool) -> QuerySpec:
        filters: dict[str, Any] = {"product_id": product_id}
        if active_only:
            filters["active"] = True
        return QuerySpec.of(filters, order_by=("price", "id"))

    def _product_keys(self, product_id: int) -> list[str]:
        return [
            self.query_key("by_product", self._product_spec(product_id, False).to_params()),
            self.query_key("active_for_product", self._product_spec(product_id, True).to_params()),
        ]

    async def find_by_product(self, product_id: int) -> list[LinkResult]:
        return await self._cached_list("by_product", self._product_spec(product_id, False))

    async def find_active_for_product(self, product_id: int) -> list[LinkResult]:
        return await self._cached_list("active_for_product", self._product_spec(product_id, True))

    async def find_by_marketplace(self, marketplace_id: int) -> list[LinkResult]:
        spec = QuerySpec.of({"marketplace_id": marketplace_id}, order_by=("-affiliate_revenue", "id"))
        return await self._cached_list("by_marketplace", spec)

    async def find_needing_price_update(self, limit: int = 50) -> list[LinkResult]:
        """Active links whose price was never checked or is older than 24 hours."""
        cutoff = utc_now() - timedelta(hours=LINK_PRICE_STALE_HOURS)

        async def load() -> list[LinkResult]:
            stmt = (
                select(Link)
                .where(
                    Link.deleted_at.is_(None),
                    Link.active.is_(True),
                    or_(Link.last_price_update.is_(None), Link.last_price_update < cutoff),
                )
                .order_by(Link.last_price_update.is_not(None), Link.last_price_update, Link.id)
                .limit(limit)
            )
            return [self._to_result(row) for row in await self._fetch_all(stmt)]

        return await self._remember(
            self.query_key("needs_price_update", {"limit": limit}),
            self.ttls.volatile,
            load,
            list[LinkResult],
        )

    async def find_needing_validation(self, limit: int = 100) -> list[LinkResult]:
        """Active links never validated or validated more than 48 hours ago."""
        cutoff = utc_now() - timedelta(hours=LINK_VALIDATION_STALE_HOURS)

        async def load() -> list[LinkResult]:
            stmt = (
                select(Link)
                .where(
                    Link.deleted_at.is_(None),
                    Link.active.is_(True),
                    or_(Link.last_validation.is_(None), Link.last_validation < cutoff),
                )
                .order_by(Link.last_validation.is_not(None), Link.last_validation, Link.id)
                .limit(limit)
            )
            return [self._to_result(row) for row in await self._fetch_all(stmt)]

        return await self._remember(
            self.query_key("needs_validation", {"limit": limit}),
            self.ttls.volatile,
            load,
            list[LinkResult],
        )

    async def find_top_performing(self, limit: int = 10) -> list[LinkResult]:
        spec = QuerySpec.of({"active": True}, order_by=("-affiliate_revenue", "id"), limit=limit)
        return await self._cached_list("top_performing", spec)

    # Writes

    async def update_price(self, link_id: int, price: Decimal | str) -> LinkResult:
        amount = parse_price(price)
        async with self.coordinator.transaction():
            obj = await self.get_entity(link_id)
            return await self._apply_changes(
                obj,
                {"price": amount, "last_price_update": utc_now()},
                AuditAction.PRICE_UPDATED,
            )

    async def add_affiliate_revenue(
        self,
        link_id: int,
        commission_rate: Decimal | str | int | None = None,
    ) -> LinkResult:
        """Accumulate price x rate / 100 onto affiliate_revenue.

        The rate is used only here: it is not stored, returned or audited.
        Calling twice adds twice.
        """
        async with self.coordinator.transaction():
            obj = await self.get_entity(link_id)
            delta = self.deriver.derive(obj.price, commission_rate)
            total = self.deriver.accumulate(obj.affiliate_revenue, delta)
            return await self._apply_changes(
                obj, {"affiliate_revenue": total}, AuditAction.REVENUE_ADDED
            )

    async def increment_clicks(self, link_id: int) -> LinkResult:
        async with self.coordinator.transaction():
            obj = await self.get_entity(link_id)
            return await self._apply_changes(obj, {"clicks": obj.clicks + 1}, AuditAction.UPDATED)

    async def mark_as_validated(self, link_id: int) -> LinkResult:
        async with self.coordinator.transaction():
            obj = await self.get_entity(link_id)
            return await self._apply_changes(obj, {"last_validation": utc_now()}, AuditAction.UPDATED)

    async def bulk_update(self, link_ids: Iterable[int], command: LinkUpdateCommand) -> int:
        """Apply one command to every live link in link_ids. Returns links updated."""
        ids = sorted({i for i in link_ids if isinstance(i, int) and i > 0})
        if not ids:
            return 0
        match command:
            case SetLinkStatus(active=active):
                changes: dict[str, Any] = {"active": active}
                action = AuditAction.STATUS_CHANGED
            case SetLinkPrice(price=price):
                changes = {"price": parse_price(price), "last_price_update": utc_now()}
                action = AuditAction.PRICE_UPDATED
            case MarkLinksValidated():
                changes = {"last_validation": utc_now()}
                action = AuditAction.UPDATED
            case _:
                raise ValidationException(f"Unsupported link update: {command!r}", field="command")
        async with self.coordinator.transaction():
            rows = await self._fetch_all(
                select(Link).where(Link.id.in_(ids), Link.deleted_at.is_(None)).order_by(Link.id)
            )
            for obj in rows:
                await self._apply_changes(obj, changes, action)
            return len(rows)

    async def _validate(self, data: dict[str, Any], existing: Link | None) -> None:
        if existing is None or "product_id" in data:
            product_id = data.get("product_id")
            found = await self._fetch_one(
                select(Product).where(Product.id == product_id, Product.deleted_at.is_(None))
            )
            if found is None:
                raise ResourceNotFoundException("product", str(product_id))
        for field in ("store_name", "url"):
            if existing is None or field in data:
                value = data.get(field)
                if not isinstance(value, str) or not value.strip():
                    raise ValidationException(f"{field} is required", field=field)
        if existing is None or "price" in data:
            data["price"] = parse_price(data.get("price"))
        if "affiliate_revenue" in data:
            data["affiliate_revenue"] = parse_price(data["affiliate_revenue"])

    def _invalidation_targets(
        self,
        old: dict[str, Any] | None,
        new: dict[str, Any] | None,
    ) -> list[InvalidationTarget]:
        snapshot = new or old or {}
        targets = [InvalidationTarget.key(self.entity_key(snapshot["id"]))]
        for product_id in dict.fromkeys(
            s["product_id"] for s in (old, new) if s and s.get("product_id") is not None
        ):
            targets.extend(InvalidationTarget.key(k) for k in self._product_keys(product_id))
        targets.extend(
            InvalidationTarget.pattern(query_pattern(self.namespace, action))
            for action in _AGGREGATE_ACTIONS
        )
        return targets
