"""Base repository: plumbing shared by every catalog repository.

Holds the TransactionCoordinator (commit, invalidation queue, audit buffer)
and the ReadThroughCache. Subclasses never call commit, never delete cache
keys directly and never touch the cache store: reads go through
``_remember`` and writes queue targets with ``_invalidate``.
"""

from collections.abc import Awaitable, Callable, Iterable
from typing import Any, ClassVar, Generic, TypeVar

from sqlalchemy import Select, inspect as sa_inspect
from sqlalchemy.exc import IntegrityError

from catalog.domain.exceptions import DomainRuleException
from catalog.infrastructure.cache.invalidation import InvalidationTarget
from catalog.infrastructure.cache.read_through import CacheTtlPolicy, ReadThroughCache
from catalog.infrastructure.persistence.database import Base
from catalog.infrastructure.persistence.transaction import TransactionCoordinator
from catalog.shared.enums import AuditAction

ModelType = TypeVar("ModelType", bound=Base)
T = TypeVar("T")


class BaseRepository(Generic[ModelType]):
    """Shared plumbing: fresh reads, cached reads, flush, audit and invalidation.

    Subclasses set namespace (cache key prefix) and entity_type (audit label).
    """

    namespace: ClassVar[str]
    entity_type: ClassVar[str]

    def __init__(
        self,
        coordinator: TransactionCoordinator,
        cache: ReadThroughCache,
        model: type[ModelType],
        ttls: CacheTtlPolicy | None = None,
    ) -> None:
        self.coordinator = coordinator
        self.db = coordinator.db
        self.cache = cache
        self.model = model
        self.ttls = ttls or CacheTtlPolicy()

    async def _remember(
        self,
        key: str,
        ttl: int | None,
        loader: Callable[[], Awaitable[T]],
        result_type: Any,
    ) -> T:
        return await self.cache.remember(key, ttl, loader, result_type)

    async def _fetch_one(self, stmt: Select[Any]) -> ModelType | None:
        """Execute stmt and return one fresh ORM row (identity map refreshed)."""
        result = await self.db.execute(stmt.execution_options(populate_existing=True))
        return result.scalar_one_or_none()

    async def _fetch_all(self, stmt: Select[Any]) -> list[ModelType]:
        result = await self.db.execute(stmt.execution_options(populate_existing=True))
        return list(result.scalars().all())

    async def _scalar(self, stmt: Select[Any]) -> Any:
        result = await self.db.execute(stmt)
        return result.scalar_one()

    async def _flush(self, obj: ModelType | None = None) -> None:
        """Flush pending changes; uniqueness/reference violations become DomainRuleException.

        When obj is given it is refreshed afterwards so server-side defaults
        (timestamps) are loaded without lazy IO.
        """
        try:
            await self.db.flush()
        except IntegrityError as e:
            raise DomainRuleException(
                f"{self.entity_type} violates a uniqueness or reference constraint",
                reasons=[f"constraint violation: {e.orig}"],
            ) from e
        if obj is not None:
            await self.db.refresh(obj)

    def _snapshot(self, obj: ModelType) -> dict[str, Any]:
        """Column values of obj, used for audit before/after images."""
        return {attr.key: getattr(obj, attr.key) for attr in sa_inspect(self.model).column_attrs}

    def _serialize_for_audit(self, obj: ModelType) -> dict[str, Any]:
        """Override to drop or reshape fields in audit payloads."""
        return self._snapshot(obj)

    def _invalidate(self, targets: Iterable[str | InvalidationTarget]) -> None:
        self.coordinator.invalidate(*targets)

    def _audit(
        self,
        entity_id: int | str,
        action: AuditAction,
        old_values: dict[str, Any] | None,
        new_values: dict[str, Any] | None,
    ) -> None:
        self.coordinator.record_audit(
            self.entity_type, entity_id, action, old_values=old_values, new_values=new_values
        )
