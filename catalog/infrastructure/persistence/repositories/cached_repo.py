"""Cached repository for soft-deletable entities with integer ids.

Exposes find, find_or_fail, find_all, count, exists, save, delete and
restore. Reads go through the read-through cache under the repository's
namespace; writes run inside the coordinator's transaction, record an audit
entry and queue invalidation targets that are applied after commit.

Subclasses implement _to_result and may override the hooks:
_validate (before insert/update), _check_can_delete (before soft delete)
and _invalidation_targets (what a write makes stale).
"""

from abc import abstractmethod
from collections.abc import Iterable, Mapping
from typing import Any, ClassVar, Generic, TypeVar

from sqlalchemy import func, inspect as sa_inspect, select

from catalog.domain.exceptions import (
    DomainRuleException,
    ResourceNotFoundException,
    ValidationException,
)
from catalog.infrastructure.cache.invalidation import InvalidationTarget
from catalog.infrastructure.cache.keys import entity_key, namespace_query_pattern, query_key
from catalog.infrastructure.cache.read_through import CacheTtlPolicy, ReadThroughCache
from catalog.infrastructure.persistence.criteria import QuerySpec, Visibility, apply_criteria
from catalog.infrastructure.persistence.database import Base
from catalog.infrastructure.persistence.repositories.base import BaseRepository
from catalog.infrastructure.persistence.transaction import TransactionCoordinator
from catalog.shared.enums import AuditAction
from catalog.shared.utils.datetime import utc_now

_PROTECTED_FIELDS = frozenset({"id", "created_at", "updated_at", "deleted_at"})


def as_spec(criteria: QuerySpec | Mapping[str, Any] | None) -> QuerySpec:
    if isinstance(criteria, QuerySpec):
        return criteria
    return QuerySpec.of(criteria)

ModelType = TypeVar("ModelType", bound=Base)
ResultType = TypeVar("ResultType")


class CachedRepository(BaseRepository[ModelType], Generic[ModelType, ResultType]):
    """CRUD with read-through caching and commit-then-invalidate writes."""

    default_order: ClassVar[tuple[str, ...]] = ("id",)

    def __init__(
        self,
        coordinator: TransactionCoordinator,
        cache: ReadThroughCache,
        model: type[ModelType],
        result_type: type[ResultType],
        ttls: CacheTtlPolicy | None = None,
    ) -> None:
        super().__init__(coordinator, cache, model, ttls)
        self.result_type = result_type

    @abstractmethod
    def _to_result(self, obj: ModelType) -> ResultType:
        """Map an ORM row to its read-model."""

    # Keys

    def entity_key(self, entity_id: int) -> str:
        return entity_key(self.namespace, entity_id)

    def query_key(self, action: str, params: Mapping[str, Any] | None = None) -> str:
        return query_key(self.namespace, action, params)

    # Reads

    async def find(self, entity_id: int) -> ResultType | None:
        """Return the live entity or None. Cached under the entity key."""

        async def load() -> ResultType | None:
            obj = await self._load(entity_id, Visibility.ACTIVE)
            return self._to_result(obj) if obj is not None else None

        return await self._remember(
            self.entity_key(entity_id), self.ttls.entity, load, self.result_type | None
        )

    async def find_or_fail(self, entity_id: int) -> ResultType:
        result = await self.find(entity_id)
        if result is None:
            raise ResourceNotFoundException(self.entity_type, entity_id)
        return result

    async def find_with_deleted(self, entity_id: int) -> ResultType | None:
        """Return the entity whether live or soft-deleted (uncached)."""
        obj = await self._load(entity_id, Visibility.WITH_DELETED)
        return self._to_result(obj) if obj is not None else None

    async def exists(self, entity_id: int) -> bool:
        return await self.find(entity_id) is not None

    async def find_all(
        self, criteria: QuerySpec | Mapping[str, Any] | None = None
    ) -> list[ResultType]:
        """Return entities matching criteria (default order by id). Cached per spec."""
        spec = as_spec(criteria)
        if not spec.order_by:
            spec = spec.ordered_by(*self.default_order)
        return await self._cached_list("list", spec)

    async def find_by_ids(self, ids: Iterable[int]) -> list[ResultType]:
        return await self.find_all(QuerySpec.of({"id": sorted(set(ids))}))

    async def count(self, criteria: QuerySpec | Mapping[str, Any] | None = None) -> int:
        spec = as_spec(criteria).without_paging()

        async def load() -> int:
            stmt = apply_criteria(select(func.count()).select_from(self.model), self.model, spec)
            return int(await self._scalar(stmt))

        return await self._remember(
            self.query_key("count", spec.to_params()), self.ttls.query, load, int
        )

    async def _cached_list(
        self, action: str, spec: QuerySpec, ttl: int | None = None
    ) -> list[ResultType]:
        async def load() -> list[ResultType]:
            rows = await self._fetch_all(apply_criteria(select(self.model), self.model, spec))
            return [self._to_result(row) for row in rows]

        return await self._remember(
            self.query_key(action, spec.to_params()),
            self.ttls.query if ttl is None else ttl,
            load,
            list[self.result_type],
        )

    async def _load(self, entity_id: int, visibility: Visibility) -> ModelType | None:
        spec = QuerySpec.of({"id": entity_id}, visibility=visibility)
        return await self._fetch_one(apply_criteria(select(self.model), self.model, spec))

    async def get_entity(self, entity_id: int, *, include_deleted: bool = False) -> ModelType:
        """Fresh ORM row for callers that mutate it; raises if missing."""
        visibility = Visibility.WITH_DELETED if include_deleted else Visibility.ACTIVE
        obj = await self._load(entity_id, visibility)
        if obj is None:
            raise ResourceNotFoundException(self.entity_type, entity_id)
        return obj

    # Writes

    async def save(self, values: Mapping[str, Any]) -> ResultType:
        """Insert when values has no id, otherwise update that entity."""
        data = dict(values)
        entity_id = data.pop("id", None)
        self._check_fields(data)
        async with self.coordinator.transaction():
            if entity_id is None:
                return await self._create(data)
            return await self._update(entity_id, data)

    async def delete(self, entity_id: int) -> None:
        """Soft delete. Refused with DomainRuleException by _check_can_delete."""
        async with self.coordinator.transaction():
            obj = await self.get_entity(entity_id)
            await self._check_can_delete(obj)
            before = self._snapshot(obj)
            old_audit = self._serialize_for_audit(obj)
            obj.deleted_at = utc_now()
            await self._flush(obj)
            self._audit(entity_id, AuditAction.DELETED, old_audit, None)
            self._invalidate(self._invalidation_targets(before, self._snapshot(obj)))

    async def restore(self, entity_id: int) -> ResultType:
        """Undo a soft delete."""
        async with self.coordinator.transaction():
            obj = await self.get_entity(entity_id, include_deleted=True)
            if obj.deleted_at is None:
                raise DomainRuleException(
                    f"{self.entity_type} {entity_id} is not deleted",
                    reasons=["cannot restore: entity is not deleted"],
                )
            return await self._apply_changes(obj, {"deleted_at": None}, AuditAction.RESTORED)

    async def _create(self, data: dict[str, Any]) -> ResultType:
        await self._validate(data, None)
        obj = self.model(**data)
        self.db.add(obj)
        await self._flush(obj)
        self._audit(obj.id, AuditAction.CREATED, None, self._serialize_for_audit(obj))
        self._invalidate(self._invalidation_targets(None, self._snapshot(obj)))
        return self._to_result(obj)

    async def _update(self, entity_id: int, data: dict[str, Any]) -> ResultType:
        obj = await self.get_entity(entity_id)
        before = self._snapshot(obj)
        await self._validate(data, obj)
        return await self._apply_changes(obj, data, AuditAction.UPDATED, before)

    async def _apply_changes(
        self,
        obj: ModelType,
        changes: Mapping[str, Any],
        action: AuditAction,
        before: dict[str, Any] | None = None,
    ) -> ResultType:
        """Set attributes, flush, audit and queue invalidation. Requires an open unit."""
        before = before if before is not None else self._snapshot(obj)
        old_audit = self._serialize_for_audit(obj)
        for key, value in changes.items():
            setattr(obj, key, value)
        await self._flush(obj)
        self._audit(obj.id, action, old_audit, self._serialize_for_audit(obj))
        self._invalidate(self._invalidation_targets(before, self._snapshot(obj)))
        return self._to_result(obj)

    def _check_fields(self, data: Mapping[str, Any]) -> None:
        writable = {attr.key for attr in self._column_attrs()} - _PROTECTED_FIELDS
        unknown = sorted(set(data) - writable)
        if unknown:
            raise ValidationException(
                f"Unknown or read-only field(s) for {self.entity_type}: {', '.join(unknown)}",
                field=unknown[0],
            )

    def _column_attrs(self) -> Iterable[Any]:
        return sa_inspect(self.model).column_attrs

    # Hooks

    async def _validate(self, data: dict[str, Any], existing: ModelType | None) -> None:
        """Override to validate input; existing is None on insert."""

    async def _check_can_delete(self, obj: ModelType) -> None:
        """Override to refuse deletion with DomainRuleException."""

    def _invalidation_targets(
        self,
        old: dict[str, Any] | None,
        new: dict[str, Any] | None,
    ) -> list[InvalidationTarget]:
        """Entity key plus every cached query in the namespace."""
        snapshot = new or old or {}
        return [
            InvalidationTarget.key(self.entity_key(snapshot["id"])),
            InvalidationTarget.pattern(namespace_query_pattern(self.namespace)),
        ]
