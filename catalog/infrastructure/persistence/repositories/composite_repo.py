"""Composite-key repository for association tables.

An association row is identified by the ordered pair (owner_id, related_id)
and has no surrogate id and no soft delete: dissociating removes the row.
The string form "owner_related" is accepted wherever an entity repository
would take an id, so callers can treat associations uniformly.

Cache layout under the repository namespace:
  {ns}:entity:{owner}_{related}        one association
  {ns}:query:by_owner:{digest}         associations of one owner
  {ns}:query:by_related:{digest}       associations of one related entity
  {ns}:query:count_owner / count_related
Writes drop exactly the keys for the pair's owner and related entity.
"""

from abc import abstractmethod
from collections.abc import Iterable
from typing import Any, ClassVar, Generic, TypeVar

from sqlalchemy import func, select

from catalog.domain.exceptions import (
    DomainRuleException,
    DuplicateAssociationException,
    ResourceNotFoundException,
)
from catalog.domain.value_objects import CompositeIdentity
from catalog.infrastructure.cache.invalidation import InvalidationTarget
from catalog.infrastructure.cache.keys import composite_key, query_key
from catalog.infrastructure.cache.read_through import CacheTtlPolicy, ReadThroughCache
from catalog.infrastructure.persistence.database import Base
from catalog.infrastructure.persistence.repositories.base import BaseRepository
from catalog.infrastructure.persistence.transaction import TransactionCoordinator
from catalog.shared.enums import AuditAction


def parse_composite_id(value: object) -> CompositeIdentity:
    """Parse "owner_related" into a CompositeIdentity (ValidationException if malformed)."""
    return CompositeIdentity.parse(value)

ModelType = TypeVar("ModelType", bound=Base)
ResultType = TypeVar("ResultType")


class CompositeKeyRepository(BaseRepository[ModelType], Generic[ModelType, ResultType]):
    """Association rows keyed by (owner_id, related_id).

    Subclasses set owner_field/related_field to the model's key columns and
    implement _to_result. _check_references may refuse associations whose
    ends do not exist.
    """

    owner_field: ClassVar[str]
    related_field: ClassVar[str]

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

    @property
    def _owner_column(self) -> Any:
        return getattr(self.model, self.owner_field)

    @property
    def _related_column(self) -> Any:
        return getattr(self.model, self.related_field)

    # Keys

    def association_key(self, owner_id: int, related_id: int) -> str:
        return composite_key(self.namespace, owner_id, related_id)

    def _owner_keys(self, owner_id: int) -> list[str]:
        params = {self.owner_field: owner_id}
        return [
            query_key(self.namespace, "by_owner", params),
            query_key(self.namespace, "count_owner", params),
        ]

    def _related_keys(self, related_id: int) -> list[str]:
        params = {self.related_field: related_id}
        return [
            query_key(self.namespace, "by_related", params),
            query_key(self.namespace, "count_related", params),
        ]

    def _targets_for(self, identity: CompositeIdentity) -> list[InvalidationTarget]:
        keys = [
            self.association_key(identity.owner_id, identity.related_id),
            *self._owner_keys(identity.owner_id),
            *self._related_keys(identity.related_id),
        ]
        return [InvalidationTarget.key(k) for k in keys]

    # Reads

    async def _load(self, identity: CompositeIdentity) -> ModelType | None:
        return await self._fetch_one(
            select(self.model).where(
                self._owner_column == identity.owner_id,
                self._related_column == identity.related_id,
            )
        )

    async def find_by_composite_key(self, owner_id: int, related_id: int) -> ResultType | None:
        identity = CompositeIdentity(owner_id, related_id)

        async def load() -> ResultType | None:
            obj = await self._load(identity)
            return self._to_result(obj) if obj is not None else None

        return await self._remember(
            self.association_key(owner_id, related_id),
            self.ttls.entity,
            load,
            self.result_type | None,
        )

    async def association_exists(self, owner_id: int, related_id: int) -> bool:
        return await self.find_by_composite_key(owner_id, related_id) is not None

    async def find_by_owner(self, owner_id: int) -> list[ResultType]:
        async def load() -> list[ResultType]:
            rows = await self._fetch_all(
                select(self.model)
                .where(self._owner_column == owner_id)
                .order_by(self._related_column)
            )
            return [self._to_result(row) for row in rows]

        return await self._remember(
            self._owner_keys(owner_id)[0], self.ttls.query, load, list[self.result_type]
        )

    async def find_by_related(self, related_id: int) -> list[ResultType]:
        async def load() -> list[ResultType]:
            rows = await self._fetch_all(
                select(self.model)
                .where(self._related_column == related_id)
                .order_by(self._owner_column)
            )
            return [self._to_result(row) for row in rows]

        return await self._remember(
            self._related_keys(related_id)[0], self.ttls.query, load, list[self.result_type]
        )

    async def count_for_owner(self, owner_id: int) -> int:
        async def load() -> int:
            return int(
                await self._scalar(
                    select(func.count())
                    .select_from(self.model)
                    .where(self._owner_column == owner_id)
                )
            )

        return await self._remember(self._owner_keys(owner_id)[1], self.ttls.query, load, int)

    async def count_for_related(self, related_id: int) -> int:
        async def load() -> int:
            return int(
                await self._scalar(
                    select(func.count())
                    .select_from(self.model)
                    .where(self._related_column == related_id)
                )
            )

        return await self._remember(self._related_keys(related_id)[1], self.ttls.query, load, int)

    # Writes

    async def associate(
        self, owner_id: int, related_id: int, assigned_by: int | None = None
    ) -> ResultType:
        """Create the association; DuplicateAssociationException if it already exists."""
        identity = CompositeIdentity(owner_id, related_id)
        async with self.coordinator.transaction():
            if await self._load(identity) is not None:
                raise DuplicateAssociationException(self.entity_type, owner_id, related_id)
            await self._check_references(identity)
            obj = self.model(
                **{self.owner_field: owner_id, self.related_field: related_id},
                **self._extra_values(assigned_by),
            )
            self.db.add(obj)
            await self._flush(obj)
            self._audit(str(identity), AuditAction.ASSOCIATED, None, self._serialize_for_audit(obj))
            self._invalidate(self._targets_for(identity))
            return self._to_result(obj)

    async def dissociate(self, owner_id: int, related_id: int) -> None:
        """Remove the association; ResourceNotFoundException if absent."""
        identity = CompositeIdentity(owner_id, related_id)
        async with self.coordinator.transaction():
            obj = await self._load(identity)
            if obj is None:
                raise ResourceNotFoundException(self.entity_type, str(identity))
            await self._remove(obj, identity)

    async def sync_for(
        self,
        owner_id: int,
        related_ids: Iterable[int],
        assigned_by: int | None = None,
    ) -> list[ResultType]:
        """Replace the owner's associations with related_ids in one transaction."""
        wanted = list(dict.fromkeys(related_ids))
        async with self.coordinator.transaction():
            await self.remove_all_for_owner(owner_id)
            return [await self.associate(owner_id, rid, assigned_by) for rid in wanted]

    async def remove_all_for_owner(self, owner_id: int) -> int:
        """Remove every association of owner_id. Returns how many were removed."""
        async with self.coordinator.transaction():
            rows = await self._fetch_all(
                select(self.model).where(self._owner_column == owner_id)
            )
            for obj in rows:
                identity = CompositeIdentity(
                    getattr(obj, self.owner_field), getattr(obj, self.related_field)
                )
                await self._remove(obj, identity)
            return len(rows)

    async def _remove(self, obj: ModelType, identity: CompositeIdentity) -> None:
        old = self._serialize_for_audit(obj)
        await self.db.delete(obj)
        await self._flush()
        self._audit(str(identity), AuditAction.DISSOCIATED, old, None)
        self._invalidate(self._targets_for(identity))

    # String identity surface

    async def find_by_id(self, composite_id: str) -> ResultType | None:
        identity = parse_composite_id(composite_id)
        return await self.find_by_composite_key(identity.owner_id, identity.related_id)

    async def exists(self, composite_id: str) -> bool:
        return await self.find_by_id(composite_id) is not None

    async def delete(self, composite_id: str) -> None:
        identity = parse_composite_id(composite_id)
        await self.dissociate(identity.owner_id, identity.related_id)

    async def restore(self, composite_id: str) -> ResultType:
        parse_composite_id(composite_id)
        raise DomainRuleException(
            f"{self.entity_type} {composite_id} cannot be restored",
            reasons=["associations are removed permanently and cannot be restored"],
        )

    # Hooks

    def _extra_values(self, assigned_by: int | None) -> dict[str, Any]:
        """Additional column values for a new association row."""
        return {}

    async def _check_references(self, identity: CompositeIdentity) -> None:
        """Override to refuse associations whose ends do not exist."""
