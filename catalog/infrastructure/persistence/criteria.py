"""Immutable query specifications and the single function that applies them.

A QuerySpec is a value object: filters, ordering, paging and soft-delete
visibility. apply_criteria turns one into WHERE/ORDER/LIMIT clauses on a
fresh Select; it never mutates its input. The same spec feeds query_key
through to_params(), so a cached list and the SQL behind it can never
disagree on what was asked.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any

from sqlalchemy import Select, inspect as sa_inspect

from catalog.domain.exceptions import ValidationException


class Visibility(str, Enum):
    """Soft-delete visibility filter."""

    ACTIVE = "active"
    WITH_DELETED = "with_deleted"
    ONLY_DELETED = "only_deleted"


def _freeze(value: Any) -> Any:
    if isinstance(value, set | frozenset):
        return tuple(sorted(value, key=str))
    if isinstance(value, list | tuple):
        return tuple(value)
    return value


@dataclass(frozen=True)
class QuerySpec:
    """What to read: equality/IN/IS NULL filters, order, paging, visibility.

    filters is kept sorted by field name so two specs built in a different
    order compare (and hash into cache keys) equal. order_by entries are
    field names, prefixed with "-" for descending.
    """

    filters: tuple[tuple[str, Any], ...] = ()
    order_by: tuple[str, ...] = ()
    limit: int | None = None
    offset: int | None = None
    visibility: Visibility = Visibility.ACTIVE

    def __post_init__(self) -> None:
        frozen = ((k, _freeze(v)) for k, v in self.filters)
        object.__setattr__(self, "filters", tuple(sorted(frozen, key=lambda kv: kv[0])))
        if self.limit is not None and self.limit < 0:
            raise ValidationException("limit must not be negative", field="limit")
        if self.offset is not None and self.offset < 0:
            raise ValidationException("offset must not be negative", field="offset")

    @classmethod
    def of(
        cls,
        filters: Mapping[str, Any] | None = None,
        *,
        order_by: Sequence[str] = (),
        limit: int | None = None,
        offset: int | None = None,
        visibility: Visibility = Visibility.ACTIVE,
    ) -> QuerySpec:
        return cls(
            filters=tuple((filters or {}).items()),
            order_by=tuple(order_by),
            limit=limit,
            offset=offset,
            visibility=visibility,
        )

    def where(self, **filters: Any) -> QuerySpec:
        """Return a new spec with filters added (later values win)."""
        merged = dict(self.filters)
        merged.update(filters)
        return replace(self, filters=tuple(merged.items()))

    def with_visibility(self, visibility: Visibility) -> QuerySpec:
        return replace(self, visibility=visibility)

    def ordered_by(self, *fields: str) -> QuerySpec:
        return replace(self, order_by=tuple(fields))

    def paged(self, limit: int | None, offset: int | None = None) -> QuerySpec:
        return replace(self, limit=limit, offset=offset)

    def without_paging(self) -> QuerySpec:
        return replace(self, order_by=(), limit=None, offset=None)

    def to_params(self) -> dict[str, Any]:
        """Parameter map for query_key (canonicalized there)."""
        return {
            "filters": {k: list(v) if isinstance(v, tuple) else v for k, v in self.filters},
            "order_by": list(self.order_by),
            "limit": self.limit,
            "offset": self.offset,
            "visibility": self.visibility.value,
        }


def _column(model: type[Any], name: str) -> Any:
    columns = sa_inspect(model).columns
    if name not in columns:
        raise ValidationException(f"Unknown field {name!r} for {model.__name__}", field=name)
    return getattr(model, name)


def apply_criteria(stmt: Select[Any], model: type[Any], spec: QuerySpec) -> Select[Any]:
    """Return stmt with spec's filters, visibility, ordering and paging applied.

    None filters become IS NULL, sequence filters become IN (an empty sequence
    matches nothing), anything else is compared with =.
    """
    if hasattr(model, "deleted_at"):
        if spec.visibility is Visibility.ACTIVE:
            stmt = stmt.where(model.deleted_at.is_(None))
        elif spec.visibility is Visibility.ONLY_DELETED:
            stmt = stmt.where(model.deleted_at.is_not(None))
    for name, value in spec.filters:
        column = _column(model, name)
        if value is None:
            stmt = stmt.where(column.is_(None))
        elif isinstance(value, tuple):
            stmt = stmt.where(column.in_(value))
        else:
            stmt = stmt.where(column == value)
    for entry in spec.order_by:
        descending = entry.startswith("-")
        column = _column(model, entry.lstrip("-"))
        stmt = stmt.order_by(column.desc() if descending else column.asc())
    if spec.limit is not None:
        stmt = stmt.limit(spec.limit)
    if spec.offset is not None:
        stmt = stmt.offset(spec.offset)
    return stmt
