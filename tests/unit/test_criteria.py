"""Tests for QuerySpec and apply_criteria."""

import pytest
from sqlalchemy import select

from catalog.domain.exceptions import ValidationException
from catalog.infrastructure.persistence.criteria import QuerySpec, Visibility, apply_criteria
from catalog.infrastructure.persistence.models import AuditLog, Category


def _sql(spec: QuerySpec, model=Category) -> str:
    return str(apply_criteria(select(model), model, spec))


def test_spec_params_independent_of_filter_order() -> None:
    a = QuerySpec.of({"active": True, "parent_id": 1})
    b = QuerySpec.of({"parent_id": 1, "active": True})
    assert a == b
    assert a.to_params() == b.to_params()


def test_spec_builders_return_new_specs() -> None:
    spec = QuerySpec.of({"active": True})
    narrowed = spec.where(parent_id=None).ordered_by("-name").paged(10, 20)
    assert spec.to_params()["filters"] == {"active": True}
    assert narrowed.to_params() == {
        "filters": {"active": True, "parent_id": None},
        "order_by": ["-name"],
        "limit": 10,
        "offset": 20,
        "visibility": "active",
    }
    assert narrowed.without_paging().limit is None


@pytest.mark.parametrize("limit,offset", [(-1, None), (None, -5)])
def test_spec_rejects_negative_paging(limit, offset) -> None:
    with pytest.raises(ValidationException):
        QuerySpec.of(limit=limit, offset=offset)


def test_visibility_filters() -> None:
    assert "category.deleted_at IS NULL" in _sql(QuerySpec.of())
    assert "category.deleted_at IS NOT NULL" in _sql(
        QuerySpec.of(visibility=Visibility.ONLY_DELETED)
    )
    assert "WHERE" not in _sql(QuerySpec.of(visibility=Visibility.WITH_DELETED))


def test_models_without_soft_delete_ignore_visibility() -> None:
    assert "WHERE" not in _sql(QuerySpec.of(), AuditLog)


def test_filter_kinds_and_ordering() -> None:
    sql = _sql(
        QuerySpec.of(
            {"parent_id": None, "id": [1, 2], "active": True},
            order_by=("sort_order", "-name"),
            limit=5,
        )
    )
    assert "category.parent_id IS NULL" in sql
    assert "category.id IN" in sql
    assert "category.active =" in sql
    assert "ORDER BY category.sort_order ASC, category.name DESC" in sql
    assert "LIMIT" in sql


def test_unknown_field_rejected() -> None:
    with pytest.raises(ValidationException) as exc_info:
        _sql(QuerySpec.of({"colour": "red"}))
    assert exc_info.value.details == {"field": "colour"}
