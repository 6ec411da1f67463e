"""DTOs for categories (no dependency on ORM)."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from catalog.domain.value_objects import Lifecycle


@dataclass(frozen=True)
class CategoryResult:
    """Category read-model."""

    id: int
    name: str
    slug: str
    parent_id: int | None
    active: bool
    sort_order: int
    created_at: datetime | None
    updated_at: datetime | None
    lifecycle: Lifecycle


@dataclass(frozen=True)
class CategoryNode:
    """Category with its sub-tree, as returned by get_tree."""

    category: CategoryResult
    children: tuple[CategoryNode, ...] = ()


@dataclass(frozen=True)
class CategoryStats:
    """Counts over live (not soft-deleted) categories."""

    total: int
    active: int
    inactive: int
    roots: int
