"""Cache key builders. Single place for key format.

Keys have the form {namespace}:{kind}:{discriminator} with kind "entity" or
"query". Entity keys use the identity as-is (composite identities as
"owner_related") so point lookups stay readable. Query keys hash a canonical
form of the parameter map, so equal filter sets collide regardless of the
order they were built in.

Namespace and action components must not contain CACHE_KEY_SEP to avoid
ambiguous or colliding keys.
"""

import hashlib
import json
from collections.abc import Mapping
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from catalog.core.constants import (
    CACHE_KEY_SEP,
    CACHE_KIND_ENTITY,
    CACHE_KIND_QUERY,
    COMPOSITE_ID_SEP,
    QUERY_DIGEST_LENGTH,
)


def _validate_key_component(value: str, name: str) -> None:
    """Raise ValueError if value is empty or contains the cache key separator.

    Args:
        value: String component used in a cache key.
        name: Name of the component (for error message).

    Raises:
        ValueError: If value contains CACHE_KEY_SEP.
    """
    if not value:
        raise ValueError(f"Cache key component {name!r} must not be empty")
    if CACHE_KEY_SEP in value:
        raise ValueError(
            f"Cache key component {name!r} must not contain separator {CACHE_KEY_SEP!r}"
        )


def _canonical_scalar(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Enum):
        return _canonical_scalar(value.value)
    if isinstance(value, datetime | date):
        return value.isoformat()
    if isinstance(value, Decimal):
        return format(value, "f")
    return str(value)


def canonicalize(value: Any) -> Any:
    """Return a canonical JSON-ready form of value.

    Mappings are key-sorted recursively, lists and tuples keep their order,
    sets are sorted, and every scalar is stringified deterministically.
    """
    if isinstance(value, Mapping):
        return {str(k): canonicalize(value[k]) for k in sorted(value, key=str)}
    if isinstance(value, list | tuple):
        return [canonicalize(v) for v in value]
    if isinstance(value, set | frozenset):
        return sorted((canonicalize(v) for v in value), key=lambda v: json.dumps(v))
    return _canonical_scalar(value)


def params_digest(params: Mapping[str, Any] | None) -> str:
    """Stable hash of a parameter map (truncated sha256 hex)."""
    canonical = json.dumps(canonicalize(params or {}), separators=(",", ":"), sort_keys=True)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:QUERY_DIGEST_LENGTH]


def entity_key(namespace: str, entity_id: int | str) -> str:
    """Cache key for one entity by primary identity."""
    _validate_key_component(namespace, "namespace")
    return f"{namespace}{CACHE_KEY_SEP}{CACHE_KIND_ENTITY}{CACHE_KEY_SEP}{entity_id}"


def composite_key(namespace: str, owner_id: int, related_id: int) -> str:
    """Cache key for one association by ordered (owner, related) pair."""
    return entity_key(namespace, f"{owner_id}{COMPOSITE_ID_SEP}{related_id}")


def query_key(namespace: str, action: str, params: Mapping[str, Any] | None = None) -> str:
    """Cache key for a parameterized read: namespace:query:action:digest."""
    _validate_key_component(namespace, "namespace")
    _validate_key_component(action, "action")
    return (
        f"{namespace}{CACHE_KEY_SEP}{CACHE_KIND_QUERY}{CACHE_KEY_SEP}"
        f"{action}{CACHE_KEY_SEP}{params_digest(params)}"
    )


def query_pattern(namespace: str, action: str) -> str:
    """Glob matching every cached result of one query action."""
    _validate_key_component(namespace, "namespace")
    _validate_key_component(action, "action")
    return f"{namespace}{CACHE_KEY_SEP}{CACHE_KIND_QUERY}{CACHE_KEY_SEP}{action}{CACHE_KEY_SEP}*"


def namespace_query_pattern(namespace: str) -> str:
    """Glob matching every cached query result in a namespace."""
    _validate_key_component(namespace, "namespace")
    return f"{namespace}{CACHE_KEY_SEP}{CACHE_KIND_QUERY}{CACHE_KEY_SEP}*"


def namespace_pattern(namespace: str) -> str:
    """Glob matching every key (entity and query) in a namespace."""
    _validate_key_component(namespace, "namespace")
    return f"{namespace}{CACHE_KEY_SEP}*"
