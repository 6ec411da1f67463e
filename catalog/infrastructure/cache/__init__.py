"""Cache: key derivation, store backends, read-through and invalidation.

Repositories read through ReadThroughCache and queue InvalidationTargets on
the TransactionCoordinator; nothing else writes under their namespaces.
"""

from catalog.infrastructure.cache.cache_protocol import CacheProtocol
from catalog.infrastructure.cache.factory import create_cache_backend
from catalog.infrastructure.cache.hierarchy import HierarchicalInvalidator
from catalog.infrastructure.cache.invalidation import (
    InvalidationTarget,
    PendingInvalidationSet,
    apply_targets,
)
from catalog.infrastructure.cache.keys import (
    composite_key,
    entity_key,
    namespace_pattern,
    namespace_query_pattern,
    query_key,
    query_pattern,
)
from catalog.infrastructure.cache.memory_cache import MemoryCache
from catalog.infrastructure.cache.read_through import CacheTtlPolicy, ReadThroughCache
from catalog.infrastructure.cache.redis_cache import CacheService

__all__ = [
    "CacheProtocol",
    "CacheService",
    "CacheTtlPolicy",
    "HierarchicalInvalidator",
    "InvalidationTarget",
    "MemoryCache",
    "PendingInvalidationSet",
    "ReadThroughCache",
    "apply_targets",
    "composite_key",
    "create_cache_backend",
    "entity_key",
    "namespace_pattern",
    "namespace_query_pattern",
    "query_key",
    "query_pattern",
]
