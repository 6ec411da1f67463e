"""Core constants: cache namespaces, key kinds and shared literal values.

Single source of truth for cache key structure. Every repository owns one
namespace; no other component writes keys under it.
"""

# Cache namespaces (one per repository)
CACHE_NS_CATEGORY = "category"
CACHE_NS_PRODUCT = "product"
CACHE_NS_LINK = "link"
CACHE_NS_BADGE = "badge"
CACHE_NS_PRODUCT_BADGE = "product_badge"
CACHE_NS_ADMIN = "admin"

# Key kinds: {namespace}:{kind}:{discriminator}
CACHE_KIND_ENTITY = "entity"
CACHE_KIND_QUERY = "query"

# Delimiter for key parts and composite identity serialization
CACHE_KEY_SEP = ":"
COMPOSITE_ID_SEP = "_"

# Hex digits kept from the sha256 digest of a canonical query
QUERY_DIGEST_LENGTH = 32

# Admin roles
ROLE_ADMIN = "admin"
ROLE_SUPER_ADMIN = "super_admin"

# Link freshness windows (hours)
LINK_PRICE_STALE_HOURS = 24
LINK_VALIDATION_STALE_HOURS = 48

# Audit value redaction
AUDIT_REDACTED = "***REDACTED***"
AUDIT_SENSITIVE_FIELDS = frozenset({"password", "password_hash", "token", "api_key"})
