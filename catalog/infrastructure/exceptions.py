"""Infrastructure exceptions for database and cache transport failures.

They extend CatalogException so callers handle every error kind the same
way. Cache transport errors are logged and swallowed by the cache layer
and never surface here.
"""

from catalog.domain.exceptions import CatalogException


class InfrastructureException(CatalogException):
    """Database or cache transport failure."""

    def __init__(self, message: str, operation: str | None = None) -> None:
        details = {"operation": operation} if operation else {}
        super().__init__(message, "INFRASTRUCTURE_ERROR", details)


class ImmutableAuditRecordException(InfrastructureException):
    """Audit records are write-once; update, delete and restore always fail."""

    def __init__(self, operation: str) -> None:
        super().__init__(
            f"Audit log entries are immutable and cannot be {operation}.",
            operation,
        )
        self.error_code = "AUDIT_RECORD_IMMUTABLE"
