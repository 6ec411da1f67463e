"""Infrastructure services."""

from catalog.infrastructure.services.audit_recorder import AuditRecorder

__all__ = ["AuditRecorder"]
