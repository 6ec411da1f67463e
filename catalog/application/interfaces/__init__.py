"""Application ports (protocols implemented by infrastructure)."""

from catalog.application.interfaces.audit import AuditSink

__all__ = ["AuditSink"]
