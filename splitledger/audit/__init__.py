"""Audit logging package."""

from splitledger.audit.logger import AuditLogger, create_correlation_id
from splitledger.audit.sink import AuditSink, AuditSinkError, InMemoryAuditSink

__all__ = [
    "AuditLogger",
    "AuditSink",
    "AuditSinkError",
    "InMemoryAuditSink",
    "create_correlation_id",
]
