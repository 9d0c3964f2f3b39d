"""
Data Models Package

This package contains all Pydantic models used by the Split Ledger engine.
All records flowing in and out of the engine conform to these schemas.
"""

from splitledger.models.expense import (
    Balance,
    BalanceStatus,
    BalanceSummary,
    Expense,
    ExpenseParticipant,
    Member,
    ParticipantInput,
    Payment,
    Settlement,
    SplitMethod,
    ValidationIssue,
    ValidationResult,
)
from splitledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "Balance",
    "BalanceStatus",
    "BalanceSummary",
    "Expense",
    "ExpenseParticipant",
    "Member",
    "ParticipantInput",
    "Payment",
    "Settlement",
    "SplitMethod",
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
