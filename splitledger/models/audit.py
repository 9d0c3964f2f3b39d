"""
Audit Models for Split Ledger

The engine itself is pure: it never persists anything. Audit events are the
developer-facing side channel for conditions that should never happen with
valid upstream data (balances not summing to zero, settlement residue) and
for tracing what the engine computed.

DESIGN DECISION: Audit events are never shown to end users. Input validation
failures are returned as ValidationIssue values instead.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events the engine reports."""
    # Splitting
    SPLIT_CALCULATED = "split_calculated"
    SPLIT_RECALCULATED = "split_recalculated"
    SPLIT_VALIDATION_FAILED = "split_validation_failed"

    # Aggregation
    BALANCES_COMPUTED = "balances_computed"
    BALANCE_INVARIANT_VIOLATED = "balance_invariant_violated"
    EXPENSE_SPLIT_MISMATCH = "expense_split_mismatch"
    CURRENCY_MISMATCH = "currency_mismatch"

    # Settlement
    SETTLEMENT_PLAN_GENERATED = "settlement_plan_generated"
    SETTLEMENT_RESIDUAL = "settlement_residual"

    # Queries
    QUERY_EXECUTED = "query_executed"
    QUERY_REJECTED = "query_rejected"

    # Snapshot flow
    SNAPSHOT_RECOMPUTED = "snapshot_recomputed"
    PAYMENT_RECORDED = "payment_recorded"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    Every consistency violation creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'expense', 'group', 'query')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one snapshot recomputation)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.balance_invariant_violated(group_id, residual)
        event = AuditEventBuilder.settlement_residual(residual, correlation_id)

    Amounts in details are strings so the JSON renderer keeps them exact.
    """

    @staticmethod
    def split_calculated(
        method: str,
        total: str,
        participant_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SPLIT_CALCULATED,
            severity=AuditSeverity.DEBUG,
            entity_type="expense",
            correlation_id=correlation_id,
            description=f"Split {total} by {method} across {participant_count} participants",
            details={
                "method": method,
                "total": total,
                "participant_count": participant_count,
            },
        )

    @staticmethod
    def split_recalculated(
        method: str,
        total: str,
        participant_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SPLIT_RECALCULATED,
            severity=AuditSeverity.DEBUG,
            entity_type="expense",
            correlation_id=correlation_id,
            description=f"Re-split {total} by {method} keeping participant weights",
            details={
                "method": method,
                "total": total,
                "participant_count": participant_count,
            },
        )

    @staticmethod
    def split_validation_failed(
        method: str,
        field: str,
        message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SPLIT_VALIDATION_FAILED,
            severity=AuditSeverity.INFO,
            entity_type="expense",
            correlation_id=correlation_id,
            description=f"Split configuration rejected: {message}",
            details={"method": method, "field": field},
        )

    @staticmethod
    def balances_computed(
        group_id: Optional[str],
        member_count: int,
        expense_count: int,
        payment_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BALANCES_COMPUTED,
            severity=AuditSeverity.DEBUG,
            entity_type="group",
            entity_id=group_id,
            correlation_id=correlation_id,
            description=f"Computed balances for {member_count} members",
            details={
                "expense_count": expense_count,
                "payment_count": payment_count,
            },
        )

    @staticmethod
    def balance_invariant_violated(
        group_id: Optional[str],
        residual: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BALANCE_INVARIANT_VIOLATED,
            severity=AuditSeverity.ERROR,
            entity_type="group",
            entity_id=group_id,
            correlation_id=correlation_id,
            description=f"Net balances sum to {residual} instead of zero",
            details={"residual": residual},
        )

    @staticmethod
    def expense_split_mismatch(
        expense_id: str,
        amount: str,
        shares_total: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_SPLIT_MISMATCH,
            severity=AuditSeverity.ERROR,
            entity_type="expense",
            entity_id=expense_id,
            correlation_id=correlation_id,
            description=f"Participant shares total {shares_total}, expense amount is {amount}",
            details={"amount": amount, "shares_total": shares_total},
        )

    @staticmethod
    def currency_mismatch(
        entity_type: str,
        entity_id: str,
        expected: str,
        found: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CURRENCY_MISMATCH,
            severity=AuditSeverity.WARNING,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"Record in {found} aggregated into a {expected} group",
            details={"expected": expected, "found": found},
        )

    @staticmethod
    def settlement_plan_generated(
        transaction_count: int,
        creditor_count: int,
        debtor_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SETTLEMENT_PLAN_GENERATED,
            severity=AuditSeverity.DEBUG,
            entity_type="settlement_plan",
            correlation_id=correlation_id,
            description=f"Generated {transaction_count} settlement transactions",
            details={
                "transaction_count": transaction_count,
                "creditor_count": creditor_count,
                "debtor_count": debtor_count,
            },
        )

    @staticmethod
    def settlement_residual(
        unsettled: dict[str, str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SETTLEMENT_RESIDUAL,
            severity=AuditSeverity.ERROR,
            entity_type="settlement_plan",
            correlation_id=correlation_id,
            description="Settlement plan left balances unsettled",
            details={"unsettled": unsettled},
        )

    @staticmethod
    def query_rejected(
        field: str,
        message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.QUERY_REJECTED,
            severity=AuditSeverity.INFO,
            entity_type="query",
            correlation_id=correlation_id,
            description=f"Expense query rejected: {message}",
            details={"field": field},
        )

    @staticmethod
    def query_executed(
        result_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.QUERY_EXECUTED,
            severity=AuditSeverity.DEBUG,
            entity_type="query",
            correlation_id=correlation_id,
            description=f"Expense query matched {result_count} expenses",
            details={"result_count": result_count},
        )

    @staticmethod
    def snapshot_recomputed(
        group_id: str,
        balance_count: int,
        settlement_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SNAPSHOT_RECOMPUTED,
            severity=AuditSeverity.INFO,
            entity_type="group",
            entity_id=group_id,
            correlation_id=correlation_id,
            description=f"Recomputed ledger view for group {group_id}",
            details={
                "balance_count": balance_count,
                "settlement_count": settlement_count,
            },
        )

    @staticmethod
    def payment_recorded(
        payment_id: str,
        payer_id: str,
        recipient_id: str,
        amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PAYMENT_RECORDED,
            severity=AuditSeverity.INFO,
            entity_type="payment",
            entity_id=payment_id,
            correlation_id=correlation_id,
            description=f"Payment of {amount} from {payer_id} to {recipient_id} recorded",
            details={
                "payer_id": payer_id,
                "recipient_id": recipient_id,
                "amount": amount,
            },
        )
