"""
Main Orchestrator for Split Ledger

Ties the components together for the flows a presentation layer drives:
1. Expense creation (split configuration -> validate -> split -> Expense)
2. Snapshot recomputation (expenses + payments -> balances -> plan)
3. Settlement confirmation (Settlement -> Payment)

DESIGN DECISION: One snapshot in, one frozen LedgerView out. Balances,
summary and plan are computed together from the same snapshot, so a
consumer never sees balances from one snapshot next to a plan from another.

Deciding WHEN to recompute belongs to the caller.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional, Sequence
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from splitledger.audit import AuditLogger, InMemoryAuditSink, create_correlation_id
from splitledger.calculation import (
    BalanceAggregator,
    SettlementOptimizer,
    SplitCalculator,
)
from splitledger.config import EngineSettings, get_settings
from splitledger.models.audit import AuditEventBuilder
from splitledger.models.expense import (
    Balance,
    BalanceSummary,
    Expense,
    Member,
    ParticipantInput,
    Payment,
    Settlement,
    SplitMethod,
)
from splitledger.queries import ExpenseFilter, ExpenseQuery


class GroupSnapshot(BaseModel):
    """Everything known about one group at one point in time."""
    model_config = ConfigDict(frozen=True)

    group_id: str = Field(..., min_length=1)
    currency: str = Field(default="USD", min_length=3, max_length=3)
    members: tuple[Member, ...] = Field(default_factory=tuple)
    expenses: tuple[Expense, ...] = Field(default_factory=tuple)
    payments: tuple[Payment, ...] = Field(default_factory=tuple)


class LedgerView(BaseModel):
    """Balances, summary and settlement plan derived from one snapshot."""
    model_config = ConfigDict(frozen=True)

    group_id: str
    currency: str
    balances: tuple[Balance, ...]
    summary: BalanceSummary
    settlements: tuple[Settlement, ...]
    computed_at: datetime = Field(default_factory=datetime.utcnow)
    correlation_id: Optional[UUID] = None

    def balance_for(self, user_id: str) -> Optional[Balance]:
        for balance in self.balances:
            if balance.user_id == user_id:
                return balance
        return None

    def settlements_for(self, user_id: str) -> list[Settlement]:
        return [s for s in self.settlements if s.involves_user(user_id)]


class GroupLedgerFlow:
    """
    Orchestrates split, aggregation and settlement for one group at a time.

    Stateless between calls; safe to share across threads.
    """

    def __init__(
        self,
        split_calculator: Optional[SplitCalculator] = None,
        aggregator: Optional[BalanceAggregator] = None,
        optimizer: Optional[SettlementOptimizer] = None,
        expense_filter: Optional[ExpenseFilter] = None,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[EngineSettings] = None,
    ):
        self._settings = settings or get_settings()
        self._audit_logger = audit_logger
        self._split_calculator = split_calculator or SplitCalculator(self._settings, audit_logger)
        self._aggregator = aggregator or BalanceAggregator(self._settings, audit_logger)
        self._optimizer = optimizer or SettlementOptimizer(self._settings, audit_logger)
        self._expense_filter = expense_filter or ExpenseFilter(audit_logger)

    def create_expense(
        self,
        group_id: str,
        payer: Member,
        amount: Decimal,
        method: SplitMethod,
        participant_data: Sequence[ParticipantInput],
        currency: Optional[str] = None,
        description: str = "",
        category: Optional[str] = None,
        expense_date: Optional[date] = None,
        expense_id: Optional[str] = None,
    ) -> Expense:
        """
        Validate a split configuration and build the resulting Expense.

        The amount is rounded to the currency's minor unit before splitting.

        Raises:
            InvalidSplitError: If the configuration is invalid
        """
        currency = (currency or self._settings.default_currency).upper()
        amount = self._split_calculator.round_total(amount, currency)
        participants = self._split_calculator.calculate_split(
            amount,
            method,
            participant_data,
            currency=currency,
        )
        fields = dict(
            group_id=group_id,
            payer_id=payer.user_id,
            payer_name=payer.display_name,
            amount=amount,
            currency=currency,
            description=description,
            category=category,
            participants=tuple(participants),
            expense_date=expense_date or date.today(),
        )
        if expense_id:
            fields["id"] = expense_id
        return Expense(**fields)

    def edit_expense_amount(
        self,
        expense: Expense,
        new_amount: Decimal,
        method: SplitMethod,
    ) -> Expense:
        """
        Rebuild an expense for a new total, keeping each participant's weight.

        Raises:
            InvalidSplitError: For EXACT splits, which must be re-specified
        """
        new_amount = self._split_calculator.round_total(new_amount, expense.currency)
        participants = self._split_calculator.recalculate_split(
            new_amount,
            expense.participants,
            method,
            currency=expense.currency,
        )
        return expense.model_copy(update={
            "amount": new_amount,
            "participants": tuple(participants),
        })

    def recompute(
        self,
        snapshot: GroupSnapshot,
        query: Optional[ExpenseQuery] = None,
    ) -> LedgerView:
        """
        Recompute balances, summary and plan from one snapshot.

        An optional query narrows the expenses first (e.g. a date range).

        Raises:
            InvalidQueryError: If the query has an inverted range
        """
        correlation_id = create_correlation_id()
        currency = snapshot.currency.upper()

        expenses = list(snapshot.expenses)
        if query is not None:
            expenses = self._expense_filter.apply(expenses, query, correlation_id=correlation_id)

        balances = self._aggregator.build_balances(
            expenses,
            snapshot.payments,
            members=snapshot.members,
            currency=currency,
            group_id=snapshot.group_id,
            correlation_id=correlation_id,
        )
        summary = self._aggregator.get_group_balance_summary(balances, currency=currency)
        settlements = self._optimizer.plan_from_balances(balances, correlation_id=correlation_id)

        if self._audit_logger:
            self._audit_logger.log(AuditEventBuilder.snapshot_recomputed(
                group_id=snapshot.group_id,
                balance_count=len(balances),
                settlement_count=len(settlements),
                correlation_id=correlation_id,
            ))

        return LedgerView(
            group_id=snapshot.group_id,
            currency=currency,
            balances=tuple(balances),
            summary=summary,
            settlements=tuple(settlements),
            correlation_id=correlation_id,
        )

    def record_settlement(
        self,
        settlement: Settlement,
        group_id: str,
        description: Optional[str] = None,
    ) -> Payment:
        """Turn a confirmed Settlement into a Payment for the next snapshot."""
        payment = Payment(
            group_id=group_id,
            payer_id=settlement.payer_id,
            payer_name=settlement.payer_name,
            recipient_id=settlement.recipient_id,
            recipient_name=settlement.recipient_name,
            amount=settlement.amount,
            currency=settlement.currency,
            description=description,
        )
        if self._audit_logger:
            self._audit_logger.log(AuditEventBuilder.payment_recorded(
                payment_id=payment.id,
                payer_id=payment.payer_id,
                recipient_id=payment.recipient_id,
                amount=str(payment.amount),
            ))
        return payment


def create_ledger_components(
    collect_audit_events: bool = False,
    settings: Optional[EngineSettings] = None,
) -> tuple[GroupLedgerFlow, AuditLogger, Optional[InMemoryAuditSink]]:
    """
    Factory function to create the ledger flow and its audit logger.

    Args:
        collect_audit_events: Keep audit events in memory for inspection.
                              Set to True in tests and diagnostics.

    Returns:
        (ledger_flow, audit_logger, sink)
    """
    sink = InMemoryAuditSink() if collect_audit_events else None
    audit_logger = AuditLogger(sink)
    flow = GroupLedgerFlow(audit_logger=audit_logger, settings=settings)
    return flow, audit_logger, sink


__all__ = [
    "GroupLedgerFlow",
    "GroupSnapshot",
    "LedgerView",
    "create_ledger_components",
]
