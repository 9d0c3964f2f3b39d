"""
Balance Aggregator

Folds a group's expenses and recorded payments into one net balance per
member.

- Expense: payer +amount, each participant -share_amount
- Payment: payer +amount (debt reduced), recipient -amount (credit reduced)

Every record contributes opposite adjustments of equal size, so the net
balances always sum to zero. If they do not, the input was corrupted
upstream: the result is still returned and the violation is reported to
the audit logger.
"""

from decimal import Decimal
from typing import Iterable, Mapping, Optional, Sequence
from uuid import UUID

from splitledger.audit import AuditLogger
from splitledger.calculation.money import from_minor, to_minor
from splitledger.config import EngineSettings, get_settings
from splitledger.models.audit import AuditEventBuilder
from splitledger.models.expense import (
    Balance,
    BalanceSummary,
    Expense,
    Member,
    Payment,
    is_settled_amount,
)


class BalanceAggregator:
    """
    Computes net balances for one group in its settlement currency.

    Multi-currency records are not converted here; they are expected to be
    normalized upstream. A record in another currency is still aggregated
    and reported as a consistency violation.
    """

    def __init__(
        self,
        settings: Optional[EngineSettings] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._settings = settings or get_settings()
        self._audit_logger = audit_logger

    def compute_balances(
        self,
        expenses: Iterable[Expense],
        payments: Iterable[Payment],
        members: Sequence[Member] = (),
        currency: Optional[str] = None,
        group_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> dict[str, Decimal]:
        """
        Net balance per user id.

        Roster members come first (zero when inactive), then any other
        user id in order of first appearance.
        """
        currency = (currency or self._settings.default_currency).upper()
        exponent = self._settings.minor_unit_exponent(currency)
        expenses = list(expenses)
        payments = list(payments)
        audit = self._consistency_logger()

        running: dict[str, int] = {m.user_id: 0 for m in members}

        for expense in expenses:
            self._check_currency("expense", expense.id, expense.currency, currency, correlation_id)
            amount_minor = to_minor(expense.amount, exponent)
            running[expense.payer_id] = running.get(expense.payer_id, 0) + amount_minor

            shares_minor = 0
            for participant in expense.participants:
                share_minor = to_minor(participant.share_amount, exponent)
                running[participant.user_id] = running.get(participant.user_id, 0) - share_minor
                shares_minor += share_minor

            if shares_minor != amount_minor and audit:
                audit.log_expense_split_mismatch(
                    expense_id=expense.id,
                    amount=str(from_minor(amount_minor, exponent)),
                    shares_total=str(from_minor(shares_minor, exponent)),
                    correlation_id=correlation_id,
                )

        for payment in payments:
            self._check_currency("payment", payment.id, payment.currency, currency, correlation_id)
            amount_minor = to_minor(payment.amount, exponent)
            running[payment.payer_id] = running.get(payment.payer_id, 0) + amount_minor
            running[payment.recipient_id] = running.get(payment.recipient_id, 0) - amount_minor

        residual = sum(running.values())
        if residual != 0 and audit:
            audit.log_balance_invariant_violated(
                group_id=group_id,
                residual=str(from_minor(residual, exponent)),
                correlation_id=correlation_id,
            )

        if self._audit_logger:
            self._audit_logger.log(AuditEventBuilder.balances_computed(
                group_id=group_id,
                member_count=len(running),
                expense_count=len(expenses),
                payment_count=len(payments),
                correlation_id=correlation_id,
            ))

        return {user_id: from_minor(value, exponent) for user_id, value in running.items()}

    def build_balances(
        self,
        expenses: Iterable[Expense],
        payments: Iterable[Payment],
        members: Sequence[Member] = (),
        currency: Optional[str] = None,
        group_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> list[Balance]:
        """Same as compute_balances, labelled for display."""
        currency = (currency or self._settings.default_currency).upper()
        expenses = list(expenses)
        payments = list(payments)
        net = self.compute_balances(
            expenses,
            payments,
            members=members,
            currency=currency,
            group_id=group_id,
            correlation_id=correlation_id,
        )
        names = _display_names(members, expenses, payments)
        return [
            Balance(
                user_id=user_id,
                display_name=names.get(user_id) or user_id,
                balance=value,
                currency=currency,
            )
            for user_id, value in net.items()
        ]

    def get_group_balance_summary(
        self,
        balances: Mapping[str, Decimal] | Sequence[Balance],
        currency: Optional[str] = None,
    ) -> BalanceSummary:
        """
        Totals of strictly positive and strictly negative balances.

        Read-only: nothing is mutated or stored.
        """
        values = _balance_values(balances)
        if currency is None and values and not isinstance(balances, Mapping):
            currency = balances[0].currency
        currency = (currency or self._settings.default_currency).upper()

        total_owed = sum((v for v in values if v > 0), Decimal("0"))
        total_owing = sum((-v for v in values if v < 0), Decimal("0"))
        return BalanceSummary(
            total_owed=total_owed,
            total_owing=total_owing,
            currency=currency,
            member_count=len(values),
            settled_count=sum(1 for v in values if is_settled_amount(v)),
        )

    def _check_currency(
        self,
        entity_type: str,
        entity_id: str,
        found: str,
        expected: str,
        correlation_id: Optional[UUID],
    ) -> None:
        audit = self._consistency_logger()
        if found.upper() != expected and audit:
            audit.log_currency_mismatch(
                entity_type=entity_type,
                entity_id=entity_id,
                expected=expected,
                found=found.upper(),
                correlation_id=correlation_id,
            )

    def _consistency_logger(self) -> Optional[AuditLogger]:
        """The audit logger, or None when consistency checks are switched off."""
        if self._settings.log_consistency_checks:
            return self._audit_logger
        return None


def _balance_values(balances: Mapping[str, Decimal] | Sequence[Balance]) -> list[Decimal]:
    if isinstance(balances, Mapping):
        return list(balances.values())
    return [b.balance for b in balances]


def _display_names(
    members: Sequence[Member],
    expenses: Sequence[Expense],
    payments: Sequence[Payment],
) -> dict[str, str]:
    """Roster names win over names copied onto records."""
    names: dict[str, str] = {}
    for payment in payments:
        if payment.payer_name:
            names[payment.payer_id] = payment.payer_name
        if payment.recipient_name:
            names[payment.recipient_id] = payment.recipient_name
    for expense in expenses:
        if expense.payer_name:
            names[expense.payer_id] = expense.payer_name
        for participant in expense.participants:
            if participant.display_name:
                names[participant.user_id] = participant.display_name
    for member in members:
        if member.display_name:
            names[member.user_id] = member.display_name
    return names
