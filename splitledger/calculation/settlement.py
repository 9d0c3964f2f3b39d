"""
Settlement Optimizer

Converts net balances into a short, deterministic list of payer -> recipient
transfers that zero every balance.

Greedy matching:
1. Creditors are members with a positive balance, debtors with a negative one.
   Balances are rounded to the minor unit first; exactly zero means settled.
2. Take the largest creditor and the largest debtor (ties by input order).
3. The debtor pays the creditor min(credit, debt).
4. Whoever reaches zero drops out. Repeat until one side is empty.

GUARANTEES (for balances summing to zero):
- At most n - 1 transfers for n members with a non-zero balance
- Replaying the plan drives every balance to exactly zero
- Identical balances always yield the identical ordered plan

This is a polynomial heuristic, not a global minimum-transaction solver.
"""

import heapq
from decimal import Decimal
from typing import Mapping, Optional, Sequence
from uuid import UUID

from splitledger.audit import AuditLogger
from splitledger.calculation.money import from_minor, to_minor
from splitledger.config import EngineSettings, get_settings
from splitledger.models.audit import AuditEventBuilder
from splitledger.models.expense import Balance, Member, Settlement


class SettlementOptimizer:
    """
    Generates settlement plans from net balances.

    The input is not re-validated. A balance map that does not sum to zero
    leaves residue, which is reported to the audit logger.
    """

    def __init__(
        self,
        settings: Optional[EngineSettings] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._settings = settings or get_settings()
        self._audit_logger = audit_logger

    def generate_settlement_plan(
        self,
        balances: Mapping[str, Decimal],
        members: Sequence[Member] = (),
        currency: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> list[Settlement]:
        """
        Build the settlement plan for a balance map.

        Args:
            balances: Net balance per user id (positive = owed money)
            members: Roster used for payer/recipient names
            currency: Settlement currency (settings default when None)
        """
        currency = (currency or self._settings.default_currency).upper()
        exponent = self._settings.minor_unit_exponent(currency)
        names = {m.user_id: m.label for m in members}

        # Heap entries: (-amount_minor, input_index, user_id)
        creditors: list[tuple[int, int, str]] = []
        debtors: list[tuple[int, int, str]] = []
        for index, (user_id, balance) in enumerate(balances.items()):
            minor = to_minor(Decimal(balance), exponent)
            if minor > 0:
                creditors.append((-minor, index, user_id))
            elif minor < 0:
                debtors.append((minor, index, user_id))
        heapq.heapify(creditors)
        heapq.heapify(debtors)
        creditor_count, debtor_count = len(creditors), len(debtors)

        plan: list[Settlement] = []
        while creditors and debtors:
            neg_credit, c_index, creditor = heapq.heappop(creditors)
            neg_debt, d_index, debtor = heapq.heappop(debtors)
            credit, debt = -neg_credit, -neg_debt

            transfer = min(credit, debt)
            plan.append(Settlement(
                payer_id=debtor,
                payer_name=names.get(debtor, debtor),
                recipient_id=creditor,
                recipient_name=names.get(creditor, creditor),
                amount=from_minor(transfer, exponent),
                currency=currency,
            ))

            if credit > transfer:
                heapq.heappush(creditors, (-(credit - transfer), c_index, creditor))
            if debt > transfer:
                heapq.heappush(debtors, (-(debt - transfer), d_index, debtor))

        if creditors or debtors:
            unsettled = {
                user_id: str(from_minor(-neg, exponent))
                for neg, _, user_id in sorted(creditors, key=lambda e: e[1])
            }
            unsettled.update({
                user_id: str(from_minor(neg, exponent))
                for neg, _, user_id in sorted(debtors, key=lambda e: e[1])
            })
            if self._audit_logger:
                self._audit_logger.log_settlement_residual(
                    unsettled=unsettled,
                    correlation_id=correlation_id,
                )

        if self._audit_logger:
            self._audit_logger.log(AuditEventBuilder.settlement_plan_generated(
                transaction_count=len(plan),
                creditor_count=creditor_count,
                debtor_count=debtor_count,
                correlation_id=correlation_id,
            ))

        return plan

    def plan_from_balances(
        self,
        balances: Sequence[Balance],
        correlation_id: Optional[UUID] = None,
    ) -> list[Settlement]:
        """Plan for a labelled Balance list; names come from the balances."""
        members = [Member(user_id=b.user_id, display_name=b.display_name) for b in balances]
        currency = balances[0].currency if balances else None
        return self.generate_settlement_plan(
            {b.user_id: b.balance for b in balances},
            members=members,
            currency=currency,
            correlation_id=correlation_id,
        )

    @staticmethod
    def apply_settlements(
        balances: Mapping[str, Decimal],
        settlements: Sequence[Settlement],
    ) -> dict[str, Decimal]:
        """
        Replay settlements against balances.

        The payer's balance rises by the amount, the recipient's falls,
        matching how a recorded Payment is aggregated.
        """
        result = {user_id: Decimal(value) for user_id, value in balances.items()}
        for settlement in settlements:
            result[settlement.payer_id] = result.get(settlement.payer_id, Decimal("0")) + settlement.amount
            result[settlement.recipient_id] = result.get(settlement.recipient_id, Decimal("0")) - settlement.amount
        return result
