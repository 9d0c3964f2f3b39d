"""
Split Calculator

Turns an expense total, a split method and a participant list into exact
per-participant shares.

GUARANTEES:
- Shares always sum to the total exactly, at minor-unit precision
- Identical inputs produce an identical distribution
- Configuration problems surface as InvalidSplitError carrying a
  ValidationIssue, never as a silently adjusted result
"""

from decimal import Decimal
from typing import Callable, Mapping, Optional, Sequence
from uuid import UUID

from splitledger.audit import AuditLogger
from splitledger.calculation.money import (
    allocate,
    from_minor,
    integer_weights,
    quantize,
    to_decimal,
    to_minor,
)
from splitledger.config import EngineSettings, get_settings
from splitledger.models.audit import AuditEventBuilder
from splitledger.models.expense import (
    ExpenseParticipant,
    ParticipantInput,
    SplitMethod,
    ValidationIssue,
)
from splitledger.validation import guard


PERCENT_PLACES = Decimal("0.01")


class InvalidSplitError(ValueError):
    """A split configuration that cannot be calculated."""

    def __init__(self, issue: ValidationIssue):
        super().__init__(issue.message)
        self.issue = issue


class SplitCalculator:
    """
    Calculates expense splits for every SplitMethod.

    All arithmetic runs in integer minor units of `currency`
    (the settings' default currency when not given).
    """

    def __init__(
        self,
        settings: Optional[EngineSettings] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._settings = settings or get_settings()
        self._audit_logger = audit_logger
        self._handlers: dict[SplitMethod, Callable] = {
            SplitMethod.EQUAL: self._split_equal_inputs,
            SplitMethod.PERCENTAGE: self._split_percentage_inputs,
            SplitMethod.EXACT: self._split_exact_inputs,
            SplitMethod.SHARES: self._split_shares_inputs,
        }
        missing = set(SplitMethod) - set(self._handlers)
        if missing:
            raise NotImplementedError(f"No split handler for: {sorted(m.value for m in missing)}")

    # -------------------------------------------------------------------------
    # Per-method entry points
    # -------------------------------------------------------------------------

    def split_equally(
        self,
        total: Decimal,
        participant_ids: Sequence[str],
        currency: Optional[str] = None,
    ) -> dict[str, Decimal]:
        """Divide total evenly; leftover minor units go to the first participants."""
        self._raise_if(guard.check_participants_present(participant_ids))
        self._raise_if(guard.check_duplicate_participants(participant_ids))
        self._raise_if(guard.check_amount(total, field="total", allow_zero=True))
        return self._weighted(total, list(participant_ids), [1] * len(participant_ids), currency)

    def split_by_percentage(
        self,
        total: Decimal,
        percentages: Mapping[str, Decimal],
        currency: Optional[str] = None,
    ) -> dict[str, Decimal]:
        """Split by percentage; percentages must sum to 100 within tolerance."""
        self._raise_if(guard.check_participants_present(list(percentages)))
        self._raise_if(guard.check_amount(total, field="total", allow_zero=True))
        for user_id, pct in percentages.items():
            self._raise_if(guard.check_percentage(to_decimal(pct), user_id))
        self._raise_if(guard.check_percentage_total(
            [to_decimal(p) for p in percentages.values()],
            tolerance=self._settings.tolerance,
            required_total=self._settings.percentage_total,
        ))
        user_ids = list(percentages)
        weights = integer_weights([to_decimal(percentages[u]) for u in user_ids])
        if sum(weights) == 0:
            self._raise_if(_all_zero_issue("percentages"))
        return self._weighted(total, user_ids, weights, currency)

    def split_by_exact_amounts(
        self,
        total: Decimal,
        exact_amounts: Mapping[str, Decimal],
        currency: Optional[str] = None,
    ) -> dict[str, Decimal]:
        """
        Use the given amounts as-is.

        Amounts are rounded to the minor unit. Any drift left after rounding
        (at most the tolerance) is absorbed by the largest amount, ties by
        input order, so the shares still sum to the total exactly.
        """
        self._raise_if(guard.check_participants_present(list(exact_amounts)))
        self._raise_if(guard.check_amount(total, field="total", allow_zero=True))
        for user_id, amount in exact_amounts.items():
            self._raise_if(guard.check_amount(to_decimal(amount), field=f"amount.{user_id}", allow_zero=True))
        self._raise_if(guard.check_exact_total(
            [to_decimal(a) for a in exact_amounts.values()],
            to_decimal(total),
            tolerance=self._settings.tolerance,
        ))

        exponent = self._exponent(currency)
        total_minor = to_minor(to_decimal(total), exponent)
        user_ids = list(exact_amounts)
        minors = [to_minor(to_decimal(exact_amounts[u]), exponent) for u in user_ids]

        drift = total_minor - sum(minors)
        if drift:
            largest = max(range(len(minors)), key=lambda i: (minors[i], -i))
            minors[largest] += drift
            if minors[largest] < 0:
                self._raise_if(ValidationIssue(
                    field="amounts",
                    issue_type="bad_total",
                    message="Exact amounts cannot be reconciled with the total",
                ))

        return {u: from_minor(m, exponent) for u, m in zip(user_ids, minors)}

    def split_by_shares(
        self,
        total: Decimal,
        shares: Mapping[str, int],
        currency: Optional[str] = None,
    ) -> dict[str, Decimal]:
        """Each participant gets total * shares[i] / sum(shares)."""
        self._raise_if(guard.check_participants_present(list(shares)))
        self._raise_if(guard.check_amount(total, field="total", allow_zero=True))
        for user_id, count in shares.items():
            self._raise_if(guard.check_share_count(count, user_id))
        user_ids = list(shares)
        return self._weighted(total, user_ids, [shares[u] for u in user_ids], currency)

    # -------------------------------------------------------------------------
    # Dispatcher
    # -------------------------------------------------------------------------

    def calculate_split(
        self,
        total: Decimal,
        method: SplitMethod,
        participant_data: Sequence[ParticipantInput],
        currency: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> list[ExpenseParticipant]:
        """
        Calculate a split and wrap it in ExpenseParticipant entries.

        Entries come back in the order of participant_data.
        """
        method = SplitMethod(method)
        total = self.round_total(total, currency)
        issue = self.validate_split_configuration(total, method, participant_data)
        if issue is not None:
            if self._audit_logger:
                self._audit_logger.log(AuditEventBuilder.split_validation_failed(
                    method=method.value,
                    field=issue.field,
                    message=issue.message,
                    correlation_id=correlation_id,
                ))
            raise InvalidSplitError(issue)

        amounts = self._handlers[method](total, participant_data, currency)
        participants = self._to_participants(total, participant_data, amounts)

        if self._audit_logger:
            self._audit_logger.log(AuditEventBuilder.split_calculated(
                method=method.value,
                total=str(total),
                participant_count=len(participants),
                correlation_id=correlation_id,
            ))
        return participants

    def validate_split_configuration(
        self,
        total: Decimal,
        method: SplitMethod,
        participant_data: Sequence[ParticipantInput],
    ) -> Optional[ValidationIssue]:
        """
        Dry-run validation of a split configuration.

        Returns the first problem found, or None if the configuration
        can be calculated. Never raises for bad input.
        """
        total = to_decimal(total)
        issue = guard.check_amount(total, field="total")
        if issue:
            return issue

        user_ids = [p.user_id for p in participant_data]
        issue = (
            guard.check_participants_present(user_ids)
            or guard.check_duplicate_participants(user_ids)
        )
        if issue:
            return issue

        method = SplitMethod(method)
        if method == SplitMethod.EQUAL:
            return None

        if method == SplitMethod.PERCENTAGE:
            for p in participant_data:
                issue = guard.check_percentage(p.percentage, p.user_id)
                if issue:
                    return issue
            percentages = [p.percentage for p in participant_data]
            issue = guard.check_percentage_total(
                percentages,
                tolerance=self._settings.tolerance,
                required_total=self._settings.percentage_total,
            )
            if issue:
                return issue
            if all(pct == 0 for pct in percentages):
                return _all_zero_issue("percentages")
            return None

        if method == SplitMethod.EXACT:
            for p in participant_data:
                if p.amount is None or p.amount < 0:
                    return ValidationIssue(
                        field=f"amount.{p.user_id}",
                        issue_type="negative",
                        message="All amounts must be non-negative",
                    )
            return guard.check_exact_total(
                [p.amount for p in participant_data],
                total,
                tolerance=self._settings.tolerance,
            )

        if method == SplitMethod.SHARES:
            for p in participant_data:
                issue = guard.check_share_count(p.shares, p.user_id)
                if issue:
                    return issue
            return None

        raise NotImplementedError(f"Unhandled split method: {method}")

    def recalculate_split(
        self,
        new_total: Decimal,
        current_participants: Sequence[ExpenseParticipant],
        method: SplitMethod,
        currency: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> list[ExpenseParticipant]:
        """
        Re-derive shares for a changed total, keeping each member's relative weight.

        EXACT splits cannot be re-derived; the caller must re-specify amounts.
        """
        method = SplitMethod(method)
        if method == SplitMethod.EXACT:
            raise InvalidSplitError(ValidationIssue(
                field="split_method",
                issue_type="not_recalculable",
                message="Exact amounts must be re-entered when the total changes",
                suggested_fix="Enter the new amount for each participant",
            ))

        new_total = self.round_total(new_total, currency)
        self._raise_if(guard.check_amount(new_total, field="total"))
        user_ids = [p.user_id for p in current_participants]
        self._raise_if(guard.check_participants_present(user_ids))
        self._raise_if(guard.check_duplicate_participants(user_ids))

        if method == SplitMethod.EQUAL:
            weights = [1] * len(current_participants)
        else:
            # Current share amounts carry the relative weights of both
            # percentage and share-count splits.
            exponent = self._exponent(currency)
            weights = [to_minor(p.share_amount, exponent) for p in current_participants]
            if sum(weights) == 0:
                weights = [1] * len(current_participants)

        amounts = self._weighted(new_total, user_ids, weights, currency)
        data = [
            ParticipantInput(user_id=p.user_id, display_name=p.display_name)
            for p in current_participants
        ]
        participants = self._to_participants(new_total, data, amounts)

        if self._audit_logger:
            self._audit_logger.log(AuditEventBuilder.split_recalculated(
                method=method.value,
                total=str(new_total),
                participant_count=len(participants),
                correlation_id=correlation_id,
            ))
        return participants

    # -------------------------------------------------------------------------
    # Helpers for split editors
    # -------------------------------------------------------------------------

    @staticmethod
    def can_modify_participants(method: SplitMethod) -> bool:
        """Equal and share splits stay valid when participants are added or removed."""
        return SplitMethod(method) in (SplitMethod.EQUAL, SplitMethod.SHARES)

    @staticmethod
    def default_participant_data(
        method: SplitMethod,
        user_id: str,
        display_name: str,
        participant_count: int = 1,
    ) -> ParticipantInput:
        """Starting values for a participant newly added to a split editor."""
        method = SplitMethod(method)
        if method == SplitMethod.PERCENTAGE:
            pct = (Decimal("100") / max(participant_count, 1)).quantize(PERCENT_PLACES)
            return ParticipantInput(user_id=user_id, display_name=display_name, percentage=pct)
        if method == SplitMethod.EXACT:
            return ParticipantInput(user_id=user_id, display_name=display_name, amount=Decimal("0"))
        if method == SplitMethod.SHARES:
            return ParticipantInput(user_id=user_id, display_name=display_name, shares=1)
        return ParticipantInput(user_id=user_id, display_name=display_name)

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _split_equal_inputs(self, total, data, currency):
        return self.split_equally(total, [p.user_id for p in data], currency)

    def _split_percentage_inputs(self, total, data, currency):
        return self.split_by_percentage(total, {p.user_id: p.percentage for p in data}, currency)

    def _split_exact_inputs(self, total, data, currency):
        return self.split_by_exact_amounts(total, {p.user_id: p.amount for p in data}, currency)

    def _split_shares_inputs(self, total, data, currency):
        return self.split_by_shares(total, {p.user_id: p.shares for p in data}, currency)

    def _weighted(
        self,
        total: Decimal,
        user_ids: list[str],
        weights: list[int],
        currency: Optional[str],
    ) -> dict[str, Decimal]:
        exponent = self._exponent(currency)
        minors = allocate(to_minor(to_decimal(total), exponent), weights)
        return {u: from_minor(m, exponent) for u, m in zip(user_ids, minors)}

    def _to_participants(
        self,
        total: Decimal,
        data: Sequence[ParticipantInput],
        amounts: Mapping[str, Decimal],
    ) -> list[ExpenseParticipant]:
        total = to_decimal(total)
        participants = []
        for p in data:
            amount = amounts[p.user_id]
            if total == 0:
                pct = Decimal("0")
            else:
                pct = (amount / total * 100).quantize(PERCENT_PLACES)
            participants.append(ExpenseParticipant(
                user_id=p.user_id,
                display_name=p.display_name,
                share_amount=amount,
                share_percentage=pct,
            ))
        return participants

    def round_total(self, total, currency: Optional[str] = None) -> Optional[Decimal]:
        """
        Round an expense total to the currency's minor unit.

        Expense amounts and their shares are both stated at this precision,
        so shares always add up to the stored amount.
        """
        total = to_decimal(total)
        if total is None:
            return None
        return quantize(total, self._exponent(currency))

    def _exponent(self, currency: Optional[str]) -> int:
        return self._settings.minor_unit_exponent(currency or self._settings.default_currency)

    @staticmethod
    def _raise_if(issue: Optional[ValidationIssue]) -> None:
        if issue is not None:
            raise InvalidSplitError(issue)


def _all_zero_issue(field: str) -> ValidationIssue:
    return ValidationIssue(
        field=field,
        issue_type="all_zero",
        message="At least one participant must carry a non-zero weight",
    )
