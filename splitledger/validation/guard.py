"""
Validation Guard

Stateless precondition checks shared by the split calculator, the balance
aggregator and the expense queries.

IMPORTANT: Nothing here raises for bad input. Every check returns either
None (passed) or a ValidationIssue describing the problem, so the
presentation layer can show a field-level message.

Internal consistency violations (a bug signal, not a user error) are not
reported here. They go to the audit logger.
"""

from collections import Counter
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from splitledger.models.expense import (
    Payment,
    ValidationIssue,
    ValidationResult,
)


DEFAULT_TOLERANCE = Decimal("0.01")
PERCENTAGE_TOTAL = Decimal("100")


def collect(*issues: Optional[ValidationIssue]) -> ValidationResult:
    """Fold optional issues into a ValidationResult."""
    return ValidationResult(issues=tuple(i for i in issues if i is not None))


def check_amount(
    value: Optional[Decimal],
    field: str = "amount",
    allow_zero: bool = False,
) -> Optional[ValidationIssue]:
    """Amounts must be present and non-negative (positive unless allow_zero)."""
    if value is None:
        return ValidationIssue(
            field=field,
            issue_type="missing",
            message=f"{_label(field)} is required",
        )
    if value < 0:
        return ValidationIssue(
            field=field,
            issue_type="negative",
            message=f"{_label(field)} cannot be negative",
            suggested_fix="Enter an amount of zero or more",
        )
    if value == 0 and not allow_zero:
        return ValidationIssue(
            field=field,
            issue_type="not_positive",
            message=f"{_label(field)} must be positive",
            suggested_fix="Enter an amount greater than zero",
        )
    return None


def check_participants_present(user_ids: Sequence[str]) -> Optional[ValidationIssue]:
    if not user_ids:
        return ValidationIssue(
            field="participants",
            issue_type="missing",
            message="At least one participant is required",
            suggested_fix="Select who shares this expense",
        )
    return None


def check_duplicate_participants(user_ids: Iterable[str]) -> Optional[ValidationIssue]:
    """Each user may appear only once in a split configuration."""
    counts = Counter(user_ids)
    duplicates = [user_id for user_id, count in counts.items() if count > 1]
    if duplicates:
        return ValidationIssue(
            field="participants",
            issue_type="duplicate",
            message=(
                "Duplicate participants are not allowed: "
                + ", ".join(duplicates)
            ),
            suggested_fix="Remove the repeated participant",
        )
    return None


def check_percentage(
    value: Optional[Decimal],
    user_id: str,
) -> Optional[ValidationIssue]:
    """A single percentage must lie within [0, 100]."""
    if value is None or value < 0 or value > PERCENTAGE_TOTAL:
        return ValidationIssue(
            field=f"percentage.{user_id}",
            issue_type="out_of_range",
            message="All percentages must be between 0 and 100",
        )
    return None


def check_percentage_total(
    values: Iterable[Decimal],
    tolerance: Decimal = DEFAULT_TOLERANCE,
    required_total: Decimal = PERCENTAGE_TOTAL,
) -> Optional[ValidationIssue]:
    """Percentages must add up to 100 within tolerance."""
    total = sum(values, Decimal("0"))
    if abs(total - required_total) > tolerance:
        return ValidationIssue(
            field="percentages",
            issue_type="bad_total",
            message=(
                f"Percentages must sum to {required_total.normalize():f}% "
                f"(currently {total.normalize():f}%)"
            ),
            suggested_fix="Adjust the percentages so they add up to 100%",
        )
    return None


def check_exact_total(
    values: Iterable[Decimal],
    total: Decimal,
    tolerance: Decimal = DEFAULT_TOLERANCE,
) -> Optional[ValidationIssue]:
    """Exact amounts must add up to the expense total within tolerance."""
    exact_total = sum(values, Decimal("0"))
    if abs(exact_total - total) > tolerance:
        return ValidationIssue(
            field="amounts",
            issue_type="bad_total",
            message=(
                "Exact amounts must sum to total amount "
                f"({exact_total} != {total})"
            ),
            suggested_fix="Adjust the amounts so they add up to the expense total",
        )
    return None


def check_share_count(value: Optional[int], user_id: str) -> Optional[ValidationIssue]:
    """Share counts must be positive integers."""
    if value is None or isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        return ValidationIssue(
            field=f"shares.{user_id}",
            issue_type="not_positive",
            message="All share counts must be positive integers",
        )
    return None


def check_amount_range(
    min_amount: Optional[Decimal],
    max_amount: Optional[Decimal],
) -> Optional[ValidationIssue]:
    if min_amount is not None and min_amount < 0:
        return ValidationIssue(
            field="min_amount",
            issue_type="negative",
            message="Minimum amount cannot be negative",
        )
    if min_amount is not None and max_amount is not None and min_amount > max_amount:
        return ValidationIssue(
            field="amount_range",
            issue_type="inverted_range",
            message=f"Minimum amount ({min_amount}) is greater than maximum amount ({max_amount})",
            suggested_fix="Swap the minimum and maximum amounts",
        )
    return None


def check_date_range(
    start: Optional[date],
    end: Optional[date],
) -> Optional[ValidationIssue]:
    if start is not None and end is not None and start > end:
        return ValidationIssue(
            field="date_range",
            issue_type="inverted_range",
            message=f"Start date ({start}) is after end date ({end})",
            suggested_fix="Pick an end date on or after the start date",
        )
    return None


def check_payment(payment: Payment) -> ValidationResult:
    """A recorded payment needs a positive amount and two different members."""
    self_payment = None
    if not payment.is_not_self_payment:
        self_payment = ValidationIssue(
            field="recipient_id",
            issue_type="self_payment",
            message="Payer and recipient must be different members",
        )
    return collect(
        check_amount(payment.amount, field="amount"),
        self_payment,
    )


def _label(field: str) -> str:
    return field.replace("_", " ").capitalize()
