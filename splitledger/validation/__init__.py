"""Validation package."""

from splitledger.validation.guard import (
    DEFAULT_TOLERANCE,
    PERCENTAGE_TOTAL,
    check_amount,
    check_amount_range,
    check_date_range,
    check_duplicate_participants,
    check_exact_total,
    check_participants_present,
    check_payment,
    check_percentage,
    check_percentage_total,
    check_share_count,
    collect,
)

__all__ = [
    "DEFAULT_TOLERANCE",
    "PERCENTAGE_TOTAL",
    "check_amount",
    "check_amount_range",
    "check_date_range",
    "check_duplicate_participants",
    "check_exact_total",
    "check_participants_present",
    "check_payment",
    "check_percentage",
    "check_percentage_total",
    "check_share_count",
    "collect",
]
