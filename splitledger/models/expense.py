"""
Core Data Models for Split Ledger

These models define the strict schemas for every record flowing through
the engine. They are designed to:
1. Enforce type safety at runtime
2. Stay immutable once created (frozen models)
3. Be serializable for collaborators via model_dump()

DESIGN DECISION: Money is Decimal at the boundary. All arithmetic on it
happens in integer minor units inside splitledger.calculation, so these
models never do rounding of their own beyond display helpers.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)


SETTLED_THRESHOLD = Decimal("0.01")


def is_settled_amount(value: Decimal) -> bool:
    """A balance below SETTLED_THRESHOLD in magnitude counts as settled."""
    return abs(value) < SETTLED_THRESHOLD


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class SplitMethod(str, Enum):
    """
    Supported allocation policies for one expense.

    Each method requires a different shape of participant input:
    - EQUAL: nothing beyond the participant list
    - PERCENTAGE: a percentage per participant, summing to 100
    - EXACT: an amount per participant, summing to the expense total
    - SHARES: a positive integer share count per participant
    """
    EQUAL = "equal"
    PERCENTAGE = "percentage"
    EXACT = "exact"
    SHARES = "shares"


class BalanceStatus(str, Enum):
    """Where a member stands relative to the group."""
    OWES = "owes"
    OWED = "owed"
    SETTLED = "settled"


# =============================================================================
# SPLIT INPUT / OUTPUT
# =============================================================================

class ParticipantInput(BaseModel):
    """
    One row of a split configuration.

    Only the field matching the split method is read:
    percentage for PERCENTAGE, amount for EXACT, shares for SHARES.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    user_id: str = Field(
        ...,
        min_length=1,
        description="Member identifier"
    )
    display_name: str = Field(
        default="",
        description="Name shown next to the share"
    )
    percentage: Optional[Decimal] = Field(
        default=None,
        description="Percentage of the total (PERCENTAGE method)"
    )
    amount: Optional[Decimal] = Field(
        default=None,
        description="Exact amount owed (EXACT method)"
    )
    shares: Optional[int] = Field(
        default=None,
        description="Share count (SHARES method)"
    )


class ExpenseParticipant(BaseModel):
    """
    One member's allocated portion of one expense.

    share_percentage is always derived from share_amount / total * 100,
    independent of how the split was specified.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    user_id: str = Field(..., min_length=1)
    display_name: str = ""
    share_amount: Decimal = Field(
        ...,
        ge=0,
        description="Share in the group currency"
    )
    share_percentage: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        description="Share as a percentage of the expense total"
    )


# =============================================================================
# RECORDS SUPPLIED BY COLLABORATORS
# =============================================================================

class Member(BaseModel):
    """Roster entry used to label balances and settlements."""
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    user_id: str = Field(..., min_length=1)
    display_name: str = ""

    @property
    def label(self) -> str:
        return self.display_name or self.user_id


class Expense(BaseModel):
    """
    An expense paid by one member and shared by its participants.

    Immutable once created. An edit is a new Expense built by re-running
    the split calculator.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    group_id: str = Field(..., min_length=1)
    payer_id: str = Field(..., min_length=1)
    payer_name: str = ""
    amount: Decimal = Field(
        ...,
        ge=0,
        description="Total amount in the group currency"
    )
    currency: str = Field(
        default="USD",
        min_length=3,
        max_length=3,
    )
    description: str = Field(default="", max_length=500)
    category: Optional[str] = None
    participants: tuple[ExpenseParticipant, ...] = Field(default_factory=tuple)
    expense_date: date = Field(default_factory=date.today)

    @field_validator("currency")
    @classmethod
    def normalize_currency(cls, v: str) -> str:
        return v.upper()

    @property
    def total_participant_shares(self) -> Decimal:
        return sum((p.share_amount for p in self.participants), Decimal("0"))

    @property
    def is_valid_split(self) -> bool:
        """Shares add up to the expense amount exactly."""
        return self.total_participant_shares == self.amount

    @property
    def participant_count(self) -> int:
        return len(self.participants)

    def get_participant(self, user_id: str) -> Optional[ExpenseParticipant]:
        for participant in self.participants:
            if participant.user_id == user_id:
                return participant
        return None

    def is_participant(self, user_id: str) -> bool:
        return self.get_participant(user_id) is not None

    def is_payer(self, user_id: str) -> bool:
        return self.payer_id == user_id


class Payment(BaseModel):
    """
    A recorded settlement payment between two members.

    Created when a user confirms a proposed Settlement, or for an ad-hoc
    manual payment. Feeds the next balance aggregation.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    group_id: str = ""
    payer_id: str = Field(..., min_length=1)
    payer_name: str = ""
    recipient_id: str = Field(..., min_length=1)
    recipient_name: str = ""
    amount: Decimal
    currency: str = Field(default="USD", min_length=3, max_length=3)
    description: Optional[str] = None
    recorded_at: datetime = Field(default_factory=datetime.utcnow)

    @field_validator("currency")
    @classmethod
    def normalize_currency(cls, v: str) -> str:
        return v.upper()

    @property
    def is_valid_amount(self) -> bool:
        return self.amount > 0

    @property
    def is_not_self_payment(self) -> bool:
        return self.payer_id != self.recipient_id

    @property
    def is_valid(self) -> bool:
        return self.is_valid_amount and self.is_not_self_payment

    def involves_user(self, user_id: str) -> bool:
        return user_id in (self.payer_id, self.recipient_id)


# =============================================================================
# DERIVED OUTPUTS
# =============================================================================

class Balance(BaseModel):
    """
    A member's net position in the group.

    Positive: the group owes this member.
    Negative: this member owes the group.

    Never stored with its own lifecycle; recomputed from the current
    expense and payment set.
    """
    model_config = ConfigDict(frozen=True)

    user_id: str
    display_name: str = ""
    balance: Decimal
    currency: str = "USD"

    @property
    def owes_money_to_group(self) -> bool:
        return self.balance < 0

    @property
    def is_owed_money_by_group(self) -> bool:
        return self.balance > 0

    @property
    def is_settled(self) -> bool:
        return is_settled_amount(self.balance)

    @property
    def absolute_balance(self) -> Decimal:
        return abs(self.balance)

    @property
    def status(self) -> BalanceStatus:
        if self.is_settled:
            return BalanceStatus.SETTLED
        if self.owes_money_to_group:
            return BalanceStatus.OWES
        return BalanceStatus.OWED

    @property
    def status_text(self) -> str:
        if self.status == BalanceStatus.SETTLED:
            return "Settled"
        formatted = f"{self.currency} {self.absolute_balance}"
        if self.status == BalanceStatus.OWES:
            return f"Owes {formatted}"
        return f"Is owed {formatted}"


class Settlement(BaseModel):
    """
    A proposed payment from a debtor to a creditor.

    Ephemeral output of the settlement optimizer. It only becomes a
    Payment once a user confirms it.
    """
    model_config = ConfigDict(frozen=True)

    payer_id: str
    payer_name: str = ""
    recipient_id: str
    recipient_name: str = ""
    amount: Decimal
    currency: str = "USD"

    @property
    def is_valid(self) -> bool:
        return self.amount > 0 and self.payer_id != self.recipient_id

    def is_payer(self, user_id: str) -> bool:
        return self.payer_id == user_id

    def is_recipient(self, user_id: str) -> bool:
        return self.recipient_id == user_id

    def involves_user(self, user_id: str) -> bool:
        return self.is_payer(user_id) or self.is_recipient(user_id)

    @property
    def formatted_amount(self) -> str:
        return f"{self.currency} {self.amount}"

    @property
    def settlement_text(self) -> str:
        payer = self.payer_name or self.payer_id
        recipient = self.recipient_name or self.recipient_id
        return f"{payer} should pay {recipient} {self.formatted_amount}"

    def text_for_user(self, user_id: str) -> str:
        """Phrase the settlement from one member's point of view."""
        if self.is_payer(user_id):
            recipient = self.recipient_name or self.recipient_id
            return f"You should pay {recipient} {self.formatted_amount}"
        if self.is_recipient(user_id):
            payer = self.payer_name or self.payer_id
            return f"{payer} should pay you {self.formatted_amount}"
        return self.settlement_text


class BalanceSummary(BaseModel):
    """Group-level totals for display."""
    model_config = ConfigDict(frozen=True)

    total_owed: Decimal = Field(
        ...,
        ge=0,
        description="Sum of strictly positive balances"
    )
    total_owing: Decimal = Field(
        ...,
        ge=0,
        description="Absolute sum of strictly negative balances"
    )
    currency: str = "USD"
    member_count: int = Field(default=0, ge=0)
    settled_count: int = Field(default=0, ge=0)

    @property
    def is_fully_settled(self) -> bool:
        return self.total_owed == 0 and self.total_owing == 0


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""
    model_config = ConfigDict(frozen=True)

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'out_of_range', 'duplicate')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        default="error",
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class ValidationResult(BaseModel):
    """
    Outcome of running one or more guard checks.

    is_valid is False as soon as one error-level issue is present.
    Warnings never block.
    """
    model_config = ConfigDict(frozen=True)

    issues: tuple[ValidationIssue, ...] = Field(default_factory=tuple)

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def first_error(self) -> Optional[ValidationIssue]:
        for issue in self.issues:
            if issue.severity == "error":
                return issue
        return None

    @property
    def messages(self) -> list[str]:
        return [issue.message for issue in self.issues]
