"""
Expense Filtering

Narrows an expense list before it is aggregated or displayed: free-text
search, date range, participant, amount range, plus sorting and summary
statistics.

DESIGN DECISION: Filtering is DETERMINISTIC and never reorders unless asked.
Range queries are validated by the guard first; an inverted range is a
user error, reported as a ValidationIssue.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional, Sequence
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from splitledger.audit import AuditLogger
from splitledger.models.audit import AuditEventBuilder
from splitledger.models.expense import Expense, ValidationIssue, ValidationResult
from splitledger.validation import guard


class InvalidQueryError(ValueError):
    """An expense query whose ranges cannot be applied."""

    def __init__(self, issue: ValidationIssue):
        super().__init__(issue.message)
        self.issue = issue


class ExpenseSortCriteria(str, Enum):
    DATE = "date"
    AMOUNT = "amount"
    DESCRIPTION = "description"
    PAYER = "payer"


class ExpenseQuery(BaseModel):
    """Filters applied to a group's expenses. Every filter is optional."""
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    search_text: Optional[str] = Field(
        default=None,
        description="Matches description, amount, participant or payer name"
    )
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    participant_user_id: Optional[str] = Field(
        default=None,
        description="Keep expenses this user paid for or shares in"
    )
    min_amount: Optional[Decimal] = None
    max_amount: Optional[Decimal] = None


class ExpenseStatistics(BaseModel):
    """Summary figures for a list of expenses."""
    model_config = ConfigDict(frozen=True)

    total_expenses: int = 0
    total_amount: Decimal = Decimal("0")
    average_amount: Decimal = Decimal("0")
    min_amount: Decimal = Decimal("0")
    max_amount: Decimal = Decimal("0")
    earliest_date: Optional[date] = None
    latest_date: Optional[date] = None
    unique_participants: int = 0


class ExpenseFilter:
    """
    Applies ExpenseQuery filters to in-memory expense lists.

    GUARANTEES:
    - Only returns expenses from the input
    - Keeps input order
    - Rejects inverted ranges instead of returning an empty list
    """

    def __init__(self, audit_logger: Optional[AuditLogger] = None):
        self._audit_logger = audit_logger

    @staticmethod
    def validate(query: ExpenseQuery) -> ValidationResult:
        return guard.collect(
            guard.check_date_range(query.date_from, query.date_to),
            guard.check_amount_range(query.min_amount, query.max_amount),
        )

    def apply(
        self,
        expenses: Sequence[Expense],
        query: ExpenseQuery,
        correlation_id: Optional[UUID] = None,
    ) -> list[Expense]:
        """
        Apply every filter in the query.

        Raises:
            InvalidQueryError: If a range in the query is inverted
        """
        result = self.validate(query)
        if not result.is_valid:
            issue = result.first_error
            if self._audit_logger:
                self._audit_logger.log(AuditEventBuilder.query_rejected(
                    field=issue.field,
                    message=issue.message,
                    correlation_id=correlation_id,
                ))
            raise InvalidQueryError(issue)

        filtered = list(expenses)
        if query.search_text:
            filtered = self.search(filtered, query.search_text)
        filtered = self.filter_by_date_range(filtered, query.date_from, query.date_to)
        if query.participant_user_id:
            filtered = self.filter_by_participant(filtered, query.participant_user_id)
        filtered = self.filter_by_amount_range(filtered, query.min_amount, query.max_amount)

        if self._audit_logger:
            self._audit_logger.log(AuditEventBuilder.query_executed(
                result_count=len(filtered),
                correlation_id=correlation_id,
            ))
        return filtered

    @staticmethod
    def search(expenses: Sequence[Expense], text: str) -> list[Expense]:
        """Case-insensitive match on description, amount, participant or payer name."""
        needle = text.strip().lower()
        if not needle:
            return list(expenses)

        def matches(expense: Expense) -> bool:
            if needle in expense.description.lower():
                return True
            if needle in str(expense.amount):
                return True
            if needle in expense.payer_name.lower():
                return True
            return any(needle in p.display_name.lower() for p in expense.participants)

        return [e for e in expenses if matches(e)]

    @staticmethod
    def filter_by_date_range(
        expenses: Sequence[Expense],
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> list[Expense]:
        """Both bounds are inclusive."""
        return [
            e for e in expenses
            if (date_from is None or e.expense_date >= date_from)
            and (date_to is None or e.expense_date <= date_to)
        ]

    @staticmethod
    def filter_by_participant(expenses: Sequence[Expense], user_id: str) -> list[Expense]:
        return [e for e in expenses if e.is_payer(user_id) or e.is_participant(user_id)]

    @staticmethod
    def filter_by_amount_range(
        expenses: Sequence[Expense],
        min_amount: Optional[Decimal] = None,
        max_amount: Optional[Decimal] = None,
    ) -> list[Expense]:
        return [
            e for e in expenses
            if (min_amount is None or e.amount >= min_amount)
            and (max_amount is None or e.amount <= max_amount)
        ]

    @staticmethod
    def sort(
        expenses: Sequence[Expense],
        by: ExpenseSortCriteria = ExpenseSortCriteria.DATE,
        ascending: bool = False,
    ) -> list[Expense]:
        """Stable sort; newest / largest first unless ascending."""
        keys = {
            ExpenseSortCriteria.DATE: lambda e: e.expense_date,
            ExpenseSortCriteria.AMOUNT: lambda e: e.amount,
            ExpenseSortCriteria.DESCRIPTION: lambda e: e.description.lower(),
            ExpenseSortCriteria.PAYER: lambda e: (e.payer_name or e.payer_id).lower(),
        }
        return sorted(expenses, key=keys[ExpenseSortCriteria(by)], reverse=not ascending)

    @staticmethod
    def statistics(expenses: Sequence[Expense]) -> ExpenseStatistics:
        if not expenses:
            return ExpenseStatistics()

        amounts = [e.amount for e in expenses]
        dates = [e.expense_date for e in expenses]
        participants = {p.user_id for e in expenses for p in e.participants}
        total = sum(amounts, Decimal("0"))
        return ExpenseStatistics(
            total_expenses=len(expenses),
            total_amount=total,
            average_amount=total / len(expenses),
            min_amount=min(amounts),
            max_amount=max(amounts),
            earliest_date=min(dates),
            latest_date=max(dates),
            unique_participants=len(participants),
        )
