"""Tests for expense filtering."""

import pytest
from datetime import date
from decimal import Decimal

from splitledger.models.audit import AuditEventType
from splitledger.models.expense import Expense, ExpenseParticipant
from splitledger.queries import (
    ExpenseFilter,
    ExpenseQuery,
    ExpenseSortCriteria,
    InvalidQueryError,
)


def _expense(expense_id, payer, amount, day, description="", participants=("a", "b")):
    amount = Decimal(amount)
    share = amount / len(participants)
    return Expense(
        id=expense_id,
        group_id="g1",
        payer_id=payer,
        payer_name=payer.upper(),
        amount=amount,
        description=description,
        participants=tuple(
            ExpenseParticipant(user_id=p, display_name=f"{p.upper()} name", share_amount=share)
            for p in participants
        ),
        expense_date=day,
    )


EXPENSES = [
    _expense("e1", "a", "12.00", date(2024, 1, 5), "Groceries"),
    _expense("e2", "b", "80.00", date(2024, 2, 10), "Hotel", participants=("b", "c")),
    _expense("e3", "c", "40.00", date(2024, 3, 15), "Taxi to airport"),
]


@pytest.fixture
def expense_filter(audit_logger):
    return ExpenseFilter(audit_logger)


class TestExpenseFilter:
    """Tests for individual filters."""

    def test_search_description_case_insensitive(self):
        assert [e.id for e in ExpenseFilter.search(EXPENSES, "hotel")] == ["e2"]

    def test_search_participant_name(self):
        assert [e.id for e in ExpenseFilter.search(EXPENSES, "c name")] == ["e2"]

    def test_search_amount(self):
        assert [e.id for e in ExpenseFilter.search(EXPENSES, "40.00")] == ["e3"]

    def test_blank_search_returns_everything(self):
        assert len(ExpenseFilter.search(EXPENSES, "   ")) == 3

    def test_date_range_inclusive(self):
        result = ExpenseFilter.filter_by_date_range(EXPENSES, date(2024, 1, 5), date(2024, 2, 10))
        assert [e.id for e in result] == ["e1", "e2"]

    def test_participant_includes_payer(self):
        result = ExpenseFilter.filter_by_participant(EXPENSES, "c")
        assert [e.id for e in result] == ["e2", "e3"]

    def test_amount_range(self):
        result = ExpenseFilter.filter_by_amount_range(EXPENSES, Decimal("20"), Decimal("80"))
        assert [e.id for e in result] == ["e2", "e3"]

    def test_sort_by_amount_descending(self):
        result = ExpenseFilter.sort(EXPENSES, ExpenseSortCriteria.AMOUNT)
        assert [e.id for e in result] == ["e2", "e3", "e1"]

    def test_sort_by_date_ascending(self):
        result = ExpenseFilter.sort(EXPENSES, "date", ascending=True)
        assert [e.id for e in result] == ["e1", "e2", "e3"]

    def test_statistics(self):
        stats = ExpenseFilter.statistics(EXPENSES)
        assert stats.total_expenses == 3
        assert stats.total_amount == Decimal("132.00")
        assert stats.average_amount == Decimal("44")
        assert stats.min_amount == Decimal("12.00")
        assert stats.earliest_date == date(2024, 1, 5)
        assert stats.unique_participants == 3

    def test_statistics_empty(self):
        assert ExpenseFilter.statistics([]).total_expenses == 0


class TestApplyQuery:
    """Tests for combined queries."""

    def test_combined_filters(self, expense_filter, sink):
        query = ExpenseQuery(
            date_from=date(2024, 2, 1),
            participant_user_id="b",
            min_amount=Decimal("50"),
        )
        assert [e.id for e in expense_filter.apply(EXPENSES, query)] == ["e2"]
        assert len(sink.events_of_type(AuditEventType.QUERY_EXECUTED)) == 1

    def test_inverted_date_range_rejected(self, expense_filter, sink):
        query = ExpenseQuery(date_from=date(2024, 3, 1), date_to=date(2024, 2, 1))
        with pytest.raises(InvalidQueryError) as exc:
            expense_filter.apply(EXPENSES, query)
        assert exc.value.issue.field == "date_range"
        assert len(sink.events_of_type(AuditEventType.QUERY_REJECTED)) == 1

    def test_inverted_amount_range_reported_as_value(self):
        result = ExpenseFilter.validate(ExpenseQuery(min_amount=Decimal("9"), max_amount=Decimal("1")))
        assert not result.is_valid
        assert result.first_error.issue_type == "inverted_range"
