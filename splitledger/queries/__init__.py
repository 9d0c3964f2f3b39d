"""Expense query package."""

from splitledger.queries.filters import (
    ExpenseFilter,
    ExpenseQuery,
    ExpenseSortCriteria,
    ExpenseStatistics,
    InvalidQueryError,
)

__all__ = [
    "ExpenseFilter",
    "ExpenseQuery",
    "ExpenseSortCriteria",
    "ExpenseStatistics",
    "InvalidQueryError",
]
