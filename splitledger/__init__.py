"""
Split Ledger - Source Package

The financial core of a group expense-sharing system: splits expenses,
aggregates net balances and plans settlements.

DESIGN PRINCIPLES:
1. Integer minor units inside, Decimal at the boundary
2. Shares always sum to the expense total exactly
3. Balances always sum to zero
4. Same input, same output
5. User errors are values; bugs go to the audit log
"""

__version__ = "1.0.0"
__author__ = "Split Ledger Team"
