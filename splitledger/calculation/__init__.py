"""Calculation package: splitting, aggregation and settlement."""

from splitledger.calculation.balances import BalanceAggregator
from splitledger.calculation.settlement import SettlementOptimizer
from splitledger.calculation.splitter import InvalidSplitError, SplitCalculator

__all__ = [
    "BalanceAggregator",
    "InvalidSplitError",
    "SettlementOptimizer",
    "SplitCalculator",
]
