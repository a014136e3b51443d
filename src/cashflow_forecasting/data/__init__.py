"""
Data records and the historical data aggregator boundary.
"""

from .models import (
    PeriodType,
    TransactionType,
    TimeSeriesPoint,
    Transaction,
    GoalRecord,
    BudgetLimit,
    to_date,
    to_amount,
    to_whole_number
)
from .aggregator import (
    aggregate_transactions,
    daily_totals,
    lookback_start,
    net_balance,
    period_start
)
from .stores import TransactionStore, GoalStore

__all__ = [
    'PeriodType',
    'TransactionType',
    'TimeSeriesPoint',
    'Transaction',
    'GoalRecord',
    'BudgetLimit',
    'to_date',
    'to_amount',
    'to_whole_number',
    'aggregate_transactions',
    'daily_totals',
    'lookback_start',
    'net_balance',
    'period_start',
    'TransactionStore',
    'GoalStore',
]
