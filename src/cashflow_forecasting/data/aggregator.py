"""
Historical Data Aggregator

Turns raw transactions into periodized, ascending time series. Periods
without transactions are left out rather than zero-filled; every consumer
treats a sparse window as normal input.
"""

import logging
from collections import OrderedDict
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional, Tuple

from .models import PeriodType, TimeSeriesPoint, Transaction, TransactionType

logger = logging.getLogger(__name__)


def period_start(day: date, period_type: PeriodType) -> date:
    """First calendar day of the period containing ``day``."""
    if period_type is PeriodType.WEEKLY:
        return day - timedelta(days=day.weekday())
    if period_type is PeriodType.MONTHLY:
        return day.replace(day=1)
    if period_type is PeriodType.QUARTERLY:
        return date(day.year, 3 * ((day.month - 1) // 3) + 1, 1)
    return date(day.year, 1, 1)


def lookback_start(now: date, period_type: PeriodType, periods: int) -> date:
    """Start of a lookback window of ``periods`` whole periods ending at ``now``."""
    return now - period_type.increment(periods)


def _in_scope(
    txn: Transaction,
    category: Optional[str],
    transaction_type: Optional[TransactionType],
    start: Optional[date],
    end: Optional[date]
) -> bool:
    if transaction_type is not None and txn.type is not transaction_type:
        return False
    if category is not None and txn.category != category:
        return False
    if start is not None and txn.date < start:
        return False
    # end is exclusive, like the store's date range
    if end is not None and txn.date >= end:
        return False
    return True


def aggregate_transactions(
    transactions: Iterable[Transaction],
    period_type: PeriodType,
    category: Optional[str] = None,
    transaction_type: Optional[TransactionType] = TransactionType.EXPENSE,
    start: Optional[date] = None,
    end: Optional[date] = None
) -> List[TimeSeriesPoint]:
    """
    Group transactions into a historical window.

    Args:
        transactions: Raw transactions in any order
        period_type: Calendar granularity
        category: Optional category filter
        transaction_type: Keep only this type; None keeps both
        start: Inclusive lower date bound
        end: Exclusive upper date bound

    Returns:
        Ascending list of TimeSeriesPoint, one per non-empty period
    """
    totals: Dict[date, Tuple[float, int]] = {}
    skipped = 0

    for txn in transactions:
        if not _in_scope(txn, category, transaction_type, start, end):
            skipped += 1
            continue
        key = period_start(txn.date, period_type)
        amount, count = totals.get(key, (0.0, 0))
        totals[key] = (amount + txn.amount, count + 1)

    if skipped:
        logger.debug(f"Aggregator skipped {skipped} out-of-scope transactions")

    return [
        TimeSeriesPoint(period_start=key, amount=round(amount, 2), count=count)
        for key, (amount, count) in sorted(totals.items())
    ]


def daily_totals(
    transactions: Iterable[Transaction],
    transaction_type: TransactionType,
    start: Optional[date] = None,
    end: Optional[date] = None
) -> List[TimeSeriesPoint]:
    """Per-day sums for one transaction type, ascending, sparse."""
    by_day: "OrderedDict[date, Tuple[float, int]]" = OrderedDict()
    for txn in sorted(transactions, key=lambda t: t.date):
        if not _in_scope(txn, None, transaction_type, start, end):
            continue
        amount, count = by_day.get(txn.date, (0.0, 0))
        by_day[txn.date] = (amount + txn.amount, count + 1)

    return [
        TimeSeriesPoint(period_start=day, amount=amount, count=count)
        for day, (amount, count) in by_day.items()
    ]


def net_balance(transactions: Iterable[Transaction]) -> float:
    """Income minus expenses over every supplied transaction."""
    balance = 0.0
    for txn in transactions:
        if txn.type is TransactionType.INCOME:
            balance += txn.amount
        else:
            balance -= txn.amount
    return round(balance, 2)
