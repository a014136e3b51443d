"""
Plain data records consumed and produced by the forecasting core.

Transactions and goals arrive already materialized from external stores;
nothing in this module performs I/O.
"""

import math
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from dateutil.relativedelta import relativedelta

from ..exceptions import InvalidParameterError


class PeriodType(Enum):
    """Calendar granularity of a historical window"""
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"

    @property
    def forecast_periods(self) -> int:
        """Number of future periods a deterministic forecast emits."""
        return {
            PeriodType.WEEKLY: 4,
            PeriodType.MONTHLY: 3,
            PeriodType.QUARTERLY: 4,
            PeriodType.YEARLY: 1,
        }[self]

    def increment(self, periods: int = 1) -> relativedelta:
        """Calendar offset covering ``periods`` periods."""
        if self is PeriodType.WEEKLY:
            return relativedelta(weeks=periods)
        if self is PeriodType.MONTHLY:
            return relativedelta(months=periods)
        if self is PeriodType.QUARTERLY:
            return relativedelta(months=3 * periods)
        return relativedelta(years=periods)

    @classmethod
    def parse(cls, value: Any) -> "PeriodType":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise InvalidParameterError(
                "period_type", value, f"expected one of {[p.value for p in cls]}"
            ) from None


class TransactionType(Enum):
    INCOME = "income"
    EXPENSE = "expense"


def to_date(value: Any) -> date:
    """Coerce a date, datetime or ISO string into a ``date``."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.strip()).date()
        except ValueError:
            pass
    raise InvalidParameterError("date", value, "expected a date, datetime or ISO-8601 string")


def to_amount(value: Any, field_name: str = "amount") -> float:
    """Coerce a loosely-typed number into a finite float."""
    if isinstance(value, bool):
        raise InvalidParameterError(field_name, value, "expected a number")
    try:
        amount = float(value)
    except (TypeError, ValueError):
        raise InvalidParameterError(field_name, value, "expected a number") from None
    if not math.isfinite(amount):
        raise InvalidParameterError(field_name, value, "must be finite")
    return amount


def to_whole_number(value: Any, field_name: str, minimum: int = 0) -> int:
    """Coerce an integral number (``3``, ``3.0``, ``"3"``) and enforce a lower bound."""
    if isinstance(value, bool):
        raise InvalidParameterError(field_name, value, "expected a whole number")
    if isinstance(value, int):
        number = value
    else:
        try:
            as_float = float(value)
        except (TypeError, ValueError):
            raise InvalidParameterError(field_name, value, "expected a whole number") from None
        if not as_float.is_integer():
            raise InvalidParameterError(field_name, value, "expected a whole number")
        number = int(as_float)
    if number < minimum:
        raise InvalidParameterError(field_name, value, f"must be at least {minimum}")
    return number


@dataclass(frozen=True)
class TimeSeriesPoint:
    """One aggregated calendar period of a historical window"""
    period_start: date
    amount: float
    count: int = 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "period_start": self.period_start.isoformat(),
            "amount": self.amount,
            "count": self.count
        }


@dataclass(frozen=True)
class Transaction:
    """Raw transaction as returned by the transaction store"""
    date: date
    amount: float
    type: TransactionType
    category: Optional[str] = None

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "Transaction":
        raw_type = str(payload.get("type", "expense")).strip().lower()
        try:
            txn_type = TransactionType(raw_type)
        except ValueError:
            raise InvalidParameterError("type", raw_type, "expected 'income' or 'expense'") from None
        category = payload.get("category")
        return cls(
            date=to_date(payload.get("date")),
            amount=abs(to_amount(payload.get("amount"))),
            type=txn_type,
            category=str(category) if category is not None else None
        )


@dataclass
class GoalRecord:
    """Savings goal as returned by the goal store"""
    id: str
    target_amount: float
    current_amount: float
    target_date: date
    title: str = ""
    status: str = "active"
    milestones: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def remaining_amount(self) -> float:
        return self.target_amount - self.current_amount

    @property
    def progress(self) -> float:
        """Completion percentage, capped at 100."""
        if self.target_amount <= 0:
            return 100.0
        return round(min(100.0, max(0.0, self.current_amount / self.target_amount * 100)), 2)

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "GoalRecord":
        return cls(
            id=str(payload.get("id", "")),
            target_amount=to_amount(payload.get("target_amount"), "target_amount"),
            current_amount=to_amount(payload.get("current_amount", 0.0), "current_amount"),
            target_date=to_date(payload.get("target_date")),
            title=str(payload.get("title", "")),
            status=str(payload.get("status", "active")),
            milestones=list(payload.get("milestones") or [])
        )


@dataclass(frozen=True)
class BudgetLimit:
    """Budget ceiling used when generating forecast alerts"""
    amount: float
    category: Optional[str] = None
