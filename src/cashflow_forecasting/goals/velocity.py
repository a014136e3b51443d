"""
Savings Velocity

Measures how fast a user has actually been saving: average net monthly
savings over a lookback window, its trend, and a confidence score
derived from how consistent the monthly figures are.
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence
import logging

from dateutil.relativedelta import relativedelta

from ..data.models import Transaction, TransactionType
from ..forecasting.statistics import mean, ols_fit, population_std, safe_divide

logger = logging.getLogger(__name__)


MIN_TRANSACTIONS_FOR_VELOCITY = 3
MIN_MONTHS_FOR_TREND = 2
DEFAULT_LOOKBACK_MONTHS = 6


class TrendDirection(Enum):
    IMPROVING = "improving"
    DECLINING = "declining"
    STABLE = "stable"


@dataclass(frozen=True)
class SavingsTrend:
    """Direction and strength of the monthly savings series"""
    direction: TrendDirection = TrendDirection.STABLE
    strength: float = 0.0
    slope: float = 0.0

    @property
    def monthly_change(self) -> float:
        return self.slope

    def to_dict(self) -> Dict[str, Any]:
        return {
            "direction": self.direction.value,
            "strength": self.strength,
            "slope": self.slope,
            "monthly_change": self.monthly_change
        }


@dataclass
class MonthlyCashFlow:
    income: float = 0.0
    expenses: float = 0.0
    transactions: int = 0

    @property
    def savings(self) -> float:
        return self.income - self.expenses


@dataclass
class VelocityMetrics:
    """Realized savings velocity over the lookback window"""
    has_enough_data: bool
    monthly_savings_rate: float = 0.0
    average_income: float = 0.0
    average_expenses: float = 0.0
    confidence: float = 0.0
    trend: SavingsTrend = field(default_factory=SavingsTrend)
    months_analyzed: int = 0
    transaction_count: int = 0
    monthly_breakdown: Dict[str, MonthlyCashFlow] = field(default_factory=dict)
    message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "has_enough_data": self.has_enough_data,
            "monthly_savings_rate": self.monthly_savings_rate,
            "average_income": self.average_income,
            "average_expenses": self.average_expenses,
            "confidence": self.confidence,
            "trend": self.trend.to_dict(),
            "months_analyzed": self.months_analyzed,
            "transaction_count": self.transaction_count,
            "monthly_breakdown": {
                key: {
                    "income": month.income,
                    "expenses": month.expenses,
                    "savings": month.savings,
                    "transactions": month.transactions
                }
                for key, month in self.monthly_breakdown.items()
            },
            "message": self.message
        }


def savings_trend(monthly_savings: Sequence[float]) -> SavingsTrend:
    """
    Classify the monthly savings series by its least-squares slope.

    The slope is compared against a tenth of the average monthly savings;
    strength is the slope relative to that average, capped at 1.
    """
    if len(monthly_savings) < MIN_MONTHS_FOR_TREND:
        return SavingsTrend()

    slope, _ = ols_fit(monthly_savings)
    average = mean(monthly_savings)
    strength = safe_divide(abs(slope), abs(average) or 1.0)

    direction = TrendDirection.STABLE
    if slope > average * 0.1:
        direction = TrendDirection.IMPROVING
    elif slope < -average * 0.1:
        direction = TrendDirection.DECLINING

    return SavingsTrend(direction=direction, strength=min(strength, 1.0), slope=slope)


def savings_confidence(monthly_savings: Sequence[float]) -> float:
    """
    Confidence in the velocity figure, in [0, 1].

    A coefficient of variation of 0 maps to 1.0 and anything past 2 to the
    0.2 floor; each month beyond the second adds 0.05, up to 0.2.
    """
    n = len(monthly_savings)
    if n < MIN_MONTHS_FOR_TREND:
        return 0.3

    average = mean(monthly_savings)
    std_dev = population_std(monthly_savings)
    cv = safe_divide(std_dev, abs(average)) if average != 0 else std_dev

    confidence = max(0.2, 1 - cv * 0.4)
    data_boost = min((n - 2) * 0.05, 0.2)
    confidence = min(confidence + data_boost, 1.0)
    return round(max(0.0, confidence), 2)


class SavingsVelocityCalculator:
    """
    Derives savings velocity from raw income and expense transactions.

    Example:
    ```python
    calculator = SavingsVelocityCalculator(lookback_months=6)
    velocity = calculator.calculate(transactions, now=date(2025, 6, 30))
    print(velocity.monthly_savings_rate, velocity.trend.direction)
    ```
    """

    def __init__(self, lookback_months: int = DEFAULT_LOOKBACK_MONTHS):
        self.lookback_months = lookback_months

    def window_start(self, now: date) -> date:
        return now - relativedelta(months=self.lookback_months)

    def calculate(self, transactions: Sequence[Transaction], now: date) -> VelocityMetrics:
        """
        Calculate velocity from transactions dated within the lookback window.

        Args:
            transactions: Income and expense transactions, any order
            now: Reference date; the window is [now - lookback, now]

        Returns:
            VelocityMetrics; ``has_enough_data`` is False when fewer than
            three transactions fall inside the window
        """
        start = self.window_start(now)
        in_window = sorted(
            (t for t in transactions if start <= t.date <= now),
            key=lambda t: t.date
        )

        if len(in_window) < MIN_TRANSACTIONS_FOR_VELOCITY:
            logger.info(
                f"Velocity skipped: {len(in_window)} transactions since {start.isoformat()}"
            )
            return VelocityMetrics(
                has_enough_data=False,
                transaction_count=len(in_window),
                message="Insufficient transaction data for velocity calculation"
            )

        breakdown = self.group_by_month(in_window)
        months = list(breakdown.values())
        monthly_savings = [m.savings for m in months]

        return VelocityMetrics(
            has_enough_data=True,
            monthly_savings_rate=mean(monthly_savings),
            average_income=mean([m.income for m in months]),
            average_expenses=mean([m.expenses for m in months]),
            confidence=savings_confidence(monthly_savings),
            trend=savings_trend(monthly_savings),
            months_analyzed=len(months),
            transaction_count=len(in_window),
            monthly_breakdown=breakdown
        )

    @staticmethod
    def group_by_month(transactions: Sequence[Transaction]) -> Dict[str, MonthlyCashFlow]:
        """Income and expense totals keyed by ``YYYY-MM``, in calendar order."""
        grouped: Dict[str, MonthlyCashFlow] = {}
        for transaction in transactions:
            key = f"{transaction.date.year}-{transaction.date.month:02d}"
            month = grouped.setdefault(key, MonthlyCashFlow())
            if transaction.type is TransactionType.INCOME:
                month.income += transaction.amount
            else:
                month.expenses += transaction.amount
            month.transactions += 1
        return {key: grouped[key] for key in sorted(grouped)}


def calculate_savings_velocity(
    transactions: List[Transaction],
    now: date,
    months_back: int = DEFAULT_LOOKBACK_MONTHS
) -> VelocityMetrics:
    """Convenience wrapper around ``SavingsVelocityCalculator``."""
    return SavingsVelocityCalculator(lookback_months=months_back).calculate(transactions, now)
