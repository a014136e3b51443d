"""
Aggregate Forecast Summarizer

Rolls a prediction sequence up into totals and a trend classification.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Sequence

from .forecaster import Prediction
from .statistics import mean, safe_divide


class ForecastTrend(Enum):
    """Direction of predicted spending"""
    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"


@dataclass(frozen=True)
class AggregateForecast:
    total_predicted: float
    average_monthly: float
    trend: ForecastTrend
    trend_percentage: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_predicted": self.total_predicted,
            "average_monthly": self.average_monthly,
            "trend": self.trend.value,
            "trend_percentage": self.trend_percentage
        }


TREND_UPPER = 1.05
TREND_LOWER = 0.95


def summarize_predictions(predictions: Sequence[Prediction]) -> AggregateForecast:
    """
    Total, per-period average and half-over-half trend.

    The first half is the leading floor(n/2) predictions. trend_percentage
    is the magnitude of the change between halves relative to the first
    half, and 0 when the trend is stable.
    """
    amounts = [p.predicted_amount for p in predictions]
    total = sum(amounts)
    average = safe_divide(total, len(amounts))

    trend = ForecastTrend.STABLE
    trend_percentage = 0.0

    split = len(amounts) // 2
    if split > 0:
        first_avg = mean(amounts[:split])
        second_avg = mean(amounts[split:])

        if second_avg > first_avg * TREND_UPPER:
            trend = ForecastTrend.INCREASING
            trend_percentage = safe_divide(second_avg - first_avg, abs(first_avg)) * 100
        elif second_avg < first_avg * TREND_LOWER:
            trend = ForecastTrend.DECREASING
            trend_percentage = safe_divide(first_avg - second_avg, abs(first_avg)) * 100

    return AggregateForecast(
        total_predicted=round(total, 2),
        average_monthly=round(average, 2),
        trend=trend,
        trend_percentage=round(trend_percentage, 2)
    )
