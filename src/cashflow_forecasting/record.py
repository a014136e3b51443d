"""
Forecast record payload and dashboard summaries.

Records are produced here and persisted, if at all, by the caller.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from .alerts import ForecastAlert, Recommendation
from .data.aggregator import period_start
from .data.models import PeriodType, TimeSeriesPoint
from .forecasting.forecaster import Prediction
from .forecasting.parameters import ForecastParameters
from .forecasting.seasonal import SeasonalFactor
from .forecasting.statistics import mean, safe_divide
from .forecasting.summarizer import AggregateForecast

SEVERITIES = ("critical", "high", "medium", "low")


@dataclass
class ForecastRecord:
    """Everything one forecast run produced"""
    parameters: ForecastParameters
    predictions: List[Prediction]
    aggregate_forecast: AggregateForecast
    created_at: datetime
    seasonal_factors: List[SeasonalFactor] = field(default_factory=list)
    seasonality_significant: bool = False
    alerts: List[ForecastAlert] = field(default_factory=list)
    recommendations: List[Recommendation] = field(default_factory=list)
    accuracy_score: Optional[float] = None
    user_scope: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_scope": self.user_scope,
            "parameters": self.parameters.to_dict(),
            "predictions": [p.to_dict() for p in self.predictions],
            "aggregate_forecast": self.aggregate_forecast.to_dict(),
            "seasonal_factors": [f.to_dict() for f in self.seasonal_factors],
            "seasonality_significant": self.seasonality_significant,
            "alerts": [a.to_dict() for a in self.alerts],
            "recommendations": [r.to_dict() for r in self.recommendations],
            "accuracy_score": self.accuracy_score,
            "created_at": self.created_at.isoformat()
        }


def calculate_accuracy_score(
    predictions: Sequence[Prediction],
    actuals: Sequence[TimeSeriesPoint],
    period_type: PeriodType = PeriodType.MONTHLY
) -> Optional[float]:
    """
    Score past predictions against what actually happened.

    Each prediction is matched to the actual whose period contains the
    prediction date. The score is 100 minus the mean absolute percentage
    error, clamped to [0, 100].

    Returns:
        Score rounded to 2 decimals, or None when no prediction has a
        matching non-zero actual
    """
    actual_by_period = {period_start(a.period_start, period_type): a.amount for a in actuals}

    errors = []
    for prediction in predictions:
        actual = actual_by_period.get(period_start(prediction.date, period_type))
        if actual is None or actual == 0:
            continue
        errors.append(safe_divide(abs(actual - prediction.predicted_amount), abs(actual)))

    if not errors:
        return None
    return round(max(0.0, min(100.0, 100 - mean(errors) * 100)), 2)


def summarize_forecasts(records: Sequence[ForecastRecord], limit: int = 10) -> Dict[str, Any]:
    """Dashboard summary over the most recent ``limit`` records."""
    recent = sorted(records, key=lambda r: r.created_at, reverse=True)[:limit]

    alerts = {severity: 0 for severity in SEVERITIES}
    alerts["total_unacknowledged"] = 0
    categories: Dict[str, Dict[str, Any]] = {}
    accuracy_scores = []
    accuracy_by_category: Dict[str, float] = {}
    total_predicted = 0.0

    for record in recent:
        total_predicted += record.aggregate_forecast.total_predicted
        category = record.parameters.category

        if category:
            entry = categories.get(category)
            if entry:
                entry["predicted"] += record.aggregate_forecast.total_predicted
            else:
                categories[category] = {
                    "category": category,
                    "predicted": record.aggregate_forecast.total_predicted,
                    "trend": record.aggregate_forecast.trend.value,
                    "accuracy": record.accuracy_score
                }

        for alert in record.alerts:
            if not alert.acknowledged:
                alerts[alert.severity] = alerts.get(alert.severity, 0) + 1
                alerts["total_unacknowledged"] += 1

        if record.accuracy_score is not None:
            accuracy_scores.append(record.accuracy_score)
            if category and category not in accuracy_by_category:
                accuracy_by_category[category] = record.accuracy_score

    return {
        "total_forecasts": len(recent),
        "total_predicted_spending": round(total_predicted, 2),
        "categories": list(categories.values()),
        "alerts": alerts,
        "accuracy": {
            "overall": round(mean(accuracy_scores), 2) if accuracy_scores else None,
            "by_category": accuracy_by_category
        }
    }
