"""
Alerts and recommendations derived from forecast and simulation output.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence
import logging

from .data.models import BudgetLimit
from .forecasting.forecaster import Prediction
from .forecasting.summarizer import AggregateForecast, ForecastTrend
from .patterns.risk_classification import RiskLevel, RiskClassifier, create_runway_risk_classifier
from .simulation.engine import SimulationResult

logger = logging.getLogger(__name__)


BUDGET_TOLERANCE = 1.1
TREND_ALERT_PERCENTAGE = 20.0
EXHAUSTION_ALERT_PROBABILITY = 25.0
HIGH_VARIANCE_RATIO = 0.5


@dataclass(frozen=True)
class ForecastAlert:
    alert_type: str
    severity: str
    message: str
    acknowledged: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "alert_type": self.alert_type,
            "severity": self.severity,
            "message": self.message,
            "acknowledged": self.acknowledged
        }


@dataclass(frozen=True)
class Recommendation:
    type: str
    description: str
    priority: str

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "description": self.description, "priority": self.priority}


def generate_alerts(
    predictions: Sequence[Prediction],
    aggregate: AggregateForecast,
    budgets: Sequence[BudgetLimit] = (),
    category: Optional[str] = None
) -> List[ForecastAlert]:
    """
    Budget and trend alerts for a deterministic forecast.

    Only budgets for ``category`` are checked when one is given; a budget
    is exceeded once total predicted spending passes it by more than 10%.
    """
    alerts: List[ForecastAlert] = []
    total_predicted = sum(p.predicted_amount for p in predictions)

    for budget in budgets:
        if category is not None and budget.category != category:
            continue
        if total_predicted > budget.amount * BUDGET_TOLERANCE:
            alerts.append(ForecastAlert(
                alert_type="budget_exceed",
                severity="high",
                message=(
                    "Forecast indicates spending will exceed budget by "
                    f"${total_predicted - budget.amount:.2f}"
                )
            ))

    if aggregate.trend is ForecastTrend.INCREASING and aggregate.trend_percentage > TREND_ALERT_PERCENTAGE:
        alerts.append(ForecastAlert(
            alert_type="trend_change",
            severity="medium",
            message=f"Spending trend is increasing by {aggregate.trend_percentage:.1f}%"
        ))

    if alerts:
        logger.info(f"Generated {len(alerts)} forecast alerts")
    return alerts


def generate_simulation_alerts(
    result: SimulationResult,
    classifier: Optional[RiskClassifier] = None
) -> List[ForecastAlert]:
    """
    Runway and exhaustion alerts for a Monte Carlo result.

    The median runway is classified with the runway risk bands; only
    runways under 30 days raise an alert.
    """
    classifier = classifier or create_runway_risk_classifier()
    alerts: List[ForecastAlert] = []

    median_runway = result.runway_percentiles.p50
    if median_runway < result.horizon_days:
        assessment = classifier.classify(median_runway, subject="runway_p50")
        if assessment.level in (RiskLevel.CRITICAL, RiskLevel.HIGH, RiskLevel.MEDIUM):
            alert_type = (
                "runway_critical" if assessment.level is RiskLevel.CRITICAL
                else "runway_warning"
            )
            alerts.append(ForecastAlert(
                alert_type=alert_type,
                severity=assessment.level.severity,
                message=(
                    f"Median projection runs out of funds in {median_runway:.0f} days. "
                    f"{assessment.action}."
                )
            ))

    if result.exhaustion_probability > EXHAUSTION_ALERT_PROBABILITY:
        alerts.append(ForecastAlert(
            alert_type="exhaustion_risk",
            severity="high",
            message=(
                f"{result.exhaustion_probability:.1f}% of simulated paths run out of funds "
                f"within {result.horizon_days} days"
            )
        ))

    return alerts


def generate_recommendations(
    predictions: Sequence[Prediction],
    aggregate: AggregateForecast
) -> List[Recommendation]:
    recommendations: List[Recommendation] = []

    if aggregate.trend is ForecastTrend.INCREASING:
        recommendations.append(Recommendation(
            type="spending_reduction",
            description=(
                "Consider reviewing subscriptions and discretionary spending "
                "to control increasing trend"
            ),
            priority="high"
        ))
    elif aggregate.trend is ForecastTrend.DECREASING:
        recommendations.append(Recommendation(
            type="budget_adjustment",
            description="Consider adjusting budget downward to reflect decreasing spending trend",
            priority="medium"
        ))

    if any(p.band_width > p.predicted_amount * HIGH_VARIANCE_RATIO for p in predictions):
        recommendations.append(Recommendation(
            type="category_review",
            description="High variance detected - review spending patterns for better predictability",
            priority="medium"
        ))

    return recommendations
