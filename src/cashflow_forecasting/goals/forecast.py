"""
Goal Forecast Engine

Projects when each savings goal will be reached at the current savings
velocity and how likely it is to be reached by its target date.
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence
import logging
import math

from dateutil.relativedelta import relativedelta

from ..data.models import GoalRecord
from ..exceptions import ForecastingError
from ..patterns.risk_classification import RiskClassifier, create_goal_risk_classifier
from ..forecasting.statistics import mean
from .velocity import SavingsTrend, TrendDirection, VelocityMetrics

logger = logging.getLogger(__name__)


class GoalForecastStatus(Enum):
    COMPLETED = "completed"
    PROJECTED = "projected"
    NO_VIABLE_FORECAST = "no_viable_forecast"
    INSUFFICIENT_DATA = "insufficient_data"


def _format_date(value: date) -> str:
    return f"{value:%b} {value.day}, {value.year}"


@dataclass
class GoalForecast:
    """Completion projection for one goal"""
    goal_id: str
    title: str
    status: GoalForecastStatus
    is_completed: bool
    on_track: bool
    probability_of_success: float
    message: str
    estimated_completion_date: Optional[date] = None
    months_to_completion: Optional[int] = None
    days_to_completion: Optional[int] = None
    ahead_by_days: int = 0
    behind_by_days: int = 0
    confidence: float = 0.0
    monthly_savings_rate: float = 0.0
    trend: SavingsTrend = field(default_factory=SavingsTrend)
    recommendation: Optional[str] = None
    risk_level: Optional[str] = None
    target_amount: float = 0.0
    current_amount: float = 0.0
    progress: float = 0.0
    target_date: Optional[date] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "goal_id": self.goal_id,
            "title": self.title,
            "status": self.status.value,
            "is_completed": self.is_completed,
            "on_track": self.on_track,
            "probability_of_success": self.probability_of_success,
            "message": self.message,
            "estimated_completion_date": (
                self.estimated_completion_date.isoformat()
                if self.estimated_completion_date else None
            ),
            "months_to_completion": self.months_to_completion,
            "days_to_completion": self.days_to_completion,
            "ahead_by_days": self.ahead_by_days,
            "behind_by_days": self.behind_by_days,
            "confidence": self.confidence,
            "monthly_savings_rate": self.monthly_savings_rate,
            "trend": self.trend.to_dict(),
            "recommendation": self.recommendation,
            "risk_level": self.risk_level,
            "target_amount": self.target_amount,
            "current_amount": self.current_amount,
            "progress": self.progress,
            "target_date": self.target_date.isoformat() if self.target_date else None
        }


@dataclass
class GoalsSummary:
    total_goals: int
    on_track_goals: int
    at_risk_goals: int
    completed_goals: int
    average_success_probability: float
    overall_status: str
    has_velocity_data: bool
    monthly_savings_rate: float
    risk_distribution: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_goals": self.total_goals,
            "on_track_goals": self.on_track_goals,
            "at_risk_goals": self.at_risk_goals,
            "completed_goals": self.completed_goals,
            "average_success_probability": self.average_success_probability,
            "overall_status": self.overall_status,
            "has_velocity_data": self.has_velocity_data,
            "monthly_savings_rate": self.monthly_savings_rate,
            "risk_distribution": self.risk_distribution
        }


@dataclass
class GoalsAnalytics:
    velocity: VelocityMetrics
    goals: List[GoalForecast]
    summary: GoalsSummary

    def to_dict(self) -> Dict[str, Any]:
        return {
            "velocity": self.velocity.to_dict(),
            "goals": [g.to_dict() for g in self.goals],
            "summary": self.summary.to_dict()
        }


def success_probability(confidence: float, buffer_days: float, trend: SavingsTrend) -> float:
    """
    Probability of reaching the goal on time, in [0, 1].

    Starts from the velocity confidence, then adjusts for the slack
    between projected and target dates and for the savings trend.
    """
    probability = confidence

    if buffer_days > 30:
        probability += 0.2
    elif buffer_days > 0:
        probability += 0.1
    elif buffer_days > -30:
        probability -= 0.1
    else:
        probability -= 0.3

    if trend.direction is TrendDirection.IMPROVING:
        probability += trend.strength * 0.15
    elif trend.direction is TrendDirection.DECLINING:
        probability -= trend.strength * 0.2

    return max(0.0, min(1.0, round(probability, 2)))


def goal_recommendation(on_track: bool, trend: SavingsTrend, months_to_completion: float) -> str:
    if not on_track:
        if trend.direction is TrendDirection.DECLINING:
            return ("Urgent: Your savings rate is declining. "
                    "Review expenses and increase savings immediately.")
        return ("Increase monthly savings to meet your target date. "
                "Consider reducing non-essential expenses.")

    if trend.direction is TrendDirection.IMPROVING:
        return "Great progress! Your savings rate is improving. Keep up the momentum."

    if months_to_completion > 12:
        return "Long-term goal on track. Maintain consistent savings habits."

    return "On track! Continue your current savings strategy."


def goal_message(on_track: bool, estimated: date, target: date) -> str:
    estimated_str = _format_date(estimated)
    if on_track:
        days_early = (target - estimated).days
        if days_early > 30:
            return (f"Ahead of schedule! Estimated completion by {estimated_str} "
                    f"({days_early} days before target).")
        return f"On track to complete by {estimated_str}."

    days_late = (estimated - target).days
    return (f"Behind schedule. Estimated completion by {estimated_str} "
            f"({days_late} days after target).")


class GoalForecaster:
    """
    Generates per-goal forecasts and the batch goal analytics.

    Example:
    ```python
    forecaster = GoalForecaster()
    analytics = forecaster.analyze_goals(goals, velocity, now=date(2025, 6, 30))
    for goal in analytics.goals:
        print(goal.title, goal.probability_of_success, goal.risk_level)
    ```
    """

    def __init__(self, risk_classifier: Optional[RiskClassifier] = None):
        self.risk_classifier = risk_classifier or create_goal_risk_classifier()

    def generate_goal_forecast(
        self,
        goal: GoalRecord,
        velocity: VelocityMetrics,
        now: date
    ) -> GoalForecast:
        """
        Project completion of a single goal.

        Args:
            goal: Goal to project
            velocity: Savings velocity of the goal's owner
            now: Reference date for the projection

        Returns:
            GoalForecast. Completed goals always report probability 1.0;
            a non-positive savings rate yields no completion date.
        """
        remaining = goal.remaining_amount
        base = dict(
            goal_id=goal.id,
            title=goal.title,
            target_amount=goal.target_amount,
            current_amount=goal.current_amount,
            progress=goal.progress,
            target_date=goal.target_date
        )

        if remaining <= 0:
            forecast = GoalForecast(
                status=GoalForecastStatus.COMPLETED,
                is_completed=True,
                on_track=True,
                probability_of_success=1.0,
                confidence=1.0,
                message="Goal already achieved!",
                estimated_completion_date=now,
                months_to_completion=0,
                days_to_completion=0,
                **base
            )
            return self._with_risk(forecast)

        if not velocity.has_enough_data or velocity.monthly_savings_rate <= 0:
            if velocity.has_enough_data:
                status = GoalForecastStatus.NO_VIABLE_FORECAST
                message = "Current spending exceeds income. Unable to forecast completion."
            else:
                status = GoalForecastStatus.INSUFFICIENT_DATA
                message = "Insufficient data to predict completion date."
            forecast = GoalForecast(
                status=status,
                is_completed=False,
                on_track=False,
                probability_of_success=0.0,
                confidence=velocity.confidence,
                message=message,
                monthly_savings_rate=velocity.monthly_savings_rate,
                trend=velocity.trend,
                recommendation="Continue tracking transactions to enable predictions.",
                **base
            )
            return self._with_risk(forecast)

        months = remaining / velocity.monthly_savings_rate
        whole_months = math.ceil(months)
        estimated = now + relativedelta(months=whole_months)
        on_track = estimated <= goal.target_date
        buffer_days = (goal.target_date - estimated).days

        forecast = GoalForecast(
            status=GoalForecastStatus.PROJECTED,
            is_completed=False,
            on_track=on_track,
            probability_of_success=success_probability(
                velocity.confidence, buffer_days, velocity.trend
            ),
            confidence=velocity.confidence,
            message=goal_message(on_track, estimated, goal.target_date),
            estimated_completion_date=estimated,
            months_to_completion=whole_months,
            days_to_completion=math.ceil(months * 30),
            ahead_by_days=buffer_days if on_track else 0,
            behind_by_days=abs(buffer_days) if not on_track else 0,
            monthly_savings_rate=velocity.monthly_savings_rate,
            trend=velocity.trend,
            recommendation=goal_recommendation(on_track, velocity.trend, months),
            **base
        )
        return self._with_risk(forecast)

    def _with_risk(self, forecast: GoalForecast) -> GoalForecast:
        assessment = self.risk_classifier.classify(
            forecast.probability_of_success * 100, subject=forecast.goal_id
        )
        forecast.risk_level = assessment.level.value
        return forecast

    def analyze_goals(
        self,
        goals: Sequence[GoalRecord],
        velocity: VelocityMetrics,
        now: date
    ) -> GoalsAnalytics:
        """
        Forecast every active goal, most at risk first.

        Goals whose forecast fails are logged and left out of the batch.
        """
        forecasts: List[GoalForecast] = []
        for goal in goals:
            if goal.status.lower() != "active":
                continue
            try:
                forecasts.append(self.generate_goal_forecast(goal, velocity, now))
            except ForecastingError as e:
                logger.error(f"Forecast for goal {goal.id} failed: {e}")

        forecasts.sort(key=lambda f: f.probability_of_success)
        logger.info(f"Analyzed {len(forecasts)} active goals")

        return GoalsAnalytics(
            velocity=velocity,
            goals=forecasts,
            summary=self.summarize(forecasts, velocity)
        )

    def summarize(self, forecasts: Sequence[GoalForecast], velocity: VelocityMetrics) -> GoalsSummary:
        on_track = sum(1 for f in forecasts if f.on_track)
        at_risk = sum(1 for f in forecasts if not f.on_track and not f.is_completed)
        completed = sum(1 for f in forecasts if f.is_completed)

        if at_risk > on_track:
            overall = "at-risk"
        elif on_track > 0:
            overall = "on-track"
        else:
            overall = "no-goals"

        assessments = [
            self.risk_classifier.classify(f.probability_of_success * 100, subject=f.goal_id)
            for f in forecasts
        ]

        return GoalsSummary(
            total_goals=len(forecasts),
            on_track_goals=on_track,
            at_risk_goals=at_risk,
            completed_goals=completed,
            average_success_probability=round(
                mean([f.probability_of_success for f in forecasts]), 2
            ),
            overall_status=overall,
            has_velocity_data=velocity.has_enough_data,
            monthly_savings_rate=velocity.monthly_savings_rate,
            risk_distribution=self.risk_classifier.distribution(assessments)
        )


_default_forecaster = GoalForecaster()


def generate_goal_forecast(goal: GoalRecord, velocity: VelocityMetrics, now: date) -> GoalForecast:
    return _default_forecaster.generate_goal_forecast(goal, velocity, now)


def analyze_goals(goals: Sequence[GoalRecord], velocity: VelocityMetrics, now: date) -> GoalsAnalytics:
    return _default_forecaster.analyze_goals(goals, velocity, now)
