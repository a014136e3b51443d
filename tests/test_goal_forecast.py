from datetime import date

import pytest

from cashflow_forecasting.data import GoalRecord
from cashflow_forecasting.goals import (
    GoalForecaster,
    GoalForecastStatus,
    SavingsTrend,
    TrendDirection,
    VelocityMetrics,
    analyze_goals,
    generate_goal_forecast,
    success_probability
)

NOW = date(2025, 6, 30)


def velocity(rate=250.0, confidence=0.6, direction=TrendDirection.STABLE, strength=0.0):
    return VelocityMetrics(
        has_enough_data=True,
        monthly_savings_rate=rate,
        confidence=confidence,
        trend=SavingsTrend(direction=direction, strength=strength)
    )


def goal(target=2000, current=1000, target_date=date(2026, 6, 30), goal_id="g1", status="active"):
    return GoalRecord(id=goal_id, target_amount=target, current_amount=current,
                      target_date=target_date, title=goal_id, status=status)


@pytest.mark.parametrize("metrics", [
    velocity(),
    velocity(rate=-500),
    VelocityMetrics(has_enough_data=False),
])
def test_completed_goal_is_certain_regardless_of_velocity(metrics):
    forecast = generate_goal_forecast(goal(current=2500), metrics, NOW)

    assert forecast.is_completed
    assert forecast.probability_of_success == 1.0
    assert forecast.status is GoalForecastStatus.COMPLETED
    assert forecast.message == "Goal already achieved!"
    assert forecast.risk_level == "Minimal"


@pytest.mark.parametrize("rate", [0.0, -120.0])
def test_non_positive_velocity_has_no_completion_date(rate):
    forecast = generate_goal_forecast(goal(), velocity(rate=rate), NOW)

    assert forecast.estimated_completion_date is None
    assert not forecast.on_track
    assert forecast.status is GoalForecastStatus.NO_VIABLE_FORECAST
    assert forecast.probability_of_success == 0.0
    assert forecast.message.startswith("Current spending exceeds income")
    assert forecast.risk_level == "Critical"


def test_missing_velocity_data_is_reported_as_insufficient():
    forecast = generate_goal_forecast(goal(), VelocityMetrics(has_enough_data=False), NOW)

    assert forecast.status is GoalForecastStatus.INSUFFICIENT_DATA
    assert forecast.estimated_completion_date is None
    assert forecast.message == "Insufficient data to predict completion date."
    assert forecast.recommendation == "Continue tracking transactions to enable predictions."


def test_ahead_of_schedule_projection():
    forecast = generate_goal_forecast(goal(), velocity(rate=250, confidence=0.6), NOW)
    buffer_days = (date(2026, 6, 30) - date(2025, 10, 30)).days

    assert forecast.status is GoalForecastStatus.PROJECTED
    assert forecast.months_to_completion == 4
    assert forecast.days_to_completion == 120
    assert forecast.estimated_completion_date == date(2025, 10, 30)
    assert forecast.on_track
    assert forecast.ahead_by_days == buffer_days
    assert forecast.behind_by_days == 0
    assert forecast.probability_of_success == pytest.approx(0.8)
    assert forecast.message == (
        f"Ahead of schedule! Estimated completion by Oct 30, 2025 ({buffer_days} days before target)."
    )
    assert forecast.recommendation == "On track! Continue your current savings strategy."


def test_fractional_months_round_up():
    forecast = generate_goal_forecast(goal(target=2125), velocity(rate=250), NOW)

    # 4.5 months
    assert forecast.months_to_completion == 5
    assert forecast.days_to_completion == 135
    assert forecast.estimated_completion_date == date(2025, 11, 30)


def test_behind_schedule_with_declining_savings():
    metrics = velocity(rate=100, confidence=0.5, direction=TrendDirection.DECLINING, strength=0.5)

    forecast = generate_goal_forecast(goal(target_date=date(2025, 12, 31)), metrics, NOW)

    assert forecast.estimated_completion_date == date(2026, 4, 30)
    assert not forecast.on_track
    assert forecast.behind_by_days == 120
    assert forecast.ahead_by_days == 0
    # 0.5 - 0.3 (far behind) - 0.5 * 0.2 (declining)
    assert forecast.probability_of_success == pytest.approx(0.1)
    assert forecast.recommendation.startswith("Urgent:")
    assert forecast.message == (
        "Behind schedule. Estimated completion by Apr 30, 2026 (120 days after target)."
    )
    assert forecast.risk_level == "Critical"


def test_on_track_close_to_target_with_improving_trend():
    metrics = velocity(rate=500, confidence=0.5, direction=TrendDirection.IMPROVING, strength=1.0)

    forecast = generate_goal_forecast(goal(target_date=date(2025, 9, 10)), metrics, NOW)

    assert forecast.estimated_completion_date == date(2025, 8, 30)
    assert forecast.on_track
    # 0.5 + 0.1 (small buffer) + 0.15 (improving)
    assert forecast.probability_of_success == pytest.approx(0.75)
    assert forecast.message == "On track to complete by Aug 30, 2025."
    assert forecast.recommendation.startswith("Great progress!")
    assert forecast.risk_level == "Low"


def test_long_term_goal_recommendation():
    forecast = generate_goal_forecast(
        goal(target=100_000, current=0, target_date=date(2040, 1, 1)), velocity(rate=1000), NOW
    )

    assert forecast.months_to_completion == 100
    assert forecast.recommendation == "Long-term goal on track. Maintain consistent savings habits."


@pytest.mark.parametrize("confidence,buffer,trend,expected", [
    (0.95, 60, SavingsTrend(TrendDirection.IMPROVING, 1.0), 1.0),
    (0.1, -90, SavingsTrend(TrendDirection.DECLINING, 1.0), 0.0),
    (0.6, -10, SavingsTrend(), 0.5),
    (0.6, 0, SavingsTrend(), 0.5),
    (0.6, 30, SavingsTrend(), 0.7),
    (0.6, 31, SavingsTrend(), 0.8),
])
def test_success_probability_adjustments(confidence, buffer, trend, expected):
    assert success_probability(confidence, buffer, trend) == pytest.approx(expected)


def test_batch_sorts_most_at_risk_first_and_skips_inactive():
    goals = [
        goal(goal_id="ahead"),
        goal(goal_id="done", current=5000),
        goal(goal_id="late", target=20_000, target_date=date(2025, 12, 31)),
        goal(goal_id="paused", status="paused"),
    ]

    analytics = analyze_goals(goals, velocity(), NOW)
    summary = analytics.summary

    assert [g.goal_id for g in analytics.goals] == ["late", "ahead", "done"]
    assert summary.total_goals == 3
    assert summary.on_track_goals == 2
    assert summary.at_risk_goals == 1
    assert summary.completed_goals == 1
    assert summary.overall_status == "on-track"
    assert summary.has_velocity_data
    assert summary.risk_distribution["total"] == 3


def test_batch_is_at_risk_when_most_goals_are_behind():
    goals = [
        goal(goal_id="a", target=20_000, target_date=date(2025, 12, 31)),
        goal(goal_id="b", target=30_000, target_date=date(2025, 12, 31)),
        goal(goal_id="c"),
    ]

    summary = GoalForecaster().analyze_goals(goals, velocity(), NOW).summary

    assert summary.overall_status == "at-risk"


def test_batch_without_goals():
    analytics = analyze_goals([], VelocityMetrics(has_enough_data=False), NOW)

    assert analytics.goals == []
    assert analytics.summary.overall_status == "no-goals"
    assert analytics.summary.average_success_probability == 0
    assert analytics.to_dict()["summary"]["total_goals"] == 0


def test_forecast_to_dict_serializes_dates():
    payload = generate_goal_forecast(goal(), velocity(), NOW).to_dict()

    assert payload["estimated_completion_date"] == "2025-10-30"
    assert payload["target_date"] == "2026-06-30"
    assert payload["status"] == "projected"
    assert payload["trend"]["direction"] == "stable"
