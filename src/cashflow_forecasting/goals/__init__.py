"""
Goals Module

Savings velocity and goal completion forecasts.
"""

from .velocity import (
    MonthlyCashFlow,
    SavingsTrend,
    SavingsVelocityCalculator,
    TrendDirection,
    VelocityMetrics,
    calculate_savings_velocity,
    savings_confidence,
    savings_trend
)
from .forecast import (
    GoalForecast,
    GoalForecaster,
    GoalForecastStatus,
    GoalsAnalytics,
    GoalsSummary,
    analyze_goals,
    generate_goal_forecast,
    success_probability
)

__all__ = [
    'MonthlyCashFlow',
    'SavingsTrend',
    'SavingsVelocityCalculator',
    'TrendDirection',
    'VelocityMetrics',
    'calculate_savings_velocity',
    'savings_confidence',
    'savings_trend',
    'GoalForecast',
    'GoalForecaster',
    'GoalForecastStatus',
    'GoalsAnalytics',
    'GoalsSummary',
    'analyze_goals',
    'generate_goal_forecast',
    'success_probability',
]
