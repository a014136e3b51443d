"""
Cash Flow Forecasting Core

Deterministic spending forecasts, Monte Carlo runway simulation, stress
tests and savings-goal projections over in-memory transaction history.
"""

from .exceptions import (
    ForecastingError,
    InsufficientHistoryError,
    InvalidParameterError,
    SimulationCancelledError
)
from .data import (
    PeriodType,
    TransactionType,
    TimeSeriesPoint,
    Transaction,
    GoalRecord,
    BudgetLimit,
    aggregate_transactions,
    daily_totals
)
from .forecasting import (
    ForecastAlgorithm,
    ForecastParameters,
    DeterministicForecaster,
    Prediction,
    SeasonalAnalyzer,
    summarize_predictions
)
from .simulation import (
    CashFlowModel,
    ScenarioAdjustments,
    MonteCarloSimulator,
    SimulationRequest,
    SimulationResult,
    StressTestEngine,
    StressScenario,
    QuickSimulation
)
from .goals import (
    GoalForecaster,
    GoalForecastStatus,
    SavingsVelocityCalculator,
    analyze_goals,
    calculate_savings_velocity,
    generate_goal_forecast
)
from .alerts import (
    ForecastAlert,
    Recommendation,
    generate_alerts,
    generate_recommendations,
    generate_simulation_alerts
)
from .patterns import RiskClassifier, RiskLevel, create_goal_risk_classifier, create_runway_risk_classifier
from .record import ForecastRecord, calculate_accuracy_score, summarize_forecasts
from .service import ForecastingService

__version__ = "0.1.0"

__all__ = [
    'ForecastingError',
    'InsufficientHistoryError',
    'InvalidParameterError',
    'SimulationCancelledError',
    'PeriodType',
    'TransactionType',
    'TimeSeriesPoint',
    'Transaction',
    'GoalRecord',
    'BudgetLimit',
    'aggregate_transactions',
    'daily_totals',
    'ForecastAlgorithm',
    'ForecastParameters',
    'DeterministicForecaster',
    'Prediction',
    'SeasonalAnalyzer',
    'summarize_predictions',
    'CashFlowModel',
    'ScenarioAdjustments',
    'MonteCarloSimulator',
    'SimulationRequest',
    'SimulationResult',
    'StressTestEngine',
    'StressScenario',
    'QuickSimulation',
    'GoalForecaster',
    'GoalForecastStatus',
    'SavingsVelocityCalculator',
    'analyze_goals',
    'calculate_savings_velocity',
    'generate_goal_forecast',
    'ForecastAlert',
    'Recommendation',
    'generate_alerts',
    'generate_recommendations',
    'generate_simulation_alerts',
    'ForecastRecord',
    'calculate_accuracy_score',
    'summarize_forecasts',
    'ForecastingService',
    'RiskClassifier',
    'RiskLevel',
    'create_goal_risk_classifier',
    'create_runway_risk_classifier',
]
