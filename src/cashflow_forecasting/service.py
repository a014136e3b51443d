"""
Forecasting Service

Entry points that pull history from the external stores and run the
forecasting, simulation and goal engines over it. Nothing here persists
results; callers own storage of the returned payloads.
"""

from datetime import date, datetime, time, timedelta
from typing import Any, Mapping, Optional, Sequence, Union
import logging
import threading

from .alerts import generate_alerts, generate_recommendations
from .config import get_config, resolve_limits
from .data.aggregator import (
    aggregate_transactions,
    daily_totals,
    lookback_start,
    net_balance,
    period_start
)
from .data.models import BudgetLimit, PeriodType, TransactionType, to_date
from .data.stores import GoalStore, TransactionStore
from .exceptions import ForecastingError
from .forecasting.forecaster import DeterministicForecaster
from .forecasting.parameters import ForecastParameters
from .forecasting.seasonal import SeasonalAnalyzer
from .forecasting.summarizer import summarize_predictions
from .goals.forecast import GoalForecaster, GoalsAnalytics
from .goals.velocity import SavingsVelocityCalculator
from .record import ForecastRecord, calculate_accuracy_score
from .simulation.engine import MonteCarloSimulator, SimulationRequest, SimulationResult
from .simulation.model import CashFlowModel, ScenarioAdjustments
from .simulation.quick import QuickSimulation, QuickSimulationResult
from .simulation.stress import StressScenario, StressTestEngine, StressTestReport

logger = logging.getLogger(__name__)

SEASONAL_LOOKBACK_MONTHS = 12


def _as_datetime(now: Union[date, datetime]) -> datetime:
    if isinstance(now, datetime):
        return now
    return datetime.combine(now, time())


class ForecastingService:
    """
    Orchestrates the forecasting core for one deployment.

    Example:
    ```python
    service = ForecastingService(transaction_store, goal_store)
    record = service.generate_forecast(
        "user-1", {"algorithm": "linear_regression"}, now=date(2025, 6, 30)
    )
    print(record.aggregate_forecast.trend)
    ```
    """

    def __init__(
        self,
        transaction_store: TransactionStore,
        goal_store: Optional[GoalStore] = None,
        config=None,
        simulator: Optional[MonteCarloSimulator] = None
    ):
        self.transaction_store = transaction_store
        self.goal_store = goal_store
        self.config = config or get_config()
        self.limits = resolve_limits(self.config)

        self.forecaster = DeterministicForecaster(self.config)
        self.seasonal_analyzer = SeasonalAnalyzer()
        self.simulator = simulator or MonteCarloSimulator(self.config)
        self.stress_engine = StressTestEngine(self.simulator)
        self.quick = QuickSimulation(self.config)
        self.velocity_calculator = SavingsVelocityCalculator(self.config.VELOCITY_LOOKBACK_MONTHS)
        self.goal_forecaster = GoalForecaster()

    # ------------------------------------------------------------------
    # Deterministic forecasts
    # ------------------------------------------------------------------

    def parse_parameters(self, parameters: Union[ForecastParameters, Mapping[str, Any]]) -> ForecastParameters:
        if isinstance(parameters, ForecastParameters):
            return parameters
        return ForecastParameters.from_mapping(
            parameters,
            default_algorithm=self.config.DEFAULT_ALGORITHM,
            default_confidence_level=self.config.DEFAULT_CONFIDENCE_LEVEL
        )

    def generate_forecast(
        self,
        user_scope: str,
        parameters: Union[ForecastParameters, Mapping[str, Any]],
        now: Union[date, datetime],
        budgets: Sequence[BudgetLimit] = ()
    ) -> ForecastRecord:
        """
        Forecast spending for the periods after ``now``.

        Args:
            user_scope: Owner of the transactions
            parameters: ForecastParameters or a raw request payload
            now: Reference time
            budgets: Budget ceilings checked for alerts

        Returns:
            ForecastRecord ready for persistence by the caller

        Raises:
            InvalidParameterError: parameters failed validation
            InsufficientHistoryError: fewer than 3 historical periods
        """
        params = self.parse_parameters(parameters)
        reference = to_date(now)
        end = reference + timedelta(days=1)
        start = lookback_start(reference, params.period_type, params.historical_periods)
        seasonal_start = min(start, lookback_start(reference, PeriodType.MONTHLY, SEASONAL_LOOKBACK_MONTHS))

        transactions = self.transaction_store.query(user_scope, seasonal_start, end, params.category)
        window = aggregate_transactions(
            transactions, params.period_type, params.category,
            TransactionType.EXPENSE, start, end
        )
        logger.info(f"Forecast for {user_scope}: {len(window)} historical periods since {start.isoformat()}")

        result = self.forecaster.forecast(window, params, reference)
        aggregate = summarize_predictions(result.predictions)

        monthly = aggregate_transactions(
            transactions, PeriodType.MONTHLY, params.category,
            TransactionType.EXPENSE, seasonal_start, end
        )
        seasonal_factors = self.seasonal_analyzer.detect_seasonal_factors(monthly)

        return ForecastRecord(
            user_scope=user_scope,
            parameters=params,
            predictions=result.predictions,
            aggregate_forecast=aggregate,
            seasonal_factors=seasonal_factors,
            seasonality_significant=self.seasonal_analyzer.is_significant(seasonal_factors),
            alerts=generate_alerts(result.predictions, aggregate, budgets, params.category),
            recommendations=generate_recommendations(result.predictions, aggregate),
            created_at=_as_datetime(now)
        )

    def evaluate_accuracy(
        self,
        user_scope: str,
        record: ForecastRecord,
        now: Union[date, datetime]
    ) -> Optional[float]:
        """Score a past record against the spending recorded since, and store it on the record."""
        if not record.predictions:
            return None
        period_type = record.parameters.period_type
        start = period_start(record.predictions[0].date, period_type)
        end = to_date(now) + timedelta(days=1)
        if start >= end:
            return None

        transactions = self.transaction_store.query(user_scope, start, end, record.parameters.category)
        actuals = aggregate_transactions(
            transactions, period_type, record.parameters.category,
            TransactionType.EXPENSE, start, end
        )
        record.accuracy_score = calculate_accuracy_score(record.predictions, actuals, period_type)
        return record.accuracy_score

    # ------------------------------------------------------------------
    # Simulation
    # ------------------------------------------------------------------

    def build_cash_flow_model(
        self,
        user_scope: str,
        now: Union[date, datetime],
        current_balance: Optional[float] = None,
        monthly_recurring_income: float = 0.0,
        monthly_recurring_expense: float = 0.0
    ) -> CashFlowModel:
        """
        Fit the daily cash-flow model to the recent lookback window.

        When no balance is supplied, the all-time net of the user's
        transactions stands in for it.
        """
        window_days = max(1, int(self.config.SIMULATION_LOOKBACK_DAYS))
        end = to_date(now) + timedelta(days=1)
        start = end - timedelta(days=window_days)
        transactions = self.transaction_store.query(user_scope, start, end)

        if current_balance is None:
            history = self.transaction_store.query(user_scope, date.min, end)
            current_balance = net_balance(history)
            logger.warning(
                f"No balance supplied for {user_scope}; using all-time net {current_balance:.2f}"
            )

        return CashFlowModel.from_history(
            income_days=daily_totals(transactions, TransactionType.INCOME, start, end),
            expense_days=daily_totals(transactions, TransactionType.EXPENSE, start, end),
            current_balance=current_balance,
            window_days=window_days,
            monthly_recurring_income=monthly_recurring_income,
            monthly_recurring_expense=monthly_recurring_expense
        )

    def run_simulation(
        self,
        user_scope: str,
        now: Union[date, datetime],
        request: Optional[Union[SimulationRequest, Mapping[str, Any]]] = None,
        current_balance: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None
    ) -> SimulationResult:
        if isinstance(request, Mapping):
            adjustments = request.get("scenario_adjustments")
            request = SimulationRequest(
                simulations=request.get("simulations"),
                horizon_days=request.get("horizon_days"),
                scenario_adjustments=(
                    ScenarioAdjustments.from_mapping(adjustments, reference_date=to_date(now))
                    if isinstance(adjustments, Mapping) else adjustments
                ),
                seed=request.get("seed")
            )
        model = self.build_cash_flow_model(user_scope, now, current_balance)
        return self.simulator.run(model, request, cancel_event=cancel_event)

    def run_stress_test(
        self,
        user_scope: str,
        now: Union[date, datetime],
        scenarios: Optional[Sequence[Union[StressScenario, Mapping[str, Any]]]] = None,
        horizon_days: int = 90,
        seed: Optional[int] = None,
        current_balance: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None
    ) -> StressTestReport:
        parsed = None
        if scenarios is not None:
            parsed = [
                s if isinstance(s, StressScenario) else StressScenario.from_mapping(s)
                for s in scenarios
            ]
        model = self.build_cash_flow_model(user_scope, now, current_balance)
        return self.stress_engine.run(
            model, parsed, horizon_days=horizon_days, seed=seed, cancel_event=cancel_event
        )

    def quick_simulation(
        self,
        user_scope: str,
        now: Union[date, datetime],
        horizon_days: Optional[int] = None,
        adjustments: Optional[ScenarioAdjustments] = None,
        current_balance: Optional[float] = None
    ) -> QuickSimulationResult:
        model = self.build_cash_flow_model(user_scope, now, current_balance)
        return self.quick.estimate(model, horizon_days=horizon_days, adjustments=adjustments)

    # ------------------------------------------------------------------
    # Goals
    # ------------------------------------------------------------------

    def goals_analytics(self, user_scope: str, now: Union[date, datetime]) -> GoalsAnalytics:
        """Velocity plus a forecast for every active goal of ``user_scope``."""
        if self.goal_store is None:
            raise ForecastingError("Goal analytics requires a goal store")

        reference = to_date(now)
        start = self.velocity_calculator.window_start(reference)
        transactions = self.transaction_store.query(user_scope, start, reference + timedelta(days=1))
        velocity = self.velocity_calculator.calculate(transactions, reference)

        goals = self.goal_store.find_active_goals(user_scope)
        return self.goal_forecaster.analyze_goals(goals, velocity, reference)
