from datetime import date, datetime

import pytest

from cashflow_forecasting import config as settings
from cashflow_forecasting.data import BudgetLimit
from cashflow_forecasting.exceptions import (
    ForecastingError,
    InsufficientHistoryError,
    InvalidParameterError
)
from cashflow_forecasting.forecasting import ForecastParameters
from cashflow_forecasting.forecasting.summarizer import ForecastTrend
from cashflow_forecasting.goals import GoalForecastStatus
from cashflow_forecasting.service import ForecastingService
from cashflow_forecasting.simulation import MonteCarloSimulator

from conftest import NOW, InMemoryTransactionStore

FOOD_HISTORY = [100, 110, 105, 120, 115, 130]


@pytest.fixture
def store():
    store = InMemoryTransactionStore()
    for month, amount in enumerate(FOOD_HISTORY, start=1):
        store.add(date(2025, month, 15), amount, category="food")
        store.add(date(2025, month, 1), 3000, txn_type="income", category="salary")
        store.add(date(2025, month, 3), 1200, category="rent")
    return store


@pytest.fixture
def service(store, goal_store):
    simulator = MonteCarloSimulator(settings.TestingConfig, workers=2, batch_size=50)
    return ForecastingService(store, goal_store, config=settings.TestingConfig, simulator=simulator)


def test_generate_forecast_for_category(service, store):
    record = service.generate_forecast(
        "user-1",
        {"algorithm": "linear_regression", "category": "food", "historical_periods": 6},
        now=NOW,
        budgets=[BudgetLimit(amount=300, category="food")]
    )

    amounts = [p.predicted_amount for p in record.predictions]
    assert len(amounts) == 3
    assert amounts[0] < amounts[1] < amounts[2]
    assert record.aggregate_forecast.trend is ForecastTrend.INCREASING
    assert record.aggregate_forecast.trend_percentage < 20
    assert len(record.seasonal_factors) == 12
    assert record.seasonality_significant
    assert [a.alert_type for a in record.alerts] == ["budget_exceed"]
    assert record.created_at == datetime(2025, 6, 30)
    assert record.accuracy_score is None
    assert all(q[3] == "food" for q in store.queries)


def test_generate_forecast_accepts_parameter_object(service):
    record = service.generate_forecast("user-1", ForecastParameters(historical_periods=6), now=NOW)

    # rent and food together
    assert record.predictions[0].predicted_amount == pytest.approx(1200 + (120 + 115 + 130) / 3, abs=0.01)


def test_generate_forecast_without_history_raises(service):
    with pytest.raises(InsufficientHistoryError):
        service.generate_forecast("user-1", {"category": "travel"}, now=NOW)


def test_generate_forecast_rejects_bad_parameters(service):
    with pytest.raises(InvalidParameterError):
        service.generate_forecast("user-1", {"confidence_level": 42}, now=NOW)


def test_accuracy_is_scored_once_actuals_arrive(service, store):
    record = service.generate_forecast(
        "user-1", {"algorithm": "moving_average", "category": "food", "historical_periods": 6}, now=NOW
    )
    for prediction in record.predictions[:2]:
        store.add(prediction.date.replace(day=10), prediction.predicted_amount, category="food")

    score = service.evaluate_accuracy("user-1", record, now=date(2025, 9, 1))

    assert score == 100.0
    assert record.accuracy_score == 100.0


def test_run_simulation_from_request_mapping(service):
    result = service.run_simulation(
        "user-1", NOW,
        {"simulations": 200, "horizon_days": 30, "seed": 1,
         "scenario_adjustments": {"one_time_impacts": [{"date": "2025-07-05", "amount": -500}]}},
        current_balance=5000
    )

    assert result.simulations == 200
    assert result.horizon_days == 30
    assert result.starting_balance == 5000


def test_model_uses_all_time_net_when_balance_missing(service):
    model = service.build_cash_flow_model("user-1", NOW)

    assert model.current_balance == pytest.approx(6 * 3000 - 6 * 1200 - sum(FOOD_HISTORY))
    # daily statistics still come from the 90-day window, which starts on 2 April
    assert model.daily_income_mean == pytest.approx(6000 / 90)
    assert model.daily_expense_mean == pytest.approx((3 * 1200 + 120 + 115 + 130) / 90)


def test_old_savings_keep_starting_balance_positive():
    store = InMemoryTransactionStore()
    store.add(date(2024, 1, 10), 50_000, txn_type="income")
    for offset in range(1, 80):
        store.add(date.fromordinal(NOW.toordinal() - offset), 20)
    service = ForecastingService(store, config=settings.TestingConfig)

    model = service.build_cash_flow_model("user-1", NOW)

    assert model.current_balance == pytest.approx(50_000 - 79 * 20)
    assert model.daily_income_mean == 0.0


def test_run_stress_test(service):
    report = service.run_stress_test(
        "user-1", NOW,
        scenarios=[{"name": "No salary", "shock_type": "income_loss", "magnitude": 30}],
        horizon_days=45, seed=3, current_balance=2000
    )

    assert report.baseline.simulations == settings.TestingConfig.STRESS_SIMULATIONS
    assert [s.scenario.name for s in report.scenarios] == ["No salary"]
    assert report.scenarios[0].final_balance_delta_p50 < 0


def test_quick_simulation(service):
    result = service.quick_simulation("user-1", NOW, current_balance=2000)

    assert result.paths_simulated == 0
    assert result.horizon_days == 30


def test_goals_analytics(service):
    analytics = service.goals_analytics("user-1", NOW)

    assert analytics.velocity.has_enough_data
    assert analytics.velocity.monthly_savings_rate > 0
    assert analytics.summary.total_goals == 3
    assert analytics.summary.completed_goals == 1
    statuses = {g.goal_id: g.status for g in analytics.goals}
    assert statuses["laptop"] is GoalForecastStatus.COMPLETED
    assert statuses["emergency"] is GoalForecastStatus.PROJECTED


def test_goals_analytics_requires_goal_store(store):
    service = ForecastingService(store, config=settings.TestingConfig)

    with pytest.raises(ForecastingError):
        service.goals_analytics("user-1", NOW)
