import threading
from datetime import date

import numpy as np
import pytest

from cashflow_forecasting import config as settings
from cashflow_forecasting.exceptions import InvalidParameterError, SimulationCancelledError
from cashflow_forecasting.data import TimeSeriesPoint
from cashflow_forecasting.simulation import engine as engine_module
from cashflow_forecasting.simulation import (
    CashFlowModel,
    MonteCarloSimulator,
    OneTimeImpact,
    ScenarioAdjustments,
    ShockSchedule,
    SimulationRequest,
    simulate_path
)


def deterministic_model(balance=1000.0, income=0.0, expense=100.0):
    return CashFlowModel(
        current_balance=balance,
        daily_income_mean=income,
        daily_income_std=0.0,
        daily_expense_mean=expense,
        daily_expense_std=0.0,
        shock_probability=0.0
    )


def test_simulate_path_without_noise_is_exact():
    balances, runway = simulate_path(
        deterministic_model(), ShockSchedule.identity(15), np.random.default_rng(0)
    )

    assert balances[0] == 1000.0
    assert balances[10] == 0.0
    assert runway == 10


def test_simulate_path_reports_zero_runway_when_never_exhausted():
    _, runway = simulate_path(
        deterministic_model(income=200.0), ShockSchedule.identity(30), np.random.default_rng(0)
    )

    assert runway == 0


def test_seeded_runs_are_identical_across_scheduling(burning_model):
    request = SimulationRequest(simulations=300, horizon_days=60, seed=42)

    serial = MonteCarloSimulator(settings.TestingConfig, workers=1, batch_size=7).run(burning_model, request)
    parallel = MonteCarloSimulator(settings.TestingConfig, workers=4, batch_size=50).run(burning_model, request)

    assert serial.to_dict() == parallel.to_dict()


def test_different_seeds_differ(simulator, burning_model):
    first = simulator.run(burning_model, SimulationRequest(simulations=200, horizon_days=30, seed=1))
    second = simulator.run(burning_model, SimulationRequest(simulations=200, horizon_days=30, seed=2))

    assert first.final_balance_percentiles != second.final_balance_percentiles


def test_unseeded_run_can_be_replayed_from_reported_entropy(simulator, burning_model):
    first = simulator.run(burning_model, SimulationRequest(simulations=100, horizon_days=20))
    replay = simulator.run(
        burning_model, SimulationRequest(simulations=100, horizon_days=20, seed=first.seed_entropy)
    )

    assert first.seed is None
    assert first.seed_entropy > 0
    assert replay.fan_chart == first.fan_chart
    assert replay.runway_percentiles == first.runway_percentiles


def test_simulation_count_above_ceiling_is_clamped(burning_model):
    simulator = MonteCarloSimulator(settings.TestingConfig, workers=4, batch_size=5000)

    result = simulator.run(burning_model, SimulationRequest(simulations=100_000, horizon_days=3, seed=5))

    assert result.simulations == 50_000
    assert result.clamped
    assert "simulations clamped from 100000 to 50000" in result.clamp_notes
    assert result.requested["simulations"] == 100_000


def test_horizon_above_ceiling_is_clamped(simulator, healthy_model):
    result = simulator.run(healthy_model, SimulationRequest(simulations=20, horizon_days=400, seed=5))

    assert result.horizon_days == 365
    assert len(result.fan_chart) == 366
    assert result.clamped


def test_defaults_come_from_config(simulator, healthy_model):
    result = simulator.run(healthy_model, SimulationRequest(seed=3))

    assert result.simulations == settings.TestingConfig.DEFAULT_SIMULATIONS
    assert result.horizon_days == 90
    assert not result.clamped


def test_runway_percentiles_are_ordered(simulator, burning_model):
    result = simulator.run(burning_model, SimulationRequest(simulations=500, horizon_days=120, seed=11))
    runway = result.runway_percentiles

    assert runway.p10 <= runway.p25 <= runway.p50 <= runway.p75 <= runway.p90
    assert 0 < runway.p50 <= 120
    assert result.exhaustion_probability > 50


def test_exhausted_paths_and_histogram_account_for_every_path(simulator, burning_model):
    result = simulator.run(burning_model, SimulationRequest(simulations=400, horizon_days=60, seed=9))

    histogram_total = sum(b.count for b in result.histogram_bins)
    assert histogram_total + result.never_exhausted == result.simulations
    assert result.histogram_bins[0].lower == 1
    assert result.histogram_bins[-1].upper == 61
    assert sum(b.count for b in result.final_balance_histogram) == result.simulations


def test_healthy_model_never_exhausts(simulator, healthy_model):
    result = simulator.run(healthy_model, SimulationRequest(simulations=200, horizon_days=30, seed=1))

    assert result.never_exhausted == 200
    assert result.exhaustion_probability == 0
    assert result.runway_percentiles.p10 == 30
    assert result.runway_percentiles.p90 == 30


def test_fan_chart_starts_at_current_balance(simulator, burning_model):
    result = simulator.run(burning_model, SimulationRequest(simulations=100, horizon_days=10, seed=4))
    first = result.fan_chart[0]

    assert len(result.fan_chart) == 11
    assert first.p10 == first.p50 == first.p90 == first.mean == 3000.0
    for point in result.fan_chart:
        assert point.p10 <= point.p25 <= point.p50 <= point.p75 <= point.p90


def test_value_at_risk_bounds(simulator, burning_model):
    result = simulator.run(burning_model, SimulationRequest(simulations=500, horizon_days=30, seed=8))

    assert result.conditional_var_95 <= result.value_at_risk_95 <= result.final_balance_percentiles["P10"]
    assert result.burn_rate["daily"] == 50.0
    assert result.burn_rate["monthly"] == 1500.0


def test_income_cut_lowers_final_balance(simulator, burning_model):
    base = SimulationRequest(simulations=200, horizon_days=30, seed=21)
    cut = SimulationRequest(
        simulations=200, horizon_days=30, seed=21,
        scenario_adjustments=ScenarioAdjustments(income_change_pct=-50)
    )

    baseline = simulator.run(burning_model, base)
    adjusted = simulator.run(burning_model, cut)

    assert adjusted.final_balance_percentiles["P50"] < baseline.final_balance_percentiles["P50"]


def test_one_time_inflow_shifts_every_path(simulator, burning_model):
    adjustments = ScenarioAdjustments(one_time_impacts=[OneTimeImpact(day=1, amount=10_000)])
    baseline = simulator.run(burning_model, SimulationRequest(simulations=100, horizon_days=20, seed=3))
    boosted = simulator.run(
        burning_model,
        SimulationRequest(simulations=100, horizon_days=20, seed=3, scenario_adjustments=adjustments)
    )

    assert boosted.final_balance_percentiles["P50"] == pytest.approx(
        baseline.final_balance_percentiles["P50"] + 10_000, abs=0.02
    )


def test_scenario_adjustments_from_mapping_accepts_dates():
    adjustments = ScenarioAdjustments.from_mapping(
        {"income_change_pct": "10", "one_time_impacts": [{"date": "2025-07-10", "amount": -500}]},
        reference_date=date(2025, 6, 30)
    )

    assert adjustments.income_change_pct == 10.0
    assert adjustments.one_time_impacts == (OneTimeImpact(day=10, amount=-500.0),)
    assert adjustments.impact_vector(5).sum() == 0


@pytest.mark.parametrize("impact", [
    {"day": "tomorrow", "amount": 100},
    {"day": 1.5, "amount": 100},
    {"day": 0, "amount": 100},
    {"amount": 100},
])
def test_one_time_impact_rejects_bad_days(impact):
    with pytest.raises(InvalidParameterError):
        OneTimeImpact.from_mapping(impact)


def test_cancelled_run_raises(simulator, burning_model):
    cancel = threading.Event()
    cancel.set()

    with pytest.raises(SimulationCancelledError) as excinfo:
        simulator.run(burning_model, SimulationRequest(simulations=200, horizon_days=10, seed=1),
                      cancel_event=cancel)

    assert excinfo.value.completed_paths == 0
    assert excinfo.value.total_paths == 200


def test_cancel_between_batches_keeps_finished_paths(monkeypatch, burning_model):
    cancel = threading.Event()
    calls = []

    def path_then_cancel(model, schedule, rng):
        calls.append(1)
        if len(calls) == 10:
            cancel.set()
        return simulate_path(model, schedule, rng)

    monkeypatch.setattr(engine_module, "simulate_path", path_then_cancel)
    simulator = MonteCarloSimulator(settings.TestingConfig, workers=1, batch_size=10)

    with pytest.raises(SimulationCancelledError) as excinfo:
        simulator.run(burning_model, SimulationRequest(simulations=50, horizon_days=10, seed=3),
                      cancel_event=cancel)

    assert 0 < excinfo.value.completed_paths < excinfo.value.total_paths
    assert excinfo.value.completed_paths == 10


def test_cancel_after_last_batch_returns_result(monkeypatch, burning_model):
    cancel = threading.Event()
    calls = []

    def path_then_cancel(model, schedule, rng):
        calls.append(1)
        if len(calls) == 20:
            cancel.set()
        return simulate_path(model, schedule, rng)

    monkeypatch.setattr(engine_module, "simulate_path", path_then_cancel)
    simulator = MonteCarloSimulator(settings.TestingConfig, workers=1, batch_size=10)

    result = simulator.run(burning_model, SimulationRequest(simulations=20, horizon_days=10, seed=3),
                           cancel_event=cancel)

    assert cancel.is_set()
    assert result.simulations == 20


@pytest.mark.parametrize("kwargs", [
    {"simulations": 0},
    {"simulations": -10},
    {"horizon_days": -5},
    {"horizon_days": 2.5},
    {"simulations": "many"},
    {"seed": -1},
])
def test_invalid_requests_are_rejected(kwargs):
    with pytest.raises(InvalidParameterError):
        SimulationRequest(**kwargs)


def test_model_from_history_zero_fills_quiet_days():
    income = [TimeSeriesPoint(date(2025, 6, 1), 1500.0), TimeSeriesPoint(date(2025, 6, 15), 1500.0)]
    model = CashFlowModel.from_history(income, [], current_balance=2000, window_days=30,
                                       monthly_recurring_expense=900)

    assert model.daily_income_mean == pytest.approx(100.0)
    assert model.daily_income_std > 0
    assert model.daily_expense_mean == pytest.approx(30.0)
    assert model.daily_expense_std == pytest.approx(30.0 * 0.20)


def test_model_rejects_negative_rates():
    with pytest.raises(InvalidParameterError):
        CashFlowModel(current_balance=0, daily_income_mean=-1, daily_income_std=0,
                      daily_expense_mean=0, daily_expense_std=0)
