"""
Stochastic Simulator

Monte Carlo cash-flow engine. Paths are independent and run on a bounded
thread pool in batches; every path owns a generator seeded from
``SeedSequence(entropy, spawn_key=(path_index,))``, so a seeded run is
bit-identical whatever order the batches finish in.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import numpy as np

from ..config.settings import resolve_limits
from ..data.models import to_whole_number
from ..exceptions import InvalidParameterError, SimulationCancelledError
from ..forecasting.statistics import round_money, safe_divide
from .model import CashFlowModel, ScenarioAdjustments, ShockSchedule, simulate_path

logger = logging.getLogger(__name__)

FAN_CHART_PERCENTILES = (10, 25, 50, 75, 90)


@dataclass(frozen=True)
class SimulationRequest:
    """Caller-facing simulation request; None means the configured default"""
    simulations: Optional[int] = None
    horizon_days: Optional[int] = None
    scenario_adjustments: Optional[ScenarioAdjustments] = None
    seed: Optional[int] = None

    def __post_init__(self):
        for name in ("simulations", "horizon_days"):
            value = getattr(self, name)
            if value is None:
                continue
            object.__setattr__(self, name, to_whole_number(value, name, minimum=1))
        if self.seed is not None:
            object.__setattr__(self, "seed", to_whole_number(self.seed, "seed", minimum=0))


@dataclass(frozen=True)
class FanChartPoint:
    day: int
    p10: float
    p25: float
    p50: float
    p75: float
    p90: float
    mean: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "day": self.day,
            "P10": self.p10,
            "P25": self.p25,
            "P50": self.p50,
            "P75": self.p75,
            "P90": self.p90,
            "mean": self.mean
        }


@dataclass(frozen=True)
class RunwayPercentiles:
    """Runway in days; paths that never exhaust count as the full horizon"""
    p10: float
    p50: float
    p90: float
    p25: Optional[float] = None
    p75: Optional[float] = None
    mean: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "p10": self.p10,
            "p25": self.p25,
            "p50": self.p50,
            "p75": self.p75,
            "p90": self.p90,
            "mean": self.mean
        }


@dataclass(frozen=True)
class HistogramBin:
    lower: float
    upper: float
    count: int

    def to_dict(self) -> Dict[str, Any]:
        return {"lower": self.lower, "upper": self.upper, "count": self.count}


@dataclass
class SimulationResult:
    """Aggregated Monte Carlo output"""
    simulations: int
    horizon_days: int
    seed: Optional[int]
    seed_entropy: int
    starting_balance: float
    fan_chart: List[FanChartPoint]
    runway_percentiles: RunwayPercentiles
    histogram_bins: List[HistogramBin]
    never_exhausted: int
    final_balance_percentiles: Dict[str, float]
    final_balance_histogram: List[HistogramBin]
    exhaustion_probability: float
    value_at_risk_95: float
    conditional_var_95: float
    burn_rate: Dict[str, float]
    clamped: bool = False
    clamp_notes: List[str] = field(default_factory=list)
    requested: Dict[str, Any] = field(default_factory=dict)

    @property
    def percentile_balances_by_day(self) -> List[FanChartPoint]:
        return self.fan_chart

    def to_dict(self) -> Dict[str, Any]:
        return {
            "simulations": self.simulations,
            "horizon_days": self.horizon_days,
            "seed": self.seed,
            "seed_entropy": str(self.seed_entropy),
            "starting_balance": self.starting_balance,
            "fan_chart": [p.to_dict() for p in self.fan_chart],
            "runway_percentiles": self.runway_percentiles.to_dict(),
            "histogram_bins": [b.to_dict() for b in self.histogram_bins],
            "never_exhausted": self.never_exhausted,
            "final_balance_percentiles": self.final_balance_percentiles,
            "final_balance_histogram": [b.to_dict() for b in self.final_balance_histogram],
            "exhaustion_probability": self.exhaustion_probability,
            "value_at_risk_95": self.value_at_risk_95,
            "conditional_var_95": self.conditional_var_95,
            "burn_rate": self.burn_rate,
            "clamped": self.clamped,
            "clamp_notes": self.clamp_notes,
            "requested": self.requested
        }


class MonteCarloSimulator:
    """
    Multi-path cash-flow simulator.

    Example:
    ```python
    simulator = MonteCarloSimulator()
    model = CashFlowModel.from_history(income_days, expense_days,
                                       current_balance=5000, window_days=90)

    result = simulator.run(model, SimulationRequest(simulations=10000, seed=42))
    print(result.runway_percentiles.p50)
    ```
    """

    def __init__(
        self,
        config=None,
        workers: Optional[int] = None,
        batch_size: Optional[int] = None
    ):
        """
        Args:
            config: Config class; defaults to the environment config
            workers: Worker thread count (bounded by config otherwise)
            batch_size: Paths per scheduled batch
        """
        self.limits = resolve_limits(config)
        self.workers = max(1, workers or self.limits["workers"])
        self.batch_size = max(1, batch_size or self.limits["batch_size"])

    def resolve(self, request: SimulationRequest, max_horizon_days: Optional[int] = None):
        """Apply defaults and ceilings; returns (simulations, horizon, notes)."""
        horizon_cap = min(max_horizon_days or self.limits["max_horizon_days"],
                          self.limits["max_horizon_days"])
        simulations = request.simulations or self.limits["default_simulations"]
        horizon = request.horizon_days or min(self.limits["default_horizon_days"], horizon_cap)

        notes = []
        if simulations > self.limits["max_simulations"]:
            notes.append(f"simulations clamped from {simulations} to {self.limits['max_simulations']}")
            simulations = self.limits["max_simulations"]
        if horizon > horizon_cap:
            notes.append(f"horizon_days clamped from {horizon} to {horizon_cap}")
            horizon = horizon_cap

        for note in notes:
            logger.warning(f"Simulation request {note}")
        return simulations, horizon, notes

    def run(
        self,
        model: CashFlowModel,
        request: Optional[SimulationRequest] = None,
        cancel_event: Optional[threading.Event] = None,
        schedule: Optional[ShockSchedule] = None,
        max_horizon_days: Optional[int] = None
    ) -> SimulationResult:
        """
        Run the simulation and aggregate every path.

        Args:
            model: Baseline generative model
            request: Path count, horizon, adjustments and seed
            cancel_event: Checked between batches; when set the run aborts
            schedule: Extra deterministic shocks (stress tests); must cover
                at least the resolved horizon
            max_horizon_days: Stricter horizon ceiling for this call

        Returns:
            SimulationResult

        Raises:
            SimulationCancelledError: cancel_event was set mid-run
        """
        request = request or SimulationRequest()
        simulations, horizon, notes = self.resolve(request, max_horizon_days)

        adjusted = model.adjusted(request.scenario_adjustments)
        path_schedule = self._build_schedule(horizon, request.scenario_adjustments, schedule)

        root = np.random.SeedSequence(request.seed)
        entropy = root.entropy

        balances, runway = self._run_paths(
            adjusted, path_schedule, simulations, entropy, cancel_event
        )

        logger.info(
            f"Simulated {simulations} paths over {horizon} days "
            f"({self.workers} workers, batch {self.batch_size})"
        )

        result = self._aggregate(adjusted, balances, runway, horizon)
        result.seed = request.seed
        result.seed_entropy = entropy
        result.clamped = bool(notes)
        result.clamp_notes = notes
        result.requested = {
            "simulations": request.simulations,
            "horizon_days": request.horizon_days
        }
        return result

    def _build_schedule(
        self,
        horizon: int,
        adjustments: Optional[ScenarioAdjustments],
        schedule: Optional[ShockSchedule]
    ) -> ShockSchedule:
        if schedule is None:
            base = ShockSchedule.identity(horizon)
        else:
            if schedule.horizon_days < horizon:
                raise InvalidParameterError("schedule", schedule.horizon_days,
                                            f"must cover {horizon} days")
            base = ShockSchedule(
                income_multipliers=schedule.income_multipliers[:horizon],
                expense_multipliers=schedule.expense_multipliers[:horizon],
                impacts=schedule.impacts[:horizon].copy()
            )
        if adjustments is not None:
            base.impacts = base.impacts + adjustments.impact_vector(horizon)
        return base

    def _run_paths(
        self,
        model: CashFlowModel,
        schedule: ShockSchedule,
        simulations: int,
        entropy: int,
        cancel_event: Optional[threading.Event]
    ):
        horizon = schedule.horizon_days
        balances = np.empty((simulations, horizon + 1))
        runway = np.zeros(simulations, dtype=np.int64)

        def run_batch(start: int, stop: int) -> int:
            if cancel_event is not None and cancel_event.is_set():
                return 0
            for index in range(start, stop):
                rng = np.random.default_rng(np.random.SeedSequence(entropy, spawn_key=(index,)))
                balances[index], runway[index] = simulate_path(model, schedule, rng)
            return stop - start

        batches = [
            (start, min(start + self.batch_size, simulations))
            for start in range(0, simulations, self.batch_size)
        ]

        with ThreadPoolExecutor(max_workers=min(self.workers, len(batches))) as pool:
            futures = [pool.submit(run_batch, start, stop) for start, stop in batches]
            # Fan-in: aggregation only starts once every batch has finished
            wait(futures)
            completed = sum(f.result() for f in futures)

        if completed < simulations:
            logger.info(f"Simulation cancelled after {completed}/{simulations} paths")
            raise SimulationCancelledError(completed, simulations)

        return balances, runway

    def _aggregate(
        self,
        model: CashFlowModel,
        balances: np.ndarray,
        runway: np.ndarray,
        horizon: int
    ) -> SimulationResult:
        simulations = balances.shape[0]

        bands = np.percentile(balances, FAN_CHART_PERCENTILES, axis=0)
        means = balances.mean(axis=0)
        fan_chart = [
            FanChartPoint(
                day=day,
                p10=round_money(bands[0, day]),
                p25=round_money(bands[1, day]),
                p50=round_money(bands[2, day]),
                p75=round_money(bands[3, day]),
                p90=round_money(bands[4, day]),
                mean=round_money(means[day])
            )
            for day in range(horizon + 1)
        ]

        exhausted_mask = runway > 0
        censored = np.where(exhausted_mask, runway, horizon).astype(float)
        r10, r25, r50, r75, r90 = np.percentile(censored, FAN_CHART_PERCENTILES)
        runway_percentiles = RunwayPercentiles(
            p10=round(float(r10), 1),
            p25=round(float(r25), 1),
            p50=round(float(r50), 1),
            p75=round(float(r75), 1),
            p90=round(float(r90), 1),
            mean=round(float(censored.mean()), 1)
        )

        exhausted_days = runway[exhausted_mask]
        bins = min(self.limits["histogram_bins"], horizon)
        counts, edges = np.histogram(exhausted_days, bins=bins, range=(1, horizon + 1))
        histogram_bins = _to_bins(counts, edges)

        final = balances[:, -1]
        final_pcts = np.percentile(final, FAN_CHART_PERCENTILES)
        final_balance_percentiles = {
            f"P{p}": round_money(v) for p, v in zip(FAN_CHART_PERCENTILES, final_pcts)
        }
        final_balance_percentiles["mean"] = round_money(final.mean())
        final_balance_percentiles["std_dev"] = round_money(final.std())

        low, high = float(final.min()), float(final.max())
        if high == low:
            high = low + 1.0
        final_counts, final_edges = np.histogram(final, bins=self.limits["histogram_bins"], range=(low, high))

        var_95 = float(np.percentile(final, 5))
        tail = final[final <= var_95]
        cvar_95 = float(tail.mean()) if tail.size else var_95

        burn = model.net_daily_burn
        return SimulationResult(
            simulations=simulations,
            horizon_days=horizon,
            seed=None,
            seed_entropy=0,
            starting_balance=round_money(model.current_balance),
            fan_chart=fan_chart,
            runway_percentiles=runway_percentiles,
            histogram_bins=histogram_bins,
            never_exhausted=int(simulations - exhausted_mask.sum()),
            final_balance_percentiles=final_balance_percentiles,
            final_balance_histogram=_to_bins(final_counts, final_edges),
            exhaustion_probability=round(safe_divide(float(exhausted_mask.sum()), simulations) * 100, 2),
            value_at_risk_95=round_money(var_95),
            conditional_var_95=round_money(cvar_95),
            burn_rate={
                "daily": round_money(burn),
                "weekly": round_money(burn * 7),
                "monthly": round_money(burn * 30)
            }
        )


def _to_bins(counts: np.ndarray, edges: np.ndarray) -> List[HistogramBin]:
    return [
        HistogramBin(lower=round(float(edges[i]), 2), upper=round(float(edges[i + 1]), 2), count=int(counts[i]))
        for i in range(len(counts))
    ]
