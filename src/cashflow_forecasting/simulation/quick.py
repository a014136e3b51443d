"""
Quick Simulation

Closed-form preview of the Monte Carlo model for interactive use. The
balance is treated as a Gaussian random walk with the model's mean daily
net flow as drift; no random paths are drawn.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import numpy as np

from ..config.settings import resolve_limits
from ..data.models import to_whole_number
from ..forecasting.statistics import round_money
from .engine import RunwayPercentiles
from .model import CashFlowModel, ScenarioAdjustments

logger = logging.getLogger(__name__)

Z_90 = 1.2816  # one-sided z for the 10th/90th percentile


def _normal_cdf(x: float) -> float:
    return 0.5 * (1 + math.erf(x / math.sqrt(2)))


@dataclass(frozen=True)
class QuickBandPoint:
    day: int
    p10: float
    p50: float
    p90: float

    def to_dict(self) -> Dict[str, Any]:
        return {"day": self.day, "P10": self.p10, "P50": self.p50, "P90": self.p90}


@dataclass
class QuickSimulationResult:
    horizon_days: int
    starting_balance: float
    fan_chart: List[QuickBandPoint]
    runway_percentiles: RunwayPercentiles
    exhaustion_probability: float
    drift_per_day: float
    volatility_per_day: float
    method: str = "closed_form"
    paths_simulated: int = 0
    clamp_notes: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "horizon_days": self.horizon_days,
            "starting_balance": self.starting_balance,
            "fan_chart": [p.to_dict() for p in self.fan_chart],
            "runway_percentiles": self.runway_percentiles.to_dict(),
            "exhaustion_probability": self.exhaustion_probability,
            "drift_per_day": self.drift_per_day,
            "volatility_per_day": self.volatility_per_day,
            "method": self.method,
            "paths_simulated": self.paths_simulated,
            "clamp_notes": self.clamp_notes
        }


class QuickSimulation:
    """Latency-optimised approximation of ``MonteCarloSimulator``"""

    def __init__(self, config=None):
        self.limits = resolve_limits(config)

    def estimate(
        self,
        model: CashFlowModel,
        horizon_days: Optional[int] = None,
        adjustments: Optional[ScenarioAdjustments] = None
    ) -> QuickSimulationResult:
        if horizon_days is None:
            horizon = self.limits["quick_horizon_days"]
        else:
            horizon = to_whole_number(horizon_days, "horizon_days", minimum=1)
        notes = []
        if horizon > self.limits["max_horizon_days"]:
            notes.append(f"horizon_days clamped from {horizon} to {self.limits['max_horizon_days']}")
            horizon = self.limits["max_horizon_days"]

        adjusted = model.adjusted(adjustments)
        drift = adjusted.net_daily_mean
        variance = (adjusted.daily_income_std ** 2 + adjusted.daily_expense_std ** 2
                    + adjusted.shock_variance)
        sigma = math.sqrt(max(variance, 0.0))

        days = np.arange(horizon + 1, dtype=float)
        impacts = np.zeros(horizon + 1)
        if adjustments is not None:
            impacts[1:] = np.cumsum(adjustments.impact_vector(horizon))

        expected = adjusted.current_balance + drift * days + impacts
        spread = Z_90 * sigma * np.sqrt(days)
        lower = expected - spread
        upper = expected + spread

        fan_chart = [
            QuickBandPoint(day=int(d), p10=round_money(lower[d]), p50=round_money(expected[d]),
                           p90=round_money(upper[d]))
            for d in range(horizon + 1)
        ]

        # Each band's first crossing; lower <= expected <= upper keeps p10 <= p50 <= p90
        runway = RunwayPercentiles(
            p10=float(_first_crossing(lower, horizon)),
            p50=float(_first_crossing(expected, horizon)),
            p90=float(_first_crossing(upper, horizon))
        )

        if adjustments is not None and adjustments.one_time_impacts:
            probability = _pointwise_exhaustion(expected, sigma, days)
        else:
            probability = _first_passage_probability(adjusted.current_balance, drift, sigma, horizon)

        return QuickSimulationResult(
            horizon_days=horizon,
            starting_balance=round_money(adjusted.current_balance),
            fan_chart=fan_chart,
            runway_percentiles=runway,
            exhaustion_probability=round(probability * 100, 2),
            drift_per_day=round_money(drift),
            volatility_per_day=round_money(sigma),
            clamp_notes=notes
        )


def _first_crossing(series: np.ndarray, horizon: int) -> int:
    crossed = np.flatnonzero(series[1:] <= 0)
    return int(crossed[0]) + 1 if crossed.size else horizon


def _first_passage_probability(balance: float, drift: float, sigma: float, horizon: int) -> float:
    """P(min balance over the horizon <= 0) for Brownian motion with drift."""
    if balance <= 0:
        return 1.0
    if sigma == 0:
        return 1.0 if balance + drift * horizon <= 0 else 0.0

    scale = sigma * math.sqrt(horizon)
    first = _normal_cdf((-balance - drift * horizon) / scale)
    exponent = -2 * drift * balance / (sigma ** 2)
    second_cdf = _normal_cdf((-balance + drift * horizon) / scale)
    if second_cdf == 0.0:
        second = 0.0
    else:
        second = math.exp(min(exponent, 700.0)) * second_cdf
    return min(1.0, max(0.0, first + second))


def _pointwise_exhaustion(expected: np.ndarray, sigma: float, days: np.ndarray) -> float:
    """Largest single-day probability of a non-positive balance."""
    probability = 0.0
    for day in range(1, len(expected)):
        if sigma == 0:
            p = 1.0 if expected[day] <= 0 else 0.0
        else:
            p = _normal_cdf(-expected[day] / (sigma * math.sqrt(days[day])))
        probability = max(probability, p)
    return probability
