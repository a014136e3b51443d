"""
Stress Test Engine

Applies named deterministic shocks on top of the simulator's generative
model and reports how far each shock moves runway and ending balance
relative to the unshocked baseline.
"""

import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence

import numpy as np

from ..config.settings import resolve_limits
from ..data.models import to_amount, to_whole_number
from ..exceptions import InvalidParameterError
from .engine import MonteCarloSimulator, SimulationRequest, SimulationResult
from .model import CashFlowModel, ShockSchedule

logger = logging.getLogger(__name__)


class ShockType(Enum):
    """Deterministic shock families"""
    RECESSION = "recession"           # -magnitude% income
    INCOME_LOSS = "income_loss"       # no income for magnitude days
    EXPENSE_SPIKE = "expense_spike"   # +magnitude% expenses


DEFAULT_SPIKE_DAYS = 30


@dataclass(frozen=True)
class StressScenario:
    """
    A named shock.

    ``magnitude`` is a percentage for recession and expense_spike and a
    number of days for income_loss. The shock starts on ``start_day``
    and lasts ``duration_days`` (recession defaults to the whole
    horizon, expense_spike to 30 days).
    """
    name: str
    shock_type: ShockType
    magnitude: float
    start_day: int = 1
    duration_days: Optional[int] = None

    def __post_init__(self):
        try:
            shock_type = ShockType(self.shock_type) if not isinstance(self.shock_type, ShockType) \
                else self.shock_type
        except ValueError:
            raise InvalidParameterError(
                "shock_type", self.shock_type, f"expected one of {[s.value for s in ShockType]}"
            ) from None
        object.__setattr__(self, "shock_type", shock_type)

        magnitude = to_amount(self.magnitude, "magnitude")
        if magnitude < 0:
            raise InvalidParameterError("magnitude", magnitude, "must not be negative")
        if shock_type is ShockType.RECESSION and magnitude > 100:
            raise InvalidParameterError("magnitude", magnitude, "recession cannot cut more than 100%")
        object.__setattr__(self, "magnitude", magnitude)

        object.__setattr__(self, "start_day", to_whole_number(self.start_day, "start_day", minimum=1))
        if self.duration_days is not None:
            object.__setattr__(
                self, "duration_days", to_whole_number(self.duration_days, "duration_days", minimum=0)
            )

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "StressScenario":
        shock_type = payload.get("shock_type")
        return cls(
            name=str(payload.get("name") or shock_type),
            shock_type=shock_type,
            magnitude=payload.get("magnitude", 0.0),
            start_day=payload.get("start_day", 1),
            duration_days=payload.get("duration_days")
        )

    def schedule(self, horizon_days: int) -> ShockSchedule:
        """Per-day multipliers for this shock over the horizon."""
        schedule = ShockSchedule.identity(horizon_days)
        start = self.start_day - 1

        if self.shock_type is ShockType.RECESSION:
            length = self.duration_days if self.duration_days is not None else horizon_days
            schedule.income_multipliers[start:start + length] = 1 - self.magnitude / 100
        elif self.shock_type is ShockType.INCOME_LOSS:
            length = int(self.duration_days if self.duration_days is not None else self.magnitude)
            schedule.income_multipliers[start:start + length] = 0.0
        else:
            length = self.duration_days if self.duration_days is not None else DEFAULT_SPIKE_DAYS
            schedule.expense_multipliers[start:start + length] = 1 + self.magnitude / 100

        return schedule

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "shock_type": self.shock_type.value,
            "magnitude": self.magnitude,
            "start_day": self.start_day,
            "duration_days": self.duration_days
        }


DEFAULT_SCENARIOS = (
    StressScenario("Recession: income -30%", ShockType.RECESSION, 30),
    StressScenario("Income loss: 30 days", ShockType.INCOME_LOSS, 30),
    StressScenario("Expense spike: +30% for 30 days", ShockType.EXPENSE_SPIKE, 30),
)


@dataclass
class StressScenarioResult:
    scenario: StressScenario
    result: SimulationResult
    runway_delta_p50: float
    runway_delta_p10: float
    final_balance_delta_p50: float
    exhaustion_probability_delta: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scenario": self.scenario.to_dict(),
            "runway_percentiles": self.result.runway_percentiles.to_dict(),
            "final_balance_p50": self.result.final_balance_percentiles["P50"],
            "exhaustion_probability": self.result.exhaustion_probability,
            "runway_delta_p50": self.runway_delta_p50,
            "runway_delta_p10": self.runway_delta_p10,
            "final_balance_delta_p50": self.final_balance_delta_p50,
            "exhaustion_probability_delta": self.exhaustion_probability_delta
        }


@dataclass
class StressTestReport:
    baseline: SimulationResult
    scenarios: List[StressScenarioResult] = field(default_factory=list)

    @property
    def worst_case(self) -> Optional[StressScenarioResult]:
        """Scenario with the largest median runway loss."""
        if not self.scenarios:
            return None
        return min(self.scenarios, key=lambda s: (s.runway_delta_p50, s.final_balance_delta_p50))

    def to_dict(self) -> Dict[str, Any]:
        worst = self.worst_case
        return {
            "baseline": {
                "runway_percentiles": self.baseline.runway_percentiles.to_dict(),
                "final_balance_p50": self.baseline.final_balance_percentiles["P50"],
                "exhaustion_probability": self.baseline.exhaustion_probability,
                "simulations": self.baseline.simulations,
                "horizon_days": self.baseline.horizon_days
            },
            "scenarios": [s.to_dict() for s in self.scenarios],
            "worst_case": worst.scenario.name if worst else None
        }


class StressTestEngine:
    """
    Runs each stress scenario with a reduced path count.

    Baseline and shocked runs share one seed, so every scenario sees the
    same random draws and the deltas isolate the shock itself.
    """

    def __init__(self, simulator: Optional[MonteCarloSimulator] = None, config=None):
        self.simulator = simulator or MonteCarloSimulator(config)
        self.limits = resolve_limits(config) if simulator is None else simulator.limits

    def run(
        self,
        model: CashFlowModel,
        scenarios: Optional[Sequence[StressScenario]] = None,
        horizon_days: int = 90,
        simulations: Optional[int] = None,
        seed: Optional[int] = None,
        cancel_event: Optional[threading.Event] = None
    ) -> StressTestReport:
        """
        Args:
            model: Baseline generative model
            scenarios: Shocks to apply; defaults to DEFAULT_SCENARIOS
            horizon_days: Horizon, capped at the stress ceiling (180 days)
            simulations: Paths per scenario; defaults to the stress path count
            seed: Shared seed; fresh entropy is drawn once when omitted
            cancel_event: Forwarded to every simulation run

        Returns:
            StressTestReport with one entry per scenario
        """
        scenarios = list(scenarios) if scenarios is not None else list(DEFAULT_SCENARIOS)
        stress_cap = self.limits["stress_max_horizon_days"]
        paths = (
            to_whole_number(simulations, "simulations", minimum=1)
            if simulations is not None else self.limits["stress_simulations"]
        )

        if seed is None:
            seed = int(np.random.SeedSequence().generate_state(1, dtype=np.uint64)[0])

        request = SimulationRequest(simulations=paths, horizon_days=horizon_days, seed=seed)
        baseline = self.simulator.run(model, request, cancel_event=cancel_event,
                                      max_horizon_days=stress_cap)
        horizon = baseline.horizon_days

        report = StressTestReport(baseline=baseline)
        for scenario in scenarios:
            shocked = self.simulator.run(
                model,
                request,
                cancel_event=cancel_event,
                schedule=scenario.schedule(horizon),
                max_horizon_days=stress_cap
            )
            report.scenarios.append(StressScenarioResult(
                scenario=scenario,
                result=shocked,
                runway_delta_p50=round(shocked.runway_percentiles.p50 - baseline.runway_percentiles.p50, 1),
                runway_delta_p10=round(shocked.runway_percentiles.p10 - baseline.runway_percentiles.p10, 1),
                final_balance_delta_p50=round(
                    shocked.final_balance_percentiles["P50"] - baseline.final_balance_percentiles["P50"], 2
                ),
                exhaustion_probability_delta=round(
                    shocked.exhaustion_probability - baseline.exhaustion_probability, 2
                )
            ))
            logger.info(
                f"Stress scenario '{scenario.name}': median runway "
                f"{shocked.runway_percentiles.p50} days vs baseline {baseline.runway_percentiles.p50}"
            )

        return report
