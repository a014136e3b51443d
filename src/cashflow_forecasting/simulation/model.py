"""
Generative cash-flow model shared by the simulator, stress tests and the
quick preview.
"""

import logging
from dataclasses import dataclass, replace
from datetime import date
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

import numpy as np

from ..data.models import TimeSeriesPoint, to_amount, to_date, to_whole_number
from ..exceptions import InvalidParameterError
from ..forecasting.statistics import safe_divide

logger = logging.getLogger(__name__)

INCOME_VOLATILITY = 0.15     # fallback std as a share of the mean
EXPENSE_VOLATILITY = 0.20
EXPENSE_SHOCK_PROBABILITY = 0.02
EXPENSE_SHOCK_MIN = 100.0
EXPENSE_SHOCK_MAX = 2000.0


@dataclass(frozen=True)
class OneTimeImpact:
    """Single cash movement on a day of the horizon (positive = inflow)"""
    day: int
    amount: float

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any], reference_date: Optional[date] = None) -> "OneTimeImpact":
        amount = to_amount(payload.get("amount"), "one_time_impacts.amount")
        if "day" in payload:
            day = to_whole_number(payload["day"], "one_time_impacts.day", minimum=1)
        elif "date" in payload and reference_date is not None:
            day = (to_date(payload["date"]) - reference_date).days
        else:
            raise InvalidParameterError("one_time_impacts", dict(payload), "needs 'day' or 'date'")
        if day < 1:
            raise InvalidParameterError("one_time_impacts.day", day, "must be on or after day 1")
        return cls(day=day, amount=amount)


@dataclass(frozen=True)
class ScenarioAdjustments:
    """What-if adjustments layered over the baseline model"""
    income_change_pct: float = 0.0
    expense_change_pct: float = 0.0
    one_time_impacts: Tuple[OneTimeImpact, ...] = ()

    def __post_init__(self):
        for name in ("income_change_pct", "expense_change_pct"):
            value = to_amount(getattr(self, name), name)
            if value < -100:
                raise InvalidParameterError(name, value, "cannot reduce below -100%")
            object.__setattr__(self, name, value)
        object.__setattr__(self, "one_time_impacts", tuple(self.one_time_impacts))

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any], reference_date: Optional[date] = None) -> "ScenarioAdjustments":
        impacts = tuple(
            OneTimeImpact.from_mapping(item, reference_date)
            for item in payload.get("one_time_impacts") or []
        )
        return cls(
            income_change_pct=payload.get("income_change_pct", 0.0),
            expense_change_pct=payload.get("expense_change_pct", 0.0),
            one_time_impacts=impacts
        )

    def impact_vector(self, horizon_days: int) -> np.ndarray:
        """Per-day one-time cash movements; impacts past the horizon are dropped."""
        impacts = np.zeros(horizon_days)
        for impact in self.one_time_impacts:
            if impact.day <= horizon_days:
                impacts[impact.day - 1] += impact.amount
        return impacts

    def to_dict(self) -> Dict[str, Any]:
        return {
            "income_change_pct": self.income_change_pct,
            "expense_change_pct": self.expense_change_pct,
            "one_time_impacts": [{"day": i.day, "amount": i.amount} for i in self.one_time_impacts]
        }


@dataclass
class ShockSchedule:
    """Deterministic per-day multipliers applied on top of the random draws"""
    income_multipliers: np.ndarray
    expense_multipliers: np.ndarray
    impacts: Optional[np.ndarray] = None

    def __post_init__(self):
        if self.impacts is None:
            self.impacts = np.zeros(len(self.income_multipliers))

    @property
    def horizon_days(self) -> int:
        return len(self.income_multipliers)

    @classmethod
    def identity(cls, horizon_days: int) -> "ShockSchedule":
        return cls(
            income_multipliers=np.ones(horizon_days),
            expense_multipliers=np.ones(horizon_days),
            impacts=np.zeros(horizon_days)
        )


@dataclass(frozen=True)
class CashFlowModel:
    """
    Daily income/expense distribution plus the starting balance.

    Each simulated day draws income ~ N(income_mean, income_std) and
    expense ~ N(expense_mean, expense_std), both floored at zero, plus a
    random expense shock.
    """
    current_balance: float
    daily_income_mean: float
    daily_income_std: float
    daily_expense_mean: float
    daily_expense_std: float
    shock_probability: float = EXPENSE_SHOCK_PROBABILITY
    shock_min: float = EXPENSE_SHOCK_MIN
    shock_max: float = EXPENSE_SHOCK_MAX

    def __post_init__(self):
        for name in ("current_balance", "daily_income_mean", "daily_income_std",
                     "daily_expense_mean", "daily_expense_std", "shock_probability",
                     "shock_min", "shock_max"):
            object.__setattr__(self, name, to_amount(getattr(self, name), name))
        for name in ("daily_income_mean", "daily_income_std", "daily_expense_mean", "daily_expense_std"):
            if getattr(self, name) < 0:
                raise InvalidParameterError(name, getattr(self, name), "must not be negative")
        if not 0.0 <= self.shock_probability <= 1.0:
            raise InvalidParameterError("shock_probability", self.shock_probability, "must be within [0, 1]")
        if self.shock_min < 0 or self.shock_max < self.shock_min:
            raise InvalidParameterError("shock_max", self.shock_max, "must be >= shock_min >= 0")

    @property
    def expected_daily_shock(self) -> float:
        return self.shock_probability * (self.shock_min + self.shock_max) / 2

    @property
    def shock_variance(self) -> float:
        """Variance of the daily shock amount (Bernoulli times uniform)."""
        a, b = self.shock_min, self.shock_max
        second_moment = (a * a + a * b + b * b) / 3
        return self.shock_probability * second_moment - self.expected_daily_shock ** 2

    @property
    def net_daily_mean(self) -> float:
        return self.daily_income_mean - self.daily_expense_mean - self.expected_daily_shock

    @property
    def net_daily_burn(self) -> float:
        """Mean daily expenses minus mean daily income, shocks excluded."""
        return self.daily_expense_mean - self.daily_income_mean

    def adjusted(self, adjustments: Optional[ScenarioAdjustments]) -> "CashFlowModel":
        """Model with percentage income/expense changes applied."""
        if adjustments is None:
            return self
        income_factor = 1 + adjustments.income_change_pct / 100
        expense_factor = 1 + adjustments.expense_change_pct / 100
        return replace(
            self,
            daily_income_mean=self.daily_income_mean * income_factor,
            daily_income_std=self.daily_income_std * income_factor,
            daily_expense_mean=self.daily_expense_mean * expense_factor,
            daily_expense_std=self.daily_expense_std * expense_factor
        )

    @classmethod
    def from_history(
        cls,
        income_days: Sequence[TimeSeriesPoint],
        expense_days: Sequence[TimeSeriesPoint],
        current_balance: float,
        window_days: int,
        monthly_recurring_income: float = 0.0,
        monthly_recurring_expense: float = 0.0
    ) -> "CashFlowModel":
        """
        Estimate the daily distribution from sparse per-day totals.

        Days inside the window with no transactions count as zero. When a
        side has no history its mean falls back to the recurring monthly
        amount spread over 30 days, and a zero std falls back to a fixed
        share of the mean.

        Args:
            income_days: Per-day income totals within the window
            expense_days: Per-day expense totals within the window
            current_balance: Actual balance at the start of the horizon
            window_days: Length of the lookback window in days
            monthly_recurring_income: Known recurring monthly income
            monthly_recurring_expense: Known recurring monthly expenses
        """
        if window_days < 1:
            raise InvalidParameterError("window_days", window_days, "must be at least 1")

        income_mean, income_std = _daily_stats(income_days, window_days)
        expense_mean, expense_std = _daily_stats(expense_days, window_days)

        if not income_days:
            income_mean = safe_divide(monthly_recurring_income, 30)
        if not expense_days:
            expense_mean = safe_divide(monthly_recurring_expense, 30)
        if income_std == 0:
            income_std = income_mean * INCOME_VOLATILITY
        if expense_std == 0:
            expense_std = expense_mean * EXPENSE_VOLATILITY

        if not income_days and not expense_days:
            logger.warning("No daily history in window; cash-flow model built from recurring amounts only")

        return cls(
            current_balance=current_balance,
            daily_income_mean=income_mean,
            daily_income_std=income_std,
            daily_expense_mean=expense_mean,
            daily_expense_std=expense_std
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "current_balance": round(self.current_balance, 2),
            "daily_income_mean": round(self.daily_income_mean, 2),
            "daily_income_std": round(self.daily_income_std, 2),
            "daily_expense_mean": round(self.daily_expense_mean, 2),
            "daily_expense_std": round(self.daily_expense_std, 2),
            "shock_probability": self.shock_probability,
            "shock_min": self.shock_min,
            "shock_max": self.shock_max
        }


def _daily_stats(points: Sequence[TimeSeriesPoint], window_days: int) -> Tuple[float, float]:
    if not points:
        return 0.0, 0.0
    days = max(window_days, len(points))
    values = np.zeros(days)
    values[:len(points)] = [p.amount for p in points]
    return float(np.mean(values)), float(np.std(values))


def simulate_path(
    model: CashFlowModel,
    schedule: ShockSchedule,
    rng: np.random.Generator
) -> Tuple[np.ndarray, int]:
    """
    Simulate one cash-flow path.

    Returns:
        (balances, runway_day) where balances has horizon+1 entries
        starting with the current balance, and runway_day is the first
        day with balance <= 0, or 0 if the path never exhausts
    """
    horizon = schedule.horizon_days

    # Draw order is fixed so a seeded generator always yields the same path
    income = np.maximum(0.0, rng.normal(model.daily_income_mean, model.daily_income_std, horizon))
    expense = np.maximum(0.0, rng.normal(model.daily_expense_mean, model.daily_expense_std, horizon))
    shock_hits = rng.random(horizon) < model.shock_probability
    shock_amounts = rng.uniform(model.shock_min, model.shock_max, horizon)

    income = income * schedule.income_multipliers
    expense = expense * schedule.expense_multipliers + np.where(shock_hits, shock_amounts, 0.0)
    net = income - expense + schedule.impacts

    balances = np.empty(horizon + 1)
    balances[0] = model.current_balance
    np.cumsum(net, out=balances[1:])
    balances[1:] += model.current_balance

    exhausted = np.flatnonzero(balances[1:] <= 0)
    runway_day = int(exhausted[0]) + 1 if exhausted.size else 0
    return balances, runway_day
