"""
Forecasting strategies.

Each algorithm is one variant behind the ``ForecastStrategy`` interface.
Adding an algorithm means adding a ``ForecastAlgorithm`` member and a
strategy class registered in ``STRATEGIES``.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence, Type

import numpy as np

from .parameters import ForecastAlgorithm
from .statistics import mean, ols_fit, sample_std

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProjectedBand:
    """Unrounded projection for one future period"""
    predicted: float
    lower: float
    upper: float


@dataclass
class StrategyOutput:
    bands: List[ProjectedBand]
    metrics: Dict[str, Any] = field(default_factory=dict)


class ForecastStrategy(ABC):
    """Projects a historical series ``periods`` steps ahead."""

    algorithm: ForecastAlgorithm

    @abstractmethod
    def project(self, amounts: Sequence[float], periods: int, z_score: float) -> StrategyOutput:
        """
        Args:
            amounts: Historical amounts, oldest first
            periods: Number of future periods
            z_score: Z-score of the requested confidence level

        Returns:
            StrategyOutput with one band per future period
        """


class MovingAverageStrategy(ForecastStrategy):
    """Flat projection at the mean of the last ``window`` observations"""

    algorithm = ForecastAlgorithm.MOVING_AVERAGE

    def __init__(self, window: int = 3):
        self.window = window

    def project(self, amounts: Sequence[float], periods: int, z_score: float) -> StrategyOutput:
        window_size = min(self.window, len(amounts))
        recent = list(amounts)[-window_size:]

        moving_avg = mean(recent)
        std_dev = sample_std(recent)
        half_width = z_score * std_dev

        band = ProjectedBand(
            predicted=moving_avg,
            lower=moving_avg - half_width,
            upper=moving_avg + half_width
        )
        return StrategyOutput(
            bands=[band] * periods,
            metrics={
                "window_size": window_size,
                "moving_average": round(moving_avg, 2),
                "std_dev": round(std_dev, 2)
            }
        )


class LinearRegressionStrategy(ForecastStrategy):
    """
    Least-squares trend line over period index 1..n.

    The band is a fixed -20%/+20% around the floored prediction, not a
    residual-based interval.
    """

    algorithm = ForecastAlgorithm.LINEAR_REGRESSION

    LOWER_FACTOR = 0.8
    UPPER_FACTOR = 1.2

    def project(self, amounts: Sequence[float], periods: int, z_score: float) -> StrategyOutput:
        n = len(amounts)
        slope, intercept = ols_fit(amounts, start_index=1)

        bands = []
        for i in range(1, periods + 1):
            predicted = max(0.0, slope * (n + i) + intercept)
            bands.append(ProjectedBand(
                predicted=predicted,
                lower=predicted * self.LOWER_FACTOR,
                upper=predicted * self.UPPER_FACTOR
            ))

        return StrategyOutput(
            bands=bands,
            metrics={
                "slope": round(slope, 4),
                "intercept": round(intercept, 4)
            }
        )


class ExponentialSmoothingStrategy(ForecastStrategy):
    """Simple exponential smoothing, S0 = x0, St = a*xt + (1-a)*St-1"""

    algorithm = ForecastAlgorithm.EXPONENTIAL_SMOOTHING

    def __init__(self, alpha: float = 0.3):
        self.alpha = alpha

    def smooth(self, amounts: Sequence[float]) -> float:
        smoothed = float(amounts[0])
        for value in list(amounts)[1:]:
            smoothed = self.alpha * float(value) + (1 - self.alpha) * smoothed
        return smoothed

    def project(self, amounts: Sequence[float], periods: int, z_score: float) -> StrategyOutput:
        smoothed = self.smooth(amounts)

        # Spread of the whole series around the final level
        residuals = np.asarray(amounts, dtype=float) - smoothed
        std_dev = float(np.sqrt(np.mean(residuals ** 2)))
        half_width = z_score * std_dev

        band = ProjectedBand(
            predicted=smoothed,
            lower=smoothed - half_width,
            upper=smoothed + half_width
        )
        return StrategyOutput(
            bands=[band] * periods,
            metrics={
                "alpha": self.alpha,
                "smoothed_level": round(smoothed, 2),
                "std_dev": round(std_dev, 2)
            }
        )


STRATEGIES: Dict[ForecastAlgorithm, Type[ForecastStrategy]] = {
    ForecastAlgorithm.MOVING_AVERAGE: MovingAverageStrategy,
    ForecastAlgorithm.LINEAR_REGRESSION: LinearRegressionStrategy,
    ForecastAlgorithm.EXPONENTIAL_SMOOTHING: ExponentialSmoothingStrategy,
}


def create_strategy(algorithm: ForecastAlgorithm, smoothing_alpha: float = 0.3) -> ForecastStrategy:
    """Instantiate the strategy for an algorithm."""
    if algorithm is ForecastAlgorithm.EXPONENTIAL_SMOOTHING:
        return ExponentialSmoothingStrategy(alpha=smoothing_alpha)
    return STRATEGIES[algorithm]()
