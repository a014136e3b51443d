"""
Deterministic Forecaster

Short-horizon point forecasts with confidence bands from a historical
window. Forecast dates are anchored on an explicit reference date so the
same inputs always give the same predictions.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional, Sequence

from ..config.settings import resolve_limits
from ..data.models import TimeSeriesPoint, to_amount, to_date
from ..exceptions import InsufficientHistoryError
from .parameters import ForecastParameters
from .statistics import round_money
from .strategies import ForecastStrategy, create_strategy

logger = logging.getLogger(__name__)

MIN_HISTORY_POINTS = 3


@dataclass(frozen=True)
class Prediction:
    """One forecast period; confidence_lower <= predicted_amount <= confidence_upper"""
    date: date
    predicted_amount: float
    confidence_lower: float
    confidence_upper: float

    @property
    def band_width(self) -> float:
        return self.confidence_upper - self.confidence_lower

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "predicted_amount": self.predicted_amount,
            "confidence_lower": self.confidence_lower,
            "confidence_upper": self.confidence_upper
        }


@dataclass
class ForecastResult:
    """Result of a deterministic forecast"""
    parameters: ForecastParameters
    predictions: List[Prediction]
    reference_date: date
    history_points: int
    metrics: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "parameters": self.parameters.to_dict(),
            "predictions": [p.to_dict() for p in self.predictions],
            "reference_date": self.reference_date.isoformat(),
            "history_points": self.history_points,
            "metrics": self.metrics
        }


class DeterministicForecaster:
    """
    Point forecaster for periodized spending history.

    Supports moving average, linear regression and exponential smoothing
    through interchangeable strategies.

    Example:
    ```python
    forecaster = DeterministicForecaster()

    params = ForecastParameters(
        period_type="monthly",
        algorithm="linear_regression",
        confidence_level=95
    )

    result = forecaster.forecast(window, params, now=date(2024, 7, 1))
    for p in result.predictions:
        print(p.date, p.predicted_amount)
    ```
    """

    def __init__(self, config=None, smoothing_alpha: Optional[float] = None):
        """
        Initialize forecaster.

        Args:
            config: Config class; defaults to the environment config
            smoothing_alpha: Override for the exponential smoothing constant
        """
        limits = resolve_limits(config)
        if smoothing_alpha is not None and 0.0 < smoothing_alpha < 1.0:
            self.smoothing_alpha = smoothing_alpha
        else:
            self.smoothing_alpha = limits["smoothing_alpha"]

    def strategy_for(self, parameters: ForecastParameters) -> ForecastStrategy:
        return create_strategy(parameters.algorithm, smoothing_alpha=self.smoothing_alpha)

    def forecast(
        self,
        window: Sequence[TimeSeriesPoint],
        parameters: ForecastParameters,
        now: date
    ) -> ForecastResult:
        """
        Generate predictions for the periods following ``now``.

        Args:
            window: Historical window, chronological, possibly sparse
            parameters: Validated forecast parameters
            now: Reference date; prediction k is dated now + k periods

        Returns:
            ForecastResult with one Prediction per forecast period

        Raises:
            InsufficientHistoryError: fewer than 3 historical points
        """
        if len(window) < MIN_HISTORY_POINTS:
            raise InsufficientHistoryError(MIN_HISTORY_POINTS, len(window))

        reference = to_date(now)
        amounts = [to_amount(point.amount) for point in window]
        strategy = self.strategy_for(parameters)
        periods = parameters.forecast_periods

        output = strategy.project(amounts, periods, parameters.z_score)
        logger.info(
            f"Forecasting {periods} {parameters.period_type.value} periods "
            f"with {strategy.algorithm.value} over {len(amounts)} points"
        )

        predictions = []
        for k, band in enumerate(output.bands, start=1):
            predictions.append(Prediction(
                date=reference + parameters.period_type.increment(k),
                predicted_amount=round_money(band.predicted),
                confidence_lower=round_money(band.lower),
                confidence_upper=round_money(band.upper)
            ))

        return ForecastResult(
            parameters=parameters,
            predictions=predictions,
            reference_date=reference,
            history_points=len(amounts),
            metrics={
                **output.metrics,
                "historical_periods": len(amounts),
                "forecast_periods": periods
            }
        )
