"""
Forecast request parameters.

Loose caller input is coerced and validated here, before any estimator
runs.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from ..data.models import PeriodType
from ..exceptions import InvalidParameterError

CONFIDENCE_Z_SCORES = {
    80: 1.28,
    90: 1.645,
    95: 1.96,
    99: 2.576,
}


class ForecastAlgorithm(Enum):
    """Deterministic forecasting algorithms"""
    MOVING_AVERAGE = "moving_average"
    LINEAR_REGRESSION = "linear_regression"
    EXPONENTIAL_SMOOTHING = "exponential_smoothing"

    @classmethod
    def parse(cls, value: Any) -> "ForecastAlgorithm":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise InvalidParameterError(
                "algorithm", value, f"expected one of {[a.value for a in cls]}"
            ) from None


def z_score(confidence_level: int) -> float:
    """Z-score for a supported confidence level."""
    try:
        return CONFIDENCE_Z_SCORES[confidence_level]
    except KeyError:
        raise InvalidParameterError(
            "confidence_level", confidence_level,
            f"expected one of {sorted(CONFIDENCE_Z_SCORES)}"
        ) from None


def _coerce_int(field: str, value: Any) -> int:
    if isinstance(value, bool):
        raise InvalidParameterError(field, value, "expected an integer")
    try:
        as_float = float(value)
    except (TypeError, ValueError):
        raise InvalidParameterError(field, value, "expected an integer") from None
    if not as_float.is_integer():
        raise InvalidParameterError(field, value, "expected an integer")
    return int(as_float)


@dataclass(frozen=True)
class ForecastParameters:
    """Validated parameters of a deterministic forecast"""
    period_type: PeriodType = PeriodType.MONTHLY
    algorithm: ForecastAlgorithm = ForecastAlgorithm.MOVING_AVERAGE
    confidence_level: int = 95
    historical_periods: int = 12
    category: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "period_type", PeriodType.parse(self.period_type))
        object.__setattr__(self, "algorithm", ForecastAlgorithm.parse(self.algorithm))

        level = _coerce_int("confidence_level", self.confidence_level)
        z_score(level)
        object.__setattr__(self, "confidence_level", level)

        periods = _coerce_int("historical_periods", self.historical_periods)
        if periods < 1:
            raise InvalidParameterError("historical_periods", periods, "must be at least 1")
        object.__setattr__(self, "historical_periods", periods)

        if self.category is not None:
            category = str(self.category).strip()
            if not category or len(category) > 50:
                raise InvalidParameterError("category", self.category, "must be 1-50 characters")
            object.__setattr__(self, "category", category)

    @property
    def z_score(self) -> float:
        return CONFIDENCE_Z_SCORES[self.confidence_level]

    @property
    def forecast_periods(self) -> int:
        return self.period_type.forecast_periods

    @classmethod
    def from_mapping(
        cls,
        payload: Mapping[str, Any],
        default_algorithm: str = "moving_average",
        default_confidence_level: int = 95
    ) -> "ForecastParameters":
        """Build parameters from a request payload, applying defaults."""
        return cls(
            period_type=payload.get("period_type", "monthly"),
            algorithm=payload.get("algorithm", default_algorithm),
            confidence_level=payload.get("confidence_level", default_confidence_level),
            historical_periods=payload.get("historical_periods", 12),
            category=payload.get("category"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "period_type": self.period_type.value,
            "category": self.category,
            "algorithm": self.algorithm.value,
            "confidence_level": self.confidence_level,
            "historical_periods": self.historical_periods
        }
