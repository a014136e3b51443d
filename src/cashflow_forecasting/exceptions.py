"""
Exceptions for the forecasting core.

Parameter problems fail fast. Insufficient data and non-viable goal
forecasts are normally reported as result states instead; see
``GoalForecastStatus`` and ``VelocityMetrics.has_enough_data``.
"""

from typing import Any, Optional


class ForecastingError(ValueError):
    """Base class for all forecasting core errors."""


class InsufficientHistoryError(ForecastingError):
    """Raised when a historical window is too short to forecast from."""

    def __init__(self, required: int, available: int, message: Optional[str] = None):
        self.required = required
        self.available = available
        super().__init__(
            message or
            f"Insufficient historical data for forecasting "
            f"(minimum {required} periods required, got {available})"
        )


class InvalidParameterError(ForecastingError):
    """Raised when a request parameter is out of range or unknown."""

    def __init__(self, field: str, value: Any, reason: str):
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid {field}={value!r}: {reason}")


class SimulationCancelledError(ForecastingError):
    """Raised when a running simulation observes its cancel event."""

    def __init__(self, completed_paths: int, total_paths: int):
        self.completed_paths = completed_paths
        self.total_paths = total_paths
        super().__init__(
            f"Simulation cancelled after {completed_paths}/{total_paths} paths"
        )
