"""
Small numeric helpers shared by the estimators.

Every ratio goes through ``safe_divide`` so degenerate inputs yield a
defined fallback instead of NaN or infinity.
"""

from typing import Sequence, Tuple

import numpy as np


def safe_divide(numerator: float, denominator: float, default: float = 0.0) -> float:
    """Divide, returning ``default`` for a zero or non-finite denominator."""
    if denominator == 0 or not np.isfinite(denominator):
        return default
    result = numerator / denominator
    return float(result) if np.isfinite(result) else default


def mean(values: Sequence[float]) -> float:
    if len(values) == 0:
        return 0.0
    return float(np.mean(np.asarray(values, dtype=float)))


def population_std(values: Sequence[float]) -> float:
    if len(values) < 2:
        return 0.0
    return float(np.std(np.asarray(values, dtype=float)))


def sample_std(values: Sequence[float]) -> float:
    if len(values) < 2:
        return 0.0
    return float(np.std(np.asarray(values, dtype=float), ddof=1))


def ols_fit(y: Sequence[float], start_index: int = 0) -> Tuple[float, float]:
    """
    Ordinary least squares of ``y`` against consecutive indices.

    Args:
        y: Observed values
        start_index: Index assigned to the first observation

    Returns:
        (slope, intercept); slope is 0 when fewer than two points
    """
    n = len(y)
    if n == 0:
        return 0.0, 0.0
    y_arr = np.asarray(y, dtype=float)
    x = np.arange(start_index, start_index + n, dtype=float)

    x_mean = np.mean(x)
    y_mean = np.mean(y_arr)

    numerator = np.sum((x - x_mean) * (y_arr - y_mean))
    denominator = np.sum((x - x_mean) ** 2)

    slope = safe_divide(float(numerator), float(denominator))
    intercept = float(y_mean - slope * x_mean)
    return slope, intercept


def round_money(value: float) -> float:
    return round(float(value), 2)
