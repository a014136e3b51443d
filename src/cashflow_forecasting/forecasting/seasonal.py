"""
Seasonal Analyzer

Derives per-calendar-month multiplicative factors from a historical
window, independent of year.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Sequence

import numpy as np

from ..data.models import TimeSeriesPoint
from .statistics import safe_divide

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SeasonalFactor:
    """Multiplicative factor for one calendar month"""
    month: int
    factor: float

    def to_dict(self) -> Dict[str, Any]:
        return {"month": self.month, "factor": self.factor}


class SeasonalAnalyzer:
    """
    Calculates monthly seasonal factors.

    The overall average spreads the window's total across all 12 month
    slots; a month with no observations takes that overall average, so
    its factor is 1.0.

    Example:
    ```python
    analyzer = SeasonalAnalyzer()
    factors = analyzer.detect_seasonal_factors(window)
    december = factors[11].factor
    ```
    """

    def __init__(self, significance_variance: float = 0.01):
        """
        Args:
            significance_variance: Minimum variance across factors for the
                pattern to count as seasonal
        """
        self.significance_variance = significance_variance

    def detect_seasonal_factors(self, window: Sequence[TimeSeriesPoint]) -> List[SeasonalFactor]:
        """Always returns exactly 12 factors, January first."""
        monthly_totals = np.zeros(12)
        monthly_counts = np.zeros(12, dtype=int)

        for point in window:
            idx = point.period_start.month - 1
            monthly_totals[idx] += point.amount
            monthly_counts[idx] += 1

        overall_average = float(monthly_totals.sum()) / 12

        factors = []
        for i in range(12):
            if monthly_counts[i] > 0:
                monthly_avg = float(monthly_totals[i]) / int(monthly_counts[i])
            else:
                monthly_avg = overall_average
            factor = safe_divide(monthly_avg, overall_average, default=1.0)
            factors.append(SeasonalFactor(month=i + 1, factor=round(factor, 2)))

        if overall_average == 0:
            logger.warning("Seasonal analysis on a zero-total window; all factors default to 1.0")

        return factors

    def is_significant(self, factors: Sequence[SeasonalFactor]) -> bool:
        """Whether the factors vary enough to be worth applying."""
        if not factors:
            return False
        return float(np.var([f.factor for f in factors])) > self.significance_variance
