"""
Forecasting Module

Deterministic forecasts, seasonal factors and aggregate summaries.
"""

from .parameters import (
    ForecastAlgorithm,
    ForecastParameters,
    CONFIDENCE_Z_SCORES,
    z_score
)
from .strategies import (
    ForecastStrategy,
    MovingAverageStrategy,
    LinearRegressionStrategy,
    ExponentialSmoothingStrategy,
    create_strategy
)
from .forecaster import (
    DeterministicForecaster,
    ForecastResult,
    Prediction
)
from .seasonal import SeasonalAnalyzer, SeasonalFactor
from .summarizer import AggregateForecast, ForecastTrend, summarize_predictions

__all__ = [
    'ForecastAlgorithm',
    'ForecastParameters',
    'CONFIDENCE_Z_SCORES',
    'z_score',
    'ForecastStrategy',
    'MovingAverageStrategy',
    'LinearRegressionStrategy',
    'ExponentialSmoothingStrategy',
    'create_strategy',
    'DeterministicForecaster',
    'ForecastResult',
    'Prediction',
    'SeasonalAnalyzer',
    'SeasonalFactor',
    'AggregateForecast',
    'ForecastTrend',
    'summarize_predictions',
]
