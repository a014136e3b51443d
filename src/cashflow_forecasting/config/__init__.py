"""
Configuration for the forecasting core.
"""

from .settings import (
    Config,
    DevelopmentConfig,
    ProductionConfig,
    TestingConfig,
    HARD_MAX_SIMULATIONS,
    HARD_MAX_HORIZON_DAYS,
    HARD_MAX_STRESS_HORIZON_DAYS,
    get_config,
    resolve_limits
)

__all__ = [
    'Config',
    'DevelopmentConfig',
    'ProductionConfig',
    'TestingConfig',
    'HARD_MAX_SIMULATIONS',
    'HARD_MAX_HORIZON_DAYS',
    'HARD_MAX_STRESS_HORIZON_DAYS',
    'get_config',
    'resolve_limits',
]
