"""
Configuration settings for the forecasting core
"""

import os

# Hard ceilings. Environment values may lower these, never raise them.
HARD_MAX_SIMULATIONS = 50000
HARD_MAX_HORIZON_DAYS = 365
HARD_MAX_STRESS_HORIZON_DAYS = 180


def _env_int(name, default):
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name, default):
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


class Config:
    """Base configuration"""
    APP_NAME = "Cash Flow Forecasting Core"

    # Monte Carlo
    DEFAULT_SIMULATIONS = _env_int('FORECAST_DEFAULT_SIMULATIONS', 10000)
    DEFAULT_HORIZON_DAYS = _env_int('FORECAST_DEFAULT_HORIZON_DAYS', 90)
    MAX_SIMULATIONS = _env_int('FORECAST_MAX_SIMULATIONS', HARD_MAX_SIMULATIONS)
    MAX_HORIZON_DAYS = _env_int('FORECAST_MAX_HORIZON_DAYS', HARD_MAX_HORIZON_DAYS)
    SIMULATION_WORKERS = _env_int('FORECAST_SIMULATION_WORKERS', min(8, os.cpu_count() or 1))
    SIMULATION_BATCH_SIZE = _env_int('FORECAST_SIMULATION_BATCH_SIZE', 1000)
    HISTOGRAM_BINS = _env_int('FORECAST_HISTOGRAM_BINS', 30)

    # Stress testing / previews
    STRESS_SIMULATIONS = _env_int('FORECAST_STRESS_SIMULATIONS', 5000)
    STRESS_MAX_HORIZON_DAYS = _env_int('FORECAST_STRESS_MAX_HORIZON_DAYS', HARD_MAX_STRESS_HORIZON_DAYS)
    QUICK_HORIZON_DAYS = _env_int('FORECAST_QUICK_HORIZON_DAYS', 30)

    # Deterministic forecasts
    DEFAULT_ALGORITHM = os.environ.get('FORECAST_DEFAULT_ALGORITHM', 'moving_average')
    DEFAULT_CONFIDENCE_LEVEL = _env_int('FORECAST_DEFAULT_CONFIDENCE_LEVEL', 95)
    SMOOTHING_ALPHA = _env_float('FORECAST_SMOOTHING_ALPHA', 0.3)

    # Goals
    VELOCITY_LOOKBACK_MONTHS = _env_int('FORECAST_VELOCITY_LOOKBACK_MONTHS', 6)
    SIMULATION_LOOKBACK_DAYS = _env_int('FORECAST_SIMULATION_LOOKBACK_DAYS', 90)


class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False


class TestingConfig(Config):
    """Testing configuration"""
    TESTING = True
    DEFAULT_SIMULATIONS = 500
    STRESS_SIMULATIONS = 200
    SIMULATION_WORKERS = 2
    SIMULATION_BATCH_SIZE = 64


# Config mapping
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}


def get_config():
    """Get config based on environment"""
    env = os.environ.get('FORECAST_ENV', 'development')
    return config.get(env, config['default'])


def resolve_limits(config_class=None):
    """
    Effective ceilings for a config class.

    Values from the environment are clamped against the hard ceilings so a
    misconfigured deployment cannot raise them.
    """
    cfg = config_class or get_config()
    max_simulations = max(1, min(int(cfg.MAX_SIMULATIONS), HARD_MAX_SIMULATIONS))
    max_horizon = max(1, min(int(cfg.MAX_HORIZON_DAYS), HARD_MAX_HORIZON_DAYS))
    stress_horizon = max(1, min(int(cfg.STRESS_MAX_HORIZON_DAYS), HARD_MAX_STRESS_HORIZON_DAYS, max_horizon))
    alpha = float(cfg.SMOOTHING_ALPHA)
    if not 0.0 < alpha < 1.0:
        alpha = 0.3
    return {
        "max_simulations": max_simulations,
        "max_horizon_days": max_horizon,
        "stress_max_horizon_days": stress_horizon,
        "default_simulations": max(1, min(int(cfg.DEFAULT_SIMULATIONS), max_simulations)),
        "default_horizon_days": max(1, min(int(cfg.DEFAULT_HORIZON_DAYS), max_horizon)),
        "stress_simulations": max(1, min(int(cfg.STRESS_SIMULATIONS), max_simulations)),
        "quick_horizon_days": max(1, min(int(cfg.QUICK_HORIZON_DAYS), max_horizon)),
        "workers": max(1, int(cfg.SIMULATION_WORKERS)),
        "batch_size": max(1, int(cfg.SIMULATION_BATCH_SIZE)),
        "histogram_bins": max(1, int(cfg.HISTOGRAM_BINS)),
        "smoothing_alpha": alpha,
    }
