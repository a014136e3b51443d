"""
Simulation Module

Monte Carlo cash-flow simulation, stress tests and closed-form previews.
"""

from .model import (
    CashFlowModel,
    OneTimeImpact,
    ScenarioAdjustments,
    ShockSchedule,
    simulate_path
)
from .engine import (
    MonteCarloSimulator,
    SimulationRequest,
    SimulationResult,
    FanChartPoint,
    RunwayPercentiles,
    HistogramBin
)
from .stress import (
    StressTestEngine,
    StressScenario,
    StressScenarioResult,
    StressTestReport,
    ShockType,
    DEFAULT_SCENARIOS
)
from .quick import QuickSimulation, QuickSimulationResult

__all__ = [
    'CashFlowModel',
    'OneTimeImpact',
    'ScenarioAdjustments',
    'ShockSchedule',
    'simulate_path',
    'MonteCarloSimulator',
    'SimulationRequest',
    'SimulationResult',
    'FanChartPoint',
    'RunwayPercentiles',
    'HistogramBin',
    'StressTestEngine',
    'StressScenario',
    'StressScenarioResult',
    'StressTestReport',
    'ShockType',
    'DEFAULT_SCENARIOS',
    'QuickSimulation',
    'QuickSimulationResult',
]
