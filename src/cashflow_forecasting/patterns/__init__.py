"""
Patterns Module

Analytical patterns shared by the goal engine and the alert generator.
"""

from .risk_classification import (
    RiskAssessment,
    RiskBand,
    RiskClassifier,
    RiskLevel,
    create_goal_risk_classifier,
    create_runway_risk_classifier
)

__all__ = [
    'RiskAssessment',
    'RiskBand',
    'RiskClassifier',
    'RiskLevel',
    'create_goal_risk_classifier',
    'create_runway_risk_classifier',
]
