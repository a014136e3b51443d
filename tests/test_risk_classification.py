import pytest

from cashflow_forecasting.patterns import (
    RiskBand,
    RiskClassifier,
    RiskLevel,
    create_goal_risk_classifier,
    create_runway_risk_classifier
)


@pytest.mark.parametrize("score,level", [
    (-5, RiskLevel.CRITICAL),
    (10, RiskLevel.CRITICAL),
    (20, RiskLevel.HIGH),
    (35, RiskLevel.HIGH),
    (50, RiskLevel.MEDIUM),
    (75, RiskLevel.LOW),
    (100, RiskLevel.MINIMAL),
    (140, RiskLevel.MINIMAL),
])
def test_goal_classifier_bands(score, level):
    assert create_goal_risk_classifier().classify(score).level is level


@pytest.mark.parametrize("days,level", [
    (3, RiskLevel.CRITICAL),
    (7, RiskLevel.HIGH),
    (20, RiskLevel.MEDIUM),
    (45, RiskLevel.LOW),
    (365, RiskLevel.MINIMAL),
])
def test_runway_classifier_bands(days, level):
    assert create_runway_risk_classifier().classify(days).level is level


def test_assessment_keeps_subject_and_context():
    result = create_goal_risk_classifier().classify(35.456, subject="goal-1", context={"title": "Car"})

    assert result.subject == "goal-1"
    assert result.score == 35.46
    assert result.to_dict()["level"] == "High"
    assert result.to_dict()["rank"] == 2
    assert result.context == {"title": "Car"}


def test_risk_distribution():
    classifier = create_goal_risk_classifier()
    results = [classifier.classify(s) for s in (10, 15, 50, 90)]

    distribution = classifier.distribution(results)

    assert distribution["total"] == 4
    assert distribution["levels"]["Critical"] == {"count": 2, "percentage": 50.0}
    assert distribution["levels"]["Low"]["count"] == 0
    assert distribution["most_severe"] == "Critical"


def test_empty_distribution():
    assert create_goal_risk_classifier().distribution([]) == {
        "total": 0, "levels": {}, "most_severe": None
    }


def test_classifier_requires_bands():
    with pytest.raises(ValueError):
        RiskClassifier([])


def test_bands_are_sorted():
    classifier = RiskClassifier([
        RiskBand(RiskLevel.LOW, 50, 100),
        RiskBand(RiskLevel.HIGH, 0, 50),
    ])

    assert classifier.classify(10).level is RiskLevel.HIGH
    assert classifier.classify(100).level is RiskLevel.LOW
    assert RiskLevel.HIGH.severity == "high"
    assert RiskLevel.MINIMAL.severity == "low"
