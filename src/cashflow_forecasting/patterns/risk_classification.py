"""
Risk Banding Pattern

Places a continuous score into one of five ordered risk bands.

Use cases:
- Goal risk from probability of success (percent)
- Runway risk from projected days of cash remaining
"""

import bisect
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

logger = logging.getLogger(__name__)


class RiskLevel(Enum):
    """Risk levels, most urgent first"""
    CRITICAL = "Critical"
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"
    MINIMAL = "Minimal"

    @property
    def rank(self) -> int:
        """1 for the most urgent level."""
        return list(RiskLevel).index(self) + 1

    @property
    def severity(self) -> str:
        """Alert severity used when the level is surfaced to a user."""
        if self is RiskLevel.MINIMAL:
            return "low"
        return self.name.lower()


@dataclass(frozen=True)
class RiskBand:
    """Scores in [lower, upper) map to ``level``"""
    level: RiskLevel
    lower: float
    upper: float
    summary: str = ""
    action: str = ""


@dataclass
class RiskAssessment:
    subject: str
    score: float
    level: RiskLevel
    summary: str
    action: str
    context: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "subject": self.subject,
            "score": self.score,
            "level": self.level.value,
            "rank": self.level.rank,
            "summary": self.summary,
            "action": self.action,
            "context": self.context
        }


class RiskClassifier:
    """
    Maps scores onto contiguous risk bands.

    Scores outside the banded range are pinned to its ends, so the top
    band also takes its own upper bound.

    Example:
    ```python
    classifier = create_goal_risk_classifier()
    assessment = classifier.classify(35, subject="goal-1")
    print(assessment.level.value)  # "High"
    ```
    """

    def __init__(self, bands: Sequence[RiskBand]):
        if not bands:
            raise ValueError("No risk bands configured")
        self.bands: List[RiskBand] = sorted(bands, key=lambda b: b.lower)
        self._lowers = [b.lower for b in self.bands]

        for below, above in zip(self.bands, self.bands[1:]):
            if below.upper != above.lower:
                logger.warning(
                    f"Risk bands {below.level.value} and {above.level.value} are not contiguous "
                    f"({below.upper} vs {above.lower})"
                )

    @property
    def floor(self) -> float:
        return self.bands[0].lower

    @property
    def ceiling(self) -> float:
        return self.bands[-1].upper

    def band_for(self, score: float) -> RiskBand:
        pinned = min(max(score, self.floor), self.ceiling)
        index = bisect.bisect_right(self._lowers, pinned) - 1
        return self.bands[max(index, 0)]

    def classify(
        self,
        score: float,
        subject: str = "unknown",
        context: Optional[Dict[str, Any]] = None
    ) -> RiskAssessment:
        band = self.band_for(score)
        return RiskAssessment(
            subject=subject,
            score=round(score, 2),
            level=band.level,
            summary=band.summary,
            action=band.action,
            context=context or {}
        )

    @staticmethod
    def distribution(assessments: Sequence[RiskAssessment]) -> Dict[str, Any]:
        """Share of assessments per level plus the most severe level seen."""
        total = len(assessments)
        if total == 0:
            return {"total": 0, "levels": {}, "most_severe": None}

        levels = {}
        for level in RiskLevel:
            count = sum(1 for a in assessments if a.level is level)
            levels[level.value] = {"count": count, "percentage": round(count / total * 100, 1)}

        most_severe = min((a.level for a in assessments), key=lambda level: level.rank)
        return {"total": total, "levels": levels, "most_severe": most_severe.value}


def create_goal_risk_classifier() -> RiskClassifier:
    """Goal risk from probability of success expressed as 0-100."""
    return RiskClassifier([
        RiskBand(RiskLevel.CRITICAL, 0, 20, "Goal very unlikely to be met on time",
                 "Raise monthly savings or move the target date"),
        RiskBand(RiskLevel.HIGH, 20, 40, "Goal at serious risk",
                 "Review expenses and increase contributions"),
        RiskBand(RiskLevel.MEDIUM, 40, 60, "Goal outcome uncertain",
                 "Check the savings rate every month"),
        RiskBand(RiskLevel.LOW, 60, 80, "Goal likely to be met",
                 "Keep current savings habits"),
        RiskBand(RiskLevel.MINIMAL, 80, 100, "Goal on a safe path",
                 "No action needed"),
    ])


def create_runway_risk_classifier() -> RiskClassifier:
    """Runway risk from projected days until funds are depleted."""
    return RiskClassifier([
        RiskBand(RiskLevel.CRITICAL, 0, 7, "Funds projected to run out within a week",
                 "Cut non-essential spending immediately"),
        RiskBand(RiskLevel.HIGH, 7, 14, "Funds projected to run out within two weeks",
                 "Review subscriptions and upcoming bills"),
        RiskBand(RiskLevel.MEDIUM, 14, 30, "Less than a month of runway",
                 "Consider reducing expenses"),
        RiskBand(RiskLevel.LOW, 30, 60, "Comfortable runway",
                 "Routine monitoring"),
        RiskBand(RiskLevel.MINIMAL, 60, 366, "Runway beyond two months",
                 "No action needed"),
    ])
