# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Risk classification from raw signals.

A fixed weighted-score table, no I/O. Factor order is stable because the
composed messages list factors in this order.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from riskwatch.core.risk.signals import RiskSignals
from riskwatch.utils.datetime import format_iso

# Scoring policy. Fixed, not configuration.
INACTIVITY_SEVERE_DAYS = 14
INACTIVITY_WARNING_DAYS = 7
LOW_COMPLETION_RATIO = 0.3
MISSED_DEADLINES_SEVERE = 2
LOW_ENGAGEMENT_SCORE = 30

HIGH_RISK_SCORE = 6
MEDIUM_RISK_SCORE = 3


class RiskTier(str, Enum):
    """Risk tier assigned by the classifier."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class RiskFactor(str, Enum):
    """Named contributing factors, declared in reporting order."""

    INACTIVITY = "inactivity"
    COMPLETION = "completion"
    DEADLINES = "deadlines"
    ENGAGEMENT = "engagement"


@dataclass(frozen=True)
class RiskClassification:
    """Classifier output.

    Attributes:
        score: Weighted total.
        tier: Tier derived from the score.
        factors: Contributing factors in fixed order.
    """

    score: int
    tier: RiskTier
    factors: tuple[RiskFactor, ...]


@dataclass
class RiskAssessment:
    """Transient per-run assessment of one student in one course.

    Never persisted.
    """

    student_id: str
    course_id: str
    tier: RiskTier
    score: int
    factors: list[RiskFactor]
    signals: RiskSignals
    last_notified: datetime | None = None
    evaluated_at: datetime | None = None

    def to_dict(self) -> dict:
        """Convert to a JSON-serializable dictionary."""
        return {
            "student_id": self.student_id,
            "course_id": self.course_id,
            "risk_tier": self.tier.value,
            "score": self.score,
            "triggered_factors": [f.value for f in self.factors],
            "signals": self.signals.to_dict(),
            "last_notified": format_iso(self.last_notified),
            "evaluated_at": format_iso(self.evaluated_at),
        }


def tier_for_score(score: int) -> RiskTier:
    """Map a weighted score to a tier."""
    if score >= HIGH_RISK_SCORE:
        return RiskTier.HIGH
    if score >= MEDIUM_RISK_SCORE:
        return RiskTier.MEDIUM
    return RiskTier.LOW


def classify_risk(signals: RiskSignals) -> RiskClassification:
    """Score the signals and assign a risk tier.

    Scoring:
        inactivity > 14 days: +3, 8 to 14 days: +2
        completion below 0.3: +2
        more than 2 missed deadlines: +3, 1 or 2: +1
        engagement below 30: +2

    Args:
        signals: Raw signals for one pair.

    Returns:
        RiskClassification with score, tier and ordered factors.
    """
    score = 0
    factors: list[RiskFactor] = []

    if signals.inactivity_days > INACTIVITY_SEVERE_DAYS:
        score += 3
        factors.append(RiskFactor.INACTIVITY)
    elif signals.inactivity_days > INACTIVITY_WARNING_DAYS:
        score += 2
        factors.append(RiskFactor.INACTIVITY)

    if signals.completion_ratio < LOW_COMPLETION_RATIO:
        score += 2
        factors.append(RiskFactor.COMPLETION)

    if signals.missed_deadlines > MISSED_DEADLINES_SEVERE:
        score += 3
        factors.append(RiskFactor.DEADLINES)
    elif signals.missed_deadlines > 0:
        score += 1
        factors.append(RiskFactor.DEADLINES)

    if signals.engagement_score < LOW_ENGAGEMENT_SCORE:
        score += 2
        factors.append(RiskFactor.ENGAGEMENT)

    return RiskClassification(score=score, tier=tier_for_score(score), factors=tuple(factors))
