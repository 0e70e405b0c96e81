# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Shared derivation of the four risk signals.

Both the notification pipeline and the read-only assessment preview
derive signals here, so what an operator previews is exactly what
drives alerts.
"""

from dataclasses import dataclass
from datetime import datetime

from riskwatch.utils.datetime import whole_days_between


@dataclass(frozen=True)
class RiskSignals:
    """Raw risk signals for one (student, course) pair.

    Attributes:
        inactivity_days: Whole days since the last activity, or since enrollment.
        completion_ratio: Completed lessons over course lessons, in [0, 1].
        missed_deadlines: Number of deadlines due before the evaluation time.
        engagement_score: Stored engagement scalar, 0 to 100.
    """

    inactivity_days: int
    completion_ratio: float
    missed_deadlines: int
    engagement_score: float

    def to_dict(self) -> dict:
        """Convert to a JSON-serializable dictionary."""
        return {
            "inactivity_days": self.inactivity_days,
            "completion_ratio": round(self.completion_ratio, 4),
            "missed_deadlines": self.missed_deadlines,
            "engagement_score": self.engagement_score,
        }


def inactivity_days(
    last_activity_at: datetime | None,
    enrolled_at: datetime,
    now: datetime,
) -> int:
    """Whole days since the most recent activity.

    Falls back to the enrollment time when the student has no activity.

    Args:
        last_activity_at: Timestamp of the latest activity event, if any.
        enrolled_at: When the student joined the course.
        now: Evaluation instant.

    Returns:
        Non-negative number of whole elapsed days.
    """
    reference = last_activity_at if last_activity_at is not None else enrolled_at
    return whole_days_between(reference, now)


def completion_ratio(completed_lessons: int, total_lessons: int) -> float:
    """Fraction of course lessons completed.

    A course without lessons yields 1.0 so it never reads as low completion.
    """
    if total_lessons <= 0:
        return 1.0
    return min(completed_lessons / total_lessons, 1.0)


def derive_signals(
    *,
    enrolled_at: datetime,
    last_activity_at: datetime | None,
    completed_lessons: int,
    total_lessons: int,
    overdue_deadlines: int,
    engagement_score: float | None,
    now: datetime,
) -> RiskSignals:
    """Derive the four signals from raw store values.

    Args:
        enrolled_at: Enrollment timestamp.
        last_activity_at: Latest activity timestamp, if any.
        completed_lessons: Completed lesson count for the enrollment.
        total_lessons: Lesson count of the course.
        overdue_deadlines: Deadlines due before now.
        engagement_score: Stored progress scalar; None when no record exists.
        now: Evaluation instant.

    Returns:
        RiskSignals for the pair.
    """
    return RiskSignals(
        inactivity_days=inactivity_days(last_activity_at, enrolled_at, now),
        completion_ratio=completion_ratio(completed_lessons, total_lessons),
        missed_deadlines=max(overdue_deadlines, 0),
        engagement_score=float(engagement_score) if engagement_score is not None else 0.0,
    )
