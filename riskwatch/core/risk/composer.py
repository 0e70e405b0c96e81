# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Notification text for at-risk students.

Two audiences get different wording for the same assessment: the
student an encouraging nudge, the instructor an operational alert.
"""

from dataclasses import dataclass

from riskwatch.core.risk.classifier import RiskAssessment, RiskFactor

STUDENT_TITLE = "Course Progress Alert"
INSTRUCTOR_TITLE = "Student Risk Alert"

UNKNOWN_STUDENT_NAME = "A student"


@dataclass(frozen=True)
class RiskMessages:
    """Composed message bodies for one assessment."""

    student: str
    instructor: str


def describe_factor(factor: RiskFactor, assessment: RiskAssessment) -> str:
    """Human-readable description of one triggered factor."""
    signals = assessment.signals
    if factor == RiskFactor.INACTIVITY:
        return f"{signals.inactivity_days} days of inactivity"
    if factor == RiskFactor.COMPLETION:
        return "low completion rate"
    if factor == RiskFactor.DEADLINES:
        return f"{signals.missed_deadlines} missed deadlines"
    return "low engagement"


def compose_risk_messages(
    assessment: RiskAssessment,
    course_title: str,
    student_name: str | None,
) -> RiskMessages:
    """Render student and instructor messages.

    Args:
        assessment: Assessment with at least one triggered factor.
        course_title: Title of the course.
        student_name: Student display name; a generic label is used if missing.

    Returns:
        RiskMessages with both bodies.

    Raises:
        ValueError: If the assessment has no triggered factors.
    """
    if not assessment.factors:
        raise ValueError("Cannot compose risk messages without triggered factors")

    factors = ", ".join(describe_factor(f, assessment) for f in assessment.factors)
    name = student_name or UNKNOWN_STUDENT_NAME

    return RiskMessages(
        student=(
            f"Your progress in {course_title} needs attention due to: {factors}. "
            "Let's work together to get back on track!"
        ),
        instructor=(
            f"{name} is at {assessment.tier.value} risk in {course_title} due to: "
            f"{factors}. Consider reaching out to provide support."
        ),
    )
