# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for signal derivation."""

from datetime import datetime, timedelta

from riskwatch.core.risk.signals import completion_ratio, derive_signals, inactivity_days


class TestInactivityDays:
    """Tests for inactivity_days."""

    def test_uses_last_activity(self, fixed_now):
        enrolled = fixed_now - timedelta(days=60)
        last = fixed_now - timedelta(days=3, hours=23)

        assert inactivity_days(last, enrolled, fixed_now) == 3

    def test_falls_back_to_enrollment(self, fixed_now):
        enrolled = fixed_now - timedelta(days=20)

        assert inactivity_days(None, enrolled, fixed_now) == 20

    def test_future_activity_counts_as_zero(self, fixed_now):
        enrolled = fixed_now - timedelta(days=20)

        assert inactivity_days(fixed_now + timedelta(hours=1), enrolled, fixed_now) == 0

    def test_naive_timestamps_are_treated_as_utc(self, fixed_now):
        naive = datetime(2025, 3, 5, 12, 0)

        assert inactivity_days(naive, naive, fixed_now) == 10


class TestCompletionRatio:
    """Tests for completion_ratio."""

    def test_ratio(self):
        assert completion_ratio(3, 10) == 0.3

    def test_course_without_lessons_is_complete(self):
        assert completion_ratio(0, 0) == 1.0

    def test_ratio_is_capped(self):
        assert completion_ratio(12, 10) == 1.0


class TestDeriveSignals:
    """Tests for derive_signals."""

    def test_missing_progress_record_means_zero_engagement(self, fixed_now):
        signals = derive_signals(
            enrolled_at=fixed_now - timedelta(days=2),
            last_activity_at=None,
            completed_lessons=0,
            total_lessons=4,
            overdue_deadlines=0,
            engagement_score=None,
            now=fixed_now,
        )

        assert signals.engagement_score == 0.0
        assert signals.inactivity_days == 2
        assert signals.completion_ratio == 0.0
        assert signals.missed_deadlines == 0

    def test_values_pass_through(self, fixed_now):
        signals = derive_signals(
            enrolled_at=fixed_now - timedelta(days=40),
            last_activity_at=fixed_now - timedelta(days=10),
            completed_lessons=5,
            total_lessons=10,
            overdue_deadlines=3,
            engagement_score=50,
            now=fixed_now,
        )

        assert signals.to_dict() == {
            "inactivity_days": 10,
            "completion_ratio": 0.5,
            "missed_deadlines": 3,
            "engagement_score": 50.0,
        }
