# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for RiskDetectionService."""

import asyncio
from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from riskwatch.core.risk.base import StudentInfo
from riskwatch.core.risk.classifier import RiskTier
from riskwatch.core.risk.exceptions import AlreadyNotifiedError, NotFoundError
from riskwatch.core.risk.service import (
    RiskDetectionService,
    RiskRunSummary,
    StudentOutcome,
)


def add_high_risk(store, student_id, course_id, days_ago, **overrides):
    """Inactive for 20 days, nothing completed, engagement 10."""
    values = dict(
        enrolled_at=days_ago(30),
        completed=0,
        total=10,
        last_activity=days_ago(20),
        engagement=10.0,
    )
    values.update(overrides)
    store.add_student(student_id, course_id, **values)


def add_low_risk(store, student_id, course_id, days_ago):
    """Active five days ago with one missed deadline."""
    store.add_student(
        student_id,
        course_id,
        enrolled_at=days_ago(30),
        completed=8,
        total=10,
        last_activity=days_ago(5),
        deadlines=[days_ago(1)],
        engagement=80.0,
    )


def add_medium_risk(store, student_id, course_id, days_ago):
    """Inactive for 10 days with three missed deadlines."""
    store.add_student(
        student_id,
        course_id,
        enrolled_at=days_ago(30),
        completed=5,
        total=10,
        last_activity=days_ago(10),
        deadlines=[days_ago(3), days_ago(2), days_ago(1)],
        engagement=50.0,
    )


class TestRiskRunSummary:
    """Tests for RiskRunSummary."""

    def test_record_and_to_dict(self, fixed_now):
        summary = RiskRunSummary(course_id="c1", started_at=fixed_now, total=3)
        summary.record(StudentOutcome.NOTIFIED)
        summary.record(StudentOutcome.FAILED)
        summary.record(StudentOutcome.FAILED)

        data = summary.to_dict()

        assert data["notified"] == 1
        assert data["failed"] == 2
        assert data["skipped_low"] == 0
        assert data["finished_at"] is None
        assert data["duration_seconds"] == 0.0


class TestServiceConstruction:
    """Tests for service construction."""

    def test_rejects_zero_concurrency(self, store, directory, push_channel):
        with pytest.raises(ValueError):
            RiskDetectionService(store, directory, push_channel, max_concurrency=0)


@pytest.mark.asyncio
class TestAnalyzeStudentRisk:
    """Tests for analyze_student_risk."""

    async def test_high_risk_assessment(
        self, risk_service, store, sample_student_id, sample_course_id, days_ago, fixed_now
    ):
        add_high_risk(store, sample_student_id, sample_course_id, days_ago)

        assessment = await risk_service.analyze_student_risk(sample_student_id, sample_course_id)

        assert assessment.tier == RiskTier.HIGH
        assert assessment.score == 7
        assert assessment.evaluated_at == fixed_now

    async def test_unknown_enrollment(self, risk_service, sample_course_id):
        with pytest.raises(NotFoundError):
            await risk_service.analyze_student_risk("nobody", sample_course_id)


@pytest.mark.asyncio
class TestProcessRiskNotifications:
    """Tests for process_risk_notifications."""

    async def test_high_risk_student_is_notified(
        self,
        risk_service,
        store,
        directory,
        push_channel,
        sample_student_id,
        sample_course_id,
        sample_instructor_id,
        days_ago,
        fixed_now,
    ):
        directory.students[sample_student_id] = StudentInfo(
            id=sample_student_id, name="Ada Lovelace", email="ada@example.com"
        )
        add_high_risk(store, sample_student_id, sample_course_id, days_ago)

        summary = await risk_service.process_risk_notifications(sample_course_id)

        assert summary.total == 1
        assert summary.notified == 1
        assert summary.failed == 0
        assert summary.timed_out is False

        student_rows = store.notifications_for(sample_student_id)
        instructor_rows = store.notifications_for(sample_instructor_id)
        assert len(student_rows) == 1
        assert len(instructor_rows) == 1
        assert student_rows[0].notification_type == "RISK_WARNING"
        assert instructor_rows[0].notification_type == "STUDENT_AT_RISK"
        assert instructor_rows[0].message.startswith("Ada Lovelace is at HIGH risk in Algebra I")
        assert store.progress[(sample_student_id, sample_course_id)].last_risk_notification == fixed_now
        assert {recipient for recipient, _ in push_channel.sent} == {
            sample_student_id,
            sample_instructor_id,
        }

    async def test_low_risk_student_is_never_notified(
        self, risk_service, store, push_channel, sample_student_id, sample_course_id, days_ago
    ):
        add_low_risk(store, sample_student_id, sample_course_id, days_ago)

        summary = await risk_service.process_risk_notifications(sample_course_id)

        assert summary.skipped_low == 1
        assert store.notifications == []
        assert push_channel.sent == []

    async def test_medium_risk_student_is_notified(
        self, risk_service, store, sample_student_id, sample_course_id, days_ago
    ):
        add_medium_risk(store, sample_student_id, sample_course_id, days_ago)

        summary = await risk_service.process_risk_notifications(sample_course_id)

        assert summary.notified == 1
        metadata = store.notifications_for(sample_student_id)[0].metadata
        assert metadata["risk_tier"] == "MEDIUM"
        assert metadata["triggered_factors"] == ["inactivity", "deadlines"]

    async def test_second_same_day_run_is_throttled(
        self, risk_service, store, sample_student_id, sample_course_id, days_ago
    ):
        add_high_risk(store, sample_student_id, sample_course_id, days_ago)

        first = await risk_service.process_risk_notifications(sample_course_id)
        second = await risk_service.process_risk_notifications(sample_course_id)

        assert first.notified == 1
        assert second.notified == 0
        assert second.skipped_throttled == 1
        assert len(store.notifications_for(sample_student_id)) == 1

    async def test_marker_seven_days_old_is_due(
        self, risk_service, store, sample_student_id, sample_course_id, days_ago
    ):
        add_high_risk(
            store, sample_student_id, sample_course_id, days_ago, last_notified=days_ago(7)
        )

        summary = await risk_service.process_risk_notifications(sample_course_id)

        assert summary.notified == 1

    async def test_marker_six_days_old_is_throttled(
        self, risk_service, store, sample_student_id, sample_course_id, days_ago
    ):
        add_high_risk(
            store, sample_student_id, sample_course_id, days_ago, last_notified=days_ago(6)
        )

        summary = await risk_service.process_risk_notifications(sample_course_id)

        assert summary.skipped_throttled == 1
        assert store.notifications == []

    async def test_missing_progress_record_is_created(
        self, risk_service, store, sample_student_id, sample_course_id, days_ago, fixed_now
    ):
        add_high_risk(store, sample_student_id, sample_course_id, days_ago, engagement=None)

        summary = await risk_service.process_risk_notifications(sample_course_id)

        assert summary.notified == 1
        record = store.progress[(sample_student_id, sample_course_id)]
        assert record.last_risk_notification == fixed_now
        assert record.engagement_score == 0.0

    async def test_one_failure_does_not_block_others(
        self, risk_service, store, sample_course_id, days_ago
    ):
        for student_id in ("s1", "s2", "s3"):
            add_high_risk(store, student_id, sample_course_id, days_ago)
        store.failing_reads.add("s2")

        summary = await risk_service.process_risk_notifications(sample_course_id)

        assert summary.notified == 2
        assert summary.failed == 1
        assert store.notifications_for("s2") == []
        assert len(store.notifications_for("s1")) == 1
        assert len(store.notifications_for("s3")) == 1

    async def test_write_failure_leaves_student_retryable(
        self, risk_service, store, sample_student_id, sample_course_id, days_ago
    ):
        add_high_risk(store, sample_student_id, sample_course_id, days_ago)
        store.failing_writes.add(sample_student_id)

        failed = await risk_service.process_risk_notifications(sample_course_id)
        store.failing_writes.clear()
        retried = await risk_service.process_risk_notifications(sample_course_id)

        assert failed.failed == 1
        assert retried.notified == 1

    async def test_push_failure_still_counts_as_notified(
        self,
        risk_service,
        store,
        push_channel,
        sample_student_id,
        sample_course_id,
        sample_instructor_id,
        days_ago,
    ):
        add_high_risk(store, sample_student_id, sample_course_id, days_ago)
        push_channel.failing_recipients.update({sample_student_id, sample_instructor_id})

        summary = await risk_service.process_risk_notifications(sample_course_id)

        assert summary.notified == 1
        assert len(store.notifications) == 2

    async def test_overlapping_run_counts_as_throttled(
        self, risk_service, store, sample_student_id, sample_course_id, days_ago
    ):
        add_high_risk(store, sample_student_id, sample_course_id, days_ago)
        store.record_risk_notifications = AsyncMock(
            side_effect=AlreadyNotifiedError("Already notified")
        )

        summary = await risk_service.process_risk_notifications(sample_course_id)

        assert summary.skipped_throttled == 1
        assert summary.failed == 0

    async def test_unexpected_error_counts_as_failed(
        self, risk_service, store, directory, sample_student_id, sample_course_id, days_ago
    ):
        add_high_risk(store, sample_student_id, sample_course_id, days_ago)
        directory.get_student = AsyncMock(side_effect=RuntimeError("boom"))

        summary = await risk_service.process_risk_notifications(sample_course_id)

        assert summary.failed == 1
        assert store.notifications == []

    async def test_unknown_course_raises(self, risk_service):
        with pytest.raises(NotFoundError):
            await risk_service.process_risk_notifications("missing-course")

    async def test_empty_course(self, risk_service, sample_course_id):
        summary = await risk_service.process_risk_notifications(sample_course_id)

        assert summary.total == 0
        assert summary.finished_at is not None

    async def test_duration_uses_injected_clock(
        self, store, directory, push_channel, sample_course_id, fixed_now
    ):
        times = iter([fixed_now, fixed_now + timedelta(seconds=3)])
        service = RiskDetectionService(
            store, directory, push_channel, clock=lambda: next(times)
        )

        summary = await service.process_risk_notifications(sample_course_id)

        assert summary.started_at == fixed_now
        assert summary.finished_at == fixed_now + timedelta(seconds=3)
        assert summary.duration_seconds == 3.0

    async def test_fixed_clock_gives_zero_duration(self, risk_service, sample_course_id):
        summary = await risk_service.process_risk_notifications(sample_course_id)

        assert summary.duration_seconds == 0.0

    async def test_concurrency_is_bounded(self, risk_service, store, sample_course_id, days_ago):
        for i in range(12):
            add_low_risk(store, f"s{i}", sample_course_id, days_ago)
        store.read_delay = 0.01

        summary = await risk_service.process_risk_notifications(sample_course_id)

        assert summary.skipped_low == 12
        assert 1 <= store.max_active_reads <= risk_service.max_concurrency

    async def test_course_timeout_marks_unfinished_students_failed(
        self, store, directory, push_channel, sample_course_id, days_ago, fixed_now
    ):
        service = RiskDetectionService(
            store,
            directory,
            push_channel,
            max_concurrency=2,
            course_timeout_seconds=0.05,
            clock=lambda: fixed_now,
        )
        for student_id in ("s1", "s2", "s3"):
            add_high_risk(store, student_id, sample_course_id, days_ago)
        store.read_delay = 1.0

        summary = await service.process_risk_notifications(sample_course_id)

        assert summary.timed_out is True
        assert summary.failed == 3
        assert summary.notified == 0
        assert store.notifications == []

    async def test_cancelled_scan_stops_student_pipelines(
        self, risk_service, store, push_channel, sample_course_id, days_ago
    ):
        for student_id in ("s1", "s2", "s3"):
            add_high_risk(store, student_id, sample_course_id, days_ago)
        store.read_delay = 0.2

        scan = asyncio.create_task(risk_service.process_risk_notifications(sample_course_id))
        await asyncio.sleep(0.05)
        scan.cancel()

        with pytest.raises(asyncio.CancelledError):
            await scan
        await asyncio.sleep(0.3)

        assert store.notifications == []
        assert push_channel.sent == []
        assert store.active_reads == 0

    async def test_metrics_are_recorded(
        self, risk_service, store, metrics, sample_course_id, days_ago
    ):
        add_high_risk(store, "s1", sample_course_id, days_ago)
        add_low_risk(store, "s2", sample_course_id, days_ago)

        await risk_service.process_risk_notifications(sample_course_id)

        registry = metrics.registry
        assert registry.get_sample_value(
            "riskwatch_risk_students_total", {"outcome": "notified"}
        ) == 1.0
        assert registry.get_sample_value(
            "riskwatch_risk_students_total", {"outcome": "skipped_low"}
        ) == 1.0
        assert registry.get_sample_value(
            "riskwatch_risk_scans_total", {"status": "completed"}
        ) == 1.0
        assert registry.get_sample_value(
            "riskwatch_risk_push_total", {"status": "sent"}
        ) == 2.0


@pytest.mark.asyncio
class TestAssessCourse:
    """Tests for the read-only course assessment."""

    async def test_assesses_without_notifying(
        self, risk_service, store, push_channel, sample_course_id, days_ago
    ):
        add_high_risk(store, "s1", sample_course_id, days_ago)
        add_medium_risk(store, "s2", sample_course_id, days_ago)
        add_low_risk(store, "s3", sample_course_id, days_ago)

        assessments = await risk_service.assess_course(sample_course_id)

        assert [a.tier for a in assessments] == [RiskTier.HIGH, RiskTier.MEDIUM, RiskTier.LOW]
        assert store.notifications == []
        assert push_channel.sent == []

    async def test_failed_students_are_left_out(
        self, risk_service, store, sample_course_id, days_ago
    ):
        add_high_risk(store, "s1", sample_course_id, days_ago)
        add_low_risk(store, "s2", sample_course_id, days_ago)
        store.failing_reads.add("s1")

        assessments = await risk_service.assess_course(sample_course_id)

        assert [a.student_id for a in assessments] == ["s2"]

    async def test_unexpected_error_is_left_out(
        self, risk_service, store, sample_course_id, days_ago
    ):
        for student_id in ("s1", "s2", "s3"):
            add_low_risk(store, student_id, sample_course_id, days_ago)
        read_enrollment = store.get_enrollment_snapshot

        async def flaky_read(student_id, course_id):
            if student_id == "s2":
                raise RuntimeError("driver hiccup")
            return await read_enrollment(student_id, course_id)

        store.get_enrollment_snapshot = flaky_read

        assessments = await risk_service.assess_course(sample_course_id)

        assert [a.student_id for a in assessments] == ["s1", "s3"]

    async def test_unknown_course_raises(self, risk_service):
        with pytest.raises(NotFoundError):
            await risk_service.assess_course("missing-course")
