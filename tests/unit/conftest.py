# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""In-memory collaborators for risk pipeline unit tests."""

import asyncio
from datetime import datetime, timedelta
from typing import Any
from uuid import uuid4

import pytest
from prometheus_client import CollectorRegistry

from riskwatch.core.risk.base import (
    CourseDirectory,
    CourseInfo,
    EnrollmentSnapshot,
    NotificationDraft,
    ProgressSnapshot,
    RiskDataStore,
    StoredNotification,
    StudentInfo,
)
from riskwatch.core.risk.exceptions import (
    AlreadyNotifiedError,
    PushDeliveryError,
    TransientStoreError,
)
from riskwatch.core.risk.service import RiskDetectionService
from riskwatch.infrastructure.notifications.channels.base import (
    BaseChannel,
    ChannelResult,
    ChannelType,
)
from riskwatch.infrastructure.telemetry.metrics import RiskMetrics


class InMemoryRiskStore(RiskDataStore):
    """Risk data store holding everything in dictionaries."""

    def __init__(self) -> None:
        self.enrollments: dict[tuple[str, str], EnrollmentSnapshot] = {}
        self.activity: dict[tuple[str, str], datetime] = {}
        self.deadlines: dict[tuple[str, str], list[datetime]] = {}
        self.progress: dict[tuple[str, str], ProgressSnapshot] = {}
        self.notifications: list[StoredNotification] = []
        self.failing_reads: set[str] = set()
        self.failing_writes: set[str] = set()
        self.read_delay: float = 0.0
        self.active_reads = 0
        self.max_active_reads = 0

    def add_student(
        self,
        student_id: str,
        course_id: str,
        *,
        enrolled_at: datetime,
        completed: int = 10,
        total: int = 10,
        last_activity: datetime | None = None,
        deadlines: list[datetime] | None = None,
        engagement: float | None = 100.0,
        last_notified: datetime | None = None,
    ) -> None:
        key = (student_id, course_id)
        self.enrollments[key] = EnrollmentSnapshot(
            student_id=student_id,
            course_id=course_id,
            enrolled_at=enrolled_at,
            completed_lessons=completed,
            total_lessons=total,
        )
        if last_activity is not None:
            self.activity[key] = last_activity
        self.deadlines[key] = list(deadlines or [])
        if engagement is not None:
            self.progress[key] = ProgressSnapshot(
                engagement_score=engagement,
                last_risk_notification=last_notified,
            )

    def notifications_for(self, recipient_id: str) -> list[StoredNotification]:
        return [n for n in self.notifications if n.recipient_id == recipient_id]

    async def _read(self, student_id: str) -> None:
        self.active_reads += 1
        self.max_active_reads = max(self.max_active_reads, self.active_reads)
        try:
            if self.read_delay:
                await asyncio.sleep(self.read_delay)
            if student_id in self.failing_reads:
                raise TransientStoreError(f"Read failed for {student_id}")
        finally:
            self.active_reads -= 1

    async def list_course_ids(self) -> list[str]:
        return sorted({course_id for _, course_id in self.enrollments})

    async def list_enrollment_student_ids(self, course_id: str) -> list[str]:
        return [sid for sid, cid in self.enrollments if cid == course_id]

    async def get_enrollment_snapshot(self, student_id, course_id):
        await self._read(student_id)
        return self.enrollments.get((student_id, course_id))

    async def get_last_activity_at(self, student_id, course_id):
        return self.activity.get((student_id, course_id))

    async def count_overdue_deadlines(self, student_id, course_id, now):
        return sum(1 for due in self.deadlines.get((student_id, course_id), []) if due < now)

    async def get_progress_record(self, student_id, course_id):
        return self.progress.get((student_id, course_id))

    async def record_risk_notifications(
        self,
        *,
        student_id: str,
        course_id: str,
        student_draft: NotificationDraft,
        instructor_draft: NotificationDraft,
        notified_at: datetime,
        throttle_cutoff: datetime,
    ):
        if student_id in self.failing_writes:
            raise TransientStoreError(f"Write failed for {student_id}")

        key = (student_id, course_id)
        record = self.progress.get(key)
        marker = record.last_risk_notification if record else None
        if marker is not None and marker > throttle_cutoff:
            raise AlreadyNotifiedError("Already notified")

        stored = tuple(
            StoredNotification(
                id=str(uuid4()),
                recipient_id=draft.recipient_id,
                notification_type=draft.notification_type.value,
                title=draft.title,
                message=draft.message,
                metadata=dict(draft.metadata),
                created_at=notified_at,
            )
            for draft in (student_draft, instructor_draft)
        )
        self.notifications.extend(stored)
        self.progress[key] = ProgressSnapshot(
            engagement_score=record.engagement_score if record else 0.0,
            last_risk_notification=notified_at,
        )
        return stored[0], stored[1]


class InMemoryDirectory(CourseDirectory):
    """Course directory backed by dictionaries."""

    def __init__(self) -> None:
        self.courses: dict[str, CourseInfo] = {}
        self.students: dict[str, StudentInfo] = {}

    async def get_course(self, course_id):
        return self.courses.get(course_id)

    async def get_student(self, student_id):
        return self.students.get(student_id)


class RecordingPushChannel(BaseChannel):
    """Push channel that records events instead of sending them."""

    def __init__(self) -> None:
        super().__init__()
        self.sent: list[tuple[str, dict[str, Any]]] = []
        self.failing_recipients: set[str] = set()

    @property
    def channel_type(self) -> ChannelType:
        return ChannelType.NULL

    async def send(self, recipient_id: str, payload: dict[str, Any]) -> ChannelResult:
        if recipient_id in self.failing_recipients:
            raise PushDeliveryError("Connection refused", recipient_id=recipient_id)
        self.sent.append((recipient_id, payload))
        return self.create_success_result(recipient_id)


@pytest.fixture
def store() -> InMemoryRiskStore:
    """Create an empty in-memory store."""
    return InMemoryRiskStore()


@pytest.fixture
def directory(sample_course_id, sample_instructor_id) -> InMemoryDirectory:
    """Create a directory with one course."""
    directory = InMemoryDirectory()
    directory.courses[sample_course_id] = CourseInfo(
        id=sample_course_id,
        title="Algebra I",
        instructor_id=sample_instructor_id,
    )
    return directory


@pytest.fixture
def push_channel() -> RecordingPushChannel:
    """Create a recording push channel."""
    return RecordingPushChannel()


@pytest.fixture
def metrics() -> RiskMetrics:
    """Create metrics in a private registry."""
    return RiskMetrics(registry=CollectorRegistry())


@pytest.fixture
def risk_service(store, directory, push_channel, metrics, fixed_now) -> RiskDetectionService:
    """Create a service over the in-memory collaborators with a frozen clock."""
    return RiskDetectionService(
        store,
        directory,
        push_channel,
        max_concurrency=4,
        course_timeout_seconds=5.0,
        metrics=metrics,
        clock=lambda: fixed_now,
    )


@pytest.fixture
def days_ago(fixed_now):
    """Return a helper producing instants relative to the fixed clock."""

    def _days_ago(days: float) -> datetime:
        return fixed_now - timedelta(days=days)

    return _days_ago
