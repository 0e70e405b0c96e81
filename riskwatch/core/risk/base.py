# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Collaborator contracts and shared types for risk detection.

The risk pipeline never touches the database directly. It reads through
a RiskDataStore, resolves names through a CourseDirectory, and the SQL
implementations of both live under riskwatch.infrastructure.database.
Tests substitute in-memory versions.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class NotificationType(str, Enum):
    """Notification types written by the risk pipeline."""

    RISK_WARNING = "RISK_WARNING"
    STUDENT_AT_RISK = "STUDENT_AT_RISK"


@dataclass(frozen=True)
class EnrollmentSnapshot:
    """Enrollment of one student with lesson completion counts.

    Attributes:
        student_id: Enrolled student.
        course_id: Course enrolled in.
        enrolled_at: When the student joined.
        completed_lessons: Completed lesson progress records of the enrollment.
        total_lessons: Lessons in the course.
    """

    student_id: str
    course_id: str
    enrolled_at: datetime
    completed_lessons: int
    total_lessons: int


@dataclass(frozen=True)
class ProgressSnapshot:
    """Stored progress record for a (student, course) pair.

    Attributes:
        engagement_score: Progress scalar, 0 to 100.
        last_risk_notification: Throttle marker, if ever notified.
    """

    engagement_score: float
    last_risk_notification: datetime | None = None


@dataclass(frozen=True)
class CourseInfo:
    """Course directory entry."""

    id: str
    title: str
    instructor_id: str


@dataclass(frozen=True)
class StudentInfo:
    """Student directory entry."""

    id: str
    name: str | None
    email: str | None


@dataclass
class NotificationDraft:
    """Notification ready to be persisted.

    Attributes:
        recipient_id: User receiving the notification.
        notification_type: Notification type.
        title: Short title.
        message: Message body.
        metadata: JSON metadata stored alongside.
    """

    recipient_id: str
    notification_type: NotificationType
    title: str
    message: str
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class StoredNotification:
    """Notification as persisted by the store."""

    id: str
    recipient_id: str
    notification_type: str
    title: str
    message: str
    metadata: dict[str, Any]
    created_at: datetime

    def to_push_payload(self) -> dict[str, Any]:
        """Build the real-time event body for this notification."""
        return {
            "notification_id": self.id,
            "type": self.notification_type,
            "title": self.title,
            "message": self.message,
            "metadata": self.metadata,
            "created_at": self.created_at.isoformat(),
        }


class RiskDataStore(ABC):
    """Persistence layer used by the risk pipeline.

    Reads are independent and may run concurrently. Implementations raise
    TransientStoreError for backend failures.
    """

    @abstractmethod
    async def list_course_ids(self) -> list[str]:
        """List every course id, used by the daily scan."""
        ...

    @abstractmethod
    async def list_enrollment_student_ids(self, course_id: str) -> list[str]:
        """List ids of students enrolled in a course."""
        ...

    @abstractmethod
    async def get_enrollment_snapshot(
        self,
        student_id: str,
        course_id: str,
    ) -> EnrollmentSnapshot | None:
        """Get an enrollment with lesson completion counts, or None."""
        ...

    @abstractmethod
    async def get_last_activity_at(
        self,
        student_id: str,
        course_id: str,
    ) -> datetime | None:
        """Get the timestamp of the latest activity event, or None."""
        ...

    @abstractmethod
    async def count_overdue_deadlines(
        self,
        student_id: str,
        course_id: str,
        now: datetime,
    ) -> int:
        """Count deadlines of the pair due strictly before now."""
        ...

    @abstractmethod
    async def get_progress_record(
        self,
        student_id: str,
        course_id: str,
    ) -> ProgressSnapshot | None:
        """Get the stored progress record, or None."""
        ...

    @abstractmethod
    async def record_risk_notifications(
        self,
        *,
        student_id: str,
        course_id: str,
        student_draft: NotificationDraft,
        instructor_draft: NotificationDraft,
        notified_at: datetime,
        throttle_cutoff: datetime,
    ) -> tuple[StoredNotification, StoredNotification]:
        """Atomically persist both notifications and advance the marker.

        The marker is set to notified_at only if it is absent or not later
        than throttle_cutoff. Either all writes persist or none do.

        Args:
            student_id: Student being notified about.
            course_id: Course of the assessment.
            student_draft: Notification for the student.
            instructor_draft: Notification for the instructor.
            notified_at: New marker value.
            throttle_cutoff: Latest marker value that still allows notifying.

        Returns:
            The stored student and instructor notifications.

        Raises:
            AlreadyNotifiedError: If the marker is inside the window.
            TransientStoreError: If the transaction failed.
        """
        ...


class CourseDirectory(ABC):
    """Lookup of course and student identity."""

    @abstractmethod
    async def get_course(self, course_id: str) -> CourseInfo | None:
        """Get the course title and instructor, or None."""
        ...

    @abstractmethod
    async def get_student(self, student_id: str) -> StudentInfo | None:
        """Get the student's name and email, or None."""
        ...
