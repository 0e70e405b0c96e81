# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""SQLAlchemy implementation of the risk data store.

Every read opens its own short session so the signal collector can run
reads concurrently. The notification write is a single session, hence a
single transaction: the conditional marker update, the optional progress
record insert and both notification inserts commit together or not at
all.
"""

import logging
from datetime import datetime

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from riskwatch.core.risk.base import (
    EnrollmentSnapshot,
    NotificationDraft,
    ProgressSnapshot,
    RiskDataStore,
    StoredNotification,
)
from riskwatch.core.risk.exceptions import AlreadyNotifiedError, TransientStoreError
from riskwatch.infrastructure.database.connection import DatabaseManager
from riskwatch.infrastructure.database.models import (
    ActivityLog,
    Course,
    Deadline,
    Enrollment,
    Lesson,
    LessonProgress,
    Notification,
    StudentProgress,
)
from riskwatch.utils.datetime import ensure_utc

logger = logging.getLogger(__name__)


class SQLAlchemyRiskDataStore(RiskDataStore):
    """Risk data store backed by the platform database.

    Example:
        store = SQLAlchemyRiskDataStore(db_manager)
        snapshot = await store.get_enrollment_snapshot(student_id, course_id)
    """

    def __init__(self, db_manager: DatabaseManager) -> None:
        """Initialize the store.

        Args:
            db_manager: Database manager providing sessions.
        """
        self._db = db_manager

    async def list_course_ids(self) -> list[str]:
        """List every course id."""
        try:
            async with self._db.get_session() as session:
                result = await session.execute(select(Course.id).order_by(Course.created_at))
                return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise TransientStoreError("Failed to list courses", original_error=e) from e

    async def list_enrollment_student_ids(self, course_id: str) -> list[str]:
        """List ids of students enrolled in a course, oldest enrollment first."""
        try:
            async with self._db.get_session() as session:
                result = await session.execute(
                    select(Enrollment.user_id)
                    .where(Enrollment.course_id == course_id)
                    .order_by(Enrollment.enrolled_at, Enrollment.user_id)
                )
                return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise TransientStoreError(
                f"Failed to list enrollments for course {course_id}",
                original_error=e,
            ) from e

    async def get_enrollment_snapshot(
        self,
        student_id: str,
        course_id: str,
    ) -> EnrollmentSnapshot | None:
        """Get the enrollment with completed and total lesson counts."""
        try:
            async with self._db.get_session() as session:
                enrollment = await session.scalar(
                    select(Enrollment).where(
                        Enrollment.user_id == student_id,
                        Enrollment.course_id == course_id,
                    )
                )
                if enrollment is None:
                    return None

                completed = await session.scalar(
                    select(func.count(LessonProgress.id))
                    .join(Lesson, Lesson.id == LessonProgress.lesson_id)
                    .where(
                        LessonProgress.enrollment_id == enrollment.id,
                        LessonProgress.completed.is_(True),
                        Lesson.course_id == course_id,
                    )
                )
                total = await session.scalar(
                    select(func.count(Lesson.id)).where(Lesson.course_id == course_id)
                )

                return EnrollmentSnapshot(
                    student_id=student_id,
                    course_id=course_id,
                    enrolled_at=ensure_utc(enrollment.enrolled_at),
                    completed_lessons=completed or 0,
                    total_lessons=total or 0,
                )
        except SQLAlchemyError as e:
            raise TransientStoreError(
                f"Failed to read enrollment of student {student_id} in course {course_id}",
                original_error=e,
            ) from e

    async def get_last_activity_at(
        self,
        student_id: str,
        course_id: str,
    ) -> datetime | None:
        """Get the timestamp of the latest activity event."""
        try:
            async with self._db.get_session() as session:
                timestamp = await session.scalar(
                    select(ActivityLog.timestamp)
                    .where(
                        ActivityLog.user_id == student_id,
                        ActivityLog.course_id == course_id,
                    )
                    .order_by(ActivityLog.timestamp.desc())
                    .limit(1)
                )
                return ensure_utc(timestamp)
        except SQLAlchemyError as e:
            raise TransientStoreError(
                f"Failed to read activity of student {student_id} in course {course_id}",
                original_error=e,
            ) from e

    async def count_overdue_deadlines(
        self,
        student_id: str,
        course_id: str,
        now: datetime,
    ) -> int:
        """Count deadlines due before now, completed or not."""
        try:
            async with self._db.get_session() as session:
                count = await session.scalar(
                    select(func.count(Deadline.id)).where(
                        Deadline.user_id == student_id,
                        Deadline.course_id == course_id,
                        Deadline.due_date < now,
                    )
                )
                return count or 0
        except SQLAlchemyError as e:
            raise TransientStoreError(
                f"Failed to read deadlines of student {student_id} in course {course_id}",
                original_error=e,
            ) from e

    async def get_progress_record(
        self,
        student_id: str,
        course_id: str,
    ) -> ProgressSnapshot | None:
        """Get the stored engagement score and throttle marker."""
        try:
            async with self._db.get_session() as session:
                record = await session.scalar(
                    select(StudentProgress).where(
                        StudentProgress.user_id == student_id,
                        StudentProgress.course_id == course_id,
                    )
                )
                if record is None:
                    return None
                return ProgressSnapshot(
                    engagement_score=record.progress,
                    last_risk_notification=ensure_utc(record.last_risk_notification),
                )
        except SQLAlchemyError as e:
            raise TransientStoreError(
                f"Failed to read progress of student {student_id} in course {course_id}",
                original_error=e,
            ) from e

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

        Raises:
            AlreadyNotifiedError: If the marker is newer than throttle_cutoff.
            TransientStoreError: If any statement or the commit failed.
        """
        try:
            async with self._db.get_session() as session:
                result = await session.execute(
                    update(StudentProgress)
                    .where(
                        StudentProgress.user_id == student_id,
                        StudentProgress.course_id == course_id,
                        or_(
                            StudentProgress.last_risk_notification.is_(None),
                            StudentProgress.last_risk_notification <= throttle_cutoff,
                        ),
                    )
                    .values(last_risk_notification=notified_at)
                    .execution_options(synchronize_session=False)
                )

                if result.rowcount == 0:
                    existing_id = await session.scalar(
                        select(StudentProgress.id).where(
                            StudentProgress.user_id == student_id,
                            StudentProgress.course_id == course_id,
                        )
                    )
                    if existing_id is not None:
                        raise AlreadyNotifiedError(
                            "Risk notification already sent within the throttle window",
                            details={"student_id": student_id, "course_id": course_id},
                        )
                    session.add(
                        StudentProgress(
                            user_id=student_id,
                            course_id=course_id,
                            progress=0.0,
                            last_risk_notification=notified_at,
                        )
                    )
                    try:
                        await session.flush()
                    except IntegrityError as e:
                        raise AlreadyNotifiedError(
                            "Progress record created by an overlapping run",
                            details={"student_id": student_id, "course_id": course_id},
                        ) from e

                rows = [
                    Notification(
                        user_id=draft.recipient_id,
                        notification_type=draft.notification_type.value,
                        title=draft.title,
                        message=draft.message,
                        data=draft.metadata,
                        created_at=notified_at,
                    )
                    for draft in (student_draft, instructor_draft)
                ]
                session.add_all(rows)
                await session.flush()

                stored = tuple(self._to_stored(row) for row in rows)
        except SQLAlchemyError as e:
            logger.warning(
                "Risk notification transaction rolled back for student %s in course %s: %s",
                student_id,
                course_id,
                str(e),
            )
            raise TransientStoreError(
                f"Failed to record risk notifications for student {student_id} "
                f"in course {course_id}",
                original_error=e,
            ) from e

        return stored[0], stored[1]

    @staticmethod
    def _to_stored(row: Notification) -> StoredNotification:
        return StoredNotification(
            id=row.id,
            recipient_id=row.user_id,
            notification_type=row.notification_type,
            title=row.title,
            message=row.message,
            metadata=dict(row.data or {}),
            created_at=ensure_utc(row.created_at),
        )
