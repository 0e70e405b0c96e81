# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Learning platform models read by the risk pipeline.

Users, courses, lessons and enrollments are owned by the platform; the
risk pipeline only reads them. StudentProgress is shared: progress
tracking writes the engagement score, risk detection owns the
last_risk_notification throttle marker.
"""

from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from riskwatch.infrastructure.database.models.base import (
    Base,
    TimestampMixin,
    UUIDPrimaryKeyMixin,
    utc_now,
)


class User(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Platform user (student or instructor)."""

    __tablename__ = "users"

    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="STUDENT")

    def __repr__(self) -> str:
        return f"<User {self.email}>"


class Course(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Course taught by one instructor."""

    __tablename__ = "courses"

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    instructor_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    lessons: Mapped[list["Lesson"]] = relationship(back_populates="course")

    def __repr__(self) -> str:
        return f"<Course {self.title}>"


class Lesson(UUIDPrimaryKeyMixin, Base):
    """Lesson belonging to a course."""

    __tablename__ = "lessons"

    course_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("courses.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    position: Mapped[int] = mapped_column(default=0)

    course: Mapped[Course] = relationship(back_populates="lessons")


class Enrollment(UUIDPrimaryKeyMixin, Base):
    """A student's membership in a course."""

    __tablename__ = "enrollments"
    __table_args__ = (
        UniqueConstraint("user_id", "course_id", name="uq_enrollments_user_course"),
    )

    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    course_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("courses.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    enrolled_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
    )

    lesson_progress: Mapped[list["LessonProgress"]] = relationship(
        back_populates="enrollment",
    )


class LessonProgress(UUIDPrimaryKeyMixin, Base):
    """Per-lesson completion of one enrollment."""

    __tablename__ = "lesson_progress"
    __table_args__ = (
        UniqueConstraint(
            "enrollment_id", "lesson_id", name="uq_lesson_progress_enrollment_lesson"
        ),
    )

    enrollment_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("enrollments.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    lesson_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("lessons.id", ondelete="CASCADE"),
        nullable=False,
    )
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    enrollment: Mapped[Enrollment] = relationship(back_populates="lesson_progress")


class ActivityLog(UUIDPrimaryKeyMixin, Base):
    """Timestamped student interaction with a course."""

    __tablename__ = "activity_logs"
    __table_args__ = (
        Index("ix_activity_logs_user_course_timestamp", "user_id", "course_id", "timestamp"),
    )

    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    course_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("courses.id", ondelete="CASCADE"),
        nullable=False,
    )
    action: Mapped[str] = mapped_column(String(50), nullable=False, default="VIEW")
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
    )


class Deadline(UUIDPrimaryKeyMixin, Base):
    """Due date for a student in a course."""

    __tablename__ = "deadlines"
    __table_args__ = (
        Index("ix_deadlines_user_course_due", "user_id", "course_id", "due_date"),
    )

    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    course_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("courses.id", ondelete="CASCADE"),
        nullable=False,
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    due_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class StudentProgress(UUIDPrimaryKeyMixin, Base):
    """Engagement score and risk throttle marker for a (student, course) pair."""

    __tablename__ = "student_progress"
    __table_args__ = (
        UniqueConstraint("user_id", "course_id", name="uq_student_progress_user_course"),
    )

    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    course_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("courses.id", ondelete="CASCADE"),
        nullable=False,
    )
    progress: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    last_risk_notification: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
        onupdate=utc_now,
    )
