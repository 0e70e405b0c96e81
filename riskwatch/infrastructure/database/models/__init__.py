# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""SQLAlchemy ORM models."""

from riskwatch.infrastructure.database.models.base import Base
from riskwatch.infrastructure.database.models.course import (
    ActivityLog,
    Course,
    Deadline,
    Enrollment,
    Lesson,
    LessonProgress,
    StudentProgress,
    User,
)
from riskwatch.infrastructure.database.models.notification import Notification

__all__ = [
    "Base",
    "User",
    "Course",
    "Lesson",
    "Enrollment",
    "LessonProgress",
    "ActivityLog",
    "Deadline",
    "StudentProgress",
    "Notification",
]
