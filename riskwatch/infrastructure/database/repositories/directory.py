# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""SQLAlchemy implementation of the course and student directory."""

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from riskwatch.core.risk.base import CourseDirectory, CourseInfo, StudentInfo
from riskwatch.core.risk.exceptions import TransientStoreError
from riskwatch.infrastructure.database.connection import DatabaseManager
from riskwatch.infrastructure.database.models import Course, User


class SQLAlchemyCourseDirectory(CourseDirectory):
    """Looks up courses and students in the platform database."""

    def __init__(self, db_manager: DatabaseManager) -> None:
        self._db = db_manager

    async def get_course(self, course_id: str) -> CourseInfo | None:
        """Get the course title and instructor."""
        try:
            async with self._db.get_session() as session:
                row = (
                    await session.execute(
                        select(Course.id, Course.title, Course.instructor_id).where(
                            Course.id == course_id
                        )
                    )
                ).first()
        except SQLAlchemyError as e:
            raise TransientStoreError(
                f"Failed to look up course {course_id}", original_error=e
            ) from e

        if row is None:
            return None
        return CourseInfo(id=row.id, title=row.title, instructor_id=row.instructor_id)

    async def get_student(self, student_id: str) -> StudentInfo | None:
        """Get the student's name and email."""
        try:
            async with self._db.get_session() as session:
                row = (
                    await session.execute(
                        select(User.id, User.name, User.email).where(User.id == student_id)
                    )
                ).first()
        except SQLAlchemyError as e:
            raise TransientStoreError(
                f"Failed to look up student {student_id}", original_error=e
            ) from e

        if row is None:
            return None
        return StudentInfo(id=row.id, name=row.name, email=row.email)
