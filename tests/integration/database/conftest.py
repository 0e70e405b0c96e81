# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest fixtures for database integration tests.

Tests run against TEST_DATABASE_URL when it is set (for example a
PostgreSQL test database) and against a throwaway SQLite file otherwise.
"""

import os
from datetime import timedelta
from typing import AsyncGenerator

import pytest
import pytest_asyncio

from riskwatch.infrastructure.database.connection import DatabaseManager
from riskwatch.infrastructure.database.models import (
    ActivityLog,
    Course,
    Enrollment,
    Lesson,
    StudentProgress,
    User,
)
from riskwatch.infrastructure.database.models.base import Base


@pytest.fixture
def database_url(tmp_path) -> str:
    """Get database URL for tests."""
    return os.environ.get(
        "TEST_DATABASE_URL",
        f"sqlite+aiosqlite:///{tmp_path / 'riskwatch_test.db'}",
    )


@pytest_asyncio.fixture(scope="function")
async def db_manager(database_url: str) -> AsyncGenerator[DatabaseManager, None]:
    """Create a database manager over a freshly created schema."""
    manager = DatabaseManager(database_url, echo=False)

    async with manager.engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield manager

    async with manager.engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await manager.close()


@pytest_asyncio.fixture(scope="function")
async def seeded_course(db_manager: DatabaseManager, fixed_now):
    """Seed an instructor, a course with ten lessons and one enrolled student.

    The student is HIGH risk: inactive for 20 days, no lessons completed,
    engagement 10.

    Returns:
        Dictionary with the ids and lesson ids that were created.
    """
    instructor = User(name="Grace Hopper", email="grace@example.com", role="INSTRUCTOR")
    student = User(name="Ada Lovelace", email="ada@example.com", role="STUDENT")

    async with db_manager.get_session() as session:
        session.add_all([instructor, student])
        await session.flush()

        course = Course(title="Algebra I", instructor_id=instructor.id)
        session.add(course)
        await session.flush()

        lessons = [
            Lesson(course_id=course.id, title=f"Lesson {i}", position=i) for i in range(10)
        ]
        enrollment = Enrollment(
            user_id=student.id,
            course_id=course.id,
            enrolled_at=fixed_now - timedelta(days=30),
        )
        session.add_all([*lessons, enrollment])
        session.add(
            ActivityLog(
                user_id=student.id,
                course_id=course.id,
                action="VIEW",
                timestamp=fixed_now - timedelta(days=20),
            )
        )
        session.add(
            StudentProgress(user_id=student.id, course_id=course.id, progress=10.0)
        )
        await session.flush()

        ids = {
            "course_id": course.id,
            "student_id": student.id,
            "instructor_id": instructor.id,
            "enrollment_id": enrollment.id,
            "lesson_ids": [lesson.id for lesson in lessons],
        }

    return ids
