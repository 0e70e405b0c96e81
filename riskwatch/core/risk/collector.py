# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Signal collection for one (student, course) pair.

The four store reads are independent, so they run concurrently. Every
read is awaited to completion before the first failure is re-raised,
leaving no orphaned queries behind.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError

from riskwatch.core.risk.base import ProgressSnapshot, RiskDataStore
from riskwatch.core.risk.exceptions import NotFoundError, TransientStoreError
from riskwatch.core.risk.signals import RiskSignals, derive_signals

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CollectedSignals:
    """Signals plus the throttle state read alongside them.

    Attributes:
        student_id: Student assessed.
        course_id: Course assessed.
        signals: Derived raw signals.
        last_notified: Current throttle marker, if any.
        has_progress_record: Whether a progress record exists for the pair.
    """

    student_id: str
    course_id: str
    signals: RiskSignals
    last_notified: datetime | None
    has_progress_record: bool


class SignalCollector:
    """Gathers raw risk signals from the data store.

    Example:
        collector = SignalCollector(store)
        collected = await collector.collect(student_id, course_id, now)
    """

    def __init__(self, store: RiskDataStore) -> None:
        self._store = store

    async def collect(
        self,
        student_id: str,
        course_id: str,
        now: datetime,
    ) -> CollectedSignals:
        """Collect the four signals for a pair.

        Args:
            student_id: Student to assess.
            course_id: Course to assess.
            now: Evaluation instant shared by the whole run.

        Returns:
            CollectedSignals for the pair.

        Raises:
            NotFoundError: If the student is not enrolled in the course.
            TransientStoreError: If any read failed.
        """
        results = await asyncio.gather(
            self._store.get_enrollment_snapshot(student_id, course_id),
            self._store.get_last_activity_at(student_id, course_id),
            self._store.count_overdue_deadlines(student_id, course_id, now),
            self._store.get_progress_record(student_id, course_id),
            return_exceptions=True,
        )

        for result in results:
            if isinstance(result, SQLAlchemyError):
                raise TransientStoreError(
                    f"Failed to read signals for student {student_id} in course {course_id}",
                    original_error=result,
                )
            if isinstance(result, BaseException):
                raise result

        enrollment, last_activity_at, overdue, progress = results

        if enrollment is None:
            raise NotFoundError(
                "Enrollment not found",
                details={"student_id": student_id, "course_id": course_id},
            )

        progress_record: ProgressSnapshot | None = progress
        signals = derive_signals(
            enrolled_at=enrollment.enrolled_at,
            last_activity_at=last_activity_at,
            completed_lessons=enrollment.completed_lessons,
            total_lessons=enrollment.total_lessons,
            overdue_deadlines=overdue,
            engagement_score=progress_record.engagement_score if progress_record else None,
            now=now,
        )

        logger.debug(
            "Collected signals for student %s in course %s: %s",
            student_id,
            course_id,
            signals,
        )

        return CollectedSignals(
            student_id=student_id,
            course_id=course_id,
            signals=signals,
            last_notified=progress_record.last_risk_notification if progress_record else None,
            has_progress_record=progress_record is not None,
        )
