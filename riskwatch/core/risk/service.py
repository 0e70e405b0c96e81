# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Risk detection service for orchestrating course scans.

For one course the service enumerates the enrolled students and runs
the pipeline for each of them concurrently:

    SignalCollector -> classify_risk -> is_notification_due
        -> compose_risk_messages -> RiskNotificationDispatcher

Each student runs in its own task under a semaphore. Failures are
captured per task so one bad student never hides the others, and the
whole fan-out is bounded by a per-course timeout. The run reports an
aggregate RiskRunSummary instead of raising for individual students.

Usage:
    service = create_risk_detection_service(db_manager, push_channel)

    summary = await service.process_risk_notifications(course_id)
    print(summary.notified, summary.failed)

    # Read-only preview for operators
    assessments = await service.assess_course(course_id)
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from riskwatch.core.config.settings import Settings, get_settings
from riskwatch.core.risk.base import CourseDirectory, CourseInfo, RiskDataStore
from riskwatch.core.risk.classifier import RiskAssessment, RiskTier, classify_risk
from riskwatch.core.risk.collector import CollectedSignals, SignalCollector
from riskwatch.core.risk.composer import compose_risk_messages
from riskwatch.core.risk.dispatcher import RiskNotificationDispatcher
from riskwatch.core.risk.exceptions import (
    AlreadyNotifiedError,
    NotFoundError,
    RiskDetectionError,
)
from riskwatch.core.risk.throttle import is_notification_due
from riskwatch.infrastructure.database.connection import DatabaseManager
from riskwatch.infrastructure.notifications.channels.base import BaseChannel
from riskwatch.infrastructure.telemetry.metrics import RiskMetrics
from riskwatch.utils.datetime import format_iso, utc_now
from riskwatch.utils.logging import bind_context, get_logger, unbind_context

logger = logging.getLogger(__name__)
event_logger = get_logger(__name__)


class StudentOutcome(str, Enum):
    """Outcome of one student's pipeline within a run."""

    NOTIFIED = "notified"
    SKIPPED_LOW = "skipped_low"
    SKIPPED_THROTTLED = "skipped_throttled"
    FAILED = "failed"


@dataclass
class RiskRunSummary:
    """Operational summary of one course scan.

    Attributes:
        course_id: Course scanned.
        started_at: Evaluation instant of the run.
        finished_at: When the run completed.
        total: Enrolled students considered.
        notified: Students notified in this run.
        skipped_low: Students classified LOW.
        skipped_throttled: Students inside the throttle window.
        failed: Students whose pipeline failed or did not finish.
        timed_out: Whether the course timeout cut the run short.
    """

    course_id: str
    started_at: datetime
    finished_at: datetime | None = None
    total: int = 0
    notified: int = 0
    skipped_low: int = 0
    skipped_throttled: int = 0
    failed: int = 0
    timed_out: bool = False

    def record(self, outcome: StudentOutcome) -> None:
        """Count one student outcome."""
        setattr(self, outcome.value, getattr(self, outcome.value) + 1)

    @property
    def duration_seconds(self) -> float:
        """Elapsed wall time of the run."""
        if self.finished_at is None:
            return 0.0
        return (self.finished_at - self.started_at).total_seconds()

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return {
            "course_id": self.course_id,
            "total": self.total,
            "notified": self.notified,
            "skipped_low": self.skipped_low,
            "skipped_throttled": self.skipped_throttled,
            "failed": self.failed,
            "timed_out": self.timed_out,
            "started_at": format_iso(self.started_at),
            "finished_at": format_iso(self.finished_at),
            "duration_seconds": round(self.duration_seconds, 3),
        }


class RiskDetectionService:
    """Batch orchestrator for at-risk student detection.

    Attributes:
        max_concurrency: Students evaluated concurrently per course.
        course_timeout_seconds: Upper bound on one course scan.
    """

    def __init__(
        self,
        store: RiskDataStore,
        directory: CourseDirectory,
        push_channel: BaseChannel,
        *,
        max_concurrency: int = 10,
        course_timeout_seconds: float = 600.0,
        metrics: RiskMetrics | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize the service.

        Args:
            store: Persistence layer for signals and notifications.
            directory: Course and student lookup.
            push_channel: Real-time channel for best-effort events.
            max_concurrency: Students evaluated concurrently per course.
            course_timeout_seconds: Upper bound on one course scan.
            metrics: Optional metrics sink.
            clock: Source of the evaluation instant.
        """
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")

        self._store = store
        self._directory = directory
        self._collector = SignalCollector(store)
        self._dispatcher = RiskNotificationDispatcher(store, push_channel, metrics=metrics)
        self._metrics = metrics
        self._clock = clock
        self.max_concurrency = max_concurrency
        self.course_timeout_seconds = course_timeout_seconds

    async def analyze_student_risk(
        self,
        student_id: str,
        course_id: str,
        now: datetime | None = None,
    ) -> RiskAssessment:
        """Collect signals and classify one student.

        Args:
            student_id: Student to assess.
            course_id: Course to assess.
            now: Evaluation instant; defaults to the current time.

        Returns:
            RiskAssessment for the pair.

        Raises:
            NotFoundError: If the student is not enrolled.
            TransientStoreError: If a read failed.
        """
        now = now or self._clock()
        collected = await self._collector.collect(student_id, course_id, now)
        return self._build_assessment(collected, now)

    async def assess_course(self, course_id: str) -> list[RiskAssessment]:
        """Assess every enrolled student without notifying anyone.

        Students whose assessment fails are logged and left out.

        Args:
            course_id: Course to assess.

        Returns:
            Assessments in enrollment order.

        Raises:
            NotFoundError: If the course does not exist.
        """
        await self._get_course(course_id)
        now = self._clock()
        student_ids = await self._store.list_enrollment_student_ids(course_id)
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def safe_assess(student_id: str) -> RiskAssessment | None:
            async with semaphore:
                try:
                    return await self.analyze_student_risk(student_id, course_id, now)
                except RiskDetectionError as e:
                    logger.warning(
                        "Risk assessment failed for student %s in course %s: %s",
                        student_id,
                        course_id,
                        e,
                    )
                    return None
                except Exception as e:
                    logger.error(
                        "Unexpected risk assessment error for student %s in course %s: %s",
                        student_id,
                        course_id,
                        str(e),
                        exc_info=True,
                    )
                    return None

        results = await asyncio.gather(*[safe_assess(sid) for sid in student_ids])
        return [r for r in results if r is not None]

    async def process_risk_notifications(self, course_id: str) -> RiskRunSummary:
        """Scan a course and notify at-risk students.

        Args:
            course_id: Course to scan.

        Returns:
            RiskRunSummary of the run.

        Raises:
            NotFoundError: If the course does not exist.
            TransientStoreError: If enrollments could not be listed.
        """
        now = self._clock()
        summary = RiskRunSummary(course_id=course_id, started_at=now)
        bind_context(course_id=course_id)
        try:
            course = await self._get_course(course_id)
            student_ids = await self._store.list_enrollment_student_ids(course_id)
            summary.total = len(student_ids)

            logger.info(
                "Starting risk scan for course %s with %d students",
                course_id,
                summary.total,
            )

            if student_ids:
                await self._run_pipelines(course, student_ids, now, summary)

            summary.finished_at = self._clock()
            event_logger.info("risk_scan_completed", **summary.to_dict())
            if self._metrics is not None:
                self._metrics.record_summary(summary)
            return summary
        finally:
            unbind_context("course_id")

    async def _run_pipelines(
        self,
        course: CourseInfo,
        student_ids: list[str],
        now: datetime,
        summary: RiskRunSummary,
    ) -> None:
        """Run every student's pipeline with bounded concurrency and a timeout."""
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def safe_process(student_id: str) -> StudentOutcome:
            """Run one student's pipeline, capturing its failure."""
            async with semaphore:
                try:
                    return await self._process_student(student_id, course, now)
                except AlreadyNotifiedError:
                    logger.info(
                        "Student %s in course %s was notified by an overlapping run",
                        student_id,
                        course.id,
                    )
                    return StudentOutcome.SKIPPED_THROTTLED
                except RiskDetectionError as e:
                    logger.warning(
                        "Risk pipeline failed for student %s in course %s: %s",
                        student_id,
                        course.id,
                        e,
                    )
                    return StudentOutcome.FAILED
                except Exception as e:
                    logger.error(
                        "Unexpected risk pipeline error for student %s in course %s: %s",
                        student_id,
                        course.id,
                        str(e),
                        exc_info=True,
                    )
                    return StudentOutcome.FAILED

        tasks = [asyncio.create_task(safe_process(sid)) for sid in student_ids]
        try:
            done, pending = await asyncio.wait(tasks, timeout=self.course_timeout_seconds)
        finally:
            # Runs on timeout and when the caller cancels the scan
            unfinished = [task for task in tasks if not task.done()]
            for task in unfinished:
                task.cancel()
            if unfinished:
                await asyncio.gather(*unfinished, return_exceptions=True)

        if pending:
            summary.timed_out = True
            logger.warning(
                "Risk scan for course %s timed out after %.1fs, %d students unfinished",
                course.id,
                self.course_timeout_seconds,
                len(pending),
            )

        for task in tasks:
            if task in done:
                summary.record(task.result())
            else:
                summary.record(StudentOutcome.FAILED)

    async def _process_student(
        self,
        student_id: str,
        course: CourseInfo,
        now: datetime,
    ) -> StudentOutcome:
        """Run the full pipeline for one student."""
        assessment = await self.analyze_student_risk(student_id, course.id, now)

        if assessment.tier == RiskTier.LOW:
            return StudentOutcome.SKIPPED_LOW

        if not is_notification_due(assessment.tier, assessment.last_notified, now):
            logger.debug(
                "Student %s in course %s throttled, last notified %s",
                student_id,
                course.id,
                format_iso(assessment.last_notified),
            )
            return StudentOutcome.SKIPPED_THROTTLED

        student = await self._directory.get_student(student_id)
        messages = compose_risk_messages(
            assessment,
            course_title=course.title,
            student_name=student.name if student else None,
        )
        await self._dispatcher.dispatch(assessment, messages, course, student, now)
        return StudentOutcome.NOTIFIED

    async def _get_course(self, course_id: str) -> CourseInfo:
        course = await self._directory.get_course(course_id)
        if course is None:
            raise NotFoundError("Course not found", details={"course_id": course_id})
        return course

    @staticmethod
    def _build_assessment(collected: CollectedSignals, now: datetime) -> RiskAssessment:
        classification = classify_risk(collected.signals)
        return RiskAssessment(
            student_id=collected.student_id,
            course_id=collected.course_id,
            tier=classification.tier,
            score=classification.score,
            factors=list(classification.factors),
            signals=collected.signals,
            last_notified=collected.last_notified,
            evaluated_at=now,
        )


def create_risk_detection_service(
    db_manager: DatabaseManager,
    push_channel: BaseChannel,
    settings: Settings | None = None,
    metrics: RiskMetrics | None = None,
) -> RiskDetectionService:
    """Build a service backed by the SQL store and directory.

    Args:
        db_manager: Database manager providing sessions.
        push_channel: Real-time push channel.
        settings: Application settings (default: cached settings).
        metrics: Optional metrics sink.

    Returns:
        Configured RiskDetectionService.
    """
    from riskwatch.infrastructure.database.repositories import (
        SQLAlchemyCourseDirectory,
        SQLAlchemyRiskDataStore,
    )

    settings = settings or get_settings()
    return RiskDetectionService(
        store=SQLAlchemyRiskDataStore(db_manager),
        directory=SQLAlchemyCourseDirectory(db_manager),
        push_channel=push_channel,
        max_concurrency=settings.risk_scan.max_concurrency,
        course_timeout_seconds=settings.risk_scan.course_timeout_seconds,
        metrics=metrics,
    )
