# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Risk notification dispatch.

Dispatch happens in two phases:

1. Persist. Both notifications and the throttle marker are written in
   one store transaction. Nothing is persisted unless all of it is.
2. Push. After commit, one real-time event per recipient is sent over
   the injected channel. Push failures are logged and never touch the
   committed rows.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime

from riskwatch.core.risk.base import (
    CourseInfo,
    NotificationDraft,
    NotificationType,
    RiskDataStore,
    StoredNotification,
    StudentInfo,
)
from riskwatch.core.risk.classifier import RiskAssessment
from riskwatch.core.risk.composer import (
    INSTRUCTOR_TITLE,
    STUDENT_TITLE,
    RiskMessages,
)
from riskwatch.core.risk.exceptions import PushDeliveryError
from riskwatch.core.risk.throttle import throttle_cutoff
from riskwatch.infrastructure.notifications.channels.base import (
    BaseChannel,
    ChannelResult,
    DeliveryStatus,
)
from riskwatch.infrastructure.telemetry.metrics import RiskMetrics

logger = logging.getLogger(__name__)


@dataclass
class DispatchResult:
    """Outcome of dispatching one assessment.

    Attributes:
        student_notification: Persisted student notification.
        instructor_notification: Persisted instructor notification.
        push_results: Channel results for pushes that did not raise.
        push_failures: Recipient ids whose push failed.
    """

    student_notification: StoredNotification
    instructor_notification: StoredNotification
    push_results: list[ChannelResult] = field(default_factory=list)
    push_failures: list[str] = field(default_factory=list)


def build_notification_drafts(
    assessment: RiskAssessment,
    messages: RiskMessages,
    course: CourseInfo,
) -> tuple[NotificationDraft, NotificationDraft]:
    """Build the student and instructor notifications for an assessment.

    Args:
        assessment: Assessment being notified.
        messages: Composed message bodies.
        course: Course with its instructor.

    Returns:
        Tuple of (student draft, instructor draft).
    """
    factors = [f.value for f in assessment.factors]

    student_draft = NotificationDraft(
        recipient_id=assessment.student_id,
        notification_type=NotificationType.RISK_WARNING,
        title=STUDENT_TITLE,
        message=messages.student,
        metadata={
            "course_id": course.id,
            "risk_tier": assessment.tier.value,
            "triggered_factors": factors,
        },
    )
    instructor_draft = NotificationDraft(
        recipient_id=course.instructor_id,
        notification_type=NotificationType.STUDENT_AT_RISK,
        title=INSTRUCTOR_TITLE,
        message=messages.instructor,
        metadata={
            "course_id": course.id,
            "student_id": assessment.student_id,
            "risk_tier": assessment.tier.value,
            "triggered_factors": factors,
            "signals": assessment.signals.to_dict(),
        },
    )
    return student_draft, instructor_draft


class RiskNotificationDispatcher:
    """Persists risk notifications atomically, then pushes them.

    Example:
        dispatcher = RiskNotificationDispatcher(store, push_channel)
        result = await dispatcher.dispatch(assessment, messages, course, student, now)
    """

    def __init__(
        self,
        store: RiskDataStore,
        push_channel: BaseChannel,
        metrics: RiskMetrics | None = None,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            store: Store providing the notification transaction.
            push_channel: Real-time channel for best-effort events.
            metrics: Optional metrics sink for push outcomes.
        """
        self._store = store
        self._push = push_channel
        self._metrics = metrics

    async def dispatch(
        self,
        assessment: RiskAssessment,
        messages: RiskMessages,
        course: CourseInfo,
        student: StudentInfo | None,
        now: datetime,
    ) -> DispatchResult:
        """Persist and push notifications for one assessment.

        Args:
            assessment: Throttle-eligible assessment with tier above LOW.
            messages: Composed message bodies.
            course: Course with its instructor.
            student: Student directory entry, if found.
            now: Evaluation instant, stored as the new throttle marker.

        Returns:
            DispatchResult with persisted rows and push outcomes.

        Raises:
            AlreadyNotifiedError: If an overlapping run already notified.
            TransientStoreError: If the transaction failed. Nothing persisted.
        """
        student_draft, instructor_draft = build_notification_drafts(
            assessment, messages, course
        )

        student_row, instructor_row = await self._store.record_risk_notifications(
            student_id=assessment.student_id,
            course_id=assessment.course_id,
            student_draft=student_draft,
            instructor_draft=instructor_draft,
            notified_at=now,
            throttle_cutoff=throttle_cutoff(now),
        )

        logger.info(
            "Risk notifications stored for student %s (%s) in course %s: tier=%s",
            assessment.student_id,
            student.email if student and student.email else "no email",
            assessment.course_id,
            assessment.tier.value,
        )

        result = DispatchResult(
            student_notification=student_row,
            instructor_notification=instructor_row,
        )
        for row in (student_row, instructor_row):
            await self._push_one(row, result)
        return result

    async def _push_one(self, row: StoredNotification, result: DispatchResult) -> None:
        """Push one persisted notification, recording but never raising failures."""
        try:
            channel_result = await self._push.send(row.recipient_id, row.to_push_payload())
        except PushDeliveryError as e:
            logger.warning(
                "Push delivery failed for notification %s to %s: %s",
                row.id,
                row.recipient_id,
                e,
            )
            result.push_failures.append(row.recipient_id)
            self._record_push(DeliveryStatus.FAILED.value)
            return
        except Exception as e:
            logger.error(
                "Unexpected push error for notification %s to %s: %s",
                row.id,
                row.recipient_id,
                str(e),
                exc_info=True,
            )
            result.push_failures.append(row.recipient_id)
            self._record_push(DeliveryStatus.FAILED.value)
            return

        result.push_results.append(channel_result)
        self._record_push(channel_result.status.value)

    def _record_push(self, status: str) -> None:
        if self._metrics is not None:
            self._metrics.record_push(status)
