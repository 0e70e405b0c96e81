# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""At-risk student detection and notification.

Pipeline components:
- SignalCollector: Reads the four raw signals for a (student, course) pair
- classify_risk: Weighted score to LOW / MEDIUM / HIGH
- is_notification_due: Seven-day throttle decision
- compose_risk_messages: Student and instructor wording
- RiskNotificationDispatcher: Atomic persist, then best-effort push
- RiskDetectionService: Per-course batch orchestration

Usage:
    from riskwatch.core.risk import create_risk_detection_service

    service = create_risk_detection_service(db_manager, push_channel)
    summary = await service.process_risk_notifications(course_id)
"""

from riskwatch.core.risk.base import (
    CourseDirectory,
    CourseInfo,
    EnrollmentSnapshot,
    NotificationDraft,
    NotificationType,
    ProgressSnapshot,
    RiskDataStore,
    StoredNotification,
    StudentInfo,
)
from riskwatch.core.risk.classifier import (
    RiskAssessment,
    RiskClassification,
    RiskFactor,
    RiskTier,
    classify_risk,
)
from riskwatch.core.risk.collector import CollectedSignals, SignalCollector
from riskwatch.core.risk.composer import RiskMessages, compose_risk_messages
from riskwatch.core.risk.dispatcher import DispatchResult, RiskNotificationDispatcher
from riskwatch.core.risk.exceptions import (
    AlreadyNotifiedError,
    NotFoundError,
    PushDeliveryError,
    RiskDetectionError,
    TransientStoreError,
)
from riskwatch.core.risk.service import (
    RiskDetectionService,
    RiskRunSummary,
    StudentOutcome,
    create_risk_detection_service,
)
from riskwatch.core.risk.signals import RiskSignals, derive_signals
from riskwatch.core.risk.throttle import THROTTLE_WINDOW_DAYS, is_notification_due

__all__ = [
    # Service
    "RiskDetectionService",
    "RiskRunSummary",
    "StudentOutcome",
    "create_risk_detection_service",
    # Pipeline
    "SignalCollector",
    "CollectedSignals",
    "RiskSignals",
    "derive_signals",
    "classify_risk",
    "RiskClassification",
    "RiskAssessment",
    "RiskTier",
    "RiskFactor",
    "is_notification_due",
    "THROTTLE_WINDOW_DAYS",
    "compose_risk_messages",
    "RiskMessages",
    "RiskNotificationDispatcher",
    "DispatchResult",
    # Collaborators
    "RiskDataStore",
    "CourseDirectory",
    "CourseInfo",
    "StudentInfo",
    "EnrollmentSnapshot",
    "ProgressSnapshot",
    "NotificationDraft",
    "NotificationType",
    "StoredNotification",
    # Errors
    "RiskDetectionError",
    "NotFoundError",
    "TransientStoreError",
    "AlreadyNotifiedError",
    "PushDeliveryError",
]
