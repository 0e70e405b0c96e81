# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Custom exceptions for risk detection.

This module defines the exception hierarchy for the risk pipeline:
- RiskDetectionError: Base exception for all risk-related errors
- NotFoundError: Enrollment, student or course missing
- TransientStoreError: Read or transactional write against the store failed
- AlreadyNotifiedError: A concurrent run already advanced the throttle marker
- PushDeliveryError: Real-time push could not be delivered
"""


class RiskDetectionError(Exception):
    """Base exception for all risk detection errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional error context.
    """

    def __init__(self, message: str, details: dict | None = None):
        """Initialize risk detection error.

        Args:
            message: Human-readable error description.
            details: Optional dictionary with additional error context.
        """
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        """Return string representation with details if available."""
        if self.details:
            return f"{self.message} - Details: {self.details}"
        return self.message


class NotFoundError(RiskDetectionError):
    """A required record does not exist.

    Raised by the signal collector when there is no enrollment for a
    (student, course) pair, and by lookups of missing students or courses.
    Only aborts the assessment of the affected student.
    """


class TransientStoreError(RiskDetectionError):
    """A read or write against the persistence layer failed.

    The affected student is skipped and counted as failed. When raised
    from the dispatch transaction the throttle marker has not advanced.

    Attributes:
        original_error: The underlying driver or ORM exception.
    """

    def __init__(
        self,
        message: str,
        original_error: Exception | None = None,
        details: dict | None = None,
    ):
        """Initialize store error.

        Args:
            message: Human-readable error description.
            original_error: The underlying exception.
            details: Optional dictionary with additional error context.
        """
        self.original_error = original_error
        super().__init__(message, details)

    def __str__(self) -> str:
        """Return string representation including the original error."""
        base = super().__str__()
        if self.original_error is not None:
            return f"{base} (caused by {type(self.original_error).__name__}: {self.original_error})"
        return base


class AlreadyNotifiedError(RiskDetectionError):
    """The throttle marker was advanced by an overlapping run.

    The conditional marker update matched no row, so the transaction was
    rolled back without creating notifications.
    """


class PushDeliveryError(RiskDetectionError):
    """Real-time push delivery failed.

    Non-fatal. Persisted notifications are already committed when this
    is raised.

    Attributes:
        recipient_id: Recipient the push was addressed to.
    """

    def __init__(
        self,
        message: str,
        recipient_id: str | None = None,
        details: dict | None = None,
    ):
        self.recipient_id = recipient_id
        super().__init__(message, details)
