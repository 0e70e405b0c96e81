# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Base classes for real-time notification channels.

This module defines the abstract base class and shared types for push
channels. A channel delivers an already-persisted notification as a
real-time event. Delivery is best-effort: channels never retry, and a
transport failure is raised as PushDeliveryError for the caller to log.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from riskwatch.utils.datetime import utc_now


class ChannelType(str, Enum):
    """Available channel types."""

    REDIS_PUBSUB = "redis_pubsub"
    NULL = "null"


class DeliveryStatus(str, Enum):
    """Delivery status for a channel."""

    SENT = "sent"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class ChannelResult:
    """Result of a channel send operation.

    Attributes:
        channel: Which channel was used.
        status: Delivery status.
        recipient_id: Recipient the event was addressed to.
        error_message: Reason for a skipped or failed delivery.
        sent_at: When the send was attempted.
        metadata: Additional result metadata.
    """

    channel: ChannelType
    status: DeliveryStatus
    recipient_id: str
    error_message: str | None = None
    sent_at: datetime | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


class BaseChannel(ABC):
    """Abstract base class for push channels.

    Attributes:
        channel_type: The type of this channel.
    """

    def __init__(self) -> None:
        """Initialize the channel."""
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @property
    @abstractmethod
    def channel_type(self) -> ChannelType:
        """Return the channel type."""
        ...

    @abstractmethod
    async def send(self, recipient_id: str, payload: dict[str, Any]) -> ChannelResult:
        """Push an event to one recipient.

        Args:
            recipient_id: User the event is for.
            payload: JSON-serializable event body.

        Returns:
            ChannelResult with delivery status.

        Raises:
            PushDeliveryError: If the transport failed.
        """
        ...

    async def close(self) -> None:
        """Release transport resources. No-op by default."""

    def create_success_result(
        self,
        recipient_id: str,
        metadata: dict[str, Any] | None = None,
    ) -> ChannelResult:
        """Create a successful channel result."""
        return ChannelResult(
            channel=self.channel_type,
            status=DeliveryStatus.SENT,
            recipient_id=recipient_id,
            sent_at=utc_now(),
            metadata=metadata or {},
        )

    def create_skipped_result(self, recipient_id: str, reason: str) -> ChannelResult:
        """Create a skipped channel result.

        Args:
            recipient_id: Recipient of the event.
            reason: Why the send was skipped.

        Returns:
            ChannelResult with SKIPPED status.
        """
        return ChannelResult(
            channel=self.channel_type,
            status=DeliveryStatus.SKIPPED,
            recipient_id=recipient_id,
            error_message=reason,
            sent_at=utc_now(),
        )
