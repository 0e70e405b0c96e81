# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Real-time notification channels."""

from riskwatch.infrastructure.notifications.channels.base import (
    BaseChannel,
    ChannelResult,
    ChannelType,
    DeliveryStatus,
)
from riskwatch.infrastructure.notifications.channels.push import (
    NullPushChannel,
    RedisPushChannel,
    create_push_channel,
)

__all__ = [
    "BaseChannel",
    "ChannelResult",
    "ChannelType",
    "DeliveryStatus",
    "NullPushChannel",
    "RedisPushChannel",
    "create_push_channel",
]
