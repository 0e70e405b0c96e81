# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Notification delivery infrastructure.

Notifications are persisted by the risk dispatcher; the channels in this
package only deliver the real-time event that accompanies them.

Usage:
    from riskwatch.infrastructure.notifications import create_push_channel

    channel = create_push_channel(settings)
    await channel.send(user_id, payload)
"""

from riskwatch.infrastructure.notifications.channels import (
    BaseChannel,
    ChannelResult,
    ChannelType,
    DeliveryStatus,
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
