# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Real-time push channels.

RedisPushChannel publishes each event as JSON on a per-recipient Redis
pub/sub channel; connected clients (for example a WebSocket gateway)
subscribe to their own channel. Publishing is at-most-once: an event
published while nobody is subscribed is simply dropped.

Configuration (via environment variables):
- PUSH_ENABLED: Set to false to use NullPushChannel
- PUSH_CHANNEL_PREFIX: Channel prefix, recipient id is appended
- REDIS_*: Connection settings
"""

import json
import logging
from typing import TYPE_CHECKING, Any

from redis.asyncio import ConnectionPool, Redis
from redis.exceptions import RedisError

from riskwatch.core.risk.exceptions import PushDeliveryError
from riskwatch.infrastructure.notifications.channels.base import (
    BaseChannel,
    ChannelResult,
    ChannelType,
)

if TYPE_CHECKING:
    from riskwatch.core.config.settings import Settings

logger = logging.getLogger(__name__)


class RedisPushChannel(BaseChannel):
    """Push channel over Redis pub/sub.

    Example:
        channel = RedisPushChannel(redis, channel_prefix="riskwatch:notifications")
        result = await channel.send(user_id, {"title": "Hi"})
    """

    def __init__(
        self,
        redis: Redis,
        channel_prefix: str = "riskwatch:notifications",
        owns_client: bool = False,
    ) -> None:
        """Initialize the channel.

        Args:
            redis: Async Redis client to publish with.
            channel_prefix: Prefix of per-recipient channels.
            owns_client: Close the client in close().
        """
        super().__init__()
        self._redis = redis
        self._prefix = channel_prefix
        self._owns_client = owns_client

    @classmethod
    def from_settings(cls, settings: "Settings") -> "RedisPushChannel":
        """Build a channel with its own connection pool.

        Args:
            settings: Application settings.

        Returns:
            Channel that owns its Redis client.
        """
        pool = ConnectionPool.from_url(
            settings.redis.url,
            max_connections=settings.redis.max_connections,
            decode_responses=True,
        )
        return cls(
            Redis(connection_pool=pool),
            channel_prefix=settings.push.channel_prefix,
            owns_client=True,
        )

    @property
    def channel_type(self) -> ChannelType:
        """Return the channel type."""
        return ChannelType.REDIS_PUBSUB

    def channel_for(self, recipient_id: str) -> str:
        """Get the pub/sub channel name of a recipient."""
        return f"{self._prefix}:{recipient_id}"

    async def send(self, recipient_id: str, payload: dict[str, Any]) -> ChannelResult:
        """Publish an event to the recipient's channel.

        Args:
            recipient_id: User the event is for.
            payload: JSON-serializable event body.

        Returns:
            SENT with the subscriber count, or SKIPPED when nobody listens.

        Raises:
            PushDeliveryError: If Redis rejected or failed the publish.
        """
        channel = self.channel_for(recipient_id)
        try:
            receivers = await self._redis.publish(channel, json.dumps(payload, default=str))
        except RedisError as e:
            raise PushDeliveryError(
                f"Failed to publish to {channel}: {e}",
                recipient_id=recipient_id,
            ) from e

        if not receivers:
            self.logger.debug("No subscribers on %s", channel)
            return self.create_skipped_result(recipient_id, "No active subscribers")

        return self.create_success_result(recipient_id, metadata={"receivers": receivers})

    async def close(self) -> None:
        """Close the Redis client if this channel created it."""
        if self._owns_client:
            await self._redis.aclose()


class NullPushChannel(BaseChannel):
    """Channel used when real-time push is disabled."""

    @property
    def channel_type(self) -> ChannelType:
        """Return the channel type."""
        return ChannelType.NULL

    async def send(self, recipient_id: str, payload: dict[str, Any]) -> ChannelResult:
        """Skip delivery."""
        return self.create_skipped_result(recipient_id, "Push disabled")


def create_push_channel(settings: "Settings") -> BaseChannel:
    """Create the push channel configured in settings.

    Args:
        settings: Application settings.

    Returns:
        RedisPushChannel when push is enabled, otherwise NullPushChannel.
    """
    if not settings.push.enabled:
        logger.info("Real-time push disabled, using NullPushChannel")
        return NullPushChannel()
    return RedisPushChannel.from_settings(settings)
