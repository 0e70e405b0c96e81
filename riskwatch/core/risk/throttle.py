# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Notification throttle decision.

Read-only. The dispatcher's conditional marker update is the commit
point for de-duplication; this gate only avoids needless work.
"""

from datetime import datetime, timedelta

from riskwatch.core.risk.classifier import RiskTier
from riskwatch.utils.datetime import days_before, whole_days_between

THROTTLE_WINDOW_DAYS = 7
THROTTLE_WINDOW = timedelta(days=THROTTLE_WINDOW_DAYS)


def is_notification_due(
    tier: RiskTier,
    last_notified: datetime | None,
    now: datetime,
) -> bool:
    """Decide whether a student should be notified.

    Args:
        tier: Classified risk tier.
        last_notified: Current throttle marker, if any.
        now: Evaluation instant.

    Returns:
        True if the tier is not LOW and the marker is absent or at least
        seven whole days old.
    """
    if tier == RiskTier.LOW:
        return False
    if last_notified is None:
        return True
    return whole_days_between(last_notified, now) >= THROTTLE_WINDOW_DAYS


def throttle_cutoff(now: datetime) -> datetime:
    """Latest marker value that still permits a new notification at now."""
    return days_before(now, THROTTLE_WINDOW_DAYS)
