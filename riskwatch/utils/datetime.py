# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""DateTime utilities for RiskWatch.

All timestamps are stored in UTC and all Python datetimes handled by the
risk pipeline are timezone-aware. Some drivers (SQLite) hand back naive
values, so reads go through ensure_utc().

Usage:
    from riskwatch.utils.datetime import utc_now, whole_days_between

    now = utc_now()
    inactive = whole_days_between(last_activity, now)
"""

from datetime import datetime, timedelta, timezone


def utc_now() -> datetime:
    """Get current UTC time as timezone-aware datetime.

    Returns:
        Timezone-aware datetime representing current UTC time.
    """
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime | None) -> datetime | None:
    """Ensure a datetime is timezone-aware UTC.

    Args:
        dt: A datetime object (naive or aware) or None.

    Returns:
        Timezone-aware UTC datetime or None.

    Note:
        - If dt is None, returns None
        - If dt is naive, assumes UTC and adds tzinfo
        - If dt is aware, converts to UTC
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        # Naive datetime - assume UTC
        return dt.replace(tzinfo=timezone.utc)

    return dt.astimezone(timezone.utc)


def whole_days_between(start: datetime, end: datetime) -> int:
    """Count whole days elapsed from start to end.

    Partial days are truncated and a start in the future yields 0.

    Args:
        start: Earlier datetime.
        end: Later datetime.

    Returns:
        Number of complete 24-hour periods between the two.
    """
    elapsed = ensure_utc(end) - ensure_utc(start)
    if elapsed < timedelta(0):
        return 0
    return elapsed.days


def days_before(reference: datetime, days: int) -> datetime:
    """Get the datetime N days before a reference instant.

    Args:
        reference: Reference datetime.
        days: Number of days to go back.

    Returns:
        Timezone-aware UTC datetime.
    """
    return ensure_utc(reference) - timedelta(days=days)


def format_iso(dt: datetime | None) -> str | None:
    """Format a datetime as ISO 8601 string.

    Args:
        dt: Datetime to format.

    Returns:
        ISO formatted string or None.
    """
    if dt is None:
        return None
    return ensure_utc(dt).isoformat()
