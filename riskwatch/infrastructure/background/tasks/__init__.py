# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Background task actors for RiskWatch.

Usage:
    from riskwatch.infrastructure.background.tasks import (
        process_course_risk_notifications,
    )

    # Send a task
    process_course_risk_notifications.send("course-id")

Running Workers:
    dramatiq riskwatch.infrastructure.background.tasks --processes 2 --threads 4
"""

from riskwatch.infrastructure.background.tasks.base import run_async
from riskwatch.infrastructure.background.tasks.risk import (
    daily_risk_scan_job,
    get_risk_actors,
    process_course_risk_notifications,
)

__all__ = [
    "process_course_risk_notifications",
    "daily_risk_scan_job",
    "get_risk_actors",
    "run_async",
]
