# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Risk scan actors.

Actors:
    - process_course_risk_notifications: Scan one course and notify at-risk students
    - daily_risk_scan_job: Scheduler job that enqueues one scan per course

A repeated scan of the same course is harmless: students notified in
the last seven days are throttled, so retries never double-notify.
"""

import logging
from typing import Any

import dramatiq

from riskwatch.core.config import get_settings
from riskwatch.core.risk.exceptions import NotFoundError, TransientStoreError
from riskwatch.infrastructure.background.broker import Priority, Queues, setup_dramatiq
from riskwatch.infrastructure.background.tasks.base import run_async
from riskwatch.utils.logging import clear_context

setup_dramatiq()

logger = logging.getLogger(__name__)


@dramatiq.actor(
    queue_name=Queues.RISK,
    max_retries=2,
    time_limit=900000,  # 15 minutes, above the default course timeout
    priority=Priority.NORMAL,
)
def process_course_risk_notifications(course_id: str) -> dict[str, Any]:
    """Scan a course and notify its at-risk students.

    Args:
        course_id: Course to scan.

    Returns:
        The run summary as a dictionary, or a status dictionary when the
        course does not exist.

    Raises:
        TransientStoreError: If enrollments could not be listed, so that
            Dramatiq retries the message.
    """
    logger.info("Risk scan triggered for course %s", course_id)

    async def _execute() -> dict[str, Any]:
        from riskwatch.core.risk.service import create_risk_detection_service
        from riskwatch.infrastructure.database.connection import get_worker_db_manager
        from riskwatch.infrastructure.notifications.channels.push import (
            create_push_channel,
        )
        from riskwatch.infrastructure.telemetry.metrics import get_risk_metrics

        settings = get_settings()
        push_channel = create_push_channel(settings)
        try:
            service = create_risk_detection_service(
                get_worker_db_manager(),
                push_channel,
                settings=settings,
                metrics=get_risk_metrics(),
            )
            summary = await service.process_risk_notifications(course_id)
            return summary.to_dict()
        finally:
            await push_channel.close()

    try:
        return run_async(_execute())
    except NotFoundError as e:
        logger.warning("Risk scan skipped for course %s: %s", course_id, e)
        return {"course_id": course_id, "status": "not_found"}
    except TransientStoreError:
        logger.error("Risk scan for course %s failed, will retry", course_id, exc_info=True)
        raise
    finally:
        clear_context()


@dramatiq.actor(
    queue_name=Queues.RISK,
    max_retries=1,
    time_limit=300000,  # 5 minutes
    priority=Priority.LOW,
)
def daily_risk_scan_job() -> dict[str, Any]:
    """Scheduler job: enqueue a risk scan for every course.

    Returns:
        Execution statistics with the number of scans enqueued.
    """
    logger.info("Daily risk scan job triggered")

    async def _execute() -> list[str]:
        from riskwatch.infrastructure.database.connection import get_worker_db_manager
        from riskwatch.infrastructure.database.repositories import SQLAlchemyRiskDataStore

        return await SQLAlchemyRiskDataStore(get_worker_db_manager()).list_course_ids()

    try:
        course_ids = run_async(_execute())
    except Exception as e:
        logger.error("Daily risk scan job failed: %s", e, exc_info=True)
        return {"status": "failed", "error": str(e)}

    for course_id in course_ids:
        process_course_risk_notifications.send(course_id)

    logger.info("Daily risk scan job enqueued %d course scans", len(course_ids))
    return {"status": "scheduled", "course_count": len(course_ids)}


def get_risk_actors() -> list:
    """Get all risk scan actors.

    Returns:
        List of risk actor functions.
    """
    return [
        process_course_risk_notifications,
        daily_risk_scan_job,
    ]
