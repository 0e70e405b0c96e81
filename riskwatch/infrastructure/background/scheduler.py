# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Scheduler for periodic risk scans.

Uses APScheduler for cron-style scheduling. The scheduler only enqueues
Dramatiq messages; the scans themselves run in workers.

Example:
    from riskwatch.infrastructure.background.scheduler import start_scheduler

    scheduler = await start_scheduler(settings)
    ...
    await stop_scheduler()
"""

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable
from uuid import uuid4

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from riskwatch.utils.datetime import format_iso, utc_now

if TYPE_CHECKING:
    from datetime import datetime

    from riskwatch.core.config.settings import Settings

logger = logging.getLogger(__name__)


@dataclass
class ScheduledTask:
    """Configuration for a scheduled Dramatiq task.

    Attributes:
        id: Unique task identifier.
        name: Human-readable task name.
        actor_name: Name of the Dramatiq actor to call.
        cron_expression: Five-field crontab expression, evaluated in UTC.
        args: Positional arguments for the actor.
        last_run: Last run timestamp.
        run_count: Total number of runs.
        error_count: Number of failed runs.
    """

    name: str
    actor_name: str
    cron_expression: str
    args: tuple = field(default_factory=tuple)
    id: str = field(default_factory=lambda: str(uuid4()))
    last_run: "datetime | None" = None
    run_count: int = 0
    error_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "name": self.name,
            "actor_name": self.actor_name,
            "cron_expression": self.cron_expression,
            "last_run": format_iso(self.last_run),
            "run_count": self.run_count,
            "error_count": self.error_count,
        }


class RiskScanScheduler:
    """Cron scheduler that sends Dramatiq actor messages.

    Attributes:
        _scheduler: APScheduler instance while running.
        _tasks: Scheduled tasks by id.
    """

    def __init__(self) -> None:
        """Initialize the scheduler."""
        self._scheduler: AsyncIOScheduler | None = None
        self._tasks: dict[str, ScheduledTask] = {}

    @property
    def is_running(self) -> bool:
        """Check if scheduler is running."""
        return self._scheduler is not None

    def _get_actor(self, actor_name: str) -> Callable[..., Any] | None:
        """Look up a Dramatiq actor by name."""
        from riskwatch.infrastructure.background import tasks

        return getattr(tasks, actor_name, None)

    def add_cron_task(
        self,
        name: str,
        actor_name: str,
        cron_expression: str,
        args: tuple = (),
    ) -> ScheduledTask:
        """Add a cron-scheduled task.

        Args:
            name: Task name.
            actor_name: Dramatiq actor to call.
            cron_expression: Cron expression (minute hour day month weekday).
            args: Actor arguments.

        Returns:
            Created ScheduledTask.

        Raises:
            ValueError: If the cron expression is invalid.
        """
        trigger = CronTrigger.from_crontab(cron_expression, timezone="UTC")
        task = ScheduledTask(
            name=name,
            actor_name=actor_name,
            cron_expression=cron_expression,
            args=args,
        )
        self._tasks[task.id] = task

        if self._scheduler is not None:
            self._add_job(task, trigger)

        logger.info("Added cron task: %s (%s)", name, cron_expression)
        return task

    def _add_job(self, task: ScheduledTask, trigger: CronTrigger | None = None) -> None:
        self._scheduler.add_job(  # type: ignore[union-attr]
            self._execute_task,
            trigger=trigger or CronTrigger.from_crontab(task.cron_expression, timezone="UTC"),
            args=[task.id],
            id=task.id,
            name=task.name,
            replace_existing=True,
        )

    async def _execute_task(self, task_id: str) -> None:
        """Send the actor message of a scheduled task.

        Args:
            task_id: ID of the task to execute.
        """
        task = self._tasks.get(task_id)
        if task is None:
            return

        try:
            actor = self._get_actor(task.actor_name)
            if actor is None:
                raise ValueError(f"Actor not found: {task.actor_name}")

            actor.send(*task.args)

            task.last_run = utc_now()
            task.run_count += 1
            logger.debug("Scheduled task %s sent to queue", task.name)

        except Exception as e:
            task.error_count += 1
            logger.error("Scheduled task %s failed: %s", task.name, str(e))

    def list_tasks(self) -> list[ScheduledTask]:
        """List all scheduled tasks."""
        return list(self._tasks.values())

    async def start(self) -> None:
        """Start the scheduler and register jobs for existing tasks."""
        if self._scheduler is not None:
            return

        self._scheduler = AsyncIOScheduler(timezone="UTC")
        for task in self._tasks.values():
            self._add_job(task)
        self._scheduler.start()

        logger.info("Risk scan scheduler started")

    async def stop(self) -> None:
        """Stop the scheduler."""
        if self._scheduler is None:
            return

        self._scheduler.shutdown(wait=False)
        self._scheduler = None
        logger.info("Risk scan scheduler stopped")

    def get_stats(self) -> dict[str, Any]:
        """Get scheduler statistics."""
        return {
            "is_running": self.is_running,
            "task_count": len(self._tasks),
            "total_runs": sum(t.run_count for t in self._tasks.values()),
            "total_errors": sum(t.error_count for t in self._tasks.values()),
            "tasks": [t.to_dict() for t in self._tasks.values()],
        }


# Singleton instance
_scheduler: RiskScanScheduler | None = None


def get_scheduler() -> RiskScanScheduler:
    """Get the singleton scheduler instance."""
    global _scheduler
    if _scheduler is None:
        _scheduler = RiskScanScheduler()
    return _scheduler


async def start_scheduler(settings: "Settings") -> RiskScanScheduler:
    """Start the scheduler with the daily risk scan registered.

    Args:
        settings: Application settings providing the cron expression.

    Returns:
        Started scheduler instance.
    """
    scheduler = get_scheduler()
    if not scheduler.list_tasks():
        scheduler.add_cron_task(
            name="Daily Risk Scan",
            actor_name="daily_risk_scan_job",
            cron_expression=settings.risk_scan.schedule_cron,
        )
    await scheduler.start()
    return scheduler


async def stop_scheduler() -> None:
    """Stop the scheduler."""
    global _scheduler
    if _scheduler is not None:
        await _scheduler.stop()
        _scheduler = None
