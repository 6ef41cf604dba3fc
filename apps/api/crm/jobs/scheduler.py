"""Background scheduler for the followup reminder sweep."""
from __future__ import annotations

import logging
from datetime import datetime, timezone

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from ..core.config import settings
from ..services.reminders import run_reminder_job

logger = logging.getLogger(__name__)

REMINDER_JOB_ID = "followup_reminders"

scheduler: AsyncIOScheduler | None = None


def create_scheduler() -> AsyncIOScheduler:
    """Build the scheduler with the reminder job registered."""

    global scheduler

    if scheduler is not None:
        return scheduler

    scheduler = AsyncIOScheduler(
        timezone="UTC",
        job_defaults={
            "coalesce": True,
            "max_instances": 1,
            "misfire_grace_time": 60 * 5,
        },
    )
    scheduler.add_job(
        run_reminder_job,
        trigger=IntervalTrigger(minutes=settings.reminder_interval_minutes),
        id=REMINDER_JOB_ID,
        name="Followup reminders",
        replace_existing=True,
        next_run_time=datetime.now(timezone.utc),
    )
    logger.info("Registered reminder sweep every %s minutes", settings.reminder_interval_minutes)
    return scheduler


def start_scheduler() -> None:
    """Start the scheduler if it exists and is not already running."""

    if scheduler is None:
        logger.error("Scheduler was not created; call create_scheduler() first")
        return
    if scheduler.running:
        return
    scheduler.start()
    logger.info("Scheduler started with %s job(s)", len(scheduler.get_jobs()))


def stop_scheduler() -> None:
    """Stop the scheduler without waiting for running jobs."""

    global scheduler

    if scheduler is None:
        return
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
    scheduler = None
