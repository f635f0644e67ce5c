"""Weekly calibration job on an APScheduler cron trigger."""

from __future__ import annotations

import logging
from typing import Optional

from apscheduler.job import Job
from apscheduler.schedulers.base import BaseScheduler
from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.cron import CronTrigger

from bob.calibration.service import run_batch
from bob.config.settings import ScheduleConfig, Settings, get_settings
from bob.db.connection import DatabaseConnection

logger = logging.getLogger(__name__)

JOB_ID = "weekly_calibration"


def build_trigger(schedule: ScheduleConfig) -> CronTrigger:
    """Cron trigger for the configured weekday and time."""
    return CronTrigger(
        day_of_week=schedule.day_of_week,
        hour=schedule.hour,
        minute=schedule.minute,
        timezone=schedule.timezone,
    )


def register_weekly_calibration(
    scheduler: BaseScheduler,
    db: DatabaseConnection,
    settings: Optional[Settings] = None,
) -> Job:
    """Register the batch calibration job with the scheduler."""
    settings = settings or get_settings()
    schedule = settings.schedule
    job = scheduler.add_job(
        run_batch,
        trigger=build_trigger(schedule),
        kwargs={"db": db, "settings": settings},
        id=JOB_ID,
        name="weekly calibration",
        replace_existing=True,
        coalesce=True,
        max_instances=1,
        misfire_grace_time=3600,
    )
    logger.info(
        "Registered weekly calibration job (%s %02d:%02d %s)",
        schedule.day_of_week, schedule.hour, schedule.minute, schedule.timezone,
    )
    return job


def run_scheduler(db: DatabaseConnection, settings: Optional[Settings] = None) -> None:
    """Run the weekly calibration job in the foreground until interrupted."""
    settings = settings or get_settings()
    scheduler = BlockingScheduler(timezone=settings.schedule.timezone)
    register_weekly_calibration(scheduler, db, settings)
    try:
        scheduler.start()
    except (KeyboardInterrupt, SystemExit):
        logger.info("Calibration scheduler stopped")
