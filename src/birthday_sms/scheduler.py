from __future__ import annotations

import asyncio
import logging
from datetime import tzinfo

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from birthday_sms.bot_handlers import CheckRunner

LOGGER = logging.getLogger(__name__)

DAILY_JOB_ID = "daily-birthday-check"


def build_scheduler(runner: CheckRunner, daily_send_time: str, timezone: tzinfo) -> AsyncIOScheduler:
    """Schedule the daily check on a standalone scheduler, for running without the bot."""
    hour, minute = (int(piece) for piece in daily_send_time.split(":"))
    scheduler = AsyncIOScheduler(
        timezone=timezone,
        job_defaults={
            "coalesce": True,
            "max_instances": 1,
            "misfire_grace_time": 300,
        },
    )
    scheduler.add_job(
        runner.run,
        CronTrigger(hour=hour, minute=minute, timezone=timezone),
        id=DAILY_JOB_ID,
        replace_existing=True,
    )
    return scheduler


async def run_scheduler(runner: CheckRunner, daily_send_time: str, timezone: tzinfo) -> None:
    scheduler = build_scheduler(runner, daily_send_time, timezone)
    scheduler.start()
    for job in scheduler.get_jobs():
        LOGGER.info("Scheduled job %s: %s", job.id, job.trigger)

    try:
        await asyncio.Event().wait()
    finally:
        LOGGER.info("Stopping scheduler")
        scheduler.shutdown(wait=False)
