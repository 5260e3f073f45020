from __future__ import annotations

from datetime import datetime, timezone
import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.date import DateTrigger

from taskmanager.services.due_task_sweep import DueTaskSweep

logger = logging.getLogger(__name__)

SWEEP_JOB_ID = "due_task_sweep"
STARTUP_SWEEP_JOB_ID = "due_task_sweep_startup"


def create_scheduler(timezone_name: str) -> AsyncIOScheduler:
    return AsyncIOScheduler(timezone=timezone_name)


def cron_trigger(expression: str, timezone_name: str) -> CronTrigger:
    """Parse a five-field crontab expression; raises ValueError when malformed."""
    fields = (expression or "").split()
    if len(fields) != 5:
        raise ValueError(f"Cron expression must have 5 fields, got {expression!r}")
    return CronTrigger.from_crontab(expression, timezone=timezone_name)


def register_sweep(
    scheduler: AsyncIOScheduler,
    sweep: DueTaskSweep,
    cron_expression: str,
    timezone_name: str,
    run_on_startup: bool = False,
) -> None:
    async def run_sweep() -> None:
        try:
            await sweep.run()
        except Exception:
            logger.exception("Scheduled due-task sweep failed")

    scheduler.add_job(
        run_sweep,
        cron_trigger(cron_expression, timezone_name),
        id=SWEEP_JOB_ID,
        replace_existing=True,
        coalesce=True,
    )
    if run_on_startup:
        scheduler.add_job(
            run_sweep,
            DateTrigger(run_date=datetime.now(timezone.utc)),
            id=STARTUP_SWEEP_JOB_ID,
            replace_existing=True,
            misfire_grace_time=None,
        )
    logger.info("Due-task sweep scheduled (%s, %s)%s", cron_expression, timezone_name, " with startup run" if run_on_startup else "")
