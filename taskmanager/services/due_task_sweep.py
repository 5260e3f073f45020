from __future__ import annotations

from datetime import datetime, timedelta, timezone
from enum import Enum
import logging
from typing import Callable

from taskmanager.db import Database
from taskmanager.models import DueTask, SweepOutcome, SweepReport, TaskOutcome, TaskStatus
from taskmanager.services.mailer import is_usable_address
from taskmanager.services.retry import RetryingSender
from taskmanager.services.task_store import TaskStore

logger = logging.getLogger(__name__)


class SweepState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"


class DueTaskSweep:
    """
    Scheduled job that emails owners of freshly overdue tasks.

    One run scans the lookback window once, notifies each task in turn and
    then deletes it or marks it notified. Runs are single-flight: a trigger
    arriving while a run is active is dropped, not queued.
    """

    def __init__(
        self,
        db: Database,
        task_store: TaskStore,
        sender: RetryingSender,
        delete_after_notify: bool = True,
        lookback: timedelta = timedelta(hours=1),
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.db = db
        self.task_store = task_store
        self.sender = sender
        self.delete_after_notify = delete_after_notify
        self.lookback = lookback
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self.state = SweepState.IDLE
        self.last_report: SweepReport | None = None

    @property
    def is_running(self) -> bool:
        return self.state is SweepState.RUNNING

    async def run(self) -> SweepReport | None:
        if self.state is SweepState.RUNNING:
            logger.warning("Due-task sweep already running; skipping this trigger")
            return None
        self.state = SweepState.RUNNING
        try:
            report = await self._run_once()
            self.last_report = report
            return report
        finally:
            self.state = SweepState.IDLE

    async def _run_once(self) -> SweepReport:
        now = self._clock()
        report = SweepReport(started_at=now, window_start=now - self.lookback, window_end=now)
        logger.info("Checking for due tasks between %s and %s", report.window_start.isoformat(), now.isoformat())

        try:
            if not await self.db.ping():
                logger.error("Database not available, skipping due-task sweep")
                report.store_available = False
                return self._finish(report)
            due_tasks = await self.task_store.find_due_tasks(now, self.lookback)
        except Exception:
            logger.exception("Due-task scan failed; treating as no tasks this run")
            report.store_available = False
            return self._finish(report)

        if not due_tasks:
            logger.info("No due tasks in this interval")
            return self._finish(report)

        for due in due_tasks:
            try:
                report.outcomes.append(await self._handle(due))
            except Exception:
                logger.exception("Unexpected error handling task %s", due.task_id)
                report.outcomes.append(TaskOutcome(task_id=due.task_id, outcome=SweepOutcome.ERROR))
        return self._finish(report)

    async def _handle(self, due: DueTask) -> TaskOutcome:
        if not is_usable_address(due.owner_email):
            logger.warning("No usable email for owner of task %s (%r)", due.task_id, due.description)
            return TaskOutcome(task_id=due.task_id, outcome=SweepOutcome.SKIPPED_NO_EMAIL)

        sent = await self.sender.send(due.owner_email, due.description, due.due_date)
        attempts = self.sender.last_attempts
        if not sent:
            logger.error(
                "Failed to send email for task %s after %s attempts; leaving it for the next run",
                due.task_id,
                attempts,
            )
            return TaskOutcome(task_id=due.task_id, outcome=SweepOutcome.NOTIFY_FAILED, attempts=attempts)

        logger.info("Email sent for task %s to %s", due.task_id, due.owner_email)
        return TaskOutcome(task_id=due.task_id, outcome=await self._dispose(due), attempts=attempts)

    async def _dispose(self, due: DueTask) -> SweepOutcome:
        try:
            if self.delete_after_notify:
                if not await self.task_store.delete(due.task_id):
                    logger.warning("Task %s was gone before it could be deleted", due.task_id)
                    return SweepOutcome.NOTIFIED_DISPOSITION_FAILED
                logger.info("Deleted task %s", due.task_id)
                return SweepOutcome.NOTIFIED_AND_DELETED
            if not await self.task_store.mark_status(due.task_id, TaskStatus.NOTIFIED):
                logger.warning("Task %s was gone before it could be marked notified", due.task_id)
                return SweepOutcome.NOTIFIED_DISPOSITION_FAILED
            logger.info("Marked task %s as notified", due.task_id)
            return SweepOutcome.NOTIFIED_AND_MARKED
        except Exception as exc:
            action = "delete" if self.delete_after_notify else "update status of"
            logger.error("Failed to %s task %s: %s", action, due.task_id, exc)
            return SweepOutcome.NOTIFIED_DISPOSITION_FAILED

    def _finish(self, report: SweepReport) -> SweepReport:
        report.finished_at = self._clock()
        if report.outcomes:
            logger.info(
                "Due-task sweep finished: %s handled, %s emailed, %s failed, %s skipped",
                len(report.outcomes),
                report.emails_sent,
                report.count(SweepOutcome.NOTIFY_FAILED),
                report.count(SweepOutcome.SKIPPED_NO_EMAIL),
            )
        return report
