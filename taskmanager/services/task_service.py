from __future__ import annotations

from datetime import datetime, timezone
import logging
from typing import Any

from taskmanager.db import Task, as_utc
from taskmanager.models import CLIENT_STATUSES, TaskStatus
from taskmanager.services.errors import Conflict, NotFound, PermissionDenied, ValidationFailed
from taskmanager.services.task_store import TaskStore

logger = logging.getLogger(__name__)


def is_past_due(due_date: datetime | None, now: datetime | None = None) -> bool:
    if due_date is None:
        return False
    return as_utc(due_date) < (now or datetime.now(timezone.utc))


class TaskService:
    def __init__(self, store: TaskStore) -> None:
        self.store = store

    async def list_tasks(self, user_id: str) -> list[Task]:
        tasks = await self.store.list_for_user(user_id)
        logger.info("Fetched %s tasks for user %s", len(tasks), user_id)
        return tasks

    async def get_task(self, user_id: str, task_id: str) -> Task:
        task = await self.store.get_for_user(user_id, task_id)
        if task is None:
            logger.warning("Task %s not found for user %s", task_id, user_id)
            raise NotFound("Task with given ID not found")
        return task

    async def create_task(self, user_id: str, description: str, due_date: datetime | None) -> Task:
        text = (description or "").strip()
        if not text:
            raise ValidationFailed("Description of task not found")
        if await self.store.find_by_description(user_id, text) is not None:
            raise Conflict("Task with this description already exists.")
        task = await self.store.create(user_id, text, due_date)
        logger.info("Task %s created for user %s", task.id, user_id)
        return task

    async def update_task(self, user_id: str, task_id: str, changes: dict[str, Any]) -> Task:
        if not changes:
            raise ValidationFailed("Nothing to update.")
        if "description" in changes:
            text = (changes["description"] or "").strip()
            if not text:
                raise ValidationFailed("Description of task not found")
            changes["description"] = text
        status = changes.get("status")
        if "status" in changes and status not in CLIENT_STATUSES:
            raise ValidationFailed("Invalid status value.")

        await self.get_task(user_id, task_id)
        task = await self.store.update(task_id, changes)
        if task is None:
            raise NotFound("Task with given ID not found")
        logger.info("Task %s updated for user %s", task_id, user_id)
        return task

    async def set_status(self, user_id: str, task_id: str, status: TaskStatus) -> Task:
        if status not in CLIENT_STATUSES:
            raise ValidationFailed("Invalid status value.")
        task = await self.store.get(task_id)
        if task is None:
            raise NotFound("Task not found")
        if task.user_id != user_id:
            raise PermissionDenied("Unauthorized")
        updated = await self.store.update(task_id, {"status": status})
        if updated is None:
            raise NotFound("Task not found")
        return updated

    async def delete_task(self, user_id: str, task_id: str) -> bool:
        """Delete the task; returns whether it was already past due."""
        task = await self.get_task(user_id, task_id)
        was_past_due = is_past_due(task.due_date)
        await self.store.delete(task_id)
        logger.info("Task %s deleted for user %s (past due: %s)", task_id, user_id, was_past_due)
        return was_past_due
