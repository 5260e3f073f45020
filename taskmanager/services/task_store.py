from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import delete, select, update

from taskmanager.db import Database, Task, User, as_utc, utcnow
from taskmanager.models import TERMINAL_STATUSES, DueTask, TaskStatus

DEFAULT_LOOKBACK = timedelta(hours=1)


def _normalize(task: Task) -> Task:
    task.due_date = as_utc(task.due_date)
    task.created_at = as_utc(task.created_at)
    task.updated_at = as_utc(task.updated_at)
    return task


class TaskStore:
    def __init__(self, db: Database) -> None:
        self.db = db

    async def list_for_user(self, user_id: str) -> list[Task]:
        async with self.db.session() as session:
            result = await session.execute(select(Task).where(Task.user_id == user_id).order_by(Task.created_at))
            return [_normalize(row) for row in result.scalars()]

    async def get(self, task_id: str) -> Task | None:
        async with self.db.session() as session:
            task = await session.get(Task, task_id)
            return _normalize(task) if task else None

    async def get_for_user(self, user_id: str, task_id: str) -> Task | None:
        task = await self.get(task_id)
        if task is None or task.user_id != user_id:
            return None
        return task

    async def find_by_description(self, user_id: str, description: str) -> Task | None:
        async with self.db.session() as session:
            result = await session.execute(
                select(Task).where(Task.user_id == user_id, Task.description == description).limit(1)
            )
            task = result.scalar_one_or_none()
            return _normalize(task) if task else None

    async def create(self, user_id: str, description: str, due_date: datetime | None) -> Task:
        task = Task(
            user_id=user_id,
            description=description,
            due_date=as_utc(due_date),
            status=TaskStatus.PENDING.value,
        )
        async with self.db.session() as session:
            session.add(task)
            await session.commit()
            await session.refresh(task)
        return _normalize(task)

    async def update(self, task_id: str, changes: dict[str, Any]) -> Task | None:
        async with self.db.session() as session:
            task = await session.get(Task, task_id)
            if task is None:
                return None
            for key, value in changes.items():
                if key == "due_date":
                    value = as_utc(value)
                elif key == "status" and isinstance(value, TaskStatus):
                    value = value.value
                setattr(task, key, value)
            await session.commit()
            await session.refresh(task)
            return _normalize(task)

    async def delete(self, task_id: str) -> bool:
        async with self.db.session() as session:
            result = await session.execute(delete(Task).where(Task.id == task_id))
            await session.commit()
            return result.rowcount > 0

    async def mark_status(self, task_id: str, status: TaskStatus) -> bool:
        async with self.db.session() as session:
            result = await session.execute(
                update(Task).where(Task.id == task_id).values(status=status.value, updated_at=utcnow())
            )
            await session.commit()
            return result.rowcount > 0

    async def find_due_tasks(self, now: datetime, lookback: timedelta = DEFAULT_LOOKBACK) -> list[DueTask]:
        """
        Tasks whose due date lies in (now - lookback, now] and whose status is
        not terminal, each paired with the owner's email address.

        Rows are returned in store order; callers must not rely on it.
        """
        window_end = as_utc(now)
        window_start = window_end - lookback
        terminal = [status.value for status in TERMINAL_STATUSES]
        stmt = (
            select(Task, User.email)
            .outerjoin(User, User.id == Task.user_id)
            .where(
                Task.due_date.is_not(None),
                Task.due_date > window_start,
                Task.due_date <= window_end,
                Task.status.not_in(terminal),
            )
        )
        async with self.db.session() as session:
            result = await session.execute(stmt)
            rows = result.all()

        due: list[DueTask] = []
        for task, email in rows:
            due.append(
                DueTask(
                    task_id=task.id,
                    user_id=task.user_id,
                    description=task.description,
                    due_date=as_utc(task.due_date),
                    status=task.status,
                    owner_email=email,
                )
            )
        return due
