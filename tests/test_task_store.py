import asyncio
from datetime import datetime, timedelta, timezone

from taskmanager.models import TaskStatus
from taskmanager.services.task_store import TaskStore
from taskmanager.services.user_store import UserStore

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
WINDOW = timedelta(hours=1)


def seed(users: UserStore, task_store: TaskStore, rows: list[tuple[str, datetime | None, TaskStatus]], email="owner@example.com"):
    async def _seed():
        user = await users.create("Owner", email, "hash")
        ids = {}
        for description, due, status in rows:
            task = await task_store.create(user.id, description, due)
            if status != TaskStatus.PENDING:
                await task_store.mark_status(task.id, status)
            ids[description] = task.id
        return user, ids

    return asyncio.run(_seed())


def due_descriptions(task_store: TaskStore) -> set[str]:
    rows = asyncio.run(task_store.find_due_tasks(NOW, WINDOW))
    return {row.description for row in rows}


def test_find_due_tasks_window_edges(users, task_store):
    seed(
        users,
        task_store,
        [
            ("exactly now", NOW, TaskStatus.PENDING),
            ("half hour ago", NOW - timedelta(minutes=30), TaskStatus.PENDING),
            ("exactly window start", NOW - WINDOW, TaskStatus.PENDING),
            ("before window", NOW - WINDOW - timedelta(seconds=1), TaskStatus.PENDING),
            ("in the future", NOW + timedelta(seconds=1), TaskStatus.PENDING),
            ("no due date", None, TaskStatus.PENDING),
        ],
    )
    assert due_descriptions(task_store) == {"exactly now", "half hour ago"}


def test_find_due_tasks_excludes_terminal_statuses(users, task_store):
    due = NOW - timedelta(minutes=10)
    seed(
        users,
        task_store,
        [
            ("pending", due, TaskStatus.PENDING),
            ("in progress", due, TaskStatus.IN_PROGRESS),
            ("cancelled", due, TaskStatus.CANCELLED),
            ("completed", due, TaskStatus.COMPLETED),
            ("notified", due, TaskStatus.NOTIFIED),
        ],
    )
    assert due_descriptions(task_store) == {"pending", "in progress", "cancelled"}


def test_find_due_tasks_joins_owner_email(users, task_store):
    user, ids = seed(users, task_store, [("report", NOW - timedelta(minutes=5), TaskStatus.PENDING)], email="ana@example.com")
    rows = asyncio.run(task_store.find_due_tasks(NOW, WINDOW))
    assert len(rows) == 1
    assert rows[0].task_id == ids["report"]
    assert rows[0].user_id == user.id
    assert rows[0].owner_email == "ana@example.com"
    assert rows[0].due_date == NOW - timedelta(minutes=5)
    assert rows[0].due_date.tzinfo is not None


def test_find_due_tasks_normalizes_non_utc_due_dates(users, task_store):
    plus_two = timezone(timedelta(hours=2))
    seed(users, task_store, [("offset", (NOW - timedelta(minutes=20)).astimezone(plus_two), TaskStatus.PENDING)])
    assert due_descriptions(task_store) == {"offset"}


def test_delete_and_mark_status(users, task_store):
    _, ids = seed(users, task_store, [("a", NOW, TaskStatus.PENDING), ("b", NOW, TaskStatus.PENDING)])
    assert asyncio.run(task_store.delete(ids["a"])) is True
    assert asyncio.run(task_store.get(ids["a"])) is None
    assert asyncio.run(task_store.delete(ids["a"])) is False

    assert asyncio.run(task_store.mark_status(ids["b"], TaskStatus.NOTIFIED)) is True
    assert asyncio.run(task_store.get(ids["b"])).status == TaskStatus.NOTIFIED.value
