import asyncio
from datetime import datetime

import pytest

from taskmanager.db import Database
from taskmanager.services.task_store import TaskStore
from taskmanager.services.user_store import UserStore


class FakeMailer:
    """Records due-task emails; fails the first `fail_times` sends (or every send when -1)."""

    def __init__(self, fail_times: int = 0) -> None:
        self.fail_times = fail_times
        self.sent: list[tuple[str, str, datetime | None]] = []
        self.attempts = 0

    def is_configured(self) -> bool:
        return True

    async def send_due_task_email(self, to: str, description: str, due_date: datetime | None) -> None:
        self.attempts += 1
        if self.fail_times < 0 or self.attempts <= self.fail_times:
            raise OSError("smtp connection refused")
        self.sent.append((to, description, due_date))


@pytest.fixture
def db(tmp_path):
    database = Database(f"sqlite+aiosqlite:///{tmp_path / 'tasks.db'}")
    asyncio.run(database.create_all())
    yield database
    asyncio.run(database.dispose())


@pytest.fixture
def users(db):
    return UserStore(db)


@pytest.fixture
def task_store(db):
    return TaskStore(db)
