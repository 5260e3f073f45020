from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TaskStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "inProgress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NOTIFIED = "notified"


# Shared by the API (client-writable statuses) and the due-task sweep (exclusions).
TERMINAL_STATUSES = frozenset({TaskStatus.COMPLETED, TaskStatus.NOTIFIED})
CLIENT_STATUSES = frozenset(set(TaskStatus) - {TaskStatus.NOTIFIED})


def parse_client_status(value: object) -> TaskStatus:
    raw = str(value or "").strip()
    if raw.lower() == "inprogress":
        return TaskStatus.IN_PROGRESS
    try:
        status = TaskStatus(raw)
    except ValueError:
        raise ValueError("Invalid status value.") from None
    if status not in CLIENT_STATUSES:
        raise ValueError("Invalid status value.")
    return status


class SignupRequest(BaseModel):
    name: str
    email: str
    password: str


class LoginRequest(BaseModel):
    email: str = ""
    password: str = ""


class TaskCreate(BaseModel):
    description: str = ""
    due_date: Optional[datetime] = Field(default=None, alias="dueDate")

    model_config = ConfigDict(populate_by_name=True)


class TaskUpdate(BaseModel):
    description: Optional[str] = None
    due_date: Optional[datetime] = Field(default=None, alias="dueDate")
    status: Optional[TaskStatus] = None

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("status", mode="before")
    @classmethod
    def _normalize_status(cls, value: object) -> TaskStatus | None:
        if value is None:
            return None
        return parse_client_status(value)


class TaskStatusPatch(BaseModel):
    status: TaskStatus

    @field_validator("status", mode="before")
    @classmethod
    def _normalize_status(cls, value: object) -> TaskStatus:
        return parse_client_status(value)


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: str
    joining_time: datetime
    created_at: datetime


class TaskOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    description: str
    due_date: Optional[datetime] = None
    status: TaskStatus
    created_at: datetime
    updated_at: datetime


class DueTask(BaseModel):
    """A task that entered the lookback window, joined with its owner's address."""

    task_id: str
    user_id: str
    description: str
    due_date: datetime
    status: TaskStatus
    owner_email: Optional[str] = None


class SweepOutcome(str, Enum):
    NOTIFIED_AND_DELETED = "notified-and-deleted"
    NOTIFIED_AND_MARKED = "notified-and-marked"
    NOTIFIED_DISPOSITION_FAILED = "notified-disposition-failed"
    NOTIFY_FAILED = "notify-failed"
    SKIPPED_NO_EMAIL = "skipped-no-email"
    ERROR = "error"


class TaskOutcome(BaseModel):
    task_id: str
    outcome: SweepOutcome
    attempts: int = 0


class SweepReport(BaseModel):
    started_at: datetime
    finished_at: Optional[datetime] = None
    window_start: datetime
    window_end: datetime
    store_available: bool = True
    outcomes: list[TaskOutcome] = Field(default_factory=list)

    def count(self, outcome: SweepOutcome) -> int:
        return sum(1 for row in self.outcomes if row.outcome == outcome)

    @property
    def emails_sent(self) -> int:
        sent = {
            SweepOutcome.NOTIFIED_AND_DELETED,
            SweepOutcome.NOTIFIED_AND_MARKED,
            SweepOutcome.NOTIFIED_DISPOSITION_FAILED,
        }
        return sum(1 for row in self.outcomes if row.outcome in sent)
