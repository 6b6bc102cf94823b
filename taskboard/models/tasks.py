from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator

TaskStatus = Literal["pending", "in-progress", "completed"]
TaskPriority = Literal["low", "medium", "high"]
SortOrder = Literal["asc", "desc"]

TASK_STATUSES: tuple[str, ...] = ("pending", "in-progress", "completed")
TASK_PRIORITIES: tuple[str, ...] = ("low", "medium", "high")


class Task(BaseModel):
    id: str
    title: str
    description: str = ""
    deadline: date
    assigned_to: str = ""
    status: TaskStatus = "pending"
    priority: TaskPriority = "medium"
    created_at: datetime
    updated_at: datetime


class TaskStats(BaseModel):
    total: int = 0
    pending: int = 0
    in_progress: int = 0
    completed: int = 0
    overdue: int = 0


class CreateTaskRequest(BaseModel):
    title: str = Field(min_length=1)
    description: str = ""
    deadline: date
    assigned_to: str = ""
    status: TaskStatus = "pending"
    priority: TaskPriority = "medium"

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Title is required")
        return value.strip()


class UpdateTaskRequest(BaseModel):
    """Partial update. Only fields that were sent are applied."""

    title: str | None = None
    description: str | None = None
    deadline: date | None = None
    assigned_to: str | None = None
    status: TaskStatus | None = None
    priority: TaskPriority | None = None

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, value: str | None) -> str | None:
        if value is not None and not value.strip():
            raise ValueError("Title is required")
        return value.strip() if value is not None else None
