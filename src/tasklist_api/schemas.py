from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictStr

from .filters import TaskStats
from .models import TEXT_MAX_LENGTH, TaskEntity


# PUBLIC_INTERFACE
class TaskCreate(BaseModel):
    """
    Schema for creating a new task.

    Only types are checked here; trimming and the 1..200 length rule are
    enforced by the repository so stored data and API input share one rule.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "text": "Buy milk",
                "completed": False,
            }
        }
    )

    text: StrictStr = Field(..., description=f"Task text, 1..{TEXT_MAX_LENGTH} characters after trimming")
    completed: StrictBool = Field(default=False, description="Completion status flag")


# PUBLIC_INTERFACE
class TaskUpdate(BaseModel):
    """
    Schema for updating an existing task.
    All fields are optional; only provided fields will be updated.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "text": "Buy oat milk",
                "completed": True,
            }
        }
    )

    text: Optional[StrictStr] = Field(
        default=None,
        description="New task text; omit to keep the current text. An empty string is rejected.",
    )
    completed: Optional[StrictBool] = Field(default=None, description="New completion status flag")


# PUBLIC_INTERFACE
class TaskOut(BaseModel):
    """
    Schema returned by the API for a task.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "id": 42,
                "text": "Buy milk",
                "completed": False,
                "createdAt": "2026-01-25T10:15:30.123456Z",
                "updatedAt": "2026-01-26T09:00:00.000001Z",
            }
        },
    )

    id: int = Field(..., description="Unique identifier of the task")
    text: str = Field(..., description="Task text")
    completed: bool = Field(..., description="Completion status flag")
    created_at: datetime = Field(..., alias="createdAt", description="Creation timestamp (UTC)")
    updated_at: datetime = Field(..., alias="updatedAt", description="Last update timestamp (UTC)")

    @classmethod
    def from_entity(cls, entity: TaskEntity) -> "TaskOut":
        return cls(
            id=entity["id"],
            text=entity["text"],
            completed=entity["completed"],
            created_at=entity["created_at"],
            updated_at=entity["updated_at"],
        )


class TaskDeleted(BaseModel):
    message: str = Field(..., description="Confirmation message")
    task: TaskOut = Field(..., description="The removed task")


class CompletedTasksDeleted(BaseModel):
    message: str = Field(..., description="Confirmation message")
    count: int = Field(..., description="Number of completed tasks removed")


class TaskStatsOut(BaseModel):
    total: int = Field(..., description="Number of tasks")
    completed: int = Field(..., description="Number of completed tasks")
    pending: int = Field(..., description="Number of pending tasks")

    @classmethod
    def from_stats(cls, stats: TaskStats) -> "TaskStatsOut":
        return cls(total=stats.total, completed=stats.completed, pending=stats.pending)


class ErrorOut(BaseModel):
    error: str = Field(..., description="Stable error kind, e.g. NotFound or ValidationError")
    message: str = Field(..., description="Human readable message")
    detail: Optional[List[Any]] = Field(default=None, description="Field-level validation errors")
