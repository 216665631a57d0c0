from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, TypedDict

from .errors import ValidationError

TEXT_MAX_LENGTH = 200
MAX_TASK_ID = 2**63 - 1


# PUBLIC_INTERFACE
class TaskEntity(TypedDict):
    """
    The persisted to-do item.

    Fields:
    - id: Unique integer identifier, assigned once and never reused
    - text: Trimmed task text (1..200 chars)
    - completed: Boolean completion flag
    - created_at: UTC creation timestamp, immutable
    - updated_at: UTC timestamp of the last successful mutation (>= created_at)
    """

    id: int
    text: str
    completed: bool
    created_at: datetime
    updated_at: datetime


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# PUBLIC_INTERFACE
def validate_text(value: Any) -> str:
    """
    Strip whitespace and enforce 1..200 length.

    Raises:
        ValidationError: if value is not a string, is blank, or is too long.
    """
    if not isinstance(value, str):
        raise ValidationError("Task text must be a string")
    s = value.strip()
    if not s:
        raise ValidationError("Task text is required")
    if len(s) > TEXT_MAX_LENGTH:
        raise ValidationError(f"Task text must be at most {TEXT_MAX_LENGTH} characters")
    return s


# PUBLIC_INTERFACE
def validate_completed(value: Any) -> bool:
    """Accept only real booleans; strings and numbers are not coerced."""
    if not isinstance(value, bool):
        raise ValidationError("Task completed flag must be a boolean")
    return value


def validate_task_id(value: Any) -> int:
    # bool is an int subclass, but True is not a task id
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError("Task id must be an integer")
    return value


def new_task(task_id: int, text: str, completed: bool, now: datetime) -> TaskEntity:
    return {
        "id": task_id,
        "text": text,
        "completed": completed,
        "created_at": now,
        "updated_at": now,
    }


def copy_task(task: TaskEntity) -> TaskEntity:
    # datetimes are immutable, a shallow copy fully detaches the record
    return task.copy()
