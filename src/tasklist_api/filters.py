from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence, Tuple

from .errors import ValidationError
from .models import TaskEntity


# PUBLIC_INTERFACE
class TaskFilter(str, Enum):
    ALL = "all"
    COMPLETED = "completed"
    PENDING = "pending"


@dataclass(frozen=True)
class TaskStats:
    total: int
    completed: int
    pending: int


# PUBLIC_INTERFACE
def parse_filter(value: Optional[str]) -> TaskFilter:
    """
    Parse a filter selector from user input.

    None or an empty string selects every task.

    Raises:
        ValidationError: for anything other than all/completed/pending.
    """
    if value is None or not value.strip():
        return TaskFilter.ALL
    try:
        return TaskFilter(value.strip().lower())
    except ValueError as exc:
        allowed = ", ".join(f.value for f in TaskFilter)
        raise ValidationError(f"Unknown filter {value!r}; expected one of: {allowed}") from exc


# PUBLIC_INTERFACE
def filter_tasks(snapshot: Sequence[TaskEntity], selector: TaskFilter = TaskFilter.ALL) -> Tuple[TaskEntity, ...]:
    """
    Return the tasks of ``snapshot`` matching ``selector`` in their original order.

    The snapshot is never modified; a new tuple is always returned.
    """
    if selector is TaskFilter.COMPLETED:
        return tuple(t for t in snapshot if t["completed"])
    if selector is TaskFilter.PENDING:
        return tuple(t for t in snapshot if not t["completed"])
    return tuple(snapshot)


def summarize(snapshot: Sequence[TaskEntity]) -> TaskStats:
    completed = sum(1 for t in snapshot if t["completed"])
    return TaskStats(total=len(snapshot), completed=completed, pending=len(snapshot) - completed)
