from __future__ import annotations


class TaskStoreError(Exception):
    """Base class for every error raised by the task store."""

    kind = "TaskStoreError"


# PUBLIC_INTERFACE
class ValidationError(TaskStoreError):
    """Caller-supplied data violates a task invariant. Never touches durable state."""

    kind = "ValidationError"


# PUBLIC_INTERFACE
class NotFoundError(TaskStoreError):
    """The referenced task id does not exist in the current collection."""

    kind = "NotFound"

    def __init__(self, task_id: int) -> None:
        super().__init__(f"Task {task_id} not found")
        self.task_id = task_id


class StorageError(TaskStoreError):
    kind = "StorageError"


# PUBLIC_INTERFACE
class StorageCorruptError(StorageError):
    """The tasks document exists but cannot be parsed into a valid collection."""

    kind = "StorageCorrupt"


# PUBLIC_INTERFACE
class StorageIOError(StorageError):
    """Reading or writing the tasks document failed at the OS level."""

    kind = "IOError"
