from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from threading import RLock
from typing import Callable, Optional, Tuple

from .errors import NotFoundError
from .filters import TaskStats, summarize
from .ids import IdGenerator
from .models import (
    TaskEntity,
    copy_task,
    new_task,
    utc_now,
    validate_completed,
    validate_task_id,
    validate_text,
)
from .settings import Settings, get_settings
from .storage import FileStamp, JsonTaskStore

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
class Repository(ABC):
    """Abstract repository contract for task storage."""

    @abstractmethod
    def list_tasks(self) -> Tuple[TaskEntity, ...]:
        """Return a snapshot of every task in insertion order."""

    @abstractmethod
    def get(self, task_id: int) -> TaskEntity:
        """Return a task by id. Raise NotFoundError if absent."""

    @abstractmethod
    def create(self, text: str, completed: bool = False) -> TaskEntity:
        """Validate, assign an id, persist and return a new task."""

    @abstractmethod
    def update(self, task_id: int, text: Optional[str] = None, completed: Optional[bool] = None) -> TaskEntity:
        """
        Partially update a task. None means "leave unchanged"; an empty string
        for text is a validation error.
        """

    @abstractmethod
    def delete(self, task_id: int) -> TaskEntity:
        """Remove a task and return it. Raise NotFoundError if absent."""

    @abstractmethod
    def delete_completed(self) -> int:
        """Remove every completed task and return how many were removed."""

    def stats(self) -> TaskStats:
        return summarize(self.list_tasks())


class TaskRepository(Repository):
    """
    File-backed repository owning the task collection.

    Every mutation runs load -> mutate -> persist under one lock, so
    concurrent request threads never lose each other's writes. The live
    collection is an immutable tuple that is replaced wholesale only after a
    successful save; a failed write leaves memory exactly as it was. Reads take
    the lock just long enough to refresh and grab the current tuple.

    The cached collection is reloaded whenever the document's stamp on disk
    differs from the one recorded at the last load or save.
    """

    def __init__(self, store: JsonTaskStore, clock: Optional[Callable[[], datetime]] = None) -> None:
        self._store = store
        self._clock = clock or utc_now
        self._lock = RLock()
        self._tasks: Optional[Tuple[TaskEntity, ...]] = None
        self._stamp: Optional[FileStamp] = None
        self._ids = IdGenerator()

    @property
    def store(self) -> JsonTaskStore:
        return self._store

    def _ensure_fresh(self) -> Tuple[TaskEntity, ...]:
        # caller holds self._lock
        if self._tasks is not None and self._store.stamp() == self._stamp:
            return self._tasks
        doc = self._store.load()
        recovered = IdGenerator.recover(doc.tasks, doc.last_id)
        # an external edit must never move the high-water mark backwards
        self._ids = IdGenerator(max(recovered.last_issued, self._ids.last_issued))
        if self._tasks is not None:
            logger.info("Tasks document changed on disk, reloaded %d tasks", len(doc.tasks))
        self._tasks = tuple(doc.tasks)
        self._stamp = doc.stamp
        return self._tasks

    def _commit(self, tasks: Tuple[TaskEntity, ...]) -> None:
        # caller holds self._lock; raises StorageIOError with memory untouched
        stamp = self._store.save(tasks, self._ids.last_issued)
        self._tasks = tasks
        self._stamp = stamp

    @staticmethod
    def _index_of(tasks: Tuple[TaskEntity, ...], task_id: int) -> int:
        for i, t in enumerate(tasks):
            if t["id"] == task_id:
                return i
        raise NotFoundError(task_id)

    def list_tasks(self) -> Tuple[TaskEntity, ...]:
        with self._lock:
            tasks = self._ensure_fresh()
        # entities in the live tuple are never mutated in place
        return tuple(copy_task(t) for t in tasks)

    def get(self, task_id: int) -> TaskEntity:
        task_id = validate_task_id(task_id)
        with self._lock:
            tasks = self._ensure_fresh()
            task = tasks[self._index_of(tasks, task_id)]
        return copy_task(task)

    def create(self, text: str, completed: bool = False) -> TaskEntity:
        clean_text = validate_text(text)
        flag = validate_completed(completed)
        with self._lock:
            tasks = self._ensure_fresh()
            task = new_task(self._ids.next_id(), clean_text, flag, self._clock())
            self._commit(tasks + (task,))
        logger.info("Created task id=%d", task["id"])
        return copy_task(task)

    def update(self, task_id: int, text: Optional[str] = None, completed: Optional[bool] = None) -> TaskEntity:
        task_id = validate_task_id(task_id)
        clean_text = validate_text(text) if text is not None else None
        flag = validate_completed(completed) if completed is not None else None
        with self._lock:
            tasks = self._ensure_fresh()
            index = self._index_of(tasks, task_id)
            updated = copy_task(tasks[index])
            if clean_text is not None:
                updated["text"] = clean_text
            if flag is not None:
                updated["completed"] = flag
            updated["updated_at"] = max(self._clock(), updated["created_at"])
            self._commit(tasks[:index] + (updated,) + tasks[index + 1:])
        logger.info("Updated task id=%d", task_id)
        return copy_task(updated)

    def delete(self, task_id: int) -> TaskEntity:
        task_id = validate_task_id(task_id)
        with self._lock:
            tasks = self._ensure_fresh()
            index = self._index_of(tasks, task_id)
            removed = tasks[index]
            self._commit(tasks[:index] + tasks[index + 1:])
        logger.info("Deleted task id=%d", task_id)
        return copy_task(removed)

    def delete_completed(self) -> int:
        with self._lock:
            tasks = self._ensure_fresh()
            remaining = tuple(t for t in tasks if not t["completed"])
            count = len(tasks) - len(remaining)
            self._commit(remaining)
        logger.info("Deleted %d completed tasks", count)
        return count


# PUBLIC_INTERFACE
def get_repository(settings: Optional[Settings] = None) -> TaskRepository:
    """Build the file-backed repository configured by settings (TASKS_FILE)."""
    settings = settings or get_settings()
    return TaskRepository(JsonTaskStore(settings.tasks_file))
