from __future__ import annotations

import contextlib
import json
import logging
import os
import tempfile
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, List, Optional, Tuple, Union

from .errors import StorageCorruptError, StorageIOError, TaskStoreError
from .models import MAX_TASK_ID, TaskEntity, validate_completed, validate_task_id, validate_text

logger = logging.getLogger(__name__)

# (st_mtime_ns, st_size) of the document as last seen on disk
FileStamp = Tuple[int, int]


@dataclass(frozen=True)
class _Keys:
    last_id: str = "lastId"
    tasks: str = "tasks"
    id: str = "id"
    text: str = "text"
    completed: str = "completed"
    created_at: str = "createdAt"
    updated_at: str = "updatedAt"
    # misspelled timestamp keys written by the older Node service
    legacy_created_at: str = "creatAt"
    legacy_updated_at: str = "updateAt"


_KEYS = _Keys()


# PUBLIC_INTERFACE
@dataclass(frozen=True)
class StoredDocument:
    """Result of a load: tasks in stored order plus the persisted id high-water mark."""

    tasks: List[TaskEntity] = field(default_factory=list)
    last_id: int = 0
    stamp: Optional[FileStamp] = None


def format_timestamp(value: datetime) -> str:
    """Fixed-width ISO-8601 in UTC, so stored timestamps sort as strings."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def parse_timestamp(value: Any) -> datetime:
    if not isinstance(value, str):
        raise ValueError("timestamp must be a string")
    s = value.strip()
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    dt = datetime.fromisoformat(s)
    if dt.tzinfo is None:
        # naive timestamps are written by older tooling in UTC
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _record_to_json(task: TaskEntity) -> dict:
    return {
        _KEYS.id: task["id"],
        _KEYS.text: task["text"],
        _KEYS.completed: task["completed"],
        _KEYS.created_at: format_timestamp(task["created_at"]),
        _KEYS.updated_at: format_timestamp(task["updated_at"]),
    }


def _record_from_json(raw: Any, index: int, legacy: bool = False) -> TaskEntity:
    if not isinstance(raw, dict):
        raise StorageCorruptError(f"Task record #{index} is not an object")
    if legacy:
        raw = dict(raw)
        for key, old in ((_KEYS.created_at, _KEYS.legacy_created_at), (_KEYS.updated_at, _KEYS.legacy_updated_at)):
            if key not in raw and old in raw:
                raw[key] = raw[old]
    try:
        entity: TaskEntity = {
            "id": validate_task_id(raw[_KEYS.id]),
            "text": validate_text(raw[_KEYS.text]),
            "completed": validate_completed(raw[_KEYS.completed]),
            "created_at": parse_timestamp(raw[_KEYS.created_at]),
            "updated_at": parse_timestamp(raw[_KEYS.updated_at]),
        }
    except KeyError as exc:
        raise StorageCorruptError(f"Task record #{index} is missing field {exc.args[0]!r}") from exc
    except (TaskStoreError, ValueError) as exc:
        raise StorageCorruptError(f"Task record #{index} is invalid: {exc}") from exc
    if not 0 < entity["id"] <= MAX_TASK_ID:
        raise StorageCorruptError(f"Task record #{index} has an id outside 1..2**63-1")
    if entity["updated_at"] < entity["created_at"]:
        raise StorageCorruptError(f"Task record #{index} was updated before it was created")
    return entity


def decode_document(raw: Any) -> Tuple[List[TaskEntity], int]:
    """
    Turn a parsed JSON value into (tasks, last_id).

    Accepts the current object layout ``{"lastId": N, "tasks": [...]}`` and the
    legacy bare array of task records.
    """
    if isinstance(raw, list):
        records, last_id = raw, 0
    elif isinstance(raw, dict):
        records = raw.get(_KEYS.tasks, [])
        last_id = raw.get(_KEYS.last_id, 0)
        if isinstance(last_id, bool) or not isinstance(last_id, int) or not 0 <= last_id <= MAX_TASK_ID:
            raise StorageCorruptError("Document lastId must be an integer in 0..2**63-1")
        if not isinstance(records, list):
            raise StorageCorruptError("Document tasks must be an array")
    else:
        raise StorageCorruptError("Document must be an object or an array")

    tasks: List[TaskEntity] = []
    seen = set()
    for index, record in enumerate(records):
        task = _record_from_json(record, index, legacy=isinstance(raw, list))
        if task["id"] in seen:
            raise StorageCorruptError(f"Duplicate task id {task['id']}")
        seen.add(task["id"])
        tasks.append(task)
    return tasks, last_id


def encode_document(tasks: Iterable[TaskEntity], last_id: int) -> str:
    payload = {
        _KEYS.last_id: last_id,
        _KEYS.tasks: [_record_to_json(t) for t in tasks],
    }
    return json.dumps(payload, ensure_ascii=False, indent=2) + "\n"


# PUBLIC_INTERFACE
class JsonTaskStore:
    """
    Durable JSON document holding the whole task collection.

    Writes never truncate the canonical file: the new content goes to a
    temporary sibling which is fsynced and then renamed over the target, so a
    reader sees either the previous document or the new one.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def stamp(self) -> Optional[FileStamp]:
        """Return the document's (mtime_ns, size), or None if it does not exist."""
        try:
            st = os.stat(self._path)
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise StorageIOError(f"Cannot stat tasks document: {exc.strerror}") from exc
        return st.st_mtime_ns, st.st_size

    def load(self) -> StoredDocument:
        """
        Read and validate the document.

        Returns an empty document on first run (file absent).

        Raises:
            StorageCorruptError: the file exists but is not a valid task document.
                The file is left untouched.
            StorageIOError: the file could not be read.
        """
        stamp = self.stamp()
        if stamp is None:
            logger.debug("Tasks document %s absent, starting empty", self._path)
            return StoredDocument()
        try:
            data = self._path.read_bytes()
        except FileNotFoundError:
            return StoredDocument()
        except OSError as exc:
            raise StorageIOError(f"Cannot read tasks document: {exc.strerror}") from exc

        try:
            raw = json.loads(data.decode("utf-8"))
        except (UnicodeDecodeError, ValueError, RecursionError) as exc:
            logger.error("Tasks document %s is not valid JSON: %s", self._path, exc)
            raise StorageCorruptError("Tasks document is not valid JSON") from exc

        try:
            tasks, last_id = decode_document(raw)
        except StorageCorruptError as exc:
            logger.error("Tasks document %s is corrupt: %s", self._path, exc)
            raise
        logger.debug("Loaded %d tasks from %s (lastId=%d)", len(tasks), self._path, last_id)
        return StoredDocument(tasks=tasks, last_id=last_id, stamp=stamp)

    def save(self, tasks: Iterable[TaskEntity], last_id: int) -> Optional[FileStamp]:
        """
        Atomically replace the document with the given collection.

        Returns the new file stamp.

        Raises:
            StorageIOError: nothing was replaced; the previous document is intact.
        """
        task_list = list(tasks)
        content = encode_document(task_list, last_id).encode("utf-8")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self._path.name}.", suffix=".tmp", dir=str(self._path.parent)
            )
            try:
                with os.fdopen(fd, "wb") as fh:
                    fh.write(content)
                    fh.flush()
                    os.fsync(fh.fileno())
                os.replace(tmp_name, self._path)
            except BaseException:
                with contextlib.suppress(OSError):
                    os.unlink(tmp_name)
                raise
        except OSError as exc:
            logger.error("Failed to write tasks document %s: %s", self._path, exc)
            raise StorageIOError(f"Cannot write tasks document: {exc.strerror}") from exc

        self._fsync_parent()
        logger.debug("Saved %d tasks to %s (lastId=%d)", len(task_list), self._path, last_id)
        try:
            return self.stamp()
        except StorageIOError:
            # the write is durable; an unknown stamp only forces a reload later
            return None

    def _fsync_parent(self) -> None:
        # Persist the rename itself; not supported on every platform.
        with contextlib.suppress(OSError, AttributeError):
            dir_fd = os.open(str(self._path.parent), os.O_RDONLY)
            try:
                os.fsync(dir_fd)
            finally:
                os.close(dir_fd)
