from __future__ import annotations

from typing import Iterable, Optional

from .errors import StorageError
from .models import MAX_TASK_ID, TaskEntity


# PUBLIC_INTERFACE
class IdGenerator:
    """
    Issues strictly increasing task ids from a high-water mark.

    The mark is recovered from persisted data (the stored ``lastId`` and the
    ids of the loaded tasks), so ids never depend on the wall clock and are
    never re-issued across restarts. Not thread-safe on its own: callers hold
    the repository lock while issuing.
    """

    def __init__(self, last_issued: int = 0) -> None:
        if last_issued < 0:
            raise ValueError("last_issued must be >= 0")
        self._last = last_issued

    @classmethod
    def recover(cls, tasks: Iterable[TaskEntity], last_issued: Optional[int] = None) -> "IdGenerator":
        highest = max((t["id"] for t in tasks), default=0)
        return cls(max(highest, last_issued or 0))

    @property
    def last_issued(self) -> int:
        return self._last

    def next_id(self) -> int:
        """
        Raises:
            StorageError: every id up to 2**63-1 has been issued.
        """
        if self._last >= MAX_TASK_ID:
            raise StorageError("Task id space exhausted")
        self._last += 1
        return self._last
