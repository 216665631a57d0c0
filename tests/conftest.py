from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from tasklist_api.main import create_app
from tasklist_api.repositories import TaskRepository
from tasklist_api.settings import Settings
from tasklist_api.storage import JsonTaskStore


class StepClock:
    """Deterministic clock: every call returns a time one step after the previous one."""

    def __init__(self, start: datetime = datetime(2026, 1, 1, 9, 0, tzinfo=timezone.utc),
                 step: timedelta = timedelta(seconds=1)) -> None:
        self._now = start
        self._step = step
        self._lock = threading.Lock()

    def __call__(self) -> datetime:
        with self._lock:
            value = self._now
            self._now += self._step
            return value


@pytest.fixture()
def tasks_file(tmp_path: Path) -> Path:
    # nested directory so that parent creation is exercised too
    return tmp_path / "data" / "tasks.json"


@pytest.fixture()
def store(tasks_file: Path) -> JsonTaskStore:
    return JsonTaskStore(tasks_file)


@pytest.fixture()
def clock() -> StepClock:
    return StepClock()


@pytest.fixture()
def repo(store: JsonTaskStore, clock: StepClock) -> TaskRepository:
    return TaskRepository(store, clock=clock)


@pytest.fixture()
def client(tasks_file: Path, repo: TaskRepository) -> TestClient:
    app = create_app(Settings(tasks_file=str(tasks_file)), repository=repo)
    return TestClient(app)
