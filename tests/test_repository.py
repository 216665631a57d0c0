import json
import os
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone

import pytest

from tasklist_api.errors import NotFoundError, StorageCorruptError, StorageIOError, ValidationError
from tasklist_api.repositories import TaskRepository, get_repository
from tasklist_api.settings import Settings
from tasklist_api.storage import JsonTaskStore


def reopen(tasks_file):
    """A fresh repository on the same document, as after a process restart."""
    return TaskRepository(JsonTaskStore(tasks_file))


class TestCreateAndGet:
    def test_round_trip(self, repo):
        created = repo.create("buy milk")
        fetched = repo.get(created["id"])
        assert fetched["text"] == "buy milk"
        assert fetched["completed"] is False
        assert fetched["created_at"] == fetched["updated_at"]
        assert fetched == created

    def test_text_is_trimmed_and_completed_respected(self, repo):
        created = repo.create("  walk dog  ", completed=True)
        assert created["text"] == "walk dog"
        assert created["completed"] is True

    def test_validation_boundary(self, repo):
        for text in ("", " "):
            with pytest.raises(ValidationError):
                repo.create(text)
        assert repo.create("a" * 200)["text"] == "a" * 200
        with pytest.raises(ValidationError):
            repo.create("a" * 201)
        assert len(repo.list_tasks()) == 1

    def test_invalid_completed_flag(self, repo):
        with pytest.raises(ValidationError):
            repo.create("ok", completed="false")

    def test_validation_failure_never_writes(self, repo, store):
        with pytest.raises(ValidationError):
            repo.create("   ")
        assert not store.path.exists()

    def test_get_missing(self, repo):
        repo.create("one")
        with pytest.raises(NotFoundError):
            repo.get(999)

    def test_ids_increase(self, repo):
        ids = [repo.create(f"task {i}")["id"] for i in range(5)]
        assert ids == [1, 2, 3, 4, 5]

    def test_callers_receive_copies(self, repo):
        created = repo.create("original")
        created["text"] = "hacked"
        listed = repo.list_tasks()
        listed[0]["completed"] = True
        fetched = repo.get(created["id"])
        assert fetched["text"] == "original"
        assert fetched["completed"] is False


class TestUpdate:
    def test_partial_update_text(self, repo):
        task = repo.create("draft", completed=True)
        updated = repo.update(task["id"], text="final")
        assert updated["text"] == "final"
        assert updated["completed"] is True
        assert updated["created_at"] == task["created_at"]
        assert updated["updated_at"] > task["updated_at"]

    def test_partial_update_completed(self, repo):
        task = repo.create("draft")
        updated = repo.update(task["id"], completed=True)
        assert updated["text"] == "draft"
        assert updated["completed"] is True

    def test_omitted_fields_only_refresh_timestamp(self, repo):
        task = repo.create("draft")
        updated = repo.update(task["id"])
        assert (updated["text"], updated["completed"]) == ("draft", False)
        assert updated["updated_at"] > task["updated_at"]

    def test_empty_text_is_an_error_not_an_omission(self, repo):
        task = repo.create("draft")
        for text in ("", "   "):
            with pytest.raises(ValidationError):
                repo.update(task["id"], text=text)
        with pytest.raises(ValidationError):
            repo.update(task["id"], text="x" * 201)
        assert repo.get(task["id"])["text"] == "draft"

    def test_update_missing(self, repo):
        with pytest.raises(NotFoundError):
            repo.update(42, completed=True)

    def test_updated_at_never_precedes_created_at(self, store):
        times = iter([datetime(2026, 5, 1, 12, tzinfo=timezone.utc), datetime(2026, 5, 1, 11, tzinfo=timezone.utc)])
        repo = TaskRepository(store, clock=lambda: next(times))
        task = repo.create("clock goes backwards")
        updated = repo.update(task["id"], completed=True)
        assert updated["updated_at"] == updated["created_at"]

    def test_order_is_preserved(self, repo):
        for text in ("a", "b", "c"):
            repo.create(text)
        repo.update(2, text="B")
        assert [t["text"] for t in repo.list_tasks()] == ["a", "B", "c"]


class TestDelete:
    def test_delete_returns_removed_task(self, repo):
        task = repo.create("remove me")
        removed = repo.delete(task["id"])
        assert removed == task
        assert repo.list_tasks() == ()
        with pytest.raises(NotFoundError):
            repo.get(task["id"])

    def test_delete_twice_is_not_found(self, repo):
        task = repo.create("remove me")
        repo.delete(task["id"])
        with pytest.raises(NotFoundError):
            repo.delete(task["id"])

    def test_delete_completed(self, repo):
        for text, done in (("first", True), ("second", False), ("third", True)):
            repo.create(text, completed=done)
        assert repo.delete_completed() == 2
        remaining = repo.list_tasks()
        assert [t["text"] for t in remaining] == ["second"]

    def test_delete_completed_none(self, repo, store):
        repo.create("pending")
        assert repo.delete_completed() == 0
        assert len(repo.list_tasks()) == 1
        assert store.path.exists()

    def test_ids_are_never_reused_after_restart(self, repo, tasks_file):
        for text in ("a", "b", "c"):
            repo.create(text)
        repo.delete(3)
        restarted = reopen(tasks_file)
        assert restarted.create("d")["id"] == 4


class TestStats:
    def test_counts(self, repo):
        repo.create("a", completed=True)
        repo.create("b")
        stats = repo.stats()
        assert (stats.total, stats.completed, stats.pending) == (2, 1, 1)


class TestDurability:
    def test_restart_sees_everything(self, repo, tasks_file):
        repo.create("a")
        repo.create("b", completed=True)
        repo.update(1, text="A")
        restarted = reopen(tasks_file)
        assert [(t["id"], t["text"], t["completed"]) for t in restarted.list_tasks()] == [
            (1, "A", False),
            (2, "b", True),
        ]

    def test_failed_save_leaves_memory_and_disk_unchanged(self, repo, store, monkeypatch):
        first = repo.create("kept")
        before = store.path.read_bytes()

        def boom(src, dst):
            raise OSError(28, "No space left on device")

        monkeypatch.setattr(os, "replace", boom)
        with pytest.raises(StorageIOError):
            repo.create("lost")
        with pytest.raises(StorageIOError):
            repo.update(first["id"], text="changed")
        with pytest.raises(StorageIOError):
            repo.delete(first["id"])
        monkeypatch.undo()

        assert store.path.read_bytes() == before
        assert [t["text"] for t in repo.list_tasks()] == ["kept"]
        # the repository keeps working once storage recovers
        again = repo.create("after recovery")
        assert again["id"] > first["id"]
        assert [t["text"] for t in reopen(store.path).list_tasks()] == ["kept", "after recovery"]

    def test_corrupt_document_is_surfaced_and_preserved(self, store):
        store.path.parent.mkdir(parents=True)
        store.path.write_text("[{broken", "utf-8")
        repo = TaskRepository(store)
        with pytest.raises(StorageCorruptError):
            repo.list_tasks()
        with pytest.raises(StorageCorruptError):
            repo.create("would overwrite")
        assert store.path.read_text("utf-8") == "[{broken"

    def test_external_edit_is_picked_up(self, repo, store):
        repo.create("mine")
        document = {
            "lastId": 10,
            "tasks": [
                {
                    "id": 10,
                    "text": "edited elsewhere, much longer than before",
                    "completed": True,
                    "createdAt": "2026-01-01T00:00:00.000000+00:00",
                    "updatedAt": "2026-01-01T00:00:00.000000+00:00",
                }
            ],
        }
        store.path.write_text(json.dumps(document), "utf-8")
        assert [t["id"] for t in repo.list_tasks()] == [10]
        assert repo.create("next")["id"] == 11

    def test_external_edit_never_lowers_the_id_high_water_mark(self, repo, store):
        for text in ("a", "b", "c"):
            repo.create(text)
        store.path.write_text('{"lastId": 0, "tasks": []}', "utf-8")
        assert repo.list_tasks() == ()
        assert repo.create("d")["id"] == 4


class TestConcurrency:
    def test_concurrent_creates_get_distinct_ids(self, repo, tasks_file):
        n = 64
        with ThreadPoolExecutor(max_workers=16) as pool:
            created = list(pool.map(lambda i: repo.create(f"task {i}"), range(n)))
        ids = [t["id"] for t in created]
        assert len(set(ids)) == n
        assert sorted(ids) == list(range(1, n + 1))
        assert len(repo.list_tasks()) == n

        restarted = reopen(tasks_file)
        assert len(restarted.list_tasks()) == n
        assert restarted.create("after restart")["id"] > max(ids)

    def test_concurrent_updates_on_different_tasks(self, repo, tasks_file):
        tasks = [repo.create(f"task {i}") for i in range(20)]
        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(lambda t: repo.update(t["id"], text=f"done {t['id']}", completed=True), tasks))
        final = reopen(tasks_file).list_tasks()
        assert all(t["completed"] for t in final)
        assert [t["text"] for t in final] == [f"done {t['id']}" for t in tasks]

    def test_concurrent_updates_on_same_task_both_apply(self, repo, tasks_file):
        for _ in range(25):
            task = repo.create("shared")
            with ThreadPoolExecutor(max_workers=2) as pool:
                a = pool.submit(repo.update, task["id"], text="renamed")
                b = pool.submit(repo.update, task["id"], completed=True)
                a.result()
                b.result()
            final = repo.get(task["id"])
            assert final["text"] == "renamed"
            assert final["completed"] is True
        assert all(t["text"] == "renamed" and t["completed"] for t in reopen(tasks_file).list_tasks())

    def test_readers_never_see_partial_collections(self, repo):
        def write(i):
            repo.create(f"task {i}")

        def read(_):
            return [t["id"] for t in repo.list_tasks()]

        with ThreadPoolExecutor(max_workers=8) as pool:
            writes = [pool.submit(write, i) for i in range(30)]
            reads = [pool.submit(read, i) for i in range(30)]
            for w in writes:
                w.result()
            for r in reads:
                ids = r.result()
                # every observed snapshot is a prefix of the final id sequence
                assert ids == list(range(1, len(ids) + 1))


def test_get_repository_uses_settings(tmp_path):
    path = tmp_path / "custom.json"
    repo = get_repository(Settings(tasks_file=str(path)))
    repo.create("configured")
    assert repo.store.path == path
    assert path.exists()
