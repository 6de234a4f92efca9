"""
Test cases for the generic repository and the concrete finders.
"""

from unittest.mock import patch

import pytest

from projectdb.core.errors import (
    DuplicateIdError,
    MalformedDataError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from projectdb.core.events import EventBus
from projectdb.core.registry import SchemaRegistry
from projectdb.core.repositories import (
    QuestionRepository,
    SubtaskRepository,
    TaskRepository,
    repository_class_for,
)
from projectdb.core.repository import Repository
from projectdb.core.storage import JsonlStorageAdapter, MemoryStorageAdapter

import sample_project as sample


@pytest.fixture(scope="module")
def registry():
    return SchemaRegistry.default()


@pytest.fixture
def storage():
    return MemoryStorageAdapter()


@pytest.fixture
def events():
    return EventBus()


@pytest.fixture
def tasks(registry, storage, events):
    repo = TaskRepository(registry, storage, events)
    repo.load()
    return repo


class TestCrud:
    """Insert, read, update and delete against one collection."""

    def test_insert_and_read(self, tasks, storage):
        record = tasks.insert(sample.task())

        assert record.id == "task-1"
        assert tasks.get_by_id("task-1") == record
        assert tasks.exists("task-1")
        assert len(tasks) == 1
        assert storage.load_collection("tasks") == [sample.task()]

    def test_insert_duplicate_id(self, tasks):
        tasks.insert(sample.task())

        with pytest.raises(DuplicateIdError) as exc_info:
            tasks.insert(sample.task(name="Other"))

        assert exc_info.value.record_id == "task-1"
        assert tasks.get_by_id("task-1").name == "Build login form"

    def test_insert_invalid_leaves_state_unchanged(self, tasks, storage):
        with pytest.raises(ValidationError):
            tasks.insert(sample.task(priority="urgent"))

        assert len(tasks) == 0
        assert not storage.has_collection("tasks")

    def test_update_merges_patch(self, tasks):
        tasks.insert(sample.task())

        updated = tasks.update("task-1", {"notes": "halfway", "estimate": "3h"})

        assert updated.notes == "halfway"
        assert updated.estimate == "3h"
        assert updated.name == "Build login form"
        assert tasks.get_by_id("task-1") == updated

    def test_update_revalidates_whole_record(self, tasks):
        tasks.insert(sample.task())

        with pytest.raises(ValidationError):
            tasks.update("task-1", {"delegation": "nobody"})

        assert tasks.get_by_id("task-1").delegation == "implement"

    def test_update_cannot_change_id(self, tasks):
        tasks.insert(sample.task())

        with pytest.raises(ValidationError) as exc_info:
            tasks.update("task-1", {"id": "task-9"})

        assert exc_info.value.violations[0].kind == "immutable"

    def test_update_and_delete_missing(self, tasks):
        with pytest.raises(NotFoundError):
            tasks.update("ghost", {"notes": "x"})
        with pytest.raises(NotFoundError) as exc_info:
            tasks.delete("ghost")

        assert exc_info.value.collection == "tasks"
        assert exc_info.value.record_id == "ghost"

    def test_delete(self, tasks, storage):
        tasks.insert(sample.task())
        tasks.insert(sample.task(id="task-2"))

        removed = tasks.delete("task-1")

        assert removed.id == "task-1"
        assert tasks.get_by_id("task-1") is None
        assert [r["id"] for r in storage.load_collection("tasks")] == ["task-2"]

    def test_get_by_id_or_raise(self, tasks):
        with pytest.raises(NotFoundError):
            tasks.get_by_id_or_raise("missing")

    def test_find_and_count(self, tasks):
        tasks.insert(sample.task())
        tasks.insert(sample.task(id="task-2", priority="low"))
        tasks.insert(sample.task(id="task-3", priority="low", status="blocked"))

        assert [r.id for r in tasks.find(lambda r: r.priority == "low")] == ["task-2", "task-3"]
        assert tasks.find_one(lambda r: r.status == "blocked").id == "task-3"
        assert tasks.find_one(lambda r: r.status == "done") is None
        assert tasks.count() == 3
        assert tasks.count(lambda r: r.priority == "high") == 1
        assert tasks.query().where_eq("priority", "low").count() == 2

    def test_writes_require_load(self, registry, storage, events):
        repo = TaskRepository(registry, storage, events)

        with pytest.raises(RuntimeError):
            repo.insert(sample.task())


class TestEvents:
    """Events fire after the collection is saved, one per mutation."""

    def test_event_follows_save(self, registry, events):
        order = []

        class SpyStorage(MemoryStorageAdapter):
            def save_collection(self, name, records):
                order.append(("save", name))
                super().save_collection(name, records)

        repo = TaskRepository(registry, SpyStorage(), events)
        repo.load()
        events.on_any(lambda event: order.append((event.kind, event.id)))

        repo.insert(sample.task())
        repo.update("task-1", {"notes": "n"})
        repo.delete("task-1")

        assert order == [
            ("save", "tasks"), ("inserted", "task-1"),
            ("save", "tasks"), ("updated", "task-1"),
            ("save", "tasks"), ("deleted", "task-1"),
        ]

    def test_event_payloads(self, tasks, events):
        received = []
        events.on_any(received.append)

        inserted = tasks.insert(sample.task())
        updated = tasks.update("task-1", {"notes": "n"})
        tasks.delete("task-1")

        assert received[0].current == inserted and received[0].previous is None
        assert received[1].previous == inserted and received[1].current == updated
        assert received[2].previous == updated and received[2].current is None
        assert {e.collection for e in received} == {"tasks"}

    def test_failing_listener_does_not_break_write(self, tasks, events):
        def broken(event):
            raise RuntimeError("listener bug")

        events.on("inserted", broken)

        tasks.insert(sample.task())
        assert tasks.exists("task-1")

    def test_off_removes_listener(self, events):
        calls = []
        listener = calls.append
        events.on_any(listener)
        assert events.listener_count() == 3

        events.off_any(listener)
        assert events.listener_count() == 0

        with pytest.raises(ValueError):
            events.on("renamed", listener)


class TestRollback:
    """A failed save restores the index and emits nothing."""

    def test_failed_save_restores_index(self, tasks, storage, events):
        tasks.insert(sample.task())
        received = []
        events.on_any(received.append)

        with patch.object(storage, "save_collection", side_effect=StorageError("tasks", "save", "disk full")):
            with pytest.raises(StorageError):
                tasks.insert(sample.task(id="task-2"))
            with pytest.raises(StorageError):
                tasks.update("task-1", {"notes": "lost"})
            with pytest.raises(StorageError):
                tasks.delete("task-1")

        assert [r.id for r in tasks.get_all()] == ["task-1"]
        assert tasks.get_by_id("task-1").notes == ""
        assert received == []

    def test_os_error_is_wrapped(self, tasks, storage):
        with patch.object(storage, "save_collection", side_effect=OSError("read-only")):
            with pytest.raises(StorageError) as exc_info:
                tasks.insert(sample.task())

        assert isinstance(exc_info.value.__cause__, OSError)
        assert len(tasks) == 0

    def test_unexpected_adapter_error_rolls_back(self, registry, events):
        class BrokenBackend(MemoryStorageAdapter):
            def save_collection(self, name, records):
                raise RuntimeError("backend down")

        storage = BrokenBackend()
        repo = TaskRepository(registry, storage, events)
        repo.load()
        received = []
        events.on_any(received.append)

        with pytest.raises(StorageError) as exc_info:
            repo.insert(sample.task())

        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert repo.get_by_id("task-1") is None
        assert storage.load_collection("tasks") == []
        assert received == []

    def test_jsonl_failure_keeps_file(self, registry, events, tmp_path):
        storage = JsonlStorageAdapter(tmp_path)
        repo = TaskRepository(registry, storage, events)
        repo.load()
        repo.insert(sample.task())

        with patch("projectdb.core.storage.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(StorageError):
                repo.insert(sample.task(id="task-2"))

        assert [r["id"] for r in storage.load_collection("tasks")] == ["task-1"]
        assert not repo.exists("task-2")


class TestLoad:
    """Loading validates everything and fails on the first bad record."""

    def test_load_round_trip(self, registry, storage, events):
        storage.save_collection("tasks", [sample.task(), sample.task(id="task-2")])
        repo = TaskRepository(registry, storage, events)

        assert repo.load() == 2
        assert [r.id for r in repo.get_all()] == ["task-1", "task-2"]

    def test_invalid_record_fails_load(self, registry, storage, events):
        bad = sample.task(id="task-2")
        del bad["name"]
        storage.save_collection("tasks", [sample.task(), bad])
        repo = TaskRepository(registry, storage, events)

        with pytest.raises(MalformedDataError) as exc_info:
            repo.load()

        assert exc_info.value.record_id == "task-2"
        assert [v.field for v in exc_info.value.violations] == ["name"]
        assert not repo.loaded

    def test_duplicate_ids_fail_load(self, registry, storage, events):
        storage.save_collection("tasks", [sample.task(), sample.task()])

        with pytest.raises(MalformedDataError):
            TaskRepository(registry, storage, events).load()


class TestFinders:
    """Concrete repository helpers."""

    def test_task_finders(self, tasks):
        tasks.insert(sample.task())
        tasks.insert(sample.task(id="task-2", status="active", epic_id="epic-2"))
        tasks.insert(sample.task(id="task-3", status="blocked", priority="critical"))

        assert [r.id for r in tasks.find_by_epic("epic-1")] == ["task-1", "task-3"]
        assert [r.id for r in tasks.find_active()] == ["task-2"]
        assert [r.id for r in tasks.find_blocked()] == ["task-3"]
        assert [r.id for r in tasks.find_by_status("pending")] == ["task-1"]
        assert [r.id for r in tasks.find_by_priority("critical")] == ["task-3"]

    def test_subtasks_ordered(self, registry, storage, events):
        subtasks = SubtaskRepository(registry, storage, events)
        subtasks.load()
        subtasks.insert(sample.subtask(id="s2", order_index=2))
        subtasks.insert(sample.subtask(id="s1", order_index=1))
        subtasks.insert(sample.subtask(id="s3", order_index=3, task_id="task-2"))

        assert [r.id for r in subtasks.find_ordered("task-1")] == ["s1", "s2"]

    def test_question_finders(self, registry, storage, events):
        questions = QuestionRepository(registry, storage, events)
        questions.load()
        questions.insert(sample.question())
        questions.insert(sample.question(id="q-2", escalation_flag=True))
        questions.insert(sample.question(id="q-3", status="resolved"))

        assert [r.id for r in questions.find_open()] == ["q-1", "q-2"]
        assert [r.id for r in questions.find_escalated()] == ["q-2"]

    def test_generic_fallback(self, registry, storage, events):
        assert repository_class_for("task") is TaskRepository
        assert repository_class_for("custom_thing") is Repository

        with pytest.raises(ValueError):
            Repository(registry, storage, events)
