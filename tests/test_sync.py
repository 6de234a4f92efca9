"""
Test cases for startup embedding sync and the mutation sync worker.
"""

import threading
from unittest.mock import MagicMock, patch

import pytest

from projectdb.core.events import EventBus
from projectdb.core.registry import SchemaRegistry
from projectdb.core.repositories import DecisionRepository, TaskRepository
from projectdb.core.storage import MemoryStorageAdapter
from projectdb.vector.embed_config import compute_embed_hash, get_embedding_text
from projectdb.vector.embeddings import DeterministicHashEmbedding
from projectdb.vector.semantic_search import SemanticSearch
from projectdb.vector.sync import SearchSyncWorker, sync_embeddings
from projectdb.vector.types import EmbeddingProgress

import sample_project as sample


@pytest.fixture
def repos():
    registry = SchemaRegistry.default()
    storage = MemoryStorageAdapter()
    events = EventBus()
    tasks = TaskRepository(registry, storage, events)
    decisions = DecisionRepository(registry, storage, events)
    tasks.load()
    decisions.load()
    tasks.insert(sample.task())
    tasks.insert(sample.task(id="task-2", name="Add logout button"))
    decisions.insert(sample.decision())
    return {"task": tasks, "decision": decisions}


def make_search(tmp_path, provider=None):
    engine = SemanticSearch(tmp_path, provider or DeterministicHashEmbedding())
    engine.initialize()
    return engine


def write_back(repos):
    def update_record(entity_type, record_id, patch):
        repos[entity_type].update(record_id, patch)
    return update_record


class TestSyncEmbeddings:
    """Only stale records are re-embedded."""

    def test_first_sync_embeds_everything(self, repos, tmp_path):
        search = make_search(tmp_path)

        report = sync_embeddings(search, repos, write_back(repos))

        assert (report.synced, report.skipped, report.failed) == (3, 0, 0)
        task = repos["task"].get_by_id("task-1")
        assert task.embed_hash == compute_embed_hash(get_embedding_text("task", task))
        assert task.embed_version == 1
        assert search.has_vector("decision", "dec-1")

    def test_second_sync_skips_everything(self, repos, tmp_path):
        search = make_search(tmp_path)
        sync_embeddings(search, repos, write_back(repos))

        report = sync_embeddings(search, repos, write_back(repos))

        assert (report.synced, report.skipped) == (0, 3)

    def test_changed_record_reembedded_exactly_once(self, repos, tmp_path):
        provider = MagicMock(wraps=DeterministicHashEmbedding())
        provider.dimensions = 384
        provider.model_version = 1
        search = make_search(tmp_path, provider)
        sync_embeddings(search, repos, write_back(repos))

        repos["task"].update("task-1", {"context": "Passwordless magic links"})
        provider.embed.reset_mock()
        report = sync_embeddings(search, repos, write_back(repos))

        assert report.synced == 1
        assert report.skipped == 2
        assert provider.embed.call_count == 1

    def test_version_bump_makes_everything_stale(self, repos, tmp_path):
        sync_embeddings(make_search(tmp_path / "v1"), repos, write_back(repos))

        upgraded = make_search(tmp_path / "v2", DeterministicHashEmbedding(model_version=2))
        report = sync_embeddings(upgraded, repos, write_back(repos))

        assert report.synced == 3
        assert {r.embed_version for r in repos["task"].get_all()} == {2}

    def test_missing_vector_is_stale(self, repos, tmp_path):
        search = make_search(tmp_path)
        sync_embeddings(search, repos, write_back(repos))
        search.remove_entity("decision", "dec-1")

        report = sync_embeddings(search, repos, write_back(repos))

        assert report.synced == 1
        assert search.has_vector("decision", "dec-1")

    def test_failures_are_counted_not_raised(self, repos, tmp_path):
        search = make_search(tmp_path)

        with patch.object(search, "upsert_entity", side_effect=RuntimeError("model crashed")):
            report = sync_embeddings(search, repos, write_back(repos))

        assert (report.synced, report.failed) == (0, 3)
        assert repos["task"].get_by_id("task-1").embed_hash is None

    def test_progress_callback(self, repos, tmp_path):
        progress = []

        sync_embeddings(make_search(tmp_path), repos, write_back(repos), on_progress=progress.append)

        assert [p.phase for p in progress] == ["sync"] * 3
        assert progress[-1] == EmbeddingProgress("sync", 3, 3, "decision")


class TestSearchSyncWorker:
    """Mutation events reach the index; failures never reach the writer."""

    def test_inline_mode_applies_immediately(self, repos, tmp_path):
        search = make_search(tmp_path)
        worker = SearchSyncWorker(search, mode="inline")
        worker.subscribe(repos["task"].events)

        repos["task"].insert(sample.task(id="task-3", name="Reset password email"))

        assert search.has_vector("task", "task-3")
        assert worker.processed == 1

    def test_background_mode_drains(self, repos, tmp_path):
        search = make_search(tmp_path)
        worker = SearchSyncWorker(search, mode="background")
        worker.subscribe(repos["task"].events)
        try:
            repos["task"].insert(sample.task(id="task-3"))
            repos["task"].delete("task-3")
            repos["decision"].update("dec-1", {"rationale": "Readable diffs"})
            worker.drain()

            assert worker.running
            assert not search.has_vector("task", "task-3")
            assert search.has_vector("decision", "dec-1")
            assert worker.processed == 3
        finally:
            worker.stop()

        assert not worker.running

    @pytest.mark.parametrize("mode", ["inline", "background"])
    def test_failure_is_logged_and_skipped(self, repos, tmp_path, mode):
        search = make_search(tmp_path)
        worker = SearchSyncWorker(search, mode=mode)
        worker.subscribe(repos["task"].events)

        with patch.object(search, "handle_event", side_effect=[RuntimeError("boom"), None]):
            repos["task"].insert(sample.task(id="task-3"))
            repos["task"].insert(sample.task(id="task-4"))
            worker.drain()
        worker.stop()

        assert repos["task"].exists("task-3")
        assert repos["task"].exists("task-4")
        assert worker.failed == 1
        assert worker.processed == 1

    def test_background_apply_runs_off_the_calling_thread(self, repos, tmp_path):
        search = make_search(tmp_path)
        threads = []
        original = search.handle_event

        def record_thread(event):
            threads.append(threading.current_thread().name)
            original(event)

        worker = SearchSyncWorker(search, mode="background")
        worker.subscribe(repos["task"].events)
        with patch.object(search, "handle_event", side_effect=record_thread):
            repos["task"].insert(sample.task(id="task-3"))
            worker.drain()
        worker.stop()

        assert threads == ["projectdb-search-sync"]

    def test_stop_unsubscribes(self, repos, tmp_path):
        search = make_search(tmp_path)
        bus = repos["task"].events
        worker = SearchSyncWorker(search, mode="inline")
        worker.subscribe(bus)

        worker.stop()
        repos["task"].insert(sample.task(id="task-3"))

        assert bus.listener_count() == 0
        assert not search.has_vector("task", "task-3")

    def test_rejects_unknown_mode(self, tmp_path):
        with pytest.raises(ValueError):
            SearchSyncWorker(make_search(tmp_path), mode="eventually")
