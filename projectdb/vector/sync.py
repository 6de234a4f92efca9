"""
Keeping vector namespaces in step with the repositories.

sync_embeddings() runs once at open and re-embeds every stale record.
SearchSyncWorker follows mutation events afterwards, either inline or on a
background thread. Both log failed embeddings and move on; a failure here
never undoes or blocks a repository write.
"""

import queue
import threading
from typing import Any, Callable, Dict, Mapping, Optional

from .embed_config import compute_embed_hash, get_embedding_text
from .semantic_search import SemanticSearch
from .types import EmbeddingProgress, SyncReport
from ..core.events import EventBus, MutationEvent
from ..core.query import get_field
from ..util.logging import logger

SYNC_MODE_INLINE = "inline"
SYNC_MODE_BACKGROUND = "background"
SYNC_MODES = (SYNC_MODE_INLINE, SYNC_MODE_BACKGROUND)

ProgressCallback = Callable[[EmbeddingProgress], None]
# (entity type, record id, patch) -> None
UpdateRecord = Callable[[str, str, Dict[str, Any]], None]


def is_stale(search: SemanticSearch, entity_type: str, record: Any, text_hash: str) -> bool:
    """A record is stale unless its stored hash and model version match and a vector exists."""
    if get_field(record, "embed_hash") != text_hash:
        return True
    if get_field(record, "embed_version") != search.provider.model_version:
        return True
    return not search.has_vector(entity_type, record.id)


def sync_embeddings(search: SemanticSearch, repositories: Mapping[str, Any], update_record: UpdateRecord,
                    on_progress: Optional[ProgressCallback] = None) -> SyncReport:
    """
    Re-embed every stale record of every embeddable type.

    Args:
        search: Initialized SemanticSearch
        repositories: Type name -> repository; non-embeddable types are ignored
        update_record: Writes the new embed_hash/embed_version onto a record
        on_progress: Optional callback receiving 'sync' progress

    Returns:
        SyncReport counting synced, skipped and failed records
    """
    report = SyncReport()
    embeddable = [t for t in search.config if t in repositories]
    total = sum(len(repositories[t]) for t in embeddable)
    current = 0

    for entity_type in embeddable:
        for record in repositories[entity_type].get_all():
            current += 1
            text = get_embedding_text(entity_type, record, search.config)
            if text is None:
                search.remove_entity(entity_type, record.id)
                report.skipped += 1
                continue

            text_hash = compute_embed_hash(text)
            if not is_stale(search, entity_type, record, text_hash):
                report.skipped += 1
                continue

            if on_progress is not None:
                on_progress(EmbeddingProgress("sync", current, total, entity_type))
            logger.log_sync_progress("sync", current, total, entity_type)

            try:
                search.upsert_entity(entity_type, record.id, record)
                update_record(entity_type, record.id, {
                    "embed_hash": text_hash,
                    "embed_version": search.provider.model_version,
                })
                report.synced += 1
            except Exception as e:
                report.failed += 1
                logger.log_vector_operation("sync", record.id, {"entity_type": entity_type, "error": str(e)},
                                            status="failed")

    logger.log_operation("embedding.sync", "completed",
                         {"synced": report.synced, "skipped": report.skipped, "failed": report.failed})
    return report


_STOP = object()


class SearchSyncWorker:
    """Applies mutation events to a SemanticSearch.

    In ``inline`` mode events are applied inside the emitting call. In
    ``background`` mode they are queued and applied by one daemon thread, in
    order. Either way a failed event is logged and counted, never raised.
    """

    def __init__(self, search: SemanticSearch, mode: str = SYNC_MODE_BACKGROUND):
        if mode not in SYNC_MODES:
            raise ValueError(f"Unknown sync mode '{mode}', expected one of {SYNC_MODES}")
        self.search = search
        self.mode = mode
        self.processed = 0
        self.failed = 0

        self._bus: Optional[EventBus] = None
        self._queue: "queue.Queue[Any]" = queue.Queue()
        self._thread: Optional[threading.Thread] = None
        self._thread_lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def subscribe(self, bus: EventBus) -> None:
        if self._bus is not None:
            raise RuntimeError("SearchSyncWorker is already subscribed")
        bus.on_any(self.submit)
        self._bus = bus
        if self.mode == SYNC_MODE_BACKGROUND:
            self._start()

    def unsubscribe(self) -> None:
        if self._bus is not None:
            self._bus.off_any(self.submit)
            self._bus = None

    def submit(self, event: MutationEvent) -> None:
        """Event bus listener."""
        if self.mode == SYNC_MODE_INLINE:
            self._apply(event)
            return
        self._start()
        self._queue.put(event)

    def drain(self) -> None:
        """Block until every queued event has been applied."""
        if self.mode == SYNC_MODE_BACKGROUND and self.running:
            self._queue.join()

    def stop(self, timeout: float = 10.0) -> None:
        """Unsubscribe, apply what is queued, then stop the thread."""
        self.unsubscribe()
        with self._thread_lock:
            thread = self._thread
            self._thread = None
        if thread is not None and thread.is_alive():
            self._queue.put(_STOP)
            thread.join(timeout)
            if thread.is_alive():
                logger.warning("Search sync worker did not stop within timeout",
                               {"pending": self._queue.qsize()})

    def _start(self):
        with self._thread_lock:
            if self.running:
                return
            self._thread = threading.Thread(target=self._run, name="projectdb-search-sync", daemon=True)
            self._thread.start()

    def _run(self):
        while True:
            event = self._queue.get()
            try:
                if event is _STOP:
                    return
                self._apply(event)
            finally:
                self._queue.task_done()

    def _apply(self, event: MutationEvent):
        try:
            self.search.handle_event(event)
            self.processed += 1
        except Exception as e:
            # Error isolation - the mutation is already persisted
            self.failed += 1
            logger.log_vector_operation(
                f"sync.{event.kind}", event.id,
                {"collection": event.collection, "error": str(e)}, status="failed",
            )
