"""
Database facade: owns the registry, storage, event bus, every repository and,
when embeddings are enabled, semantic search and its sync worker.

Typical use:

    with Database(load_config(".project/database")) as db:
        db.tasks.insert({...})
        hits = db.search.search("task", "login flow")
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from .config import (
    DatabaseConfig,
    ensure_data_dirs,
    get_embedding_provider,
    get_vector_store_factory,
    load_config,
    validate_config,
)
from .errors import DatabaseError, UnknownTypeError
from .events import EventBus
from .query import get_field
from .registry import SchemaRegistry
from .repositories import repository_class_for
from .repository import Repository
from .storage import JsonlStorageAdapter, StorageAdapter
from ..util.logging import logger
from ..vector.embeddings import IEmbeddingProvider
from ..vector.semantic_search import SemanticSearch, StoreFactory
from ..vector.sync import SearchSyncWorker, sync_embeddings
from ..vector.types import EmbeddingProgress, SyncReport


@dataclass(frozen=True)
class IntegrityViolation:
    """A record whose reference field points at nothing."""

    from_collection: str
    from_id: str
    from_field: str
    to_collection: str
    missing_id: Optional[str]
    """The dangling value, or None when a required reference is unset"""


@dataclass
class IntegrityReport:
    valid: bool
    violations: List[IntegrityViolation] = field(default_factory=list)
    checked_relationships: int = 0


class Database:
    """Entry point to a project data directory."""

    def __init__(self, config: Optional[DatabaseConfig] = None, storage: Optional[StorageAdapter] = None,
                 embedding: Optional[IEmbeddingProvider] = None, registry: Optional[SchemaRegistry] = None,
                 on_embedding_progress: Optional[Callable[[EmbeddingProgress], None]] = None,
                 store_factory: Optional[StoreFactory] = None):
        """
        Args:
            config: Settings; read from the environment when omitted
            storage: Storage adapter; JSONL files under config.data_dir by default
            embedding: Embedding provider overriding the configured one
            registry: Schema registry; the full project schema by default
            on_embedding_progress: Receives init/sync/done progress during open()
            store_factory: Vector store class overriding the configured one
        """
        self.config = config if config is not None else load_config()
        issues = validate_config(self.config)
        if issues:
            raise DatabaseError(f"Database configuration invalid: {issues}")
        logger.set_level(self.config.log_level)

        self.registry = registry if registry is not None else SchemaRegistry.default()
        self._owns_storage = storage is None
        self.storage = storage if storage is not None else JsonlStorageAdapter(self.config.data_dir)
        self.events = EventBus()
        self._on_embedding_progress = on_embedding_progress

        self._repositories: Dict[str, Repository] = {
            type_name: repository_class_for(type_name)(self.registry, self.storage, self.events,
                                                       type_name=type_name)
            for type_name in self.registry.types()
        }
        self._by_collection: Dict[str, Repository] = {
            repo.collection: repo for repo in self._repositories.values()
        }

        self.embedding: Optional[IEmbeddingProvider] = None
        self.search: Optional[SemanticSearch] = None
        self.sync_worker: Optional[SearchSyncWorker] = None
        if self.config.embeddings_enabled:
            self.embedding = embedding if embedding is not None else get_embedding_provider(self.config)
            self.search = SemanticSearch(
                self.config.vector_dir,
                self.embedding,
                store_factory if store_factory is not None else get_vector_store_factory(self.config),
                collections={repo.collection: type_name for type_name, repo in self._repositories.items()},
            )
            self.sync_worker = SearchSyncWorker(self.search, self.config.search_sync_mode)

        self.last_sync: Optional[SyncReport] = None
        self.is_open = False
        self._closed = False

    # Lifecycle

    def open(self) -> "Database":
        """Load every collection, then bring semantic search up to date."""
        if self.is_open:
            raise DatabaseError("Database is already open")
        if self._closed:
            raise DatabaseError("Database has been closed; create a new instance")

        if self._owns_storage:
            ensure_data_dirs(self.config)

        total = 0
        for repo in self._repositories.values():
            total += repo.load()
        logger.log_operation("database.open", "loaded",
                             {"collections": len(self._repositories), "records": total})

        if self.search is not None:
            self._report_progress(EmbeddingProgress("init"))
            self.search.initialize()
            if self.config.sync_on_startup:
                embeddable = {t: self._repositories[t] for t in self.search.config if t in self._repositories}
                self.last_sync = sync_embeddings(self.search, embeddable, self._write_embed_fields,
                                                 self._on_embedding_progress)
            self.search.flush()
            self._report_progress(EmbeddingProgress("done"))
            self.sync_worker.subscribe(self.events)

        self.is_open = True
        return self

    def close(self) -> None:
        """Stop the sync worker, persist vectors and release resources. Idempotent."""
        if not self.is_open:
            # open() may have failed after search came up
            if self.search is not None and self.search.initialized:
                self.search.dispose()
            return

        if self.sync_worker is not None:
            self.sync_worker.stop()
        if self.search is not None:
            self.search.flush()
            self.search.dispose()
        self.events.clear()

        self.is_open = False
        self._closed = True
        logger.log_operation("database.close", "success")

    def flush(self) -> None:
        """Apply queued search updates and persist vector namespaces."""
        if self.sync_worker is not None:
            self.sync_worker.drain()
        if self.search is not None and self.search.initialized:
            self.search.flush()

    def __enter__(self) -> "Database":
        return self.open()

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    # Repository access

    def repository(self, type_name: str) -> Repository:
        repo = self._repositories.get(type_name)
        if repo is None:
            raise UnknownTypeError(type_name)
        return repo

    def repositories(self) -> Dict[str, Repository]:
        return dict(self._repositories)

    def __getattr__(self, name: str) -> Repository:
        # db.tasks, db.epic_dependencies, ...
        by_collection = self.__dict__.get("_by_collection")
        if by_collection is not None and name in by_collection:
            return by_collection[name]
        raise AttributeError(f"{type(self).__name__!r} object has no attribute {name!r}")

    def stats(self) -> Dict[str, int]:
        """Record count per collection."""
        return {repo.collection: len(repo) for repo in self._repositories.values()}

    # Integrity

    def validate_integrity(self) -> IntegrityReport:
        """Check every declared relationship and report all dangling references."""
        violations: List[IntegrityViolation] = []
        checked = 0

        for rel in self.registry.relationships():
            from_repo = self._repositories.get(rel.from_type)
            to_repo = self._repositories.get(rel.to_type)
            if from_repo is None or to_repo is None:
                continue
            checked += 1

            target_ids = {get_field(r, rel.to_field) for r in to_repo.get_all()}
            for record in from_repo.get_all():
                value = get_field(record, rel.from_field)
                if value is None:
                    if rel.nullable:
                        continue
                    violations.append(IntegrityViolation(from_repo.collection, record.id, rel.from_field,
                                                         to_repo.collection, None))
                elif value not in target_ids:
                    violations.append(IntegrityViolation(from_repo.collection, record.id, rel.from_field,
                                                         to_repo.collection, value))

        report = IntegrityReport(valid=not violations, violations=violations, checked_relationships=checked)
        logger.log_integrity_report(report.valid, len(violations), checked)
        return report

    # Internals

    def _write_embed_fields(self, entity_type: str, record_id: str, patch: Dict[str, object]):
        self._repositories[entity_type].update(record_id, patch)

    def _report_progress(self, progress: EmbeddingProgress):
        logger.log_sync_progress(progress.phase, progress.current, progress.total, progress.entity_type)
        if self._on_embedding_progress is not None:
            self._on_embedding_progress(progress)
