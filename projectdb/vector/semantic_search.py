"""
Semantic search over embeddable record types.

One vector store per embeddable type, persisted under ``<vector_dir>/<type>``.
Vectors are derived data: a namespace that cannot be loaded is started empty
and refilled by the startup sync.
"""

import threading
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

import numpy as np

from .embed_config import EMBEDDING_CONFIG, EmbeddingFields, compute_embed_hash, get_embedding_text
from .embeddings import IEmbeddingProvider
from .index import IVectorStore, SimpleInMemoryVectorStore
from .types import SearchResult, VectorRecord
from ..core.events import DELETED, UPDATED, MutationEvent
from ..core.schema import COLLECTION_NAMES
from ..util.logging import logger

# dimensions -> empty store
StoreFactory = Callable[[int], IVectorStore]


class SemanticSearch:
    """Per-type vector indexes with natural-language search."""

    def __init__(self, vector_dir: Optional[Union[str, Path]], provider: IEmbeddingProvider,
                 store_factory: StoreFactory = SimpleInMemoryVectorStore,
                 config: Mapping[str, EmbeddingFields] = EMBEDDING_CONFIG,
                 collections: Optional[Mapping[str, str]] = None):
        """
        Args:
            vector_dir: Directory holding one namespace per type, or None to
                keep vectors in memory only
            provider: Embedding provider used for records and queries
            store_factory: Builds an empty store for a given dimension
            config: Embeddable types and their fields
            collections: Collection name -> type name, used to route events
        """
        self.vector_dir = Path(vector_dir) if vector_dir is not None else None
        self.provider = provider
        self.store_factory = store_factory
        self.config = dict(config)
        if collections is None:
            collections = {collection: type_name for type_name, collection in COLLECTION_NAMES.items()}
        self._collections = dict(collections)

        self._stores: Dict[str, IVectorStore] = {}
        self._dirty = set()
        self._lock = threading.RLock()
        self.initialized = False

    def initialize(self) -> None:
        """Initialize the provider and load every namespace. Idempotent."""
        with self._lock:
            if self.initialized:
                return

            self.provider.initialize()
            for entity_type in self.config:
                store = self.store_factory(self.provider.dimensions)
                if self.vector_dir is not None:
                    try:
                        store.load(self.vector_dir / entity_type)
                    except (OSError, ValueError, KeyError) as e:
                        logger.warning(f"Discarding unreadable vector namespace '{entity_type}': {e}")
                        store.clear()
                        self._dirty.add(entity_type)
                self._stores[entity_type] = store
                logger.log_vector_operation("namespace_loaded", entity_type, {"vectors": len(store)})

            self.initialized = True

    def _store(self, entity_type: str) -> Optional[IVectorStore]:
        if not self.initialized:
            raise RuntimeError("SemanticSearch.initialize() must be called first")
        return self._stores.get(entity_type)

    def upsert_entity(self, entity_type: str, record_id: str, record: Any) -> bool:
        """Embed a record and store its vector.

        A record with nothing to embed loses any vector it had.

        Returns:
            True if a vector was written
        """
        store = self._store(entity_type)
        if store is None:
            return False

        text = get_embedding_text(entity_type, record, self.config)
        if text is None:
            self.remove_entity(entity_type, record_id)
            return False

        vector = np.asarray(self.provider.embed(text), dtype=np.float32)
        with self._lock:
            store.add(VectorRecord(
                id=record_id,
                vector=vector,
                metadata={
                    "text": text,
                    "embed_hash": compute_embed_hash(text),
                    "model_version": self.provider.model_version,
                },
            ))
            self._dirty.add(entity_type)

        logger.log_vector_operation("upsert", record_id, {"entity_type": entity_type})
        return True

    def remove_entity(self, entity_type: str, record_id: str) -> None:
        store = self._store(entity_type)
        if store is None:
            return
        with self._lock:
            if record_id in store:
                store.delete(record_id)
                self._dirty.add(entity_type)
                logger.log_vector_operation("delete", record_id, {"entity_type": entity_type})

    def has_vector(self, entity_type: str, record_id: str) -> bool:
        store = self._store(entity_type)
        if store is None:
            return False
        with self._lock:
            return record_id in store

    def search(self, entity_type: str, query: str, k: int = 10) -> List[SearchResult]:
        """Search one type. Unknown or non-embeddable types give no results."""
        store = self._store(entity_type)
        if store is None or k <= 0 or not query:
            return []

        with self._lock:
            if len(store) == 0:
                return []

        vector = np.asarray(self.provider.embed(query), dtype=np.float32)
        with self._lock:
            results = store.search(vector, top_k=k)

        return [
            SearchResult(entity_type=entity_type, id=r.id, score=r.score, text=str(r.metadata.get("text", "")))
            for r in results
        ]

    def search_all(self, query: str, k: int = 10) -> List[SearchResult]:
        """Search every embeddable type and keep the best ``k`` hits overall."""
        if k <= 0 or not query:
            return []

        vector = np.asarray(self.provider.embed(query), dtype=np.float32)
        merged: List[SearchResult] = []
        with self._lock:
            for entity_type, store in self._stores.items():
                for r in store.search(vector, top_k=k):
                    merged.append(SearchResult(entity_type=entity_type, id=r.id, score=r.score,
                                               text=str(r.metadata.get("text", ""))))

        merged.sort(key=lambda hit: hit.score, reverse=True)
        return merged[:k]

    def handle_event(self, event: MutationEvent) -> None:
        """Apply a repository mutation to the matching namespace."""
        entity_type = self._collections.get(event.collection)
        if entity_type is None or entity_type not in self.config:
            return

        if event.kind == DELETED:
            self.remove_entity(entity_type, event.id)
            return

        if event.kind == UPDATED and self.has_vector(entity_type, event.id):
            # Patches that leave the embedded fields alone keep their vector
            previous_text = get_embedding_text(entity_type, event.previous, self.config)
            if previous_text == get_embedding_text(entity_type, event.current, self.config):
                return

        self.upsert_entity(entity_type, event.id, event.current)

    def flush(self) -> None:
        """Persist every namespace changed since the last flush."""
        if self.vector_dir is None:
            return
        with self._lock:
            for entity_type in sorted(self._dirty):
                store = self._stores.get(entity_type)
                if store is None:
                    continue
                store.save(self.vector_dir / entity_type)
                logger.log_vector_operation("namespace_saved", entity_type, {"vectors": len(store)})
            self._dirty.clear()

    def stats(self) -> Dict[str, int]:
        with self._lock:
            return {entity_type: len(store) for entity_type, store in self._stores.items()}

    def dispose(self) -> None:
        """Release the provider and drop in-memory stores. Call flush() first to keep them."""
        with self._lock:
            self._stores.clear()
            self._dirty.clear()
            self.provider.dispose()
            self.initialized = False
