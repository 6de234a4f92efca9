"""
Semantic search overlay. Vectors are derived from records and can always be rebuilt.
"""

# FaissVectorStore is imported from .faiss_store when PROJECTDB_VECTOR_PROVIDER=faiss
from .index import IVectorStore, SimpleInMemoryVectorStore
from .types import VectorRecord, QueryResult, SearchResult, EmbeddingProgress, SyncReport
from .embeddings import IEmbeddingProvider, DeterministicHashEmbedding, SentenceTransformerEmbedding, NullEmbedding
from .semantic_search import SemanticSearch
from .sync import SearchSyncWorker, sync_embeddings

__all__ = [
    'IVectorStore',
    'SimpleInMemoryVectorStore',
    'VectorRecord',
    'QueryResult',
    'SearchResult',
    'EmbeddingProgress',
    'SyncReport',
    'IEmbeddingProvider',
    'DeterministicHashEmbedding',
    'SentenceTransformerEmbedding',
    'NullEmbedding',
    'SemanticSearch',
    'SearchSyncWorker',
    'sync_embeddings'
]
