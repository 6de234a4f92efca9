"""
Value types shared by the vector stores, semantic search and embedding sync.
"""

from typing import Dict, Optional
import numpy as np
from dataclasses import dataclass


@dataclass
class VectorRecord:
    """Represents a vector record with metadata."""

    id: str
    """Record id the vector belongs to"""

    vector: Optional[np.ndarray]
    """The embedding of the record's text"""

    metadata: Dict[str, object]
    """Additional metadata, at least the indexed text"""


@dataclass
class QueryResult:
    """Represents a search result from vector store."""

    id: str
    """Identifier for the matching record"""

    score: float
    """Cosine similarity of the match"""

    metadata: Dict[str, object]
    """Metadata associated with the matched record"""


@dataclass(frozen=True)
class SearchResult:
    """A semantic search hit on one record."""

    entity_type: str
    id: str
    score: float
    text: str
    """The text that was embedded for this record"""


@dataclass(frozen=True)
class EmbeddingProgress:
    """Progress report passed to the startup sync callback."""

    phase: str
    """One of 'init', 'sync', 'done'"""

    current: Optional[int] = None
    total: Optional[int] = None
    entity_type: Optional[str] = None


@dataclass
class SyncReport:
    """Outcome of a startup embedding sync."""

    synced: int = 0
    skipped: int = 0
    failed: int = 0

    @property
    def total(self) -> int:
        return self.synced + self.skipped + self.failed
