"""
Vector store interface and the in-memory cosine-similarity store.

Stores are keyed by record id: adding an id that is already present replaces
its vector. Each store can persist itself to a directory so indexed vectors
survive restarts.
"""

from abc import ABC, abstractmethod
import json
from pathlib import Path
from typing import Dict, List, Optional, Union
import numpy as np

from .types import VectorRecord, QueryResult

RECORDS_FILE = "records.json"
VECTORS_FILE = "vectors.npy"


class IVectorStore(ABC):
    """Abstract interface for vector storage operations."""

    dimension: int

    @abstractmethod
    def add(self, record: VectorRecord) -> None:
        """Add or replace a single vector record."""
        pass

    def batch_add(self, records: List[VectorRecord]) -> None:
        """Add multiple vector records to the store."""
        for record in records:
            self.add(record)

    @abstractmethod
    def search(self, query_vector: np.ndarray, top_k: int = 5) -> List[QueryResult]:
        """Search for similar vectors and return ranked results."""
        pass

    @abstractmethod
    def get(self, record_id: str) -> Optional[VectorRecord]:
        pass

    @abstractmethod
    def delete(self, record_id: str) -> None:
        """Delete a vector record by ID. Unknown ids are ignored."""
        pass

    @abstractmethod
    def clear(self) -> None:
        """Clear all records from the store."""
        pass

    @abstractmethod
    def save(self, directory: Union[str, Path]) -> None:
        pass

    @abstractmethod
    def load(self, directory: Union[str, Path]) -> None:
        """Replace the store's contents with what was saved in ``directory``."""
        pass

    @abstractmethod
    def __len__(self) -> int:
        pass

    def __contains__(self, record_id: str) -> bool:
        return self.get(record_id) is not None

    def _check_dimension(self, vector: np.ndarray):
        if len(vector) != self.dimension:
            raise ValueError(f"Vector dimension {len(vector)} does not match expected dimension {self.dimension}")


def _write_records_file(directory: Path, dimension: int, entries: List[dict]):
    directory.mkdir(parents=True, exist_ok=True)
    tmp_path = directory / (RECORDS_FILE + ".tmp")
    with open(tmp_path, "w", encoding="utf-8") as f:
        json.dump({"dimension": dimension, "records": entries}, f, ensure_ascii=False)
    tmp_path.replace(directory / RECORDS_FILE)


def _read_records_file(directory: Path) -> Optional[dict]:
    path = directory / RECORDS_FILE
    if not path.is_file():
        return None
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


class SimpleInMemoryVectorStore(IVectorStore):
    """Simple in-memory implementation of IVectorStore using cosine similarity."""

    def __init__(self, dimension: int = 384):
        self.dimension = dimension
        self._vectors: Dict[str, VectorRecord] = {}   # record_id -> VectorRecord
        self._index: Dict[str, np.ndarray] = {}       # record_id -> normalized vector, zero vectors excluded

    def add(self, record: VectorRecord) -> None:
        """Add a single vector record to the store."""
        vector = np.asarray(record.vector, dtype=np.float32)
        self._check_dimension(vector)
        self._vectors[record.id] = VectorRecord(id=record.id, vector=vector, metadata=dict(record.metadata))

        norm = np.linalg.norm(vector)
        if norm > 0:
            self._index[record.id] = vector / norm
        else:
            self._index.pop(record.id, None)

    def search(self, query_vector: np.ndarray, top_k: int = 5) -> List[QueryResult]:
        """Search for similar vectors and return ranked results."""
        if not self._index or top_k <= 0:
            return []

        query = np.asarray(query_vector, dtype=np.float32)
        norm = np.linalg.norm(query)
        if norm == 0:
            return []
        normalized_query = query / norm

        similarities = {
            record_id: float(np.dot(normalized_query, stored))
            for record_id, stored in self._index.items()
        }
        ranked = sorted(similarities.items(), key=lambda x: x[1], reverse=True)

        return [
            QueryResult(id=record_id, score=score, metadata=self._vectors[record_id].metadata)
            for record_id, score in ranked[:top_k]
        ]

    def get(self, record_id: str) -> Optional[VectorRecord]:
        return self._vectors.get(record_id)

    def delete(self, record_id: str) -> None:
        """Delete a vector record by ID."""
        self._vectors.pop(record_id, None)
        self._index.pop(record_id, None)

    def clear(self) -> None:
        """Clear all records from the store."""
        self._vectors.clear()
        self._index.clear()

    def __len__(self) -> int:
        return len(self._vectors)

    def save(self, directory: Union[str, Path]) -> None:
        directory = Path(directory)
        ids = list(self._vectors)
        matrix = (np.vstack([self._vectors[i].vector for i in ids]).astype(np.float32)
                  if ids else np.zeros((0, self.dimension), dtype=np.float32))
        directory.mkdir(parents=True, exist_ok=True)
        with open(directory / VECTORS_FILE, "wb") as f:
            np.save(f, matrix)
        _write_records_file(directory, self.dimension,
                            [{"id": i, "metadata": self._vectors[i].metadata} for i in ids])

    def load(self, directory: Union[str, Path]) -> None:
        directory = Path(directory)
        self.clear()
        data = _read_records_file(directory)
        if data is None or not (directory / VECTORS_FILE).is_file():
            return
        with open(directory / VECTORS_FILE, "rb") as f:
            matrix = np.load(f)
        if data.get("dimension", self.dimension) != self.dimension:
            raise ValueError(f"Vectors in {directory} have dimension {data['dimension']}, expected {self.dimension}")
        entries = data.get("records", [])
        if len(entries) != len(matrix):
            raise ValueError(f"Vector file in {directory} has {len(matrix)} rows for {len(entries)} records")
        for entry, vector in zip(entries, matrix):
            self.add(VectorRecord(id=entry["id"], vector=vector, metadata=entry.get("metadata", {})))
