"""
FAISS-backed vector store.

Vectors are normalized and kept in an inner-product index wrapped in an
IndexIDMap2, so inner product equals cosine similarity and single vectors can
be removed by id.
"""

from pathlib import Path
from typing import Dict, List, Optional, Union

import faiss
import numpy as np

from .types import VectorRecord, QueryResult
from .index import IVectorStore, _read_records_file, _write_records_file

INDEX_FILE = "index.faiss"


class FaissVectorStore(IVectorStore):
    """FAISS-backed implementation of IVectorStore."""

    def __init__(self, dimension: int = 384):
        """
        Initialize FAISS vector store.

        Args:
            dimension: Dimension of the vectors (default: 384 for all-MiniLM-L6-v2)
        """
        self.dimension = dimension
        self.index = self._new_index()

        # record id <-> int64 id inside the FAISS index
        self.id_to_vector_index: Dict[str, int] = {}
        self.vector_id_map: Dict[int, str] = {}
        self.next_vector_index = 0

        # Every stored record, including zero vectors that are never indexed
        self._records: Dict[str, VectorRecord] = {}

    def _new_index(self):
        return faiss.IndexIDMap2(faiss.IndexFlatIP(self.dimension))

    def add(self, record: VectorRecord) -> None:
        """Add or replace a single vector record in the FAISS store."""
        vector = np.asarray(record.vector, dtype=np.float32)
        self._check_dimension(vector)
        self.delete(record.id)
        self._records[record.id] = VectorRecord(id=record.id, vector=vector, metadata=dict(record.metadata))

        norm = np.linalg.norm(vector)
        if norm == 0:
            # Zero vectors have no direction to match on
            return

        vector_index = self.next_vector_index
        self.next_vector_index += 1
        self.index.add_with_ids((vector / norm).reshape(1, -1).astype(np.float32),
                                np.array([vector_index], dtype=np.int64))
        self.id_to_vector_index[record.id] = vector_index
        self.vector_id_map[vector_index] = record.id

    def search(self, query_vector: np.ndarray, top_k: int = 5) -> List[QueryResult]:
        """Search for similar vectors and return ranked results."""
        if not self.index.ntotal or top_k <= 0:
            return []

        query = np.asarray(query_vector, dtype=np.float32)
        norm = np.linalg.norm(query)
        if norm == 0:
            return []
        query_array = (query / norm).reshape(1, -1).astype(np.float32)

        scores, indices = self.index.search(query_array, min(top_k, self.index.ntotal))

        results = []
        for score, vector_index in zip(scores[0], indices[0]):
            record_id = self.vector_id_map.get(int(vector_index))
            if record_id is None:
                continue
            results.append(QueryResult(id=record_id, score=float(score),
                                       metadata=self._records[record_id].metadata))
        return results

    def get(self, record_id: str) -> Optional[VectorRecord]:
        return self._records.get(record_id)

    def delete(self, record_id: str) -> None:
        """Delete a vector record by ID."""
        self._records.pop(record_id, None)
        vector_index = self.id_to_vector_index.pop(record_id, None)
        if vector_index is not None:
            self.vector_id_map.pop(vector_index, None)
            self.index.remove_ids(np.array([vector_index], dtype=np.int64))

    def clear(self) -> None:
        """Clear all records from the FAISS store."""
        self.index = self._new_index()
        self.id_to_vector_index.clear()
        self.vector_id_map.clear()
        self.next_vector_index = 0
        self._records.clear()

    def __len__(self) -> int:
        return len(self._records)

    def save(self, directory: Union[str, Path]) -> None:
        directory = Path(directory)
        directory.mkdir(parents=True, exist_ok=True)
        faiss.write_index(self.index, str(directory / INDEX_FILE))
        _write_records_file(directory, self.dimension, [
            {
                "id": record_id,
                "metadata": record.metadata,
                "vector_index": self.id_to_vector_index.get(record_id),
                "vector": record.vector.tolist() if record_id not in self.id_to_vector_index else None,
            }
            for record_id, record in self._records.items()
        ])

    def load(self, directory: Union[str, Path]) -> None:
        directory = Path(directory)
        self.clear()
        data = _read_records_file(directory)
        if data is None or not (directory / INDEX_FILE).is_file():
            return

        index = faiss.read_index(str(directory / INDEX_FILE))
        if index.d != self.dimension:
            raise ValueError(f"Index in {directory} has dimension {index.d}, expected {self.dimension}")
        self.index = index
        for entry in data.get("records", []):
            record_id = entry["id"]
            vector_index = entry.get("vector_index")
            if vector_index is None:
                vector = np.asarray(entry.get("vector") or [0.0] * self.dimension, dtype=np.float32)
            else:
                vector = self.index.reconstruct(int(vector_index))
                self.id_to_vector_index[record_id] = int(vector_index)
                self.vector_id_map[int(vector_index)] = record_id
                self.next_vector_index = max(self.next_vector_index, int(vector_index) + 1)
            self._records[record_id] = VectorRecord(id=record_id, vector=vector,
                                                    metadata=entry.get("metadata", {}))
