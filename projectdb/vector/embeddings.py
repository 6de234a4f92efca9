"""
Embedding providers for semantic search.

A provider turns text into a fixed-size vector and reports a model version.
Records remember the version their vector was built with, so bumping the
version marks every record stale on the next startup sync.
"""

from abc import ABC, abstractmethod
import hashlib
import re
from typing import List

import numpy as np
from sentence_transformers import SentenceTransformer

DEFAULT_MODEL_NAME = "all-MiniLM-L6-v2"
DEFAULT_DIMENSIONS = 384
NULL_MODEL_VERSION = 0

_TOKEN = re.compile(r"\w+")


class IEmbeddingProvider(ABC):
    """Abstract interface for embedding providers."""

    @property
    @abstractmethod
    def dimensions(self) -> int:
        """Length of every vector this provider returns."""
        pass

    @property
    @abstractmethod
    def model_version(self) -> int:
        """Version stamped into records embedded by this provider."""
        pass

    @abstractmethod
    def embed(self, text: str) -> List[float]:
        """Generate embedding vector for given text."""
        pass

    def embed_batch(self, texts: List[str]) -> List[List[float]]:
        """Embed several texts, preserving order."""
        return [self.embed(text) for text in texts]

    def initialize(self) -> None:
        """Load expensive resources. Safe to call more than once."""
        pass

    def dispose(self) -> None:
        """Release resources loaded by initialize()."""
        pass


class DeterministicHashEmbedding(IEmbeddingProvider):
    """Deterministic hash-based embedding provider for tests and offline runs.

    Each lowercased word is hashed into one signed bucket, so texts sharing
    words get similar vectors without loading a model.
    """

    def __init__(self, dimension: int = DEFAULT_DIMENSIONS, model_version: int = 1):
        self._dimension = dimension
        self._model_version = model_version

    @property
    def dimensions(self) -> int:
        return self._dimension

    @property
    def model_version(self) -> int:
        return self._model_version

    def embed(self, text: str) -> List[float]:
        """Generate deterministic embedding vector using hash function."""
        vector = np.zeros(self._dimension, dtype=np.float32)
        for token in _TOKEN.findall(text.lower()):
            digest = hashlib.md5(token.encode()).hexdigest()
            bucket = int(digest[:8], 16) % self._dimension
            sign = 1.0 if int(digest[8:10], 16) % 2 == 0 else -1.0
            vector[bucket] += sign

        norm = np.linalg.norm(vector)
        if norm > 0:
            vector = vector / norm
        return vector.tolist()


class SentenceTransformerEmbedding(IEmbeddingProvider):
    """Sentence transformers embedding provider using pre-trained models.

    Uses all-MiniLM-L6-v2 (384 dimensions) by default. The model is loaded on
    first use or by an explicit initialize().
    """

    def __init__(self, model_name: str = DEFAULT_MODEL_NAME, model_version: int = 1,
                 dimensions: int = DEFAULT_DIMENSIONS):
        self.model_name = model_name
        self._model_version = model_version
        self._dimension = dimensions
        self._model = None

    @property
    def model(self):
        if self._model is None:
            self._model = SentenceTransformer(self.model_name)
        return self._model

    @property
    def dimensions(self) -> int:
        return self._dimension

    @property
    def model_version(self) -> int:
        return self._model_version

    def initialize(self) -> None:
        model = self.model
        actual = model.get_sentence_embedding_dimension()
        if actual is not None and actual != self._dimension:
            raise ValueError(
                f"Model {self.model_name} produces {actual}-dimensional vectors, "
                f"configured for {self._dimension}"
            )

    def dispose(self) -> None:
        self._model = None

    def embed(self, text: str) -> List[float]:
        """Generate embedding vector using sentence transformers."""
        embedding = self.model.encode(text, convert_to_tensor=False, normalize_embeddings=True)
        return embedding.tolist()

    def embed_batch(self, texts: List[str]) -> List[List[float]]:
        if not texts:
            return []
        embeddings = self.model.encode(list(texts), convert_to_tensor=False, normalize_embeddings=True)
        return [row.tolist() for row in embeddings]


class NullEmbedding(IEmbeddingProvider):
    """Provider that returns zero vectors.

    Its model version is 0, which no real model uses, so anything embedded
    with it is re-embedded once a real provider is configured.
    """

    def __init__(self, dimensions: int = DEFAULT_DIMENSIONS):
        self._dimension = dimensions

    @property
    def dimensions(self) -> int:
        return self._dimension

    @property
    def model_version(self) -> int:
        return NULL_MODEL_VERSION

    def embed(self, text: str) -> List[float]:
        return [0.0] * self._dimension
