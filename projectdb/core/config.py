"""
Configuration for the project database.

Settings come from the environment, optionally seeded from a .env file, and
are read when load_config() is called so tests can override them.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()

DEFAULT_DATA_DIR = ".project/database"
DEFAULT_VECTOR_DIR = ".project/database/vectors"

EMBED_PROVIDERS = ("sentence_transformers", "hash", "null")
VECTOR_PROVIDERS = ("memory", "faiss")
SEARCH_SYNC_MODES = ("inline", "background")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


@dataclass
class DatabaseConfig:
    """Settings for one Database instance."""

    data_dir: Path = Path(DEFAULT_DATA_DIR)
    """Directory holding one JSONL file per collection"""

    vector_dir: Path = Path(DEFAULT_VECTOR_DIR)
    """Directory holding one vector namespace per embeddable type"""

    embeddings_enabled: bool = True
    embed_provider: str = "sentence_transformers"  # sentence_transformers|hash|null
    embed_model: str = "all-MiniLM-L6-v2"
    embed_model_version: int = 1
    embed_dim: int = 384
    vector_provider: str = "memory"  # memory|faiss
    sync_on_startup: bool = True
    search_sync_mode: str = "background"  # inline|background
    log_level: str = "INFO"

    def __post_init__(self):
        self.data_dir = Path(self.data_dir)
        self.vector_dir = Path(self.vector_dir)


def load_config(data_dir: Optional[str] = None) -> DatabaseConfig:
    """Build a DatabaseConfig from the current environment.

    Args:
        data_dir: Overrides PROJECTDB_DATA_DIR. When given and
            PROJECTDB_VECTOR_DIR is unset, vectors live in ``<data_dir>/vectors``.
    """
    resolved_data_dir = data_dir or os.getenv("PROJECTDB_DATA_DIR", DEFAULT_DATA_DIR)
    default_vector_dir = str(Path(data_dir) / "vectors") if data_dir else DEFAULT_VECTOR_DIR

    return DatabaseConfig(
        data_dir=Path(resolved_data_dir),
        vector_dir=Path(os.getenv("PROJECTDB_VECTOR_DIR", default_vector_dir)),
        embeddings_enabled=_env_bool("PROJECTDB_EMBEDDINGS_ENABLED", "true"),
        embed_provider=os.getenv("PROJECTDB_EMBED_PROVIDER", "sentence_transformers").lower(),
        embed_model=os.getenv("PROJECTDB_EMBED_MODEL", "all-MiniLM-L6-v2"),
        embed_model_version=int(os.getenv("PROJECTDB_EMBED_MODEL_VERSION", "1")),
        embed_dim=int(os.getenv("PROJECTDB_EMBED_DIM", "384")),
        vector_provider=os.getenv("PROJECTDB_VECTOR_PROVIDER", "memory").lower(),
        sync_on_startup=_env_bool("PROJECTDB_SYNC_ON_STARTUP", "true"),
        search_sync_mode=os.getenv("PROJECTDB_SEARCH_SYNC_MODE", "background").lower(),
        log_level=os.getenv("PROJECTDB_LOG_LEVEL", "INFO").upper(),
    )


def validate_config(config: DatabaseConfig) -> List[str]:
    """Validate configuration and return any issues."""
    issues = []

    if config.embed_provider not in EMBED_PROVIDERS:
        issues.append(f"Invalid PROJECTDB_EMBED_PROVIDER: {config.embed_provider}")

    if config.vector_provider not in VECTOR_PROVIDERS:
        issues.append(f"Invalid PROJECTDB_VECTOR_PROVIDER: {config.vector_provider}")

    if config.search_sync_mode not in SEARCH_SYNC_MODES:
        issues.append(f"Invalid PROJECTDB_SEARCH_SYNC_MODE: {config.search_sync_mode}")

    if config.log_level.upper() not in LOG_LEVELS:
        issues.append(f"Invalid PROJECTDB_LOG_LEVEL: {config.log_level}")

    if config.embed_dim < 1:
        issues.append("PROJECTDB_EMBED_DIM must be >= 1")

    if config.embed_model_version < 1 and config.embed_provider != "null":
        issues.append("PROJECTDB_EMBED_MODEL_VERSION must be >= 1 (0 is reserved for the null provider)")

    if config.data_dir == config.vector_dir:
        issues.append("PROJECTDB_VECTOR_DIR must differ from PROJECTDB_DATA_DIR")

    return issues


def get_embedding_provider(config: DatabaseConfig):
    """Get configured embedding provider implementation. Returns None if embeddings are disabled."""
    if not config.embeddings_enabled:
        return None

    if config.embed_provider == "sentence_transformers":
        from ..vector.embeddings import SentenceTransformerEmbedding
        return SentenceTransformerEmbedding(config.embed_model, config.embed_model_version, config.embed_dim)
    elif config.embed_provider == "hash":
        from ..vector.embeddings import DeterministicHashEmbedding
        return DeterministicHashEmbedding(config.embed_dim, config.embed_model_version)
    elif config.embed_provider == "null":
        from ..vector.embeddings import NullEmbedding
        return NullEmbedding(config.embed_dim)
    raise ValueError(f"Unknown embedding provider: {config.embed_provider}")


def get_vector_store_factory(config: DatabaseConfig):
    """Get the class used to build one vector store per namespace."""
    if config.vector_provider == "memory":
        from ..vector.index import SimpleInMemoryVectorStore
        return SimpleInMemoryVectorStore
    elif config.vector_provider == "faiss":
        from ..vector.faiss_store import FaissVectorStore
        return FaissVectorStore
    raise ValueError(f"Unknown vector provider: {config.vector_provider}")


def ensure_data_dirs(config: DatabaseConfig):
    """Ensure the data and vector directories exist."""
    config.data_dir.mkdir(parents=True, exist_ok=True)
    if config.embeddings_enabled:
        config.vector_dir.mkdir(parents=True, exist_ok=True)
