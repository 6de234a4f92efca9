"""
projectdb - embedded, file-backed store for a project-management entity graph.
"""

from .core.config import DatabaseConfig, load_config
from .core.database import Database, IntegrityReport, IntegrityViolation
from .core.errors import (
    DatabaseError,
    DuplicateIdError,
    IllegalTransitionError,
    MalformedDataError,
    NotFoundError,
    PreconditionFailedError,
    ProjectDBError,
    StorageError,
    UnknownTypeError,
    ValidationError,
)
from .core.registry import SchemaRegistry

__version__ = "0.1.0"

__all__ = [
    'Database',
    'DatabaseConfig',
    'load_config',
    'IntegrityReport',
    'IntegrityViolation',
    'SchemaRegistry',
    'ProjectDBError',
    'ValidationError',
    'NotFoundError',
    'DuplicateIdError',
    'IllegalTransitionError',
    'PreconditionFailedError',
    'UnknownTypeError',
    'StorageError',
    'MalformedDataError',
    'DatabaseError',
]
