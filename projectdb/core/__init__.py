"""
Data layer: schema registry, storage, repositories, queries and the Database facade.
"""

from .events import EventBus, Inserted, Updated, Deleted
from .query import Query
from .registry import SchemaRegistry, RecordValidator, ValidationResult
from .repository import Repository
from .storage import StorageAdapter, JsonlStorageAdapter, MemoryStorageAdapter

__all__ = [
    'EventBus',
    'Inserted',
    'Updated',
    'Deleted',
    'Query',
    'SchemaRegistry',
    'RecordValidator',
    'ValidationResult',
    'Repository',
    'StorageAdapter',
    'JsonlStorageAdapter',
    'MemoryStorageAdapter',
]
