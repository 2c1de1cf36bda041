"""
Storage Services Package

Provides the abstract key-value interface and concrete implementations.
Currently implements a JSON file directory as the backend, but designed to be swappable.
"""

from smartspend.services.storage.interface import (
    KeyValueStoreInterface,
    NotFoundError,
    StorageError,
)
from smartspend.services.storage.json_file import JsonFileStore
from smartspend.services.storage.memory import InMemoryStore

__all__ = [
    # Interfaces
    "KeyValueStoreInterface",
    # Exceptions
    "NotFoundError",
    "StorageError",
    # Implementations
    "InMemoryStore",
    "JsonFileStore",
]
