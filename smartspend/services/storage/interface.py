"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Keep the ledger in a JSON file today and somewhere else later
2. Use in-memory storage for testing
3. Keep business logic decoupled from storage implementation

The interface is intentionally a plain string key-value store, the same
contract a browser's local storage offers. The ledger service decides
what to serialize under which key.
"""

from abc import ABC, abstractmethod
from typing import Optional


class KeyValueStoreInterface(ABC):
    """
    Abstract interface for persistent key-value storage.

    Any storage implementation must implement these methods.
    Values are opaque strings; the store never parses them.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """
        Read the value stored under a key.

        Args:
            key: Store key

        Returns:
            The stored string, or None if the key was never set

        Raises:
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """
        Store a value, replacing any previous one.

        The write is all-or-nothing: after a failure the previous
        value is still readable.

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    def remove(self, key: str) -> bool:
        """
        Delete a key.

        Returns:
            True if the key existed
        """
        pass

    def move(self, key: str, new_key: str) -> bool:
        """
        Rename a key, replacing whatever `new_key` held.

        Backends that can rename without reading the value should
        override this, so unreadable values can still be moved aside.

        Returns:
            True if `key` existed

        Raises:
            StorageError: If the value cannot be moved
        """
        value = self.get(key)
        if value is None:
            return False
        self.set(new_key, value)
        self.remove(key)
        return True

    def contains(self, key: str) -> bool:
        return self.get(key) is not None


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass
