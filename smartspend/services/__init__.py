"""Services package."""

from smartspend.services.backup import (
    ImportFormatError,
    export_document,
    import_document,
)
from smartspend.services.storage import (
    InMemoryStore,
    JsonFileStore,
    KeyValueStoreInterface,
    NotFoundError,
    StorageError,
)

__all__ = [
    # Backups
    "ImportFormatError",
    "export_document",
    "import_document",
    # Storage services
    "InMemoryStore",
    "JsonFileStore",
    "KeyValueStoreInterface",
    "NotFoundError",
    "StorageError",
]
