"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
The document is kept in a local JSON file; the interface keeps it swappable.
"""

from src.services.storage.interface import (
    AuditStorageInterface,
    DocumentStorageInterface,
    StorageError,
    StorageUnavailableError,
)
from src.services.storage.local_file import (
    InMemoryAuditStorage,
    InMemoryDocumentStorage,
    JsonLinesAuditStorage,
    LocalFileDocumentStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "DocumentStorageInterface",
    # Exceptions
    "StorageError",
    "StorageUnavailableError",
    # Implementations
    "InMemoryAuditStorage",
    "InMemoryDocumentStorage",
    "JsonLinesAuditStorage",
    "LocalFileDocumentStorage",
]
