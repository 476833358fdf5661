"""Services package."""

from src.services.storage import (
    AuditStorageInterface,
    DocumentStorageInterface,
    InMemoryAuditStorage,
    InMemoryDocumentStorage,
    JsonLinesAuditStorage,
    LocalFileDocumentStorage,
    StorageError,
    StorageUnavailableError,
)

__all__ = [
    "AuditStorageInterface",
    "DocumentStorageInterface",
    "InMemoryAuditStorage",
    "InMemoryDocumentStorage",
    "JsonLinesAuditStorage",
    "LocalFileDocumentStorage",
    "StorageError",
    "StorageUnavailableError",
]
