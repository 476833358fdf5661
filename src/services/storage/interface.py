"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Keep the document on local disk today, elsewhere tomorrow
2. Use in-memory storage for testing
3. Keep the controller decoupled from the storage medium

The interface is intentionally tiny. The whole app state is ONE JSON
document stored under ONE key, read once at startup and rewritten
wholesale after every change. Storage never interprets the text; schema
repair is the normalizer's job.
"""

from abc import ABC, abstractmethod
from typing import Optional

from src.models.audit import AuditEvent


class DocumentStorageInterface(ABC):
    """
    Abstract interface for the persisted document.

    Implementations are synchronous and unbuffered: when
    write_document returns, the text is stored.
    """

    @abstractmethod
    def read_document(self) -> Optional[str]:
        """
        Read the stored document text.

        Returns:
            The raw text, or None if nothing has been stored yet

        Raises:
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    def write_document(self, text: str) -> None:
        """
        Replace the stored document with the given text.

        Args:
            text: The complete serialized document

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    def remove_document(self) -> None:
        """
        Delete the stored document. Removing a missing document is a no-op.
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        """
        Get the most recent audit events (newest first).
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class StorageUnavailableError(StorageError):
    """The storage location cannot be used at all."""
    pass
