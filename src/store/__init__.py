"""In-memory document store and the pure mutations it applies."""

from src.store.document_store import DocumentStore, Mutation, PersistCallback
from src.store.mutations import EntityNotFoundError

__all__ = [
    "DocumentStore",
    "EntityNotFoundError",
    "Mutation",
    "PersistCallback",
]
