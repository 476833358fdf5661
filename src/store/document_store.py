"""
Document Store

Holds the one in-memory AppData and keeps storage in step with it.

DESIGN DECISION: The store does not know HOW the document is persisted.
A persist callback is injected at construction. Every successful
mutation swaps the in-memory document and then calls it right away
(write-through). There is no batching and no debounce.
"""

from typing import Callable, Optional

from src.models.app_data import AppData


Mutation = Callable[[AppData], AppData]
PersistCallback = Callable[[AppData], None]


class DocumentStore:
    """
    Single owner of the current document.

    Usage:
        store = DocumentStore(loaded, persist=save_to_disk)
        store.apply(lambda d: append_journal_entry(d, entry))
    """

    def __init__(
        self,
        initial: Optional[AppData] = None,
        persist: Optional[PersistCallback] = None,
    ):
        self._data = initial if initial is not None else AppData()
        self._persist = persist

    def get(self) -> AppData:
        """Current document. Treat it as read-only."""
        return self._data

    def apply(self, mutation: Mutation) -> AppData:
        """
        Run a pure mutation, swap in its result, then persist it.

        If the mutation raises, the current document is kept and nothing
        is written. If persisting raises, the new document is already in
        memory and the error propagates to the caller.
        """
        next_data = mutation(self._data)
        self._data = next_data
        if self._persist:
            self._persist(next_data)
        return next_data

    def replace(self, data: AppData, persist: bool = True) -> AppData:
        """
        Swap in a whole document (import, reset).

        Args:
            data: The new document
            persist: Write it through, or only hold it in memory
        """
        self._data = data
        if persist and self._persist:
            self._persist(data)
        return data
