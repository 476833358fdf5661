"""
Request Token Registry

AI calls are slow and the user can fire a second one for the same thing
(re-analyzing an entry, regenerating the resume) before the first one
returns. Only the most recently issued request may attach its result.

Usage:
    token = registry.issue("journal:42")
    result = await agent.analyze_journal_entry(text)
    if registry.is_latest("journal:42", token):
        ... attach result ...
    registry.release("journal:42", token)
"""

import itertools
import threading


class RequestTokenRegistry:
    """Tracks the latest outstanding request token per entity key."""

    def __init__(self):
        self._counter = itertools.count(1)
        self._latest: dict[str, int] = {}
        self._lock = threading.Lock()

    def issue(self, key: str) -> int:
        """Start a request for `key`. Earlier tokens for it become stale."""
        with self._lock:
            token = next(self._counter)
            self._latest[key] = token
            return token

    def is_latest(self, key: str, token: int) -> bool:
        with self._lock:
            return self._latest.get(key) == token

    def release(self, key: str, token: int) -> None:
        """Forget `key` if `token` is still the latest for it."""
        with self._lock:
            if self._latest.get(key) == token:
                del self._latest[key]

    def pending(self, key: str) -> bool:
        with self._lock:
            return key in self._latest
