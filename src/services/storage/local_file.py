"""
Local File Storage Implementation

DESIGN DECISION: The document lives in a single JSON file named after its
storage key, the same way a browser keeps it under one local-storage key.
1. No database setup required
2. The user can copy the file as a backup
3. One file = one document, so "replace wholesale" is a single rename

Writes go to a temp file first and are moved into place with os.replace,
so a crash mid-write leaves the previous document intact.

TRADEOFFS:
- Single process only (this is a single-user app)
- No history beyond the manual backup file
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Optional

import structlog
from tenacity import (
    RetryError,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from src.models.audit import AuditEvent
from src.services.storage.interface import (
    AuditStorageInterface,
    DocumentStorageInterface,
    StorageError,
    StorageUnavailableError,
)


logger = structlog.get_logger(__name__)


class LocalFileDocumentStorage(DocumentStorageInterface):
    """
    Stores the document as <data_dir>/<document_key>.json.
    """

    def __init__(self, path: Path, write_attempts: int = 3):
        self._path = Path(path)
        self._write_attempts = write_attempts
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageUnavailableError(
                f"Cannot create data directory {self._path.parent}: {e}"
            ) from e

    @property
    def path(self) -> Path:
        return self._path

    def read_document(self) -> Optional[str]:
        if not self._path.exists():
            return None
        try:
            return self._path.read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            # Undecodable bytes are a corrupt document, not a broken disk.
            # Hand back what we can; the normalizer falls back to defaults.
            logger.warning("document_not_utf8", path=str(self._path), error=str(e))
            return self._path.read_bytes().decode("utf-8", errors="replace")
        except OSError as e:
            raise StorageError(f"Failed to read {self._path}: {e}") from e

    def write_document(self, text: str) -> None:
        try:
            data = text.encode("utf-8")
        except UnicodeEncodeError as e:
            # Not retryable: the same text fails the same way every time
            raise StorageError(f"Cannot store text as UTF-8 in {self._path}: {e}") from e

        try:
            for attempt in Retrying(
                stop=stop_after_attempt(self._write_attempts),
                wait=wait_exponential(multiplier=0.1, min=0.1, max=2),
                retry=retry_if_exception_type(OSError),
                reraise=False,
            ):
                with attempt:
                    self._atomic_write(data)
        except RetryError as e:
            cause = e.last_attempt.exception()
            raise StorageError(f"Failed to write {self._path}: {cause}") from cause

    def remove_document(self) -> None:
        try:
            self._path.unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to remove {self._path}: {e}") from e

    def _atomic_write(self, data: bytes) -> None:
        fd, tmp_name = tempfile.mkstemp(
            dir=self._path.parent,
            prefix=f".{self._path.stem}.",
            suffix=".tmp",
        )
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self._path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise


class InMemoryDocumentStorage(DocumentStorageInterface):
    """
    Keeps the document text in memory.

    Used by tests, and by the app when the data directory is unusable.
    """

    def __init__(self, text: Optional[str] = None):
        self._text = text
        self.write_count = 0

    def read_document(self) -> Optional[str]:
        return self._text

    def write_document(self, text: str) -> None:
        self._text = text
        self.write_count += 1

    def remove_document(self) -> None:
        self._text = None


class JsonLinesAuditStorage(AuditStorageInterface):
    """
    Append-only audit log, one JSON object per line.
    """

    def __init__(self, path: Path):
        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)

    def append_event(self, event: AuditEvent) -> bool:
        line = json.dumps(event.to_log_dict(), ensure_ascii=False, default=str)
        with self._path.open("a", encoding="utf-8", errors="backslashreplace") as f:
            f.write(line + "\n")
        return True

    def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        if not self._path.exists():
            return []

        events = []
        # One extra line for a torn write at the end
        for line in reversed(_read_last_lines(self._path, limit + 1)):
            if len(events) >= limit:
                break
            line = line.strip()
            if not line:
                continue
            try:
                events.append(AuditEvent.model_validate_json(line))
            except ValueError:
                # A torn last line from a crash is not worth failing over
                continue
        return events


def _read_last_lines(path: Path, count: int, block_size: int = 8192) -> list[str]:
    """
    Read at most the last count lines of a file, scanning backwards in
    blocks so the cost does not grow with the size of the file.
    """
    if count <= 0:
        return []

    with path.open("rb") as f:
        f.seek(0, os.SEEK_END)
        position = f.tell()
        buffer = b""
        # count + 1 newlines guarantee count whole lines after a partial first one
        while position > 0 and buffer.count(b"\n") <= count:
            step = min(block_size, position)
            position -= step
            f.seek(position)
            buffer = f.read(step) + buffer

    lines = buffer.decode("utf-8", errors="replace").splitlines()
    return lines[-count:]


class InMemoryAuditStorage(AuditStorageInterface):
    """Audit sink for tests."""

    def __init__(self):
        self.events: list[AuditEvent] = []

    def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return list(reversed(self.events))[:limit]
