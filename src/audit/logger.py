"""
Audit Logger

DESIGN DECISION: Every significant action in the app is logged.
This provides:
1. Traceability of every change to the persisted document
2. Debugging capability for AI and storage failures
3. A visible record when a corrupt document was replaced by defaults

The audit logger:
- Is synchronous, like the document storage it sits next to
- Gracefully handles failures (doesn't crash the app if logging fails)
"""

from typing import Optional

import structlog

from src.models.audit import AuditEvent, AuditEventBuilder
from src.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. The audit storage, if one is configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("tarushiru.audit")

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        elif event.severity.value == "debug":
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    def recent_events(self, limit: int = 20) -> list[AuditEvent]:
        """Newest first. Empty when only logging locally."""
        if not self._storage:
            return []
        return self._storage.get_recent_events(limit)

    def log_document_loaded(self, source: str, journal_count: int, goal_count: int) -> None:
        self.log(AuditEventBuilder.document_loaded(source, journal_count, goal_count))

    def log_document_parse_failed(self, error: str, stage: str) -> None:
        """Log a stored document that could not be used."""
        self.log(AuditEventBuilder.document_parse_failed(error=error, stage=stage))

    def log_document_item_repaired(
        self,
        section: str,
        index: Optional[int],
        fields: list[str],
        dropped: bool,
        error: str,
    ) -> None:
        """Log a stored item that was reset or dropped while loading."""
        self.log(AuditEventBuilder.document_item_repaired(section, index, fields, dropped, error))

    def log_document_saved(self, size_bytes: int) -> None:
        self.log(AuditEventBuilder.document_saved(size_bytes))

    def log_document_reset(self) -> None:
        self.log(AuditEventBuilder.document_reset())

    def log_backup_exported(self, filename: str, size_bytes: int) -> None:
        self.log(AuditEventBuilder.backup_exported(filename, size_bytes))

    def log_backup_imported(self, size_bytes: int) -> None:
        self.log(AuditEventBuilder.backup_imported(size_bytes))

    def log_backup_rejected(self, reason: str) -> None:
        self.log(AuditEventBuilder.backup_rejected(reason))

    def log_user_registered(self, name: str) -> None:
        self.log(AuditEventBuilder.user_registered(name))

    def log_login(self, succeeded: bool) -> None:
        """Log a soft-auth attempt."""
        if succeeded:
            self.log(AuditEventBuilder.login_succeeded())
        else:
            self.log(AuditEventBuilder.login_failed())

    def log_journal_entry_saved(self, entry_id: str, created: bool) -> None:
        self.log(AuditEventBuilder.journal_entry_saved(entry_id, created))

    def log_analysis_attached(self, entity_type: str, entity_id: str, task: str) -> None:
        self.log(AuditEventBuilder.analysis_attached(entity_type, entity_id, task))

    def log_ai_request_completed(self, task: str, payload_chars: int) -> None:
        self.log(AuditEventBuilder.ai_request_completed(task, payload_chars))

    def log_stale_result_discarded(self, entity_key: str, task: str) -> None:
        """Log an AI result that lost the race to a newer request."""
        self.log(AuditEventBuilder.stale_result_discarded(entity_key, task))

    def log_input_rejected(self, field: str, message: str) -> None:
        self.log(AuditEventBuilder.input_rejected(field, message))

    def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
    ) -> None:
        """Log an error."""
        self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
        ))

    def log_external_service_error(
        self,
        service: str,
        task: str,
        error_message: str,
    ) -> None:
        """Log external service error."""
        self.log(AuditEventBuilder.external_service_error(
            service=service,
            task=task,
            error_message=error_message,
        ))
