"""
Audit Models for Tarushiru

Every significant action in the app is logged for audit purposes.
This provides:
1. Traceability of every change to the persisted document
2. Debugging information when the AI service or storage misbehaves
3. A record of recovered (corrupt) documents, so nothing is lost silently

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
Event details never contain journal text or passwords, only ids and counts.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditEventType(str, Enum):
    """
    Types of events we audit.
    """
    # Document lifecycle
    DOCUMENT_LOADED = "document_loaded"
    DOCUMENT_PARSE_FAILED = "document_parse_failed"
    DOCUMENT_ITEM_REPAIRED = "document_item_repaired"
    DOCUMENT_SAVED = "document_saved"
    DOCUMENT_RESET = "document_reset"

    # Backup
    BACKUP_EXPORTED = "backup_exported"
    BACKUP_IMPORTED = "backup_imported"
    BACKUP_REJECTED = "backup_rejected"

    # Soft authentication
    USER_REGISTERED = "user_registered"
    LOGIN_SUCCEEDED = "login_succeeded"
    LOGIN_FAILED = "login_failed"

    # Journal
    JOURNAL_ENTRY_SAVED = "journal_entry_saved"
    ANALYSIS_ATTACHED = "analysis_attached"

    # AI service
    AI_REQUEST_COMPLETED = "ai_request_completed"
    STALE_RESULT_DISCARDED = "stale_result_discarded"

    # Input
    INPUT_REJECTED = "input_rejected"

    # System events
    SYSTEM_ERROR = "system_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'document', 'journal_entry', 'profile')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Event details
    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_message: Optional[str] = None

    # User action tracking
    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging
        and for the JSON-lines audit file.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.document_parse_failed(error="...")
        event = AuditEventBuilder.journal_entry_saved(entry_id, created=True)
    """

    @staticmethod
    def document_loaded(source: str, journal_count: int, goal_count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DOCUMENT_LOADED,
            entity_type="document",
            description=f"Document loaded from {source}",
            details={
                "source": source,
                "journal_count": journal_count,
                "goal_count": goal_count,
            },
        )

    @staticmethod
    def document_parse_failed(error: str, stage: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DOCUMENT_PARSE_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="document",
            description=f"Stored document unreadable at {stage} stage, using defaults",
            error_message=error,
            details={
                "stage": stage,
                "persisted_copy_kept": True,
            },
        )

    @staticmethod
    def document_item_repaired(
        section: str,
        index: Optional[int],
        fields: list[str],
        dropped: bool,
        error: str,
    ) -> AuditEvent:
        where = section if index is None else f"{section}[{index}]"
        action = "dropped" if dropped else "repaired by resetting " + ", ".join(fields)
        return AuditEvent(
            event_type=AuditEventType.DOCUMENT_ITEM_REPAIRED,
            severity=AuditSeverity.WARNING,
            entity_type="document",
            entity_id=where,
            description=f"Stored item {where} {action}",
            error_message=error,
            details={
                "section": section,
                "index": index,
                "fields": fields,
                "dropped": dropped,
            },
        )

    @staticmethod
    def document_saved(size_bytes: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DOCUMENT_SAVED,
            severity=AuditSeverity.DEBUG,
            entity_type="document",
            description="Document written to storage",
            details={"size_bytes": size_bytes},
        )

    @staticmethod
    def document_reset() -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DOCUMENT_RESET,
            severity=AuditSeverity.WARNING,
            entity_type="document",
            description="All data deleted by user",
            is_user_action=True,
        )

    @staticmethod
    def backup_exported(filename: str, size_bytes: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BACKUP_EXPORTED,
            entity_type="document",
            description=f"Backup exported: {filename}",
            details={"filename": filename, "size_bytes": size_bytes},
            is_user_action=True,
        )

    @staticmethod
    def backup_imported(size_bytes: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BACKUP_IMPORTED,
            severity=AuditSeverity.WARNING,
            entity_type="document",
            description="Backup imported, stored document overwritten",
            details={"size_bytes": size_bytes},
            is_user_action=True,
        )

    @staticmethod
    def backup_rejected(reason: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BACKUP_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="document",
            description="Backup file rejected",
            error_message=reason,
            is_user_action=True,
        )

    @staticmethod
    def user_registered(name: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.USER_REGISTERED,
            entity_type="profile",
            description=f"Profile created for {name}",
            is_user_action=True,
        )

    @staticmethod
    def login_succeeded() -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LOGIN_SUCCEEDED,
            entity_type="profile",
            description="User signed in",
            is_user_action=True,
        )

    @staticmethod
    def login_failed() -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LOGIN_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="profile",
            description="Sign-in rejected: password mismatch",
            is_user_action=True,
        )

    @staticmethod
    def journal_entry_saved(entry_id: str, created: bool) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.JOURNAL_ENTRY_SAVED,
            entity_type="journal_entry",
            entity_id=entry_id,
            description="Journal entry created" if created else "Journal entry edited",
            details={"created": created},
            is_user_action=True,
        )

    @staticmethod
    def analysis_attached(entity_type: str, entity_id: str, task: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ANALYSIS_ATTACHED,
            entity_type=entity_type,
            entity_id=entity_id,
            description=f"AI result for {task} attached",
            details={"task": task},
        )

    @staticmethod
    def ai_request_completed(task: str, payload_chars: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.AI_REQUEST_COMPLETED,
            severity=AuditSeverity.DEBUG,
            entity_type="ai_request",
            description=f"AI request completed: {task}",
            details={"task": task, "payload_chars": payload_chars},
        )

    @staticmethod
    def stale_result_discarded(entity_key: str, task: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STALE_RESULT_DISCARDED,
            severity=AuditSeverity.WARNING,
            entity_type="ai_request",
            entity_id=entity_key,
            description=f"Discarded stale AI result for {task}",
            details={"task": task},
        )

    @staticmethod
    def input_rejected(field: str, message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INPUT_REJECTED,
            severity=AuditSeverity.INFO,
            entity_type="input",
            description=f"Input rejected for {field}",
            error_message=message,
            details={"field": field},
            is_user_action=True,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
        )

    @staticmethod
    def external_service_error(
        service: str,
        task: str,
        error_message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={
                "service": service,
                "task": task,
            },
        )
