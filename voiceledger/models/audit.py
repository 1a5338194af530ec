"""
Audit Models for Voice Ledger

Every significant action in the system is logged for audit purposes:
what was heard, what the extractor returned, which repairs and fallbacks
were applied, what was persisted and who was refused.

Events are append-only: storage backends only ever add rows.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Every step of the capture pipeline has its own event type.
    """
    # Audio intake
    AUDIO_RECEIVED = "audio_received"
    AUDIO_REJECTED = "audio_rejected"
    TRANSCRIPTION_COMPLETED = "transcription_completed"

    # Extraction
    EXTRACTION_ATTEMPT_FAILED = "extraction_attempt_failed"
    EXTRACTION_FALLBACK_USED = "extraction_fallback_used"
    EXTRACTION_COMPLETED = "extraction_completed"

    # Validation
    VALIDATION_FAILED = "validation_failed"

    # Persistence
    RECORD_SAVED = "record_saved"
    RECORD_UPDATED = "record_updated"
    RECORD_DELETED = "record_deleted"

    # Access control
    AUTHORIZATION_DENIED = "authorization_denied"

    # System events
    SYSTEM_ERROR = "system_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """How loudly an event is logged locally."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    One entry of the audit trail, tagged with the tenant and actor of
    the request that produced it.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
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

    # Subject (record, audio, extraction, authorization)
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'record', 'audio', 'extraction')"
    )
    entity_id: Optional[UUID] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Who and where
    tenant_id: Optional[str] = None
    actor_id: Optional[str] = None

    # Ties together the events of one capture or request
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., all events of one capture)"
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

    # Failure details
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    # User action tracking
    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Flat dict passed to structlog as keyword arguments.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "tenant_id": self.tenant_id,
            "actor_id": self.actor_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Row in AUDIT_COLUMNS order for the audit worksheet.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, entity_type, entity_id,
         tenant_id, actor_id, correlation_id, description, details_json,
         error_code, error_message, is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            str(self.entity_id) if self.entity_id else "",
            self.tenant_id or "",
            self.actor_id or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_code or "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    One constructor per AuditEventType used by the pipeline.

    Usage:
        event = AuditEventBuilder.audio_received(upload_id, filename, ...)
        event = AuditEventBuilder.record_deleted(record_id, tenant_id, actor_id, correlation_id)
    """

    @staticmethod
    def audio_received(
        upload_id: UUID,
        filename: str,
        file_size: int,
        tenant_id: str,
        actor_id: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.AUDIO_RECEIVED,
            entity_type="audio",
            entity_id=upload_id,
            tenant_id=tenant_id,
            actor_id=actor_id,
            correlation_id=correlation_id,
            description=f"Audio received: {filename}",
            details={
                "filename": filename,
                "file_size_bytes": file_size,
            },
            is_user_action=True,
        )

    @staticmethod
    def audio_rejected(
        filename: str,
        reason: str,
        tenant_id: str,
        actor_id: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.AUDIO_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="audio",
            tenant_id=tenant_id,
            actor_id=actor_id,
            correlation_id=correlation_id,
            description=f"Audio rejected: {filename}",
            error_message=reason,
        )

    @staticmethod
    def transcription_completed(
        upload_id: UUID,
        transcript: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSCRIPTION_COMPLETED,
            entity_type="audio",
            entity_id=upload_id,
            correlation_id=correlation_id,
            description=f"Transcribed {len(transcript)} characters",
            details={
                "transcript": transcript[:500],
            },
        )

    @staticmethod
    def extraction_attempt_failed(
        attempt: int,
        template: str,
        error_message: str,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTRACTION_ATTEMPT_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="extraction",
            correlation_id=correlation_id,
            description=f"Extraction attempt {attempt} ({template}) returned unparseable output",
            error_message=error_message,
            details={
                "attempt": attempt,
                "template": template,
            },
        )

    @staticmethod
    def extraction_fallback_used(
        attempts: int,
        kind: str,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTRACTION_FALLBACK_USED,
            severity=AuditSeverity.WARNING,
            entity_type="extraction",
            correlation_id=correlation_id,
            description=f"Extraction gave up after {attempts} attempts; minimal {kind} record used",
            details={
                "attempts": attempts,
                "kind": kind,
            },
        )

    @staticmethod
    def extraction_completed(
        kind: str,
        attempts: int,
        valid: bool,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTRACTION_COMPLETED,
            entity_type="extraction",
            correlation_id=correlation_id,
            description=f"Extracted {kind} record in {attempts} attempt(s)",
            details={
                "kind": kind,
                "attempts": attempts,
                "valid": valid,
            },
        )

    @staticmethod
    def validation_failed(
        errors: list[str],
        tenant_id: str,
        actor_id: str,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="extraction",
            tenant_id=tenant_id,
            actor_id=actor_id,
            correlation_id=correlation_id,
            description=f"Validation failed with {len(errors)} error(s)",
            details={
                "errors": errors,
            },
        )

    @staticmethod
    def record_saved(
        record_id: UUID,
        kind: str,
        amount: str,
        tenant_id: str,
        actor_id: str,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_SAVED,
            entity_type="record",
            entity_id=record_id,
            tenant_id=tenant_id,
            actor_id=actor_id,
            correlation_id=correlation_id,
            description=f"{kind.capitalize()} saved: {amount}",
            details={
                "kind": kind,
                "amount": amount,
            },
        )

    @staticmethod
    def record_updated(
        record_id: UUID,
        tenant_id: str,
        actor_id: str,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_UPDATED,
            entity_type="record",
            entity_id=record_id,
            tenant_id=tenant_id,
            actor_id=actor_id,
            correlation_id=correlation_id,
            description="Record replaced",
            is_user_action=True,
        )

    @staticmethod
    def record_deleted(
        record_id: UUID,
        tenant_id: str,
        actor_id: str,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_DELETED,
            entity_type="record",
            entity_id=record_id,
            tenant_id=tenant_id,
            actor_id=actor_id,
            correlation_id=correlation_id,
            description="Record deleted",
            is_user_action=True,
        )

    @staticmethod
    def authorization_denied(
        resource: str,
        action: str,
        reason: str,
        message: str,
        tenant_id: str,
        actor_id: str,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.AUTHORIZATION_DENIED,
            severity=AuditSeverity.WARNING,
            entity_type="authorization",
            tenant_id=tenant_id,
            actor_id=actor_id,
            correlation_id=correlation_id,
            description=f"Denied {action} on {resource}",
            error_code=reason,
            error_message=message,
            details={
                "resource": resource,
                "action": action,
            },
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: Optional[UUID]
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={
                "service": service,
            },
            correlation_id=correlation_id,
        )
