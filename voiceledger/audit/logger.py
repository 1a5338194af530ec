"""
Audit Logger

DESIGN DECISION: Every significant action in a capture or record request
is logged, tagged with tenant and actor. This provides:
1. Traceability of who wrote which ledger row
2. A record of denied requests
3. Debugging of extraction retries and fallbacks

The audit logger:
- Always logs locally through structlog
- Persists to audit storage when one is configured
- Never fails the request because the audit write failed
- Supports correlation IDs to trace related events
"""

import logging
from typing import Optional
from uuid import UUID, uuid4

import structlog

from voiceledger.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from voiceledger.services.storage import AuditStorageInterface


def configure_logging(level: str = "INFO") -> None:
    """Configure structlog for local JSON logging."""
    logging.basicConfig(format="%(message)s", level=getattr(logging, level.upper(), logging.INFO))
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
    2. Audit storage (for persistence), when configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger(__name__)

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Returns True if the storage write succeeded (or no storage is configured).
        """
        log_dict = event.to_log_dict()

        if event.severity == AuditSeverity.ERROR:
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_audio_received(
        self,
        upload_id: UUID,
        filename: str,
        file_size: int,
        tenant_id: str,
        actor_id: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.audio_received(
            upload_id=upload_id,
            filename=filename,
            file_size=file_size,
            tenant_id=tenant_id,
            actor_id=actor_id,
            correlation_id=correlation_id,
        ))

    async def log_audio_rejected(
        self,
        filename: str,
        reason: str,
        tenant_id: str,
        actor_id: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.audio_rejected(
            filename=filename,
            reason=reason,
            tenant_id=tenant_id,
            actor_id=actor_id,
            correlation_id=correlation_id,
        ))

    async def log_transcription_completed(
        self,
        upload_id: UUID,
        transcript: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.transcription_completed(
            upload_id=upload_id,
            transcript=transcript,
            correlation_id=correlation_id,
        ))

    async def log_extraction_attempt_failed(
        self,
        attempt: int,
        template: str,
        error_message: str,
        correlation_id: Optional[UUID],
    ) -> None:
        await self.log(AuditEventBuilder.extraction_attempt_failed(
            attempt=attempt,
            template=template,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_extraction_fallback_used(
        self,
        attempts: int,
        kind: str,
        correlation_id: Optional[UUID],
    ) -> None:
        await self.log(AuditEventBuilder.extraction_fallback_used(
            attempts=attempts,
            kind=kind,
            correlation_id=correlation_id,
        ))

    async def log_extraction_completed(
        self,
        kind: str,
        attempts: int,
        valid: bool,
        correlation_id: Optional[UUID],
    ) -> None:
        await self.log(AuditEventBuilder.extraction_completed(
            kind=kind,
            attempts=attempts,
            valid=valid,
            correlation_id=correlation_id,
        ))

    async def log_validation_failed(
        self,
        errors: list[str],
        tenant_id: str,
        actor_id: str,
        correlation_id: Optional[UUID],
    ) -> None:
        await self.log(AuditEventBuilder.validation_failed(
            errors=errors,
            tenant_id=tenant_id,
            actor_id=actor_id,
            correlation_id=correlation_id,
        ))

    async def log_record_saved(
        self,
        record_id: UUID,
        kind: str,
        amount: str,
        tenant_id: str,
        actor_id: str,
        correlation_id: Optional[UUID],
    ) -> None:
        await self.log(AuditEventBuilder.record_saved(
            record_id=record_id,
            kind=kind,
            amount=amount,
            tenant_id=tenant_id,
            actor_id=actor_id,
            correlation_id=correlation_id,
        ))

    async def log_record_updated(
        self,
        record_id: UUID,
        tenant_id: str,
        actor_id: str,
        correlation_id: Optional[UUID],
    ) -> None:
        await self.log(AuditEventBuilder.record_updated(
            record_id=record_id,
            tenant_id=tenant_id,
            actor_id=actor_id,
            correlation_id=correlation_id,
        ))

    async def log_record_deleted(
        self,
        record_id: UUID,
        tenant_id: str,
        actor_id: str,
        correlation_id: Optional[UUID],
    ) -> None:
        await self.log(AuditEventBuilder.record_deleted(
            record_id=record_id,
            tenant_id=tenant_id,
            actor_id=actor_id,
            correlation_id=correlation_id,
        ))

    async def log_authorization_denied(
        self,
        resource: str,
        action: str,
        reason: str,
        message: str,
        tenant_id: str,
        actor_id: str,
        correlation_id: Optional[UUID],
    ) -> None:
        await self.log(AuditEventBuilder.authorization_denied(
            resource=resource,
            action=action,
            reason=reason,
            message=message,
            tenant_id=tenant_id,
            actor_id=actor_id,
            correlation_id=correlation_id,
        ))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))

    async def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: Optional[UUID],
    ) -> None:
        await self.log(AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a capture or record request and pass it
    through every subsequent operation.
    """
    return uuid4()
