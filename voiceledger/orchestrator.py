"""
Main Orchestrator for VoiceLedger

This module ties the components together and defines the end-to-end flows:
1. Voice capture (authorize -> audio -> transcript -> fields -> record -> save)
2. Structured record requests (create, replace, delete, list, stats)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Nothing is read or written before authorization succeeds
- Nothing invalid is persisted; the report goes back to the caller instead
- Owner and tenant come from the authenticated request, never the transcript
- Every step is audited

Transient collaborator failures that outlive their retries surface as
ProcessingFailedError. Nothing has been written when that happens.
"""

from datetime import datetime
from typing import Any, Mapping, Optional, Union
from uuid import UUID

import structlog
from pydantic import BaseModel, ValidationError

from voiceledger.agents import (
    ExtractionOrchestrator,
    ExtractionResult,
    ExtractionServiceError,
    GeminiExtractionClient,
)
from voiceledger.audit import AuditLogger, configure_logging, create_correlation_id
from voiceledger.authorization import (
    RECORDS_RESOURCE,
    AuthorizationError,
    MembershipGuard,
    PermissionDeniedError,
    PermissionResolver,
)
from voiceledger.config import get_settings
from voiceledger.models.authorization import AuthorizationDecision, Scope
from voiceledger.models.record import (
    CanonicalRecord,
    NormalizationOutcome,
    ValidationIssue,
    ValidityReport,
)
from voiceledger.models.transcription import Transcript
from voiceledger.normalization.engine import NormalizationEngine
from voiceledger.queries import LedgerStats, LedgerStatsExecutor
from voiceledger.services.storage import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsMembershipStorage,
    GoogleSheetsRecordStorage,
    InMemoryMembershipStorage,
    InMemoryRecordStorage,
    MembershipStorageInterface,
    NotFoundError,
    RecordStorageInterface,
    StorageError,
)
from voiceledger.services.transcription import (
    GeminiTranscriptionService,
    InvalidAudioError,
    TranscriptionService,
    TranscriptionServiceError,
    build_upload,
)


logger = structlog.get_logger(__name__)


class ProcessingFailedError(Exception):
    """A collaborator stayed unavailable; the request wrote nothing."""

    def __init__(self, message: str, service: str):
        self.service = service
        super().__init__(message)


class CaptureOutcome(BaseModel):
    """Result of one voice capture."""

    correlation_id: UUID
    transcript: Transcript
    extraction: ExtractionResult
    saved: bool = False


async def _require(
    resolver: PermissionResolver,
    audit_logger: AuditLogger,
    actor_id: Optional[str],
    tenant_id: Optional[str],
    action: str,
    correlation_id: UUID,
    scope: Union[Scope, str, None] = None,
) -> AuthorizationDecision:
    try:
        return await resolver.require(actor_id, tenant_id, RECORDS_RESOURCE, action, scope)
    except AuthorizationError as e:
        await audit_logger.log_authorization_denied(
            resource=RECORDS_RESOURCE,
            action=action,
            reason=e.code,
            message=e.message,
            tenant_id=tenant_id or "",
            actor_id=actor_id or "",
            correlation_id=correlation_id,
        )
        raise


class VoiceCaptureFlow:
    """
    Orchestrates the voice capture flow.

    Flow:
    1. Authorize records:create in the tenant
    2. Reject empty or unsupported audio
    3. Transcribe (retried on service errors)
    4. Extract, normalize, classify, validate
    5. Persist only when the record is valid
    """

    def __init__(
        self,
        resolver: PermissionResolver,
        transcription_service: TranscriptionService,
        extraction: ExtractionOrchestrator,
        record_storage: Optional[RecordStorageInterface] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._resolver = resolver
        self._transcription = transcription_service
        self._extraction = extraction
        self._record_storage = record_storage
        self._audit_logger = audit_logger or AuditLogger()

    async def process_audio(
        self,
        audio: bytes,
        filename: str,
        mime_type: Optional[str],
        actor_id: Optional[str],
        tenant_id: Optional[str],
        now: Optional[datetime] = None,
        correlation_id: Optional[UUID] = None,
    ) -> CaptureOutcome:
        """
        Turn one voice message into a saved ledger record.

        Raises:
            AuthorizationError: If the actor may not create records here
            InvalidAudioError: If the audio is empty or unsupported
            ProcessingFailedError: If transcription or extraction stays unavailable
        """
        correlation_id = correlation_id or create_correlation_id()
        now = now or datetime.now()

        await _require(
            self._resolver, self._audit_logger, actor_id, tenant_id, "create", correlation_id
        )

        try:
            upload = build_upload(filename, mime_type, audio)
        except InvalidAudioError as e:
            await self._audit_logger.log_audio_rejected(
                filename=filename or "",
                reason=str(e),
                tenant_id=tenant_id,
                actor_id=actor_id,
                correlation_id=correlation_id,
            )
            raise

        await self._audit_logger.log_audio_received(
            upload_id=upload.upload_id,
            filename=upload.original_filename,
            file_size=upload.file_size_bytes,
            tenant_id=tenant_id,
            actor_id=actor_id,
            correlation_id=correlation_id,
        )

        try:
            transcript = await self._transcription.transcribe(upload, audio)
        except TranscriptionServiceError as e:
            await self._audit_logger.log_external_service_error(
                service="transcription",
                error_message=str(e),
                correlation_id=correlation_id,
            )
            raise ProcessingFailedError(str(e), service="transcription") from e

        await self._audit_logger.log_transcription_completed(
            upload_id=upload.upload_id,
            transcript=transcript.text,
            correlation_id=correlation_id,
        )

        try:
            extraction = await self._extraction.extract(
                transcript.text,
                now,
                owner_id=actor_id,
                tenant_id=tenant_id,
                correlation_id=correlation_id,
            )
        except ExtractionServiceError as e:
            await self._audit_logger.log_external_service_error(
                service="extraction",
                error_message=str(e),
                correlation_id=correlation_id,
            )
            raise ProcessingFailedError(str(e), service="extraction") from e

        saved = False
        if extraction.record is None:
            await self._audit_logger.log_validation_failed(
                errors=extraction.report.errors,
                tenant_id=tenant_id,
                actor_id=actor_id,
                correlation_id=correlation_id,
            )
        elif self._record_storage:
            record = extraction.record
            try:
                await self._record_storage.insert(record)
            except StorageError as e:
                await self._audit_logger.log_external_service_error(
                    service="storage",
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
                raise ProcessingFailedError(str(e), service="storage") from e
            saved = True
            await self._audit_logger.log_record_saved(
                record_id=record.id,
                kind=record.kind.value,
                amount=f"{record.amount} {record.currency}",
                tenant_id=tenant_id,
                actor_id=actor_id,
                correlation_id=correlation_id,
            )

        return CaptureOutcome(
            correlation_id=correlation_id,
            transcript=transcript,
            extraction=extraction,
            saved=saved,
        )


class RecordService:
    """
    Structured record requests.

    All operations authorize first. Rows are always addressed through the
    caller's tenant; an own-scoped role may only touch its own rows.
    """

    def __init__(
        self,
        resolver: PermissionResolver,
        storage: RecordStorageInterface,
        engine: Optional[NormalizationEngine] = None,
        audit_logger: Optional[AuditLogger] = None,
        stats_executor: Optional[LedgerStatsExecutor] = None,
    ):
        self._resolver = resolver
        self._storage = storage
        self._engine = engine or NormalizationEngine()
        self._audit_logger = audit_logger or AuditLogger()
        self._stats = stats_executor or LedgerStatsExecutor()

    async def _existing(
        self,
        record_id: UUID,
        actor_id: str,
        tenant_id: str,
        decision: AuthorizationDecision,
    ) -> CanonicalRecord:
        record = await self._storage.get(record_id, tenant_id)
        if record is None:
            raise NotFoundError(f"Record not found: {record_id}")
        if decision.scope == Scope.OWN and record.owner_id != actor_id:
            raise PermissionDeniedError(
                "Permission denied: record belongs to another user",
                role_name=decision.role_name,
            )
        return record

    async def create(
        self,
        raw: Optional[Mapping[str, Any]],
        actor_id: Optional[str],
        tenant_id: Optional[str],
        transcript: Optional[str] = None,
        now: Optional[datetime] = None,
        correlation_id: Optional[UUID] = None,
    ) -> NormalizationOutcome:
        """Normalize and persist a record given as raw fields."""
        correlation_id = correlation_id or create_correlation_id()
        await _require(
            self._resolver, self._audit_logger, actor_id, tenant_id, "create", correlation_id
        )

        outcome = self._engine.process(
            raw, now or datetime.now(), owner_id=actor_id, tenant_id=tenant_id, transcript=transcript
        )
        if outcome.record is None:
            await self._audit_logger.log_validation_failed(
                errors=outcome.report.errors,
                tenant_id=tenant_id,
                actor_id=actor_id,
                correlation_id=correlation_id,
            )
            return outcome

        await self._storage.insert(outcome.record)
        await self._audit_logger.log_record_saved(
            record_id=outcome.record.id,
            kind=outcome.kind.value,
            amount=f"{outcome.record.amount} {outcome.record.currency}",
            tenant_id=tenant_id,
            actor_id=actor_id,
            correlation_id=correlation_id,
        )
        return outcome

    async def replace(
        self,
        record_id: UUID,
        raw: Optional[Mapping[str, Any]],
        actor_id: Optional[str],
        tenant_id: Optional[str],
        now: Optional[datetime] = None,
        correlation_id: Optional[UUID] = None,
    ) -> NormalizationOutcome:
        """
        Full replace of an existing record.

        The replacement goes through the same normalization as a new
        record and keeps the original id and owner.

        Raises:
            NotFoundError: If the record is not in the tenant
            PermissionDeniedError: If an own-scoped actor targets another user's row
        """
        correlation_id = correlation_id or create_correlation_id()
        decision = await _require(
            self._resolver, self._audit_logger, actor_id, tenant_id, "update", correlation_id
        )
        existing = await self._existing(record_id, actor_id, tenant_id, decision)

        outcome = self._engine.process(
            raw, now or datetime.now(), owner_id=existing.owner_id, tenant_id=tenant_id
        )
        if outcome.record is not None and outcome.kind != existing.kind:
            issues = list(outcome.report.issues) + [ValidationIssue(
                field="kind",
                issue_type="invalid_value",
                message=f"A {existing.kind.value} record cannot be replaced by a {outcome.kind.value} record",
                severity="error",
            )]
            outcome = outcome.model_copy(
                update={"report": ValidityReport.from_issues(issues), "record": None}
            )

        if outcome.record is None:
            await self._audit_logger.log_validation_failed(
                errors=outcome.report.errors,
                tenant_id=tenant_id,
                actor_id=actor_id,
                correlation_id=correlation_id,
            )
            return outcome

        replacement = existing.with_replacement(outcome.record)
        await self._storage.update(record_id, tenant_id, replacement)
        await self._audit_logger.log_record_updated(
            record_id=record_id,
            tenant_id=tenant_id,
            actor_id=actor_id,
            correlation_id=correlation_id,
        )
        return outcome.model_copy(update={"record": replacement})

    async def delete(
        self,
        record_id: UUID,
        actor_id: Optional[str],
        tenant_id: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        correlation_id = correlation_id or create_correlation_id()
        decision = await _require(
            self._resolver, self._audit_logger, actor_id, tenant_id, "delete", correlation_id
        )
        await self._existing(record_id, actor_id, tenant_id, decision)

        await self._storage.delete(record_id, tenant_id)
        await self._audit_logger.log_record_deleted(
            record_id=record_id,
            tenant_id=tenant_id,
            actor_id=actor_id,
            correlation_id=correlation_id,
        )
        return True

    async def list(
        self,
        actor_id: Optional[str],
        tenant_id: Optional[str],
        scope: Union[Scope, str, None] = None,
        correlation_id: Optional[UUID] = None,
    ) -> list[CanonicalRecord]:
        """Records the actor may read, filtered by the decision's scope."""
        correlation_id = correlation_id or create_correlation_id()
        decision = await _require(
            self._resolver, self._audit_logger, actor_id, tenant_id, "read", correlation_id, scope
        )
        return await self._storage.list_by_tenant(
            tenant_id, decision.to_filter(actor_id, tenant_id)
        )

    async def stats(
        self,
        actor_id: Optional[str],
        tenant_id: Optional[str],
        scope: Union[Scope, str, None] = None,
    ) -> LedgerStats:
        return self._stats.summarize(await self.list(actor_id, tenant_id, scope))


def create_app_components(
    use_storage: bool = True,
) -> tuple[VoiceCaptureFlow, RecordService, Optional[GoogleSheetsClient]]:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to initialize Google Sheets storage.
                    Set to False for local runs with in-memory storage.

    Returns:
        (voice_capture_flow, record_service, sheets_client)
    """
    settings = get_settings()
    configure_logging(settings.app.log_level)

    sheets_client = None
    record_storage: RecordStorageInterface = InMemoryRecordStorage()
    membership_storage: MembershipStorageInterface = InMemoryMembershipStorage()
    audit_logger = AuditLogger()

    if use_storage:
        try:
            sheets_client = GoogleSheetsClient()
        except ValidationError as e:
            logger.warning("storage_not_configured", error=str(e))
        else:
            record_storage = GoogleSheetsRecordStorage(sheets_client)
            membership_storage = GoogleSheetsMembershipStorage(sheets_client)
            audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))

    policy = settings.policy
    engine = NormalizationEngine(policy)
    resolver = PermissionResolver(MembershipGuard(membership_storage))

    capture_flow = VoiceCaptureFlow(
        resolver=resolver,
        transcription_service=GeminiTranscriptionService(policy=policy),
        extraction=ExtractionOrchestrator(
            GeminiExtractionClient(),
            engine=engine,
            policy=policy,
            audit_logger=audit_logger,
        ),
        record_storage=record_storage,
        audit_logger=audit_logger,
    )
    record_service = RecordService(
        resolver=resolver,
        storage=record_storage,
        engine=engine,
        audit_logger=audit_logger,
    )

    return capture_flow, record_service, sheets_client
