"""
Data Models Package

This package contains all Pydantic models used in Voice Ledger.
Everything handed to storage conforms to these schemas.
"""

from voiceledger.models.record import (
    NOT_AVAILABLE,
    CanonicalRecord,
    DocumentType,
    NormalizationOutcome,
    PaymentMethod,
    PaymentTerms,
    RecordKind,
    ValidationIssue,
    ValidityReport,
)
from voiceledger.models.authorization import (
    AuthorizationDecision,
    DenialReason,
    RecordScopeFilter,
    ResourcePermission,
    RoleBinding,
    RolePermissionSet,
    Scope,
    UserPermissions,
)
from voiceledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from voiceledger.models.transcription import (
    AudioUpload,
    Transcript,
    TranscriptSegment,
)

__all__ = [
    # Record models
    "NOT_AVAILABLE",
    "CanonicalRecord",
    "DocumentType",
    "NormalizationOutcome",
    "PaymentMethod",
    "PaymentTerms",
    "RecordKind",
    "ValidationIssue",
    "ValidityReport",
    # Authorization models
    "AuthorizationDecision",
    "DenialReason",
    "RecordScopeFilter",
    "ResourcePermission",
    "RoleBinding",
    "RolePermissionSet",
    "Scope",
    "UserPermissions",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
    # Transcription models
    "AudioUpload",
    "Transcript",
    "TranscriptSegment",
]
