"""Services package."""

from voiceledger.services.storage import (
    AuditStorageInterface,
    DuplicateError,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsMembershipStorage,
    GoogleSheetsRecordStorage,
    InMemoryAuditStorage,
    InMemoryMembershipStorage,
    InMemoryRecordStorage,
    MembershipStorageInterface,
    NotFoundError,
    RecordStorageInterface,
    StorageConnectionError,
    StorageError,
)
from voiceledger.services.transcription import (
    GeminiTranscriptionService,
    InvalidAudioError,
    TranscriptionError,
    TranscriptionService,
    TranscriptionServiceError,
    build_upload,
)

__all__ = [
    # Storage services
    "AuditStorageInterface",
    "DuplicateError",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsMembershipStorage",
    "GoogleSheetsRecordStorage",
    "InMemoryAuditStorage",
    "InMemoryMembershipStorage",
    "InMemoryRecordStorage",
    "MembershipStorageInterface",
    "NotFoundError",
    "RecordStorageInterface",
    "StorageConnectionError",
    "StorageError",
    # Transcription services
    "GeminiTranscriptionService",
    "InvalidAudioError",
    "TranscriptionError",
    "TranscriptionService",
    "TranscriptionServiceError",
    "build_upload",
]
