"""
Storage Services Package

Abstract interfaces plus Google Sheets and in-memory implementations.
"""

from voiceledger.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    MembershipStorageInterface,
    NotFoundError,
    RecordStorageInterface,
    StorageConnectionError,
    StorageError,
)
from voiceledger.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryMembershipStorage,
    InMemoryRecordStorage,
)
from voiceledger.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsMembershipStorage,
    GoogleSheetsRecordStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "MembershipStorageInterface",
    "RecordStorageInterface",
    # Exceptions
    "DuplicateError",
    "NotFoundError",
    "StorageConnectionError",
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryMembershipStorage",
    "InMemoryRecordStorage",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsMembershipStorage",
    "GoogleSheetsRecordStorage",
]
