"""
Abstract Storage Interface

DESIGN DECISION: Storage is reached only through these interfaces and
the handle is injected into each component at construction. This allows:
1. Google Sheets in production, in-memory storage in tests
2. Tenant isolation enforced in one place (the implementations)
3. Business logic decoupled from the storage backend

Every record operation is keyed by tenant. Listing always takes the row
filter derived from an authorization decision.
"""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from voiceledger.models.audit import AuditEvent
from voiceledger.models.authorization import RecordScopeFilter, RoleBinding
from voiceledger.models.record import CanonicalRecord


class RecordStorageInterface(ABC):
    """
    Abstract interface for ledger record storage.

    Any storage implementation (Google Sheets, PostgreSQL, etc.)
    must implement these methods.
    """

    @abstractmethod
    async def insert(self, record: CanonicalRecord) -> bool:
        """
        Persist a new canonical record.

        Raises:
            DuplicateError: If a record with the same id exists
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def update(
        self,
        record_id: UUID,
        tenant_id: str,
        record: CanonicalRecord,
    ) -> bool:
        """
        Replace a record wholesale.

        Raises:
            NotFoundError: If no record with this id exists in the tenant
        """
        pass

    @abstractmethod
    async def delete(self, record_id: UUID, tenant_id: str) -> bool:
        """
        Delete a record.

        Raises:
            NotFoundError: If no record with this id exists in the tenant
        """
        pass

    @abstractmethod
    async def get(self, record_id: UUID, tenant_id: str) -> Optional[CanonicalRecord]:
        """Return the record if it exists in the tenant, None otherwise."""
        pass

    @abstractmethod
    async def list_by_tenant(
        self,
        tenant_id: str,
        scope_filter: RecordScopeFilter,
    ) -> list[CanonicalRecord]:
        """
        List records visible under a row filter.

        Args:
            tenant_id: Tenant the request is made in
            scope_filter: Filter from AuthorizationDecision.to_filter

        Returns:
            Matching records, most recent occurrence first
        """
        pass


class MembershipStorageInterface(ABC):
    """Read access to tenant memberships and the roles they grant."""

    @abstractmethod
    async def get_role_binding(
        self,
        actor_id: str,
        tenant_id: str,
    ) -> Optional[RoleBinding]:
        """Return the actor's binding in the tenant, None if not a member."""
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """All events of one request, in chronological order."""
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """The most recent events, newest first."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class StorageConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
