"""
In-memory storage for tests and local runs.

Same contracts as the Google Sheets implementations, including tenant
checks and NotFoundError on missing rows.
"""

from typing import Optional
from uuid import UUID

from voiceledger.models.audit import AuditEvent
from voiceledger.models.authorization import RecordScopeFilter, RoleBinding, RolePermissionSet
from voiceledger.models.record import CanonicalRecord
from voiceledger.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    MembershipStorageInterface,
    NotFoundError,
    RecordStorageInterface,
)


class InMemoryRecordStorage(RecordStorageInterface):

    def __init__(self):
        self._records: dict[UUID, CanonicalRecord] = {}

    @property
    def records(self) -> dict[UUID, CanonicalRecord]:
        return dict(self._records)

    def _owned(self, record_id: UUID, tenant_id: str) -> CanonicalRecord:
        record = self._records.get(record_id)
        if record is None or record.tenant_id != tenant_id:
            raise NotFoundError(f"Record not found: {record_id}")
        return record

    async def insert(self, record: CanonicalRecord) -> bool:
        if record.id in self._records:
            raise DuplicateError(f"Record already exists: {record.id}")
        self._records[record.id] = record
        return True

    async def update(self, record_id: UUID, tenant_id: str, record: CanonicalRecord) -> bool:
        self._owned(record_id, tenant_id)
        self._records[record_id] = record
        return True

    async def delete(self, record_id: UUID, tenant_id: str) -> bool:
        self._owned(record_id, tenant_id)
        del self._records[record_id]
        return True

    async def get(self, record_id: UUID, tenant_id: str) -> Optional[CanonicalRecord]:
        record = self._records.get(record_id)
        if record is None or record.tenant_id != tenant_id:
            return None
        return record

    async def list_by_tenant(
        self,
        tenant_id: str,
        scope_filter: RecordScopeFilter,
    ) -> list[CanonicalRecord]:
        records = [r for r in self._records.values() if scope_filter.matches(r)]
        records.sort(key=lambda r: (r.occurred_on, r.recorded_at), reverse=True)
        return records


class InMemoryMembershipStorage(MembershipStorageInterface):
    """Bindings keyed by (actor_id, tenant_id)."""

    def __init__(self):
        self._bindings: dict[tuple[str, str], RoleBinding] = {}

    def add_member(
        self,
        actor_id: str,
        tenant_id: str,
        role_name: str,
        permissions: dict,
    ) -> RoleBinding:
        """Bind an actor to a role given in the stored JSON shape."""
        binding = RoleBinding(
            actor_id=actor_id,
            tenant_id=tenant_id,
            role=RolePermissionSet.from_json(role_name, permissions),
        )
        self._bindings[(actor_id, tenant_id)] = binding
        return binding

    async def get_role_binding(self, actor_id: str, tenant_id: str) -> Optional[RoleBinding]:
        return self._bindings.get((actor_id, tenant_id))


class InMemoryAuditStorage(AuditStorageInterface):

    def __init__(self):
        self.events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    async def get_events_by_correlation_id(self, correlation_id: UUID) -> list[AuditEvent]:
        events = [e for e in self.events if e.correlation_id == correlation_id]
        return sorted(events, key=lambda e: e.timestamp)

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return sorted(self.events, key=lambda e: e.timestamp, reverse=True)[:limit]
