"""Shared fixtures: fixed clock, policies, in-memory collaborators."""

from datetime import datetime

import pytest

from voiceledger.authorization import MembershipGuard, PermissionResolver
from voiceledger.config import KeywordMatching, ProcessingPolicy
from voiceledger.normalization.engine import NormalizationEngine
from voiceledger.services.storage import (
    InMemoryAuditStorage,
    InMemoryMembershipStorage,
    InMemoryRecordStorage,
)


TENANT = "acme"
OTHER_TENANT = "globex"

ADMIN_PERMISSIONS = {
    "records": {"create": True, "read": True, "update": True, "delete": True, "scope": "company"},
    "users": {"read": True, "assign_roles": True, "scope": "company"},
}
EMPLOYEE_PERMISSIONS = {
    "records": {"create": True, "read": True, "update": True, "delete": True, "scope": "own"},
}
VIEWER_PERMISSIONS = {
    "records": {"read": True, "scope": "company"},
}
SUPER_ADMIN_PERMISSIONS = {
    "records": {"create": True, "read": True, "update": True, "delete": True, "scope": "global"},
    "companies": {"create": True},
    "users": {"assign_roles": True, "scope": "global"},
}


@pytest.fixture
def now() -> datetime:
    return datetime(2024, 7, 10, 9, 30, 15, 123456)


@pytest.fixture
def policy() -> ProcessingPolicy:
    return ProcessingPolicy(retry_wait_multiplier=0)


@pytest.fixture
def substring_policy() -> ProcessingPolicy:
    return ProcessingPolicy(keyword_matching=KeywordMatching.SUBSTRING, retry_wait_multiplier=0)


@pytest.fixture
def engine(policy) -> NormalizationEngine:
    return NormalizationEngine(policy)


@pytest.fixture
def memberships() -> InMemoryMembershipStorage:
    storage = InMemoryMembershipStorage()
    storage.add_member("alice", TENANT, "admin_azienda", ADMIN_PERMISSIONS)
    storage.add_member("bob", TENANT, "dipendente", EMPLOYEE_PERMISSIONS)
    storage.add_member("carol", TENANT, "dipendente", EMPLOYEE_PERMISSIONS)
    storage.add_member("victor", TENANT, "viewer", VIEWER_PERMISSIONS)
    storage.add_member("root", TENANT, "super_admin", SUPER_ADMIN_PERMISSIONS)
    storage.add_member("gina", OTHER_TENANT, "admin_azienda", ADMIN_PERMISSIONS)
    return storage


@pytest.fixture
def resolver(memberships) -> PermissionResolver:
    return PermissionResolver(MembershipGuard(memberships))


@pytest.fixture
def record_storage() -> InMemoryRecordStorage:
    return InMemoryRecordStorage()


@pytest.fixture
def audit_storage() -> InMemoryAuditStorage:
    return InMemoryAuditStorage()
