"""Tests for membership and role-scoped permission checks."""

import pytest

from voiceledger.authorization import (
    MembershipGuard,
    NotATenantMemberError,
    PermissionDeniedError,
    UnauthenticatedError,
    authorize,
)
from voiceledger.models import DenialReason, RoleBinding, RolePermissionSet, Scope


class TestMembershipGuard:
    """Tests for tenant membership lookups."""

    @pytest.mark.asyncio
    async def test_member(self, memberships):
        guard = MembershipGuard(memberships)
        binding = await guard.ensure_member("bob", "acme")
        assert binding.role.role_name == "dipendente"
        assert await guard.is_member("bob", "acme")

    @pytest.mark.asyncio
    async def test_member_of_other_tenant_only(self, memberships):
        guard = MembershipGuard(memberships)
        assert not await guard.is_member("gina", "acme")
        with pytest.raises(NotATenantMemberError):
            await guard.ensure_member("gina", "acme")

    @pytest.mark.asyncio
    async def test_blank_ids(self, memberships):
        guard = MembershipGuard(memberships)
        assert await guard.get_binding("", "acme") is None
        assert await guard.get_binding("bob", "") is None


class TestDecide:
    """Tests for the pure decision on a resolved binding."""

    def binding(self, permissions):
        return RoleBinding(
            actor_id="x",
            tenant_id="acme",
            role=RolePermissionSet.from_json("role", permissions),
        )

    def test_company_role_covers_own_request(self, resolver):
        decision = resolver.decide(
            self.binding({"records": {"read": True, "scope": "company"}}), "records", "read", "own"
        )
        assert decision.allowed
        assert decision.scope == Scope.OWN

    def test_defaults_to_role_scope(self, resolver):
        decision = resolver.decide(
            self.binding({"records": {"read": True, "scope": "own"}}), "records", "read"
        )
        assert decision.scope == Scope.OWN

    def test_role_without_scope_defaults_to_company(self, resolver):
        decision = resolver.decide(self.binding({"records": {"read": True}}), "records", "read")
        assert decision.allowed
        assert decision.scope == Scope.COMPANY

    def test_missing_action(self, resolver):
        decision = resolver.decide(
            self.binding({"records": {"read": True, "scope": "company"}}), "records", "delete"
        )
        assert not decision.allowed
        assert decision.reason == DenialReason.INSUFFICIENT_PERMISSION

    def test_missing_resource(self, resolver):
        decision = resolver.decide(self.binding({}), "records", "read")
        assert decision.reason == DenialReason.INSUFFICIENT_PERMISSION

    @pytest.mark.parametrize("scope", ["none", "everything"])
    def test_unusable_scope_requests(self, resolver, scope):
        decision = resolver.decide(
            self.binding({"records": {"read": True, "scope": "global"}}), "records", "read", scope
        )
        assert not decision.allowed
        assert decision.scope == Scope.NONE


class TestAuthorize:
    """Tests for PermissionResolver.authorize."""

    @pytest.mark.asyncio
    async def test_unauthenticated(self, resolver):
        decision = await resolver.authorize(None, "acme", "records", "read")
        assert decision.reason == DenialReason.UNAUTHENTICATED

    @pytest.mark.asyncio
    async def test_not_a_member(self, resolver):
        decision = await resolver.authorize("gina", "acme", "records", "read")
        assert decision.reason == DenialReason.NOT_A_MEMBER

    @pytest.mark.asyncio
    async def test_own_scoped_employee_cannot_request_company(self, resolver):
        decision = await resolver.authorize("bob", "acme", "records", "read", Scope.COMPANY)
        assert not decision.allowed
        assert decision.reason == DenialReason.INSUFFICIENT_PERMISSION
        assert decision.role_name == "dipendente"

    @pytest.mark.asyncio
    async def test_employee_gets_own_scope(self, resolver):
        decision = await resolver.authorize("bob", "acme", "records", "create")
        assert decision.allowed
        assert decision.scope == Scope.OWN
        assert decision.to_filter("bob", "acme").owner_id == "bob"

    @pytest.mark.asyncio
    async def test_global_covers_company(self, resolver):
        decision = await resolver.authorize("root", "acme", "records", "read", "company")
        assert decision.allowed
        assert decision.scope == Scope.COMPANY

    @pytest.mark.asyncio
    async def test_viewer_cannot_create(self, resolver):
        decision = await resolver.authorize("victor", "acme", "records", "create")
        assert decision.reason == DenialReason.INSUFFICIENT_PERMISSION

    @pytest.mark.asyncio
    async def test_module_shortcut(self, resolver):
        decision = await authorize(resolver, "alice", "acme", "records", "delete")
        assert decision.allowed
        assert decision.scope == Scope.COMPANY


class TestRequire:
    """Tests for the raising variants."""

    @pytest.mark.asyncio
    async def test_unauthenticated_is_401(self, resolver):
        with pytest.raises(UnauthenticatedError) as exc_info:
            await resolver.require("", "acme", "records", "read")
        assert exc_info.value.status_code == 401
        assert exc_info.value.code == "unauthenticated"

    @pytest.mark.asyncio
    async def test_not_a_member_is_403(self, resolver):
        with pytest.raises(NotATenantMemberError) as exc_info:
            await resolver.require("bob", "globex", "records", "read")
        assert exc_info.value.status_code == 403
        assert exc_info.value.code == "not_a_member"

    @pytest.mark.asyncio
    async def test_permission_denied_carries_role(self, resolver):
        with pytest.raises(PermissionDeniedError) as exc_info:
            await resolver.require("victor", "acme", "records", "delete")
        assert exc_info.value.code == "insufficient_permission"
        assert exc_info.value.role_name == "viewer"

    @pytest.mark.asyncio
    async def test_super_admin(self, resolver):
        decision = await resolver.require_super_admin("root", "acme")
        assert decision.allowed
        with pytest.raises(PermissionDeniedError):
            await resolver.require_super_admin("alice", "acme")

    @pytest.mark.asyncio
    async def test_tenant_admin(self, resolver):
        assert (await resolver.require_tenant_admin("alice", "acme")).allowed
        assert (await resolver.require_tenant_admin("root", "acme")).allowed
        with pytest.raises(PermissionDeniedError):
            await resolver.require_tenant_admin("bob", "acme")


class TestGetUserPermissions:
    """Tests for the frontend permission summary."""

    @pytest.mark.asyncio
    async def test_member(self, resolver):
        result = await resolver.get_user_permissions("bob", "acme")
        assert result.role == "dipendente"
        assert result.permissions["records"]["scope"] == "own"

    @pytest.mark.asyncio
    async def test_non_member(self, resolver):
        result = await resolver.get_user_permissions("gina", "acme")
        assert result.role == "none"
        assert result.permissions == {}
