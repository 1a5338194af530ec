"""
Permission Resolver

Decides whether an actor may perform an action on a resource inside a
tenant, and how much data the answer covers.

FLOW:
1. No actor -> unauthenticated
2. No role binding in the tenant -> not_a_member
3. Role lacks the action on the resource -> insufficient_permission
4. Role scope narrower than the requested scope -> insufficient_permission
5. Otherwise allowed, with the scope the caller must filter rows by

The resolver never reads or filters records itself. Callers turn the
decision into a row filter with AuthorizationDecision.to_filter().
"""

from typing import Optional, Union

import structlog

from voiceledger.authorization.errors import ERRORS_BY_REASON
from voiceledger.authorization.membership import MembershipGuard
from voiceledger.models.authorization import (
    AuthorizationDecision,
    DenialReason,
    RoleBinding,
    Scope,
    UserPermissions,
)


logger = structlog.get_logger(__name__)

RECORDS_RESOURCE = "records"


def _coerce_scope(scope: Union[Scope, str, None]) -> Optional[Scope]:
    if scope is None or isinstance(scope, Scope):
        return scope
    return Scope(scope.strip().lower())


class PermissionResolver:
    """Role-scoped authorization for one tenant at a time."""

    def __init__(self, membership_guard: MembershipGuard):
        self._membership = membership_guard

    @property
    def membership(self) -> MembershipGuard:
        return self._membership

    def decide(
        self,
        binding: RoleBinding,
        resource: str,
        action: str,
        scope: Union[Scope, str, None] = None,
    ) -> AuthorizationDecision:
        """Pure decision for an already resolved binding."""
        role = binding.role
        permission = role.for_resource(resource)
        if permission is None or not permission.allows(action):
            return AuthorizationDecision.deny(
                DenialReason.INSUFFICIENT_PERMISSION,
                f"Permission denied: {action} on {resource}",
                role_name=role.role_name,
            )

        try:
            requested = _coerce_scope(scope)
        except ValueError:
            return AuthorizationDecision.deny(
                DenialReason.INSUFFICIENT_PERMISSION,
                f"Unknown scope requested: {scope}",
                role_name=role.role_name,
            )

        if requested is not None and permission.scope is not None \
                and not permission.scope.covers(requested):
            return AuthorizationDecision.deny(
                DenialReason.INSUFFICIENT_PERMISSION,
                f"Scope not allowed: requested {requested.value}, "
                f"available {permission.scope.value}",
                role_name=role.role_name,
            )
        if requested is Scope.NONE:
            return AuthorizationDecision.deny(
                DenialReason.INSUFFICIENT_PERMISSION,
                "Scope not allowed: none",
                role_name=role.role_name,
            )

        return AuthorizationDecision(
            allowed=True,
            scope=requested or permission.scope or Scope.COMPANY,
            role_name=role.role_name,
        )

    async def authorize(
        self,
        actor_id: Optional[str],
        tenant_id: Optional[str],
        resource: str,
        action: str,
        scope: Union[Scope, str, None] = None,
    ) -> AuthorizationDecision:
        if not actor_id:
            decision = AuthorizationDecision.deny(
                DenialReason.UNAUTHENTICATED, "User not authenticated"
            )
        else:
            binding = await self._membership.get_binding(actor_id, tenant_id or "")
            if binding is None:
                decision = AuthorizationDecision.deny(
                    DenialReason.NOT_A_MEMBER,
                    f"User not authorized for tenant {tenant_id}",
                )
            else:
                decision = self.decide(binding, resource, action, scope)

        if decision.allowed:
            logger.info(
                "authorization_granted",
                actor_id=actor_id,
                tenant_id=tenant_id,
                role=decision.role_name,
                resource=resource,
                action=action,
                scope=decision.scope.value,
            )
        else:
            logger.info(
                "authorization_denied",
                actor_id=actor_id,
                tenant_id=tenant_id,
                role=decision.role_name,
                resource=resource,
                action=action,
                reason=decision.reason.value,
            )
        return decision

    async def require(
        self,
        actor_id: Optional[str],
        tenant_id: Optional[str],
        resource: str,
        action: str,
        scope: Union[Scope, str, None] = None,
    ) -> AuthorizationDecision:
        """
        Like authorize(), but raises on denial.

        Raises:
            UnauthenticatedError: No actor (401)
            NotATenantMemberError: Actor not in tenant (403)
            PermissionDeniedError: Action or scope not granted (403)
        """
        decision = await self.authorize(actor_id, tenant_id, resource, action, scope)
        if not decision.allowed:
            raise ERRORS_BY_REASON[decision.reason](decision.message, role_name=decision.role_name)
        return decision

    async def require_super_admin(
        self,
        actor_id: Optional[str],
        tenant_id: Optional[str],
    ) -> AuthorizationDecision:
        """Only roles that can create companies."""
        return await self.require(actor_id, tenant_id, "companies", "create")

    async def require_tenant_admin(
        self,
        actor_id: Optional[str],
        tenant_id: Optional[str],
    ) -> AuthorizationDecision:
        """Tenant admins and above: roles that can assign roles to users."""
        return await self.require(actor_id, tenant_id, "users", "assign_roles")

    async def get_user_permissions(
        self,
        actor_id: Optional[str],
        tenant_id: Optional[str],
    ) -> UserPermissions:
        """Role name and raw permission table for the frontend."""
        if not actor_id:
            return UserPermissions()
        binding = await self._membership.get_binding(actor_id, tenant_id or "")
        if binding is None:
            return UserPermissions()
        return UserPermissions(
            role=binding.role.role_name,
            permissions=binding.role.to_json(),
        )


async def authorize(
    resolver: PermissionResolver,
    actor_id: Optional[str],
    tenant_id: Optional[str],
    resource: str,
    action: str,
    scope: Union[Scope, str, None] = None,
) -> AuthorizationDecision:
    """Module-level shortcut for PermissionResolver.authorize."""
    return await resolver.authorize(actor_id, tenant_id, resource, action, scope)
