"""
Authorization Models

Roles carry a permission table per resource: which actions are allowed
and how far the role can see (own rows, the whole company, every tenant).
Decisions are derived per request and never stored.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class Scope(str, Enum):
    """
    Breadth of data visibility, ordered own < company < global.

    NONE only appears on denied decisions.
    """
    OWN = "own"
    COMPANY = "company"
    GLOBAL = "global"
    NONE = "none"

    @property
    def rank(self) -> int:
        return _SCOPE_RANK[self]

    def covers(self, requested: "Scope") -> bool:
        """True if a role with this scope may serve a request for `requested`."""
        if self is Scope.NONE or requested is Scope.NONE:
            return False
        return self.rank >= requested.rank


_SCOPE_RANK = {
    Scope.NONE: -1,
    Scope.OWN: 0,
    Scope.COMPANY: 1,
    Scope.GLOBAL: 2,
}


class DenialReason(str, Enum):
    """Distinct denial outcomes so clients can render the right message."""
    UNAUTHENTICATED = "unauthenticated"
    NOT_A_MEMBER = "not_a_member"
    INSUFFICIENT_PERMISSION = "insufficient_permission"


class ResourcePermission(BaseModel):
    """Permissions a role holds on one resource."""
    model_config = ConfigDict(frozen=True)

    actions: dict[str, bool] = Field(default_factory=dict)
    scope: Optional[Scope] = None

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> "ResourcePermission":
        """
        Parse the stored shape {"create": true, "read": true, "scope": "own"}.

        Any key other than "scope" is an action flag.

        Raises:
            ValueError: If the stored scope is not a known Scope
        """
        scope = data.get("scope")
        actions = {
            key: bool(value)
            for key, value in data.items()
            if key != "scope"
        }
        if scope:
            try:
                scope = Scope(str(scope).strip().lower())
            except ValueError as e:
                raise ValueError(f"Unknown scope in stored permissions: {scope!r}") from e
        return cls(actions=actions, scope=scope or None)

    def to_json(self) -> dict[str, Any]:
        data: dict[str, Any] = dict(self.actions)
        if self.scope is not None:
            data["scope"] = self.scope.value
        return data

    def allows(self, action: str) -> bool:
        return self.actions.get(action, False)


class RolePermissionSet(BaseModel):
    """A role and its resource -> permission table. Immutable within a request."""
    model_config = ConfigDict(frozen=True)

    role_name: str = Field(..., min_length=1)
    permissions: dict[str, ResourcePermission] = Field(default_factory=dict)

    @classmethod
    def from_json(cls, role_name: str, data: dict[str, Any]) -> "RolePermissionSet":
        return cls(
            role_name=role_name,
            permissions={
                resource: ResourcePermission.from_json(perms or {})
                for resource, perms in (data or {}).items()
            },
        )

    def to_json(self) -> dict[str, Any]:
        return {
            resource: perm.to_json()
            for resource, perm in self.permissions.items()
        }

    def for_resource(self, resource: str) -> Optional[ResourcePermission]:
        return self.permissions.get(resource)


class RoleBinding(BaseModel):
    """An actor's membership in a tenant, with the role granted there."""
    model_config = ConfigDict(frozen=True)

    actor_id: str
    tenant_id: str
    role: RolePermissionSet


class RecordScopeFilter(BaseModel):
    """
    Mandatory row filter derived from an authorization decision.

    Storage implementations apply it to every listing query.
    """
    model_config = ConfigDict(frozen=True)

    tenant_id: str
    owner_id: Optional[str] = None
    all_tenants: bool = False

    def matches(self, record: Any) -> bool:
        if not self.all_tenants and record.tenant_id != self.tenant_id:
            return False
        if self.owner_id is not None and record.owner_id != self.owner_id:
            return False
        return True


class AuthorizationDecision(BaseModel):
    """Outcome of one permission check."""
    model_config = ConfigDict(frozen=True)

    allowed: bool
    scope: Scope = Scope.NONE
    reason: Optional[DenialReason] = None
    message: str = ""
    role_name: Optional[str] = None

    @classmethod
    def deny(
        cls,
        reason: DenialReason,
        message: str,
        role_name: Optional[str] = None,
    ) -> "AuthorizationDecision":
        return cls(
            allowed=False,
            scope=Scope.NONE,
            reason=reason,
            message=message,
            role_name=role_name,
        )

    def to_filter(self, actor_id: str, tenant_id: str) -> RecordScopeFilter:
        """
        Row filter for this decision.

        own -> only the actor's rows; company -> the tenant's rows;
        global -> rows of every tenant.
        """
        if not self.allowed:
            raise ValueError("Cannot derive a row filter from a denied decision")
        if self.scope == Scope.OWN:
            return RecordScopeFilter(tenant_id=tenant_id, owner_id=actor_id)
        if self.scope == Scope.GLOBAL:
            return RecordScopeFilter(tenant_id=tenant_id, all_tenants=True)
        return RecordScopeFilter(tenant_id=tenant_id)


class UserPermissions(BaseModel):
    """What the frontend needs to render an actor's capabilities in a tenant."""

    role: str = "none"
    permissions: dict[str, Any] = Field(default_factory=dict)
