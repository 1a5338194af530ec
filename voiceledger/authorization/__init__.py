"""Role-scoped authorization package."""

from voiceledger.authorization.errors import (
    AuthorizationError,
    NotATenantMemberError,
    PermissionDeniedError,
    UnauthenticatedError,
)
from voiceledger.authorization.membership import MembershipGuard
from voiceledger.authorization.permissions import (
    RECORDS_RESOURCE,
    PermissionResolver,
    authorize,
)

__all__ = [
    "AuthorizationError",
    "MembershipGuard",
    "NotATenantMemberError",
    "PermissionDeniedError",
    "PermissionResolver",
    "RECORDS_RESOURCE",
    "UnauthenticatedError",
    "authorize",
]
