"""Authorization errors, each carrying a client-facing code and HTTP status."""

from typing import Optional

from voiceledger.models.authorization import DenialReason


class AuthorizationError(Exception):
    """Base exception for authorization failures."""

    code: str = "authorization_error"
    status_code: int = 403

    def __init__(self, message: str, role_name: Optional[str] = None):
        self.message = message
        self.role_name = role_name
        super().__init__(message)


class UnauthenticatedError(AuthorizationError):
    """No authenticated actor on the request."""
    code = DenialReason.UNAUTHENTICATED.value
    status_code = 401


class NotATenantMemberError(AuthorizationError):
    """The actor has no role binding in the tenant."""
    code = DenialReason.NOT_A_MEMBER.value
    status_code = 403


class PermissionDeniedError(AuthorizationError):
    """The actor's role does not grant the action at the requested scope."""
    code = DenialReason.INSUFFICIENT_PERMISSION.value
    status_code = 403


ERRORS_BY_REASON = {
    DenialReason.UNAUTHENTICATED: UnauthenticatedError,
    DenialReason.NOT_A_MEMBER: NotATenantMemberError,
    DenialReason.INSUFFICIENT_PERMISSION: PermissionDeniedError,
}
