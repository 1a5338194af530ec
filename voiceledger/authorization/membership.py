"""
Membership Guard

Answers one question: is this actor a member of this tenant, and with
which role. Everything permission-related builds on the binding it returns.
"""

from typing import Optional

import structlog

from voiceledger.authorization.errors import NotATenantMemberError
from voiceledger.models.authorization import RoleBinding
from voiceledger.services.storage import MembershipStorageInterface


logger = structlog.get_logger(__name__)


class MembershipGuard:

    def __init__(self, storage: MembershipStorageInterface):
        self._storage = storage

    async def get_binding(self, actor_id: str, tenant_id: str) -> Optional[RoleBinding]:
        if not actor_id or not tenant_id:
            return None
        return await self._storage.get_role_binding(actor_id, tenant_id)

    async def is_member(self, actor_id: str, tenant_id: str) -> bool:
        return await self.get_binding(actor_id, tenant_id) is not None

    async def ensure_member(self, actor_id: str, tenant_id: str) -> RoleBinding:
        """
        Raises:
            NotATenantMemberError: If the actor has no role in the tenant
        """
        binding = await self.get_binding(actor_id, tenant_id)
        if binding is None:
            logger.info("membership_missing", actor_id=actor_id, tenant_id=tenant_id)
            raise NotATenantMemberError(f"User {actor_id} is not a member of tenant {tenant_id}")
        return binding
