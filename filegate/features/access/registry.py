"""
Container access registry.

Answers two questions from the third-party registry:
- may this caller act on this container?
- which containers may this caller see?

Only active third parties grant access. Admins and org users see every
active container; an external caller sees a container only when the
record's bound identity equals its caller id exactly.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from filegate.core.filters import and_, eq, ne
from filegate.core.table_store import TableStore
from filegate.features.auth.caller import CallerRole, External, is_elevated, resolve_role
from filegate.models.tenant import THIRD_PARTY_PARTITION, TenantStatus, ThirdParty

logger = logging.getLogger(__name__)


def _grants(record: ThirdParty, role: CallerRole) -> bool:
    if not record.is_active:
        return False
    if is_elevated(role):
        return True
    return isinstance(role, External) and record.external_identity_ref == role.identity


class AccessRegistry:
    """
    Access decisions backed by the registry table store.

    Lookups that find nothing resolve to "no access" / empty results.
    Store failures propagate as StoreUnavailableError; they never turn
    into a grant.
    """

    def __init__(self, store: TableStore[ThirdParty]):
        self.store = store

    async def has_access(
        self,
        caller_id: str | None,
        container: str,
        is_admin: bool,
        is_org_user: bool,
    ) -> bool:
        """
        Check whether the caller may act on ``container``.

        Scans records whose container_name matches exactly; the first active
        one decides. No active record means no access.
        """
        if not caller_id:
            return False

        role = resolve_role(caller_id, is_admin, is_org_user)

        # Retired records stay in the table for audit and never grant
        filter_expression = and_(
            eq("partition_key", THIRD_PARTY_PARTITION),
            eq("container_name", container),
            ne("status", TenantStatus.INACTIVE.value),
        )

        async for record in self.store.query(filter_expression):
            if record.status != TenantStatus.ACTIVE.value:
                continue
            return _grants(record, role)

        return False

    async def accessible_containers(
        self,
        caller_id: str | None,
        is_admin: bool,
        is_org_user: bool,
    ) -> set[str]:
        """Container names the caller may see (deduplicated)."""
        if not caller_id:
            return set()

        role = resolve_role(caller_id, is_admin, is_org_user)

        filter_expression = and_(
            eq("partition_key", THIRD_PARTY_PARTITION),
            eq("status", TenantStatus.ACTIVE.value),
        )

        containers: set[str] = set()
        async for record in self.store.query(filter_expression):
            if _grants(record, role):
                containers.add(record.container_name)

        return containers


def get_access_registry_for(db: AsyncSession) -> AccessRegistry:
    """Registry bound to a database session."""
    return AccessRegistry(TableStore(db, ThirdParty))
