"""
Third-party onboarding and lifecycle.

The API side creates registry entries and requests lifecycle changes; the
Celery tasks complete them. Records are never deleted.
"""

import re
import uuid

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from filegate.config import settings
from filegate.core.exceptions import ContainerConflict, bad_request, not_found
from filegate.core.filters import and_, eq, or_
from filegate.core.metrics import tenants_provisioned_total
from filegate.core.table_store import EntityExistsError, TableStore
from filegate.features.tenants.provisioning import AppIdentity
from filegate.models.tenant import (
    LIVE_STATUSES,
    THIRD_PARTY_PARTITION,
    TenantStatus,
    ThirdParty,
)
from filegate.schemas.tenant import ThirdPartyCreate, ThirdPartyUpdate

logger = structlog.get_logger(__name__)

DEFAULT_LIST_LIMIT = 100
INSERT_ATTEMPTS = 2

_SLUG_SEPARATORS = re.compile(r"[^a-z0-9]+")


def container_slug(company_name: str, max_length: int | None = None) -> str:
    """
    Storage-safe slug for a company name.

    "Acme Corp, Ltd." -> "acme-corp-ltd"
    """
    max_length = max_length or settings.container_name_max_length
    slug = _SLUG_SEPARATORS.sub("-", company_name.lower()).strip("-")
    return slug[:max_length].strip("-")


def new_third_party_id() -> str:
    return f"tp-{uuid.uuid4().hex[:7]}"


def _enqueue_provisioning(third_party_id: str) -> None:
    from filegate.features.tenants.tasks import provision_tenant

    provision_tenant.delay(third_party_id=third_party_id)


def _enqueue_deprovisioning(third_party_id: str) -> None:
    from filegate.features.tenants.tasks import deprovision_tenant

    deprovision_tenant.delay(third_party_id=third_party_id)


class OnboardingService:
    """Registry writes for the third-party lifecycle."""

    @staticmethod
    async def create_third_party(db: AsyncSession, data: ThirdPartyCreate) -> ThirdParty:
        """
        Register a third party and queue its provisioning.

        Raises:
            InvalidInputError: blank name/email, or a name with no usable characters
            ContainerConflict: a live third party already holds the container name
        """
        if not data.company_name.strip():
            raise bad_request("Company name is required.")
        if not data.contact_email.strip():
            raise bad_request("Contact email is required.")

        slug = container_slug(data.company_name)
        if not slug:
            raise bad_request("Company name must contain letters or digits.")

        container_name = f"{settings.container_prefix}{slug}"

        store = TableStore(db, ThirdParty)
        await OnboardingService._ensure_container_free(store, container_name)

        third_party = ThirdParty(
            partition_key=THIRD_PARTY_PARTITION,
            row_key=new_third_party_id(),
            company_name=data.company_name,
            contact_email=data.contact_email,
            container_name=container_name,
            status=TenantStatus.PROVISIONING.value,
            automation_enabled=data.automation_enabled,
        )

        # The live-container index makes the insert the real claim; the
        # lookup above only gives the common case a clear error.
        for attempt in range(INSERT_ATTEMPTS):
            try:
                third_party = await store.insert(third_party)
                break
            except EntityExistsError:
                await OnboardingService._ensure_container_free(store, container_name)
                if attempt + 1 == INSERT_ATTEMPTS:
                    raise
                # Id collision, draw once more
                third_party.row_key = new_third_party_id()

        logger.info(
            "provisioning_requested",
            third_party_id=third_party.row_key,
            company=third_party.company_name,
            container=container_name,
        )
        _enqueue_provisioning(third_party.row_key)

        return third_party

    @staticmethod
    async def _ensure_container_free(store: TableStore[ThirdParty], container_name: str) -> None:
        """
        Raises:
            ContainerConflict: a provisioning, active or deprovisioning record holds the name
        """
        held_by_live_record = or_(*(
            and_(
                eq("partition_key", THIRD_PARTY_PARTITION),
                eq("container_name", container_name),
                eq("status", status.value),
            )
            for status in LIVE_STATUSES
        ))
        async for existing in store.query(held_by_live_record, limit=1):
            raise ContainerConflict(
                f"Container '{container_name}' is already in use.",
                details={"existing_id": existing.row_key},
            )

    @staticmethod
    async def get_third_party(db: AsyncSession, third_party_id: str) -> ThirdParty:
        """
        Raises:
            ResourceNotFoundError: no such third party
        """
        third_party = await TableStore(db, ThirdParty).get_by_key(THIRD_PARTY_PARTITION, third_party_id)
        if third_party is None:
            raise not_found("Third party not found.")
        return third_party

    @staticmethod
    async def list_third_parties(db: AsyncSession, top: int = DEFAULT_LIST_LIMIT) -> list[ThirdParty]:
        store = TableStore(db, ThirdParty)
        return [
            party
            async for party in store.query(eq("partition_key", THIRD_PARTY_PARTITION), limit=top)
        ]

    @staticmethod
    async def update_third_party(
        db: AsyncSession,
        third_party_id: str,
        data: ThirdPartyUpdate,
    ) -> ThirdParty:
        """Update name and contact email. Container and automation flag are fixed."""
        third_party = await OnboardingService.get_third_party(db, third_party_id)

        if data.company_name is not None:
            if not data.company_name.strip():
                raise bad_request("Company name is required.")
            third_party.company_name = data.company_name
        if data.contact_email is not None:
            if not data.contact_email.strip():
                raise bad_request("Contact email is required.")
            third_party.contact_email = data.contact_email

        return await TableStore(db, ThirdParty).upsert(third_party)

    @staticmethod
    async def request_deprovisioning(db: AsyncSession, third_party_id: str) -> ThirdParty:
        """
        Start deprovisioning an active third party.

        Provisioning, deprovisioning and inactive third parties are left as
        they are; the call is idempotent.
        """
        third_party = await OnboardingService.get_third_party(db, third_party_id)

        if third_party.lifecycle_status is not TenantStatus.ACTIVE:
            logger.info(
                "deprovisioning_skipped",
                third_party_id=third_party_id,
                status=third_party.status,
            )
            return third_party

        third_party.transition_to(TenantStatus.DEPROVISIONING)
        third_party = await TableStore(db, ThirdParty).upsert(third_party)

        logger.info(
            "deprovisioning_requested",
            third_party_id=third_party_id,
            container=third_party.container_name,
        )
        _enqueue_deprovisioning(third_party_id)

        return third_party

    @staticmethod
    async def complete_provisioning(
        db: AsyncSession,
        third_party: ThirdParty,
        identity: AppIdentity | None,
    ) -> ThirdParty:
        """Bind the app identity (if any) and activate."""
        if identity is not None:
            third_party.app_registration_id = identity.application_id
            third_party.external_identity_ref = identity.principal_id
            third_party.credential_ref = identity.credential_ref

        third_party.transition_to(TenantStatus.ACTIVE)
        third_party = await TableStore(db, ThirdParty).upsert(third_party)

        tenants_provisioned_total.labels(action="provision", outcome="success").inc()
        logger.info("third_party_activated", third_party_id=third_party.row_key)
        return third_party

    @staticmethod
    async def complete_deprovisioning(db: AsyncSession, third_party: ThirdParty) -> ThirdParty:
        """Drop identity bindings and retire the record."""
        third_party.clear_identity()
        third_party.transition_to(TenantStatus.INACTIVE)
        third_party = await TableStore(db, ThirdParty).upsert(third_party)

        tenants_provisioned_total.labels(action="deprovision", outcome="success").inc()
        logger.info("third_party_deactivated", third_party_id=third_party.row_key)
        return third_party


# Singleton instance
onboarding_service = OnboardingService()
