"""
Background tasks for the third-party lifecycle.

Tasks run in Celery workers, separate from the API server. Each task
drives one lifecycle step to completion:
- provision_tenant:   provisioning -> active
- deprovision_tenant: deprovisioning -> inactive
"""

import asyncio
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from filegate.core.celery_app import celery_app
from filegate.core.database import db_manager
from filegate.core.metrics import tenants_provisioned_total
from filegate.core.table_store import TableStore
from filegate.features.files.storage import StorageBackend, get_storage
from filegate.features.tenants.provisioning import (
    AppIdentity,
    IdentityProvisioner,
    get_identity_provisioner,
)
from filegate.features.tenants.service import onboarding_service
from filegate.models.tenant import THIRD_PARTY_PARTITION, TenantStatus, ThirdParty

logger = logging.getLogger(__name__)


def get_or_create_event_loop():
    """Helper to handle asyncio loops safely within thread-based workers."""
    try:
        return asyncio.get_event_loop()
    except RuntimeError:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        return loop


async def _load(db: AsyncSession, third_party_id: str) -> ThirdParty | None:
    third_party = await TableStore(db, ThirdParty).get_by_key(THIRD_PARTY_PARTITION, third_party_id)
    if third_party is None:
        logger.error(f"Third party record {third_party_id} not found in registry")
    return third_party


async def provision_third_party(
    db: AsyncSession,
    third_party_id: str,
    storage: StorageBackend,
    identities: IdentityProvisioner,
) -> dict:
    """
    Create the container, bind an app identity when automation is on,
    then activate the record.
    """
    third_party = await _load(db, third_party_id)
    if third_party is None:
        return {"third_party_id": third_party_id, "status": "missing"}

    if third_party.lifecycle_status is not TenantStatus.PROVISIONING:
        logger.info(f"Third party {third_party_id} already {third_party.status}, nothing to provision")
        return {"third_party_id": third_party_id, "status": third_party.status}

    logger.info(f"Provisioning third party: {third_party.company_name} ({third_party.container_name})")

    await storage.create_container(third_party.container_name)

    identity = None
    if third_party.automation_enabled:
        identity = await identities.create_app_identity(
            third_party.company_name,
            third_party.container_name,
        )

    try:
        third_party = await onboarding_service.complete_provisioning(db, third_party, identity)
    except Exception:
        # The record is still "provisioning", so a retry mints a fresh identity
        if identity is not None:
            await _discard_identity(identities, identity, third_party_id)
        raise

    return {"third_party_id": third_party_id, "status": third_party.status}


async def _discard_identity(
    identities: IdentityProvisioner,
    identity: AppIdentity,
    third_party_id: str,
) -> None:
    try:
        await identities.delete_app_identity(identity.application_id)
    except Exception as exc:
        logger.error(
            f"Could not remove app identity {identity.application_id} "
            f"for {third_party_id}; remove it manually: {exc}"
        )
    else:
        logger.info(f"Removed unbound app identity {identity.application_id} for {third_party_id}")


async def deprovision_third_party(
    db: AsyncSession,
    third_party_id: str,
    storage: StorageBackend,
    identities: IdentityProvisioner,
) -> dict:
    """Remove the app identity, archive the container, retire the record."""
    third_party = await _load(db, third_party_id)
    if third_party is None:
        return {"third_party_id": third_party_id, "status": "missing"}

    if third_party.lifecycle_status is not TenantStatus.DEPROVISIONING:
        logger.info(f"Third party {third_party_id} is {third_party.status}, nothing to deprovision")
        return {"third_party_id": third_party_id, "status": third_party.status}

    logger.info(f"Deprovisioning third party: {third_party.container_name}")

    if third_party.app_registration_id:
        await identities.delete_app_identity(third_party.app_registration_id)

    # Archived rather than deleted; the data is retained
    await storage.archive_container(third_party.container_name)

    third_party = await onboarding_service.complete_deprovisioning(db, third_party)
    return {"third_party_id": third_party_id, "status": third_party.status}


async def _run(step, action: str, third_party_id: str) -> dict:
    async with db_manager.session_scope() as db:
        try:
            return await step(db, third_party_id, get_storage(), get_identity_provisioner())
        except Exception:
            tenants_provisioned_total.labels(action=action, outcome="failure").inc()
            raise


@celery_app.task(bind=True, max_retries=3, name="filegate.features.tenants.tasks.provision_tenant")
def provision_tenant(self, third_party_id: str) -> dict:
    """Provision a newly registered third party."""
    logger.info(f"Starting provisioning: {third_party_id}")

    db_manager.init()
    loop = get_or_create_event_loop()

    try:
        return loop.run_until_complete(_run(provision_third_party, "provision", third_party_id))
    except Exception as exc:
        logger.error(f"Provisioning failed for {third_party_id}: {exc}")
        raise self.retry(exc=exc, countdown=60 * (2 ** self.request.retries))
    finally:
        loop.run_until_complete(db_manager.close())


@celery_app.task(bind=True, max_retries=3, name="filegate.features.tenants.tasks.deprovision_tenant")
def deprovision_tenant(self, third_party_id: str) -> dict:
    """Tear down a third party that an admin asked to deprovision."""
    logger.info(f"Starting deprovisioning: {third_party_id}")

    db_manager.init()
    loop = get_or_create_event_loop()

    try:
        return loop.run_until_complete(_run(deprovision_third_party, "deprovision", third_party_id))
    except Exception as exc:
        logger.error(f"Deprovisioning failed for {third_party_id}: {exc}")
        raise self.retry(exc=exc, countdown=60 * (2 ** self.request.retries))
    finally:
        loop.run_until_complete(db_manager.close())
