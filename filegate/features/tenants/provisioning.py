"""
App identity provisioning for third parties with automation enabled.

The provisioning workflow only needs two calls: create an identity bound to
a container and delete it again. Cloud app registration sits behind this
protocol; the local implementation mints opaque ids for development.
"""

import hashlib
import logging
import uuid
from dataclasses import dataclass
from typing import Protocol

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AppIdentity:
    """Identity created for a third party."""

    application_id: str
    principal_id: str
    credential_ref: str


class IdentityProvisioner(Protocol):
    async def create_app_identity(self, company_name: str, container_name: str) -> AppIdentity:
        ...

    async def delete_app_identity(self, application_id: str) -> None:
        ...


class LocalIdentityProvisioner:
    """Mints identifiers locally. Nothing leaves the process."""

    async def create_app_identity(self, company_name: str, container_name: str) -> AppIdentity:
        application_id = str(uuid.uuid4())
        principal_id = f"sp-{uuid.uuid4().hex[:12]}"
        thumbprint = hashlib.sha1(f"{application_id}:{container_name}".encode()).hexdigest().upper()

        logger.info(f"App identity created for {company_name}: app={application_id} principal={principal_id}")
        return AppIdentity(
            application_id=application_id,
            principal_id=principal_id,
            credential_ref=thumbprint,
        )

    async def delete_app_identity(self, application_id: str) -> None:
        logger.info(f"App identity deleted: {application_id}")


def get_identity_provisioner() -> IdentityProvisioner:
    return LocalIdentityProvisioner()
