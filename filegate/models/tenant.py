"""
Third-party (tenant) registry model.

Each third party owns exactly one storage container and moves through a
fixed lifecycle::

    provisioning -> active -> deprovisioning -> inactive

Records are never deleted; inactive rows are kept for audit.
"""

from enum import Enum

from sqlalchemy import Boolean, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from filegate.core.exceptions import InvalidTransitionError
from filegate.models.base import TableEntity

THIRD_PARTY_PARTITION = "ThirdParty"


class TenantStatus(str, Enum):
    """Lifecycle status of a third party."""
    PROVISIONING = "provisioning"
    ACTIVE = "active"
    DEPROVISIONING = "deprovisioning"
    INACTIVE = "inactive"


ALLOWED_TRANSITIONS: dict[TenantStatus, frozenset[TenantStatus]] = {
    TenantStatus.PROVISIONING: frozenset({TenantStatus.ACTIVE}),
    TenantStatus.ACTIVE: frozenset({TenantStatus.DEPROVISIONING}),
    TenantStatus.DEPROVISIONING: frozenset({TenantStatus.INACTIVE}),
    TenantStatus.INACTIVE: frozenset(),
}

# Statuses that hold a claim on their container name.
LIVE_STATUSES = (
    TenantStatus.PROVISIONING,
    TenantStatus.ACTIVE,
    TenantStatus.DEPROVISIONING,
)


class ThirdParty(TableEntity):
    """
    Registry entry for an external organisation.

    partition_key is always "ThirdParty"; row_key is the third-party id
    (e.g. "tp-1a2b3c4").
    """

    __tablename__ = "third_parties"

    company_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Organisation name"
    )

    contact_email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Contact address for notifications"
    )

    container_name: Mapped[str] = mapped_column(
        String(63),
        nullable=False,
        index=True,
        comment="Storage container, derived from company name at creation"
    )

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=TenantStatus.PROVISIONING.value,
        index=True,
        comment="provisioning | active | deprovisioning | inactive"
    )

    automation_enabled: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        comment="Whether an app identity is provisioned for the third party"
    )

    app_registration_id: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        comment="App registration created by the provisioning workflow"
    )

    external_identity_ref: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        index=True,
        comment="Principal id bound to the container"
    )

    credential_ref: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        comment="Certificate thumbprint or secret reference"
    )

    @property
    def id(self) -> str:
        return self.row_key

    @property
    def lifecycle_status(self) -> TenantStatus:
        return TenantStatus(self.status)

    @property
    def is_active(self) -> bool:
        return self.status == TenantStatus.ACTIVE.value

    def can_transition_to(self, target: TenantStatus) -> bool:
        return target in ALLOWED_TRANSITIONS[self.lifecycle_status]

    def transition_to(self, target: TenantStatus) -> None:
        """
        Move to the next lifecycle status.

        Raises:
            InvalidTransitionError: target is not reachable in one step
        """
        if not self.can_transition_to(target):
            raise InvalidTransitionError(
                f"Cannot move third party from '{self.status}' to '{target.value}'.",
                details={"id": self.row_key, "from": self.status, "to": target.value},
            )
        self.status = target.value

    def clear_identity(self) -> None:
        """Drop identity bindings once the third party is deprovisioned."""
        self.app_registration_id = None
        self.external_identity_ref = None
        self.credential_ref = None

    def __repr__(self) -> str:
        return f"<ThirdParty(id={self.row_key}, container={self.container_name}, status={self.status})>"


# One live record per container. Inactive rows keep their container name for
# audit and are outside the index, so a retired name can be onboarded again.
_live_container_filter = ThirdParty.status.in_([status.value for status in LIVE_STATUSES])

Index(
    "ux_third_parties_live_container",
    ThirdParty.container_name,
    unique=True,
    postgresql_where=_live_container_filter,
    sqlite_where=_live_container_filter,
)
