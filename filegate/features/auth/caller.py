"""
Caller identity and role.

At the boundary a caller arrives as a subject id plus two role flags.
Internally the flags are resolved into exactly one of three roles so the
"neither flag" case is a named role (External) rather than a fallthrough.
"""

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class Admin:
    """Portal administrator. Sees every active container."""


@dataclass(frozen=True)
class OrgUser:
    """Internal organisation user. Sees every active container."""


@dataclass(frozen=True)
class External:
    """Third-party identity. Sees only containers bound to ``identity``."""

    identity: str


CallerRole = Union[Admin, OrgUser, External]


def resolve_role(caller_id: str, is_admin: bool, is_org_user: bool) -> CallerRole:
    """
    Resolve boundary flags to a role.

    A caller is external iff neither elevated flag is set.
    """
    if is_admin:
        return Admin()
    if is_org_user:
        return OrgUser()
    return External(identity=caller_id)


def is_elevated(role: CallerRole) -> bool:
    """Elevated roles bypass tenant-identity binding."""
    return isinstance(role, (Admin, OrgUser))


@dataclass(frozen=True)
class CallerContext:
    """
    Per-request caller, as supplied by upstream authentication.

    ``caller_id`` is None when the token carries no stable subject; such a
    caller is denied every container operation.
    """

    caller_id: str | None
    is_admin: bool = False
    is_org_user: bool = False
    display_name: str | None = None

    @property
    def has_identity(self) -> bool:
        return bool(self.caller_id)

    @property
    def role(self) -> CallerRole:
        """
        Resolved role.

        Raises:
            ValueError: caller has no stable identity
        """
        if not self.has_identity:
            raise ValueError("Caller has no stable identity")
        return resolve_role(self.caller_id, self.is_admin, self.is_org_user)

    @property
    def performed_by(self) -> str:
        """Name recorded in the activity log."""
        return self.display_name or "unknown"
