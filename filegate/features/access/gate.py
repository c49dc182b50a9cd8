"""
Authorization gate for container operations.

Every file and activity route passes through here before touching storage.
The gate resolves the caller, asks the access registry, and writes an
audit warning for every denial. Audit logging never affects the decision.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Annotated

import structlog
from fastapi import Depends, Path, Request
from sqlalchemy.ext.asyncio import AsyncSession

from filegate.core.context import get_correlation_id, set_request_context
from filegate.core.database import get_db
from filegate.core.exceptions import StoreUnavailableError, forbidden
from filegate.core.metrics import container_access_denied_total
from filegate.features.access.registry import AccessRegistry, get_access_registry_for
from filegate.features.auth.caller import CallerContext
from filegate.features.auth.dependencies import Caller

logger = structlog.get_logger(__name__)


class DenialReason(str, Enum):
    NO_IDENTITY = "no_identity"
    REGISTRY_DENIED = "registry_denied"
    LOOKUP_FAILED = "lookup_failed"


@dataclass(frozen=True)
class AccessDecision:
    granted: bool
    reason: DenialReason | None = None


GRANTED = AccessDecision(granted=True)


class AuthorizationGate:
    """Grant/deny for (caller, container) pairs with audit on denial."""

    def __init__(self, registry: AccessRegistry):
        self.registry = registry

    async def authorize(
        self,
        caller: CallerContext,
        container: str,
        correlation_id: str | None = None,
    ) -> AccessDecision:
        """
        Decide whether ``caller`` may act on ``container``.

        A caller without a stable identity is denied without consulting the
        registry. A failed registry lookup is a denial too, reported with its
        own reason so the route can answer 503 instead of 403.
        """
        correlation_id = correlation_id or get_correlation_id() or "unknown"

        if not caller.has_identity:
            decision = AccessDecision(granted=False, reason=DenialReason.NO_IDENTITY)
            self._audit_denial(decision, caller, container, correlation_id)
            return decision

        try:
            allowed = await self.registry.has_access(
                caller.caller_id,
                container,
                caller.is_admin,
                caller.is_org_user,
            )
        except StoreUnavailableError:
            decision = AccessDecision(granted=False, reason=DenialReason.LOOKUP_FAILED)
            self._audit_denial(decision, caller, container, correlation_id)
            raise

        if allowed:
            return GRANTED

        decision = AccessDecision(granted=False, reason=DenialReason.REGISTRY_DENIED)
        self._audit_denial(decision, caller, container, correlation_id)
        return decision

    def _audit_denial(
        self,
        decision: AccessDecision,
        caller: CallerContext,
        container: str,
        correlation_id: str,
    ) -> None:
        try:
            container_access_denied_total.labels(reason=decision.reason.value).inc()
            if decision.reason is DenialReason.NO_IDENTITY:
                logger.warning(
                    "container_access_denied",
                    reason=decision.reason.value,
                    container=container,
                    correlation_id=correlation_id,
                    detail="no user identity in token",
                )
            else:
                logger.warning(
                    "container_access_denied",
                    reason=decision.reason.value,
                    caller_id=caller.caller_id,
                    container=container,
                    correlation_id=correlation_id,
                )
        except Exception:  # audit is best effort
            pass


async def get_authorization_gate(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> AuthorizationGate:
    return AuthorizationGate(get_access_registry_for(db))


async def require_container_access(
    request: Request,
    caller: Caller,
    gate: Annotated[AuthorizationGate, Depends(get_authorization_gate)],
    container_name: str = Path(..., description="Container name"),
) -> CallerContext:
    """
    Route dependency: 403 unless the caller may act on the container.

    Usage:
        @router.get("/{container_name}/activity")
        async def activity(caller: ContainerCaller, ...):
            ...
    """
    set_request_context(container=container_name)

    correlation_id = getattr(request.state, "correlation_id", None)
    decision = await gate.authorize(caller, container_name, correlation_id)
    if not decision.granted:
        raise forbidden()

    return caller


ContainerCaller = Annotated[CallerContext, Depends(require_container_access)]
