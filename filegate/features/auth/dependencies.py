"""
Authentication dependencies for dependency injection.
"""

import logging
from typing import Annotated, Any

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError

from filegate.config import settings
from filegate.core.context import set_request_context
from filegate.core.exceptions import forbidden, unauthorized
from filegate.core.security import decode_token
from filegate.features.auth.caller import CallerContext

logger = logging.getLogger(__name__)

# Security schemes
bearer_scheme = HTTPBearer(auto_error=False)


def caller_from_claims(claims: dict[str, Any]) -> CallerContext:
    """
    Build a caller from token claims.

    - ``oid`` (falling back to ``sub``) is the stable subject
    - ``roles`` carries the admin / org-user role names
    - ``preferred_username`` is the display name
    """
    caller_id = claims.get("oid") or claims.get("sub")

    roles = claims.get("roles") or []
    if isinstance(roles, str):
        roles = [roles]

    return CallerContext(
        caller_id=str(caller_id) if caller_id else None,
        is_admin=settings.admin_role in roles,
        is_org_user=settings.org_user_role in roles,
        display_name=claims.get("preferred_username"),
    )


def _development_caller() -> CallerContext:
    """Fixed identity for local development."""
    return caller_from_claims({
        "oid": settings.dev_user_id,
        "preferred_username": settings.dev_user_name,
        "roles": [settings.dev_role],
    })


async def get_caller(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> CallerContext:
    """
    Get the current caller from the bearer token.

    Token signatures are checked, but the token is otherwise trusted as
    issued by the upstream identity provider.
    """
    if settings.dev_auth_active:
        caller = _development_caller()
    else:
        if not credentials:
            raise unauthorized("Authentication required.")

        try:
            claims = decode_token(credentials.credentials)
        except JWTError:
            raise unauthorized("Invalid or expired token.")

        caller = caller_from_claims(claims)

    request.state.caller_id = caller.caller_id
    set_request_context(caller_id=caller.caller_id)

    return caller


async def get_identified_caller(
    caller: Annotated[CallerContext, Depends(get_caller)],
) -> CallerContext:
    """Require a stable subject (used where there is no container to gate)."""
    if not caller.has_identity:
        logger.warning("Request rejected: no user identity in token")
        raise unauthorized("Token carries no user identity.")
    return caller


async def require_admin(
    caller: Annotated[CallerContext, Depends(get_identified_caller)],
) -> CallerContext:
    """Require the admin role."""
    if not caller.is_admin:
        logger.warning(f"Admin access denied for caller {caller.caller_id}")
        raise forbidden()
    return caller


# Type aliases for cleaner code
Caller = Annotated[CallerContext, Depends(get_caller)]
IdentifiedCaller = Annotated[CallerContext, Depends(get_identified_caller)]
AdminCaller = Annotated[CallerContext, Depends(require_admin)]
