"""
Security utilities for caller identity.

Upstream authentication is trusted: the token has already been issued by
the identity provider. We only decode it to read the subject and roles.

Provides:
- JWT token creation (tests, local tooling)
- JWT decoding
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt

from filegate.config import settings

logger = logging.getLogger(__name__)


def create_access_token(
    claims: dict[str, Any],
    expires_delta: timedelta | None = None,
) -> str:
    """
    Create a signed JWT carrying the given claims.

    Args:
        claims: Claims such as ``oid``, ``roles``, ``preferred_username``
        expires_delta: Token lifetime (default: 30 minutes)

    Returns:
        Encoded JWT token
    """
    now = datetime.now(timezone.utc)
    to_encode = claims.copy()
    to_encode.update({
        "exp": now + (expires_delta or timedelta(minutes=30)),
        "iat": now,
    })
    if settings.jwt_audience and "aud" not in to_encode:
        to_encode["aud"] = settings.jwt_audience

    return jwt.encode(
        to_encode,
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm
    )


def decode_token(token: str) -> dict[str, Any]:
    """
    Decode a JWT token.

    Raises:
        JWTError: If token is malformed, badly signed or expired
    """
    options = {"verify_aud": settings.jwt_audience is not None}
    try:
        return jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
            options=options,
        )
    except JWTError as e:
        logger.warning(f"JWT decode error: {e}")
        raise
