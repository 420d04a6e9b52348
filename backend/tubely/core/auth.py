"""
Tubely Authentication Module

Bearer-token authentication using locally signed HMAC JWTs (HS256 by
default, 24-hour lifetime). The subject claim (``sub``) is the user ID that
owns video records.

Usage:
    ```python
    from fastapi import Depends
    from tubely.core.auth import get_current_user_id

    @router.get("/protected")
    async def protected_route(user_id: str = Depends(get_current_user_id)):
        return {"user_id": user_id}
    ```
"""

import logging

from datetime import UTC, datetime, timedelta
from typing import Any

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError, jwt

from tubely.config import Settings, get_settings
from tubely.exceptions import Unauthorized


logger = logging.getLogger(__name__)


# =============================================================================
# Security Scheme
# =============================================================================

# Missing credentials are reported by authenticate_token so that every
# authentication failure uses the same 401 error body.
security = HTTPBearer(
    scheme_name="Bearer",
    description="JWT Bearer token authentication.",
    auto_error=False,
)


# =============================================================================
# Token Functions
# =============================================================================


def create_access_token(
    user_id: str,
    settings: Settings | None = None,
    expires_delta: timedelta | None = None,
) -> str:
    """
    Issue a signed access token for ``user_id``.

    Token claims:
    - sub: User ID (subject)
    - exp: Expiration timestamp (``jwt_expiration_hours`` from now by default)
    - iat: Issued at timestamp

    Args:
        user_id: The user's unique identifier.
        settings: Optional Settings instance; defaults to get_settings().
        expires_delta: Override for the token lifetime.

    Returns:
        str: The encoded JWT.
    """
    if settings is None:
        settings = get_settings()

    now = datetime.now(UTC)
    expire = now + (expires_delta or timedelta(hours=settings.jwt_expiration_hours))
    payload = {"sub": user_id, "exp": expire, "iat": now}

    return jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)


def validate_jwt(token: str, settings: Settings) -> dict[str, Any]:
    """
    Verify a token's signature and expiry and return its claims.

    Raises:
        JWTError: If the token is invalid, expired, or signed with another key.
    """
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    except ExpiredSignatureError:
        logger.warning("JWT has expired")
        raise
    except JWTError as e:
        logger.warning("JWT validation failed: %s", str(e))
        raise


# =============================================================================
# Authentication Dependencies
# =============================================================================


async def authenticate_token(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    settings: Settings = Depends(get_settings),
) -> dict[str, Any]:
    """
    Validate the request's Bearer token.

    Returns:
        dict: The validated token claims.

    Raises:
        Unauthorized: If the header is missing or the token does not validate.
    """
    if credentials is None or not credentials.credentials:
        raise Unauthorized("Couldn't find JWT")

    try:
        return validate_jwt(credentials.credentials, settings)
    except JWTError as e:
        raise Unauthorized("Couldn't validate JWT") from e


async def get_current_user_id(
    token_data: dict[str, Any] = Depends(authenticate_token),
) -> str:
    """
    Resolve the authenticated user ID from the token's ``sub`` claim.

    Raises:
        Unauthorized: If the token carries no subject.
    """
    user_id = token_data.get("sub")
    if not user_id or not isinstance(user_id, str):
        logger.warning("Token missing 'sub' claim")
        raise Unauthorized("Invalid token: missing user identifier")
    return user_id


__all__ = [
    "security",
    "create_access_token",
    "validate_jwt",
    "authenticate_token",
    "get_current_user_id",
]
