"""
Tubely Authentication Module

Bearer-token authentication for the ingestion API. Token issuance belongs to the
account service; this module only verifies what it receives:

- get_bearer_token: pull the token out of the Authorization header
- validate_jwt: verify an HS-family JWT (signature, issuer, expiry) and return
  the caller's user ID taken from the 'sub' claim
- get_current_user_id: FastAPI dependency combining both
- create_access_token: mint a token with the same claims, used by tests and
  local tooling

Usage:
    ```python
    from fastapi import Depends
    from tubely.core.auth import get_current_user_id

    @router.get("/protected")
    async def protected_route(user_id: UUID = Depends(get_current_user_id)):
        return {"user_id": str(user_id)}
    ```
"""

import logging

from collections.abc import Mapping
from datetime import UTC, datetime, timedelta
from uuid import UUID

from fastapi import Depends, Request
from jose import ExpiredSignatureError, JWTError, jwt

from tubely.config import Settings, get_settings
from tubely.core.exceptions import TokenInvalid, TokenMissing


# Configure module logger
logger = logging.getLogger(__name__)

BEARER_SCHEME = "bearer"

DEFAULT_TOKEN_LIFETIME = timedelta(hours=1)


def get_bearer_token(headers: Mapping[str, str]) -> str:
    """
    Extract the bearer token from request headers.

    Args:
        headers: Request headers. Starlette headers are case-insensitive; plain
            mappings are checked for both common spellings.

    Returns:
        str: The raw token string.

    Raises:
        TokenMissing: If the header is absent, uses another scheme, or is empty.
    """
    auth_header = headers.get("authorization") or headers.get("Authorization") or ""
    scheme, _, token = auth_header.strip().partition(" ")
    token = token.strip()

    if scheme.lower() != BEARER_SCHEME or not token:
        raise TokenMissing()

    return token


def validate_jwt(token: str, settings: Settings) -> UUID:
    """
    Verify a JWT and return the user ID it was issued for.

    Checks the signature with the configured shared secret, the issuer claim
    and the expiry. The subject claim must be a UUID.

    Args:
        token: The encoded JWT.
        settings: Settings holding jwt_secret, jwt_algorithm and jwt_issuer.

    Returns:
        UUID: The authenticated caller's user ID.

    Raises:
        TokenInvalid: If any check fails.
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            issuer=settings.jwt_issuer,
        )
    except ExpiredSignatureError as e:
        logger.warning("JWT has expired")
        raise TokenInvalid("Token has expired") from e
    except JWTError as e:
        logger.warning("JWT validation failed: %s", str(e))
        raise TokenInvalid() from e

    subject = payload.get("sub")
    try:
        user_id = UUID(str(subject))
    except (TypeError, ValueError) as e:
        logger.warning("JWT subject is not a valid user ID: %r", subject)
        raise TokenInvalid("Invalid user ID in token") from e

    logger.debug("JWT validated for subject: %s", user_id)
    return user_id


def create_access_token(
    user_id: UUID,
    settings: Settings,
    expires_in: timedelta = DEFAULT_TOKEN_LIFETIME,
) -> str:
    """
    Create a signed access token for the given user.

    Args:
        user_id: The user the token is issued for.
        settings: Settings holding the signing secret, algorithm and issuer.
        expires_in: Token lifetime. Negative values produce an expired token.

    Returns:
        str: The encoded JWT.
    """
    now = datetime.now(UTC)
    payload = {
        "iss": settings.jwt_issuer,
        "sub": str(user_id),
        "iat": now,
        "exp": now + expires_in,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


async def get_current_user_id(
    request: Request,
    settings: Settings = Depends(get_settings),
) -> UUID:
    """
    FastAPI dependency resolving the authenticated caller's user ID.

    Raises:
        TokenMissing: If no bearer token was sent.
        TokenInvalid: If the token fails verification.
    """
    token = get_bearer_token(request.headers)
    return validate_jwt(token, settings)
