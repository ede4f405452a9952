"""
JWT Authentication middleware.

Reads the bearer session token issued by the auth module and turns it into
an AuthenticatedUser. Failures are raised as auth module errors, so they
reach clients in the same error shape as every other failure.
"""

from typing import Optional
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from datetime import datetime, timezone

from shared.config import get_settings
from shared.models import AuthenticatedUser
from modules.auth.exceptions import (
    ExpiredTokenError,
    InsufficientPermissionsError,
    InvalidTokenError,
    MissingTokenError,
)
from modules.auth.models import TokenPayload

# Bearer token extractor
bearer_scheme = HTTPBearer(auto_error=False)


def decode_token(token: str) -> TokenPayload:
    """
    Decode and validate a session token.

    Raises:
        ExpiredTokenError: If the token is past its exp claim
        InvalidTokenError: If the signature or claims do not check out
    """
    settings = get_settings()

    if not settings.jwt_secret:
        raise InvalidTokenError("Server authentication not configured")

    try:
        claims = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
        )
    except jwt.ExpiredSignatureError:
        raise ExpiredTokenError()
    except JWTError as e:
        raise InvalidTokenError(f"Invalid token: {e}")

    if "sub" not in claims:
        raise InvalidTokenError("Invalid token: missing subject")
    return TokenPayload(**claims)


def get_user_from_payload(payload: TokenPayload) -> AuthenticatedUser:
    return AuthenticatedUser(
        id=payload.sub,
        role=payload.role,
        issued_at=datetime.fromtimestamp(payload.iat, tz=timezone.utc),
    )


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> AuthenticatedUser:
    """
    Dependency that requires a signed-in user.

    Usage:
        @router.post("")
        async def publish(user: AuthenticatedUser = Depends(get_current_user)):
            ...
    """
    if credentials is None:
        raise MissingTokenError()
    return get_user_from_payload(decode_token(credentials.credentials))


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[AuthenticatedUser]:
    """
    Dependency for endpoints that work with or without a token, such as
    listing search. A bad token is treated like no token.
    """
    if credentials is None:
        return None

    try:
        return get_user_from_payload(decode_token(credentials.credentials))
    except (ExpiredTokenError, InvalidTokenError):
        return None


async def require_admin(
    user: AuthenticatedUser = Depends(get_current_user),
) -> AuthenticatedUser:
    """Dependency that requires an administrator token."""
    if not user.is_admin:
        raise InsufficientPermissionsError("admin", user.role)
    return user
