"""
Authentication module.

Handles registration, password and wallet login, JWT session tokens,
user profiles and pro subscription status.

Public API:
- IAuthService: Interface for auth operations
- User, UserProfile: Stored account and its public view
- Auth exceptions: InvalidTokenError, ExpiredTokenError, etc.
"""

from .interfaces import IAuthService, IUserRepository
from .models import (
    AccountType,
    AuthResult,
    ProfileUpdate,
    ProStatus,
    RegisterRequest,
    TokenPayload,
    User,
    UserProfile,
)
from .exceptions import (
    InvalidTokenError,
    ExpiredTokenError,
    MissingTokenError,
    InvalidCredentialsError,
    InvalidSignatureError,
    UserNotFoundError,
    UserAlreadyExistsError,
    InsufficientPermissionsError,
    ProSubscriptionRequiredError,
    ProSubscriptionExpiredError,
)

__all__ = [
    # Interfaces
    "IAuthService",
    "IUserRepository",
    # Models
    "AccountType",
    "AuthResult",
    "ProfileUpdate",
    "ProStatus",
    "RegisterRequest",
    "TokenPayload",
    "User",
    "UserProfile",
    # Exceptions
    "InvalidTokenError",
    "ExpiredTokenError",
    "MissingTokenError",
    "InvalidCredentialsError",
    "InvalidSignatureError",
    "UserNotFoundError",
    "UserAlreadyExistsError",
    "InsufficientPermissionsError",
    "ProSubscriptionRequiredError",
    "ProSubscriptionExpiredError",
]
