"""
Authentication module exceptions.

These exceptions are raised by the auth module and can be caught
by API error handlers to return appropriate HTTP responses.
"""

from shared.exceptions import (
    AuthenticationError,
    AuthorizationError,
    MarketError,
    NotFoundError,
)


class InvalidTokenError(AuthenticationError):
    """Raised when a JWT token is invalid or malformed."""

    def __init__(self, message: str = "Invalid authentication token"):
        super().__init__(message, code="INVALID_TOKEN")


class ExpiredTokenError(AuthenticationError):
    """Raised when a JWT token has expired."""

    def __init__(self, message: str = "Authentication token has expired"):
        super().__init__(message, code="TOKEN_EXPIRED")


class MissingTokenError(AuthenticationError):
    """Raised when no authentication token is provided."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message, code="MISSING_TOKEN")


class InvalidCredentialsError(AuthenticationError):
    """Raised when email or password is wrong. Deliberately does not say which."""

    def __init__(self):
        super().__init__("Email or password is incorrect", code="INVALID_CREDENTIALS")


class InvalidSignatureError(AuthenticationError):
    """Raised when a wallet signature does not recover to the claimed address."""

    def __init__(self, wallet_address: str):
        super().__init__(
            "Wallet verification failed",
            code="INVALID_SIGNATURE",
            details={"wallet_address": wallet_address},
        )


class UserNotFoundError(NotFoundError):
    """Raised when a user doesn't exist in the database."""

    def __init__(self, user_id: str):
        super().__init__(
            f"User not found: {user_id}",
            code="USER_NOT_FOUND",
            details={"user_id": user_id},
        )


class UserAlreadyExistsError(MarketError):
    """Raised when registering an email that is already taken."""

    def __init__(self, email: str):
        super().__init__(
            f"User already exists: {email}",
            code="USER_ALREADY_EXISTS",
            details={"email": email},
        )


class InsufficientPermissionsError(AuthorizationError):
    """Raised when user lacks required permissions."""

    def __init__(self, required_role: str, user_role: str):
        super().__init__(
            f"Insufficient permissions. Required: {required_role}, has: {user_role}",
            code="INSUFFICIENT_PERMISSIONS",
            details={"required_role": required_role, "user_role": user_role},
        )


class ProSubscriptionRequiredError(AuthorizationError):
    """Raised when a pro-only feature is used without a subscription."""

    def __init__(self, user_id: str):
        super().__init__(
            "Pro subscription required",
            code="PRO_REQUIRED",
            details={"user_id": user_id, "upgrade_url": "/upgrade"},
        )


class ProSubscriptionExpiredError(AuthorizationError):
    """Raised when the user's pro subscription has lapsed."""

    def __init__(self, user_id: str):
        super().__init__(
            "Pro subscription expired",
            code="PRO_EXPIRED",
            details={"user_id": user_id, "upgrade_url": "/upgrade"},
        )
