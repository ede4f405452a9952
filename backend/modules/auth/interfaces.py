"""
Authentication module interface.

Other modules should depend on IAuthService, not the concrete implementation.
This enables testing with mocks and future extraction to a microservice.
"""

from typing import Protocol, Optional, Any, runtime_checkable

from shared.models import AuthenticatedUser

from .models import (
    AuthResult,
    ProfileUpdate,
    ProStatus,
    RegisterRequest,
    TokenPayload,
    User,
    UserProfile,
)


@runtime_checkable
class IUserRepository(Protocol):
    """Storage for user accounts."""

    def get(self, user_id: str) -> Optional[User]: ...

    def get_by_email(self, email: str) -> Optional[User]: ...

    def get_by_wallet(self, wallet_address: str) -> Optional[User]: ...

    def create(self, user: User) -> User:
        """
        Raises:
            UserAlreadyExistsError: If the email or wallet is taken
        """
        ...

    def update(self, user_id: str, fields: dict[str, Any]) -> User:
        """
        Raises:
            UserNotFoundError: If the user doesn't exist
        """
        ...


@runtime_checkable
class IAuthService(Protocol):
    """
    Interface for authentication operations.

    This protocol defines the contract that the auth module exposes
    to other modules. Implementations must provide all these methods.
    """

    def issue_token(self, user_id: str, role: str = "user") -> str:
        """Sign a session token valid for the configured number of days."""
        ...

    def verify_token(self, token: str, ignore_expiration: bool = False) -> TokenPayload:
        """
        Verify a session token.

        Raises:
            MissingTokenError, ExpiredTokenError, InvalidTokenError
        """
        ...

    async def validate_token(self, token: str) -> AuthenticatedUser:
        """
        Validate a JWT token and return the authenticated user.

        Raises:
            AuthenticationError: If token is invalid or expired
        """
        ...

    async def register(self, request: RegisterRequest) -> AuthResult:
        """
        Create an account and log it in.

        Raises:
            ValidationError: Weak password or bad name
            UserAlreadyExistsError: Email taken
        """
        ...

    async def login(self, email: str, password: str) -> AuthResult:
        """
        Raises:
            InvalidCredentialsError: Unknown email or wrong password
        """
        ...

    async def wallet_login(
        self, wallet_address: str, signature: str, message: str
    ) -> AuthResult:
        """
        Log in (creating the account on first use) by wallet signature.

        Raises:
            InvalidSignatureError: Signature does not match the address
        """
        ...

    async def refresh(self, token: str) -> str:
        """
        Exchange a token, expired or not, for a fresh one.

        Raises:
            InvalidTokenError: Bad signature
            UserNotFoundError: The user no longer exists
        """
        ...

    async def get_user_by_id(self, user_id: str) -> Optional[User]:
        """Get a stored user, or None."""
        ...

    async def get_profile(self, user_id: str) -> UserProfile:
        """
        Raises:
            UserNotFoundError: If the user doesn't exist
        """
        ...

    async def update_profile(self, user_id: str, update: ProfileUpdate) -> UserProfile:
        """Apply a partial profile update."""
        ...

    async def check_pro_status(self, user_id: str) -> ProStatus:
        """
        Confirm the user has a live pro subscription.

        An expired subscription is cleared as a side effect.

        Raises:
            ProSubscriptionRequiredError, ProSubscriptionExpiredError
        """
        ...

    async def grant_pro(self, user_id: str, months: int) -> ProStatus:
        """Extend the pro subscription by whole calendar months."""
        ...
