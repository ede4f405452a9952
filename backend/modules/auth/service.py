"""
Authentication service implementation.

Issues and verifies the backend's own JWT session tokens, hashes passwords
with bcrypt and verifies wallet signatures (EIP-191 personal messages).
"""

import logging
import re
import secrets
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt
from dateutil.relativedelta import relativedelta
from eth_account import Account
from eth_account.messages import encode_defunct

from shared.config import Settings, get_settings
from shared.exceptions import ValidationError
from shared.models import AuthenticatedUser

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
from .repository import InMemoryUserRepository
from .exceptions import (
    ExpiredTokenError,
    InvalidCredentialsError,
    InvalidSignatureError,
    InvalidTokenError,
    MissingTokenError,
    ProSubscriptionExpiredError,
    ProSubscriptionRequiredError,
    UserNotFoundError,
)

logger = logging.getLogger(__name__)

PASSWORD_PATTERN = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)")
MIN_PASSWORD_LENGTH = 8
MAX_PASSWORD_BYTES = 72  # bcrypt input limit


class AuthService(IAuthService):
    """
    Implementation of the authentication service.

    Sessions are stateless HS256 tokens; users live in the injected
    repository.
    """

    def __init__(
        self,
        repository: IUserRepository,
        settings: Optional[Settings] = None,
    ):
        self._repo = repository
        self._settings = settings or get_settings()

    # -------------------------------------------------------------------------
    # Tokens
    # -------------------------------------------------------------------------

    def issue_token(self, user_id: str, role: str = "user") -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "sub": user_id,
            "role": role,
            "iat": int(now.timestamp()),
            "exp": int((now + timedelta(days=self._settings.jwt_expire_days)).timestamp()),
        }
        return jwt.encode(
            payload,
            self._settings.jwt_secret,
            algorithm=self._settings.jwt_algorithm,
        )

    def verify_token(self, token: str, ignore_expiration: bool = False) -> TokenPayload:
        if not token:
            raise MissingTokenError()

        try:
            payload = jwt.decode(
                token,
                self._settings.jwt_secret,
                algorithms=[self._settings.jwt_algorithm],
                options={"verify_exp": not ignore_expiration},
            )
        except jwt.ExpiredSignatureError:
            raise ExpiredTokenError()
        except jwt.InvalidTokenError as e:
            raise InvalidTokenError(str(e))

        return TokenPayload(**payload)

    async def validate_token(self, token: str) -> AuthenticatedUser:
        payload = self.verify_token(token)
        return AuthenticatedUser(
            id=payload.sub,
            role=payload.role,
            issued_at=datetime.fromtimestamp(payload.iat, tz=timezone.utc),
        )

    # -------------------------------------------------------------------------
    # Passwords and wallets
    # -------------------------------------------------------------------------

    def hash_password(self, password: str) -> str:
        salt = bcrypt.gensalt(rounds=self._settings.bcrypt_rounds)
        return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")

    def verify_password(self, password: str, password_hash: str) -> bool:
        secret = password.encode("utf-8")
        if len(secret) > MAX_PASSWORD_BYTES:
            return False
        return bcrypt.checkpw(secret, password_hash.encode("utf-8"))

    @staticmethod
    def recover_wallet_address(message: str, signature: str) -> str:
        """Address that signed ``message`` as an EIP-191 personal message."""
        return Account.recover_message(encode_defunct(text=message), signature=signature)

    # -------------------------------------------------------------------------
    # Account flows
    # -------------------------------------------------------------------------

    async def register(self, request: RegisterRequest) -> AuthResult:
        name = request.name.strip()
        self._validate_password(request.password)
        if not 2 <= len(name) <= 100:
            raise ValidationError(
                "Name must be between 2 and 100 characters",
                code="INVALID_NAME",
                details={"field": "name"},
            )

        user = self._repo.create(
            User(
                id=str(uuid.uuid4()),
                email=str(request.email).lower(),
                password_hash=self.hash_password(request.password),
                name=name,
                account_type=request.account_type,
            )
        )
        logger.info(f"Registered user {user.id}")
        return self._auth_result(user, is_new_user=True)

    async def login(self, email: str, password: str) -> AuthResult:
        user = self._repo.get_by_email(email.lower())
        if user is None or not self.verify_password(password, user.password_hash):
            raise InvalidCredentialsError()

        user = self._repo.update(user.id, {"last_active": datetime.now(timezone.utc)})
        return self._auth_result(user)

    async def wallet_login(
        self, wallet_address: str, signature: str, message: str
    ) -> AuthResult:
        try:
            recovered = self.recover_wallet_address(message, signature)
        except Exception as e:
            # Malformed signatures surface as assorted decoding errors
            raise InvalidSignatureError(wallet_address) from e

        if recovered.lower() != wallet_address.lower():
            raise InvalidSignatureError(wallet_address)

        user = self._repo.get_by_wallet(wallet_address)
        if user is not None:
            user = self._repo.update(user.id, {"last_active": datetime.now(timezone.utc)})
            return self._auth_result(user)

        user = self._repo.create(
            User(
                id=str(uuid.uuid4()),
                email=f"{wallet_address.lower()}@{self._settings.wallet_email_domain}",
                password_hash=self.hash_password(secrets.token_urlsafe(32)),
                name=f"Wallet User {wallet_address[:6]}",
                wallet_address=wallet_address,
                account_type=AccountType.BOTH,
            )
        )
        logger.info(f"Created wallet user {user.id}")
        return self._auth_result(user, is_new_user=True)

    async def refresh(self, token: str) -> str:
        payload = self.verify_token(token, ignore_expiration=True)
        user = self._repo.get(payload.sub)
        if user is None:
            raise UserNotFoundError(payload.sub)
        return self.issue_token(user.id, user.role)

    # -------------------------------------------------------------------------
    # Profile
    # -------------------------------------------------------------------------

    async def get_user_by_id(self, user_id: str) -> Optional[User]:
        return self._repo.get(user_id)

    async def get_profile(self, user_id: str) -> UserProfile:
        return self._require(user_id).to_profile()

    async def update_profile(self, user_id: str, update: ProfileUpdate) -> UserProfile:
        user = self._require(user_id)
        fields = update.model_dump(exclude_none=True)
        if "name" in fields:
            fields["name"] = fields["name"].strip()

        budget_min = fields.get("budget_min", user.budget_min)
        budget_max = fields.get("budget_max", user.budget_max)
        if budget_max and budget_min > budget_max:
            raise ValidationError(
                "budget_min cannot exceed budget_max",
                code="INVALID_BUDGET",
                details={"budget_min": str(budget_min), "budget_max": str(budget_max)},
            )

        if not fields:
            return user.to_profile()
        return self._repo.update(user_id, fields).to_profile()

    async def check_pro_status(self, user_id: str) -> ProStatus:
        user = self._require(user_id)
        if not user.is_pro:
            raise ProSubscriptionRequiredError(user_id)

        if user.pro_expires_at and user.pro_expires_at < datetime.now(timezone.utc):
            self._repo.update(user_id, {"is_pro": False, "pro_expires_at": None})
            logger.info(f"Pro subscription for user {user_id} expired")
            raise ProSubscriptionExpiredError(user_id)

        return ProStatus(is_pro=True, pro_expires_at=user.pro_expires_at)

    async def grant_pro(self, user_id: str, months: int) -> ProStatus:
        if months < 1:
            raise ValidationError(
                "months must be at least 1",
                code="INVALID_DURATION",
                details={"months": months},
            )
        user = self._require(user_id)
        now = datetime.now(timezone.utc)
        start = user.pro_expires_at if user.pro_expires_at and user.pro_expires_at > now else now
        expires_at = start + relativedelta(months=months)
        updated = self._repo.update(user_id, {"is_pro": True, "pro_expires_at": expires_at})
        return ProStatus(is_pro=updated.is_pro, pro_expires_at=updated.pro_expires_at)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _require(self, user_id: str) -> User:
        user = self._repo.get(user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        return user

    def _auth_result(self, user: User, is_new_user: bool = False) -> AuthResult:
        return AuthResult(
            token=self.issue_token(user.id, user.role),
            user=user.to_profile(),
            is_new_user=is_new_user,
        )

    @staticmethod
    def _validate_password(password: str) -> None:
        if (
            len(password) < MIN_PASSWORD_LENGTH
            or len(password.encode("utf-8")) > MAX_PASSWORD_BYTES
            or not PASSWORD_PATTERN.match(password)
        ):
            raise ValidationError(
                "Password must be at least 8 characters and contain "
                "upper-case, lower-case and numeric characters",
                code="WEAK_PASSWORD",
                details={"field": "password"},
            )


# Module-level instance getter
_service_instance: Optional[AuthService] = None


def get_auth_service() -> AuthService:
    """Get the auth service singleton (in-memory storage)."""
    global _service_instance
    if _service_instance is None:
        _service_instance = AuthService(InMemoryUserRepository())
    return _service_instance


def reset_auth_service() -> None:
    """Reset the auth service singleton (for testing)."""
    global _service_instance
    _service_instance = None
