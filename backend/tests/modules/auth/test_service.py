import pytest
import jwt
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from eth_account import Account
from eth_account.messages import encode_defunct
from eth_utils import to_hex

from modules.auth.models import AccountType, ProfileUpdate, RegisterRequest
from modules.auth.repository import InMemoryUserRepository
from modules.auth.service import AuthService
from modules.auth.exceptions import (
    ExpiredTokenError,
    InvalidCredentialsError,
    InvalidSignatureError,
    InvalidTokenError,
    MissingTokenError,
    ProSubscriptionExpiredError,
    ProSubscriptionRequiredError,
    UserAlreadyExistsError,
    UserNotFoundError,
)
from shared.exceptions import ValidationError
from tests.conftest import TEST_WALLET_KEY, make_test_settings, make_user


class TestAuthServiceTokens:
    @pytest.fixture
    def service(self):
        """Create auth service with in-memory storage."""
        return AuthService(InMemoryUserRepository(), make_test_settings())

    @pytest.fixture
    def expired_token(self):
        """Create an expired JWT token."""
        now = datetime.now(timezone.utc)
        payload = {
            "sub": "user-123",
            "role": "user",
            "exp": now - timedelta(hours=1),
            "iat": now - timedelta(hours=2),
        }
        return jwt.encode(payload, "test-secret-key-for-testing-only", algorithm="HS256")

    @pytest.mark.asyncio
    async def test_validate_issued_token(self, service):
        """Should validate a token it issued and return the user."""
        user = await service.validate_token(service.issue_token("user-123", "admin"))
        assert user.id == "user-123"
        assert user.is_admin is True
        assert user.issued_at is not None

    @pytest.mark.asyncio
    async def test_validate_expired_token(self, service, expired_token):
        """Should raise ExpiredTokenError for expired token."""
        with pytest.raises(ExpiredTokenError):
            await service.validate_token(expired_token)

    @pytest.mark.asyncio
    async def test_validate_invalid_token(self, service):
        """Should raise InvalidTokenError for malformed token."""
        with pytest.raises(InvalidTokenError):
            await service.validate_token("not-a-valid-token")

    @pytest.mark.asyncio
    async def test_validate_wrong_secret(self, service):
        """Tokens signed with another secret are rejected."""
        token = jwt.encode(
            {"sub": "u", "iat": 0, "exp": 9999999999}, "other-secret", algorithm="HS256"
        )
        with pytest.raises(InvalidTokenError):
            await service.validate_token(token)

    @pytest.mark.asyncio
    async def test_validate_empty_token(self, service):
        """Should raise MissingTokenError for empty token."""
        with pytest.raises(MissingTokenError):
            await service.validate_token("")

    def test_verify_ignoring_expiration(self, service, expired_token):
        """Expired tokens can still be read for refresh."""
        payload = service.verify_token(expired_token, ignore_expiration=True)
        assert payload.sub == "user-123"


class TestAuthServiceAccounts:
    @pytest.fixture
    def repo(self):
        return InMemoryUserRepository()

    @pytest.fixture
    def service(self, repo):
        return AuthService(repo, make_test_settings())

    @pytest.fixture
    def register_request(self):
        return RegisterRequest(
            email="Alice@Example.com",
            password="Passw0rdX",
            name="  Alice  ",
            account_type=AccountType.LESSOR,
        )

    @pytest.mark.asyncio
    async def test_register_creates_user(self, service, repo, register_request):
        """Registration stores a normalized user and returns a token."""
        result = await service.register(register_request)

        assert result.is_new_user is True
        assert result.user.email == "alice@example.com"
        assert result.user.name == "Alice"
        stored = repo.get(result.user.id)
        assert stored.password_hash != "Passw0rdX"
        assert service.verify_token(result.token).sub == result.user.id

    @pytest.mark.asyncio
    async def test_register_duplicate_email(self, service, register_request):
        """Registering the same email twice fails."""
        await service.register(register_request)
        with pytest.raises(UserAlreadyExistsError):
            await service.register(register_request)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("password", ["short1A", "alllowercase1", "NoDigitsHere"])
    async def test_register_weak_password(self, service, password):
        """Weak passwords are rejected."""
        request = RegisterRequest(email="a@example.com", password=password, name="Alice")
        with pytest.raises(ValidationError) as exc_info:
            await service.register(request)
        assert exc_info.value.code == "WEAK_PASSWORD"

    @pytest.mark.asyncio
    async def test_register_bad_name(self, service):
        request = RegisterRequest(email="a@example.com", password="Passw0rdX", name=" A ")
        with pytest.raises(ValidationError) as exc_info:
            await service.register(request)
        assert exc_info.value.code == "INVALID_NAME"

    @pytest.mark.asyncio
    async def test_login(self, service, register_request):
        """Login succeeds with the right password, case-insensitive email."""
        await service.register(register_request)
        result = await service.login("ALICE@example.com", "Passw0rdX")
        assert result.is_new_user is False
        assert result.user.email == "alice@example.com"

    @pytest.mark.asyncio
    async def test_login_wrong_password(self, service, register_request):
        await service.register(register_request)
        with pytest.raises(InvalidCredentialsError):
            await service.login("alice@example.com", "WrongPass1")

    @pytest.mark.asyncio
    async def test_login_unknown_email(self, service):
        with pytest.raises(InvalidCredentialsError):
            await service.login("nobody@example.com", "Passw0rdX")

    @pytest.mark.asyncio
    async def test_refresh_unknown_user(self, service):
        with pytest.raises(UserNotFoundError):
            await service.refresh(service.issue_token("ghost"))

    @pytest.mark.asyncio
    async def test_refresh_carries_role(self, service, repo):
        repo.create(make_user("admin-1", is_admin=True))
        token = await service.refresh(service.issue_token("admin-1"))
        assert service.verify_token(token).role == "admin"


class TestAuthServiceWallet:
    @pytest.fixture
    def repo(self):
        return InMemoryUserRepository()

    @pytest.fixture
    def service(self, repo):
        return AuthService(repo, make_test_settings())

    @pytest.fixture
    def account(self):
        return Account.from_key(TEST_WALLET_KEY)

    def _sign(self, message: str) -> str:
        signed = Account.sign_message(encode_defunct(text=message), private_key=TEST_WALLET_KEY)
        return to_hex(signed.signature)

    @pytest.mark.asyncio
    async def test_first_login_creates_user(self, service, account):
        """A valid signature from an unknown wallet creates an account."""
        message = "Sign in to Domain Lease"
        result = await service.wallet_login(account.address, self._sign(message), message)

        assert result.is_new_user is True
        assert result.user.wallet_address == account.address
        assert result.user.account_type == AccountType.BOTH

    @pytest.mark.asyncio
    async def test_second_login_reuses_user(self, service, account):
        message = "Sign in to Domain Lease"
        first = await service.wallet_login(account.address, self._sign(message), message)
        second = await service.wallet_login(
            account.address.lower(), self._sign(message), message
        )
        assert second.is_new_user is False
        assert second.user.id == first.user.id

    @pytest.mark.asyncio
    async def test_signature_for_other_address(self, service):
        message = "Sign in to Domain Lease"
        with pytest.raises(InvalidSignatureError):
            await service.wallet_login(
                "0x2222222222222222222222222222222222222222", self._sign(message), message
            )

    @pytest.mark.asyncio
    async def test_malformed_signature(self, service, account):
        with pytest.raises(InvalidSignatureError):
            await service.wallet_login(account.address, "0xdeadbeef", "hello")


class TestAuthServiceProfile:
    @pytest.fixture
    def repo(self):
        repo = InMemoryUserRepository()
        repo.create(make_user("user-1"))
        return repo

    @pytest.fixture
    def service(self, repo):
        return AuthService(repo, make_test_settings())

    @pytest.mark.asyncio
    async def test_get_profile_hides_hash(self, service):
        profile = await service.get_profile("user-1")
        assert not hasattr(profile, "password_hash")

    @pytest.mark.asyncio
    async def test_get_profile_unknown(self, service):
        with pytest.raises(UserNotFoundError):
            await service.get_profile("ghost")

    @pytest.mark.asyncio
    async def test_update_profile(self, service):
        profile = await service.update_profile(
            "user-1", ProfileUpdate(name=" Bob ", budget_max=Decimal("500"))
        )
        assert profile.name == "Bob"
        assert profile.budget_max == Decimal("500")

    @pytest.mark.asyncio
    async def test_update_profile_budget_order(self, service):
        with pytest.raises(ValidationError) as exc_info:
            await service.update_profile(
                "user-1", ProfileUpdate(budget_min=Decimal("10"), budget_max=Decimal("5"))
            )
        assert exc_info.value.code == "INVALID_BUDGET"

    @pytest.mark.asyncio
    async def test_pro_required(self, service):
        with pytest.raises(ProSubscriptionRequiredError):
            await service.check_pro_status("user-1")

    @pytest.mark.asyncio
    async def test_grant_then_check_pro(self, service):
        granted = await service.grant_pro("user-1", 2)
        assert granted.is_pro is True
        status = await service.check_pro_status("user-1")
        assert status.pro_expires_at == granted.pro_expires_at

    @pytest.mark.asyncio
    async def test_grant_extends_live_subscription(self, service):
        first = await service.grant_pro("user-1", 1)
        second = await service.grant_pro("user-1", 1)
        assert second.pro_expires_at > first.pro_expires_at

    @pytest.mark.asyncio
    async def test_grant_rejects_zero_months(self, service):
        with pytest.raises(ValidationError):
            await service.grant_pro("user-1", 0)

    @pytest.mark.asyncio
    async def test_expired_pro_is_cleared(self, service, repo):
        repo.update(
            "user-1",
            {"is_pro": True, "pro_expires_at": datetime.now(timezone.utc) - timedelta(days=1)},
        )
        with pytest.raises(ProSubscriptionExpiredError):
            await service.check_pro_status("user-1")
        assert repo.get("user-1").is_pro is False
