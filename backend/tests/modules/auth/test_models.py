import pytest
from decimal import Decimal
from pydantic import ValidationError

from modules.auth.models import (
    AccountType,
    GrantProRequest,
    ProfileUpdate,
    RegisterRequest,
    TokenPayload,
)
from tests.conftest import make_user


class TestTokenPayload:
    def test_parse_payload(self):
        """Should parse token claims from dict."""
        payload = TokenPayload(sub="user-123", iat=1704063600, exp=1704067200)
        assert payload.sub == "user-123"
        assert payload.role == "user"

    def test_missing_required_fields(self):
        """Should fail without sub/exp/iat."""
        with pytest.raises(ValidationError):
            TokenPayload(sub="user-123")


class TestUser:
    def test_role_follows_admin_flag(self):
        assert make_user("u").role == "user"
        assert make_user("a", is_admin=True).role == "admin"

    def test_profile_excludes_secrets(self):
        """to_profile drops the password hash and admin flag."""
        profile = make_user("u", wallet_address="0xabc").to_profile()
        dumped = profile.model_dump()
        assert "password_hash" not in dumped
        assert "is_admin" not in dumped
        assert dumped["wallet_address"] == "0xabc"

    def test_defaults(self):
        user = make_user("u")
        assert user.account_type == AccountType.LESSEE
        assert user.budget_min == Decimal("0")
        assert user.preferred_tlds == [".com", ".io"]


class TestRequests:
    def test_register_requires_valid_email(self):
        with pytest.raises(ValidationError):
            RegisterRequest(email="not-an-email", password="Passw0rdX", name="Al")

    def test_profile_update_name_length(self):
        with pytest.raises(ValidationError):
            ProfileUpdate(name="A")

    def test_profile_update_rejects_negative_budget(self):
        with pytest.raises(ValidationError):
            ProfileUpdate(budget_min=Decimal("-1"))

    @pytest.mark.parametrize("months", [0, 37])
    def test_grant_pro_bounds(self, months):
        with pytest.raises(ValidationError):
            GrantProRequest(months=months)
