"""
Authentication module data models.

These models define the data structures used by the auth module
and exposed to other modules through the interface.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field, EmailStr


class AccountType(str, Enum):
    """Which side of the marketplace a user is on."""

    LESSOR = "lessor"
    LESSEE = "lessee"
    BOTH = "both"


class CommunicationStyle(str, Enum):
    """How the user prefers to be addressed."""

    TECHNICAL = "technical"
    BUSINESS = "business"
    CASUAL = "casual"


class TokenPayload(BaseModel):
    """
    Decoded session token payload.

    Tokens are HS256 JWTs signed with the backend's own secret.
    """

    sub: str = Field(..., description="Subject (user ID)")
    iat: int = Field(..., description="Issued at timestamp")
    exp: int = Field(..., description="Expiration timestamp")
    role: str = Field(default="user", description="'user' or 'admin'")


class User(BaseModel):
    """
    A stored user account.

    Holds the password hash; never return this model from an endpoint,
    use to_profile() instead.
    """

    id: str = Field(..., description="User ID (UUID)")
    email: str = Field(..., description="Unique email (lower-cased)")
    password_hash: str = Field(..., description="bcrypt hash")
    name: str = Field(..., description="Display name")
    account_type: AccountType = Field(default=AccountType.LESSEE)
    wallet_address: Optional[str] = Field(None, description="Unique wallet address")
    is_admin: bool = Field(default=False, description="Platform administrator")

    # Preferences
    business_category: list[str] = Field(default_factory=list)
    project_goals: list[str] = Field(default_factory=list)
    budget_min: Decimal = Field(default=Decimal("0"))
    budget_max: Decimal = Field(default=Decimal("0"))
    currency: str = Field(default="USD")
    preferred_tlds: list[str] = Field(default_factory=lambda: [".com", ".io"])
    lease_duration: str = Field(default="long-term")
    with_existing_site: bool = Field(default=False)
    blockchain_preference: list[str] = Field(default_factory=lambda: ["none"])
    communication_style: CommunicationStyle = Field(default=CommunicationStyle.BUSINESS)

    # Verification flags
    email_verified: bool = Field(default=False)
    icann_approved: bool = Field(default=False)
    kyc_completed: bool = Field(default=False)

    # Pro subscription
    is_pro: bool = Field(default=False)
    pro_expires_at: Optional[datetime] = Field(None)

    last_active: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def role(self) -> str:
        return "admin" if self.is_admin else "user"

    def to_profile(self) -> "UserProfile":
        return UserProfile(**self.model_dump(exclude={"password_hash", "is_admin"}))


class UserProfile(BaseModel):
    """Full user profile as returned by the API."""

    id: str
    email: str
    name: str
    account_type: AccountType
    wallet_address: Optional[str] = None
    business_category: list[str] = Field(default_factory=list)
    project_goals: list[str] = Field(default_factory=list)
    budget_min: Decimal = Decimal("0")
    budget_max: Decimal = Decimal("0")
    currency: str = "USD"
    preferred_tlds: list[str] = Field(default_factory=list)
    lease_duration: str = "long-term"
    with_existing_site: bool = False
    blockchain_preference: list[str] = Field(default_factory=list)
    communication_style: CommunicationStyle = CommunicationStyle.BUSINESS
    email_verified: bool = False
    icann_approved: bool = False
    kyc_completed: bool = False
    is_pro: bool = False
    pro_expires_at: Optional[datetime] = None
    last_active: Optional[datetime] = None
    created_at: Optional[datetime] = None


class RegisterRequest(BaseModel):
    """Request to register with email and password."""

    email: EmailStr = Field(..., description="Email address")
    password: str = Field(..., description="At least 8 chars, upper, lower and digit")
    name: str = Field(..., description="Display name")
    account_type: AccountType = Field(default=AccountType.LESSEE)


class LoginRequest(BaseModel):
    """Request to log in with email and password."""

    email: EmailStr
    password: str


class WalletLoginRequest(BaseModel):
    """Request to log in by signing a message with a wallet."""

    wallet_address: str = Field(..., description="Claimed wallet address")
    signature: str = Field(..., description="Hex signature of message")
    message: str = Field(..., description="The signed message")


class RefreshRequest(BaseModel):
    """Request to exchange a (possibly expired) token for a fresh one."""

    token: str


class ProfileUpdate(BaseModel):
    """Partial profile update. Omitted fields are left unchanged."""

    name: Optional[str] = Field(None, min_length=2, max_length=100)
    account_type: Optional[AccountType] = None
    business_category: Optional[list[str]] = None
    project_goals: Optional[list[str]] = None
    budget_min: Optional[Decimal] = Field(None, ge=0)
    budget_max: Optional[Decimal] = Field(None, ge=0)
    currency: Optional[str] = None
    preferred_tlds: Optional[list[str]] = None
    lease_duration: Optional[str] = None
    with_existing_site: Optional[bool] = None
    blockchain_preference: Optional[list[str]] = None
    communication_style: Optional[CommunicationStyle] = None


class AuthResult(BaseModel):
    """Token plus the user it was issued for."""

    token: str
    user: UserProfile
    is_new_user: bool = False


class TokenResponse(BaseModel):
    """Response from token refresh."""

    token: str


class ProStatus(BaseModel):
    """Current pro subscription state."""

    is_pro: bool
    pro_expires_at: Optional[datetime] = None


class GrantProRequest(BaseModel):
    """Admin request to extend a user's pro subscription."""

    months: int = Field(..., ge=1, le=36)
