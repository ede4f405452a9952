"""
Listings module data models.

A Domain is owned by exactly one user. A Listing is a lessor's offer for a
domain and moves through:

    active -> leased -> active      (lease ended normally)
    active | leased -> expired      (time-based, external scheduler)
    active -> cancelled             (lessor withdrew it; terminal)
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional, Any

from pydantic import BaseModel, Field


class DomainType(str, Enum):
    """Kind of name system the domain lives in."""

    WEB2 = "web2"  # DNS
    WEB3 = "web3"  # ENS, Unstoppable, ...


class VerificationStatus(str, Enum):
    """Domain ownership verification status."""

    PENDING = "pending"
    VERIFIED = "verified"
    FAILED = "failed"


class LeaseType(str, Enum):
    """Commercial shape of the offer."""

    FIXED = "fixed"
    AUCTION = "auction"
    RENT_TO_OWN = "rent_to_own"


class ListingStatus(str, Enum):
    """Listing lifecycle status."""

    ACTIVE = "active"        # Open for leasing
    LEASED = "leased"        # Exactly one active lease references it
    EXPIRED = "expired"      # Offer window ran out
    CANCELLED = "cancelled"  # Withdrawn by the lessor


OPEN_LISTING_STATUSES = frozenset({ListingStatus.ACTIVE, ListingStatus.LEASED})


class ListingSort(str, Enum):
    """Fields a search can be ordered by."""

    CREATED_AT = "created_at"
    PRICE_AMOUNT = "price_amount"
    VIEWS_COUNT = "views_count"
    DURATION_DAYS = "duration_days"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class Domain(BaseModel):
    """A domain name registered on the marketplace."""

    id: str = Field(..., description="Domain ID (UUID)")
    name: str = Field(..., description="Fully qualified name, lower-cased")
    tld: str = Field(..., description="Suffix after the last dot")
    domain_type: DomainType = Field(..., description="web2 or web3")
    owner_id: str = Field(..., description="Owning user")
    verification_status: VerificationStatus = Field(default=VerificationStatus.PENDING)
    verification_method: Optional[str] = Field(None, description="e.g. dns_txt")
    existing_site_url: Optional[str] = Field(None, description="Live site on the domain")
    seo_metrics: dict[str, Any] = Field(default_factory=dict)
    verified_at: Optional[datetime] = Field(None)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class Listing(BaseModel):
    """A lessor's offer for a domain."""

    id: str = Field(..., description="Listing ID (UUID)")
    domain_id: str = Field(..., description="Listed domain")
    domain_name: str = Field(..., description="Listed domain name")
    lessor_id: str = Field(..., description="Offering user (the domain owner)")
    lease_type: LeaseType = Field(default=LeaseType.FIXED)
    price_amount: Decimal = Field(..., description="Price for the whole term")
    price_currency: str = Field(default="USD")
    duration_days: int = Field(..., description="Lease term in days")
    description: Optional[str] = Field(None)
    restrictions: Optional[str] = Field(None, description="Usage restrictions")
    tags: list[str] = Field(default_factory=list)
    status: ListingStatus = Field(default=ListingStatus.ACTIVE)

    # Lease token binding
    nft_contract_address: Optional[str] = Field(None)
    nft_token_id: Optional[str] = Field(None)
    binding_pending_release: bool = Field(
        default=False,
        description="Token termination failed on-chain and awaits retry",
    )
    binding_release_failed: bool = Field(
        default=False,
        description="Token termination was rejected or left unconfirmed; needs an operator",
    )

    views_count: int = Field(default=0)
    featured: bool = Field(default=False)
    version: int = Field(default=1, description="Optimistic concurrency version")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def has_binding(self) -> bool:
        return self.nft_token_id is not None


class ListingDetail(BaseModel):
    """A listing together with its domain."""

    listing: Listing
    domain: Domain


class PublishListingRequest(BaseModel):
    """Request to list a domain for lease."""

    domain_name: str = Field(..., min_length=3, max_length=255)
    domain_type: DomainType = Field(...)
    price_amount: Decimal = Field(..., description="Must be positive")
    price_currency: str = Field(default="USD", max_length=10)
    duration_days: int = Field(..., description="Must be positive")
    lease_type: LeaseType = Field(default=LeaseType.FIXED)
    description: Optional[str] = Field(None)
    restrictions: Optional[str] = Field(None)
    tags: list[str] = Field(default_factory=list)
    existing_site_url: Optional[str] = Field(None, max_length=500)


class ListingUpdate(BaseModel):
    """Partial update of an active listing's terms. Status is not editable."""

    price_amount: Optional[Decimal] = None
    duration_days: Optional[int] = None
    description: Optional[str] = None
    restrictions: Optional[str] = None
    tags: Optional[list[str]] = None


class ListingQuery(BaseModel):
    """Search, filter and pagination parameters."""

    search: Optional[str] = Field(None, description="Text in name, description or tags")
    domain_type: Optional[str] = Field(None, description="web2, web3 or all")
    min_price: Optional[Decimal] = Field(None, ge=0)
    max_price: Optional[Decimal] = Field(None, ge=0)
    with_site: bool = Field(default=False, description="Only domains with a live site")
    tags: list[str] = Field(default_factory=list, description="Any of these tags")
    status: ListingStatus = Field(default=ListingStatus.ACTIVE)
    sort_by: ListingSort = Field(default=ListingSort.CREATED_AT)
    order: SortOrder = Field(default=SortOrder.DESC)
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1, le=100)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


class ListingPage(BaseModel):
    """One page of search results."""

    listings: list[Listing]
    total: int
    page: int
    limit: int
    total_pages: int


class VerificationUpdate(BaseModel):
    """Result reported by the domain verification collaborator."""

    status: VerificationStatus
    method: Optional[str] = None


class DomainTransferRequest(BaseModel):
    """Admin request to move a domain to another owner."""

    new_owner_id: str
