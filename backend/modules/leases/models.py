"""
Leases module data models.

Lease status moves one way only:

    active -> completed    (term ended, or both parties agreed)
    active -> terminated   (lessor, lessee or admin ended it early)
    active -> disputed     (frozen pending external resolution)
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class LeaseStatus(str, Enum):
    """Lease lifecycle status."""

    ACTIVE = "active"
    COMPLETED = "completed"
    TERMINATED = "terminated"
    DISPUTED = "disputed"


class LeaseRole(str, Enum):
    """Which side of a lease a user is on, for listing queries."""

    LESSOR = "lessor"
    LESSEE = "lessee"
    ANY = "any"


class Lease(BaseModel):
    """An accepted agreement between a lessor and a lessee for a listing."""

    id: str = Field(..., description="Lease ID (UUID)")
    listing_id: str = Field(..., description="Leased listing")
    domain_id: str = Field(..., description="Domain of the listing")
    domain_name: str = Field(..., description="Domain name of the listing")
    lessor_id: str = Field(..., description="Listing owner")
    lessee_id: str = Field(..., description="Renting user")
    start_date: datetime
    end_date: datetime
    payment_amount: Decimal
    payment_currency: str = Field(default="USD")
    status: LeaseStatus = Field(default=LeaseStatus.ACTIVE)
    auto_renew: bool = Field(default=False)
    agreement_hash: Optional[str] = Field(None, description="Hash of the signed agreement")
    nft_transferred_at: Optional[datetime] = Field(None, description="When the lease token was minted")
    escrow_tx_hash: Optional[str] = Field(None)
    termination_reason: Optional[str] = Field(None)
    dispute_reason: Optional[str] = Field(None)
    ended_at: Optional[datetime] = Field(None)
    version: int = Field(default=1, description="Optimistic concurrency version")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def is_party(self, user_id: str) -> bool:
        return user_id in (self.lessor_id, self.lessee_id)


class LeaseTerms(BaseModel):
    """Terms a lessee commits to. Omitted values come from the listing."""

    start_date: Optional[datetime] = Field(None, description="Defaults to now")
    end_date: Optional[datetime] = Field(
        None, description="Defaults to start plus the listing's duration"
    )
    payment_amount: Optional[Decimal] = Field(None, description="Defaults to the listing price")
    payment_currency: Optional[str] = Field(None, max_length=10)
    auto_renew: bool = Field(default=False)
    issue_token: bool = Field(default=False, description="Mint a lease token for the lessee")
    agreement_hash: Optional[str] = Field(
        None, pattern=r"^0x[0-9a-fA-F]{64}$", description="32-byte hex hash"
    )


class CreateLeaseRequest(LeaseTerms):
    """Request body for creating a lease."""

    listing_id: str


class CompleteLeaseRequest(BaseModel):
    mutual_agreement: bool = Field(
        default=False, description="Both parties agreed to end before the end date"
    )


class TerminateLeaseRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=1000)


class DisputeLeaseRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=1000)


class LeaseListResponse(BaseModel):
    leases: list[Lease]
    total: int
