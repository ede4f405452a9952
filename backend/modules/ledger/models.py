"""
Ledger module data models.

Transactions and interactions are append-only records. A transaction's
status moves pending -> completed/failed once; the only later change is
completed -> refunded, made together with a new refund transaction.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional, Any

from pydantic import BaseModel, Field


class TransactionType(str, Enum):
    """Types of ledger transactions."""

    LEASE_PAYMENT = "lease_payment"  # Lessee pays for a lease
    PLATFORM_FEE = "platform_fee"    # Marketplace commission
    REFUND = "refund"                # Money returned for a completed payment
    WITHDRAWAL = "withdrawal"        # Lessor pays out their balance


class TransactionStatus(str, Enum):
    """Transaction settlement status."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class InteractionAction(str, Enum):
    """What a user did."""

    VIEW = "view"
    SEARCH = "search"
    FAVORITE = "favorite"
    CONTACT = "contact"
    LEASE_START = "lease_start"


class Transaction(BaseModel):
    """A ledger entry."""

    id: str = Field(..., description="Transaction ID (UUID)")
    user_id: str = Field(..., description="User the money belongs to")
    lease_id: Optional[str] = Field(None, description="Related lease, if any")
    type: TransactionType = Field(..., description="Transaction type")
    amount: Decimal = Field(..., gt=0, description="Amount (always positive)")
    currency: str = Field(default="USD", description="Currency code")
    status: TransactionStatus = Field(
        default=TransactionStatus.PENDING,
        description="Settlement status",
    )
    payment_method: Optional[str] = Field(None, description="e.g. card, crypto")
    payment_provider: Optional[str] = Field(None, description="Payment provider name")
    tx_hash: Optional[str] = Field(None, description="On-chain transaction hash")
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class Interaction(BaseModel):
    """A write-once interaction history event."""

    id: str = Field(..., description="Interaction ID (UUID)")
    user_id: str = Field(..., description="Acting user")
    action: InteractionAction = Field(..., description="Action type")
    domain_id: Optional[str] = Field(None, description="Domain involved")
    listing_id: Optional[str] = Field(None, description="Listing involved")
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class TransactionListResponse(BaseModel):
    """API response for transaction history."""

    transactions: list[Transaction] = Field(..., description="Transaction list")
    total: int = Field(..., description="Total transaction count")
    has_more: bool = Field(..., description="Whether more transactions exist")
