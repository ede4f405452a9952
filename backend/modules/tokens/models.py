"""
Tokens module data models.

A lease token is an ERC721 on the lease-token contract carrying the terms
of one lease. At most one token is bound to a domain at a time.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class LeaseTokenRequest(BaseModel):
    """Arguments of the contract's mint call."""

    domain_name: str = Field(..., description="Domain the token grants use of")
    lessor_address: str = Field(..., description="Lessor wallet")
    lessee_address: str = Field(..., description="Lessee wallet, receives the token")
    start_date: datetime
    end_date: datetime
    price_wei: int = Field(..., ge=0, description="Lease price in wei")
    restrictions: str = Field(default="")
    agreement_hash: str = Field(..., description="0x-prefixed 32-byte hash of the agreement")


class IssuedToken(BaseModel):
    """A minted lease token."""

    contract_address: str
    token_id: str
    tx_hash: Optional[str] = None


class UnbindResult(BaseModel):
    """Outcome of releasing a listing's token."""

    listing_id: str
    released: bool = Field(..., description="Binding cleared")
    tx_hash: Optional[str] = None
    error: Optional[str] = Field(None, description="Why termination did not complete")
    needs_attention: bool = Field(
        default=False,
        description="Flagged for an operator instead of being retried",
    )
