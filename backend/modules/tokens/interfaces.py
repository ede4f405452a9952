"""
Tokens module interfaces.
"""

from datetime import datetime
from decimal import Decimal
from typing import Protocol, Optional, runtime_checkable

from modules.listings.models import Listing
from .models import IssuedToken, LeaseTokenRequest, UnbindResult


@runtime_checkable
class ILeaseTokenClient(Protocol):
    """
    Blockchain collaborator for the lease token contract.

    Both calls raise TransientError subclasses on network failures,
    PermanentError subclasses on reverts and node rejections, and
    TransactionPendingError when a sent transaction was never confirmed.
    """

    @property
    def contract_address(self) -> str: ...

    async def issue_lease_token(self, request: LeaseTokenRequest) -> IssuedToken: ...

    async def terminate_lease_token(self, contract_address: str, token_id: str) -> str:
        """Terminate (burn) a lease token. Returns the transaction hash."""
        ...


@runtime_checkable
class ITokenBindingService(Protocol):
    """Keeps the one-token-per-domain binding in step with the chain."""

    async def bind(
        self,
        listing: Listing,
        lease_id: str,
        lessor_address: str,
        lessee_address: str,
        start_date: datetime,
        end_date: datetime,
        price: Decimal,
        agreement_hash: Optional[str] = None,
    ) -> Listing:
        """
        Issue a token and record it on the listing.

        Raises:
            BindingConflictError: If the domain already has a bound token
            TransientError: Issuance failed on the network, nothing recorded
            PermanentError: The contract rejected issuance, nothing recorded
        """
        ...

    async def unbind(self, listing: Listing) -> UnbindResult:
        """
        Terminate the listing's token and clear the binding.

        Never raises for blockchain failures. On a network failure the
        binding is kept and flagged for retry; on a rejected or unconfirmed
        termination it is kept and flagged for an operator.
        """
        ...

    async def retry_pending_unbinds(self) -> list[UnbindResult]: ...

    def list_failed_releases(self) -> list[Listing]: ...

    async def resolve_failed_release(self, listing_id: str) -> Listing: ...
