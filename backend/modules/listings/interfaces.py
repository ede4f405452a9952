"""
Listings module interfaces.

The lease module drives listing transitions through IListingService;
the token binding step reads and writes listing bindings through
IListingRepository.
"""

from typing import Protocol, Optional, Any, runtime_checkable

from shared.models import Actor
from .models import (
    Domain,
    Listing,
    ListingDetail,
    ListingPage,
    ListingQuery,
    ListingStatus,
    ListingUpdate,
    PublishListingRequest,
    VerificationStatus,
)


@runtime_checkable
class IListingRepository(Protocol):
    """
    Storage for domains and listings.

    Listing writes are version-checked: ``update`` raises
    ConcurrentModificationError when ``expected_version`` is stale and
    returns the stored listing with its version bumped otherwise.
    """

    def get_domain(self, domain_id: str) -> Optional[Domain]: ...

    def get_domain_by_name(self, name: str) -> Optional[Domain]: ...

    def create_domain(self, domain: Domain) -> Domain: ...

    def update_domain(self, domain_id: str, fields: dict[str, Any]) -> Domain: ...

    def get(self, listing_id: str) -> Optional[Listing]: ...

    def create(self, listing: Listing) -> Listing: ...

    def update(
        self, listing_id: str, expected_version: int, fields: dict[str, Any]
    ) -> Listing: ...

    def increment_views(self, listing_id: str) -> None: ...

    def list_by_domain(self, domain_id: str) -> list[Listing]: ...

    def find_bound_listing(self, domain_id: str) -> Optional[Listing]:
        """The listing of this domain that currently holds a lease token, if any."""
        ...

    def list_pending_release(self) -> list[Listing]:
        """Listings whose token termination still has to be retried."""
        ...

    def list_failed_release(self) -> list[Listing]:
        """Listings whose token termination failed and will not be retried."""
        ...

    def search(self, query: ListingQuery) -> tuple[list[Listing], int]: ...


@runtime_checkable
class IListingService(Protocol):
    """
    Interface for the listing lifecycle.

    ``mark_leased`` and ``release`` take an already-loaded listing and do
    not lock it: they are called by the lease manager, which holds the
    listing lock for the whole lease operation.
    """

    async def publish(self, lessor_id: str, request: PublishListingRequest) -> Listing:
        """
        Publish a listing for a domain the caller owns.

        Raises:
            OwnershipError: If the caller does not own the domain
            ValidationError: If price or duration is not positive
        """
        ...

    async def cancel(self, listing_id: str, actor: Actor) -> Listing:
        """
        Withdraw an active listing.

        Raises:
            OwnershipError: If the caller is not the lessor
            InvalidStateError: If the listing is not active
        """
        ...

    async def mark_leased(self, listing: Listing) -> Listing:
        """active -> leased. Raises InvalidStateError from any other state."""
        ...

    async def release(self, listing: Listing, expire: bool = False) -> Listing:
        """
        leased -> active, or -> expired when ``expire`` is set.

        Releasing an already-active listing without ``expire`` is a no-op.
        """
        ...

    async def restore_status(self, listing_id: str, status: ListingStatus) -> Listing:
        """Put a listing back into ``status`` while rolling back a lease operation."""
        ...

    async def expire(self, listing_id: str) -> Listing:
        """Time-based expiry entry point for the external scheduler."""
        ...

    async def update_terms(
        self, listing_id: str, actor: Actor, update: ListingUpdate
    ) -> Listing:
        """Change price, duration, description, restrictions or tags of an active listing."""
        ...

    async def get(self, listing_id: str) -> Listing:
        """Load a listing without side effects. Raises ListingNotFoundError."""
        ...

    async def get_listing(
        self, listing_id: str, viewer_id: Optional[str] = None
    ) -> ListingDetail:
        """Load a listing for display, counting the view."""
        ...

    async def search(
        self, query: ListingQuery, viewer_id: Optional[str] = None
    ) -> ListingPage: ...

    async def set_domain_verification(
        self,
        domain_id: str,
        status: VerificationStatus,
        method: Optional[str] = None,
    ) -> Domain: ...

    async def transfer_domain(self, domain_id: str, new_owner_id: str) -> Domain:
        """
        Move a domain to a new owner, cancelling its active listings.

        Raises:
            InvalidStateError: If a listing of the domain is currently leased
        """
        ...
