"""
Listing lifecycle service.

Publishes domains for lease and drives listing status transitions. Every
write is version-checked by the repository; public entry points also hold
the per-listing lock so writers inside this process queue up instead of
colliding.
"""

import logging
import math
import uuid
from datetime import datetime, timezone
from typing import Optional, Any

from shared.exceptions import InvalidStateError, OwnershipError, ValidationError
from shared.locks import EntityLocks
from shared.models import Actor

from modules.ledger.interfaces import ILedgerService
from modules.ledger.models import InteractionAction

from .interfaces import IListingService, IListingRepository
from .models import (
    OPEN_LISTING_STATUSES,
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
from .repository import InMemoryListingRepository
from .exceptions import (
    DomainAlreadyListedError,
    DomainNotFoundError,
    InvalidTermsError,
    ListingNotFoundError,
)

logger = logging.getLogger(__name__)

# Search results that get a view interaction per request
TRACKED_SEARCH_RESULTS = 5

VERIFICATION_TRANSITIONS = {
    VerificationStatus.PENDING: {VerificationStatus.VERIFIED, VerificationStatus.FAILED},
    VerificationStatus.FAILED: {VerificationStatus.PENDING},
    VerificationStatus.VERIFIED: set(),
}


def normalize_tags(tags: list[str]) -> list[str]:
    """Lower-case, strip and de-duplicate tags, keeping first-seen order."""
    seen: dict[str, None] = {}
    for tag in tags:
        tag = tag.strip().lower()
        if tag:
            seen.setdefault(tag, None)
    return list(seen)


class ListingService(IListingService):
    """Implementation of the listing lifecycle."""

    def __init__(
        self,
        repository: IListingRepository,
        ledger: Optional[ILedgerService] = None,
        locks: Optional[EntityLocks] = None,
    ):
        self._repo = repository
        self._ledger = ledger
        self._locks = locks or EntityLocks()

    # -------------------------------------------------------------------------
    # Publishing
    # -------------------------------------------------------------------------

    async def publish(self, lessor_id: str, request: PublishListingRequest) -> Listing:
        """
        List a domain for lease, registering the domain on first publish.

        Args:
            lessor_id: User publishing the listing; becomes the domain owner
                if the domain is new
            request: Domain and lease terms

        Returns:
            The new active listing

        Raises:
            InvalidTermsError: If the price or duration is not positive
            OwnershipError: If another user owns the domain
            DomainAlreadyListedError: If the domain has an open listing
        """
        if request.price_amount <= 0:
            raise InvalidTermsError("price_amount", request.price_amount)
        if request.duration_days <= 0:
            raise InvalidTermsError("duration_days", request.duration_days)

        name = request.domain_name.strip().lower()
        async with self._locks.hold("domain", name):
            domain = self._repo.get_domain_by_name(name)
            if domain is None:
                domain = self._repo.create_domain(
                    Domain(
                        id=str(uuid.uuid4()),
                        name=name,
                        tld=name.rsplit(".", 1)[-1],
                        domain_type=request.domain_type,
                        owner_id=lessor_id,
                        existing_site_url=request.existing_site_url,
                    )
                )
                logger.info(f"Registered domain {name} for user {lessor_id}")
            elif domain.owner_id != lessor_id:
                raise OwnershipError(
                    f"User does not own {name}",
                    code="NOT_DOMAIN_OWNER",
                    details={"domain_id": domain.id},
                )

            for existing in self._repo.list_by_domain(domain.id):
                if existing.status in OPEN_LISTING_STATUSES:
                    raise DomainAlreadyListedError(name, existing.id)

            listing = self._repo.create(
                Listing(
                    id=str(uuid.uuid4()),
                    domain_id=domain.id,
                    domain_name=domain.name,
                    lessor_id=lessor_id,
                    lease_type=request.lease_type,
                    price_amount=request.price_amount,
                    price_currency=request.price_currency,
                    duration_days=request.duration_days,
                    description=request.description,
                    restrictions=request.restrictions,
                    tags=normalize_tags(request.tags),
                )
            )

        logger.info(f"Published listing {listing.id} for {name}")
        return listing

    # -------------------------------------------------------------------------
    # Status transitions
    # -------------------------------------------------------------------------

    async def cancel(self, listing_id: str, actor: Actor) -> Listing:
        """Withdraw an active listing. Only the lessor or an admin may cancel."""
        async with self._locks.hold("listing", listing_id):
            listing = self._require(listing_id)
            self._require_lessor(listing, actor)
            if listing.status != ListingStatus.ACTIVE:
                raise InvalidStateError("listing", listing_id, listing.status.value, "cancel")
            cancelled = self._repo.update(
                listing_id, listing.version, {"status": ListingStatus.CANCELLED}
            )
        logger.info(f"Listing {listing_id} cancelled by {actor.user_id}")
        return cancelled

    async def mark_leased(self, listing: Listing) -> Listing:
        """Move an active listing to leased. Caller holds the listing lock."""
        if listing.status != ListingStatus.ACTIVE:
            raise InvalidStateError("listing", listing.id, listing.status.value, "lease")
        return self._repo.update(listing.id, listing.version, {"status": ListingStatus.LEASED})

    async def release(self, listing: Listing, expire: bool = False) -> Listing:
        """
        Return a leased listing to active, or expire an open one.

        Idempotent when the listing is already in the target status.
        """
        target = ListingStatus.EXPIRED if expire else ListingStatus.ACTIVE
        if listing.status == target:
            return listing

        allowed = OPEN_LISTING_STATUSES if expire else {ListingStatus.LEASED}
        if listing.status not in allowed:
            raise InvalidStateError(
                "listing", listing.id, listing.status.value, "expire" if expire else "release"
            )

        released = self._repo.update(listing.id, listing.version, {"status": target})
        logger.debug(f"Listing {listing.id} {listing.status.value} -> {target.value}")
        return released

    async def restore_status(self, listing_id: str, status: ListingStatus) -> Listing:
        """Force a listing back to a status while undoing a failed lease."""
        listing = self._require(listing_id)
        if listing.status == status:
            return listing
        return self._repo.update(listing_id, listing.version, {"status": status})

    async def expire(self, listing_id: str) -> Listing:
        """Expire a listing whose lease term ran out."""
        async with self._locks.hold("listing", listing_id):
            return await self.release(self._require(listing_id), expire=True)

    async def update_terms(
        self, listing_id: str, actor: Actor, update: ListingUpdate
    ) -> Listing:
        """Change the terms of an active listing. Bumps its version."""
        fields: dict[str, Any] = update.model_dump(exclude_none=True)
        if "price_amount" in fields and fields["price_amount"] <= 0:
            raise InvalidTermsError("price_amount", fields["price_amount"])
        if "duration_days" in fields and fields["duration_days"] <= 0:
            raise InvalidTermsError("duration_days", fields["duration_days"])
        if "tags" in fields:
            fields["tags"] = normalize_tags(fields["tags"])

        async with self._locks.hold("listing", listing_id):
            listing = self._require(listing_id)
            self._require_lessor(listing, actor)
            if listing.status != ListingStatus.ACTIVE:
                raise InvalidStateError("listing", listing_id, listing.status.value, "update")
            if not fields:
                return listing
            return self._repo.update(listing_id, listing.version, fields)

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def get(self, listing_id: str) -> Listing:
        """Get a listing by ID without counting a view."""
        return self._require(listing_id)

    async def get_listing(
        self, listing_id: str, viewer_id: Optional[str] = None
    ) -> ListingDetail:
        """
        Get a listing with its domain, counting the view.

        A signed-in viewer also gets a view interaction in the ledger.
        """
        listing = self._require(listing_id)
        self._repo.increment_views(listing_id)

        if viewer_id and self._ledger is not None:
            await self._ledger.record_interaction(
                viewer_id,
                InteractionAction.VIEW,
                domain_id=listing.domain_id,
                listing_id=listing_id,
                metadata={"source": "direct_link"},
            )

        return ListingDetail(
            listing=self._repo.get(listing_id) or listing,
            domain=self._require_domain(listing.domain_id),
        )

    async def search(
        self, query: ListingQuery, viewer_id: Optional[str] = None
    ) -> ListingPage:
        """Search listings with filters, sorting and paging."""
        if (
            query.min_price is not None
            and query.max_price is not None
            and query.min_price > query.max_price
        ):
            raise ValidationError(
                "min_price cannot exceed max_price",
                code="INVALID_PRICE_RANGE",
                details={"min_price": str(query.min_price), "max_price": str(query.max_price)},
            )
        if query.domain_type not in (None, "all", "web2", "web3"):
            raise ValidationError(
                "domain_type must be web2, web3 or all",
                code="INVALID_DOMAIN_TYPE",
                details={"domain_type": query.domain_type},
            )

        query = query.model_copy(update={"tags": normalize_tags(query.tags)})
        listings, total = self._repo.search(query)

        if viewer_id and self._ledger is not None:
            for listing in listings[:TRACKED_SEARCH_RESULTS]:
                await self._ledger.record_interaction(
                    viewer_id,
                    InteractionAction.VIEW,
                    domain_id=listing.domain_id,
                    listing_id=listing.id,
                    metadata={"source": "marketplace"},
                )

        return ListingPage(
            listings=listings,
            total=total,
            page=query.page,
            limit=query.limit,
            total_pages=math.ceil(total / query.limit) if total else 0,
        )

    # -------------------------------------------------------------------------
    # Domains
    # -------------------------------------------------------------------------

    async def set_domain_verification(
        self,
        domain_id: str,
        status: VerificationStatus,
        method: Optional[str] = None,
    ) -> Domain:
        """Move a domain's verification status along its allowed transitions."""
        domain = self._require_domain(domain_id)
        if status not in VERIFICATION_TRANSITIONS[domain.verification_status]:
            raise InvalidStateError(
                "domain", domain_id, domain.verification_status.value, f"mark {status.value}"
            )

        fields: dict[str, Any] = {"verification_status": status}
        if method:
            fields["verification_method"] = method
        if status == VerificationStatus.VERIFIED:
            fields["verified_at"] = datetime.now(timezone.utc)

        logger.info(f"Domain {domain.name} verification -> {status.value}")
        return self._repo.update_domain(domain_id, fields)

    async def transfer_domain(self, domain_id: str, new_owner_id: str) -> Domain:
        """
        Hand a domain to a new owner, cancelling its open listings.

        Holds the domain lock for the whole transfer so a publish under the
        old owner cannot slip in between.

        Args:
            domain_id: Domain to transfer
            new_owner_id: User who receives the domain

        Returns:
            The domain with its new owner

        Raises:
            DomainNotFoundError: If the domain does not exist
            InvalidStateError: If a listing of the domain is leased
        """
        domain = self._require_domain(domain_id)
        async with self._locks.hold("domain", domain.name):
            listings = self._repo.list_by_domain(domain_id)
            for listing in listings:
                if listing.status == ListingStatus.LEASED:
                    raise InvalidStateError("domain", domain_id, "leased", "transfer")

            for listing in listings:
                if listing.status != ListingStatus.ACTIVE:
                    continue
                async with self._locks.hold("listing", listing.id):
                    current = self._require(listing.id)
                    if current.status == ListingStatus.LEASED:
                        raise InvalidStateError("domain", domain_id, "leased", "transfer")
                    if current.status == ListingStatus.ACTIVE:
                        self._repo.update(
                            current.id, current.version, {"status": ListingStatus.CANCELLED}
                        )
                        logger.info(f"Listing {current.id} cancelled by transfer of {domain.name}")

            transferred = self._repo.update_domain(domain_id, {"owner_id": new_owner_id})
        logger.info(f"Domain {domain.name} transferred to {new_owner_id}")
        return transferred

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _require(self, listing_id: str) -> Listing:
        listing = self._repo.get(listing_id)
        if listing is None:
            raise ListingNotFoundError(listing_id)
        return listing

    def _require_domain(self, domain_id: str) -> Domain:
        domain = self._repo.get_domain(domain_id)
        if domain is None:
            raise DomainNotFoundError(domain_id)
        return domain

    @staticmethod
    def _require_lessor(listing: Listing, actor: Actor) -> None:
        if actor.user_id != listing.lessor_id and not actor.is_admin:
            raise OwnershipError(
                "Only the lessor can change this listing",
                code="NOT_LISTING_OWNER",
                details={"listing_id": listing.id},
            )


# Module-level instance getter
_service_instance: Optional[ListingService] = None


def get_listing_service() -> ListingService:
    """Get the listing service singleton (in-memory storage, no ledger)."""
    global _service_instance
    if _service_instance is None:
        _service_instance = ListingService(InMemoryListingRepository())
    return _service_instance


def reset_listing_service() -> None:
    """Reset the listing service singleton (for testing)."""
    global _service_instance
    _service_instance = None
