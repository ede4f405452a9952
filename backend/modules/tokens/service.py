"""
Token binding service.

Maintains the one-token-per-domain binding between a listing and a lease
token minted on the lease token contract. Issuance failures propagate so
the lease manager can roll back. Transient termination failures are
deferred and retried; rejected or unconfirmed ones are flagged for an
operator.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from web3 import Web3

from shared.exceptions import (
    BindingConflictError,
    ConcurrentModificationError,
    ExternalServiceError,
    InvalidStateError,
    TransientError,
)
from shared.locks import EntityLocks

from modules.listings.exceptions import ListingNotFoundError
from modules.listings.interfaces import IListingRepository
from modules.listings.models import Listing

from .interfaces import ILeaseTokenClient, ITokenBindingService
from .models import LeaseTokenRequest, UnbindResult

logger = logging.getLogger(__name__)

CLEARED_BINDING = {
    "nft_contract_address": None,
    "nft_token_id": None,
    "binding_pending_release": False,
    "binding_release_failed": False,
}


def agreement_hash_for(listing: Listing, lease_id: str, lessee_address: str) -> str:
    """Deterministic 32-byte agreement hash when the parties supplied none."""
    return Web3.to_hex(
        Web3.keccak(text=f"{listing.id}:{lease_id}:{listing.domain_name}:{lessee_address.lower()}")
    )


class TokenBindingService(ITokenBindingService):
    """Binds lease tokens to listings and releases them again."""

    def __init__(
        self,
        client: ILeaseTokenClient,
        listings: IListingRepository,
        locks: Optional[EntityLocks] = None,
    ):
        self._client = client
        self._listings = listings
        self._locks = locks or EntityLocks()

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
        bound = listing if listing.has_binding else self._listings.find_bound_listing(listing.domain_id)
        if bound is not None:
            raise BindingConflictError(listing.domain_name, bound.nft_contract_address)

        token = await self._client.issue_lease_token(
            LeaseTokenRequest(
                domain_name=listing.domain_name,
                lessor_address=lessor_address,
                lessee_address=lessee_address,
                start_date=start_date,
                end_date=end_date,
                price_wei=Web3.to_wei(price, "ether"),
                restrictions=listing.restrictions or "",
                agreement_hash=agreement_hash
                or agreement_hash_for(listing, lease_id, lessee_address),
            )
        )

        try:
            updated = self._listings.update(
                listing.id,
                listing.version,
                {
                    "nft_contract_address": token.contract_address,
                    "nft_token_id": token.token_id,
                    "binding_pending_release": False,
                },
            )
        except Exception:
            # The token exists on-chain but nothing records it; burn it again
            logger.error(f"Recording token {token.token_id} on listing {listing.id} failed")
            await self._client.terminate_lease_token(token.contract_address, token.token_id)
            raise

        logger.info(f"Bound lease token {token.token_id} to {listing.domain_name}")
        return updated

    async def unbind(self, listing: Listing) -> UnbindResult:
        if not listing.has_binding:
            return UnbindResult(listing_id=listing.id, released=True)

        token_id = listing.nft_token_id
        try:
            tx_hash = await self._client.terminate_lease_token(
                listing.nft_contract_address, token_id
            )
        except TransientError as e:
            logger.warning(f"Deferring release of token {token_id} on {listing.domain_name}: {e}")
            if not listing.binding_pending_release:
                self._record(listing, {"binding_pending_release": True})
            return UnbindResult(listing_id=listing.id, released=False, error=str(e))
        except ExternalServiceError as e:
            # Permanent, or sent without a receipt
            logger.error(
                f"Release of token {token_id} on {listing.domain_name} needs attention: {e}"
            )
            self._record(
                listing,
                {"binding_pending_release": False, "binding_release_failed": True},
            )
            return UnbindResult(
                listing_id=listing.id, released=False, error=str(e), needs_attention=True
            )

        cleared = self._record(listing, CLEARED_BINDING)
        if not cleared:
            return UnbindResult(
                listing_id=listing.id,
                released=False,
                tx_hash=tx_hash,
                error=f"token {token_id} terminated but the listing still records it",
                needs_attention=True,
            )
        logger.info(f"Released lease token {token_id} from {listing.domain_name}")
        return UnbindResult(listing_id=listing.id, released=True, tx_hash=tx_hash)

    def _record(self, listing: Listing, fields: dict[str, Any]) -> bool:
        """
        Write binding fields, re-reading the listing once on a version clash.

        Returns:
            False when the write could not be applied; the caller's
            on-chain outcome is then only in the log
        """
        try:
            self._listings.update(listing.id, listing.version, fields)
            return True
        except ConcurrentModificationError as e:
            logger.warning(f"Listing {listing.id} changed underneath, re-reading: {e}")

        current = self._listings.get(listing.id)
        if current is None or current.nft_token_id != listing.nft_token_id:
            logger.error(f"Could not record {sorted(fields)}: listing {listing.id} rebound")
            return False
        try:
            self._listings.update(current.id, current.version, fields)
            return True
        except ConcurrentModificationError as e:
            logger.error(f"Could not record {sorted(fields)} on listing {listing.id}: {e}")
            return False

    async def retry_pending_unbinds(self) -> list[UnbindResult]:
        results = []
        for pending in self._listings.list_pending_release():
            async with self._locks.hold("listing", pending.id):
                listing = self._listings.get(pending.id)
                if listing is None or not listing.binding_pending_release:
                    continue
                results.append(await self.unbind(listing))

        released = sum(1 for r in results if r.released)
        if results:
            logger.info(f"Retried {len(results)} pending token releases, {released} released")
        return results

    def list_failed_releases(self) -> list[Listing]:
        return self._listings.list_failed_release()

    async def resolve_failed_release(self, listing_id: str) -> Listing:
        """
        Clear a binding an operator has reconciled with the chain by hand.

        Raises:
            ListingNotFoundError: If the listing does not exist
            InvalidStateError: If the listing's release is not flagged as failed
        """
        async with self._locks.hold("listing", listing_id):
            listing = self._listings.get(listing_id)
            if listing is None:
                raise ListingNotFoundError(listing_id)
            if not listing.binding_release_failed:
                raise InvalidStateError(
                    "listing", listing_id, "release not failed", "resolve release"
                )
            resolved = self._listings.update(listing.id, listing.version, CLEARED_BINDING)
        logger.info(f"Resolved failed release of token {listing.nft_token_id} on {listing.domain_name}")
        return resolved
