"""
Lease lifecycle service.

Owns lease status transitions and keeps every listing's status consistent
with its leases: a listing is leased exactly while one of its leases is
active.

Locks are always taken listing first, then lease.
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Any

from shared.exceptions import AuthorizationError, InvalidStateError, ValidationError
from shared.locks import EntityLocks
from shared.models import Actor

from modules.auth.interfaces import IAuthService
from modules.ledger.interfaces import ILedgerService
from modules.ledger.models import InteractionAction, TransactionType
from modules.listings.interfaces import IListingService
from modules.listings.models import Listing, ListingStatus
from modules.tokens.exceptions import WalletRequiredError
from modules.tokens.interfaces import ITokenBindingService

from .interfaces import ILeaseService, ILeaseRepository
from .models import Lease, LeaseRole, LeaseStatus, LeaseTerms
from .unit_of_work import LeaseUnitOfWork
from .exceptions import (
    InvalidLeasePeriodError,
    LeaseNotEndedError,
    LeaseNotFoundError,
    SelfLeaseError,
)

logger = logging.getLogger(__name__)


class LeaseService(ILeaseService):
    """Implementation of the lease lifecycle."""

    def __init__(
        self,
        repository: ILeaseRepository,
        listings: IListingService,
        ledger: ILedgerService,
        tokens: Optional[ITokenBindingService] = None,
        users: Optional[IAuthService] = None,
        locks: Optional[EntityLocks] = None,
    ):
        self._repo = repository
        self._listings = listings
        self._ledger = ledger
        self._tokens = tokens
        self._users = users
        self._locks = locks or EntityLocks()

    # -------------------------------------------------------------------------
    # Creation
    # -------------------------------------------------------------------------

    async def create_lease(
        self, listing_id: str, lessee_id: str, terms: LeaseTerms
    ) -> Lease:
        """
        Lease a listing to a lessee.

        Creates the lease, marks the listing leased and records the payment
        and interaction in the ledger; with issue_token a lease token is
        minted and bound to the listing as well. Any failure undoes every
        step already taken, including a minted token.

        Args:
            listing_id: Listing to lease
            lessee_id: User taking the lease
            terms: Period, payment and token options

        Returns:
            The active lease

        Raises:
            InvalidStateError: If the listing is not active
            SelfLeaseError: If the lessee is the lessor
            WalletRequiredError: If a token was requested and a party has no wallet
            BindingConflictError: If the domain already has a bound token
        """
        async with self._locks.hold("listing", listing_id):
            listing = await self._listings.get(listing_id)
            if listing.status != ListingStatus.ACTIVE:
                raise InvalidStateError("listing", listing_id, listing.status.value, "lease")
            if self._repo.list_by_listing(listing_id, status=LeaseStatus.ACTIVE):
                # Listing row says active but a lease still holds it
                raise InvalidStateError("listing", listing_id, ListingStatus.LEASED.value, "lease")
            if listing.lessor_id == lessee_id:
                raise SelfLeaseError(listing_id)

            lease = self._build_lease(listing, lessee_id, terms)
            addresses = await self._wallet_addresses(listing, lessee_id) if terms.issue_token else None

            async with LeaseUnitOfWork() as uow:
                self._repo.create(lease)
                uow.on_rollback("delete lease", lambda: self._repo.delete(lease.id))

                leased = await self._listings.mark_leased(listing)
                uow.on_rollback(
                    "restore listing",
                    lambda: self._listings.restore_status(listing_id, ListingStatus.ACTIVE),
                )

                payment = await self._ledger.record_transaction(
                    lessee_id,
                    TransactionType.LEASE_PAYMENT,
                    lease.payment_amount,
                    lease_id=lease.id,
                    currency=lease.payment_currency,
                    metadata={
                        "listing_id": listing_id,
                        "platform_fee": str(self._ledger.platform_fee(lease.payment_amount)),
                    },
                )
                uow.on_rollback(
                    "discard payment", lambda: self._ledger.discard_transaction(payment.id)
                )

                interaction = await self._ledger.record_interaction(
                    lessee_id,
                    InteractionAction.LEASE_START,
                    domain_id=listing.domain_id,
                    listing_id=listing_id,
                    metadata={"lease_id": lease.id},
                )
                uow.on_rollback(
                    "discard interaction",
                    lambda: self._ledger.discard_interaction(interaction.id),
                )

                if addresses is not None:
                    lessor_address, lessee_address = addresses
                    bound = await self._tokens.bind(
                        leased,
                        lease.id,
                        lessor_address,
                        lessee_address,
                        lease.start_date,
                        lease.end_date,
                        lease.payment_amount,
                        agreement_hash=lease.agreement_hash,
                    )
                    uow.on_rollback("release token", lambda: self._tokens.unbind(bound))
                    lease = self._repo.update(
                        lease.id,
                        lease.version,
                        {"nft_transferred_at": datetime.now(timezone.utc)},
                    )

        logger.info(f"Lease {lease.id} created: {listing.domain_name} -> {lessee_id}")
        return lease

    def _build_lease(self, listing: Listing, lessee_id: str, terms: LeaseTerms) -> Lease:
        """Resolve the lease period and payment from the terms and the listing."""
        start = terms.start_date or datetime.now(timezone.utc)
        end = terms.end_date or start + timedelta(days=listing.duration_days)
        if end <= start:
            raise InvalidLeasePeriodError(start.isoformat(), end.isoformat())

        amount = terms.payment_amount if terms.payment_amount is not None else listing.price_amount
        if amount <= 0:
            raise ValidationError(
                "Payment amount must be greater than zero",
                code="INVALID_PAYMENT",
                details={"payment_amount": str(amount)},
            )

        return Lease(
            id=str(uuid.uuid4()),
            listing_id=listing.id,
            domain_id=listing.domain_id,
            domain_name=listing.domain_name,
            lessor_id=listing.lessor_id,
            lessee_id=lessee_id,
            start_date=start,
            end_date=end,
            payment_amount=amount,
            payment_currency=terms.payment_currency or listing.price_currency,
            auto_renew=terms.auto_renew,
            agreement_hash=terms.agreement_hash,
        )

    async def _wallet_addresses(self, listing: Listing, lessee_id: str) -> tuple[str, str]:
        if self._tokens is None or self._users is None:
            raise ValidationError(
                "Lease tokens are not available on this deployment",
                code="TOKENS_UNAVAILABLE",
            )

        lessor = await self._users.get_user_by_id(listing.lessor_id)
        if lessor is None or not lessor.wallet_address:
            raise WalletRequiredError(listing.lessor_id, "lessor")
        lessee = await self._users.get_user_by_id(lessee_id)
        if lessee is None or not lessee.wallet_address:
            raise WalletRequiredError(lessee_id, "lessee")
        return lessor.wallet_address, lessee.wallet_address

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------

    async def complete(
        self, lease_id: str, actor: Actor, mutual_agreement: bool = False
    ) -> Lease:
        """
        Complete a lease whose term has ended.

        With mutual_agreement the parties may complete it early.
        """

        def check(lease: Lease) -> None:
            self._require_party(lease, actor, allow_admin=True)
            now = datetime.now(timezone.utc)
            if now < lease.end_date and not mutual_agreement:
                raise LeaseNotEndedError(lease.id, lease.end_date.isoformat())

        return await self._end_lease(lease_id, LeaseStatus.COMPLETED, "complete", check, {})

    async def terminate(self, lease_id: str, actor: Actor, reason: str) -> Lease:
        """End an active lease early. Either party or an admin may terminate."""

        def check(lease: Lease) -> None:
            self._require_party(lease, actor, allow_admin=True)

        return await self._end_lease(
            lease_id,
            LeaseStatus.TERMINATED,
            "terminate",
            check,
            {"termination_reason": reason},
        )

    async def dispute(self, lease_id: str, actor: Actor, reason: str) -> Lease:
        """Flag an active lease as disputed. The listing stays leased."""
        async with self._locks.hold("lease", lease_id):
            lease = self._require(lease_id)
            self._require_party(lease, actor, allow_admin=False)
            if lease.status != LeaseStatus.ACTIVE:
                raise InvalidStateError("lease", lease_id, lease.status.value, "dispute")
            disputed = self._repo.update(
                lease_id,
                lease.version,
                {"status": LeaseStatus.DISPUTED, "dispute_reason": reason},
            )
        logger.info(f"Lease {lease_id} disputed by {actor.user_id}")
        return disputed

    async def _end_lease(
        self,
        lease_id: str,
        target: LeaseStatus,
        attempted: str,
        check: Callable[[Lease], None],
        extra: dict[str, Any],
    ) -> Lease:
        """Move an active lease to a final status and release its listing."""
        listing_id = self._require(lease_id).listing_id

        async with self._locks.hold("listing", listing_id):
            async with self._locks.hold("lease", lease_id):
                lease = self._require(lease_id)
                if lease.status != LeaseStatus.ACTIVE:
                    raise InvalidStateError("lease", lease_id, lease.status.value, attempted)
                check(lease)

                async with LeaseUnitOfWork() as uow:
                    ended = self._repo.update(
                        lease_id,
                        lease.version,
                        {**extra, "status": target, "ended_at": datetime.now(timezone.utc)},
                    )
                    uow.on_rollback(
                        "reactivate lease",
                        lambda: self._repo.update(
                            lease_id,
                            ended.version,
                            {"status": LeaseStatus.ACTIVE, "ended_at": None},
                        ),
                    )

                    listing = await self._listings.get(listing_id)
                    if listing.status == ListingStatus.LEASED:
                        listing = await self._listings.release(listing)
                    else:
                        logger.warning(
                            f"Listing {listing_id} was {listing.status.value} "
                            f"while lease {lease_id} was active"
                        )

                # Token release failures are deferred or flagged, never fail the request
                if listing.has_binding and self._tokens is not None:
                    await self._tokens.unbind(listing)

        logger.info(f"Lease {lease_id} {target.value}")
        return ended

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def get_lease(self, lease_id: str, actor: Optional[Actor] = None) -> Lease:
        """Get a lease, checking the actor is a party to it when one is given."""
        lease = self._require(lease_id)
        if actor is not None:
            self._require_party(lease, actor, allow_admin=True)
        return lease

    async def list_leases_for_user(
        self,
        user_id: str,
        role: LeaseRole = LeaseRole.ANY,
        status: Optional[LeaseStatus] = None,
    ) -> list[Lease]:
        return self._repo.list_for_user(user_id, role=role, status=status)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _require(self, lease_id: str) -> Lease:
        lease = self._repo.get(lease_id)
        if lease is None:
            raise LeaseNotFoundError(lease_id)
        return lease

    @staticmethod
    def _require_party(lease: Lease, actor: Actor, allow_admin: bool) -> None:
        if lease.is_party(actor.user_id) or (allow_admin and actor.is_admin):
            return
        raise AuthorizationError(
            "Only the lessor or lessee can act on this lease",
            code="NOT_LEASE_PARTY",
            details={"lease_id": lease.id},
        )
