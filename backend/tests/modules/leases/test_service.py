"""
Lease lifecycle tests.

Run against a fully wired in-memory container so listing status, ledger
entries and token bindings can all be checked after each operation.
"""

import asyncio

import pytest
import pytest_asyncio
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import AsyncMock, patch

from modules.ledger.models import InteractionAction, TransactionStatus, TransactionType
from modules.leases.exceptions import (
    InvalidLeasePeriodError,
    LeaseNotEndedError,
    LeaseNotFoundError,
    SelfLeaseError,
)
from modules.leases.models import LeaseRole, LeaseStatus, LeaseTerms
from modules.leases.repository import InMemoryLeaseRepository
from modules.leases.service import LeaseService
from modules.listings.models import ListingStatus
from modules.tokens.exceptions import (
    BlockchainUnavailableError,
    ContractRevertError,
    WalletRequiredError,
)
from shared.exceptions import (
    AuthorizationError,
    BindingConflictError,
    ConcurrentModificationError,
    InvalidStateError,
    MarketError,
    ValidationError,
)
from shared.models import Actor
from tests.conftest import make_user, publish_request


@pytest_asyncio.fixture
async def listing(container, lessor):
    return await container.listings.publish(lessor.user_id, publish_request())


@pytest.fixture
def leases(container):
    return container.leases


def lease_repo(container) -> InMemoryLeaseRepository:
    return container.leases._repo


async def assert_listing_consistent(container, listing_id: str) -> None:
    """A listing is leased exactly while one of its leases is active."""
    listing = await container.listings.get(listing_id)
    active = lease_repo(container).list_by_listing(listing_id, status=LeaseStatus.ACTIVE)
    assert len(active) <= 1
    assert (listing.status == ListingStatus.LEASED) == (len(active) == 1)


class TestCreateLease:
    @pytest.mark.asyncio
    async def test_create_defaults_from_listing(self, container, leases, listing, lessee):
        lease = await leases.create_lease(listing.id, lessee.user_id, LeaseTerms())

        assert lease.status == LeaseStatus.ACTIVE
        assert lease.payment_amount == Decimal("100")
        assert lease.end_date - lease.start_date == timedelta(days=30)
        assert lease.lessor_id == "lessor-1"
        assert lease.domain_name == "example.com"
        assert lease.nft_transferred_at is None
        assert (await container.listings.get(listing.id)).status == ListingStatus.LEASED
        await assert_listing_consistent(container, listing.id)

    @pytest.mark.asyncio
    async def test_create_records_payment_and_interaction(
        self, container, leases, listing, lessee
    ):
        lease = await leases.create_lease(listing.id, lessee.user_id, LeaseTerms())

        transactions, total = await container.ledger.get_transaction_history(lessee.user_id)
        assert total == 1
        payment = transactions[0]
        assert payment.type == TransactionType.LEASE_PAYMENT
        assert payment.status == TransactionStatus.PENDING
        assert payment.lease_id == lease.id
        assert payment.metadata["platform_fee"] == "5.00"

        interactions = await container.ledger.list_interactions(lessee.user_id)
        assert [i.action for i in interactions] == [InteractionAction.LEASE_START]

    @pytest.mark.asyncio
    async def test_create_with_explicit_terms(self, leases, listing, lessee):
        start = datetime.now(timezone.utc) + timedelta(days=1)
        terms = LeaseTerms(
            start_date=start,
            end_date=start + timedelta(days=7),
            payment_amount=Decimal("30"),
            payment_currency="EUR",
            auto_renew=True,
        )
        lease = await leases.create_lease(listing.id, lessee.user_id, terms)
        assert lease.payment_currency == "EUR"
        assert lease.payment_amount == Decimal("30")
        assert lease.auto_renew is True

    @pytest.mark.asyncio
    async def test_rejects_inverted_period(self, container, leases, listing, lessee):
        start = datetime.now(timezone.utc)
        terms = LeaseTerms(start_date=start, end_date=start - timedelta(days=1))
        with pytest.raises(InvalidLeasePeriodError):
            await leases.create_lease(listing.id, lessee.user_id, terms)
        assert (await container.listings.get(listing.id)).status == ListingStatus.ACTIVE

    @pytest.mark.asyncio
    async def test_rejects_self_lease(self, leases, listing, lessor):
        with pytest.raises(SelfLeaseError):
            await leases.create_lease(listing.id, lessor.user_id, LeaseTerms())

    @pytest.mark.asyncio
    async def test_rejects_non_positive_payment(self, leases, listing, lessee):
        with pytest.raises(ValidationError):
            await leases.create_lease(
                listing.id, lessee.user_id, LeaseTerms(payment_amount=Decimal("0"))
            )

    @pytest.mark.asyncio
    @pytest.mark.parametrize("make_inactive", ["cancel", "lease", "expire"])
    async def test_inactive_listing_has_no_side_effects(
        self, container, leases, listing, lessor, lessee, make_inactive
    ):
        """Leasing a non-active listing fails and leaves nothing behind."""
        if make_inactive == "cancel":
            await container.listings.cancel(listing.id, lessor)
        elif make_inactive == "lease":
            await leases.create_lease(listing.id, "other-lessee", LeaseTerms())
        else:
            await container.listings.expire(listing.id)
        leases_before = len(lease_repo(container).list_by_listing(listing.id))
        before = await container.listings.get(listing.id)

        with pytest.raises(InvalidStateError):
            await leases.create_lease(
                listing.id, lessee.user_id, LeaseTerms(issue_token=True)
            )

        after = await container.listings.get(listing.id)
        assert after.version == before.version
        assert not after.has_binding
        assert len(lease_repo(container).list_by_listing(listing.id)) == leases_before
        _, total = await container.ledger.get_transaction_history(lessee.user_id)
        assert total == 0
        assert container.token_client.active_tokens == {}

    @pytest.mark.asyncio
    async def test_publish_then_cancel_blocks_lease(self, container, leases, lessor, lessee):
        listing = await container.listings.publish(lessor.user_id, publish_request("round.trip"))
        cancelled = await container.listings.cancel(listing.id, lessor)
        assert cancelled.status == ListingStatus.CANCELLED

        with pytest.raises(InvalidStateError):
            await leases.create_lease(listing.id, lessee.user_id, LeaseTerms())

    @pytest.mark.asyncio
    async def test_concurrent_creates_one_wins(self, container, leases, listing):
        """Two lessees racing for one listing: exactly one lease is created."""
        container.auth._repo.create(make_user("lessee-2"))
        results = await asyncio.gather(
            leases.create_lease(listing.id, "lessee-1", LeaseTerms()),
            leases.create_lease(listing.id, "lessee-2", LeaseTerms()),
            return_exceptions=True,
        )

        failures = [r for r in results if isinstance(r, Exception)]
        assert len(failures) == 1
        assert isinstance(failures[0], (InvalidStateError, ConcurrentModificationError))
        assert len(lease_repo(container).list_by_listing(listing.id)) == 1
        await assert_listing_consistent(container, listing.id)

    @pytest.mark.asyncio
    async def test_stale_active_lease_blocks_create(self, container, leases, listing, lessee):
        """An active lease row wins over a listing row that says active."""
        await leases.create_lease(listing.id, lessee.user_id, LeaseTerms())
        await container.listings.restore_status(listing.id, ListingStatus.ACTIVE)

        with pytest.raises(InvalidStateError):
            await leases.create_lease(listing.id, "lessee-2", LeaseTerms())

    @pytest.mark.asyncio
    async def test_different_listings_do_not_block(self, container, leases, lessor, lessee):
        first = await container.listings.publish(lessor.user_id, publish_request("one.com"))
        second = await container.listings.publish(lessor.user_id, publish_request("two.com"))

        async with container.locks.hold("listing", first.id):
            lease = await asyncio.wait_for(
                leases.create_lease(second.id, lessee.user_id, LeaseTerms()), timeout=1
            )
        assert lease.listing_id == second.id


class TestCreateLeaseWithToken:
    @pytest.mark.asyncio
    async def test_issue_token_binds_listing(self, container, leases, listing, lessee):
        lease = await leases.create_lease(
            listing.id, lessee.user_id, LeaseTerms(issue_token=True)
        )

        assert lease.nft_transferred_at is not None
        stored = await container.listings.get(listing.id)
        assert stored.status == ListingStatus.LEASED
        assert stored.nft_token_id == "1"
        assert container.token_client.active_tokens == {"1": "example.com"}

    @pytest.mark.asyncio
    async def test_transient_failure_rolls_everything_back(
        self, container, leases, listing, lessee
    ):
        """Issuance timing out leaves the listing active and persists nothing."""
        container.token_client.issue_lease_token = AsyncMock(
            side_effect=BlockchainUnavailableError("mintLeaseToken", "timeout")
        )

        with pytest.raises(MarketError) as exc_info:
            await leases.create_lease(listing.id, lessee.user_id, LeaseTerms(issue_token=True))

        assert exc_info.value.retryable is True
        stored = await container.listings.get(listing.id)
        assert stored.status == ListingStatus.ACTIVE
        assert not stored.has_binding
        assert lease_repo(container).list_by_listing(listing.id) == []
        _, total = await container.ledger.get_transaction_history(lessee.user_id)
        assert total == 0
        assert await container.ledger.list_interactions(lessee.user_id) == []

    @pytest.mark.asyncio
    async def test_revert_is_not_retryable(self, container, leases, listing, lessee):
        container.token_client.issue_lease_token = AsyncMock(
            side_effect=ContractRevertError("mintLeaseToken", "invalid lessee")
        )
        with pytest.raises(ContractRevertError) as exc_info:
            await leases.create_lease(listing.id, lessee.user_id, LeaseTerms(issue_token=True))
        assert exc_info.value.retryable is False
        assert (await container.listings.get(listing.id)).status == ListingStatus.ACTIVE

    @pytest.mark.asyncio
    async def test_failure_after_bind_releases_token(self, container, leases, listing, lessee):
        """A lease that fails after its token was minted burns the token again."""
        with patch.object(
            lease_repo(container),
            "update",
            side_effect=ConcurrentModificationError("lease", "any", 1),
        ):
            with pytest.raises(ConcurrentModificationError):
                await leases.create_lease(
                    listing.id, lessee.user_id, LeaseTerms(issue_token=True)
                )

        assert lease_repo(container).list_by_listing(listing.id) == []
        stored = await container.listings.get(listing.id)
        assert stored.status == ListingStatus.ACTIVE
        assert not stored.has_binding
        assert not stored.binding_pending_release
        assert container.token_client.active_tokens == {}
        _, total = await container.ledger.get_transaction_history(lessee.user_id)
        assert total == 0

    @pytest.mark.asyncio
    async def test_existing_binding_conflicts(self, container, leases, lessor, lessee):
        """A token left on an old listing of the domain blocks a new binding."""
        old = await container.listings.publish(lessor.user_id, publish_request())
        container.listing_repository.update(
            old.id, old.version, {"nft_contract_address": "0xabc", "nft_token_id": "9"}
        )
        await container.listings.cancel(old.id, lessor)
        listing = await container.listings.publish(lessor.user_id, publish_request())

        with pytest.raises(BindingConflictError):
            await leases.create_lease(listing.id, lessee.user_id, LeaseTerms(issue_token=True))

        stored = await container.listings.get(listing.id)
        assert stored.status == ListingStatus.ACTIVE
        assert not stored.has_binding
        assert lease_repo(container).list_by_listing(listing.id) == []

    @pytest.mark.asyncio
    async def test_lessee_without_wallet(self, container, leases, listing):
        container.auth._repo.create(make_user("no-wallet"))
        with pytest.raises(WalletRequiredError) as exc_info:
            await leases.create_lease(listing.id, "no-wallet", LeaseTerms(issue_token=True))
        assert exc_info.value.details["role"] == "lessee"

    @pytest.mark.asyncio
    async def test_tokens_unavailable(self, container, listing, lessee):
        service = LeaseService(
            InMemoryLeaseRepository(), container.listings, container.ledger
        )
        with pytest.raises(ValidationError) as exc_info:
            await service.create_lease(listing.id, lessee.user_id, LeaseTerms(issue_token=True))
        assert exc_info.value.code == "TOKENS_UNAVAILABLE"


class TestEndLease:
    @pytest_asyncio.fixture
    async def lease(self, leases, listing, lessee):
        return await leases.create_lease(
            listing.id, lessee.user_id, LeaseTerms(issue_token=True)
        )

    @pytest.mark.asyncio
    async def test_terminate_by_lessor(self, container, leases, lease, lessor):
        """Termination releases the listing and its token."""
        terminated = await leases.terminate(lease.id, lessor, "lessee breached terms")

        assert terminated.status == LeaseStatus.TERMINATED
        assert terminated.termination_reason == "lessee breached terms"
        assert terminated.ended_at is not None
        listing = await container.listings.get(lease.listing_id)
        assert listing.status == ListingStatus.ACTIVE
        assert not listing.has_binding
        assert container.token_client.active_tokens == {}
        await assert_listing_consistent(container, lease.listing_id)

    @pytest.mark.asyncio
    async def test_terminate_twice(self, container, leases, lease, lessor):
        await leases.terminate(lease.id, lessor, "first")
        before = await container.listings.get(lease.listing_id)

        with pytest.raises(InvalidStateError):
            await leases.terminate(lease.id, lessor, "second")

        after = await container.listings.get(lease.listing_id)
        assert after.status == before.status
        assert after.version == before.version

    @pytest.mark.asyncio
    async def test_terminate_by_admin(self, leases, lease, admin):
        assert (await leases.terminate(lease.id, admin, "fraud")).status == LeaseStatus.TERMINATED

    @pytest.mark.asyncio
    async def test_terminate_by_stranger(self, leases, lease):
        with pytest.raises(AuthorizationError):
            await leases.terminate(lease.id, Actor(user_id="stranger"), "no")

    @pytest.mark.asyncio
    async def test_unbind_failure_does_not_fail_termination(
        self, container, leases, lease, lessee
    ):
        container.token_client.terminate_lease_token = AsyncMock(
            side_effect=BlockchainUnavailableError("terminateLease")
        )

        terminated = await leases.terminate(lease.id, lessee, "moving on")

        assert terminated.status == LeaseStatus.TERMINATED
        listing = await container.listings.get(lease.listing_id)
        assert listing.status == ListingStatus.ACTIVE
        assert listing.has_binding
        assert listing.binding_pending_release is True

    @pytest.mark.asyncio
    async def test_complete_requires_end_or_agreement(self, leases, lease, lessee):
        with pytest.raises(LeaseNotEndedError):
            await leases.complete(lease.id, lessee)
        completed = await leases.complete(lease.id, lessee, mutual_agreement=True)
        assert completed.status == LeaseStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_complete_after_end_date(self, container, leases, listing, lessee, lessor):
        start = datetime.now(timezone.utc) - timedelta(days=31)
        lease = await leases.create_lease(
            listing.id,
            lessee.user_id,
            LeaseTerms(start_date=start, end_date=start + timedelta(days=30)),
        )
        completed = await leases.complete(lease.id, lessor)
        assert completed.status == LeaseStatus.COMPLETED
        assert (await container.listings.get(listing.id)).status == ListingStatus.ACTIVE

    @pytest.mark.asyncio
    async def test_concurrent_complete_and_terminate(self, container, leases, lease, lessee):
        """The first to take the lease lock wins, the other sees it ended."""
        results = await asyncio.gather(
            leases.complete(lease.id, lessee, mutual_agreement=True),
            leases.terminate(lease.id, lessee, "race"),
            return_exceptions=True,
        )

        failures = [r for r in results if isinstance(r, Exception)]
        assert len(failures) == 1
        assert isinstance(failures[0], InvalidStateError)
        await assert_listing_consistent(container, lease.listing_id)

    @pytest.mark.asyncio
    async def test_relist_after_termination(self, container, leases, lease, lessor):
        await leases.terminate(lease.id, lessor, "done")
        again = await leases.create_lease(lease.listing_id, "lessee-1", LeaseTerms(issue_token=True))
        assert again.status == LeaseStatus.ACTIVE
        await assert_listing_consistent(container, lease.listing_id)

    @pytest.mark.asyncio
    async def test_unknown_lease(self, leases, lessor):
        with pytest.raises(LeaseNotFoundError):
            await leases.terminate("missing", lessor, "x")


class TestDispute:
    @pytest_asyncio.fixture
    async def lease(self, leases, listing, lessee):
        return await leases.create_lease(listing.id, lessee.user_id, LeaseTerms())

    @pytest.mark.asyncio
    async def test_dispute_freezes_lease(self, container, leases, lease, lessee, lessor):
        disputed = await leases.dispute(lease.id, lessee, "site is down")

        assert disputed.status == LeaseStatus.DISPUTED
        assert disputed.dispute_reason == "site is down"
        assert (await container.listings.get(lease.listing_id)).status == ListingStatus.LEASED
        with pytest.raises(InvalidStateError):
            await leases.terminate(lease.id, lessor, "after dispute")
        with pytest.raises(InvalidStateError):
            await leases.complete(lease.id, lessor, mutual_agreement=True)

    @pytest.mark.asyncio
    async def test_admin_cannot_dispute(self, leases, lease, admin):
        with pytest.raises(AuthorizationError):
            await leases.dispute(lease.id, admin, "not a party")


class TestReads:
    @pytest.mark.asyncio
    async def test_get_lease_party_check(self, leases, listing, lessee, lessor, admin):
        lease = await leases.create_lease(listing.id, lessee.user_id, LeaseTerms())
        assert (await leases.get_lease(lease.id, lessor)).id == lease.id
        assert (await leases.get_lease(lease.id, admin)).id == lease.id
        with pytest.raises(AuthorizationError):
            await leases.get_lease(lease.id, Actor(user_id="stranger"))

    @pytest.mark.asyncio
    async def test_list_leases_for_user(self, leases, listing, lessee):
        lease = await leases.create_lease(listing.id, lessee.user_id, LeaseTerms())
        assert [l.id for l in await leases.list_leases_for_user("lessee-1")] == [lease.id]
        assert await leases.list_leases_for_user("lessee-1", role=LeaseRole.LESSOR) == []
        assert [
            l.id for l in await leases.list_leases_for_user("lessor-1", role=LeaseRole.LESSOR)
        ] == [lease.id]
