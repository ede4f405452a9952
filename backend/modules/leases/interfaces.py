"""
Leases module interfaces.
"""

from typing import Protocol, Optional, Any, runtime_checkable

from shared.models import Actor
from .models import Lease, LeaseRole, LeaseStatus, LeaseTerms


@runtime_checkable
class ILeaseRepository(Protocol):
    """
    Storage for leases.

    ``update`` is version-checked the same way listing updates are.
    """

    def get(self, lease_id: str) -> Optional[Lease]: ...

    def create(self, lease: Lease) -> Lease: ...

    def delete(self, lease_id: str) -> None: ...

    def update(self, lease_id: str, expected_version: int, fields: dict[str, Any]) -> Lease: ...

    def list_for_user(
        self,
        user_id: str,
        role: LeaseRole = LeaseRole.ANY,
        status: Optional[LeaseStatus] = None,
    ) -> list[Lease]: ...

    def list_by_listing(
        self, listing_id: str, status: Optional[LeaseStatus] = None
    ) -> list[Lease]: ...


@runtime_checkable
class ILeaseService(Protocol):
    """
    Interface for the lease lifecycle.

    Every transition holds the lease's lock; transitions that also move the
    listing take the listing lock first.
    """

    async def create_lease(
        self, listing_id: str, lessee_id: str, terms: LeaseTerms
    ) -> Lease:
        """
        Lease an active listing.

        Creates the lease, marks the listing leased, appends the payment
        transaction and, if requested, binds a lease token. All of it
        happens or none of it does.

        Raises:
            InvalidStateError: If the listing is not active
            ValidationError: If the terms are invalid
            BindingConflictError: If the domain already has a lease token
            TransientError: Token issuance failed on the network (retryable)
        """
        ...

    async def complete(
        self, lease_id: str, actor: Actor, mutual_agreement: bool = False
    ) -> Lease: ...

    async def terminate(self, lease_id: str, actor: Actor, reason: str) -> Lease: ...

    async def dispute(self, lease_id: str, actor: Actor, reason: str) -> Lease: ...

    async def get_lease(self, lease_id: str, actor: Optional[Actor] = None) -> Lease: ...

    async def list_leases_for_user(
        self,
        user_id: str,
        role: LeaseRole = LeaseRole.ANY,
        status: Optional[LeaseStatus] = None,
    ) -> list[Lease]: ...
