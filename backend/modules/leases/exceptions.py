"""
Leases module exceptions.
"""

from shared.exceptions import NotFoundError, ValidationError


class LeaseNotFoundError(NotFoundError):
    """Raised when a lease does not exist."""

    def __init__(self, lease_id: str):
        super().__init__(
            f"Lease not found: {lease_id}",
            code="LEASE_NOT_FOUND",
            details={"lease_id": lease_id},
        )


class SelfLeaseError(ValidationError):
    """Raised when a lessor tries to lease their own listing."""

    def __init__(self, listing_id: str):
        super().__init__(
            "You cannot lease your own listing",
            code="SELF_LEASE",
            details={"listing_id": listing_id},
        )


class InvalidLeasePeriodError(ValidationError):
    """Raised when a lease would not end after it starts."""

    def __init__(self, start: str, end: str):
        super().__init__(
            "Lease end date must be after its start date",
            code="INVALID_LEASE_PERIOD",
            details={"start_date": start, "end_date": end},
        )


class LeaseNotEndedError(ValidationError):
    """Raised when completing a lease early without mutual agreement."""

    def __init__(self, lease_id: str, end_date: str):
        super().__init__(
            "Lease can only be completed early by mutual agreement",
            code="LEASE_NOT_ENDED",
            details={"lease_id": lease_id, "end_date": end_date},
        )
