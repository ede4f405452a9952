"""
Listings module exceptions.
"""

from shared.exceptions import NotFoundError, ValidationError


class ListingNotFoundError(NotFoundError):
    """Raised when a listing does not exist."""

    def __init__(self, listing_id: str):
        super().__init__(
            f"Listing not found: {listing_id}",
            code="LISTING_NOT_FOUND",
            details={"listing_id": listing_id},
        )


class DomainNotFoundError(NotFoundError):
    """Raised when a domain does not exist."""

    def __init__(self, domain_id: str):
        super().__init__(
            f"Domain not found: {domain_id}",
            code="DOMAIN_NOT_FOUND",
            details={"domain_id": domain_id},
        )


class InvalidTermsError(ValidationError):
    """Raised when price or duration is not positive."""

    def __init__(self, field: str, value: object):
        super().__init__(
            f"{field} must be greater than zero",
            code="INVALID_TERMS",
            details={"field": field, "value": str(value)},
        )


class DomainAlreadyListedError(ValidationError):
    """Raised when a domain already has an active or leased listing."""

    def __init__(self, domain_name: str, listing_id: str):
        super().__init__(
            f"{domain_name} already has an open listing",
            code="DOMAIN_ALREADY_LISTED",
            details={"domain_name": domain_name, "listing_id": listing_id},
        )
