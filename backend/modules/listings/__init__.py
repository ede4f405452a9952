"""
Listings module.

Registers domains, publishes listings and owns the listing status
transitions (active, leased, expired, cancelled). Also serves search and
view counting.

Public API:
- IListingService: Interface for the listing lifecycle
- IListingRepository: Storage protocol shared with the token binding step
- Domain, Listing, ListingQuery, ListingPage: Data models
- Listing exceptions: ListingNotFoundError, DomainNotFoundError, etc.
"""

from .interfaces import IListingService, IListingRepository
from .models import (
    Domain,
    DomainType,
    LeaseType,
    Listing,
    ListingDetail,
    ListingPage,
    ListingQuery,
    ListingSort,
    ListingStatus,
    ListingUpdate,
    PublishListingRequest,
    SortOrder,
    VerificationStatus,
)
from .exceptions import (
    ListingNotFoundError,
    DomainNotFoundError,
    InvalidTermsError,
    DomainAlreadyListedError,
)

__all__ = [
    # Interfaces
    "IListingService",
    "IListingRepository",
    # Models
    "Domain",
    "DomainType",
    "LeaseType",
    "Listing",
    "ListingDetail",
    "ListingPage",
    "ListingQuery",
    "ListingSort",
    "ListingStatus",
    "ListingUpdate",
    "PublishListingRequest",
    "SortOrder",
    "VerificationStatus",
    # Exceptions
    "ListingNotFoundError",
    "DomainNotFoundError",
    "InvalidTermsError",
    "DomainAlreadyListedError",
]
