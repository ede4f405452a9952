"""
Listing API endpoints.

Browsing is public; publishing and changing listings requires a token.
"""

from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, Query

from api.dependencies import get_listing_service
from api.middleware.auth import get_current_user, get_optional_user, require_admin
from shared.models import AuthenticatedUser

from .interfaces import IListingService
from .models import (
    Domain,
    DomainTransferRequest,
    Listing,
    ListingDetail,
    ListingPage,
    ListingQuery,
    ListingSort,
    ListingStatus,
    ListingUpdate,
    PublishListingRequest,
    SortOrder,
    VerificationUpdate,
)

router = APIRouter()
domain_router = APIRouter()


@router.get("", response_model=ListingPage)
async def search_listings(
    search: Optional[str] = Query(default=None, description="Text in name, description or tags"),
    domain_type: Optional[str] = Query(default=None, description="web2, web3 or all"),
    min_price: Optional[Decimal] = Query(default=None, ge=0),
    max_price: Optional[Decimal] = Query(default=None, ge=0),
    with_site: bool = Query(default=False),
    tags: list[str] = Query(default=[]),
    status: ListingStatus = Query(default=ListingStatus.ACTIVE),
    sort_by: ListingSort = Query(default=ListingSort.CREATED_AT),
    order: SortOrder = Query(default=SortOrder.DESC),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    user: Optional[AuthenticatedUser] = Depends(get_optional_user),
    service: IListingService = Depends(get_listing_service),
) -> ListingPage:
    """
    Search listings with filters, sorting and pagination.
    """
    query = ListingQuery(
        search=search,
        domain_type=domain_type,
        min_price=min_price,
        max_price=max_price,
        with_site=with_site,
        tags=tags,
        status=status,
        sort_by=sort_by,
        order=order,
        page=page,
        limit=limit,
    )
    return await service.search(query, viewer_id=user.id if user else None)


@router.get("/{listing_id}", response_model=ListingDetail)
async def get_listing(
    listing_id: str,
    user: Optional[AuthenticatedUser] = Depends(get_optional_user),
    service: IListingService = Depends(get_listing_service),
) -> ListingDetail:
    """
    Get a listing with its domain. Counts as a view.
    """
    return await service.get_listing(listing_id, viewer_id=user.id if user else None)


@router.post("", response_model=Listing, status_code=201)
async def publish_listing(
    request: PublishListingRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    service: IListingService = Depends(get_listing_service),
) -> Listing:
    """
    List a domain for lease. The domain is registered to the caller on first listing.
    """
    return await service.publish(user.id, request)


@router.patch("/{listing_id}", response_model=Listing)
async def update_listing(
    listing_id: str,
    update: ListingUpdate,
    user: AuthenticatedUser = Depends(get_current_user),
    service: IListingService = Depends(get_listing_service),
) -> Listing:
    """
    Change the terms of an active listing.
    """
    return await service.update_terms(listing_id, user.as_actor(), update)


@router.post("/{listing_id}/cancel", response_model=Listing)
async def cancel_listing(
    listing_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    service: IListingService = Depends(get_listing_service),
) -> Listing:
    """
    Withdraw an active listing.
    """
    return await service.cancel(listing_id, user.as_actor())


@router.delete("/{listing_id}", response_model=Listing)
async def delete_listing(
    listing_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    service: IListingService = Depends(get_listing_service),
) -> Listing:
    """
    Withdraw an active listing. Listings are never hard-deleted.
    """
    return await service.cancel(listing_id, user.as_actor())


# -----------------------------------------------------------------------------
# Domains (admin and verification collaborator)
# -----------------------------------------------------------------------------


@domain_router.post("/{domain_id}/verification", response_model=Domain)
async def set_domain_verification(
    domain_id: str,
    update: VerificationUpdate,
    _: AuthenticatedUser = Depends(require_admin),
    service: IListingService = Depends(get_listing_service),
) -> Domain:
    """
    Record the outcome of a domain ownership check.
    """
    return await service.set_domain_verification(domain_id, update.status, update.method)


@domain_router.post("/{domain_id}/transfer", response_model=Domain)
async def transfer_domain(
    domain_id: str,
    request: DomainTransferRequest,
    _: AuthenticatedUser = Depends(require_admin),
    service: IListingService = Depends(get_listing_service),
) -> Domain:
    """
    Move a domain to a new owner. Its active listings are cancelled.
    """
    return await service.transfer_domain(domain_id, request.new_owner_id)
