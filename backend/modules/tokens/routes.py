"""
Lease token admin endpoints.
"""

from fastapi import APIRouter, Depends

from api.dependencies import get_token_binding_service
from api.middleware.auth import require_admin
from modules.listings.models import Listing
from shared.models import AuthenticatedUser

from .interfaces import ITokenBindingService
from .models import UnbindResult

router = APIRouter()


@router.post("/retry-releases", response_model=list[UnbindResult])
async def retry_pending_releases(
    _: AuthenticatedUser = Depends(require_admin),
    service: ITokenBindingService = Depends(get_token_binding_service),
) -> list[UnbindResult]:
    """
    Retry terminating lease tokens whose release was deferred.
    """
    return await service.retry_pending_unbinds()


@router.get("/failed-releases", response_model=list[Listing])
async def list_failed_releases(
    _: AuthenticatedUser = Depends(require_admin),
    service: ITokenBindingService = Depends(get_token_binding_service),
) -> list[Listing]:
    """Listings whose token termination was rejected or never confirmed."""
    return service.list_failed_releases()


@router.post("/failed-releases/{listing_id}/resolve", response_model=Listing)
async def resolve_failed_release(
    listing_id: str,
    _: AuthenticatedUser = Depends(require_admin),
    service: ITokenBindingService = Depends(get_token_binding_service),
) -> Listing:
    """
    Clear a binding after the token was reconciled with the chain by hand.
    """
    return await service.resolve_failed_release(listing_id)
