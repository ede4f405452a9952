"""
User-related endpoints.

Provides endpoints for user profile and account management.
"""

from fastapi import APIRouter, Depends, Query

from shared.models import AuthenticatedUser
from modules.auth.interfaces import IAuthService
from modules.auth.models import GrantProRequest, ProfileUpdate, ProStatus, UserProfile
from modules.ledger.interfaces import ILedgerService
from modules.ledger.models import Interaction
from ..dependencies import get_auth_service, get_ledger_service
from ..middleware.auth import get_current_user, require_admin

router = APIRouter()


@router.get("/me", response_model=UserProfile)
async def get_current_user_profile(
    user: AuthenticatedUser = Depends(get_current_user),
    service: IAuthService = Depends(get_auth_service),
) -> UserProfile:
    """
    Get the current user's profile.

    Requires authentication.
    """
    return await service.get_profile(user.id)


@router.patch("/me", response_model=UserProfile)
async def update_current_user_profile(
    update: ProfileUpdate,
    user: AuthenticatedUser = Depends(get_current_user),
    service: IAuthService = Depends(get_auth_service),
) -> UserProfile:
    """
    Update the current user's name, account type and preferences.
    """
    return await service.update_profile(user.id, update)


@router.get("/me/pro", response_model=ProStatus)
async def get_pro_status(
    user: AuthenticatedUser = Depends(get_current_user),
    service: IAuthService = Depends(get_auth_service),
) -> ProStatus:
    """
    Check the current user's pro subscription.

    Responds 403 when the user has none or it has lapsed.
    """
    return await service.check_pro_status(user.id)


@router.get("/me/interactions", response_model=list[Interaction])
async def get_interactions(
    limit: int = Query(default=20, ge=1, le=100),
    user: AuthenticatedUser = Depends(get_current_user),
    ledger: ILedgerService = Depends(get_ledger_service),
) -> list[Interaction]:
    """
    The current user's recent marketplace activity.
    """
    return await ledger.list_interactions(user.id, limit=limit)


@router.post("/{user_id}/pro", response_model=ProStatus)
async def grant_pro(
    user_id: str,
    request: GrantProRequest,
    _: AuthenticatedUser = Depends(require_admin),
    service: IAuthService = Depends(get_auth_service),
) -> ProStatus:
    """
    Grant or extend a user's pro subscription. Admin only.
    """
    return await service.grant_pro(user_id, request.months)
