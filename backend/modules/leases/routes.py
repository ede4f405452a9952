"""
Lease API endpoints.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from api.dependencies import get_lease_service
from api.middleware.auth import get_current_user
from shared.models import AuthenticatedUser

from .interfaces import ILeaseService
from .models import (
    CompleteLeaseRequest,
    CreateLeaseRequest,
    DisputeLeaseRequest,
    Lease,
    LeaseListResponse,
    LeaseRole,
    LeaseStatus,
    LeaseTerms,
    TerminateLeaseRequest,
)

router = APIRouter()


@router.post("", response_model=Lease, status_code=201)
async def create_lease(
    request: CreateLeaseRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    service: ILeaseService = Depends(get_lease_service),
) -> Lease:
    """
    Lease an active listing as the current user.

    With issue_token set, a lease token is minted to the lessee's wallet;
    if that fails nothing is created.
    """
    terms = LeaseTerms(**request.model_dump(exclude={"listing_id"}))
    return await service.create_lease(request.listing_id, user.id, terms)


@router.get("", response_model=LeaseListResponse)
async def list_leases(
    role: LeaseRole = Query(default=LeaseRole.ANY, description="lessor, lessee or any"),
    status: Optional[LeaseStatus] = Query(default=None),
    user: AuthenticatedUser = Depends(get_current_user),
    service: ILeaseService = Depends(get_lease_service),
) -> LeaseListResponse:
    """
    List the current user's leases, most recent first.
    """
    leases = await service.list_leases_for_user(user.id, role=role, status=status)
    return LeaseListResponse(leases=leases, total=len(leases))


@router.get("/{lease_id}", response_model=Lease)
async def get_lease(
    lease_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    service: ILeaseService = Depends(get_lease_service),
) -> Lease:
    """
    Get a lease. Only its parties and admins can see it.
    """
    return await service.get_lease(lease_id, user.as_actor())


@router.post("/{lease_id}/complete", response_model=Lease)
async def complete_lease(
    lease_id: str,
    request: CompleteLeaseRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    service: ILeaseService = Depends(get_lease_service),
) -> Lease:
    """
    Complete a lease after its end date, or earlier by mutual agreement.
    """
    return await service.complete(lease_id, user.as_actor(), request.mutual_agreement)


@router.post("/{lease_id}/terminate", response_model=Lease)
async def terminate_lease(
    lease_id: str,
    request: TerminateLeaseRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    service: ILeaseService = Depends(get_lease_service),
) -> Lease:
    """
    End a lease early. Releases the listing and its lease token.
    """
    return await service.terminate(lease_id, user.as_actor(), request.reason)


@router.post("/{lease_id}/dispute", response_model=Lease)
async def dispute_lease(
    lease_id: str,
    request: DisputeLeaseRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    service: ILeaseService = Depends(get_lease_service),
) -> Lease:
    """
    Freeze a lease pending external resolution.
    """
    return await service.dispute(lease_id, user.as_actor(), request.reason)
