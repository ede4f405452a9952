"""
Ledger API endpoints.
"""

from fastapi import APIRouter, Depends, Query

from api.middleware.auth import get_current_user
from api.dependencies import get_ledger_service
from shared.models import AuthenticatedUser

from .interfaces import ILedgerService
from .models import TransactionListResponse

router = APIRouter()


@router.get("", response_model=TransactionListResponse)
async def list_transactions(
    limit: int = Query(default=50, ge=1, le=100, description="Maximum rows"),
    offset: int = Query(default=0, ge=0, description="Rows to skip"),
    user: AuthenticatedUser = Depends(get_current_user),
    service: ILedgerService = Depends(get_ledger_service),
) -> TransactionListResponse:
    """
    List the current user's transactions, most recent first.
    """
    transactions, total = await service.get_transaction_history(user.id, limit, offset)
    return TransactionListResponse(
        transactions=transactions,
        total=total,
        has_more=(offset + limit) < total,
    )
