"""
Authentication API endpoints.

Registration, password and wallet login, and token refresh. All of them
are public; the returned token is sent back as a Bearer header.
"""

from fastapi import APIRouter, Depends

from api.dependencies import get_auth_service

from .interfaces import IAuthService
from .models import (
    AuthResult,
    LoginRequest,
    RefreshRequest,
    RegisterRequest,
    TokenResponse,
    WalletLoginRequest,
)

router = APIRouter()


@router.post("/register", response_model=AuthResult, status_code=201)
async def register(
    request: RegisterRequest,
    service: IAuthService = Depends(get_auth_service),
) -> AuthResult:
    """
    Register a new account with email and password.
    """
    return await service.register(request)


@router.post("/login", response_model=AuthResult)
async def login(
    request: LoginRequest,
    service: IAuthService = Depends(get_auth_service),
) -> AuthResult:
    """
    Log in with email and password.
    """
    return await service.login(str(request.email), request.password)


@router.post("/wallet-login", response_model=AuthResult)
async def wallet_login(
    request: WalletLoginRequest,
    service: IAuthService = Depends(get_auth_service),
) -> AuthResult:
    """
    Log in with a signed wallet message. Creates the account on first use.
    """
    return await service.wallet_login(
        request.wallet_address, request.signature, request.message
    )


@router.post("/refresh", response_model=TokenResponse)
async def refresh(
    request: RefreshRequest,
    service: IAuthService = Depends(get_auth_service),
) -> TokenResponse:
    """
    Exchange a token (expired or not) for a fresh one.
    """
    return TokenResponse(token=await service.refresh(request.token))
