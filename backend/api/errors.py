"""
Error responses.

Maps the MarketError hierarchy onto HTTP status codes. Every error body
has the same shape so clients can tell retryable failures from final ones.
"""

import logging
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from shared.exceptions import (
    AuthenticationError,
    AuthorizationError,
    BindingConflictError,
    ConcurrentModificationError,
    InvalidStateError,
    MarketError,
    NotFoundError,
    PermanentError,
    TransientError,
    ValidationError,
)
from modules.auth.exceptions import UserAlreadyExistsError
from modules.tokens.exceptions import TransactionPendingError

logger = logging.getLogger(__name__)


class ErrorResponse(BaseModel):
    """Standard error response format."""

    error: str
    message: str
    details: dict[str, Any] = {}
    retryable: bool = False


# Most specific first
STATUS_CODES: list[tuple[type[MarketError], int]] = [
    (ValidationError, 400),
    (AuthenticationError, 401),
    (AuthorizationError, 403),
    (NotFoundError, 404),
    (InvalidStateError, 409),
    (BindingConflictError, 409),
    (ConcurrentModificationError, 409),
    (UserAlreadyExistsError, 409),
    (TransientError, 503),
    (TransactionPendingError, 504),
    (PermanentError, 502),
]


def status_code_for(exc: MarketError) -> int:
    """HTTP status for a marketplace error; 500 when nothing more specific applies."""
    for error_type, code in STATUS_CODES:
        if isinstance(exc, error_type):
            return code
    return 500


async def market_error_handler(request: Request, exc: MarketError) -> JSONResponse:
    """Handle every MarketError raised by a route or service."""
    status_code = status_code_for(exc)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.code}: {exc.message}")
    else:
        logger.debug(f"{request.method} {request.url.path} -> {status_code} {exc.code}")

    headers: Optional[dict[str, str]] = None
    if status_code == 401:
        headers = {"WWW-Authenticate": "Bearer"}
    return JSONResponse(status_code=status_code, content=exc.to_dict(), headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(MarketError, market_error_handler)
