"""Tests for api/errors.py."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from api.errors import register_exception_handlers, status_code_for
from modules.auth.exceptions import (
    InvalidCredentialsError,
    InsufficientPermissionsError,
    UserAlreadyExistsError,
)
from modules.leases.exceptions import SelfLeaseError
from modules.listings.exceptions import ListingNotFoundError
from modules.tokens.exceptions import (
    BlockchainUnavailableError,
    ContractRevertError,
    TransactionPendingError,
    TransactionRejectedError,
)
from shared.exceptions import (
    BindingConflictError,
    ConcurrentModificationError,
    InvalidStateError,
    MarketError,
)


class TestStatusCodes:
    @pytest.mark.parametrize(
        "error,status",
        [
            (SelfLeaseError("l-1"), 400),
            (InvalidCredentialsError(), 401),
            (InsufficientPermissionsError("admin", "user"), 403),
            (ListingNotFoundError("l-1"), 404),
            (InvalidStateError("listing", "l-1", "cancelled", "lease"), 409),
            (BindingConflictError("example.com"), 409),
            (ConcurrentModificationError("listing", "l-1", 1), 409),
            (UserAlreadyExistsError("a@example.com"), 409),
            (BlockchainUnavailableError("mintLeaseToken"), 503),
            (ContractRevertError("mintLeaseToken"), 502),
            (TransactionPendingError("mintLeaseToken", "0xfeed"), 504),
            (TransactionRejectedError("mintLeaseToken", "nonce too low"), 502),
            (MarketError("unknown"), 500),
        ],
    )
    def test_status_code_for(self, error, status):
        assert status_code_for(error) == status


class TestHandler:
    @pytest.fixture
    def client(self):
        app = FastAPI()
        register_exception_handlers(app)

        @app.get("/conflict")
        async def conflict():
            raise ConcurrentModificationError("lease", "x", 2)

        @app.get("/unauthenticated")
        async def unauthenticated():
            raise InvalidCredentialsError()

        return TestClient(app)

    def test_body_shape(self, client):
        response = client.get("/conflict")
        assert response.status_code == 409
        assert response.json() == {
            "error": "CONCURRENT_MODIFICATION",
            "message": "lease x was modified concurrently",
            "details": {"entity": "lease", "entity_id": "x", "expected_version": 2},
            "retryable": True,
        }

    def test_authentication_header(self, client):
        response = client.get("/unauthenticated")
        assert response.status_code == 401
        assert response.headers["www-authenticate"] == "Bearer"
