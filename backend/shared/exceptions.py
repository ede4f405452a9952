"""
Base exception classes for the domain lease marketplace backend.

Each module should define its own exceptions that inherit from these bases.
This enables consistent error handling across the application, and lets
the API layer map any failure onto an HTTP status without knowing which
module raised it.

Every error carries a ``retryable`` flag so callers can tell a lost race or
a network hiccup (safe to retry) from a terminal failure.
"""

from typing import Optional, Any


class MarketError(Exception):
    """
    Base exception for all marketplace errors.

    All custom exceptions should inherit from this class.
    """

    retryable: bool = False

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to a dictionary for API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
            "retryable": self.retryable,
        }


class NotFoundError(MarketError):
    """Resource not found."""

    pass


class ValidationError(MarketError):
    """Input validation failed."""

    pass


class AuthenticationError(MarketError):
    """Authentication failed (invalid or missing credentials)."""

    pass


class AuthorizationError(MarketError):
    """Authorization failed (insufficient permissions)."""

    pass


class OwnershipError(AuthorizationError):
    """The caller does not own the resource it is acting on."""

    pass


class InvalidStateError(MarketError):
    """
    The requested transition is not allowed from the entity's current state.

    Never retried automatically: the state will not change by waiting.
    """

    def __init__(
        self,
        entity: str,
        entity_id: str,
        current: str,
        attempted: str,
        code: Optional[str] = None,
    ):
        super().__init__(
            f"Cannot {attempted} {entity} {entity_id} in state '{current}'",
            code=code or "INVALID_STATE",
            details={
                "entity": entity,
                "entity_id": entity_id,
                "current_status": current,
                "attempted": attempted,
            },
        )


class ConcurrentModificationError(MarketError):
    """
    Lost a race against another writer of the same entity.

    Safe to retry once after re-reading the entity.
    """

    retryable = True

    def __init__(self, entity: str, entity_id: str, expected_version: int):
        super().__init__(
            f"{entity} {entity_id} was modified concurrently",
            code="CONCURRENT_MODIFICATION",
            details={
                "entity": entity,
                "entity_id": entity_id,
                "expected_version": expected_version,
            },
        )


class BindingConflictError(MarketError):
    """A lease token is already bound to this domain."""

    def __init__(self, domain_name: str, contract_address: Optional[str] = None):
        details: dict[str, Any] = {"domain_name": domain_name}
        if contract_address:
            details["contract_address"] = contract_address
        super().__init__(
            f"A lease token is already bound to {domain_name}",
            code="BINDING_CONFLICT",
            details=details,
        )


class ExternalServiceError(MarketError):
    """Error communicating with an external service."""

    def __init__(
        self,
        message: str,
        service: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message, code, details)
        self.service = service
        self.details["service"] = service


class TransientError(ExternalServiceError):
    """Network failure or timeout in a collaborator. Retryable with backoff."""

    retryable = True


class PermanentError(ExternalServiceError):
    """Collaborator rejected the request (e.g. contract revert). Not retried."""

    pass
