"""
Dependency injection setup for FastAPI.

This module provides the "container" that wires together all module
implementations. Each module exposes its service through an interface,
and this file creates the concrete implementations.

Repositories are dict-backed when Settings.in_memory_store is true and
Supabase-backed otherwise. All services share one EntityLocks registry so
a listing locked by the lease service is locked for the listing service
too.
"""

from typing import TYPE_CHECKING, Optional

from shared.config import Settings, get_settings
from shared.locks import EntityLocks

# Type checking imports for interfaces (avoids circular imports)
if TYPE_CHECKING:
    from modules.auth.interfaces import IAuthService
    from modules.ledger.interfaces import ILedgerService
    from modules.listings.interfaces import IListingService, IListingRepository
    from modules.leases.interfaces import ILeaseService
    from modules.tokens.interfaces import ILeaseTokenClient, ITokenBindingService


class ServiceContainer:
    """
    Container for all service instances.

    This class manages the lifecycle of service instances and their
    dependencies. Services are created lazily on first access.

    All services are cached as singletons within the container.
    Use reset() to clear all cached services for testing.
    """

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()
        self.locks = EntityLocks()
        self._auth_service: "IAuthService | None" = None
        self._ledger_service: "ILedgerService | None" = None
        self._listing_repository: "IListingRepository | None" = None
        self._listing_service: "IListingService | None" = None
        self._token_client: "ILeaseTokenClient | None" = None
        self._token_binding_service: "ITokenBindingService | None" = None
        self._lease_service: "ILeaseService | None" = None

    @property
    def settings(self) -> Settings:
        return self._settings

    def _db(self):
        from shared.database import get_supabase_client
        return get_supabase_client()

    @property
    def auth(self) -> "IAuthService":
        """Get the auth service instance."""
        if self._auth_service is None:
            from modules.auth.service import AuthService
            if self._settings.in_memory_store:
                from modules.auth.repository import InMemoryUserRepository
                repository = InMemoryUserRepository()
            else:
                from modules.auth.repository import SupabaseUserRepository
                repository = SupabaseUserRepository(self._db())
            self._auth_service = AuthService(repository, settings=self._settings)
        return self._auth_service

    @property
    def ledger(self) -> "ILedgerService":
        """Get the ledger service instance."""
        if self._ledger_service is None:
            from modules.ledger.service import LedgerService
            if self._settings.in_memory_store:
                from modules.ledger.repository import InMemoryLedgerRepository
                repository = InMemoryLedgerRepository()
            else:
                from modules.ledger.repository import SupabaseLedgerRepository
                repository = SupabaseLedgerRepository(self._db())
            self._ledger_service = LedgerService(repository, settings=self._settings)
        return self._ledger_service

    @property
    def listing_repository(self) -> "IListingRepository":
        """Get the listing repository instance."""
        if self._listing_repository is None:
            if self._settings.in_memory_store:
                from modules.listings.repository import InMemoryListingRepository
                self._listing_repository = InMemoryListingRepository()
            else:
                from modules.listings.repository import SupabaseListingRepository
                self._listing_repository = SupabaseListingRepository(self._db())
        return self._listing_repository

    @property
    def listings(self) -> "IListingService":
        """Get the listing service instance."""
        if self._listing_service is None:
            from modules.listings.service import ListingService
            self._listing_service = ListingService(
                repository=self.listing_repository,
                ledger=self.ledger,
                locks=self.locks,
            )
        return self._listing_service

    @property
    def token_client(self) -> "ILeaseTokenClient":
        """Get the lease token contract client."""
        if self._token_client is None:
            if self._settings.blockchain_configured:
                from modules.tokens.client import Web3LeaseTokenClient
                self._token_client = Web3LeaseTokenClient(self._settings)
            else:
                from modules.tokens.client import InMemoryLeaseTokenClient
                self._token_client = InMemoryLeaseTokenClient()
        return self._token_client

    @property
    def tokens(self) -> "ITokenBindingService":
        """Get the token binding service instance."""
        if self._token_binding_service is None:
            from modules.tokens.service import TokenBindingService
            self._token_binding_service = TokenBindingService(
                client=self.token_client,
                listings=self.listing_repository,
                locks=self.locks,
            )
        return self._token_binding_service

    @property
    def leases(self) -> "ILeaseService":
        """Get the lease service instance."""
        if self._lease_service is None:
            from modules.leases.service import LeaseService
            if self._settings.in_memory_store:
                from modules.leases.repository import InMemoryLeaseRepository
                repository = InMemoryLeaseRepository()
            else:
                from modules.leases.repository import SupabaseLeaseRepository
                repository = SupabaseLeaseRepository(self._db())
            self._lease_service = LeaseService(
                repository=repository,
                listings=self.listings,
                ledger=self.ledger,
                tokens=self.tokens,
                users=self.auth,
                locks=self.locks,
            )
        return self._lease_service

    def reset(self) -> None:
        """
        Reset all cached services.

        This is primarily for testing - allows tests to get fresh
        service instances with different mock dependencies.
        """
        self.locks = EntityLocks()
        self._auth_service = None
        self._ledger_service = None
        self._listing_repository = None
        self._listing_service = None
        self._token_client = None
        self._token_binding_service = None
        self._lease_service = None


# Module-level container singleton
_container: ServiceContainer | None = None


def get_container() -> ServiceContainer:
    """Get the singleton service container."""
    global _container
    if _container is None:
        _container = ServiceContainer()
    return _container


def reset_container() -> None:
    """
    Reset the service container.

    This clears the cached container, so the next call to get_container()
    will create a fresh container with new service instances.

    Primarily used for testing.
    """
    global _container
    _container = None


# FastAPI dependency functions
# These are the functions that should be used in route Depends() calls


def get_auth_service() -> "IAuthService":
    """FastAPI dependency for auth service."""
    return get_container().auth


def get_ledger_service() -> "ILedgerService":
    """FastAPI dependency for ledger service."""
    return get_container().ledger


def get_listing_service() -> "IListingService":
    """FastAPI dependency for listing service."""
    return get_container().listings


def get_token_binding_service() -> "ITokenBindingService":
    """FastAPI dependency for token binding service."""
    return get_container().tokens


def get_lease_service() -> "ILeaseService":
    """FastAPI dependency for lease service."""
    return get_container().leases
