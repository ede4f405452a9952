"""
Shared infrastructure for the marketplace backend.

This package contains cross-cutting concerns that are used by multiple modules:
- config: Centralized settings management
- database: Supabase client factory
- exceptions: Base exception classes and the error taxonomy
- locks: Per-entity asyncio locks
- repository: Base class for Supabase repositories

Note: Business logic should NOT go here. This is for infrastructure only.
"""

from .config import Settings, get_settings
from .database import get_supabase_client, reset_client_cache
from .exceptions import (
    MarketError,
    NotFoundError,
    ValidationError,
    AuthenticationError,
    AuthorizationError,
    OwnershipError,
    InvalidStateError,
    ConcurrentModificationError,
    BindingConflictError,
    ExternalServiceError,
    TransientError,
    PermanentError,
)
from .locks import EntityLocks
from .models import Actor, AuthenticatedUser

__all__ = [
    "Settings",
    "get_settings",
    "get_supabase_client",
    "reset_client_cache",
    "MarketError",
    "NotFoundError",
    "ValidationError",
    "AuthenticationError",
    "AuthorizationError",
    "OwnershipError",
    "InvalidStateError",
    "ConcurrentModificationError",
    "BindingConflictError",
    "ExternalServiceError",
    "TransientError",
    "PermanentError",
    "EntityLocks",
    "Actor",
    "AuthenticatedUser",
]
