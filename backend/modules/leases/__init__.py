"""
Leases module.

Owns the lease lifecycle (active, completed, terminated, disputed) and keeps
listing status in step with it. Lease creation is all-or-nothing across the
lease, the listing, the ledger and the optional lease token.

Public API:
- ILeaseService: Interface for lease operations
- Lease, LeaseTerms: Data models
- LeaseUnitOfWork: Compensating unit of work
- Lease exceptions: LeaseNotFoundError, SelfLeaseError, etc.
"""

from .interfaces import ILeaseService, ILeaseRepository
from .models import (
    Lease,
    LeaseRole,
    LeaseStatus,
    LeaseTerms,
    CreateLeaseRequest,
)
from .unit_of_work import LeaseUnitOfWork
from .exceptions import (
    LeaseNotFoundError,
    SelfLeaseError,
    InvalidLeasePeriodError,
    LeaseNotEndedError,
)

__all__ = [
    # Interfaces
    "ILeaseService",
    "ILeaseRepository",
    # Models
    "Lease",
    "LeaseRole",
    "LeaseStatus",
    "LeaseTerms",
    "CreateLeaseRequest",
    # Unit of work
    "LeaseUnitOfWork",
    # Exceptions
    "LeaseNotFoundError",
    "SelfLeaseError",
    "InvalidLeasePeriodError",
    "LeaseNotEndedError",
]
