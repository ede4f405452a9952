"""
Tokens module.

Mints and terminates lease tokens on the lease token contract and keeps
the one-token-per-domain binding recorded on listings.

Public API:
- ILeaseTokenClient: Blockchain collaborator protocol
- ITokenBindingService: bind / unbind / retry_pending_unbinds / resolve_failed_release
- Clients: client.Web3LeaseTokenClient, client.InMemoryLeaseTokenClient
"""

from .interfaces import ILeaseTokenClient, ITokenBindingService
from .models import IssuedToken, LeaseTokenRequest, UnbindResult
from .exceptions import (
    BlockchainUnavailableError,
    ContractRevertError,
    TransactionPendingError,
    TransactionRejectedError,
    WalletRequiredError,
)

__all__ = [
    # Interfaces
    "ILeaseTokenClient",
    "ITokenBindingService",
    # Models
    "IssuedToken",
    "LeaseTokenRequest",
    "UnbindResult",
    # Exceptions
    "BlockchainUnavailableError",
    "ContractRevertError",
    "TransactionPendingError",
    "TransactionRejectedError",
    "WalletRequiredError",
]
