"""
Ledger module.

Append-only record of money movements (transactions) and of what users did
on the marketplace (interaction history).

Public API:
- ILedgerService: Interface for ledger operations
- Transaction, Interaction: Ledger records
- Ledger exceptions: TransactionNotFoundError, InvalidAmountError
"""

from .interfaces import ILedgerService, ILedgerRepository
from .models import (
    Transaction,
    TransactionType,
    TransactionStatus,
    Interaction,
    InteractionAction,
)
from .exceptions import TransactionNotFoundError, InvalidAmountError

__all__ = [
    # Interfaces
    "ILedgerService",
    "ILedgerRepository",
    # Models
    "Transaction",
    "TransactionType",
    "TransactionStatus",
    "Interaction",
    "InteractionAction",
    # Exceptions
    "TransactionNotFoundError",
    "InvalidAmountError",
]
