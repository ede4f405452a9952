"""
Ledger module interfaces.

Other modules depend on ILedgerService to append payment and interaction
records; the repository protocol hides where those records live.
"""

from decimal import Decimal
from typing import Protocol, Optional, Any, runtime_checkable

from .models import (
    Interaction,
    InteractionAction,
    Transaction,
    TransactionStatus,
    TransactionType,
)


@runtime_checkable
class ILedgerRepository(Protocol):
    """Storage for transactions and interactions."""

    def add_transaction(self, transaction: Transaction) -> Transaction: ...

    def get_transaction(self, transaction_id: str) -> Optional[Transaction]: ...

    def set_transaction_status(
        self,
        transaction_id: str,
        status: TransactionStatus,
        tx_hash: Optional[str] = None,
    ) -> Transaction: ...

    def delete_transaction(self, transaction_id: str) -> None: ...

    def list_transactions(
        self, user_id: str, limit: int = 50, offset: int = 0
    ) -> tuple[list[Transaction], int]: ...

    def add_interaction(self, interaction: Interaction) -> Interaction: ...

    def delete_interaction(self, interaction_id: str) -> None: ...

    def list_interactions(self, user_id: str, limit: int = 20) -> list[Interaction]: ...


@runtime_checkable
class ILedgerService(Protocol):
    """
    Interface for ledger operations.

    Transactions are append-only; see models.py for the allowed status moves.
    """

    async def record_transaction(
        self,
        user_id: str,
        type: TransactionType,
        amount: Decimal,
        lease_id: Optional[str] = None,
        currency: str = "USD",
        payment_method: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> Transaction:
        """
        Append a pending transaction.

        Raises:
            InvalidAmountError: If amount is not positive
        """
        ...

    async def settle(self, transaction_id: str, tx_hash: Optional[str] = None) -> Transaction:
        """Mark a pending transaction completed."""
        ...

    async def fail(self, transaction_id: str) -> Transaction:
        """Mark a pending transaction failed."""
        ...

    async def refund(self, transaction_id: str, reason: str) -> Transaction:
        """
        Refund a completed transaction.

        Returns:
            The new refund transaction
        """
        ...

    async def discard_transaction(self, transaction_id: str) -> None:
        """Remove a pending transaction written by a rolled-back unit of work."""
        ...

    async def get_transaction_history(
        self, user_id: str, limit: int = 50, offset: int = 0
    ) -> tuple[list[Transaction], int]:
        """Most recent first, with the total count."""
        ...

    async def record_interaction(
        self,
        user_id: str,
        action: InteractionAction,
        domain_id: Optional[str] = None,
        listing_id: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> Interaction:
        """Append an interaction event."""
        ...

    async def discard_interaction(self, interaction_id: str) -> None:
        """Remove an interaction written by a rolled-back unit of work."""
        ...

    async def list_interactions(self, user_id: str, limit: int = 20) -> list[Interaction]:
        """Most recent first."""
        ...

    def platform_fee(self, amount: Decimal) -> Decimal:
        """Marketplace commission on a payment amount."""
        ...
