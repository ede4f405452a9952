"""
Ledger service.

Appends transactions and interaction events and enforces the one-way
status moves of a transaction.
"""

import logging
import uuid
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Any

from shared.config import Settings, get_settings
from shared.exceptions import InvalidStateError

from .interfaces import ILedgerService, ILedgerRepository
from .models import (
    Interaction,
    InteractionAction,
    Transaction,
    TransactionStatus,
    TransactionType,
)
from .repository import InMemoryLedgerRepository
from .exceptions import InvalidAmountError, TransactionNotFoundError

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


class LedgerService(ILedgerService):
    """Append-only ledger of payments and user interactions."""

    def __init__(
        self,
        repository: ILedgerRepository,
        settings: Optional[Settings] = None,
    ):
        self._repo = repository
        self._settings = settings or get_settings()

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
        """Append a pending transaction."""
        if amount <= 0:
            raise InvalidAmountError(amount, "Amount must be positive")

        transaction = Transaction(
            id=str(uuid.uuid4()),
            user_id=user_id,
            lease_id=lease_id,
            type=type,
            amount=amount,
            currency=currency,
            payment_method=payment_method,
            metadata=metadata or {},
        )
        stored = self._repo.add_transaction(transaction)
        logger.debug(f"Recorded {type.value} transaction {stored.id} for user {user_id}")
        return stored

    async def settle(self, transaction_id: str, tx_hash: Optional[str] = None) -> Transaction:
        transaction = self._require(transaction_id)
        self._require_status(transaction, TransactionStatus.PENDING, "settle")
        return self._repo.set_transaction_status(
            transaction_id, TransactionStatus.COMPLETED, tx_hash=tx_hash
        )

    async def fail(self, transaction_id: str) -> Transaction:
        transaction = self._require(transaction_id)
        self._require_status(transaction, TransactionStatus.PENDING, "fail")
        return self._repo.set_transaction_status(transaction_id, TransactionStatus.FAILED)

    async def refund(self, transaction_id: str, reason: str) -> Transaction:
        """
        Refund a completed transaction.

        The original is marked refunded and a new completed refund entry is
        appended for the same user and lease.
        """
        original = self._require(transaction_id)
        self._require_status(original, TransactionStatus.COMPLETED, "refund")

        refund = Transaction(
            id=str(uuid.uuid4()),
            user_id=original.user_id,
            lease_id=original.lease_id,
            type=TransactionType.REFUND,
            amount=original.amount,
            currency=original.currency,
            status=TransactionStatus.COMPLETED,
            metadata={"refund_of": original.id, "reason": reason},
        )
        stored = self._repo.add_transaction(refund)
        self._repo.set_transaction_status(transaction_id, TransactionStatus.REFUNDED)
        logger.info(f"Refunded transaction {transaction_id} as {stored.id}")
        return stored

    async def discard_transaction(self, transaction_id: str) -> None:
        transaction = self._repo.get_transaction(transaction_id)
        if transaction is None:
            return
        self._require_status(transaction, TransactionStatus.PENDING, "discard")
        self._repo.delete_transaction(transaction_id)

    async def get_transaction_history(
        self, user_id: str, limit: int = 50, offset: int = 0
    ) -> tuple[list[Transaction], int]:
        return self._repo.list_transactions(user_id, limit=limit, offset=offset)

    async def record_interaction(
        self,
        user_id: str,
        action: InteractionAction,
        domain_id: Optional[str] = None,
        listing_id: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> Interaction:
        interaction = Interaction(
            id=str(uuid.uuid4()),
            user_id=user_id,
            action=action,
            domain_id=domain_id,
            listing_id=listing_id,
            metadata=metadata or {},
        )
        return self._repo.add_interaction(interaction)

    async def discard_interaction(self, interaction_id: str) -> None:
        self._repo.delete_interaction(interaction_id)

    async def list_interactions(self, user_id: str, limit: int = 20) -> list[Interaction]:
        return self._repo.list_interactions(user_id, limit=limit)

    def platform_fee(self, amount: Decimal) -> Decimal:
        return (amount * self._settings.platform_fee_rate).quantize(CENT, rounding=ROUND_HALF_UP)

    def _require(self, transaction_id: str) -> Transaction:
        transaction = self._repo.get_transaction(transaction_id)
        if transaction is None:
            raise TransactionNotFoundError(transaction_id)
        return transaction

    @staticmethod
    def _require_status(
        transaction: Transaction, expected: TransactionStatus, attempted: str
    ) -> None:
        if transaction.status != expected:
            raise InvalidStateError(
                "transaction", transaction.id, transaction.status.value, attempted
            )


# Module-level instance getter
_service_instance: Optional[LedgerService] = None


def get_ledger_service() -> LedgerService:
    """Get the ledger service singleton (in-memory storage)."""
    global _service_instance
    if _service_instance is None:
        _service_instance = LedgerService(InMemoryLedgerRepository())
    return _service_instance


def reset_ledger_service() -> None:
    """Reset the ledger service singleton (for testing)."""
    global _service_instance
    _service_instance = None
