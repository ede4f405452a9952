"""
Ledger repositories.

InMemoryLedgerRepository backs tests and local development;
SupabaseLedgerRepository maps the `transactions` and `interactions` tables.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional, Any

from shared.repository import BaseRepository
from .models import Interaction, InteractionAction, Transaction, TransactionStatus, TransactionType
from .exceptions import TransactionNotFoundError


class InMemoryLedgerRepository:
    """Dict-backed ledger storage."""

    def __init__(self) -> None:
        self._transactions: dict[str, Transaction] = {}
        self._interactions: dict[str, Interaction] = {}

    def add_transaction(self, transaction: Transaction) -> Transaction:
        self._transactions[transaction.id] = transaction
        return transaction

    def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        return self._transactions.get(transaction_id)

    def set_transaction_status(
        self,
        transaction_id: str,
        status: TransactionStatus,
        tx_hash: Optional[str] = None,
    ) -> Transaction:
        current = self._transactions.get(transaction_id)
        if current is None:
            raise TransactionNotFoundError(transaction_id)
        update: dict[str, Any] = {"status": status, "updated_at": datetime.now(timezone.utc)}
        if tx_hash is not None:
            update["tx_hash"] = tx_hash
        updated = current.model_copy(update=update)
        self._transactions[transaction_id] = updated
        return updated

    def delete_transaction(self, transaction_id: str) -> None:
        self._transactions.pop(transaction_id, None)

    def list_transactions(
        self, user_id: str, limit: int = 50, offset: int = 0
    ) -> tuple[list[Transaction], int]:
        rows = sorted(
            (t for t in self._transactions.values() if t.user_id == user_id),
            key=lambda t: t.created_at,
            reverse=True,
        )
        return rows[offset : offset + limit], len(rows)

    def add_interaction(self, interaction: Interaction) -> Interaction:
        self._interactions[interaction.id] = interaction
        return interaction

    def delete_interaction(self, interaction_id: str) -> None:
        self._interactions.pop(interaction_id, None)

    def list_interactions(self, user_id: str, limit: int = 20) -> list[Interaction]:
        rows = sorted(
            (i for i in self._interactions.values() if i.user_id == user_id),
            key=lambda i: i.created_at,
            reverse=True,
        )
        return rows[:limit]


class SupabaseLedgerRepository(BaseRepository[Transaction]):
    """
    Ledger storage in Supabase.

    Transactions are never updated except for their status column.
    """

    entity_name = "transaction"

    def add_transaction(self, transaction: Transaction) -> Transaction:
        data = transaction.model_dump(mode="json")
        result = self._db.table("transactions").insert(data).execute()
        return self._map_to_transaction(result.data[0])

    def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        result = self._db.table("transactions").select("*").eq("id", transaction_id).execute()
        if not result.data:
            return None
        return self._map_to_transaction(result.data[0])

    def set_transaction_status(
        self,
        transaction_id: str,
        status: TransactionStatus,
        tx_hash: Optional[str] = None,
    ) -> Transaction:
        data: dict[str, Any] = {
            "status": status.value,
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }
        if tx_hash is not None:
            data["tx_hash"] = tx_hash
        result = self._db.table("transactions").update(data).eq("id", transaction_id).execute()
        if not result.data:
            raise TransactionNotFoundError(transaction_id)
        return self._map_to_transaction(result.data[0])

    def delete_transaction(self, transaction_id: str) -> None:
        self._db.table("transactions").delete().eq("id", transaction_id).execute()

    def list_transactions(
        self, user_id: str, limit: int = 50, offset: int = 0
    ) -> tuple[list[Transaction], int]:
        result = (
            self._db.table("transactions")
            .select("*", count="exact")
            .eq("user_id", user_id)
            .order("created_at", desc=True)
            .range(offset, offset + limit - 1)
            .execute()
        )
        return [self._map_to_transaction(r) for r in result.data], result.count or 0

    def add_interaction(self, interaction: Interaction) -> Interaction:
        data = interaction.model_dump(mode="json")
        result = self._db.table("interactions").insert(data).execute()
        return self._map_to_interaction(result.data[0])

    def delete_interaction(self, interaction_id: str) -> None:
        self._db.table("interactions").delete().eq("id", interaction_id).execute()

    def list_interactions(self, user_id: str, limit: int = 20) -> list[Interaction]:
        result = (
            self._db.table("interactions")
            .select("*")
            .eq("user_id", user_id)
            .order("created_at", desc=True)
            .limit(limit)
            .execute()
        )
        return [self._map_to_interaction(r) for r in result.data]

    # -------------------------------------------------------------------------
    # Mapping helpers
    # -------------------------------------------------------------------------

    def _map_to_transaction(self, data: dict[str, Any]) -> Transaction:
        return Transaction(
            id=str(data["id"]),
            user_id=str(data["user_id"]),
            lease_id=str(data["lease_id"]) if data.get("lease_id") else None,
            type=TransactionType(data["type"]),
            amount=Decimal(str(data["amount"])),
            currency=data.get("currency") or "USD",
            status=TransactionStatus(data["status"]),
            payment_method=data.get("payment_method"),
            payment_provider=data.get("payment_provider"),
            tx_hash=data.get("tx_hash"),
            metadata=data.get("metadata") or {},
            created_at=data["created_at"],
            updated_at=data.get("updated_at") or data["created_at"],
        )

    def _map_to_interaction(self, data: dict[str, Any]) -> Interaction:
        return Interaction(
            id=str(data["id"]),
            user_id=str(data["user_id"]),
            action=InteractionAction(data["action"]),
            domain_id=str(data["domain_id"]) if data.get("domain_id") else None,
            listing_id=str(data["listing_id"]) if data.get("listing_id") else None,
            metadata=data.get("metadata") or {},
            created_at=data["created_at"],
        )
