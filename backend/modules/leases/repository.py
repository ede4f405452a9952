"""
Lease repositories.

InMemoryLeaseRepository backs tests and local development;
SupabaseLeaseRepository maps the `leases` table.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional, Any

from shared.exceptions import ConcurrentModificationError
from shared.repository import BaseRepository
from .models import Lease, LeaseRole, LeaseStatus
from .exceptions import LeaseNotFoundError


class InMemoryLeaseRepository:
    """Dict-backed lease storage."""

    def __init__(self) -> None:
        self._leases: dict[str, Lease] = {}

    def get(self, lease_id: str) -> Optional[Lease]:
        return self._leases.get(lease_id)

    def create(self, lease: Lease) -> Lease:
        self._leases[lease.id] = lease
        return lease

    def delete(self, lease_id: str) -> None:
        self._leases.pop(lease_id, None)

    def update(self, lease_id: str, expected_version: int, fields: dict[str, Any]) -> Lease:
        current = self._leases.get(lease_id)
        if current is None:
            raise LeaseNotFoundError(lease_id)
        if current.version != expected_version:
            raise ConcurrentModificationError("lease", lease_id, expected_version)
        updated = current.model_copy(
            update={
                **fields,
                "version": expected_version + 1,
                "updated_at": datetime.now(timezone.utc),
            }
        )
        self._leases[lease_id] = updated
        return updated

    def list_for_user(
        self,
        user_id: str,
        role: LeaseRole = LeaseRole.ANY,
        status: Optional[LeaseStatus] = None,
    ) -> list[Lease]:
        def matches(lease: Lease) -> bool:
            if role == LeaseRole.LESSOR and lease.lessor_id != user_id:
                return False
            if role == LeaseRole.LESSEE and lease.lessee_id != user_id:
                return False
            if role == LeaseRole.ANY and not lease.is_party(user_id):
                return False
            return status is None or lease.status == status

        return sorted(
            (l for l in self._leases.values() if matches(l)),
            key=lambda l: l.created_at,
            reverse=True,
        )

    def list_by_listing(
        self, listing_id: str, status: Optional[LeaseStatus] = None
    ) -> list[Lease]:
        return [
            l
            for l in self._leases.values()
            if l.listing_id == listing_id and (status is None or l.status == status)
        ]


class SupabaseLeaseRepository(BaseRepository[Lease]):
    """Lease storage in Supabase."""

    entity_name = "lease"

    def get(self, lease_id: str) -> Optional[Lease]:
        result = self._db.table("leases").select("*").eq("id", lease_id).execute()
        if not result.data:
            return None
        return self._map_to_lease(result.data[0])

    def create(self, lease: Lease) -> Lease:
        result = self._db.table("leases").insert(lease.model_dump(mode="json")).execute()
        return self._map_to_lease(result.data[0])

    def delete(self, lease_id: str) -> None:
        self._db.table("leases").delete().eq("id", lease_id).execute()

    def update(self, lease_id: str, expected_version: int, fields: dict[str, Any]) -> Lease:
        data: dict[str, Any] = {"updated_at": datetime.now(timezone.utc).isoformat()}
        for key, value in fields.items():
            if isinstance(value, LeaseStatus):
                value = value.value
            elif isinstance(value, datetime):
                value = value.isoformat()
            data[key] = value
        row = self._versioned_update("leases", lease_id, expected_version, data)
        return self._map_to_lease(row)

    def list_for_user(
        self,
        user_id: str,
        role: LeaseRole = LeaseRole.ANY,
        status: Optional[LeaseStatus] = None,
    ) -> list[Lease]:
        query = self._db.table("leases").select("*")
        if role == LeaseRole.LESSOR:
            query = query.eq("lessor_id", user_id)
        elif role == LeaseRole.LESSEE:
            query = query.eq("lessee_id", user_id)
        else:
            query = query.or_(f"lessor_id.eq.{user_id},lessee_id.eq.{user_id}")
        if status is not None:
            query = query.eq("status", status.value)
        result = query.order("created_at", desc=True).execute()
        return [self._map_to_lease(r) for r in result.data]

    def list_by_listing(
        self, listing_id: str, status: Optional[LeaseStatus] = None
    ) -> list[Lease]:
        query = self._db.table("leases").select("*").eq("listing_id", listing_id)
        if status is not None:
            query = query.eq("status", status.value)
        return [self._map_to_lease(r) for r in query.execute().data]

    def _map_to_lease(self, data: dict[str, Any]) -> Lease:
        return Lease(
            id=str(data["id"]),
            listing_id=str(data["listing_id"]),
            domain_id=str(data["domain_id"]),
            domain_name=data["domain_name"],
            lessor_id=str(data["lessor_id"]),
            lessee_id=str(data["lessee_id"]),
            start_date=data["start_date"],
            end_date=data["end_date"],
            payment_amount=Decimal(str(data["payment_amount"])),
            payment_currency=data.get("payment_currency") or "USD",
            status=LeaseStatus(data["status"]),
            auto_renew=bool(data.get("auto_renew")),
            agreement_hash=data.get("agreement_hash"),
            nft_transferred_at=data.get("nft_transferred_at"),
            escrow_tx_hash=data.get("escrow_tx_hash"),
            termination_reason=data.get("termination_reason"),
            dispute_reason=data.get("dispute_reason"),
            ended_at=data.get("ended_at"),
            version=int(data.get("version") or 1),
            created_at=data["created_at"],
            updated_at=data.get("updated_at") or data["created_at"],
        )
