"""
Listing repositories.

InMemoryListingRepository backs tests and local development;
SupabaseListingRepository maps the `domains` and `listings` tables.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional, Any

from shared.exceptions import ConcurrentModificationError
from shared.repository import BaseRepository
from .models import (
    Domain,
    DomainType,
    LeaseType,
    Listing,
    ListingQuery,
    ListingStatus,
    SortOrder,
    VerificationStatus,
)
from .exceptions import DomainNotFoundError, ListingNotFoundError


class InMemoryListingRepository:
    """Dict-backed domain and listing storage."""

    def __init__(self) -> None:
        self._domains: dict[str, Domain] = {}
        self._listings: dict[str, Listing] = {}

    # Domains

    def get_domain(self, domain_id: str) -> Optional[Domain]:
        return self._domains.get(domain_id)

    def get_domain_by_name(self, name: str) -> Optional[Domain]:
        name = name.lower()
        for domain in self._domains.values():
            if domain.name == name:
                return domain
        return None

    def create_domain(self, domain: Domain) -> Domain:
        self._domains[domain.id] = domain
        return domain

    def update_domain(self, domain_id: str, fields: dict[str, Any]) -> Domain:
        current = self._domains.get(domain_id)
        if current is None:
            raise DomainNotFoundError(domain_id)
        updated = current.model_copy(
            update={**fields, "updated_at": datetime.now(timezone.utc)}
        )
        self._domains[domain_id] = updated
        return updated

    # Listings

    def get(self, listing_id: str) -> Optional[Listing]:
        return self._listings.get(listing_id)

    def create(self, listing: Listing) -> Listing:
        self._listings[listing.id] = listing
        return listing

    def update(
        self, listing_id: str, expected_version: int, fields: dict[str, Any]
    ) -> Listing:
        current = self._listings.get(listing_id)
        if current is None:
            raise ListingNotFoundError(listing_id)
        if current.version != expected_version:
            raise ConcurrentModificationError("listing", listing_id, expected_version)
        updated = current.model_copy(
            update={
                **fields,
                "version": expected_version + 1,
                "updated_at": datetime.now(timezone.utc),
            }
        )
        self._listings[listing_id] = updated
        return updated

    def increment_views(self, listing_id: str) -> None:
        current = self._listings.get(listing_id)
        if current is not None:
            self._listings[listing_id] = current.model_copy(
                update={"views_count": current.views_count + 1}
            )

    def list_by_domain(self, domain_id: str) -> list[Listing]:
        return [l for l in self._listings.values() if l.domain_id == domain_id]

    def find_bound_listing(self, domain_id: str) -> Optional[Listing]:
        for listing in self._listings.values():
            if listing.domain_id == domain_id and listing.has_binding:
                return listing
        return None

    def list_pending_release(self) -> list[Listing]:
        return [l for l in self._listings.values() if l.binding_pending_release]

    def list_failed_release(self) -> list[Listing]:
        return [l for l in self._listings.values() if l.binding_release_failed]

    def search(self, query: ListingQuery) -> tuple[list[Listing], int]:
        rows = [l for l in self._listings.values() if self._matches(l, query)]
        rows.sort(
            key=lambda l: getattr(l, query.sort_by.value),
            reverse=query.order == SortOrder.DESC,
        )
        return rows[query.offset : query.offset + query.limit], len(rows)

    def _matches(self, listing: Listing, query: ListingQuery) -> bool:
        if listing.status != query.status:
            return False
        if query.min_price is not None and listing.price_amount < query.min_price:
            return False
        if query.max_price is not None and listing.price_amount > query.max_price:
            return False
        if query.tags and not set(query.tags) & set(listing.tags):
            return False

        domain = self._domains.get(listing.domain_id)
        if query.domain_type and query.domain_type != "all":
            if domain is None or domain.domain_type.value != query.domain_type:
                return False
        if query.with_site and (domain is None or not domain.existing_site_url):
            return False

        if query.search:
            needle = query.search.lower()
            haystack = [listing.domain_name, listing.description or ""]
            if not any(needle in text.lower() for text in haystack) and needle not in listing.tags:
                return False
        return True


class SupabaseListingRepository(BaseRepository[Listing]):
    """
    Domain and listing storage in Supabase.

    Listing writes go through the version-checked update of BaseRepository.
    """

    entity_name = "listing"

    # Domains

    def get_domain(self, domain_id: str) -> Optional[Domain]:
        result = self._db.table("domains").select("*").eq("id", domain_id).execute()
        if not result.data:
            return None
        return self._map_to_domain(result.data[0])

    def get_domain_by_name(self, name: str) -> Optional[Domain]:
        result = self._db.table("domains").select("*").eq("name", name.lower()).execute()
        if not result.data:
            return None
        return self._map_to_domain(result.data[0])

    def create_domain(self, domain: Domain) -> Domain:
        result = self._db.table("domains").insert(domain.model_dump(mode="json")).execute()
        return self._map_to_domain(result.data[0])

    def update_domain(self, domain_id: str, fields: dict[str, Any]) -> Domain:
        data = {
            **self._serialize(fields),
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }
        result = self._db.table("domains").update(data).eq("id", domain_id).execute()
        if not result.data:
            raise DomainNotFoundError(domain_id)
        return self._map_to_domain(result.data[0])

    # Listings

    def get(self, listing_id: str) -> Optional[Listing]:
        result = self._db.table("listings").select("*").eq("id", listing_id).execute()
        if not result.data:
            return None
        return self._map_to_listing(result.data[0])

    def create(self, listing: Listing) -> Listing:
        result = self._db.table("listings").insert(listing.model_dump(mode="json")).execute()
        return self._map_to_listing(result.data[0])

    def update(
        self, listing_id: str, expected_version: int, fields: dict[str, Any]
    ) -> Listing:
        data = {
            **self._serialize(fields),
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }
        row = self._versioned_update("listings", listing_id, expected_version, data)
        return self._map_to_listing(row)

    def increment_views(self, listing_id: str) -> None:
        self._db.rpc("increment_listing_views", {"listing_id": listing_id}).execute()

    def list_by_domain(self, domain_id: str) -> list[Listing]:
        result = self._db.table("listings").select("*").eq("domain_id", domain_id).execute()
        return [self._map_to_listing(r) for r in result.data]

    def find_bound_listing(self, domain_id: str) -> Optional[Listing]:
        result = (
            self._db.table("listings")
            .select("*")
            .eq("domain_id", domain_id)
            .not_.is_("nft_token_id", "null")
            .limit(1)
            .execute()
        )
        if not result.data:
            return None
        return self._map_to_listing(result.data[0])

    def list_pending_release(self) -> list[Listing]:
        result = (
            self._db.table("listings")
            .select("*")
            .eq("binding_pending_release", True)
            .execute()
        )
        return [self._map_to_listing(r) for r in result.data]

    def list_failed_release(self) -> list[Listing]:
        result = (
            self._db.table("listings")
            .select("*")
            .eq("binding_release_failed", True)
            .execute()
        )
        return [self._map_to_listing(r) for r in result.data]

    def search(self, query: ListingQuery) -> tuple[list[Listing], int]:
        request = (
            self._db.table("listings")
            .select("*, domains!inner(domain_type, existing_site_url)", count="exact")
            .eq("status", query.status.value)
        )

        if query.search:
            needle = query.search.replace(",", " ").strip()
            request = request.or_(
                f"domain_name.ilike.%{needle}%,"
                f"description.ilike.%{needle}%,"
                f"tags.cs.{{{needle.lower()}}}"
            )
        if query.domain_type and query.domain_type != "all":
            request = request.eq("domains.domain_type", query.domain_type)
        if query.with_site:
            request = request.not_.is_("domains.existing_site_url", "null")
        if query.min_price is not None:
            request = request.gte("price_amount", str(query.min_price))
        if query.max_price is not None:
            request = request.lte("price_amount", str(query.max_price))
        if query.tags:
            request = request.overlaps("tags", query.tags)

        result = (
            request.order(query.sort_by.value, desc=query.order == SortOrder.DESC)
            .range(query.offset, query.offset + query.limit - 1)
            .execute()
        )
        return [self._map_to_listing(r) for r in result.data], result.count or 0

    # -------------------------------------------------------------------------
    # Mapping helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _serialize(fields: dict[str, Any]) -> dict[str, Any]:
        data = {}
        for key, value in fields.items():
            if isinstance(value, Decimal):
                value = str(value)
            elif isinstance(value, datetime):
                value = value.isoformat()
            elif hasattr(value, "value"):
                value = value.value
            data[key] = value
        return data

    def _map_to_domain(self, data: dict[str, Any]) -> Domain:
        return Domain(
            id=str(data["id"]),
            name=data["name"],
            tld=data["tld"],
            domain_type=DomainType(data["domain_type"]),
            owner_id=str(data["owner_id"]),
            verification_status=VerificationStatus(
                data.get("verification_status") or "pending"
            ),
            verification_method=data.get("verification_method"),
            existing_site_url=data.get("existing_site_url"),
            seo_metrics=data.get("seo_metrics") or {},
            verified_at=data.get("verified_at"),
            created_at=data["created_at"],
            updated_at=data.get("updated_at") or data["created_at"],
        )

    def _map_to_listing(self, data: dict[str, Any]) -> Listing:
        return Listing(
            id=str(data["id"]),
            domain_id=str(data["domain_id"]),
            domain_name=data["domain_name"],
            lessor_id=str(data["lessor_id"]),
            lease_type=LeaseType(data.get("lease_type") or "fixed"),
            price_amount=Decimal(str(data["price_amount"])),
            price_currency=data.get("price_currency") or "USD",
            duration_days=int(data["duration_days"]),
            description=data.get("description"),
            restrictions=data.get("restrictions"),
            tags=data.get("tags") or [],
            status=ListingStatus(data["status"]),
            nft_contract_address=data.get("nft_contract_address"),
            nft_token_id=data.get("nft_token_id"),
            binding_pending_release=bool(data.get("binding_pending_release")),
            binding_release_failed=bool(data.get("binding_release_failed")),
            views_count=data.get("views_count") or 0,
            featured=bool(data.get("featured")),
            version=int(data.get("version") or 1),
            created_at=data["created_at"],
            updated_at=data.get("updated_at") or data["created_at"],
        )
