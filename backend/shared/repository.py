"""
Base repository class for database access.

Provides a common abstraction layer for the Supabase repositories,
encapsulating client access and the optimistic version check shared by
every versioned table.
"""

from typing import Any, TypeVar, Generic
from supabase import Client

from .exceptions import ConcurrentModificationError


T = TypeVar("T")


class BaseRepository(Generic[T]):
    """
    Base class for all Supabase repositories.

    Provides common functionality for database operations:
    - Supabase client access via self._db
    - Generic type parameter for model type hints
    - Versioned updates for optimistic concurrency

    Subclasses should implement domain-specific data access methods
    and handle dict-to-Pydantic model mapping internally.

    Example:
        class ListingRepository(BaseRepository[Listing]):
            def get(self, listing_id: str) -> Optional[Listing]:
                result = self._db.table("listings").select("*").eq("id", listing_id).execute()
                if not result.data:
                    return None
                return self._map_to_listing(result.data[0])
    """

    entity_name: str = "entity"

    def __init__(self, db: Client) -> None:
        """
        Initialize the repository with a Supabase client.

        Args:
            db: Supabase client instance for database operations.
        """
        self._db = db

    def _versioned_update(
        self,
        table: str,
        entity_id: str,
        expected_version: int,
        data: dict[str, Any],
    ) -> dict[str, Any]:
        """
        Update a row only if its version still matches.

        The version column is bumped in the same statement. An empty result
        means another writer got there first.

        Raises:
            ConcurrentModificationError: If the stored version differs.
        """
        payload = {**data, "version": expected_version + 1}
        result = (
            self._db.table(table)
            .update(payload)
            .eq("id", entity_id)
            .eq("version", expected_version)
            .execute()
        )
        if not result.data:
            raise ConcurrentModificationError(self.entity_name, entity_id, expected_version)
        return result.data[0]
