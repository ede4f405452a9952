"""
User repositories.

InMemoryUserRepository backs tests and local development;
SupabaseUserRepository maps the `users` table.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional, Any

from shared.repository import BaseRepository
from .models import AccountType, CommunicationStyle, User
from .exceptions import UserAlreadyExistsError, UserNotFoundError


class InMemoryUserRepository:
    """Dict-backed user storage with the same uniqueness rules as the table."""

    def __init__(self) -> None:
        self._users: dict[str, User] = {}

    def get(self, user_id: str) -> Optional[User]:
        return self._users.get(user_id)

    def get_by_email(self, email: str) -> Optional[User]:
        email = email.lower()
        return next((u for u in self._users.values() if u.email == email), None)

    def get_by_wallet(self, wallet_address: str) -> Optional[User]:
        wallet = wallet_address.lower()
        return next(
            (
                u
                for u in self._users.values()
                if u.wallet_address and u.wallet_address.lower() == wallet
            ),
            None,
        )

    def create(self, user: User) -> User:
        if self.get_by_email(user.email) is not None:
            raise UserAlreadyExistsError(user.email)
        if user.wallet_address and self.get_by_wallet(user.wallet_address) is not None:
            raise UserAlreadyExistsError(user.email)
        self._users[user.id] = user
        return user

    def update(self, user_id: str, fields: dict[str, Any]) -> User:
        current = self._users.get(user_id)
        if current is None:
            raise UserNotFoundError(user_id)
        updated = current.model_copy(
            update={**fields, "updated_at": datetime.now(timezone.utc)}
        )
        self._users[user_id] = updated
        return updated


class SupabaseUserRepository(BaseRepository[User]):
    """User storage in Supabase."""

    entity_name = "user"

    def get(self, user_id: str) -> Optional[User]:
        return self._first(self._db.table("users").select("*").eq("id", user_id).execute())

    def get_by_email(self, email: str) -> Optional[User]:
        return self._first(
            self._db.table("users").select("*").eq("email", email.lower()).execute()
        )

    def get_by_wallet(self, wallet_address: str) -> Optional[User]:
        return self._first(
            self._db.table("users")
            .select("*")
            .ilike("wallet_address", wallet_address)
            .execute()
        )

    def create(self, user: User) -> User:
        if self.get_by_email(user.email) is not None:
            raise UserAlreadyExistsError(user.email)
        result = self._db.table("users").insert(user.model_dump(mode="json")).execute()
        return self._map_to_user(result.data[0])

    def update(self, user_id: str, fields: dict[str, Any]) -> User:
        data = {
            key: (value.value if hasattr(value, "value") else value)
            for key, value in fields.items()
        }
        for key, value in data.items():
            if isinstance(value, datetime):
                data[key] = value.isoformat()
            elif isinstance(value, Decimal):
                data[key] = str(value)
        data["updated_at"] = datetime.now(timezone.utc).isoformat()
        result = self._db.table("users").update(data).eq("id", user_id).execute()
        if not result.data:
            raise UserNotFoundError(user_id)
        return self._map_to_user(result.data[0])

    def _first(self, result: Any) -> Optional[User]:
        if not result.data:
            return None
        return self._map_to_user(result.data[0])

    def _map_to_user(self, data: dict[str, Any]) -> User:
        return User(
            id=str(data["id"]),
            email=data["email"],
            password_hash=data["password_hash"],
            name=data["name"],
            account_type=AccountType(data.get("account_type") or "lessee"),
            wallet_address=data.get("wallet_address"),
            is_admin=bool(data.get("is_admin", False)),
            business_category=data.get("business_category") or [],
            project_goals=data.get("project_goals") or [],
            budget_min=Decimal(str(data.get("budget_min") or 0)),
            budget_max=Decimal(str(data.get("budget_max") or 0)),
            currency=data.get("currency") or "USD",
            preferred_tlds=data.get("preferred_tlds") or [],
            lease_duration=data.get("lease_duration") or "long-term",
            with_existing_site=bool(data.get("with_existing_site", False)),
            blockchain_preference=data.get("blockchain_preference") or [],
            communication_style=CommunicationStyle(
                data.get("communication_style") or "business"
            ),
            email_verified=bool(data.get("email_verified", False)),
            icann_approved=bool(data.get("icann_approved", False)),
            kyc_completed=bool(data.get("kyc_completed", False)),
            is_pro=bool(data.get("is_pro", False)),
            pro_expires_at=data.get("pro_expires_at"),
            last_active=data.get("last_active") or data["created_at"],
            created_at=data["created_at"],
            updated_at=data.get("updated_at") or data["created_at"],
        )
