"""
Shared data models used across modules.

These models are shared infrastructure, not business logic.
Module-specific models should stay in their respective module directories.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class AuthenticatedUser(BaseModel):
    """
    Represents an authenticated user in the system.

    This model is populated from JWT claims and made available
    to route handlers via dependency injection.
    """

    id: str = Field(..., description="User ID (UUID)")
    email: Optional[str] = Field(None, description="User's email address")
    role: str = Field(default="user", description="'user' or 'admin'")
    issued_at: Optional[datetime] = Field(None, description="Token issue time")

    model_config = {
        "frozen": True,
        "extra": "ignore",  # Ignore extra fields from JWT
    }

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def as_actor(self) -> "Actor":
        """The actor identity used by lifecycle operations."""
        return Actor(user_id=self.id, is_admin=self.is_admin)


class Actor(BaseModel):
    """Who is performing a state transition."""

    user_id: str = Field(..., description="Acting user ID")
    is_admin: bool = Field(default=False, description="Platform administrator")

    model_config = {"frozen": True}
