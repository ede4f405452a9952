"""
Centralized configuration for the marketplace backend.

All settings are loaded from environment variables with sensible defaults.
Module-specific settings should be namespaced (e.g., JWT_*, BLOCKCHAIN_*).

The settings object is frozen. Services receive it through their
constructor; get_settings() only provides the default instance the
dependency container hands out.
"""

from decimal import Decimal
from functools import lru_cache
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    # Application
    app_name: str = "Domain Lease API"
    app_version: str = "0.1.0"
    debug: bool = False

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    reload: bool = False

    # CORS settings
    cors_origins: list[str] = ["http://localhost:3000"]
    cors_allow_credentials: bool = True
    cors_allow_methods: list[str] = ["*"]
    cors_allow_headers: list[str] = ["*"]

    # Frontend URLs (for redirects)
    frontend_url: str = "http://localhost:3000"

    # Supabase
    supabase_url: str = ""
    supabase_service_role_key: str = ""
    supabase_db_url: str = ""  # direct Postgres URI, used by run_migrations.py

    # Use dict-backed repositories instead of Supabase
    use_in_memory_store: Optional[bool] = None

    # Session tokens
    jwt_secret: str = ""
    jwt_algorithm: str = "HS256"
    jwt_expire_days: int = 7

    # Password hashing
    bcrypt_rounds: int = 10

    # Placeholder mailbox domain for wallet-only accounts
    wallet_email_domain: str = "wallet.domainlease.app"

    # Blockchain (lease token contract)
    blockchain_rpc_url: str = ""
    lease_token_contract_address: str = ""
    blockchain_private_key: str = ""
    blockchain_timeout_seconds: int = 30
    blockchain_max_attempts: int = 3

    # Marketplace
    platform_fee_rate: Decimal = Decimal("0.05")

    @property
    def in_memory_store(self) -> bool:
        """Whether repositories should be dict-backed."""
        if self.use_in_memory_store is not None:
            return self.use_in_memory_store
        return not (self.supabase_url and self.supabase_service_role_key)

    @property
    def blockchain_configured(self) -> bool:
        """Whether a real lease token contract is reachable."""
        return bool(
            self.blockchain_rpc_url
            and self.lease_token_contract_address
            and self.blockchain_private_key
        )


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()
