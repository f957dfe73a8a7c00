"""Application configuration via pydantic-settings.

Reads from .env file or environment variables. All settings are validated
at startup — if a value is malformed, the app fails fast with a clear error.

Usage:
    from marketplace_escrow.config import get_settings
    settings = get_settings()
    print(settings.registry_owner)
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

# Hardhat's first three well-known development accounts.
_DEV_OWNER = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
_DEV_ACCOUNTS = (
    "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266,"
    "0x70997970C51812dc3A010C7d01b50e0d17dc79C8,"
    "0x3C44CdDdB6a900fa2b585dd299e03d12FA4293BC"
)


class Settings(BaseSettings):
    """Central configuration for the marketplace."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Application ---
    app_env: Literal["development", "staging", "production"] = "development"
    app_debug: bool = True
    app_log_level: str = "DEBUG"
    app_host: str = "0.0.0.0"
    app_port: int = 8000

    # --- Database (projection of committed state for observers) ---
    database_url: str = "sqlite+aiosqlite:///./marketplace.db"
    db_pool_size: int = 10
    db_max_overflow: int = 20
    db_pool_timeout: int = 30
    db_echo_sql: bool = False

    # --- Marketplace bootstrap ---
    registry_owner: str = _DEV_OWNER
    genesis_accounts: str = _DEV_ACCOUNTS
    genesis_balance: int = 10_000 * 10**18

    # --- Currency ---
    currency_decimals: int = 18
    currency_symbol: str = "ETH"

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    @property
    def genesis_account_list(self) -> list[str]:
        """Parse comma-separated genesis accounts into a list."""
        if not self.genesis_accounts:
            return []
        return [a.strip() for a in self.genesis_accounts.split(",") if a.strip()]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached singleton of the application settings."""
    return Settings()
