"""Application configuration via pydantic-settings.

Reads from .env file or environment variables. All settings are validated
at startup — if a setting has the wrong type, the app fails fast with a
clear error message.

Usage:
    from ledger_custody.config import get_settings
    settings = get_settings()
    print(settings.state_backend)
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Central configuration for the custody service."""

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

    # --- State Store ---
    # "memory" keeps records in process; "sql" persists them with SQLAlchemy.
    state_backend: Literal["memory", "sql"] = "memory"
    database_url: str = "sqlite:///./ledger_custody.db"
    db_echo_sql: bool = False

    # --- Replay protection ---
    # Empty redis_url means transaction ids are remembered in process memory.
    redis_url: str = ""
    replay_ttl_seconds: int = 86400  # 24 hours

    # --- Devnet ledger ---
    genesis_height: int = 0
    faucet_max_amount: int = 1_000_000

    # --- Escrow Defaults ---
    default_proof_rule: Literal["exact", "sha256", "sha256d"] = "exact"

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"

    @property
    def uses_sql_store(self) -> bool:
        return self.state_backend == "sql"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached singleton of the application settings."""
    return Settings()
