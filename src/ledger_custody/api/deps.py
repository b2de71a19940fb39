"""FastAPI dependency injection providers.

These are used with Depends() in route handlers to inject the custody
runtime, the devnet ledger and configuration.
"""

from __future__ import annotations

from fastapi import Request

from ledger_custody.config import Settings, get_settings
from ledger_custody.infrastructure.ledger import InMemoryLedger
from ledger_custody.services.runtime import CustodyRuntime


def get_runtime(request: Request) -> CustodyRuntime:
    """Provide the runtime created during application startup."""
    return request.app.state.runtime


def get_ledger(request: Request) -> InMemoryLedger:
    """Provide the devnet ledger the runtime transfers against."""
    return request.app.state.runtime.ledger


def get_app_settings() -> Settings:
    """Provide the application settings."""
    return get_settings()
