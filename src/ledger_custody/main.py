"""FastAPI application entry point for the custody service.

Lifecycle:
    1. Startup: Initialize logging, build the runtime (ledger, state store,
       replay guard) unless one was injected.
    2. Running: Serve the REST API at /api/v1/*.
    3. Shutdown: Close database and Redis connections gracefully.

Run with:
    uvicorn ledger_custody.main:app --reload --host 0.0.0.0 --port 8000
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI

from ledger_custody.config import get_settings
from ledger_custody.logging_config import get_logger, setup_logging

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from ledger_custody.services.runtime import CustodyRuntime


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application startup and shutdown lifecycle."""
    settings = get_settings()

    # 1. Setup structured logging
    setup_logging(
        log_level=settings.app_log_level,
        json_logs=not settings.is_development,
    )
    logger = get_logger(__name__)
    logger.info(
        "app.starting",
        env=settings.app_env,
        debug=settings.app_debug,
        state_backend=settings.state_backend,
    )

    # 2. Build the runtime (tests inject their own)
    if getattr(app.state, "runtime", None) is None:
        from ledger_custody.services.factory import build_runtime

        app.state.runtime = build_runtime(settings)

    logger.info("app.started", host=settings.app_host, port=settings.app_port)

    yield

    # Shutdown
    from ledger_custody.infrastructure.database.engine import close_db
    from ledger_custody.infrastructure.redis_client import close_redis

    logger.info("app.shutting_down")
    close_db()
    close_redis()
    logger.info("app.stopped")


def create_app(runtime: CustodyRuntime | None = None) -> FastAPI:
    """Application factory — creates and configures the FastAPI app."""
    settings = get_settings()

    app = FastAPI(
        title="Ledger Custody",
        description=(
            "Time-locked wallets, N-of-M multisig vaults and hash-gated escrows "
            "over a block-height ledger."
        ),
        version="0.1.0",
        lifespan=lifespan,
        debug=settings.app_debug,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
    )
    app.state.runtime = runtime

    # --- Middleware ---
    from ledger_custody.api.middleware import setup_middleware

    setup_middleware(app)

    # --- REST API Routes ---
    from ledger_custody.api.routes.health import router as health_router
    from ledger_custody.api.routes.instances import router as instances_router
    from ledger_custody.api.routes.ledger import router as ledger_router

    app.include_router(health_router)
    app.include_router(instances_router)
    app.include_router(ledger_router)

    return app


# The app instance used by Uvicorn
app = create_app()
