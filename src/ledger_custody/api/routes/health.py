"""Health check endpoint.

Reports the configured backends and the devnet clock. When the SQL store is
enabled the database is pinged as well.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from ledger_custody.api.deps import get_app_settings, get_runtime
from ledger_custody.config import Settings
from ledger_custody.logging_config import get_logger
from ledger_custody.schemas.custody import HealthResponse
from ledger_custody.services.runtime import CustodyRuntime

router = APIRouter(tags=["Health"])
logger = get_logger(__name__)


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Returns the health status of the application and its dependencies.",
)
def health_check(
    runtime: CustodyRuntime = Depends(get_runtime),
    settings: Settings = Depends(get_app_settings),
) -> HealthResponse:
    status = "healthy"
    if settings.uses_sql_store:
        from ledger_custody.infrastructure.database.engine import _get_engine

        try:
            with _get_engine().connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError as exc:
            status = "degraded"
            logger.error("health.db_check_failed", error=str(exc))

    return HealthResponse(
        status=status,
        version="0.1.0",
        environment=settings.app_env,
        state_backend=settings.state_backend,
        block_height=runtime.ledger.block_height,
    )
