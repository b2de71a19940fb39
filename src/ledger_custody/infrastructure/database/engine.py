"""Database engine and session management.

Provides:
    - _get_engine: The SQLAlchemy engine (lazy singleton).
    - get_session_factory: A sessionmaker bound to the engine.
    - init_db / close_db: Lifecycle hooks for FastAPI's lifespan.

Sessions are synchronous: the custody core performs no cooperative
suspension, and every store write happens inside one ledger invocation.
"""

from __future__ import annotations

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ledger_custody.config import get_settings
from ledger_custody.logging_config import get_logger

logger = get_logger(__name__)

# Module-level singletons (initialized in init_db)
_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None


def build_engine(database_url: str, echo: bool = False) -> Engine:
    """Create an engine; in-memory SQLite shares one connection across threads."""
    if not database_url.startswith("sqlite"):
        return create_engine(database_url, pool_pre_ping=True, echo=echo)

    in_memory = database_url == "sqlite://" or ":memory:" in database_url
    return create_engine(
        database_url,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool if in_memory else None,
        echo=echo,
    )


def _get_engine() -> Engine:
    """Get or create the engine (lazy singleton)."""
    global _engine
    if _engine is None:
        settings = get_settings()
        _engine = build_engine(settings.database_url, echo=settings.db_echo_sql)
        logger.info("database.engine_created", url=_engine.url.render_as_string(hide_password=True))
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    """Get or create the session factory (lazy singleton)."""
    global _session_factory
    if _session_factory is None:
        _session_factory = sessionmaker(
            bind=_get_engine(),
            expire_on_commit=False,
            autoflush=False,
        )
    return _session_factory


def init_db() -> None:
    """Create tables if they don't exist. Called during FastAPI's lifespan startup."""
    from ledger_custody.infrastructure.database.orm_models import Base

    Base.metadata.create_all(_get_engine())
    logger.info("database.tables_created")


def close_db() -> None:
    """Dispose of the engine. Called during FastAPI's lifespan shutdown."""
    global _engine, _session_factory
    if _engine is not None:
        _engine.dispose()
        logger.info("database.engine_disposed")
        _engine = None
        _session_factory = None
