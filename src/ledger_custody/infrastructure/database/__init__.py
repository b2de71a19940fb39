"""Database infrastructure — engine, ORM models, and the SQL state store."""

from ledger_custody.infrastructure.database.engine import (
    build_engine,
    close_db,
    get_session_factory,
    init_db,
)
from ledger_custody.infrastructure.database.orm_models import (
    Base,
    CustodyEventRow,
    CustodyInstance,
)
from ledger_custody.infrastructure.database.repositories import (
    EventRepository,
    InstanceRepository,
    SqlStateStore,
)

__all__ = [
    "Base",
    "CustodyEventRow",
    "CustodyInstance",
    "EventRepository",
    "InstanceRepository",
    "SqlStateStore",
    "build_engine",
    "get_session_factory",
    "init_db",
    "close_db",
]
