"""Assemble a CustodyRuntime from Settings.

Picks the state store backend and the replay guard the configuration asks
for. The ledger is always the in-process devnet ledger.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from ledger_custody.config import get_settings
from ledger_custody.domain.enums import ProofRule
from ledger_custody.infrastructure.database import SqlStateStore, get_session_factory, init_db
from ledger_custody.infrastructure.ledger import InMemoryLedger
from ledger_custody.infrastructure.memory_store import InMemoryStateStore
from ledger_custody.infrastructure.redis_client import init_redis
from ledger_custody.infrastructure.replay import InMemoryReplayGuard, RedisReplayGuard
from ledger_custody.logging_config import get_logger
from ledger_custody.services.runtime import CustodyRuntime

if TYPE_CHECKING:
    from ledger_custody.config import Settings
    from ledger_custody.domain.ledger_protocol import StateStore
    from ledger_custody.infrastructure.replay import ReplayGuard

logger = get_logger(__name__)


def build_store(settings: Settings) -> StateStore:
    if settings.uses_sql_store:
        init_db()
        return SqlStateStore(get_session_factory())
    return InMemoryStateStore()


def build_replay_guard(settings: Settings) -> ReplayGuard:
    if settings.redis_url:
        return RedisReplayGuard(init_redis(), ttl_seconds=settings.replay_ttl_seconds)
    return InMemoryReplayGuard(ttl_seconds=settings.replay_ttl_seconds)


def build_runtime(settings: Settings | None = None) -> CustodyRuntime:
    """Create a runtime wired to the configured backends."""
    settings = settings or get_settings()
    runtime = CustodyRuntime(
        ledger=InMemoryLedger(block_height=settings.genesis_height),
        store=build_store(settings),
        replay_guard=build_replay_guard(settings),
        default_proof_rule=ProofRule(settings.default_proof_rule),
    )
    logger.info(
        "runtime.built",
        state_backend=settings.state_backend,
        replay_backend="redis" if settings.redis_url else "memory",
        genesis_height=settings.genesis_height,
    )
    return runtime
