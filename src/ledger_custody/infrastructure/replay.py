"""Transaction-id replay guards.

A caller may attach a transaction id to a state-changing invocation. The
runtime claims the id before running the transition and releases it again if
the transition is rejected, so only committed invocations consume an id.
"""

from __future__ import annotations

import threading
import time
from typing import TYPE_CHECKING, Protocol

from ledger_custody.logging_config import get_logger

if TYPE_CHECKING:
    import redis

logger = get_logger(__name__)

KEY_PREFIX = "custody:tx:"


class ReplayGuard(Protocol):
    def claim(self, tx_id: str) -> bool:
        """Reserve ``tx_id``. Returns False if it is already taken."""
        ...

    def release(self, tx_id: str) -> None:
        """Give back a claimed id whose invocation did not commit."""
        ...


class InMemoryReplayGuard:
    """Process-local guard with per-id expiry."""

    def __init__(self, ttl_seconds: int = 86400, clock=time.monotonic) -> None:  # noqa: ANN001
        self._ttl = ttl_seconds
        self._clock = clock
        self._claimed: dict[str, float] = {}
        self._lock = threading.Lock()

    def claim(self, tx_id: str) -> bool:
        now = self._clock()
        with self._lock:
            expires_at = self._claimed.get(tx_id)
            if expires_at is not None and expires_at > now:
                return False
            self._claimed[tx_id] = now + self._ttl
            return True

    def release(self, tx_id: str) -> None:
        with self._lock:
            self._claimed.pop(tx_id, None)


class RedisReplayGuard:
    """Guard shared across processes through Redis ``SET NX EX``."""

    def __init__(self, client: redis.Redis, ttl_seconds: int = 86400) -> None:
        self._client = client
        self._ttl = ttl_seconds

    def claim(self, tx_id: str) -> bool:
        claimed = self._client.set(f"{KEY_PREFIX}{tx_id}", "1", nx=True, ex=self._ttl)
        if not claimed:
            logger.info("replay.duplicate", tx_id=tx_id)
        return bool(claimed)

    def release(self, tx_id: str) -> None:
        self._client.delete(f"{KEY_PREFIX}{tx_id}")
