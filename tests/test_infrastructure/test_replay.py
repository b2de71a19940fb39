"""Tests for transaction-id replay guards."""

from __future__ import annotations

from unittest.mock import MagicMock

from ledger_custody.infrastructure.replay import (
    KEY_PREFIX,
    InMemoryReplayGuard,
    RedisReplayGuard,
)


class TestInMemoryReplayGuard:
    def test_claim_once(self) -> None:
        guard = InMemoryReplayGuard()
        assert guard.claim("tx-1")
        assert not guard.claim("tx-1")
        assert guard.claim("tx-2")

    def test_release_frees_id(self) -> None:
        guard = InMemoryReplayGuard()
        guard.claim("tx-1")
        guard.release("tx-1")
        assert guard.claim("tx-1")

    def test_claim_expires(self) -> None:
        now = [100.0]
        guard = InMemoryReplayGuard(ttl_seconds=10, clock=lambda: now[0])
        guard.claim("tx-1")
        now[0] = 109.0
        assert not guard.claim("tx-1")
        now[0] = 111.0
        assert guard.claim("tx-1")


class TestRedisReplayGuard:
    def test_claim_uses_set_nx_ex(self) -> None:
        client = MagicMock()
        client.set.return_value = True
        guard = RedisReplayGuard(client, ttl_seconds=60)

        assert guard.claim("tx-1")
        client.set.assert_called_once_with(f"{KEY_PREFIX}tx-1", "1", nx=True, ex=60)

    def test_duplicate_when_key_exists(self) -> None:
        client = MagicMock()
        client.set.return_value = None
        assert not RedisReplayGuard(client).claim("tx-1")

    def test_release_deletes_key(self) -> None:
        client = MagicMock()
        RedisReplayGuard(client).release("tx-1")
        client.delete.assert_called_once_with(f"{KEY_PREFIX}tx-1")
