"""Tests for the in-memory ledger: transfers, clock and invocation atomicity."""

from __future__ import annotations

import threading

import pytest

from ledger_custody.domain.exceptions import InsufficientFundsError, InvalidArgumentError
from ledger_custody.domain.ledger_protocol import Ledger
from ledger_custody.infrastructure.ledger import InMemoryLedger


class TestClock:
    def test_starts_at_given_height(self) -> None:
        assert InMemoryLedger(block_height=7).block_height == 7

    def test_mine(self, ledger) -> None:
        assert ledger.mine() == 1
        assert ledger.mine(4) == 5

    def test_mine_until_never_goes_back(self, ledger) -> None:
        ledger.mine(10)
        assert ledger.mine_until(3) == 10
        assert ledger.mine_until(12) == 12

    def test_negative_values_rejected(self) -> None:
        with pytest.raises(ValueError):
            InMemoryLedger(block_height=-1)
        with pytest.raises(ValueError):
            InMemoryLedger().mine(-1)


class TestTransfer:
    def test_satisfies_protocol(self, ledger) -> None:
        assert isinstance(ledger, Ledger)

    def test_transfer_moves_value(self, ledger) -> None:
        receipt = ledger.transfer("alice", "carol", 250)
        assert receipt.amount == 250
        assert ledger.balance_of("alice") == 750
        assert ledger.balance_of("carol") == 250
        assert ledger.transfers == [receipt]

    def test_unknown_account_is_zero(self, ledger) -> None:
        assert ledger.balance_of("nobody") == 0

    def test_overdraft_rejected(self, ledger) -> None:
        with pytest.raises(InsufficientFundsError):
            ledger.transfer("bob", "carol", 501)
        assert ledger.balance_of("bob") == 500

    def test_negative_transfer_rejected(self, ledger) -> None:
        with pytest.raises(InvalidArgumentError):
            ledger.transfer("alice", "carol", -1)

    def test_credit(self, ledger) -> None:
        assert ledger.credit("carol", 40) == 40


class TestInvocation:
    def test_commit(self, ledger) -> None:
        with ledger.invocation():
            ledger.transfer("alice", "carol", 10)
        assert ledger.balance_of("carol") == 10

    def test_rollback_on_error(self, ledger) -> None:
        with pytest.raises(RuntimeError):
            with ledger.invocation():
                ledger.transfer("alice", "carol", 10)
                raise RuntimeError("abort")
        assert ledger.balance_of("alice") == 1_000
        assert ledger.balance_of("carol") == 0
        assert ledger.transfers == []

    def test_nested_scope_joins_outer(self, ledger) -> None:
        with pytest.raises(RuntimeError):
            with ledger.invocation():
                with ledger.invocation():
                    ledger.transfer("alice", "carol", 10)
                raise RuntimeError("abort after inner commit")
        assert ledger.balance_of("carol") == 0

    def test_invocations_are_serialized(self, ledger) -> None:
        inside = threading.Event()
        release = threading.Event()
        order: list[str] = []

        def first() -> None:
            with ledger.invocation():
                inside.set()
                release.wait(timeout=5)
                order.append("first")

        def second() -> None:
            inside.wait(timeout=5)
            with ledger.invocation():
                order.append("second")

        threads = [threading.Thread(target=first), threading.Thread(target=second)]
        for t in threads:
            t.start()
        inside.wait(timeout=5)
        release.set()
        for t in threads:
            t.join(timeout=5)

        assert order == ["first", "second"]
