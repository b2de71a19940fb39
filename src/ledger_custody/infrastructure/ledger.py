"""In-memory ledger: balances, block-height clock and invocation atomicity.

Stands in for the chain the contracts are deployed to. The service uses it as
a devnet and the test suite uses it as the fake ledger.

Usage:
    ledger = InMemoryLedger(balances={"alice": 100})
    with ledger.invocation():
        ledger.transfer("alice", "timelock.w1", 10)
    ledger.mine(5)
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import TYPE_CHECKING

from ledger_custody.domain.exceptions import InsufficientFundsError, InvalidArgumentError
from ledger_custody.domain.ledger_protocol import TransferReceipt
from ledger_custody.logging_config import get_logger

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping

logger = get_logger(__name__)


class InMemoryLedger:
    """Account balances plus a monotonically increasing block height.

    Invocations are serialized by a re-entrant lock held for the whole scope,
    which gives them a total order. On any exception inside the scope the
    balance snapshot taken on entry is restored.
    """

    def __init__(
        self,
        balances: Mapping[str, int] | None = None,
        block_height: int = 0,
    ) -> None:
        if block_height < 0:
            raise ValueError("block_height must be non-negative")
        self._balances: dict[str, int] = dict(balances or {})
        self._height = block_height
        self._lock = threading.RLock()
        self._depth = 0
        self._transfers: list[TransferReceipt] = []

    # ------------------------------------------------------------------
    # Clock
    # ------------------------------------------------------------------

    @property
    def block_height(self) -> int:
        return self._height

    def mine(self, blocks: int = 1) -> int:
        """Advance the clock by ``blocks`` and return the new height."""
        if blocks < 0:
            raise ValueError("blocks must be non-negative")
        with self._lock:
            self._height += blocks
        logger.debug("ledger.mined", blocks=blocks, height=self._height)
        return self._height

    def mine_until(self, height: int) -> int:
        """Advance the clock to ``height`` (no-op if already there or past it)."""
        with self._lock:
            self._height = max(self._height, height)
        return self._height

    # ------------------------------------------------------------------
    # Balances
    # ------------------------------------------------------------------

    def balance_of(self, account: str) -> int:
        return self._balances.get(account, 0)

    def balances(self) -> dict[str, int]:
        return dict(self._balances)

    def credit(self, account: str, amount: int) -> int:
        """Mint ``amount`` into ``account`` (genesis allocation / faucet)."""
        if amount < 0:
            raise InvalidArgumentError(f"credit amount must be non-negative, got {amount}")
        with self._lock:
            self._balances[account] = self._balances.get(account, 0) + amount
            return self._balances[account]

    @property
    def transfers(self) -> list[TransferReceipt]:
        """Committed transfers in application order."""
        return list(self._transfers)

    def transfer(self, sender: str, recipient: str, amount: int) -> TransferReceipt:
        if amount < 0:
            raise InvalidArgumentError(f"transfer amount must be non-negative, got {amount}")
        with self._lock:
            available = self._balances.get(sender, 0)
            if available < amount:
                raise InsufficientFundsError(sender, amount, available)
            self._balances[sender] = available - amount
            self._balances[recipient] = self._balances.get(recipient, 0) + amount
            receipt = TransferReceipt(
                sender=sender,
                recipient=recipient,
                amount=amount,
                height=self._height,
            )
            self._transfers.append(receipt)
        logger.debug(
            "ledger.transfer",
            sender=sender,
            recipient=recipient,
            amount=amount,
            height=receipt.height,
        )
        return receipt

    # ------------------------------------------------------------------
    # Atomicity
    # ------------------------------------------------------------------

    @contextmanager
    def invocation(self) -> Iterator[None]:
        """Apply everything inside the block, or nothing.

        Nested scopes join the outermost one; only the outermost scope
        snapshots and restores.
        """
        with self._lock:
            if self._depth:
                self._depth += 1
                try:
                    yield
                finally:
                    self._depth -= 1
                return

            balances = dict(self._balances)
            transfer_count = len(self._transfers)
            self._depth = 1
            try:
                yield
            except BaseException:
                self._balances = balances
                del self._transfers[transfer_count:]
                logger.debug("ledger.invocation_rolled_back", height=self._height)
                raise
            finally:
                self._depth = 0
