"""Ledger and State Store protocols.

Define the interfaces the custody contracts consume. These are Protocols
(structural subtyping) so a concrete ledger or store does not need to inherit
from a base class, it just needs to match the shape.

The domain layer has ZERO imports from SQLAlchemy, Redis or any external
service.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence
    from contextlib import AbstractContextManager

    from ledger_custody.domain.records import CustodyEvent, CustodyRecord


@dataclass(frozen=True)
class TransferReceipt:
    """Result of a successful value transfer.

    Attributes:
        sender: Account debited.
        recipient: Account credited.
        amount: Value moved (non-negative integer).
        height: Block height at which the transfer was applied.
    """

    sender: str
    recipient: str
    amount: int
    height: int


@runtime_checkable
class Ledger(Protocol):
    """The external ledger a custody contract runs against.

    Provides:
        - an atomic value-transfer primitive between account identifiers,
        - a monotonically increasing block-height clock,
        - all-or-nothing application of one invocation's mutations.

    Caller identity is not ambient: it is passed explicitly to every
    contract operation.
    """

    @property
    def block_height(self) -> int:
        """Current block height."""
        ...

    def balance_of(self, account: str) -> int:
        """Return the balance of an account (0 for unknown accounts)."""
        ...

    def transfer(self, sender: str, recipient: str, amount: int) -> TransferReceipt:
        """Move ``amount`` from ``sender`` to ``recipient``.

        Raises:
            InsufficientFundsError: If ``sender`` cannot cover ``amount``.
        """
        ...

    def invocation(self) -> AbstractContextManager[None]:
        """Scope one invocation.

        Invocations are totally ordered. If the scope exits with an exception,
        every transfer made inside it is rolled back.
        """
        ...


@runtime_checkable
class StateStore(Protocol):
    """Per-instance persisted records plus their append-only audit trail."""

    def load(self, instance_id: str) -> CustodyRecord | None:
        """Return the last committed record, or None if never deployed."""
        ...

    def create(self, record: CustodyRecord) -> None:
        """Insert the first record of a new instance.

        Raises:
            AlreadyInitializedError: The instance id is already taken.
        """
        ...

    def save(self, record: CustodyRecord, events: Sequence[CustodyEvent] = ()) -> None:
        """Persist ``record`` and append ``events`` as one unit. No partial writes.

        Raises:
            InstanceNotFoundError: The instance was never created.
        """
        ...

    def events(self, instance_id: str) -> list[CustodyEvent]:
        """Return the audit trail for an instance in commit order."""
        ...

    def instance_ids(self) -> Iterator[str]:
        """Iterate over every deployed instance id."""
        ...
