"""Transition executor shared by every custody contract.

A mutating operation is expressed as a *transition function*
``(record, height) -> Transition``. The executor runs it inside one ledger
invocation:

    1. load the last committed record,
    2. read the block height,
    3. run the transition (guards, then ledger transfers),
    4. save the successor record and its audit events.

Any exception in steps 1-4 unwinds the ledger invocation, which restores every
balance it touched, and the store is never written. A failed call therefore
leaves no trace.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, ClassVar, Generic, TypeVar

from ledger_custody.domain.exceptions import (
    CustodyError,
    InstanceNotFoundError,
    InvalidArgumentError,
    UnauthorizedError,
)
from ledger_custody.domain.records import (
    CustodyEvent,
    custody_account,
    empty_record,
    is_custody_account,
)
from ledger_custody.logging_config import get_logger

if TYPE_CHECKING:
    from collections.abc import Callable

    from ledger_custody.domain.enums import ContractKind, EventType
    from ledger_custody.domain.ledger_protocol import Ledger, StateStore

logger = get_logger(__name__)

RecordT = TypeVar("RecordT")
ValueT = TypeVar("ValueT")


@dataclass(frozen=True)
class Transition(Generic[RecordT, ValueT]):
    """What a successful transition produces."""

    record: RecordT
    value: ValueT
    events: list[CustodyEvent] = field(default_factory=list)


class CustodyContract(Generic[RecordT]):
    """Base class for the three policy variants.

    Subclasses declare ``kind`` and ``record_type`` and express each mutating
    operation as a transition function passed to ``_execute``.
    """

    kind: ClassVar[ContractKind]
    record_type: ClassVar[type]

    def __init__(self, instance_id: str, ledger: Ledger, store: StateStore) -> None:
        self.instance_id = instance_id
        self._ledger = ledger
        self._store = store

    @classmethod
    def deploy(cls, instance_id: str, ledger: Ledger, store: StateStore) -> CustodyContract:
        """Persist an uninitialized record for ``instance_id`` and return a handle.

        Deploying an id that already exists returns a handle to the existing
        instance without touching its record. The check and the insert run
        inside one ledger invocation so they cannot interleave with a
        transition on the same id.
        """
        with ledger.invocation():
            existing = store.load(instance_id)
            if existing is None:
                store.create(empty_record(cls.kind, instance_id))
                logger.info("contract.deployed", kind=cls.kind.value, instance_id=instance_id)
        if existing is not None and not isinstance(existing, cls.record_type):
            raise InvalidArgumentError(
                f"Instance {instance_id} is a {existing.kind.value}, not a {cls.kind.value}"
            )
        return cls(instance_id, ledger, store)

    @property
    def custody_account(self) -> str:
        """Ledger account holding this instance's funds."""
        return custody_account(self.kind, self.instance_id)

    @property
    def record(self) -> RecordT:
        """Last committed record (read-only snapshot)."""
        return self._load()

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _load(self) -> RecordT:
        record = self._store.load(self.instance_id)
        if record is None or not isinstance(record, self.record_type):
            raise InstanceNotFoundError(self.instance_id)
        return record

    def _execute(
        self,
        operation: str,
        caller: str,
        transition: Callable[[RecordT, int], Transition[RecordT, ValueT]],
    ) -> ValueT:
        """Run ``transition`` atomically against the current record.

        Custody accounts can never act as callers: their funds move only
        through the transitions of the instance that owns them.
        """
        try:
            if is_custody_account(caller):
                raise UnauthorizedError(caller, "external principal", code="CUSTODY_ACCOUNT_CALLER")
            with self._ledger.invocation():
                record = self._load()
                height = self._ledger.block_height
                outcome = transition(record, height)
                self._store.save(outcome.record, outcome.events)
        except CustodyError as exc:
            logger.debug(
                f"{self.kind.value}.{operation}_rejected",
                instance_id=self.instance_id,
                caller=caller,
                code=exc.code,
            )
            raise

        logger.info(
            f"{self.kind.value}.{operation}",
            instance_id=self.instance_id,
            caller=caller,
            height=height,
            events=[e.event_type.value for e in outcome.events],
        )
        return outcome.value

    def _event(
        self,
        event_type: EventType,
        actor: str,
        height: int,
        old_state: str | None,
        new_state: str | None,
        **metadata: Any,
    ) -> CustodyEvent:
        return CustodyEvent(
            instance_id=self.instance_id,
            event_type=event_type,
            actor=actor,
            height=height,
            old_state=old_state,
            new_state=new_state,
            metadata=metadata,
        )
