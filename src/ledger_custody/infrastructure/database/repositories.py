"""Repository classes for database access.

Repositories encapsulate all SQL queries and accept a Session; they never
manage their own transactions. SqlStateStore is the one place that opens a
transaction, so each save commits the record and its events together.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from ledger_custody.domain.enums import EventType
from ledger_custody.domain.exceptions import AlreadyInitializedError, InstanceNotFoundError
from ledger_custody.domain.records import CustodyEvent, record_from_dict
from ledger_custody.infrastructure.database.orm_models import CustodyEventRow, CustodyInstance
from ledger_custody.logging_config import get_logger

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

    from sqlalchemy.orm import Session, sessionmaker

    from ledger_custody.domain.records import CustodyRecord

logger = get_logger(__name__)


class InstanceRepository:
    """Data access for custody instances."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def get_by_id(self, instance_id: str) -> CustodyInstance | None:
        """Fetch an instance row by its id."""
        return self._session.get(CustodyInstance, instance_id)

    def create(self, record: CustodyRecord) -> CustodyInstance:
        """Insert the row for a new instance. Never overwrites an existing one.

        Raises:
            AlreadyInitializedError: A row with this id already exists.
        """
        if self.get_by_id(record.instance_id) is not None:
            raise AlreadyInitializedError(record.instance_id)
        row = CustodyInstance(
            id=record.instance_id,
            kind=record.kind.value,
            status=record.status,
            record=record.to_dict(),
        )
        self._session.add(row)
        try:
            self._session.flush()
        except IntegrityError as exc:
            raise AlreadyInitializedError(record.instance_id) from exc
        return row

    def update(self, record: CustodyRecord) -> CustodyInstance:
        """Overwrite the stored record of an existing instance.

        Raises:
            InstanceNotFoundError: The instance was never created.
        """
        row = self.get_by_id(record.instance_id)
        if row is None:
            raise InstanceNotFoundError(record.instance_id)
        row.status = record.status
        row.record = record.to_dict()
        self._session.flush()
        return row

    def list_ids(self) -> list[str]:
        """All instance ids in creation order."""
        result = self._session.execute(
            select(CustodyInstance.id).order_by(CustodyInstance.created_at.asc())
        )
        return list(result.scalars().all())


class EventRepository:
    """Data access for the append-only event log."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def append(self, event: CustodyEvent) -> CustodyEventRow:
        """Append an event to the audit log. Never update or delete."""
        row = CustodyEventRow(
            instance_id=event.instance_id,
            event_type=event.event_type.value,
            old_state=event.old_state,
            new_state=event.new_state,
            actor=event.actor,
            height=event.height,
            metadata_json=event.metadata or None,
        )
        self._session.add(row)
        self._session.flush()
        return row

    def get_by_instance(self, instance_id: str) -> list[CustodyEventRow]:
        """Fetch the audit trail for an instance in commit order."""
        result = self._session.execute(
            select(CustodyEventRow)
            .where(CustodyEventRow.instance_id == instance_id)
            .order_by(CustodyEventRow.sequence.asc())
        )
        return list(result.scalars().all())


def _event_from_row(row: CustodyEventRow) -> CustodyEvent:
    return CustodyEvent(
        instance_id=row.instance_id,
        event_type=EventType(row.event_type),
        actor=row.actor,
        height=row.height,
        old_state=row.old_state,
        new_state=row.new_state,
        metadata=dict(row.metadata_json or {}),
    )


class SqlStateStore:
    """StateStore persisted through SQLAlchemy.

    Args:
        session_factory: A sessionmaker; one short-lived session per call.
    """

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def load(self, instance_id: str) -> CustodyRecord | None:
        with self._session_factory() as session:
            row = InstanceRepository(session).get_by_id(instance_id)
            if row is None:
                return None
            return record_from_dict(row.record)

    def create(self, record: CustodyRecord) -> None:
        with self._session_factory.begin() as session:
            InstanceRepository(session).create(record)
        logger.debug("store.created", instance_id=record.instance_id, kind=record.kind.value)

    def save(self, record: CustodyRecord, events: Sequence[CustodyEvent] = ()) -> None:
        with self._session_factory.begin() as session:
            InstanceRepository(session).update(record)
            event_repo = EventRepository(session)
            for event in events:
                event_repo.append(event)
        logger.debug(
            "store.saved",
            instance_id=record.instance_id,
            status=record.status,
            events=len(events),
        )

    def events(self, instance_id: str) -> list[CustodyEvent]:
        with self._session_factory() as session:
            rows = EventRepository(session).get_by_instance(instance_id)
            return [_event_from_row(row) for row in rows]

    def instance_ids(self) -> Iterator[str]:
        with self._session_factory() as session:
            ids = InstanceRepository(session).list_ids()
        return iter(ids)
