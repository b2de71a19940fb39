"""In-memory State Store.

Keeps the last committed record per instance and its append-only audit trail
in process memory. Records are immutable, so handing them out directly is
safe: a caller can only change state by saving a successor record.
"""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

from ledger_custody.domain.exceptions import AlreadyInitializedError, InstanceNotFoundError

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

    from ledger_custody.domain.records import CustodyEvent, CustodyRecord


class InMemoryStateStore:
    """Dict-backed StateStore."""

    def __init__(self) -> None:
        self._records: dict[str, CustodyRecord] = {}
        self._events: dict[str, list[CustodyEvent]] = {}
        self._lock = threading.Lock()

    def load(self, instance_id: str) -> CustodyRecord | None:
        return self._records.get(instance_id)

    def create(self, record: CustodyRecord) -> None:
        with self._lock:
            if record.instance_id in self._records:
                raise AlreadyInitializedError(record.instance_id)
            self._records[record.instance_id] = record
            self._events[record.instance_id] = []

    def save(self, record: CustodyRecord, events: Sequence[CustodyEvent] = ()) -> None:
        with self._lock:
            if record.instance_id not in self._records:
                raise InstanceNotFoundError(record.instance_id)
            self._records[record.instance_id] = record
            self._events[record.instance_id].extend(events)

    def events(self, instance_id: str) -> list[CustodyEvent]:
        return list(self._events.get(instance_id, ()))

    def instance_ids(self) -> Iterator[str]:
        return iter(list(self._records))
