"""SQLAlchemy 2.0 ORM models for the custody state store.

Two tables:
    1. custody_instances — One row per deployed instance holding its record.
    2. custody_events    — Append-only audit log of every committed transition.

Design decisions:
    - The record is stored whole as JSON: one row write per invocation, so a
      save can never leave some fields updated and others not.
    - status and kind are denormalized out of the record for querying.
    - version increments on every save; SQLAlchemy uses it as an optimistic
      concurrency check, so two writers racing on the same row cannot both win.
    - custody_events is append-only: no UPDATE or DELETE at the application level.
"""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    event,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

JsonType = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


def _set_updated_at(mapper, connection, target):  # noqa: ANN001
    """SQLAlchemy event listener that updates `updated_at` before flush."""
    if hasattr(target, "updated_at"):
        target.updated_at = datetime.now(UTC)


# ---------------------------------------------------------------------------
# 1. custody_instances
# ---------------------------------------------------------------------------
class CustodyInstance(Base):
    """The persisted record of one custody contract instance."""

    __tablename__ = "custody_instances"

    id: Mapped[str] = mapped_column(
        String(128),
        primary_key=True,
        comment="Instance id chosen at deploy time",
    )
    kind: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        comment="ContractKind value",
    )
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        comment="Lifecycle state copied out of the record",
    )
    record: Mapped[dict] = mapped_column(
        JsonType,
        nullable=False,
        comment="Full record as produced by to_dict()",
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )

    events: Mapped[list[CustodyEventRow]] = relationship(
        "CustodyEventRow",
        back_populates="instance",
        cascade="all, delete-orphan",
        order_by="CustodyEventRow.sequence.asc()",
        lazy="selectin",
    )

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        CheckConstraint(
            "kind IN ('timelock', 'multisig', 'hash_escrow')",
            name="ck_instance_valid_kind",
        ),
        Index("idx_instance_kind", "kind"),
        Index("idx_instance_status", "status"),
    )

    def __repr__(self) -> str:
        return f"<CustodyInstance id={self.id} kind={self.kind} status={self.status}>"


# ---------------------------------------------------------------------------
# 2. custody_events (Append-Only Audit Log)
# ---------------------------------------------------------------------------
class CustodyEventRow(Base):
    """Immutable audit record of one committed transition.

    This table is APPEND-ONLY. The autoincrement sequence gives commit order.
    """

    __tablename__ = "custody_events"

    sequence: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    instance_id: Mapped[str] = mapped_column(
        String(128),
        ForeignKey("custody_instances.id", ondelete="CASCADE"),
        nullable=False,
    )
    event_type: Mapped[str] = mapped_column(
        String(40),
        nullable=False,
        comment="EventType enum value (e.g., TIMELOCK_LOCKED, PROPOSAL_EXECUTED)",
    )
    old_state: Mapped[str | None] = mapped_column(String(20), nullable=True)
    new_state: Mapped[str | None] = mapped_column(String(20), nullable=True)
    actor: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
        comment="Caller identity that triggered this event",
    )
    height: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Block height at which the transition committed",
    )
    metadata_json: Mapped[dict | None] = mapped_column(
        "metadata",
        JsonType,
        nullable=True,
        default=None,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
    )

    instance: Mapped[CustodyInstance] = relationship(
        "CustodyInstance",
        back_populates="events",
    )

    __table_args__ = (
        Index("idx_event_instance", "instance_id"),
        Index("idx_event_type", "event_type"),
    )

    def __repr__(self) -> str:
        return (
            f"<CustodyEventRow seq={self.sequence} type={self.event_type} "
            f"{self.old_state}->{self.new_state}>"
        )


event.listen(CustodyInstance, "before_update", _set_updated_at)
