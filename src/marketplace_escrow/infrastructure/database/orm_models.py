"""SQLAlchemy 2.0 ORM models for the marketplace projection.

Two tables:
    1. items                 — One row per catalog entry, keyed by (registry, index).
    2. state_changed_events  — Append-only copy of the committed StateChanged log.

Design decisions:
    - Addresses stored as EIP-55 checksum strings (42 chars).
    - Prices stored as decimal strings; 256-bit amounts overflow BIGINT.
    - Item state stored as its integer encoding (0=CREATED, 1=PAID, 2=DELIVERED)
      with a CHECK constraint mirroring ItemState.
    - Event sequence reused as the primary key so re-projecting is idempotent.
"""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


# ---------------------------------------------------------------------------
# 1. items
# ---------------------------------------------------------------------------
class ItemRow(Base):
    """Projected catalog entry with its cached lifecycle state."""

    __tablename__ = "items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    registry_address: Mapped[str] = mapped_column(
        String(42),
        nullable=False,
        comment="Registry that created the item",
    )
    item_index: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Position in the registry catalog (0-based)",
    )
    escrow_address: Mapped[str] = mapped_column(
        String(42),
        nullable=False,
        unique=True,
        comment="Deterministic address of the item's escrow",
    )
    title: Mapped[str] = mapped_column(Text, nullable=False)
    price: Mapped[str] = mapped_column(
        String(78),
        nullable=False,
        comment="Price in smallest currency units, as a decimal string",
    )
    state: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        comment="0=CREATED, 1=PAID, 2=DELIVERED",
    )

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

    __table_args__ = (
        UniqueConstraint("registry_address", "item_index", name="uq_item_registry_index"),
        CheckConstraint("state IN (0, 1, 2)", name="ck_item_valid_state"),
        CheckConstraint("item_index >= 0", name="ck_item_non_negative_index"),
        Index("idx_item_state", "state"),
    )

    @property
    def price_amount(self) -> int:
        return int(self.price)

    def __repr__(self) -> str:
        return (
            f"<ItemRow registry={self.registry_address} index={self.item_index} "
            f"state={self.state}>"
        )


# ---------------------------------------------------------------------------
# 2. state_changed_events (Append-Only)
# ---------------------------------------------------------------------------
class StateChangedRow(Base):
    """Persisted StateChanged notification.

    This table is APPEND-ONLY. Rows mirror the in-memory log one-to-one and
    share its sequence numbers.
    """

    __tablename__ = "state_changed_events"

    sequence: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)

    registry_address: Mapped[str] = mapped_column(String(42), nullable=False)
    escrow_address: Mapped[str] = mapped_column(String(42), nullable=False)
    item_index: Mapped[int] = mapped_column(Integer, nullable=False)
    new_state: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="0=CREATED, 1=PAID, 2=DELIVERED",
    )
    title: Mapped[str] = mapped_column(Text, nullable=False)

    recorded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
    )

    __table_args__ = (
        CheckConstraint("new_state IN (0, 1, 2)", name="ck_event_valid_state"),
        Index("idx_event_escrow", "escrow_address"),
        Index("idx_event_index", "registry_address", "item_index"),
        Index("idx_event_new_state", "new_state"),
    )

    def __repr__(self) -> str:
        return (
            f"<StateChangedRow seq={self.sequence} escrow={self.escrow_address} "
            f"new_state={self.new_state}>"
        )

