"""Repository classes for database access.

Repositories encapsulate all SQL queries and provide a clean interface
to the service layer. They accept an AsyncSession and never manage
their own transactions (that's the caller's responsibility).

Projection writes are conflict-tolerant: two sessions replaying the same
committed events converge on the same rows instead of failing on a
duplicate key.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import delete, func, select
from sqlalchemy.dialects import postgresql, sqlite

from marketplace_escrow.infrastructure.database.orm_models import ItemRow, StateChangedRow

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from marketplace_escrow.domain.enums import ItemState
    from marketplace_escrow.domain.event_log import StateChanged
    from marketplace_escrow.domain.models import ItemRecord


def _insert(session: AsyncSession, table: Any) -> Any:
    """Dialect-specific INSERT supporting ON CONFLICT for the session's backend."""
    if session.get_bind().dialect.name == "postgresql":
        return postgresql.insert(table)
    return sqlite.insert(table)


class ItemRepository:
    """Data access for projected catalog items."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def upsert(self, registry_address: str, item: ItemRecord) -> ItemRow:
        """Insert the item or advance its cached state.

        Item state only moves forward, so a writer holding an older snapshot
        never overwrites a newer one.
        """
        stmt = _insert(self._session, ItemRow.__table__).values(
            registry_address=registry_address,
            item_index=item.index,
            escrow_address=item.escrow_address,
            title=item.title,
            price=str(item.price),
            state=int(item.state),
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["registry_address", "item_index"],
            set_={"state": stmt.excluded.state, "updated_at": datetime.now(UTC)},
            where=ItemRow.__table__.c.state < stmt.excluded.state,
        )
        await self._session.execute(stmt)

        row = await self.get(registry_address, item.index)
        assert row is not None
        return row

    async def get(self, registry_address: str, index: int) -> ItemRow | None:
        """Fetch an item by registry and index."""
        result = await self._session.execute(
            select(ItemRow)
            .where(
                ItemRow.registry_address == registry_address,
                ItemRow.item_index == index,
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_by_escrow(self, escrow_address: str) -> ItemRow | None:
        result = await self._session.execute(
            select(ItemRow)
            .where(ItemRow.escrow_address == escrow_address)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list_by_registry(
        self,
        registry_address: str,
        state: ItemState | None = None,
    ) -> list[ItemRow]:
        """Fetch a registry's items in index order, optionally by state."""
        stmt = select(ItemRow).where(ItemRow.registry_address == registry_address)
        if state is not None:
            stmt = stmt.where(ItemRow.state == int(state))
        stmt = stmt.order_by(ItemRow.item_index.asc()).execution_options(populate_existing=True)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def clear(self) -> int:
        """Delete every projected item. Returns the number of rows removed."""
        result = await self._session.execute(delete(ItemRow))
        return result.rowcount


class EventRepository:
    """Data access for the append-only StateChanged log."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def record(self, evt: StateChanged) -> bool:
        """Append a committed event.

        Returns False when a row with the same sequence already exists.
        """
        stmt = (
            _insert(self._session, StateChangedRow.__table__)
            .values(
                sequence=evt.sequence,
                registry_address=evt.registry_address,
                escrow_address=evt.escrow_address,
                item_index=evt.index,
                new_state=int(evt.new_state),
                title=evt.title,
            )
            .on_conflict_do_nothing(index_elements=["sequence"])
        )
        result = await self._session.execute(stmt)
        return result.rowcount == 1

    async def latest_sequence(self) -> int:
        """Highest persisted sequence, or -1 when nothing has been recorded."""
        result = await self._session.execute(select(func.max(StateChangedRow.sequence)))
        latest = result.scalar_one_or_none()
        return -1 if latest is None else latest

    async def query(
        self,
        escrow_address: str | None = None,
        index: int | None = None,
        new_state: ItemState | None = None,
        since: int | None = None,
    ) -> list[StateChangedRow]:
        """Fetch events in sequence order, filtered by any combination of fields."""
        stmt = select(StateChangedRow)
        if escrow_address is not None:
            stmt = stmt.where(StateChangedRow.escrow_address == escrow_address)
        if index is not None:
            stmt = stmt.where(StateChangedRow.item_index == index)
        if new_state is not None:
            stmt = stmt.where(StateChangedRow.new_state == int(new_state))
        if since is not None:
            stmt = stmt.where(StateChangedRow.sequence > since)
        stmt = stmt.order_by(StateChangedRow.sequence.asc()).execution_options(
            populate_existing=True
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def clear(self) -> int:
        """Delete every projected event. Returns the number of rows removed."""
        result = await self._session.execute(delete(StateChangedRow))
        return result.rowcount
