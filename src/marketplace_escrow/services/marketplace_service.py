"""Marketplace Service — the application layer over the engine.

Coordinates between:
    - The Marketplace runtime (authoritative state, atomic operations)
    - Repositories (projection of committed items and events)

Every mutation runs the engine operation first; only once it has committed
are the new StateChanged events and the items they touch written to the
database. A rejected operation therefore never reaches the projection.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from marketplace_escrow.domain.addressing import normalize_address
from marketplace_escrow.domain.exceptions import OutOfRangeError
from marketplace_escrow.infrastructure.database.repositories import (
    EventRepository,
    ItemRepository,
)
from marketplace_escrow.logging_config import get_logger

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from marketplace_escrow.domain.enums import ItemState
    from marketplace_escrow.engine.escrow import EscrowItem
    from marketplace_escrow.engine.marketplace import Marketplace
    from marketplace_escrow.engine.registry import ItemRegistry
    from marketplace_escrow.infrastructure.database.orm_models import (
        ItemRow,
        StateChangedRow,
    )

logger = get_logger(__name__)


class MarketplaceService:
    """Runs registry and escrow operations and keeps the projection current."""

    def __init__(
        self,
        marketplace: Marketplace,
        registry: ItemRegistry,
        session: AsyncSession,
    ) -> None:
        self._marketplace = marketplace
        self._registry = registry
        self._item_repo = ItemRepository(session)
        self._event_repo = EventRepository(session)

    @property
    def registry(self) -> ItemRegistry:
        return self._registry

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    async def create_item(self, caller: str, price: int, title: str) -> ItemRow:
        """Create an item through the registry and return its projected row."""
        index = self._registry.create_item(caller, price, title)
        await self._project()
        return await self._item_or_raise(index)

    async def get_item(self, index: int) -> ItemRow:
        await self._project()
        return await self._item_or_raise(index)

    async def list_items(self, state: ItemState | None = None) -> list[ItemRow]:
        await self._project()
        return await self._item_repo.list_by_registry(self._registry.address, state)

    async def transfer_ownership(self, caller: str, new_owner: str) -> ItemRegistry:
        self._registry.transfer_ownership(caller, new_owner)
        return self._registry

    # ------------------------------------------------------------------
    # Payment
    # ------------------------------------------------------------------

    async def pay(self, sender: str, escrow_address: str, amount: int) -> ItemRow:
        """Send a payment straight to an escrow address."""
        escrow = self._marketplace.escrow_at(escrow_address)
        self._marketplace.send(sender, escrow.address, amount)
        await self._project()
        return await self._item_or_raise(escrow.index, escrow.registry)

    async def pay_item(self, sender: str, index: int, amount: int) -> ItemRow:
        """Pay for the item at ``index`` through the registry's forwarding path."""
        self._registry.trigger_payment(sender, index, amount)
        await self._project()
        return await self._item_or_raise(index)

    # ------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------

    async def trigger_delivery(self, caller: str, index: int) -> tuple[ItemRow, int]:
        """Release the item's custody to its owner.

        Returns the projected item and the amount forwarded.
        """
        amount = self._registry.trigger_delivery(caller, index)
        await self._project()
        return await self._item_or_raise(index), amount

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_escrow(self, escrow_address: str) -> EscrowItem:
        return self._marketplace.escrow_at(escrow_address)

    def get_balance(self, address: str) -> tuple[str, int]:
        address = normalize_address(address)
        return address, self._marketplace.balance_of(address)

    async def get_events(
        self,
        escrow_address: str | None = None,
        index: int | None = None,
        new_state: ItemState | None = None,
        since: int | None = None,
    ) -> list[StateChangedRow]:
        await self._project()
        if escrow_address is not None:
            escrow_address = normalize_address(escrow_address)
        return await self._event_repo.query(
            escrow_address=escrow_address,
            index=index,
            new_state=new_state,
            since=since,
        )

    # ------------------------------------------------------------------
    # Projection
    # ------------------------------------------------------------------

    async def reset_projection(self) -> int:
        """Discard rows written for a previous runtime and rebuild from this one.

        The runtime's event sequence restarts at 0 with every process, so a
        persistent store must be rebuilt before it is served. Returns the
        number of events written.
        """
        events_removed = await self._event_repo.clear()
        items_removed = await self._item_repo.clear()
        logger.info(
            "projection.reset",
            events_removed=events_removed,
            items_removed=items_removed,
        )
        return await self._project()

    async def _project(self) -> int:
        """Copy committed events newer than the store's high-water mark.

        Returns the number of events written by this call. Events another
        session already recorded are skipped.
        """
        log = self._marketplace.event_log
        latest = await self._event_repo.latest_sequence()
        if latest >= len(log):
            logger.warning(
                "projection.ahead_of_runtime",
                latest_sequence=latest,
                runtime_events=len(log),
            )
            return await self.reset_projection()

        pending = log.since(latest)
        written = 0
        for evt in pending:
            if await self._event_repo.record(evt):
                written += 1
            registry = self._marketplace.registry_at(evt.registry_address)
            await self._item_repo.upsert(registry.address, registry.items(evt.index))
        if pending:
            logger.debug(
                "projection.synced",
                events=written,
                latest_sequence=pending[-1].sequence,
            )
        return written

    async def _item_or_raise(self, index: int, registry_address: str | None = None) -> ItemRow:
        registry_address = registry_address or self._registry.address
        row = await self._item_repo.get(registry_address, index)
        if row is None:
            registry = self._marketplace.registry_at(registry_address)
            raise OutOfRangeError(index, registry.current_index)
        return row
