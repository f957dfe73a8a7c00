"""ItemRegistry — the catalog and escrow factory.

The registry is the only way items come into existence. Creating an item
derives the escrow's address from (registry address, registry nonce), so the
address is known before the item exists: the first escrow a registry
creates uses nonce 1, the second nonce 2, and so on.

Every mutation is owner-gated through the shared authorization guard.
Queries are open to anyone.
"""

from __future__ import annotations

from dataclasses import replace
from typing import TYPE_CHECKING

from marketplace_escrow.domain.addressing import derive_create_address, normalize_address
from marketplace_escrow.domain.authorization import require_owner
from marketplace_escrow.domain.enums import ItemState
from marketplace_escrow.domain.exceptions import (
    NotPaidError,
    OutOfRangeError,
    UnknownEntityError,
)
from marketplace_escrow.domain.models import ItemRecord, RegistryRecord
from marketplace_escrow.domain.units import require_amount
from marketplace_escrow.engine.escrow import EscrowItem, construct_escrow
from marketplace_escrow.logging_config import get_logger

if TYPE_CHECKING:
    from marketplace_escrow.domain.models import WorldState
    from marketplace_escrow.engine.marketplace import Marketplace

logger = get_logger(__name__)


class ItemRegistry:
    """Handle for one registry living in a Marketplace."""

    def __init__(self, marketplace: Marketplace, address: str) -> None:
        self._marketplace = marketplace
        self._address = address

    def __repr__(self) -> str:
        return f"<ItemRegistry address={self._address}>"

    def __eq__(self, other: object) -> bool:
        return (
            isinstance(other, ItemRegistry)
            and other._marketplace is self._marketplace
            and other._address == self._address
        )

    def __hash__(self) -> int:
        return hash(self._address)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def address(self) -> str:
        return self._address

    @property
    def owner(self) -> str:
        return self._record().owner

    @property
    def current_index(self) -> int:
        """Number of items ever created; also the index the next item will get."""
        return self._record().current_index

    def items(self, index: int) -> ItemRecord:
        """Return a copy of the item record at ``index``."""
        return replace(_item_at(self._record(), index))

    def list_items(self) -> list[ItemRecord]:
        return [replace(item) for item in self._record().items]

    def escrow(self, index: int) -> EscrowItem:
        return EscrowItem(self._marketplace, _item_at(self._record(), index).escrow_address)

    def next_escrow_address(self) -> str:
        """Address the next created item's escrow will live at."""
        return derive_create_address(self._address, self._marketplace.nonce_of(self._address))

    # ------------------------------------------------------------------
    # Owner-gated mutations
    # ------------------------------------------------------------------

    def create_item(self, caller: str, price: int, title: str) -> int:
        """Create an item and its escrow in one operation.

        Args:
            caller: Must be the registry owner.
            price: Exact payment the escrow will accept, in smallest units.
                Zero is accepted.
            title: Free text; stored as given.

        Returns:
            The new item's index.

        Raises:
            UnauthorizedError: Caller is not the owner.
            InvalidAmountError: ``price`` is not a non-negative integer.
        """
        caller = normalize_address(caller)
        price = require_amount(price)
        if not isinstance(title, str):
            raise TypeError(f"title must be str, not {type(title).__name__}")

        def _create(world: WorldState) -> tuple[int, str]:
            registry = self._record(world)
            require_owner(caller, registry.owner, "create items")

            nonce = world.nonces.get(self._address, 1)
            escrow_address = derive_create_address(self._address, nonce)
            world.nonces[self._address] = nonce + 1

            index = registry.current_index
            construct_escrow(
                world,
                address=escrow_address,
                registry=self._address,
                index=index,
                title=title,
                price=price,
                owner=registry.owner,
            )
            registry.items.append(
                ItemRecord(index=index, title=title, price=price, escrow_address=escrow_address)
            )
            registry.current_index += 1
            world.events.append(escrow_address, index, ItemState.CREATED, title, self._address)
            return index, escrow_address

        index, escrow_address = self._marketplace.execute(self._address, "create_item", _create)
        logger.info(
            "registry.item_created",
            registry=self._address,
            index=index,
            escrow=escrow_address,
            price=price,
        )
        return index

    def trigger_delivery(self, caller: str, index: int) -> int:
        """Release the escrow at ``index`` to the owner.

        Returns:
            The amount forwarded to the escrow's owner.

        Raises:
            UnauthorizedError: Caller is not the registry owner.
            OutOfRangeError: No item at ``index``.
            NotPaidError: The item is not PAID.
            TransferFailedError: The owner could not receive the funds.
        """
        caller = normalize_address(caller)

        def _deliver(world: WorldState) -> int:
            registry = self._record(world)
            require_owner(caller, registry.owner, "trigger delivery")
            item = _item_at(registry, index)
            escrow = world.escrows[item.escrow_address]
            if escrow.state != ItemState.PAID:
                raise NotPaidError(escrow.address, escrow.state.name)
            return EscrowItem(self._marketplace, escrow.address).trigger_delivery(self._address)

        return self._marketplace.execute(self._address, "trigger_delivery", _deliver)

    def trigger_payment(self, sender: str, index: int, amount: int) -> None:
        """Forward a payment from ``sender`` to the escrow at ``index``.

        Validation is the escrow's own: AlreadyPurchasedError, WrongAmountError,
        InsufficientBalanceError.
        """
        sender = normalize_address(sender)

        def _pay(world: WorldState) -> None:
            item = _item_at(self._record(world), index)
            EscrowItem(self._marketplace, item.escrow_address).accept_payment(sender, amount)

        self._marketplace.execute(self._address, "trigger_payment", _pay)

    def transfer_ownership(self, caller: str, new_owner: str) -> None:
        """Hand the registry to ``new_owner``. Existing escrows keep their owner."""
        caller = normalize_address(caller)
        new_owner = normalize_address(new_owner)

        def _transfer(world: WorldState) -> str:
            registry = self._record(world)
            require_owner(caller, registry.owner, "transfer ownership")
            previous = registry.owner
            registry.owner = new_owner
            return previous

        previous = self._marketplace.execute(self._address, "transfer_ownership", _transfer)
        logger.info(
            "registry.ownership_transferred",
            registry=self._address,
            previous_owner=previous,
            new_owner=new_owner,
        )

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _record(self, world: WorldState | None = None) -> RegistryRecord:
        world = world if world is not None else self._marketplace.view()
        record = world.registries.get(self._address)
        if record is None:
            raise UnknownEntityError(self._address, "registry")
        return record


def _item_at(registry: RegistryRecord, index: int) -> ItemRecord:
    if isinstance(index, bool) or not isinstance(index, int):
        raise TypeError(f"index must be int, not {type(index).__name__}")
    if index < 0 or index >= registry.current_index:
        raise OutOfRangeError(index, registry.current_index)
    return registry.items[index]
