"""EscrowItem — custody and lifecycle of a single purchasable item.

An EscrowItem is a handle onto an EscrowRecord owned by the Marketplace
runtime. The record's state is authoritative; the creating registry keeps a
cached copy that every transition here updates in the same commit.

Lifecycle:
    CREATED --accept_payment(price)--> PAID --trigger_delivery()--> DELIVERED
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from statemachine.exceptions import TransitionNotAllowed

from marketplace_escrow.domain.addressing import normalize_address
from marketplace_escrow.domain.authorization import require_caller
from marketplace_escrow.domain.enums import ItemState
from marketplace_escrow.domain.exceptions import (
    AlreadyPurchasedError,
    InvalidStateTransitionError,
    NotPaidError,
    UnknownEntityError,
    WrongAmountError,
)
from marketplace_escrow.domain.models import EscrowRecord
from marketplace_escrow.domain.state_machine import validate_transition
from marketplace_escrow.domain.units import require_amount
from marketplace_escrow.logging_config import get_logger

if TYPE_CHECKING:
    from marketplace_escrow.domain.models import WorldState
    from marketplace_escrow.engine.marketplace import Marketplace

logger = get_logger(__name__)


def construct_escrow(
    world: WorldState,
    *,
    address: str,
    registry: str,
    index: int,
    title: str,
    price: int,
    owner: str,
) -> EscrowRecord:
    """Place a new escrow in CREATED state at ``address``. Runs inside the creating operation."""
    record = EscrowRecord(
        address=address,
        registry=registry,
        index=index,
        title=title,
        price=price,
        owner=owner,
    )
    world.escrows[address] = record
    world.nonces[address] = 1
    return record


class EscrowItem:
    """Handle for one escrow. Cheap to create; holds no state of its own."""

    def __init__(self, marketplace: Marketplace, address: str) -> None:
        self._marketplace = marketplace
        self._address = address

    def __repr__(self) -> str:
        return f"<EscrowItem address={self._address}>"

    def __eq__(self, other: object) -> bool:
        return (
            isinstance(other, EscrowItem)
            and other._marketplace is self._marketplace
            and other._address == self._address
        )

    def __hash__(self) -> int:
        return hash(self._address)

    # ------------------------------------------------------------------
    # Read-only accessors
    # ------------------------------------------------------------------

    @property
    def address(self) -> str:
        return self._address

    @property
    def registry(self) -> str:
        return self._record().registry

    @property
    def index(self) -> int:
        return self._record().index

    @property
    def title(self) -> str:
        return self._record().title

    @property
    def price(self) -> int:
        return self._record().price

    @property
    def owner(self) -> str:
        return self._record().owner

    @property
    def state(self) -> ItemState:
        return self._record().state

    @property
    def purchased(self) -> bool:
        return self._record().state != ItemState.CREATED

    @property
    def custody(self) -> int:
        """Funds currently held for this item."""
        return self._marketplace.balance_of(self._address)

    # ------------------------------------------------------------------
    # Payment
    # ------------------------------------------------------------------

    def accept_payment(self, sender: str, amount: int) -> None:
        """Take exactly ``price`` from ``sender`` into custody and move to PAID.

        Raises:
            AlreadyPurchasedError: The item is no longer CREATED.
            WrongAmountError: ``amount`` differs from the price.
            InsufficientBalanceError: The sender cannot cover ``amount``.
            UnauthorizedError: ``sender`` is a registry or escrow.
        """
        sender = normalize_address(sender)
        amount = require_amount(amount)

        def _accept(world: WorldState) -> None:
            escrow = self._record(world)
            if escrow.state != ItemState.CREATED:
                raise AlreadyPurchasedError(self._address)
            if amount != escrow.price:
                raise WrongAmountError(escrow.price, amount)
            self._marketplace.require_account_sender(world, sender)

            _advance(world, escrow, "pay")
            self._marketplace.move_funds(world, sender, self._address, amount)
            world.events.append(
                escrow.address, escrow.index, escrow.state, escrow.title, escrow.registry
            )

        self._marketplace.execute(self._address, "accept_payment", _accept)
        logger.info("escrow.paid", escrow=self._address, buyer=sender, amount=amount)

    # ------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------

    def trigger_delivery(self, caller: str) -> int:
        """Release custody to the owner and move to DELIVERED.

        ``caller`` must be the escrow's owner or its creating registry acting
        for the owner. State changes before funds move; if the transfer fails
        the whole operation aborts and the item stays PAID.

        Returns:
            The amount forwarded to the owner.

        Raises:
            UnauthorizedError: Caller is neither the owner nor the registry.
            NotPaidError: The item is not PAID.
            TransferFailedError: The owner could not receive the funds.
        """
        caller = normalize_address(caller)

        def _deliver(world: WorldState) -> int:
            escrow = self._record(world)
            require_caller(caller, (escrow.owner, escrow.registry), "trigger delivery")
            if escrow.state != ItemState.PAID:
                raise NotPaidError(self._address, escrow.state.name)

            amount = world.balances.get(self._address, 0)
            _advance(world, escrow, "deliver")
            self._marketplace.move_funds(world, self._address, escrow.owner, amount)
            world.events.append(
                escrow.address, escrow.index, escrow.state, escrow.title, escrow.registry
            )
            return amount

        amount = self._marketplace.execute(self._address, "trigger_delivery", _deliver)
        logger.info("escrow.delivered", escrow=self._address, caller=caller, amount=amount)
        return amount

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _record(self, world: WorldState | None = None) -> EscrowRecord:
        world = world if world is not None else self._marketplace.view()
        record = world.escrows.get(self._address)
        if record is None:
            raise UnknownEntityError(self._address, "escrow")
        return record


def _advance(world: WorldState, escrow: EscrowRecord, event_name: str) -> None:
    """Fire a guarded transition and mirror it into the registry's cached record."""
    try:
        new_state = validate_transition(escrow.state, event_name)
    except TransitionNotAllowed as err:
        raise InvalidStateTransitionError(escrow.state.name, event_name) from err
    escrow.state = new_state
    world.registries[escrow.registry].items[escrow.index].state = new_state
