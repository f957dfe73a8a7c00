"""Marketplace runtime — serialized, atomic execution of every operation.

The runtime owns the committed WorldState (balances, nonces, registries,
escrows, event log). Each top-level operation:

    1. takes the runtime lock (operations run in total order),
    2. deep-copies the committed state into a working copy,
    3. runs against the working copy,
    4. swaps the working copy in on success, or discards it on any error.

Value sent to an account with a registered receiver hook runs that hook
inside the current operation. A hook may call back into the runtime; such a
nested call runs on the same working copy, is rejected with
ReentrantCallError if it re-enters an entity already on the call stack, and
dooms the enclosing operation if it fails for any reason.

Usage:
    market = Marketplace()
    market.fund(buyer, 10**18)
    registry = market.deploy_registry(owner)
    index = registry.create_item(owner, price=50_000_000_000_000, title="Ring")
    market.send(buyer, registry.items(index).escrow_address, 50_000_000_000_000)
"""

from __future__ import annotations

import threading
from copy import deepcopy
from typing import TYPE_CHECKING, Callable, TypeVar

from marketplace_escrow.domain.addressing import derive_create_address, normalize_address
from marketplace_escrow.domain.enums import EntityKind
from marketplace_escrow.domain.exceptions import (
    InsufficientBalanceError,
    MarketplaceError,
    ReentrantCallError,
    TransferFailedError,
    UnauthorizedError,
    UnknownEntityError,
)
from marketplace_escrow.domain.models import RegistryRecord, WorldState
from marketplace_escrow.domain.units import require_amount
from marketplace_escrow.engine.escrow import EscrowItem
from marketplace_escrow.engine.registry import ItemRegistry
from marketplace_escrow.logging_config import get_logger

if TYPE_CHECKING:
    from marketplace_escrow.domain.event_log import EventLog, StateChanged

T = TypeVar("T")

ReceiverHook = Callable[["Marketplace", str, int], None]
Subscriber = Callable[["StateChanged"], None]

logger = get_logger(__name__)


class Marketplace:
    """In-process host for registries, escrows and the custody ledger."""

    def __init__(self) -> None:
        self._state = WorldState()
        self._lock = threading.RLock()
        self._working: WorldState | None = None
        self._executing_thread: int | None = None
        self._call_stack: list[str] = []
        self._nested_failure: Exception | None = None
        self._receivers: dict[str, ReceiverHook] = {}
        self._subscribers: list[Subscriber] = []

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def execute(
        self,
        entity: str | None,
        action: str,
        fn: Callable[[WorldState], T],
    ) -> T:
        """Run ``fn`` as one atomic operation on behalf of ``entity``.

        ``entity`` is the address of the registry or escrow being invoked;
        None for operations that touch no entity (plain transfers, funding).
        Commits on success; on any exception the committed state is left
        untouched and the exception propagates.
        """
        with self._lock:
            if self._working is not None:
                return self._execute_nested(entity, fn)

            working = deepcopy(self._state)
            self._working = working
            self._executing_thread = threading.get_ident()
            self._call_stack = [entity] if entity is not None else []
            self._nested_failure = None
            try:
                result = fn(working)
                if self._nested_failure is not None:
                    raise self._nested_failure
            except MarketplaceError as exc:
                logger.info(
                    "marketplace.reverted",
                    entity=entity,
                    action=action,
                    code=exc.code,
                    error=exc.message,
                )
                raise
            finally:
                self._working = None
                self._executing_thread = None
                self._call_stack = []
                self._nested_failure = None

            first_new = len(self._state.events)
            self._state = working
            self._notify(working.events[first_new:])
            return result

    def _execute_nested(self, entity: str | None, fn: Callable[[WorldState], T]) -> T:
        working = self._working
        assert working is not None
        try:
            if entity is not None and entity in self._call_stack:
                raise ReentrantCallError(entity)
            if entity is not None:
                self._call_stack.append(entity)
            try:
                return fn(working)
            finally:
                if entity is not None:
                    self._call_stack.pop()
        except Exception as exc:
            if self._nested_failure is None:
                self._nested_failure = exc
            raise

    def view(self) -> WorldState:
        """State visible to readers: the working copy inside an operation, else committed."""
        working = self._working
        if working is not None and self._executing_thread == threading.get_ident():
            return working
        return self._state

    # ------------------------------------------------------------------
    # Funds
    # ------------------------------------------------------------------

    def move_funds(self, world: WorldState, sender: str, recipient: str, amount: int) -> None:
        """Move ``amount`` between balances inside a running operation.

        Runs the recipient's receiver hook, if any. Any hook failure becomes
        TransferFailedError.
        """
        available = world.balances.get(sender, 0)
        if available < amount:
            raise InsufficientBalanceError(sender, amount, available)
        world.balances[sender] = available - amount
        world.balances[recipient] = world.balances.get(recipient, 0) + amount

        hook = self._receivers.get(recipient)
        if hook is None:
            return
        try:
            hook(self, sender, amount)
        except Exception as exc:
            raise TransferFailedError(recipient, amount, str(exc)) from exc

    def fund(self, address: str, amount: int) -> int:
        """Mint ``amount`` into ``address`` (genesis allocation). Returns the new balance."""
        address = normalize_address(address)
        amount = require_amount(amount)

        def _fund(world: WorldState) -> int:
            world.balances[address] = world.balances.get(address, 0) + amount
            return world.balances[address]

        balance = self.execute(None, "fund", _fund)
        logger.debug("marketplace.funded", address=address, amount=amount, balance=balance)
        return balance

    def send(self, sender: str, to: str, amount: int) -> None:
        """Deliver a value-bearing message from ``sender`` to ``to``.

        To an escrow this is a purchase attempt; to a plain account it is a
        transfer; registries do not accept value.
        """
        sender = normalize_address(sender)
        to = normalize_address(to)
        amount = require_amount(amount)

        kind = self.kind_of(to)
        if kind is EntityKind.ESCROW:
            self.escrow_at(to).accept_payment(sender, amount)
            return
        if kind is EntityKind.REGISTRY:
            raise TransferFailedError(to, amount, "registries do not accept payments")

        def _send(world: WorldState) -> None:
            self.require_account_sender(world, sender)
            self.move_funds(world, sender, to, amount)

        self.execute(None, "send", _send)
        logger.debug("marketplace.sent", sender=sender, to=to, amount=amount)

    @staticmethod
    def require_account_sender(world: WorldState, sender: str) -> None:
        """Reject value initiated on behalf of a registry or escrow.

        Entity balances only move through the entity's own operations.
        """
        if sender in world.escrows or sender in world.registries:
            raise UnauthorizedError(sender, "send value held by a registry or escrow")

    def register_receiver(self, address: str, hook: ReceiverHook) -> None:
        """Attach code to a plain account; it runs whenever the account receives funds."""
        address = normalize_address(address)
        if self.kind_of(address) is not EntityKind.ACCOUNT:
            raise ValueError(f"Receiver hooks can only be attached to plain accounts: {address}")
        self._receivers[address] = hook

    def unregister_receiver(self, address: str) -> None:
        self._receivers.pop(normalize_address(address), None)

    # ------------------------------------------------------------------
    # Deployment
    # ------------------------------------------------------------------

    def deploy_registry(self, deployer: str) -> ItemRegistry:
        """Create a registry owned by ``deployer`` at the deployer's next CREATE address."""
        deployer = normalize_address(deployer)

        def _deploy(world: WorldState) -> str:
            nonce = world.nonces.get(deployer, 0)
            address = derive_create_address(deployer, nonce)
            world.nonces[deployer] = nonce + 1
            world.nonces[address] = 1
            world.registries[address] = RegistryRecord(address=address, owner=deployer)
            return address

        address = self.execute(None, "deploy_registry", _deploy)
        logger.info("marketplace.registry_deployed", registry=address, owner=deployer)
        return ItemRegistry(self, address)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def balance_of(self, address: str) -> int:
        return self.view().balances.get(normalize_address(address), 0)

    def nonce_of(self, address: str) -> int:
        return self.view().nonces.get(normalize_address(address), 0)

    def kind_of(self, address: str) -> EntityKind:
        address = normalize_address(address)
        world = self.view()
        if address in world.escrows:
            return EntityKind.ESCROW
        if address in world.registries:
            return EntityKind.REGISTRY
        return EntityKind.ACCOUNT

    def registry_at(self, address: str) -> ItemRegistry:
        address = normalize_address(address)
        if address not in self.view().registries:
            raise UnknownEntityError(address, "registry")
        return ItemRegistry(self, address)

    def escrow_at(self, address: str) -> EscrowItem:
        address = normalize_address(address)
        if address not in self.view().escrows:
            raise UnknownEntityError(address, "escrow")
        return EscrowItem(self, address)

    def registries(self) -> list[ItemRegistry]:
        return [ItemRegistry(self, a) for a in self.view().registries]

    @property
    def event_log(self) -> EventLog:
        return self.view().events

    def world(self) -> WorldState:
        """Return a private deep copy of the committed state."""
        with self._lock:
            return deepcopy(self._state)

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Deliver every committed StateChanged event to ``callback``, in order.

        Returns a function that removes the subscription.
        """
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    def _notify(self, events: list[StateChanged]) -> None:
        for event in events:
            for callback in list(self._subscribers):
                try:
                    callback(event)
                except Exception:
                    # The operation is already committed; a broken observer cannot undo it.
                    logger.exception("marketplace.subscriber_failed", sequence=event.sequence)
