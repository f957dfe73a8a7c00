"""Domain records held by the marketplace runtime.

Plain dataclasses with no behavior beyond copying. The runtime deep-copies a
WorldState at the start of every operation and swaps it in on commit, so
everything reachable from WorldState must be deep-copyable.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from marketplace_escrow.domain.enums import ItemState
from marketplace_escrow.domain.event_log import EventLog


@dataclass
class ItemRecord:
    """One catalog entry inside a registry.

    ``state`` is a cache of the escrow's own state, written in the same
    commit as the escrow transition.
    """

    index: int
    title: str
    price: int
    escrow_address: str
    state: ItemState = ItemState.CREATED


@dataclass
class EscrowRecord:
    """Authoritative state of one escrow. Custody lives in the ledger balance."""

    address: str
    registry: str
    index: int
    title: str
    price: int
    owner: str
    state: ItemState = ItemState.CREATED


@dataclass
class RegistryRecord:
    address: str
    owner: str
    items: list[ItemRecord] = field(default_factory=list)
    current_index: int = 0


@dataclass
class WorldState:
    """Everything an operation may change, committed or discarded as a unit."""

    balances: dict[str, int] = field(default_factory=dict)
    # Creation nonces, used for address derivation. Registries and escrows start at 1.
    nonces: dict[str, int] = field(default_factory=dict)
    registries: dict[str, RegistryRecord] = field(default_factory=dict)
    escrows: dict[str, EscrowRecord] = field(default_factory=dict)
    events: EventLog = field(default_factory=EventLog)
