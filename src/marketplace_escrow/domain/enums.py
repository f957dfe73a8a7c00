"""Domain enumerations for the marketplace.

Framework-agnostic: no SQLAlchemy, no FastAPI imports.
"""

import enum


class ItemState(enum.IntEnum):
    """Lifecycle states of an item and its escrow.

    The integer values are the wire encoding observers see in
    ``StateChanged.new_state``. Transitions are enforced by ItemStateMachine
    (see domain/state_machine.py).
    """

    CREATED = 0
    PAID = 1
    DELIVERED = 2


class EntityKind(enum.StrEnum):
    """What lives at an address in the marketplace."""

    ACCOUNT = "account"
    REGISTRY = "registry"
    ESCROW = "escrow"
