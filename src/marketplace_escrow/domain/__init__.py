"""Domain layer — pure business rules with zero framework dependencies."""

from marketplace_escrow.domain.enums import EntityKind, ItemState
from marketplace_escrow.domain.event_log import EventLog, StateChanged
from marketplace_escrow.domain.exceptions import (
    AlreadyPurchasedError,
    InsufficientBalanceError,
    InvalidAddressError,
    InvalidAmountError,
    InvalidStateTransitionError,
    MarketplaceError,
    NotPaidError,
    OutOfRangeError,
    ReentrantCallError,
    TransferFailedError,
    UnauthorizedError,
    UnknownEntityError,
    WrongAmountError,
)
from marketplace_escrow.domain.models import (
    EscrowRecord,
    ItemRecord,
    RegistryRecord,
    WorldState,
)
from marketplace_escrow.domain.state_machine import (
    ItemStateMachine,
    validate_transition,
)

__all__ = [
    "EntityKind",
    "ItemState",
    "EventLog",
    "StateChanged",
    "AlreadyPurchasedError",
    "InsufficientBalanceError",
    "InvalidAddressError",
    "InvalidAmountError",
    "InvalidStateTransitionError",
    "MarketplaceError",
    "NotPaidError",
    "OutOfRangeError",
    "ReentrantCallError",
    "TransferFailedError",
    "UnauthorizedError",
    "UnknownEntityError",
    "WrongAmountError",
    "EscrowRecord",
    "ItemRecord",
    "RegistryRecord",
    "WorldState",
    "ItemStateMachine",
    "validate_transition",
]
