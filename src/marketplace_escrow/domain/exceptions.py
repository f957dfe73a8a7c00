"""Domain exceptions for the marketplace.

These exceptions are framework-agnostic and represent rejected operations.
Every one of them aborts the operation that raised it with no persisted
effect. The API layer's middleware translates them to HTTP responses.
"""


class MarketplaceError(Exception):
    """Base exception for all domain errors."""

    def __init__(self, message: str, code: str = "MARKETPLACE_ERROR") -> None:
        self.message = message
        self.code = code
        super().__init__(self.message)


# --- Authorization ---


class UnauthorizedError(MarketplaceError):
    """Raised when the caller lacks the privilege an operation requires."""

    def __init__(self, caller: str, action: str) -> None:
        super().__init__(
            message=f"Caller {caller} is not allowed to {action}",
            code="UNAUTHORIZED",
        )
        self.caller = caller
        self.action = action


# --- Lookup ---


class OutOfRangeError(MarketplaceError):
    """Raised when an index references an item that does not exist."""

    def __init__(self, index: int, current_index: int) -> None:
        super().__init__(
            message=f"Item index {index} out of range (current index {current_index})",
            code="OUT_OF_RANGE",
        )
        self.index = index
        self.current_index = current_index


class UnknownEntityError(MarketplaceError):
    """Raised when no registry or escrow lives at the given address."""

    def __init__(self, address: str, kind: str = "entity") -> None:
        super().__init__(
            message=f"No {kind} at address {address}",
            code="UNKNOWN_ENTITY",
        )
        self.address = address


# --- Payment ---


class AlreadyPurchasedError(MarketplaceError):
    """Raised when a payment reaches an item that is no longer in CREATED."""

    def __init__(self, escrow_address: str) -> None:
        super().__init__(
            message=f"Item at {escrow_address} is already purchased",
            code="ALREADY_PURCHASED",
        )
        self.escrow_address = escrow_address


class WrongAmountError(MarketplaceError):
    """Raised when a payment does not exactly match the item price."""

    def __init__(self, expected: int, received: int) -> None:
        super().__init__(
            message=f"Wrong payment amount: expected {expected}, received {received}",
            code="WRONG_AMOUNT",
        )
        self.expected = expected
        self.received = received


class InsufficientBalanceError(MarketplaceError):
    """Raised when an account cannot cover a transfer."""

    def __init__(self, address: str, required: int, available: int) -> None:
        super().__init__(
            message=(
                f"Insufficient balance for {address}: "
                f"required {required}, available {available}"
            ),
            code="INSUFFICIENT_BALANCE",
        )
        self.address = address
        self.required = required
        self.available = available


class InvalidAmountError(MarketplaceError):
    """Raised when a value is not a valid unsigned amount."""

    def __init__(self, value: object) -> None:
        super().__init__(
            message=f"Invalid amount: {value!r}",
            code="INVALID_AMOUNT",
        )
        self.value = value


class InvalidAddressError(MarketplaceError):
    """Raised when a string is not a 20-byte hex address."""

    def __init__(self, value: object) -> None:
        super().__init__(
            message=f"Invalid address: {value!r}",
            code="INVALID_ADDRESS",
        )
        self.value = value


# --- Delivery ---


class NotPaidError(MarketplaceError):
    """Raised when delivery is triggered on an item that is not PAID."""

    def __init__(self, escrow_address: str, state: str) -> None:
        super().__init__(
            message=f"Item at {escrow_address} is not paid (state {state})",
            code="NOT_PAID",
        )
        self.escrow_address = escrow_address
        self.state = state


class TransferFailedError(MarketplaceError):
    """Raised when forwarding funds to a recipient could not complete."""

    def __init__(self, recipient: str, amount: int, reason: str = "") -> None:
        detail = f": {reason}" if reason else ""
        super().__init__(
            message=f"Transfer of {amount} to {recipient} failed{detail}",
            code="TRANSFER_FAILED",
        )
        self.recipient = recipient
        self.amount = amount


# --- State Machine / Execution ---


class InvalidStateTransitionError(MarketplaceError):
    """Raised when an attempted state transition is not allowed.

    Example: CREATED -> DELIVERED (must go through PAID).
    """

    def __init__(self, current_state: str, attempted_event: str) -> None:
        super().__init__(
            message=f"Invalid state transition: {attempted_event} from {current_state}",
            code="INVALID_STATE_TRANSITION",
        )
        self.current_state = current_state
        self.attempted_event = attempted_event


class ReentrantCallError(MarketplaceError):
    """Raised when an entity is invoked again before its running call returns."""

    def __init__(self, address: str) -> None:
        super().__init__(
            message=f"Reentrant call into {address}",
            code="REENTRANT_CALL",
        )
        self.address = address
