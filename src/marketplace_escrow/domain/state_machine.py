"""Escrow Item State Machine Guard.

Uses python-statemachine to enforce legal state transitions at the domain
level. Whatever path reaches an escrow (direct payment, registry forwarding,
HTTP), an illegal transition such as CREATED -> DELIVERED raises
TransitionNotAllowed.

The machine is instantiated per transition from the escrow's current state
and fired before the escrow record's state field is updated.

Transition table:
    CREATED -> PAID       (pay)
    PAID    -> DELIVERED  (deliver)
"""

from __future__ import annotations

from statemachine import State, StateMachine

from marketplace_escrow.domain.enums import ItemState


class ItemStateMachine(StateMachine):
    """State machine that guards the escrow item lifecycle.

    Usage:
        sm = ItemStateMachine(current_status="PAID")
        sm.deliver()        # transitions to DELIVERED
        sm.item_state       # ItemState.DELIVERED
    """

    # --- States ---
    CREATED = State("CREATED", initial=True)
    PAID = State("PAID")
    DELIVERED = State("DELIVERED", final=True)

    # --- Events / Transitions ---
    pay = CREATED.to(PAID)
    deliver = PAID.to(DELIVERED)

    def __init__(self, current_status: str = "CREATED") -> None:
        """Initialize the state machine at a given status.

        Args:
            current_status: An ItemState name (e.g., "PAID").
        """
        valid_values = {s.value for s in self.states}
        if current_status not in valid_values:
            valid = ", ".join(sorted(valid_values))
            raise ValueError(
                f"Unknown status '{current_status}'. Valid states: {valid}"
            )
        super().__init__(start_value=current_status)

    @classmethod
    def for_state(cls, state: ItemState) -> ItemStateMachine:
        return cls(current_status=state.name)

    @property
    def status(self) -> str:
        """Return the current state value as a string (matches ItemState names)."""
        return str(self.current_state_value)

    @property
    def item_state(self) -> ItemState:
        return ItemState[self.status]

    def get_allowed_events(self) -> list[str]:
        """Return a list of event names that can fire from the current state."""
        return [event.id for event in self.allowed_events]


def validate_transition(current_state: ItemState, event_name: str) -> ItemState:
    """Validate a state transition and return the new state.

    Creates a temporary state machine, fires the named event, and returns
    the resulting ItemState.

    Raises:
        TransitionNotAllowed: If the transition is illegal.
        ValueError: If the event name is unknown.
    """
    sm = ItemStateMachine.for_state(current_state)

    event_method = getattr(sm, event_name, None)
    if event_method is None or not callable(event_method):
        raise ValueError(
            f"Unknown event '{event_name}'. "
            f"Allowed events from {current_state.name}: {sm.get_allowed_events()}"
        )

    event_method()
    return sm.item_state
