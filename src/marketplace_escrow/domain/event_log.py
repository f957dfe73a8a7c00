"""Append-only log of StateChanged notifications.

Every state transition (creation, payment, delivery) appends exactly one
event. Sequence numbers start at 0 and follow commit order, so observers
can catch up with ``since(last_seen_sequence)`` instead of rescanning the
catalog.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, overload

from marketplace_escrow.domain.enums import ItemState

if TYPE_CHECKING:
    from collections.abc import Iterator


@dataclass(frozen=True)
class StateChanged:
    """Notification emitted on every item lifecycle change."""

    sequence: int
    escrow_address: str
    index: int
    new_state: ItemState
    title: str
    registry_address: str

    def to_dict(self) -> dict:
        return {
            "sequence": self.sequence,
            "escrow_address": self.escrow_address,
            "index": self.index,
            "new_state": int(self.new_state),
            "title": self.title,
            "registry_address": self.registry_address,
        }


class EventLog:
    """Ordered, append-only sequence of StateChanged events."""

    def __init__(self) -> None:
        self._events: list[StateChanged] = []

    def append(
        self,
        escrow_address: str,
        index: int,
        new_state: ItemState,
        title: str,
        registry_address: str,
    ) -> StateChanged:
        event = StateChanged(
            sequence=len(self._events),
            escrow_address=escrow_address,
            index=index,
            new_state=ItemState(new_state),
            title=title,
            registry_address=registry_address,
        )
        self._events.append(event)
        return event

    def filter(
        self,
        escrow_address: str | None = None,
        index: int | None = None,
        new_state: ItemState | int | None = None,
        registry_address: str | None = None,
    ) -> list[StateChanged]:
        """Return events matching every given criterion, in log order."""
        return [
            e
            for e in self._events
            if (escrow_address is None or e.escrow_address.lower() == escrow_address.lower())
            and (index is None or e.index == index)
            and (new_state is None or e.new_state == new_state)
            and (
                registry_address is None
                or e.registry_address.lower() == registry_address.lower()
            )
        ]

    def since(self, sequence: int) -> list[StateChanged]:
        """Return events with a sequence strictly greater than ``sequence``."""
        return self._events[max(sequence + 1, 0):]

    @property
    def latest_sequence(self) -> int:
        """Sequence of the newest event, or -1 for an empty log."""
        return len(self._events) - 1

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self) -> Iterator[StateChanged]:
        return iter(list(self._events))

    @overload
    def __getitem__(self, item: int) -> StateChanged: ...

    @overload
    def __getitem__(self, item: slice) -> list[StateChanged]: ...

    def __getitem__(self, item: int | slice) -> StateChanged | list[StateChanged]:
        return self._events[item]

    def __repr__(self) -> str:
        return f"<EventLog events={len(self._events)}>"
