"""Pydantic schemas for the Marketplace API.

These schemas define the request/response shapes for the REST API. They are
separate from the engine handles and ORM rows to keep clean boundaries
between the API, the runtime and the database layers.

Amounts are integers in the smallest currency unit throughout.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from marketplace_escrow.domain.enums import ItemState
from marketplace_escrow.domain.state_machine import ItemStateMachine

if TYPE_CHECKING:
    from marketplace_escrow.engine.escrow import EscrowItem
    from marketplace_escrow.engine.registry import ItemRegistry
    from marketplace_escrow.infrastructure.database.orm_models import (
        ItemRow,
        StateChangedRow,
    )

_ADDRESS_EXAMPLE = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"

# ---------------------------------------------------------------------------
# Request Schemas
# ---------------------------------------------------------------------------


class CreateItemRequest(BaseModel):
    """Request body for adding an item to the registry."""

    caller: str = Field(
        ...,
        min_length=42,
        max_length=42,
        description="Address invoking the registry; must be its owner",
        examples=[_ADDRESS_EXAMPLE],
    )
    title: str = Field(
        ...,
        max_length=5000,
        description="Item title, stored as given",
        examples=["Enchantment of the Ring"],
    )
    price: int = Field(
        ...,
        ge=0,
        description="Exact price in smallest currency units",
        examples=[50_000_000_000_000],
    )


class PaymentRequest(BaseModel):
    """Request body for paying for an item."""

    sender: str = Field(
        ...,
        min_length=42,
        max_length=42,
        description="Paying account",
    )
    amount: int = Field(
        ...,
        ge=0,
        description="Amount sent; must equal the item price exactly",
    )


class DeliveryRequest(BaseModel):
    """Request body for releasing an item's escrow to its owner."""

    caller: str = Field(
        ...,
        min_length=42,
        max_length=42,
        description="Address invoking the registry; must be its owner",
    )


class TransferOwnershipRequest(BaseModel):
    """Request body for handing the registry to a new owner."""

    caller: str = Field(..., min_length=42, max_length=42)
    new_owner: str = Field(..., min_length=42, max_length=42)


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------


class ItemResponse(BaseModel):
    """Projected catalog entry."""

    registry_address: str
    index: int
    escrow_address: str
    title: str
    price: int
    state: int = Field(description="0=CREATED, 1=PAID, 2=DELIVERED")
    state_name: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_row(cls, row: ItemRow) -> ItemResponse:
        return cls(
            registry_address=row.registry_address,
            index=row.item_index,
            escrow_address=row.escrow_address,
            title=row.title,
            price=row.price_amount,
            state=row.state,
            state_name=ItemState(row.state).name,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )


class DeliveryResponse(BaseModel):
    """Outcome of a delivery: the updated item and the amount released."""

    item: ItemResponse
    amount: int


class EscrowResponse(BaseModel):
    """Live view of one escrow, read from the runtime."""

    address: str
    registry: str
    index: int
    title: str
    price: int
    owner: str
    state: int
    state_name: str
    purchased: bool
    custody: int
    allowed_events: list[str] = Field(
        description="State machine events that can fire from the current state"
    )

    @classmethod
    def from_escrow(cls, escrow: EscrowItem) -> EscrowResponse:
        state = escrow.state
        return cls(
            address=escrow.address,
            registry=escrow.registry,
            index=escrow.index,
            title=escrow.title,
            price=escrow.price,
            owner=escrow.owner,
            state=int(state),
            state_name=state.name,
            purchased=escrow.purchased,
            custody=escrow.custody,
            allowed_events=ItemStateMachine.for_state(state).get_allowed_events(),
        )


class StateChangedResponse(BaseModel):
    """Persisted StateChanged notification."""

    sequence: int
    registry_address: str
    escrow_address: str
    index: int
    new_state: int = Field(description="0=CREATED, 1=PAID, 2=DELIVERED")
    new_state_name: str
    title: str
    recorded_at: datetime

    @classmethod
    def from_row(cls, row: StateChangedRow) -> StateChangedResponse:
        return cls(
            sequence=row.sequence,
            registry_address=row.registry_address,
            escrow_address=row.escrow_address,
            index=row.item_index,
            new_state=row.new_state,
            new_state_name=ItemState(row.new_state).name,
            title=row.title,
            recorded_at=row.recorded_at,
        )


class RegistryResponse(BaseModel):
    """Registry summary."""

    address: str
    owner: str
    current_index: int
    next_escrow_address: str = Field(
        description="Address the next created item's escrow will be deployed at"
    )

    @classmethod
    def from_registry(cls, registry: ItemRegistry) -> RegistryResponse:
        return cls(
            address=registry.address,
            owner=registry.owner,
            current_index=registry.current_index,
            next_escrow_address=registry.next_escrow_address(),
        )


class AccountResponse(BaseModel):
    """Ledger balance of an address."""

    address: str
    balance: int
    balance_formatted: str
    symbol: str


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    version: str = "0.1.0"
    database: str = "unknown"
    marketplace: str = "unknown"
