"""Pydantic API schemas."""

from marketplace_escrow.schemas.marketplace import (
    AccountResponse,
    CreateItemRequest,
    DeliveryRequest,
    DeliveryResponse,
    EscrowResponse,
    HealthResponse,
    ItemResponse,
    PaymentRequest,
    RegistryResponse,
    StateChangedResponse,
    TransferOwnershipRequest,
)

__all__ = [
    "AccountResponse",
    "CreateItemRequest",
    "DeliveryRequest",
    "DeliveryResponse",
    "EscrowResponse",
    "HealthResponse",
    "ItemResponse",
    "PaymentRequest",
    "RegistryResponse",
    "StateChangedResponse",
    "TransferOwnershipRequest",
]
