"""Item registry REST API routes.

Routes:
    GET    /api/v1/registry                        — Registry summary
    GET    /api/v1/registry/items                  — List items (optionally by state)
    POST   /api/v1/registry/items                  — Create an item and its escrow
    GET    /api/v1/registry/items/{index}          — Get one item
    POST   /api/v1/registry/items/{index}/pay      — Pay through the registry
    POST   /api/v1/registry/items/{index}/deliver  — Release escrow to the owner
    POST   /api/v1/registry/ownership              — Transfer registry ownership
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from marketplace_escrow.api.deps import get_marketplace_service
from marketplace_escrow.domain.enums import ItemState
from marketplace_escrow.schemas.marketplace import (
    CreateItemRequest,
    DeliveryRequest,
    DeliveryResponse,
    ItemResponse,
    PaymentRequest,
    RegistryResponse,
    TransferOwnershipRequest,
)
from marketplace_escrow.services.marketplace_service import MarketplaceService

router = APIRouter(prefix="/api/v1/registry", tags=["Registry"])


@router.get("", response_model=RegistryResponse, summary="Registry summary")
async def get_registry_summary(
    svc: MarketplaceService = Depends(get_marketplace_service),
) -> RegistryResponse:
    return RegistryResponse.from_registry(svc.registry)


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


@router.get("/items", response_model=list[ItemResponse], summary="List items")
async def list_items(
    state: int | None = Query(default=None, ge=0, le=2, description="0=CREATED, 1=PAID, 2=DELIVERED"),
    svc: MarketplaceService = Depends(get_marketplace_service),
) -> list[ItemResponse]:
    rows = await svc.list_items(ItemState(state) if state is not None else None)
    return [ItemResponse.from_row(row) for row in rows]


@router.post(
    "/items",
    response_model=ItemResponse,
    status_code=201,
    summary="Create an item",
)
async def create_item(
    request: CreateItemRequest,
    svc: MarketplaceService = Depends(get_marketplace_service),
) -> ItemResponse:
    """Create an item in CREATED state with a freshly derived escrow."""
    row = await svc.create_item(request.caller, request.price, request.title)
    return ItemResponse.from_row(row)


@router.get("/items/{index}", response_model=ItemResponse, summary="Get an item")
async def get_item(
    index: int,
    svc: MarketplaceService = Depends(get_marketplace_service),
) -> ItemResponse:
    return ItemResponse.from_row(await svc.get_item(index))


# ---------------------------------------------------------------------------
# Payment & delivery
# ---------------------------------------------------------------------------


@router.post(
    "/items/{index}/pay",
    response_model=ItemResponse,
    summary="Pay for an item through the registry",
)
async def pay_item(
    index: int,
    request: PaymentRequest,
    svc: MarketplaceService = Depends(get_marketplace_service),
) -> ItemResponse:
    row = await svc.pay_item(request.sender, index, request.amount)
    return ItemResponse.from_row(row)


@router.post(
    "/items/{index}/deliver",
    response_model=DeliveryResponse,
    summary="Release an item's escrow to its owner",
)
async def deliver_item(
    index: int,
    request: DeliveryRequest,
    svc: MarketplaceService = Depends(get_marketplace_service),
) -> DeliveryResponse:
    row, amount = await svc.trigger_delivery(request.caller, index)
    return DeliveryResponse(item=ItemResponse.from_row(row), amount=amount)


# ---------------------------------------------------------------------------
# Ownership
# ---------------------------------------------------------------------------


@router.post("/ownership", response_model=RegistryResponse, summary="Transfer ownership")
async def transfer_ownership(
    request: TransferOwnershipRequest,
    svc: MarketplaceService = Depends(get_marketplace_service),
) -> RegistryResponse:
    registry = await svc.transfer_ownership(request.caller, request.new_owner)
    return RegistryResponse.from_registry(registry)
