"""Escrow REST API routes.

Escrows are addressed directly by their derived address, the way a buyer
who was told the address in advance would reach them.

Routes:
    GET    /api/v1/escrow/{address}      — Live escrow state and custody
    POST   /api/v1/escrow/{address}/pay  — Send a payment to the escrow
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from marketplace_escrow.api.deps import get_marketplace_service
from marketplace_escrow.schemas.marketplace import (
    EscrowResponse,
    ItemResponse,
    PaymentRequest,
)
from marketplace_escrow.services.marketplace_service import MarketplaceService

router = APIRouter(prefix="/api/v1/escrow", tags=["Escrow"])


@router.get("/{address}", response_model=EscrowResponse, summary="Get escrow details")
async def get_escrow(
    address: str,
    svc: MarketplaceService = Depends(get_marketplace_service),
) -> EscrowResponse:
    return EscrowResponse.from_escrow(svc.get_escrow(address))


@router.post(
    "/{address}/pay",
    response_model=ItemResponse,
    summary="Pay an escrow directly",
)
async def pay_escrow(
    address: str,
    request: PaymentRequest,
    svc: MarketplaceService = Depends(get_marketplace_service),
) -> ItemResponse:
    """Send exactly the item price to the escrow; the item moves to PAID."""
    row = await svc.pay(request.sender, address, request.amount)
    return ItemResponse.from_row(row)
