"""Account balance routes.

Routes:
    GET    /api/v1/accounts/{address}  — Ledger balance of any address
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from marketplace_escrow.api.deps import get_app_settings, get_marketplace_service
from marketplace_escrow.config import Settings
from marketplace_escrow.domain.units import format_units
from marketplace_escrow.schemas.marketplace import AccountResponse
from marketplace_escrow.services.marketplace_service import MarketplaceService

router = APIRouter(prefix="/api/v1/accounts", tags=["Accounts"])


@router.get("/{address}", response_model=AccountResponse, summary="Get a balance")
async def get_account(
    address: str,
    svc: MarketplaceService = Depends(get_marketplace_service),
    settings: Settings = Depends(get_app_settings),
) -> AccountResponse:
    address, balance = svc.get_balance(address)
    return AccountResponse(
        address=address,
        balance=balance,
        balance_formatted=format_units(balance, settings.currency_decimals),
        symbol=settings.currency_symbol,
    )
