"""StateChanged event query routes.

Routes:
    GET    /api/v1/events  — Committed events, filtered by escrow, index, state
                             and/or a sequence high-water mark
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from marketplace_escrow.api.deps import get_marketplace_service
from marketplace_escrow.domain.enums import ItemState
from marketplace_escrow.schemas.marketplace import StateChangedResponse
from marketplace_escrow.services.marketplace_service import MarketplaceService

router = APIRouter(prefix="/api/v1/events", tags=["Events"])


@router.get("", response_model=list[StateChangedResponse], summary="Query events")
async def list_events(
    escrow_address: str | None = Query(default=None),
    index: int | None = Query(default=None, ge=0),
    new_state: int | None = Query(default=None, ge=0, le=2),
    since: int | None = Query(default=None, ge=-1, description="Only events after this sequence"),
    svc: MarketplaceService = Depends(get_marketplace_service),
) -> list[StateChangedResponse]:
    rows = await svc.get_events(
        escrow_address=escrow_address,
        index=index,
        new_state=ItemState(new_state) if new_state is not None else None,
        since=since,
    )
    return [StateChangedResponse.from_row(row) for row in rows]
