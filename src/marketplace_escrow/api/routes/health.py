"""Health check endpoint.

Verifies database connectivity and that the marketplace runtime is up.
"""

from __future__ import annotations

from fastapi import APIRouter
from sqlalchemy import text

from marketplace_escrow.infrastructure.database.engine import _get_engine
from marketplace_escrow.infrastructure.runtime import get_registry
from marketplace_escrow.logging_config import get_logger
from marketplace_escrow.schemas.marketplace import HealthResponse

router = APIRouter(tags=["Health"])
logger = get_logger(__name__)


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Returns the health status of the application and its dependencies.",
)
async def health_check() -> HealthResponse:
    """Check the database and the marketplace runtime."""
    db_status = "unknown"
    marketplace_status = "unknown"

    try:
        engine = _get_engine()
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        db_status = "healthy"
    except Exception as exc:
        db_status = f"unhealthy: {exc}"
        logger.error("health.db_check_failed", error=str(exc))

    try:
        registry = get_registry()
        marketplace_status = f"healthy: registry {registry.address}"
    except RuntimeError as exc:
        marketplace_status = f"unhealthy: {exc}"
        logger.error("health.marketplace_check_failed", error=str(exc))

    healthy = db_status == "healthy" and marketplace_status.startswith("healthy")
    return HealthResponse(
        status="ok" if healthy else "degraded",
        version="0.1.0",
        database=db_status,
        marketplace=marketplace_status,
    )
