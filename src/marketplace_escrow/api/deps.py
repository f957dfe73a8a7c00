"""FastAPI dependency injection providers.

These are used with Depends() in route handlers to inject database sessions,
the marketplace runtime, the service layer, and configuration.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace_escrow.config import Settings, get_settings
from marketplace_escrow.engine.marketplace import Marketplace
from marketplace_escrow.infrastructure.database.engine import get_async_session
from marketplace_escrow.infrastructure.runtime import get_marketplace, get_registry
from marketplace_escrow.services.marketplace_service import MarketplaceService


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield an async database session for a request."""
    async for session in get_async_session():
        yield session


def get_marketplace_runtime() -> Marketplace:
    """Provide the process-wide Marketplace."""
    return get_marketplace()


async def get_marketplace_service(
    session: AsyncSession = Depends(get_db_session),
    marketplace: Marketplace = Depends(get_marketplace_runtime),
) -> MarketplaceService:
    """Provide a MarketplaceService bound to the current session and runtime."""
    registry = marketplace.registry_at(get_registry().address)
    return MarketplaceService(marketplace, registry, session)


def get_app_settings() -> Settings:
    """Provide the application settings."""
    return get_settings()
