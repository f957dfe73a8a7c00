"""FastAPI application entry point for the marketplace.

Lifecycle:
    1. Startup: Initialize logging, database (create tables for SQLite and
       development), then the marketplace runtime with its registry, then
       rebuild the SQL projection from the fresh runtime.
    2. Running: Serve the REST API at /api/v1/*.
    3. Shutdown: Drop the runtime and dispose of the database engine.

Run with:
    uvicorn marketplace_escrow.main:app --reload --host 0.0.0.0 --port 8000
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI

from marketplace_escrow.config import get_settings
from marketplace_escrow.logging_config import get_logger, setup_logging

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application startup and shutdown lifecycle."""
    settings = get_settings()

    # 1. Setup structured logging
    setup_logging(
        log_level=settings.app_log_level,
        json_logs=not settings.is_development,
    )
    logger = get_logger(__name__)
    logger.info(
        "app.starting",
        env=settings.app_env,
        debug=settings.app_debug,
    )

    # 2. Initialize database
    from marketplace_escrow.infrastructure.database.engine import (
        close_db,
        get_async_session,
        init_db,
    )

    await init_db()

    # 3. Initialize the marketplace runtime
    from marketplace_escrow.infrastructure.runtime import (
        close_marketplace,
        get_registry,
        init_marketplace,
    )

    marketplace = init_marketplace(settings)

    # 4. Rebuild the projection for this runtime's event sequence
    from marketplace_escrow.services.marketplace_service import MarketplaceService

    async for session in get_async_session():
        await MarketplaceService(marketplace, get_registry(), session).reset_projection()

    logger.info("app.started", host=settings.app_host, port=settings.app_port)

    yield

    # Shutdown
    logger.info("app.shutting_down")
    close_marketplace()
    await close_db()
    logger.info("app.stopped")


def create_app() -> FastAPI:
    """Application factory — creates and configures the FastAPI app."""
    settings = get_settings()

    app = FastAPI(
        title="Marketplace Escrow",
        description=(
            "Item registry with per-item escrows: buyers pay the exact price "
            "into custody, the owner releases it on delivery."
        ),
        version="0.1.0",
        lifespan=lifespan,
        debug=settings.app_debug,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
    )

    # --- Middleware ---
    from marketplace_escrow.api.middleware import setup_middleware

    setup_middleware(app)

    # --- REST API Routes ---
    from marketplace_escrow.api.routes.accounts import router as accounts_router
    from marketplace_escrow.api.routes.escrow import router as escrow_router
    from marketplace_escrow.api.routes.events import router as events_router
    from marketplace_escrow.api.routes.health import router as health_router
    from marketplace_escrow.api.routes.registry import router as registry_router

    app.include_router(health_router)
    app.include_router(registry_router)
    app.include_router(escrow_router)
    app.include_router(events_router)
    app.include_router(accounts_router)

    return app


# The app instance used by Uvicorn
app = create_app()
