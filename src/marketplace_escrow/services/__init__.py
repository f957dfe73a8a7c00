"""Application services — coordinate the engine with persistence."""

from marketplace_escrow.services.marketplace_service import MarketplaceService

__all__ = ["MarketplaceService"]
