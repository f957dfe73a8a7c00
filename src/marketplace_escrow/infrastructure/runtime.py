"""Process-wide Marketplace runtime used by the HTTP app and the simulator.

On start-up a registry is deployed from the configured owner and the genesis
accounts are funded, so a fresh process always exposes the same registry
address (the CREATE address of the owner at nonce 0).

Usage:
    from marketplace_escrow.infrastructure.runtime import init_marketplace, get_registry

    init_marketplace()
    registry = get_registry()
    registry.create_item(owner, price, "Ring")
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from marketplace_escrow.config import Settings, get_settings
from marketplace_escrow.engine.marketplace import Marketplace
from marketplace_escrow.logging_config import get_logger

if TYPE_CHECKING:
    from marketplace_escrow.engine.registry import ItemRegistry

logger = get_logger(__name__)

_marketplace: Marketplace | None = None
_registry: ItemRegistry | None = None


def init_marketplace(settings: Settings | None = None) -> Marketplace:
    """Create the runtime, deploy the registry and fund genesis accounts."""
    global _marketplace, _registry
    settings = settings or get_settings()

    marketplace = Marketplace()
    for account in settings.genesis_account_list:
        marketplace.fund(account, settings.genesis_balance)
    registry = marketplace.deploy_registry(settings.registry_owner)

    _marketplace = marketplace
    _registry = registry
    logger.info(
        "marketplace.initialized",
        registry=registry.address,
        owner=registry.owner,
        genesis_accounts=len(settings.genesis_account_list),
    )
    return marketplace


def get_marketplace() -> Marketplace:
    """Return the Marketplace singleton. Must call init_marketplace() first."""
    if _marketplace is None:
        raise RuntimeError("Marketplace not initialized. Call init_marketplace() first.")
    return _marketplace


def get_registry() -> ItemRegistry:
    """Return the registry deployed at start-up."""
    if _registry is None:
        raise RuntimeError("Marketplace not initialized. Call init_marketplace() first.")
    return _registry


def close_marketplace() -> None:
    """Drop the runtime. Called during app shutdown."""
    global _marketplace, _registry
    if _marketplace is not None:
        logger.info("marketplace.closed", events=len(_marketplace.event_log))
    _marketplace = None
    _registry = None
