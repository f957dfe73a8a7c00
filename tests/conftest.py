"""Shared test fixtures for the marketplace test suite.

Provides:
    - Well-known development accounts
    - A funded in-process Marketplace with a deployed registry
    - An in-memory SQLite session for repository and service tests
"""

from __future__ import annotations

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from marketplace_escrow.domain.units import parse_units
from marketplace_escrow.engine.marketplace import Marketplace
from marketplace_escrow.infrastructure.database.orm_models import Base

OWNER = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
BUYER = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"
STRANGER = "0x3C44CdDdB6a900fa2b585dd299e03d12FA4293BC"

# Registry deployed by OWNER at nonce 0.
REGISTRY_ADDRESS = "0x5FbDB2315678afecb367f032d93F642f64180aa3"

STARTING_BALANCE = parse_units("100")
RING_PRICE = parse_units("0.00005")
RING_TITLE = "Enchantment of the Ring"


# ---------------------------------------------------------------------------
# Engine Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def marketplace() -> Marketplace:
    """Return a marketplace with OWNER, BUYER and STRANGER funded."""
    market = Marketplace()
    for account in (OWNER, BUYER, STRANGER):
        market.fund(account, STARTING_BALANCE)
    return market


@pytest.fixture
def registry(marketplace: Marketplace):
    """Return a registry deployed by OWNER."""
    return marketplace.deploy_registry(OWNER)


@pytest.fixture
def ring_index(registry) -> int:
    """Create the ring item and return its index."""
    return registry.create_item(OWNER, RING_PRICE, RING_TITLE)


@pytest.fixture
def ring_escrow(registry, ring_index: int):
    return registry.escrow(ring_index)


# ---------------------------------------------------------------------------
# Database Fixtures
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def db_session():
    """Yield a session bound to a fresh in-memory SQLite database."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session
    await engine.dispose()
