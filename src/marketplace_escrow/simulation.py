"""Marketplace Escrow — End-to-End Simulation.

Runs three scenarios against an in-process marketplace whose committed
events are projected into an in-memory SQLite database:

    Scenario 1: Happy Path
        - Owner lists "Enchantment of the Ring" for 0.00005 ETH
        - Buyer pays the precomputed escrow address -> PAID
        - Owner triggers delivery -> DELIVERED + custody forwarded to owner

    Scenario 2: Bad Payments
        - Buyer sends the wrong amount -> WRONG_AMOUNT, nothing changes
        - Buyer pays correctly -> PAID
        - A second buyer pays again -> ALREADY_PURCHASED
        - A stranger tries to trigger delivery -> UNAUTHORIZED

    Scenario 3: Hostile Owner
        - Registry ownership moves to an account with receiver code
        - On payout the receiver re-enters the escrow -> REENTRANT_CALL, item stays PAID
        - The receiver then rejects funds outright -> TRANSFER_FAILED, item stays PAID
        - Receiver code removed, delivery retried -> DELIVERED

Usage:
    marketplace-sim
    marketplace-sim --scenario 3
"""

from __future__ import annotations

import argparse
import asyncio
from dataclasses import dataclass
from typing import TYPE_CHECKING

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from marketplace_escrow.domain.enums import ItemState
from marketplace_escrow.domain.exceptions import MarketplaceError
from marketplace_escrow.domain.units import format_units, parse_units
from marketplace_escrow.engine.marketplace import Marketplace
from marketplace_escrow.infrastructure.database.orm_models import Base
from marketplace_escrow.logging_config import get_logger, setup_logging
from marketplace_escrow.services.marketplace_service import MarketplaceService

if TYPE_CHECKING:
    from marketplace_escrow.engine.registry import ItemRegistry

logger = get_logger("simulation")

OWNER = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
BUYER = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"
SECOND_BUYER = "0x3C44CdDdB6a900fa2b585dd299e03d12FA4293BC"
HOSTILE_OWNER = "0x90F79bf6EB2c4f870365E785982E1f101E93b906"

GENESIS_BALANCE = parse_units("100")

# Module-level state
_engine = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


# ---------------------------------------------------------------------------
# Database lifecycle helpers
# ---------------------------------------------------------------------------
async def init_database() -> None:
    """Create an in-memory SQLite projection store."""
    global _engine, _session_factory
    _engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    _session_factory = async_sessionmaker(
        bind=_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    async with _engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("database.sqlite_initialized")


def get_session() -> AsyncSession:
    """Get a fresh database session."""
    if _session_factory is None:
        raise RuntimeError("Database not initialized. Call init_database() first.")
    return _session_factory()


async def shutdown_database() -> None:
    """Close database connections."""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _session_factory = None


def new_marketplace() -> tuple[Marketplace, ItemRegistry]:
    """Fresh runtime with funded accounts and a registry deployed by OWNER."""
    market = Marketplace()
    for account in (OWNER, BUYER, SECOND_BUYER, HOSTILE_OWNER):
        market.fund(account, GENESIS_BALANCE)
    return market, market.deploy_registry(OWNER)


# ---------------------------------------------------------------------------
# Bot Agents
# ---------------------------------------------------------------------------
@dataclass
class OwnerBot:
    """Simulated registry owner that lists items and releases escrows."""

    svc: MarketplaceService
    wallet: str = OWNER

    async def list_item(self, title: str, price: int) -> int:
        predicted = self.svc.registry.next_escrow_address()
        row = await self.svc.create_item(self.wallet, price, title)
        logger.info(
            "🔵 OWNER: Item listed",
            index=row.item_index,
            escrow=row.escrow_address,
            predicted_match=predicted == row.escrow_address,
            price=format_units(price),
        )
        return row.item_index

    async def deliver(self, index: int) -> None:
        _, amount = await self.svc.trigger_delivery(self.wallet, index)
        logger.info("🔵 OWNER: Delivery released", index=index, amount=format_units(amount))


@dataclass
class BuyerBot:
    """Simulated buyer that pays escrows directly by address."""

    svc: MarketplaceService
    wallet: str = BUYER

    async def pay(self, escrow_address: str, amount: int) -> None:
        escrow = self.svc.get_escrow(escrow_address)
        logger.info(
            "🟢 BUYER: Paying",
            escrow=escrow_address,
            title=escrow.title,
            price=format_units(escrow.price),
            amount=format_units(amount),
        )
        await self.svc.pay(self.wallet, escrow_address, amount)
        logger.info("🟢 BUYER: Payment accepted", escrow=escrow_address)


# ---------------------------------------------------------------------------
# Print helpers
# ---------------------------------------------------------------------------
def banner(text: str) -> None:
    """Print a prominent banner."""
    width = 70
    print("\n" + "=" * width)
    print(f"  {text}")
    print("=" * width + "\n")


def section(text: str) -> None:
    """Print a section header."""
    print(f"\n--- {text} ---\n")


async def attempt(label: str, action) -> bool:  # noqa: ANN001
    """Run an awaitable factory, printing a rejection instead of raising."""
    try:
        await action()
    except MarketplaceError as exc:
        print(f"  ❌ {label}: rejected with {exc.code} ({exc.message})")
        return False
    print(f"  ✅ {label}: committed")
    return True


def print_balances(market: Marketplace, **accounts: str) -> None:
    for label, address in accounts.items():
        print(f"    {label:<12} {format_units(market.balance_of(address)):>22} ETH")


def print_item(registry: ItemRegistry, index: int) -> None:
    item = registry.items(index)
    escrow = registry.escrow(index)
    print(
        f"  Item {index}: state={item.state.name} purchased={escrow.purchased} "
        f"custody={format_units(escrow.custody)} ETH"
    )


async def print_audit_trail(svc: MarketplaceService, escrow_address: str) -> None:
    """Print the projected StateChanged trail for one escrow."""
    events = await svc.get_events(escrow_address=escrow_address)
    print("\n  📜 Audit Trail:")
    for evt in events:
        print(
            f"    #{evt.sequence} [{ItemState(evt.new_state).name}] "
            f"item {evt.item_index} '{evt.title}' @ {evt.escrow_address}"
        )
    print()


# ===========================================================================
# Scenario 1: Happy Path
# ===========================================================================
async def scenario_1_happy_path() -> None:
    """List, pay, deliver."""
    banner("SCENARIO 1: Happy Path — List, Pay, Deliver")
    market, registry = new_marketplace()

    async with get_session() as session:
        svc = MarketplaceService(market, registry, session)
        owner = OwnerBot(svc)
        buyer = BuyerBot(svc)
        price = parse_units("0.00005")

        section("Step 1: Owner lists an item")
        index = await owner.list_item("Enchantment of the Ring", price)
        escrow_address = registry.items(index).escrow_address
        print_item(registry, index)

        section("Step 2: Buyer pays the escrow")
        await attempt("payment", lambda: buyer.pay(escrow_address, price))
        print_item(registry, index)
        print_balances(market, buyer=BUYER, escrow=escrow_address)

        section("Step 3: Owner triggers delivery")
        await attempt("delivery", lambda: owner.deliver(index))
        print_item(registry, index)
        print_balances(market, owner=OWNER, escrow=escrow_address)

        await print_audit_trail(svc, escrow_address)
        await session.commit()


# ===========================================================================
# Scenario 2: Bad Payments
# ===========================================================================
async def scenario_2_bad_payments() -> None:
    """Wrong amounts, double payments and unauthorized delivery are all rejected."""
    banner("SCENARIO 2: Bad Payments — Wrong Amount, Double Pay, Stranger")
    market, registry = new_marketplace()

    async with get_session() as session:
        svc = MarketplaceService(market, registry, session)
        owner = OwnerBot(svc)
        buyer = BuyerBot(svc)
        second_buyer = BuyerBot(svc, wallet=SECOND_BUYER)
        stranger = OwnerBot(svc, wallet=SECOND_BUYER)
        price = parse_units("1.5")

        section("Step 1: Owner lists an item")
        index = await owner.list_item("Cloak of Elvenkind", price)
        escrow_address = registry.items(index).escrow_address

        section("Step 2: Buyer underpays")
        await attempt("underpayment", lambda: buyer.pay(escrow_address, parse_units("1")))
        print_item(registry, index)

        section("Step 3: Owner tries to deliver an unpaid item")
        await attempt("early delivery", lambda: owner.deliver(index))

        section("Step 4: Buyer pays the exact price")
        await attempt("payment", lambda: buyer.pay(escrow_address, price))
        print_item(registry, index)

        section("Step 5: Second buyer pays again")
        await attempt("double payment", lambda: second_buyer.pay(escrow_address, price))
        print_balances(market, buyer=BUYER, second_buyer=SECOND_BUYER, escrow=escrow_address)

        section("Step 6: Stranger triggers delivery")
        await attempt("stranger delivery", lambda: stranger.deliver(index))
        print_item(registry, index)

        await print_audit_trail(svc, escrow_address)
        await session.commit()


# ===========================================================================
# Scenario 3: Hostile Owner
# ===========================================================================
async def scenario_3_hostile_owner() -> None:
    """Receiver code on the owner account cannot corrupt custody."""
    banner("SCENARIO 3: Hostile Owner — Reentrant and Failing Receiver")
    market, registry = new_marketplace()

    async with get_session() as session:
        svc = MarketplaceService(market, registry, session)
        await svc.transfer_ownership(OWNER, HOSTILE_OWNER)
        owner = OwnerBot(svc, wallet=HOSTILE_OWNER)
        buyer = BuyerBot(svc)
        price = parse_units("2")

        section("Step 1: New owner lists an item and buyer pays")
        index = await owner.list_item("Bag of Holding", price)
        escrow_address = registry.items(index).escrow_address
        await attempt("payment", lambda: buyer.pay(escrow_address, price))

        section("Step 2: Owner's receiver re-enters the escrow on payout")

        def reenter(marketplace: Marketplace, sender: str, amount: int) -> None:
            try:
                marketplace.escrow_at(sender).trigger_delivery(HOSTILE_OWNER)
            except MarketplaceError as exc:
                print(f"    (receiver swallowed {exc.code})")

        market.register_receiver(HOSTILE_OWNER, reenter)
        await attempt("reentrant delivery", lambda: owner.deliver(index))
        print_item(registry, index)

        section("Step 3: Owner's receiver rejects the funds")

        def reject(marketplace: Marketplace, sender: str, amount: int) -> None:
            raise RuntimeError("receiver refuses payment")

        market.register_receiver(HOSTILE_OWNER, reject)
        await attempt("rejected delivery", lambda: owner.deliver(index))
        print_item(registry, index)

        section("Step 4: Receiver removed, delivery retried")
        market.unregister_receiver(HOSTILE_OWNER)
        await attempt("delivery", lambda: owner.deliver(index))
        print_item(registry, index)
        print_balances(market, owner=HOSTILE_OWNER, escrow=escrow_address)

        await print_audit_trail(svc, escrow_address)
        await session.commit()


# ===========================================================================
# Main
# ===========================================================================
SCENARIOS = {
    1: scenario_1_happy_path,
    2: scenario_2_bad_payments,
    3: scenario_3_hostile_owner,
}


async def run_scenario(fn) -> None:  # noqa: ANN001
    """Run one scenario against its own marketplace and projection store."""
    await init_database()
    try:
        await fn()
    finally:
        await shutdown_database()


async def run(scenario: int = 0) -> None:
    """Run one scenario, or all of them when ``scenario`` is 0."""
    if scenario != 0 and scenario not in SCENARIOS:
        print(f"Unknown scenario {scenario}. Available: 1, 2, 3")
        return

    print("\n" + "🚀" * 35)
    print("  MARKETPLACE ESCROW — SIMULATION")
    print("  Database: SQLite (in-memory)")
    print("🚀" * 35 + "\n")

    selected = list(SCENARIOS.values()) if scenario == 0 else [SCENARIOS[scenario]]
    for fn in selected:
        await run_scenario(fn)

    print("\n" + "=" * 70)
    print("  ✅ SIMULATION COMPLETE")
    print("=" * 70 + "\n")


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Marketplace Escrow Simulation")
    parser.add_argument(
        "--scenario",
        type=int,
        default=0,
        help="Run a specific scenario (1, 2, or 3). Default: run all.",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Log level for the structured event output.",
    )
    args = parser.parse_args(argv)

    setup_logging(log_level=args.log_level, json_logs=False)
    asyncio.run(run(args.scenario))


if __name__ == "__main__":
    main()
