"""Tests for the process-wide marketplace runtime."""

from __future__ import annotations

import pytest

from marketplace_escrow.config import Settings
from marketplace_escrow.infrastructure import runtime

OWNER = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
BUYER = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"


@pytest.fixture(autouse=True)
def _reset_runtime():
    yield
    runtime.close_marketplace()


class TestRuntime:
    def test_requires_init(self) -> None:
        with pytest.raises(RuntimeError, match="not initialized"):
            runtime.get_marketplace()
        with pytest.raises(RuntimeError, match="not initialized"):
            runtime.get_registry()

    def test_init_deploys_registry_and_funds_accounts(self) -> None:
        settings = Settings(
            registry_owner=OWNER,
            genesis_accounts=f"{OWNER}, {BUYER}",
            genesis_balance=1_000,
        )
        market = runtime.init_marketplace(settings)

        assert runtime.get_marketplace() is market
        registry = runtime.get_registry()
        assert registry.address == "0x5FbDB2315678afecb367f032d93F642f64180aa3"
        assert registry.owner == OWNER
        assert market.balance_of(BUYER) == 1_000

    def test_close_drops_runtime(self) -> None:
        runtime.init_marketplace(Settings(genesis_accounts=""))
        runtime.close_marketplace()
        with pytest.raises(RuntimeError):
            runtime.get_registry()
