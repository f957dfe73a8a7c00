"""Tests for EscrowItem: exact-price payment, custody and delivery."""

from __future__ import annotations

import pytest
from conftest import BUYER, OWNER, RING_PRICE, RING_TITLE, STARTING_BALANCE, STRANGER

from marketplace_escrow.domain.enums import ItemState
from marketplace_escrow.domain.exceptions import (
    AlreadyPurchasedError,
    InsufficientBalanceError,
    NotPaidError,
    UnauthorizedError,
    WrongAmountError,
)

UNFUNDED = "0x90F79bf6EB2c4f870365E785982E1f101E93b906"


class TestConcreteScenario:
    """List the ring, pay for it once, and reject a second payment."""

    def test_ring_purchase(self, registry, marketplace) -> None:
        index = registry.create_item(OWNER, RING_PRICE, RING_TITLE)
        assert index == 0
        assert registry.current_index == 1

        escrow_address = registry.items(0).escrow_address
        (created,) = marketplace.event_log.filter(new_state=ItemState.CREATED)
        assert created.escrow_address == escrow_address

        escrow = marketplace.escrow_at(escrow_address)
        assert escrow.purchased is False

        buyer_before = marketplace.balance_of(BUYER)
        marketplace.send(BUYER, escrow_address, RING_PRICE)

        assert escrow.purchased is True
        assert registry.items(0).state == 1
        assert marketplace.balance_of(BUYER) == buyer_before - RING_PRICE
        assert marketplace.balance_of(escrow_address) == RING_PRICE

        with pytest.raises(AlreadyPurchasedError):
            marketplace.send(BUYER, escrow_address, RING_PRICE)
        with pytest.raises(AlreadyPurchasedError):
            marketplace.send(STRANGER, escrow_address, RING_PRICE)

        assert marketplace.balance_of(BUYER) == buyer_before - RING_PRICE
        assert marketplace.balance_of(STRANGER) == STARTING_BALANCE
        assert marketplace.balance_of(escrow_address) == RING_PRICE


class TestAcceptPayment:
    def test_emits_paid_event(self, ring_escrow, marketplace) -> None:
        ring_escrow.accept_payment(BUYER, RING_PRICE)

        evt = marketplace.event_log[-1]
        assert evt.new_state == ItemState.PAID
        assert evt.escrow_address == ring_escrow.address
        assert evt.index == ring_escrow.index
        assert evt.title == RING_TITLE

    def test_updates_registry_cache(self, registry, ring_escrow, ring_index) -> None:
        ring_escrow.accept_payment(BUYER, RING_PRICE)
        assert ring_escrow.state == ItemState.PAID
        assert registry.items(ring_index).state == ring_escrow.state

    @pytest.mark.parametrize("delta", [-1, 1, RING_PRICE])
    def test_wrong_amount_rejected(self, ring_escrow, marketplace, delta: int) -> None:
        with pytest.raises(WrongAmountError) as exc_info:
            ring_escrow.accept_payment(BUYER, RING_PRICE + delta)

        assert exc_info.value.expected == RING_PRICE
        assert ring_escrow.state == ItemState.CREATED
        assert ring_escrow.custody == 0
        assert marketplace.balance_of(BUYER) == STARTING_BALANCE
        assert len(marketplace.event_log) == 1

    def test_already_purchased_checked_before_amount(self, ring_escrow) -> None:
        ring_escrow.accept_payment(BUYER, RING_PRICE)
        with pytest.raises(AlreadyPurchasedError):
            ring_escrow.accept_payment(STRANGER, RING_PRICE + 1)

    def test_payment_after_delivery_rejected(self, ring_escrow, marketplace) -> None:
        ring_escrow.accept_payment(BUYER, RING_PRICE)
        ring_escrow.trigger_delivery(OWNER)
        with pytest.raises(AlreadyPurchasedError):
            marketplace.send(STRANGER, ring_escrow.address, RING_PRICE)
        assert ring_escrow.custody == 0

    def test_insufficient_balance(self, ring_escrow, marketplace) -> None:
        with pytest.raises(InsufficientBalanceError):
            ring_escrow.accept_payment(UNFUNDED, RING_PRICE)
        assert ring_escrow.state == ItemState.CREATED
        assert marketplace.balance_of(UNFUNDED) == 0

    def test_zero_price_item(self, registry, marketplace) -> None:
        escrow = registry.escrow(registry.create_item(OWNER, 0, "Free sample"))
        marketplace.send(UNFUNDED, escrow.address, 0)

        assert escrow.purchased is True
        assert escrow.trigger_delivery(OWNER) == 0
        assert escrow.state == ItemState.DELIVERED


class TestTriggerDelivery:
    def test_owner_receives_custody(self, ring_escrow, marketplace) -> None:
        ring_escrow.accept_payment(BUYER, RING_PRICE)

        amount = ring_escrow.trigger_delivery(OWNER)

        assert amount == RING_PRICE
        assert ring_escrow.state == ItemState.DELIVERED
        assert ring_escrow.custody == 0
        assert marketplace.balance_of(OWNER) == STARTING_BALANCE + RING_PRICE

        evt = marketplace.event_log[-1]
        assert evt.new_state == ItemState.DELIVERED
        assert evt.escrow_address == ring_escrow.address

    def test_registry_may_act_for_owner(self, registry, ring_escrow) -> None:
        ring_escrow.accept_payment(BUYER, RING_PRICE)
        assert ring_escrow.trigger_delivery(registry.address) == RING_PRICE

    def test_stranger_rejected(self, ring_escrow) -> None:
        ring_escrow.accept_payment(BUYER, RING_PRICE)
        with pytest.raises(UnauthorizedError):
            ring_escrow.trigger_delivery(BUYER)
        assert ring_escrow.state == ItemState.PAID
        assert ring_escrow.custody == RING_PRICE

    def test_unpaid_rejected(self, ring_escrow) -> None:
        with pytest.raises(NotPaidError) as exc_info:
            ring_escrow.trigger_delivery(OWNER)
        assert exc_info.value.state == "CREATED"

    def test_delivered_is_terminal(self, ring_escrow, marketplace) -> None:
        ring_escrow.accept_payment(BUYER, RING_PRICE)
        ring_escrow.trigger_delivery(OWNER)
        with pytest.raises(NotPaidError):
            ring_escrow.trigger_delivery(OWNER)
        assert marketplace.balance_of(OWNER) == STARTING_BALANCE + RING_PRICE

    def test_full_event_trail(self, ring_escrow, marketplace) -> None:
        ring_escrow.accept_payment(BUYER, RING_PRICE)
        ring_escrow.trigger_delivery(OWNER)

        trail = marketplace.event_log.filter(escrow_address=ring_escrow.address)
        assert [e.new_state for e in trail] == [
            ItemState.CREATED,
            ItemState.PAID,
            ItemState.DELIVERED,
        ]
        assert [e.sequence for e in trail] == [0, 1, 2]
