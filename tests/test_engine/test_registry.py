"""Tests for ItemRegistry: catalog, escrow factory and owner gating."""

from __future__ import annotations

import pytest
from conftest import (
    BUYER,
    OWNER,
    REGISTRY_ADDRESS,
    RING_PRICE,
    RING_TITLE,
    STARTING_BALANCE,
    STRANGER,
)

from marketplace_escrow.domain.addressing import derive_create_address
from marketplace_escrow.domain.enums import ItemState
from marketplace_escrow.domain.exceptions import (
    AlreadyPurchasedError,
    InvalidAddressError,
    InvalidAmountError,
    NotPaidError,
    OutOfRangeError,
    UnauthorizedError,
    WrongAmountError,
)


class TestDeployment:
    def test_registry_address_is_deployer_create_address(self, registry, marketplace) -> None:
        assert registry.address == REGISTRY_ADDRESS
        assert registry.owner == OWNER
        assert registry.current_index == 0
        assert marketplace.nonce_of(OWNER) == 1
        assert marketplace.nonce_of(registry.address) == 1

    def test_second_registry_uses_next_deployer_nonce(self, registry, marketplace) -> None:
        other = marketplace.deploy_registry(OWNER)
        assert other.address == "0xe7f1725E7734CE288F8367e1Bb143E90bb3F0512"
        assert other != registry
        assert len(marketplace.registries()) == 2


class TestCreateItem:
    def test_concrete_ring_item(self, registry, marketplace) -> None:
        predicted = derive_create_address(registry.address, 1)
        assert registry.next_escrow_address() == predicted

        index = registry.create_item(OWNER, RING_PRICE, RING_TITLE)

        assert index == 0
        assert registry.current_index == 1
        item = registry.items(0)
        assert item.title == RING_TITLE
        assert item.price == 50_000_000_000_000
        assert item.state == ItemState.CREATED
        assert item.escrow_address == predicted

        (evt,) = marketplace.event_log.filter(index=0)
        assert evt.escrow_address == predicted
        assert evt.new_state == ItemState.CREATED
        assert evt.title == RING_TITLE
        assert evt.registry_address == registry.address

    def test_escrow_copies_terms(self, registry, ring_index) -> None:
        escrow = registry.escrow(ring_index)
        assert escrow.price == RING_PRICE
        assert escrow.title == RING_TITLE
        assert escrow.owner == OWNER
        assert escrow.registry == registry.address
        assert escrow.index == ring_index
        assert escrow.purchased is False
        assert escrow.custody == 0

    def test_addresses_are_unique_and_follow_nonce(self, registry, marketplace) -> None:
        addresses = []
        for n in range(5):
            index = registry.create_item(OWNER, n, f"Item {n}")
            assert index == n
            addresses.append(registry.items(index).escrow_address)

        assert len(set(addresses)) == 5
        assert addresses == [derive_create_address(registry.address, n) for n in range(1, 6)]
        assert registry.current_index == 5
        assert marketplace.nonce_of(registry.address) == 6

    def test_non_owner_rejected_without_effect(self, registry, marketplace) -> None:
        with pytest.raises(UnauthorizedError):
            registry.create_item(STRANGER, RING_PRICE, RING_TITLE)
        assert registry.current_index == 0
        assert len(marketplace.event_log) == 0
        assert marketplace.nonce_of(registry.address) == 1

    def test_owner_check_is_case_insensitive(self, registry) -> None:
        assert registry.create_item(OWNER.lower(), RING_PRICE, RING_TITLE) == 0

    def test_zero_price_accepted(self, registry) -> None:
        index = registry.create_item(OWNER, 0, "Free sample")
        assert registry.items(index).price == 0

    def test_empty_title_accepted(self, registry) -> None:
        index = registry.create_item(OWNER, RING_PRICE, "")
        assert registry.items(index).title == ""

    @pytest.mark.parametrize("price", [-1, 1.5, "100", True, None])
    def test_invalid_price_rejected(self, registry, price: object) -> None:
        with pytest.raises(InvalidAmountError):
            registry.create_item(OWNER, price, RING_TITLE)  # type: ignore[arg-type]
        assert registry.current_index == 0

    def test_invalid_caller_rejected(self, registry) -> None:
        with pytest.raises(InvalidAddressError):
            registry.create_item("owner", RING_PRICE, RING_TITLE)


class TestQueries:
    def test_items_out_of_range(self, registry, ring_index) -> None:
        with pytest.raises(OutOfRangeError) as exc_info:
            registry.items(1)
        assert exc_info.value.current_index == 1
        with pytest.raises(OutOfRangeError):
            registry.items(-1)

    def test_items_returns_a_copy(self, registry, ring_index) -> None:
        copy = registry.items(ring_index)
        copy.state = ItemState.DELIVERED
        copy.title = "Tampered"
        assert registry.items(ring_index).state == ItemState.CREATED
        assert registry.items(ring_index).title == RING_TITLE

    def test_list_items(self, registry, ring_index) -> None:
        registry.create_item(OWNER, 1, "Second")
        assert [i.title for i in registry.list_items()] == [RING_TITLE, "Second"]

    def test_escrow_out_of_range(self, registry) -> None:
        with pytest.raises(OutOfRangeError):
            registry.escrow(0)


class TestTriggerPayment:
    def test_forwards_to_escrow(self, registry, marketplace, ring_index) -> None:
        registry.trigger_payment(BUYER, ring_index, RING_PRICE)

        assert registry.items(ring_index).state == ItemState.PAID
        assert registry.escrow(ring_index).custody == RING_PRICE
        assert marketplace.balance_of(BUYER) == STARTING_BALANCE - RING_PRICE

    def test_same_validation_as_direct_payment(self, registry, ring_index) -> None:
        with pytest.raises(WrongAmountError):
            registry.trigger_payment(BUYER, ring_index, RING_PRICE + 1)
        registry.trigger_payment(BUYER, ring_index, RING_PRICE)
        with pytest.raises(AlreadyPurchasedError):
            registry.trigger_payment(STRANGER, ring_index, RING_PRICE)

    def test_out_of_range(self, registry) -> None:
        with pytest.raises(OutOfRangeError):
            registry.trigger_payment(BUYER, 0, RING_PRICE)


class TestTriggerDelivery:
    def test_owner_delivers_paid_item(self, registry, marketplace, ring_index) -> None:
        marketplace.send(BUYER, registry.items(ring_index).escrow_address, RING_PRICE)

        amount = registry.trigger_delivery(OWNER, ring_index)

        assert amount == RING_PRICE
        assert registry.items(ring_index).state == ItemState.DELIVERED
        assert registry.escrow(ring_index).custody == 0
        assert marketplace.balance_of(OWNER) == STARTING_BALANCE + RING_PRICE

    def test_non_owner_rejected(self, registry, marketplace, ring_index) -> None:
        marketplace.send(BUYER, registry.items(ring_index).escrow_address, RING_PRICE)
        with pytest.raises(UnauthorizedError):
            registry.trigger_delivery(BUYER, ring_index)
        assert registry.items(ring_index).state == ItemState.PAID

    def test_unpaid_item(self, registry, ring_index) -> None:
        with pytest.raises(NotPaidError):
            registry.trigger_delivery(OWNER, ring_index)

    def test_unknown_index(self, registry) -> None:
        with pytest.raises(OutOfRangeError):
            registry.trigger_delivery(OWNER, 0)

    def test_owner_check_precedes_range_check(self, registry) -> None:
        with pytest.raises(UnauthorizedError):
            registry.trigger_delivery(STRANGER, 7)

    def test_cannot_deliver_twice(self, registry, marketplace, ring_index) -> None:
        marketplace.send(BUYER, registry.items(ring_index).escrow_address, RING_PRICE)
        registry.trigger_delivery(OWNER, ring_index)
        with pytest.raises(NotPaidError):
            registry.trigger_delivery(OWNER, ring_index)
        assert marketplace.balance_of(OWNER) == STARTING_BALANCE + RING_PRICE


class TestOwnership:
    def test_transfer(self, registry) -> None:
        registry.transfer_ownership(OWNER, STRANGER)
        assert registry.owner == STRANGER
        assert registry.create_item(STRANGER, RING_PRICE, RING_TITLE) == 0
        with pytest.raises(UnauthorizedError):
            registry.create_item(OWNER, RING_PRICE, RING_TITLE)

    def test_non_owner_cannot_transfer(self, registry) -> None:
        with pytest.raises(UnauthorizedError):
            registry.transfer_ownership(STRANGER, STRANGER)
        assert registry.owner == OWNER

    def test_invalid_new_owner(self, registry) -> None:
        with pytest.raises(InvalidAddressError):
            registry.transfer_ownership(OWNER, "0x1234")

    def test_existing_escrows_keep_their_owner(self, registry, marketplace, ring_index) -> None:
        marketplace.send(BUYER, registry.items(ring_index).escrow_address, RING_PRICE)
        registry.transfer_ownership(OWNER, STRANGER)

        assert registry.escrow(ring_index).owner == OWNER
        registry.trigger_delivery(STRANGER, ring_index)

        assert marketplace.balance_of(OWNER) == STARTING_BALANCE + RING_PRICE
        assert marketplace.balance_of(STRANGER) == STARTING_BALANCE
