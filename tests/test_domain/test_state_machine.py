"""Tests for the ItemStateMachine domain guard.

These tests verify that:
    1. All valid transitions are allowed.
    2. All invalid transitions are blocked.
    3. The convenience function validate_transition works.
"""

from __future__ import annotations

import warnings

import pytest
from statemachine.exceptions import TransitionNotAllowed

from marketplace_escrow.domain.enums import ItemState
from marketplace_escrow.domain.state_machine import (
    ItemStateMachine,
    validate_transition,
)


class TestHappyPath:
    """Test the full lifecycle: CREATED -> DELIVERED."""

    def test_full_lifecycle(self) -> None:
        sm = ItemStateMachine("CREATED")
        assert sm.status == "CREATED"

        sm.pay()
        assert sm.status == "PAID"

        sm.deliver()
        assert sm.status == "DELIVERED"
        assert sm.item_state is ItemState.DELIVERED

    def test_for_state(self) -> None:
        sm = ItemStateMachine.for_state(ItemState.PAID)
        assert sm.item_state is ItemState.PAID

    def test_status_read_emits_no_deprecation_warning(self) -> None:
        sm = ItemStateMachine.for_state(ItemState.PAID)
        with warnings.catch_warnings():
            warnings.simplefilter("error", DeprecationWarning)
            assert sm.status == "PAID"


class TestIllegalTransitions:
    """Verify that illegal transitions raise TransitionNotAllowed."""

    def test_created_to_delivered(self) -> None:
        sm = ItemStateMachine("CREATED")
        with pytest.raises(TransitionNotAllowed):
            sm.deliver()

    def test_paid_cannot_be_paid_again(self) -> None:
        sm = ItemStateMachine("PAID")
        with pytest.raises(TransitionNotAllowed):
            sm.pay()

    def test_delivered_is_final(self) -> None:
        sm = ItemStateMachine("DELIVERED")
        assert sm.get_allowed_events() == []
        with pytest.raises(TransitionNotAllowed):
            sm.pay()


class TestAllowedEvents:
    """Test the get_allowed_events helper."""

    def test_created_allowed(self) -> None:
        assert ItemStateMachine("CREATED").get_allowed_events() == ["pay"]

    def test_paid_allowed(self) -> None:
        assert ItemStateMachine("PAID").get_allowed_events() == ["deliver"]


class TestValidateTransitionFunction:
    """Test the convenience function."""

    def test_valid_transition(self) -> None:
        assert validate_transition(ItemState.CREATED, "pay") is ItemState.PAID
        assert validate_transition(ItemState.PAID, "deliver") is ItemState.DELIVERED

    def test_illegal_transition(self) -> None:
        with pytest.raises(TransitionNotAllowed):
            validate_transition(ItemState.DELIVERED, "deliver")

    def test_invalid_event_name(self) -> None:
        with pytest.raises(ValueError, match="Unknown event"):
            validate_transition(ItemState.CREATED, "nonexistent_event")

    def test_invalid_status(self) -> None:
        with pytest.raises(ValueError, match="Unknown status"):
            ItemStateMachine("REFUNDED")
