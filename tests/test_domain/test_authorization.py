"""Tests for the shared owner guard."""

from __future__ import annotations

import pytest

from marketplace_escrow.domain.authorization import require_caller, require_owner
from marketplace_escrow.domain.exceptions import UnauthorizedError

OWNER = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
OTHER = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"


class TestRequireOwner:
    def test_owner_passes(self) -> None:
        require_owner(OWNER, OWNER, "create items")

    def test_case_insensitive(self) -> None:
        require_owner(OWNER.lower(), OWNER, "create items")

    def test_other_rejected(self) -> None:
        with pytest.raises(UnauthorizedError) as exc_info:
            require_owner(OTHER, OWNER, "create items")
        assert exc_info.value.code == "UNAUTHORIZED"
        assert exc_info.value.caller == OTHER
        assert "create items" in exc_info.value.message


class TestRequireCaller:
    def test_any_allowed_caller_passes(self) -> None:
        require_caller(OTHER, (OWNER, OTHER), "trigger delivery")

    def test_empty_allow_list_rejects(self) -> None:
        with pytest.raises(UnauthorizedError):
            require_caller(OWNER, (), "trigger delivery")
