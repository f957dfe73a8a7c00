"""Tests for the domain-error to HTTP status mapping."""

from __future__ import annotations

from conftest import BUYER

from marketplace_escrow.api.middleware import status_for
from marketplace_escrow.domain.exceptions import (
    AlreadyPurchasedError,
    MarketplaceError,
    NotPaidError,
    OutOfRangeError,
    UnauthorizedError,
    WrongAmountError,
)


class _CustomOutOfRange(OutOfRangeError):
    pass


class TestStatusFor:
    def test_listed_errors(self) -> None:
        assert status_for(UnauthorizedError(BUYER, "create items")) == 403
        assert status_for(OutOfRangeError(4, 1)) == 404
        assert status_for(AlreadyPurchasedError(BUYER)) == 409
        assert status_for(NotPaidError(BUYER, "CREATED")) == 409
        assert status_for(WrongAmountError(10, 9)) == 400

    def test_subclass_inherits_parent_status(self) -> None:
        assert status_for(_CustomOutOfRange(1, 0)) == 404

    def test_unlisted_error_defaults_to_bad_request(self) -> None:
        assert status_for(MarketplaceError("boom")) == 400
