"""Capability checks shared by every owner-gated operation."""

from __future__ import annotations

from typing import TYPE_CHECKING

from marketplace_escrow.domain.exceptions import UnauthorizedError

if TYPE_CHECKING:
    from collections.abc import Iterable


def require_caller(caller: str, allowed: Iterable[str], action: str) -> None:
    """Raise UnauthorizedError unless ``caller`` is one of ``allowed``.

    Addresses are compared case-insensitively.
    """
    if caller.lower() not in {a.lower() for a in allowed}:
        raise UnauthorizedError(caller, action)


def require_owner(caller: str, owner: str, action: str) -> None:
    require_caller(caller, (owner,), action)
