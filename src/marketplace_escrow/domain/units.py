"""Conversion between human-readable amounts and smallest-unit integers.

All balances and prices in the core are plain ``int`` amounts of the
smallest currency unit. Decimal is used at the edges so "0.00005" never
passes through a float.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, localcontext

from marketplace_escrow.domain.exceptions import InvalidAmountError

DEFAULT_DECIMALS = 18
_PRECISION = 100


def parse_units(value: str | int | Decimal, decimals: int = DEFAULT_DECIMALS) -> int:
    """Convert a decimal amount into smallest units.

    ``parse_units("0.00005")`` -> ``50_000_000_000_000``.

    Raises:
        InvalidAmountError: If the value is negative, not a number, or has
            more fractional digits than ``decimals`` allows.
    """
    if isinstance(value, bool) or isinstance(value, float):
        raise InvalidAmountError(value)
    try:
        amount = Decimal(value)
    except (InvalidOperation, TypeError, ValueError) as err:
        raise InvalidAmountError(value) from err
    if not amount.is_finite() or amount < 0:
        raise InvalidAmountError(value)

    with localcontext() as ctx:
        ctx.prec = _PRECISION
        scaled = amount.scaleb(decimals)
    if scaled != scaled.to_integral_value():
        raise InvalidAmountError(value)
    return int(scaled)


def format_units(amount: int, decimals: int = DEFAULT_DECIMALS) -> str:
    """Render a smallest-unit amount as a plain decimal string."""
    if amount < 0:
        raise InvalidAmountError(amount)
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        text = format(Decimal(amount).scaleb(-decimals), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def require_amount(value: object) -> int:
    """Return ``value`` if it is a non-negative int amount, else raise."""
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise InvalidAmountError(value)
    return value
