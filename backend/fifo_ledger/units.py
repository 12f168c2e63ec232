"""Fixed-point quantities used throughout the ledger.

Shares and prices carry eight implied decimals, money carries two (cents).
All absolute quantities stay integers; only ratios leave this module as floats.
"""
from __future__ import annotations

from decimal import Decimal
from typing import NewType

Shares = NewType("Shares", int)
Cents = NewType("Cents", int)
PriceValue = NewType("PriceValue", int)

SHARES_SCALE = 100_000_000
AMOUNT_SCALE = 100
PRICE_SCALE = 100_000_000


def round_div(numerator: int, denominator: int) -> int:
    """Integer division rounding half away from zero."""

    if denominator == 0:
        raise ZeroDivisionError("round_div denominator is zero")
    if denominator < 0:
        numerator, denominator = -numerator, -denominator
    quotient, remainder = divmod(abs(numerator), denominator)
    if remainder * 2 >= denominator:
        quotient += 1
    return quotient if numerator >= 0 else -quotient


def proportional(amount: int, part: int, whole: int) -> int:
    """Return ``amount * part / whole`` rounded, or 0 for an empty whole."""

    if whole == 0:
        return 0
    return round_div(amount * part, whole)


def market_value(shares: Shares, price: PriceValue) -> Cents:
    """Value of ``shares`` at ``price`` expressed in cents."""

    return Cents(round_div(shares * price * AMOUNT_SCALE, SHARES_SCALE * PRICE_SCALE))


def shares(value: float | str | Decimal) -> Shares:
    return Shares(int((Decimal(str(value)) * SHARES_SCALE).to_integral_value()))


def cents(value: float | str | Decimal) -> Cents:
    return Cents(int((Decimal(str(value)) * AMOUNT_SCALE).to_integral_value()))


def price(value: float | str | Decimal) -> PriceValue:
    return PriceValue(int((Decimal(str(value)) * PRICE_SCALE).to_integral_value()))


def cents_to_float(amount: int) -> float:
    return amount / AMOUNT_SCALE


def shares_to_float(amount: int) -> float:
    return amount / SHARES_SCALE


__all__ = [
    "Shares",
    "Cents",
    "PriceValue",
    "SHARES_SCALE",
    "AMOUNT_SCALE",
    "PRICE_SCALE",
    "round_div",
    "proportional",
    "market_value",
    "shares",
    "cents",
    "price",
    "cents_to_float",
    "shares_to_float",
]
