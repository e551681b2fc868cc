# Overview: Minor-unit money helpers shared by pricing, checkout and serializers.

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Any

# Maximum amount: 999,999,999.99 (99,999,999,999 minor units)
MAX_AMOUNT_CENTS = 99_999_999_999

_CENT = Decimal("1")


def _round_cents(value: Decimal) -> int:
    return int(value.quantize(_CENT, rounding=ROUND_HALF_UP))


def to_cents(value: Any) -> int | None:
    """
    Convert a user-supplied amount ("12.50", 12.5, 12) to minor units.

    Returns None for None / "". Raises ValueError for anything non-numeric.
    """
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValueError("amount must be a number")
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValueError("amount must be a number")
    if not amount.is_finite():
        raise ValueError("amount must be a number")
    return _round_cents(amount * 100)


def cents_to_float(cents: int | None) -> float | None:
    if cents is None:
        return None
    return float(Decimal(cents) / 100)


def bps_to_percent(bps: int | None) -> float | None:
    if bps is None:
        return None
    return float(Decimal(bps) / 100)


def add_vat(cents: int, vat_rate_bps: int) -> int:
    """Price excl. VAT -> incl. VAT, rounded to the minor unit."""
    return _round_cents(Decimal(cents) * (10000 + vat_rate_bps) / 10000)


def remove_vat(cents: int, vat_rate_bps: int) -> int:
    """Price incl. VAT -> excl. VAT, rounded to the minor unit."""
    return _round_cents(Decimal(cents) * 10000 / (10000 + vat_rate_bps))


def ron_to_currency(ron_cents: int, exchange_rate: Decimal) -> int:
    """exchange_rate is RON per unit of the target currency."""
    rate = Decimal(exchange_rate)
    if rate == 1:
        return ron_cents
    return _round_cents(Decimal(ron_cents) / rate)


def currency_to_ron(cents: int, exchange_rate: Decimal) -> int:
    return _round_cents(Decimal(cents) * Decimal(exchange_rate))
