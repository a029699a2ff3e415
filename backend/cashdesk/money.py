# Overview: Fixed-precision money helpers; amounts live as integer cents everywhere past the boundary.

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

from .errors import InvalidAmount


# Maximum amount: 9,999,999.99 (999,999,999 cents)
MAX_AMOUNT_CENTS = 999_999_999
MAX_AMOUNT_DIGITS = 7

CENTS = Decimal("0.01")
BPS_DIVISOR = Decimal(10_000)


def to_cents(value: Any, field: str = "amount") -> int:
    """
    Convert a boundary value (decimal string, int or float) to integer cents.

    Values finer than one cent are rejected rather than rounded: rounding
    only happens after multiplication or percentage math.
    """
    if value is None or isinstance(value, bool):
        raise InvalidAmount(f"{field} must be a number", {"field": field})

    if isinstance(value, float):
        # repr-based conversion keeps 0.1 as 0.1 instead of 0.1000000000000000055...
        value = repr(value)

    if isinstance(value, str):
        value = value.strip()
        if not value:
            raise InvalidAmount(f"{field} must be a number", {"field": field})

    try:
        amount = Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidAmount(f"{field} must be a number", {"field": field})

    if not amount.is_finite():
        raise InvalidAmount(f"{field} must be a finite number", {"field": field})

    # Exponent check first: multiplying a huge exponent overflows the context
    if (amount and amount.adjusted() >= MAX_AMOUNT_DIGITS) or abs(amount) * 100 > MAX_AMOUNT_CENTS:
        raise InvalidAmount(f"{field} exceeds the maximum allowed amount", {"field": field})

    if amount != amount.quantize(CENTS):
        raise InvalidAmount(f"{field} cannot have more than two decimal places", {"field": field})

    return int(amount * 100)


def format_cents(cents: int) -> str:
    """Render cents as a plain two-decimal string, e.g. -1000 -> '-10.00'."""
    return str((Decimal(cents) / 100).quantize(CENTS))


def round_half_up(value: Decimal) -> int:
    """Round a fractional cent amount to whole cents, halves away from zero."""
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def multiply(unit_cents: int, quantity: int) -> int:
    return round_half_up(Decimal(unit_cents) * Decimal(quantity))


def percent_of(amount_cents: int, rate_bps: int) -> int:
    """Apply a basis-point rate (700 = 7%) to an amount, rounding half-up."""
    return round_half_up(Decimal(amount_cents) * Decimal(rate_bps) / BPS_DIVISOR)
