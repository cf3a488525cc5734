"""Decimal helpers for monetary and costing amounts.

Every amount handled by the workflows is a :class:`~decimal.Decimal`.
Zero tests are exact comparisons on quantized values.
"""
from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

ZERO = Decimal("0.00")
CENT = Decimal("0.01")
COST_PLACES = Decimal("0.0001")
QTY_PLACES = Decimal("0.001")


def to_decimal(value, default: str = "0") -> Decimal:
    """Convert *value* to Decimal without going through binary floats."""
    if value is None or value == "":
        return Decimal(default)
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise ValueError(f"Montant invalide: {value!r}.")


def quantize_money(value) -> Decimal:
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def quantize_cost(value) -> Decimal:
    return to_decimal(value).quantize(COST_PLACES, rounding=ROUND_HALF_UP)


def quantize_qty(value) -> Decimal:
    return to_decimal(value).quantize(QTY_PLACES, rounding=ROUND_HALF_UP)


def clamp_zero(value: Decimal) -> Decimal:
    """Floor *value* at zero."""
    return value if value > 0 else value * 0
