"""Invoice status rules.

Pure functions; amounts are Decimals and zero tests are exact.
"""
from __future__ import annotations

from decimal import Decimal

from core.money import clamp_zero, to_decimal

UNPAID = "Unpaid"
PARTIALLY_PAID = "Partially Paid"
PAID = "Paid"
CANCELLED = "Cancelled"


def due_amount(total, paid) -> Decimal:
    return clamp_zero(to_decimal(total) - to_decimal(paid))


def resolve_invoice_status(total, paid) -> str:
    """Status of a live invoice from its total and the amount paid.

    A zero-value invoice with nothing paid counts as settled.
    """
    total = to_decimal(total)
    paid = to_decimal(paid)
    if total <= 0 and paid <= 0:
        return PAID
    if paid <= 0:
        return UNPAID
    if paid < total:
        return PARTIALLY_PAID
    return PAID


def resolve_status_after_return(new_total, new_due, paid) -> str:
    new_total = to_decimal(new_total)
    new_due = to_decimal(new_due)
    paid = to_decimal(paid)
    if new_due <= 0 and new_total > 0:
        return PAID
    if paid > 0 and new_due > 0:
        return PARTIALLY_PAID
    if new_due > 0:
        return UNPAID
    return PAID


def can_cancel(status) -> bool:
    return status not in (PAID, CANCELLED)


def can_return(status) -> bool:
    return status not in (PAID, CANCELLED)
