"""Match commission rules against invoice lines.

A rule applies to a line when any of its ``applies_to`` tokens equals the
product name, the distributor name or the distributor tier.  Every
matching active rule fires, so amounts from overlapping rules stack.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from core.money import quantize_money, to_decimal

PERCENTAGE = "Percentage"
FIXED = "Fixed"


@dataclass(frozen=True)
class SaleLine:
    product_name: str
    distributor_name: str
    distributor_tier: str
    sale_amount: Decimal


@dataclass(frozen=True)
class CommissionLine:
    rule: object
    rule_name: str
    commission_type: str
    commission_rate: Decimal
    commission_amount: Decimal


def _field(rule, name):
    if isinstance(rule, dict):
        return rule.get(name)
    return getattr(rule, name)


def rule_applies(rule, product_name, distributor_name, distributor_tier) -> bool:
    tokens = set(_field(rule, "applies_to") or [])
    candidates = {product_name, distributor_name, distributor_tier} - {None, ""}
    return bool(tokens & candidates)


def compute_commission(rule, sale_amount) -> Decimal:
    """Percentage rules take ``rate`` percent of the sale, fixed rules pay ``rate`` once."""
    rate = to_decimal(_field(rule, "rate"))
    kind = _field(rule, "type")
    if kind == PERCENTAGE:
        return quantize_money(to_decimal(sale_amount) * rate / Decimal("100"))
    if kind == FIXED:
        return quantize_money(rate)
    raise ValueError(f"Type de commission inconnu: {kind}.")


def evaluate_line(rules, line: SaleLine) -> list[CommissionLine]:
    """Return one CommissionLine per active rule matching ``line``."""
    results = []
    for rule in rules:
        if not _field(rule, "is_active"):
            continue
        if not rule_applies(rule, line.product_name, line.distributor_name, line.distributor_tier):
            continue
        results.append(CommissionLine(
            rule=rule,
            rule_name=_field(rule, "rule_name"),
            commission_type=_field(rule, "type"),
            commission_rate=to_decimal(_field(rule, "rate")),
            commission_amount=compute_commission(rule, line.sale_amount),
        ))
    return results
