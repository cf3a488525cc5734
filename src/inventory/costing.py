"""Costing engine: weighted-average receipts, formula and production costs.

Pure functions over Decimals.  Callers are responsible for locking and
persisting the rows whose values they pass in.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Iterable, Optional

from core.money import quantize_cost, quantize_money, quantize_qty, to_decimal

logger = logging.getLogger("bizfin")


def weighted_average_cost(current_qty, current_cost, received_qty, received_cost) -> tuple[Decimal, Decimal]:
    """Blend a receipt into a running weighted-average unit cost.

    Returns ``(new_qty, new_unit_cost)``.  When the resulting quantity is not
    positive the previous history carries no weight and the new cost is the
    received cost exactly.

    >>> weighted_average_cost(0, 0, 50, 2)
    (Decimal('50.000'), Decimal('2.0000'))
    >>> weighted_average_cost(50, 2, 50, 4)
    (Decimal('100.000'), Decimal('3.0000'))
    """
    current_qty = to_decimal(current_qty)
    current_cost = to_decimal(current_cost)
    received_qty = to_decimal(received_qty)
    received_cost = to_decimal(received_cost)

    new_qty = current_qty + received_qty
    if new_qty > 0:
        new_cost = (current_qty * current_cost + received_qty * received_cost) / new_qty
    else:
        new_cost = received_cost
    return quantize_qty(new_qty), quantize_cost(new_cost)


def formula_unit_cost(components: Iterable, cost_lookup: Callable[[object], Optional[Decimal]]) -> Decimal:
    """Sum ``unit_cost * quantity_per_unit`` over a bill of materials.

    ``components`` yields objects or dicts with ``raw_material_id`` and
    ``quantity_per_unit``.  ``cost_lookup`` maps a material id to its current
    unit cost, or ``None`` when the material no longer exists; such
    components contribute nothing and are logged.
    """
    total = Decimal("0")
    for component in components:
        if isinstance(component, dict):
            material_id = component.get("raw_material_id")
            qty = component.get("quantity_per_unit")
        else:
            material_id = component.raw_material_id
            qty = component.quantity_per_unit
        cost = cost_lookup(material_id)
        if cost is None:
            logger.warning("Formula component skipped: raw material %s not found", material_id)
            continue
        total += to_decimal(cost) * to_decimal(qty)
    return quantize_cost(total)


@dataclass(frozen=True)
class ProductionCost:
    material_cost: Decimal
    total_cost: Decimal
    unit_cost: Decimal


def production_cost(unit_material_cost, quantity, labour=0, other=0, wastage=0) -> ProductionCost:
    """Cost a production run of ``quantity`` units.

    Material cost is the formula's per-unit cost times the quantity;
    labour, other costs and the value of wasted material are added on top
    and the unit cost spreads the total over the units produced.
    """
    quantity = to_decimal(quantity)
    if quantity <= 0:
        raise ValueError("La quantite a produire doit etre positive.")
    material = quantize_money(to_decimal(unit_material_cost) * quantity)
    extras = [to_decimal(labour), to_decimal(other), to_decimal(wastage)]
    if any(value < 0 for value in extras):
        raise ValueError("Les couts de production ne peuvent pas etre negatifs.")
    total = quantize_money(material + sum(extras))
    return ProductionCost(
        material_cost=material,
        total_cost=total,
        unit_cost=quantize_cost(total / quantity),
    )
