"""Business logic for raw materials and finished goods.

Stock changes lock the affected row with ``select_for_update``, re-read
it and only then write, so the check and the update happen atomically
with respect to concurrent workflows.
"""
from __future__ import annotations

import logging
import uuid

from django.db import transaction

from core.exceptions import InsufficientStockError
from core.money import quantize_money, quantize_qty, to_decimal
from core.services import create_audit_log

from .costing import formula_unit_cost, weighted_average_cost
from .models import FinishedGood, FormulaComponent, InventoryMovement, RawMaterial

logger = logging.getLogger("bizfin")


def _raw_material_cost_lookup(material_ids):
    costs = dict(
        RawMaterial.objects.filter(pk__in=list(material_ids)).values_list("pk", "unit_cost")
    )
    return costs.get


@transaction.atomic
def create_finished_good_formula(product_name, components, selling_price=None, actor=None):
    """
    Create a finished good together with its bill of materials.

    The good starts with no stock.  Its unit cost is derived from the
    current cost of each raw material and is not refreshed automatically
    when those costs change later; see ``recompute_formula_cost``.

    Args:
        product_name: Unique name of the new product.
        components: Iterable of dicts with ``raw_material_id`` and
            ``quantity_per_unit``.
        selling_price: Optional list price.
        actor: The User performing the action.

    Returns:
        The created FinishedGood.

    Raises:
        ValueError: On an empty name, an empty formula, a non-positive
            component quantity or a duplicate product name.
    """
    product_name = (product_name or "").strip()
    if not product_name:
        raise ValueError("Le nom du produit est obligatoire.")
    components = list(components or [])
    if not components:
        raise ValueError("La formule doit contenir au moins un composant.")
    if FinishedGood.objects.filter(product_name__iexact=product_name).exists():
        raise ValueError(f"Un produit nomme '{product_name}' existe deja.")

    cleaned = []
    for component in components:
        qty = to_decimal(component.get("quantity_per_unit"))
        if qty <= 0:
            raise ValueError("La quantite par unite doit etre positive.")
        try:
            material_id = uuid.UUID(str(component.get("raw_material_id")))
        except ValueError:
            raise ValueError(f"Identifiant de matiere premiere invalide: {component.get('raw_material_id')}.")
        cleaned.append({"raw_material_id": material_id, "quantity_per_unit": qty})

    materials = RawMaterial.objects.in_bulk([c["raw_material_id"] for c in cleaned])
    missing = [str(c["raw_material_id"]) for c in cleaned if c["raw_material_id"] not in materials]
    if missing:
        raise ValueError(f"Matiere premiere introuvable: {', '.join(missing)}.")

    unit_cost = formula_unit_cost(cleaned, lambda pk: materials[pk].unit_cost if pk in materials else None)
    if selling_price is not None and selling_price != "":
        selling_price = quantize_money(selling_price)
        if selling_price < 0:
            raise ValueError("Le prix de vente ne peut pas etre negatif.")
    else:
        selling_price = None

    good = FinishedGood.objects.create(
        product_name=product_name,
        quantity=0,
        unit_cost=unit_cost,
        selling_price=selling_price,
    )
    FormulaComponent.objects.bulk_create([
        FormulaComponent(
            finished_good=good,
            raw_material=materials[c["raw_material_id"]],
            quantity_per_unit=c["quantity_per_unit"],
            position=index,
        )
        for index, c in enumerate(cleaned)
    ])

    create_audit_log(
        actor=actor,
        action="FORMULA_CREATED",
        entity_type="FinishedGood",
        entity_id=str(good.pk),
        after={"product_name": product_name, "unit_cost": str(unit_cost), "components": len(cleaned)},
    )
    logger.info("Formula created for %s (unit cost %s)", product_name, unit_cost)
    return good


@transaction.atomic
def recompute_formula_cost(finished_good, actor=None):
    """Refresh a finished good's unit cost from current raw-material costs."""
    good = FinishedGood.objects.select_for_update().get(pk=finished_good.pk)
    components = list(good.formula.all())
    lookup = _raw_material_cost_lookup(c.raw_material_id for c in components)
    old_cost = good.unit_cost
    good.unit_cost = formula_unit_cost(components, lookup)
    good.save(update_fields=["unit_cost", "updated_at"])

    create_audit_log(
        actor=actor,
        action="FORMULA_COST_RECOMPUTED",
        entity_type="FinishedGood",
        entity_id=str(good.pk),
        before={"unit_cost": str(old_cost)},
        after={"unit_cost": str(good.unit_cost)},
    )
    return good


def _record_movement(kind, item_id, item_name, qty, movement_type, reference, actor):
    return InventoryMovement.objects.create(
        item_kind=kind,
        item_id=item_id,
        item_name=item_name,
        movement_type=movement_type,
        quantity=qty,
        reference=reference,
        actor=actor if getattr(actor, "pk", None) else None,
    )


@transaction.atomic
def decrement_finished_good(finished_good_id, qty, movement_type=InventoryMovement.MovementType.SALE,
                            reference="", actor=None):
    """
    Remove ``qty`` units of a finished good.

    The row is locked and re-read before the check, so two workflows
    selling the last units cannot both succeed.

    Raises:
        ValueError: If ``qty`` is not positive.
        InsufficientStockError: If the good holds fewer than ``qty`` units.
    """
    qty = int(qty)
    if qty <= 0:
        raise ValueError("La quantite doit etre positive.")

    good = FinishedGood.objects.select_for_update().get(pk=finished_good_id)
    if good.quantity - qty < 0:
        raise InsufficientStockError(good.product_name, good.quantity, qty)

    good.quantity -= qty
    good.save(update_fields=["quantity", "updated_at"])
    _record_movement(
        InventoryMovement.ItemKind.FINISHED_GOOD, good.pk, good.product_name,
        -qty, movement_type, reference, actor,
    )
    logger.info("Stock decremented: %s -%d (ref=%s)", good.product_name, qty, reference)
    return good


@transaction.atomic
def increment_finished_good(finished_good_id, qty, movement_type=InventoryMovement.MovementType.RETURN,
                            reference="", actor=None):
    """Add ``qty`` units of a finished good back to stock."""
    qty = int(qty)
    if qty <= 0:
        raise ValueError("La quantite doit etre positive.")

    good = FinishedGood.objects.select_for_update().get(pk=finished_good_id)
    good.quantity += qty
    good.save(update_fields=["quantity", "updated_at"])
    _record_movement(
        InventoryMovement.ItemKind.FINISHED_GOOD, good.pk, good.product_name,
        qty, movement_type, reference, actor,
    )
    logger.info("Stock incremented: %s +%d (ref=%s)", good.product_name, qty, reference)
    return good


@transaction.atomic
def receive_raw_material(raw_material_id, qty, unit_cost, reference="", actor=None):
    """
    Blend a received batch into a raw material's stock and average cost.

    Returns the updated RawMaterial.
    """
    qty = quantize_qty(qty)
    unit_cost = to_decimal(unit_cost)
    if qty <= 0:
        raise ValueError("La quantite recue doit etre positive.")
    if unit_cost < 0:
        raise ValueError("Le cout unitaire ne peut pas etre negatif.")

    material = RawMaterial.objects.select_for_update().get(pk=raw_material_id)
    old_qty, old_cost = material.quantity, material.unit_cost
    material.quantity, material.unit_cost = weighted_average_cost(old_qty, old_cost, qty, unit_cost)
    material.save(update_fields=["quantity", "unit_cost", "updated_at"])
    _record_movement(
        InventoryMovement.ItemKind.RAW_MATERIAL, material.pk, material.name,
        qty, InventoryMovement.MovementType.PURCHASE, reference, actor,
    )
    logger.info(
        "Raw material received: %s +%s @ %s (cost %s -> %s, ref=%s)",
        material.name, qty, unit_cost, old_cost, material.unit_cost, reference,
    )
    return material
