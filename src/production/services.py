"""Create costed production orders."""
import logging

from django.db import transaction
from django.utils import timezone

from core.money import quantize_money
from core.services import create_audit_log
from inventory.costing import formula_unit_cost, production_cost
from inventory.models import FinishedGood, RawMaterial

from .models import ProductionOrder

logger = logging.getLogger("bizfin")


@transaction.atomic
def create_production_order(finished_good, quantity, labour_cost=0, other_costs=0, wastage_value=0,
                            start_date=None, status=ProductionOrder.Status.PENDING, actor=None):
    """
    Record a production run of ``finished_good``.

    Material cost uses the current cost of every raw material in the
    product's formula.  Consuming materials and adding finished units to
    stock are not done here.

    Raises:
        ValueError: On a non-positive quantity, negative costs, an unknown
            status or a product without a formula.
    """
    good = FinishedGood.objects.get(pk=finished_good.pk)
    if status not in ProductionOrder.Status.values:
        raise ValueError(f"Statut de production inconnu: {status}.")
    try:
        quantity = int(quantity)
    except (TypeError, ValueError):
        raise ValueError("Quantite de production invalide.")

    components = list(good.formula.all())
    if not components:
        raise ValueError(f"Le produit '{good.product_name}' n'a pas de formule.")
    costs = dict(
        RawMaterial.objects
        .filter(pk__in=[c.raw_material_id for c in components])
        .values_list("pk", "unit_cost")
    )
    unit_material_cost = formula_unit_cost(components, costs.get)
    cost = production_cost(unit_material_cost, quantity, labour_cost, other_costs, wastage_value)

    order = ProductionOrder.objects.create(
        finished_good=good,
        product_name=good.product_name,
        quantity=quantity,
        material_cost=cost.material_cost,
        labour_cost=quantize_money(labour_cost),
        other_costs=quantize_money(other_costs),
        wastage_value=quantize_money(wastage_value),
        total_cost=cost.total_cost,
        unit_cost=cost.unit_cost,
        status=status,
        start_date=start_date or timezone.localdate(),
        created_by=actor if getattr(actor, "pk", None) else None,
    )

    create_audit_log(
        actor=actor,
        action="PRODUCTION_ORDER_CREATED",
        entity_type="ProductionOrder",
        entity_id=str(order.pk),
        after={
            "product_name": order.product_name,
            "quantity": quantity,
            "total_cost": str(order.total_cost),
            "unit_cost": str(order.unit_cost),
        },
    )
    logger.info(
        "Production order created: %s x %d (total=%s, unit=%s)",
        order.product_name, quantity, order.total_cost, order.unit_cost,
    )
    return order
