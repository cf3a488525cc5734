"""Services for purchase orders: creation, delivery, receipt and payments."""

from __future__ import annotations

import logging
import uuid
from decimal import Decimal

from django.db import transaction
from django.utils import timezone

from core.exceptions import InvalidTransitionError
from core.models import DailySequence
from core.money import ZERO, clamp_zero, quantize_cost, quantize_money, quantize_qty, to_decimal
from core.services import create_audit_log
from inventory.models import RawMaterial
from inventory.services import receive_raw_material

from .models import PaymentStatus, PurchaseOrder, PurchaseOrderItem, PurchasePayment, Supplier

logger = logging.getLogger("bizfin")

OPEN_DELIVERY_STATUSES = (
    PurchaseOrder.DeliveryStatus.PENDING,
    PurchaseOrder.DeliveryStatus.SHIPPED,
)

MAX_DAILY_ORDERS = 999


def generate_purchase_order_number(day=None) -> str:
    """Next purchase order number for ``day`` (``PO-YYMMDDNNN``), at most ``MAX_DAILY_ORDERS`` a day."""
    day = day or timezone.localdate()
    return f"PO-{day:%y%m%d}{DailySequence.next_number('PO', day, limit=MAX_DAILY_ORDERS):03d}"


def resolve_payment_status(amount, paid) -> str:
    """Payment status from the order amount and what has been paid so far."""
    due = clamp_zero(to_decimal(amount) - to_decimal(paid))
    if due <= 0:
        return PaymentStatus.PAID
    if to_decimal(paid) > 0:
        return PaymentStatus.PARTIALLY_PAID
    return PaymentStatus.UNPAID


def _validate_order_items(items: list[dict]) -> list[dict]:
    """Validate purchase lines and resolve raw-material objects."""
    if not isinstance(items, list) or not items:
        raise ValueError("Le bon de commande doit contenir au moins une ligne.")

    normalized: list[dict] = []
    for idx, line in enumerate(items, start=1):
        material_id = line.get("raw_material_id") or line.get("raw_material")
        if not material_id:
            raise ValueError(f"Ligne {idx}: matiere premiere requise.")
        try:
            material = RawMaterial.objects.get(pk=uuid.UUID(str(material_id)))
        except (ValueError, RawMaterial.DoesNotExist):
            raise ValueError(f"Ligne {idx}: matiere premiere introuvable.")

        qty = quantize_qty(line.get("quantity"))
        if qty <= 0:
            raise ValueError(f"Ligne {idx}: quantite commandee doit etre positive.")
        unit_cost = quantize_cost(line.get("unit_cost"))
        if unit_cost < 0:
            raise ValueError(f"Ligne {idx}: cout unitaire invalide.")

        normalized.append({
            "raw_material": material,
            "quantity": qty,
            "unit_cost": unit_cost,
            "line_total": quantize_money(qty * unit_cost),
        })
    return normalized


def _snapshot(purchase_order: PurchaseOrder) -> dict:
    return {
        "po_number": purchase_order.po_number,
        "delivery_status": purchase_order.delivery_status,
        "payment_status": purchase_order.payment_status,
        "amount": str(purchase_order.amount),
        "paid_amount": str(purchase_order.paid_amount),
        "due_amount": str(purchase_order.due_amount),
    }


@transaction.atomic
def create_purchase_order(
    *,
    supplier: Supplier,
    items: list[dict],
    actor=None,
    discount=Decimal("0"),
    tax=Decimal("0"),
    paid_amount=Decimal("0"),
    date=None,
    notes: str = "",
) -> PurchaseOrder:
    """Create a pending purchase order.

    ``amount`` is the items' total less ``discount`` plus ``tax`` (an
    absolute amount), floored at zero.  An initial ``paid_amount`` may be
    recorded straight away.
    """
    if supplier is None:
        raise ValueError("Veuillez selectionner un fournisseur.")
    if supplier.status != Supplier.Status.ACTIVE:
        raise ValueError(f"Le fournisseur '{supplier.name}' est inactif.")

    normalized = _validate_order_items(items)
    discount = quantize_money(discount)
    tax = quantize_money(tax)
    paid_amount = quantize_money(paid_amount)
    if discount < 0 or tax < 0:
        raise ValueError("La remise et la taxe ne peuvent pas etre negatives.")
    if paid_amount < 0:
        raise ValueError("Le montant paye ne peut pas etre negatif.")

    subtotal = sum((line["line_total"] for line in normalized), ZERO)
    amount = clamp_zero(subtotal - discount + tax)
    if paid_amount > amount:
        raise ValueError(f"Le montant paye ({paid_amount}) depasse le montant de la commande ({amount}).")

    date = date or timezone.localdate()
    purchase_order = PurchaseOrder.objects.create(
        po_number=generate_purchase_order_number(date),
        supplier=supplier,
        supplier_name=supplier.name,
        created_by=actor if getattr(actor, "pk", None) else None,
        date=date,
        subtotal=subtotal,
        discount=discount,
        tax=tax,
        amount=amount,
        paid_amount=paid_amount,
        due_amount=clamp_zero(amount - paid_amount),
        payment_status=resolve_payment_status(amount, paid_amount),
        delivery_status=PurchaseOrder.DeliveryStatus.PENDING,
        notes=(notes or "").strip(),
    )
    PurchaseOrderItem.objects.bulk_create([
        PurchaseOrderItem(purchase_order=purchase_order, **line) for line in normalized
    ])
    if paid_amount > 0:
        PurchasePayment.objects.create(
            purchase_order=purchase_order,
            amount=paid_amount,
            date=date,
            paid_by=purchase_order.created_by,
        )

    create_audit_log(
        actor=actor,
        action="PURCHASE_ORDER_CREATED",
        entity_type="PurchaseOrder",
        entity_id=str(purchase_order.pk),
        after={**_snapshot(purchase_order), "supplier": supplier.name, "lines_count": len(normalized)},
    )
    logger.info(
        "Purchase order %s created for %s (amount=%s)",
        purchase_order.po_number, supplier.name, amount,
    )
    return purchase_order


@transaction.atomic
def mark_purchase_order_shipped(purchase_order: PurchaseOrder, *, actor=None) -> PurchaseOrder:
    """Pending -> Shipped."""
    purchase_order = PurchaseOrder.objects.select_for_update().get(pk=purchase_order.pk)
    if purchase_order.delivery_status != PurchaseOrder.DeliveryStatus.PENDING:
        raise InvalidTransitionError(
            purchase_order.po_number, purchase_order.delivery_status, PurchaseOrder.DeliveryStatus.SHIPPED,
        )

    purchase_order.delivery_status = PurchaseOrder.DeliveryStatus.SHIPPED
    purchase_order.save(update_fields=["delivery_status", "updated_at"])

    create_audit_log(
        actor=actor,
        action="PURCHASE_ORDER_SHIPPED",
        entity_type="PurchaseOrder",
        entity_id=str(purchase_order.pk),
        before={"delivery_status": PurchaseOrder.DeliveryStatus.PENDING},
        after=_snapshot(purchase_order),
    )
    logger.info("Purchase order %s marked shipped", purchase_order.po_number)
    return purchase_order


@transaction.atomic
def receive_purchase_order(purchase_order: PurchaseOrder, *, actor=None) -> PurchaseOrder:
    """Receive every line of an open order into raw-material stock.

    Each material's quantity and weighted-average cost are updated under a
    row lock, together with the order's delivery status.
    """
    purchase_order = PurchaseOrder.objects.select_for_update().get(pk=purchase_order.pk)
    if purchase_order.delivery_status not in OPEN_DELIVERY_STATUSES:
        raise InvalidTransitionError(
            purchase_order.po_number, purchase_order.delivery_status, PurchaseOrder.DeliveryStatus.RECEIVED,
        )

    before = _snapshot(purchase_order)
    items = list(purchase_order.items.order_by("raw_material_id"))
    for item in items:
        receive_raw_material(
            item.raw_material_id,
            item.quantity,
            item.unit_cost,
            reference=purchase_order.po_number,
            actor=actor,
        )

    purchase_order.delivery_status = PurchaseOrder.DeliveryStatus.RECEIVED
    purchase_order.received_at = timezone.now()
    purchase_order.save(update_fields=["delivery_status", "received_at", "updated_at"])

    create_audit_log(
        actor=actor,
        action="PURCHASE_ORDER_RECEIVED",
        entity_type="PurchaseOrder",
        entity_id=str(purchase_order.pk),
        before=before,
        after={**_snapshot(purchase_order), "lines_count": len(items)},
    )
    logger.info("Purchase order %s received (%d lines)", purchase_order.po_number, len(items))
    return purchase_order


@transaction.atomic
def cancel_purchase_order(purchase_order: PurchaseOrder, *, actor=None, reason: str = "") -> PurchaseOrder:
    """Cancel an order that has not been received.  Stock is untouched."""
    purchase_order = PurchaseOrder.objects.select_for_update().get(pk=purchase_order.pk)
    if purchase_order.delivery_status not in OPEN_DELIVERY_STATUSES:
        raise InvalidTransitionError(
            purchase_order.po_number, purchase_order.delivery_status, PurchaseOrder.DeliveryStatus.CANCELLED,
        )

    before = _snapshot(purchase_order)
    purchase_order.delivery_status = PurchaseOrder.DeliveryStatus.CANCELLED
    if reason.strip():
        existing = (purchase_order.notes or "").strip()
        suffix = f"[ANNULATION] {reason.strip()}"
        purchase_order.notes = f"{existing}\n{suffix}".strip() if existing else suffix
    purchase_order.save(update_fields=["delivery_status", "notes", "updated_at"])

    create_audit_log(
        actor=actor,
        action="PURCHASE_ORDER_CANCELLED",
        entity_type="PurchaseOrder",
        entity_id=str(purchase_order.pk),
        before=before,
        after={**_snapshot(purchase_order), "reason": reason.strip()},
    )
    logger.info("Purchase order %s cancelled. Reason: %s", purchase_order.po_number, reason)
    return purchase_order


@transaction.atomic
def record_purchase_payment(purchase_order: PurchaseOrder, amount, *, actor=None,
                            date=None, reference: str = "") -> PurchasePayment:
    """Record a payment to the supplier and refresh the order's balances."""
    purchase_order = PurchaseOrder.objects.select_for_update().get(pk=purchase_order.pk)
    if purchase_order.delivery_status == PurchaseOrder.DeliveryStatus.CANCELLED:
        raise ValueError("Impossible de payer un bon de commande annule.")

    amount = quantize_money(amount)
    if amount <= 0:
        raise ValueError("Le montant du paiement doit etre positif.")
    if amount > purchase_order.due_amount:
        raise ValueError(
            f"Le montant du paiement ({amount}) depasse le montant du ({purchase_order.due_amount})."
        )

    before = _snapshot(purchase_order)
    payment = PurchasePayment.objects.create(
        purchase_order=purchase_order,
        amount=amount,
        date=date or timezone.localdate(),
        reference=reference or "",
        paid_by=actor if getattr(actor, "pk", None) else None,
    )

    purchase_order.paid_amount += amount
    purchase_order.due_amount = clamp_zero(purchase_order.amount - purchase_order.paid_amount)
    purchase_order.payment_status = resolve_payment_status(purchase_order.amount, purchase_order.paid_amount)
    purchase_order.save(update_fields=["paid_amount", "due_amount", "payment_status", "updated_at"])

    create_audit_log(
        actor=actor,
        action="PURCHASE_PAYMENT_RECORDED",
        entity_type="PurchaseOrder",
        entity_id=str(purchase_order.pk),
        before=before,
        after={**_snapshot(purchase_order), "payment_id": str(payment.pk)},
    )
    logger.info(
        "Payment of %s recorded on purchase order %s (due=%s, status=%s)",
        amount, purchase_order.po_number, purchase_order.due_amount, purchase_order.payment_status,
    )
    return payment
