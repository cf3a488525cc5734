"""
Business logic for the sales app.

Every workflow here runs in a single ``transaction.atomic`` block: the
invoice, its stock movements, commission rows and audit entry commit
together or not at all.  Validation errors raise ``ValueError`` (or one
of the subclasses in ``core.exceptions``) and leave no trace.
"""
from __future__ import annotations

import logging
import uuid
from collections import defaultdict
from datetime import timedelta
from decimal import Decimal

from django.conf import settings
from django.db import transaction
from django.db.models import Sum
from django.utils import timezone

from commissions.services import stage_commissions_for_invoice
from core.exceptions import InsufficientStockError, InvalidTransitionError, ReturnExceedsDueError
from core.models import DailySequence
from core.money import ZERO, clamp_zero, quantize_money, to_decimal
from core.services import create_audit_log
from inventory.models import FinishedGood, InventoryMovement
from inventory.services import decrement_finished_good, increment_finished_good

from . import status as invoice_status
from .models import (
    Invoice,
    InvoiceItem,
    InvoicePayment,
    PaymentMethod,
    SalesReturn,
    SalesReturnItem,
)

logger = logging.getLogger("bizfin")

RETURN_VALUATIONS = ("selling_price", "invoice_price")

# Three-digit daily suffix of the invoice number.
MAX_DAILY_INVOICES = 999


# ---------------------------------------------------------------------------
# Numbering
# ---------------------------------------------------------------------------

def generate_invoice_number(day=None) -> str:
    """Return the next invoice number for ``day``, e.g. ``INV#260314007``.

    The daily sequence comes from a locked counter row, so concurrent
    sales never share a number.  Past ``MAX_DAILY_INVOICES`` numbers in a
    day a ``ValueError`` is raised.
    """
    day = day or timezone.localdate()
    number = DailySequence.next_number("INV", day, limit=MAX_DAILY_INVOICES)
    return f"INV#{day:%y%m%d}{number:03d}"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _normalize_id(value, index):
    if not value:
        return None
    try:
        return str(uuid.UUID(str(value)))
    except ValueError:
        raise ValueError(f"Ligne {index}: identifiant de produit invalide ({value}).")


def _whole_quantity(value, index):
    """Unit count of a line; ``2``, ``"2"`` and ``2.0`` are accepted, ``1.5`` is not."""
    try:
        quantity = to_decimal(value)
    except ValueError:
        raise ValueError(f"Ligne {index}: quantite invalide.")
    if not quantity.is_finite() or quantity != quantity.to_integral_value():
        raise ValueError(f"Ligne {index}: la quantite doit etre un nombre entier.")
    return int(quantity)

def _clean_items(items):
    cleaned = []
    for index, raw in enumerate(items or [], start=1):
        quantity = _whole_quantity(raw.get("quantity"), index)
        if quantity <= 0:
            raise ValueError(f"Ligne {index}: la quantite doit etre positive.")
        unit_price = quantize_money(raw.get("unit_price"))
        if unit_price < 0:
            raise ValueError(f"Ligne {index}: le prix unitaire ne peut pas etre negatif.")
        product_id = _normalize_id(raw.get("product_id") or raw.get("product"), index)
        description = (raw.get("description") or "").strip()
        if not product_id and not description:
            raise ValueError(f"Ligne {index}: un produit ou une designation est requis.")
        cleaned.append({
            "product_id": product_id,
            "description": description,
            "quantity": quantity,
            "unit_price": unit_price,
            "total": quantize_money(unit_price * quantity),
        })
    return cleaned


def _clean_payments(payments, default_date):
    cleaned = []
    for raw in payments or []:
        amount = quantize_money(raw.get("amount"))
        if amount <= 0:
            raise ValueError("Le montant d'un paiement doit etre positif.")
        method = raw.get("method") or PaymentMethod.CASH
        if method not in PaymentMethod.values:
            raise ValueError(f"Mode de paiement inconnu: {method}.")
        cleaned.append({
            "amount": amount,
            "method": method,
            "date": raw.get("date") or default_date,
            "reference": raw.get("reference", ""),
        })
    return cleaned


def _lock_products(product_ids):
    """Lock finished goods in primary-key order and return them by id."""
    ids = sorted({str(pk) for pk in product_ids})
    goods = FinishedGood.objects.select_for_update().filter(pk__in=ids).order_by("pk")
    return {str(good.pk): good for good in goods}


def _returned_quantities(invoice):
    rows = (
        SalesReturnItem.objects
        .filter(sales_return__invoice=invoice)
        .values("product_id")
        .annotate(qty=Sum("quantity"))
    )
    return {str(row["product_id"]): row["qty"] or 0 for row in rows}


def _invoice_snapshot(invoice):
    return {
        "status": invoice.status,
        "total_amount": str(invoice.total_amount),
        "paid_amount": str(invoice.paid_amount),
        "due_amount": str(invoice.due_amount),
    }


# ---------------------------------------------------------------------------
# create_invoice
# ---------------------------------------------------------------------------

@transaction.atomic
def create_invoice(
    distributor,
    items,
    salesperson,
    date=None,
    due_date=None,
    discount=Decimal("0"),
    tax_rate=Decimal("0"),
    payments=None,
    notes="",
    customer=None,
    customer_email="",
) -> Invoice:
    """Create an invoice, decrement stock and stage commissions atomically.

    Parameters
    ----------
    distributor : distributors.models.Distributor or None
        Buyer.  May be ``None`` for a one-off customer named in
        ``customer``; such invoices earn no commission.
    items : list[dict]
        ``product_id``, ``quantity`` and ``unit_price`` per line.  A line
        with only a ``description`` is billed without stock effect.
    salesperson : User
    date, due_date : datetime.date, optional
        Default to today and today plus ``DEFAULT_INVOICE_TERM_DAYS``.
    discount : Decimal
        Amount taken off the subtotal before tax.
    tax_rate : Decimal
        Percentage applied to the discounted subtotal.
    payments : list[dict], optional
        Payments received at the counter (``amount``, ``method``).

    Returns
    -------
    Invoice

    Raises
    ------
    ValueError
        On invalid input.
    InsufficientStockError
        If any line asks for more units than are in stock.  No line is
        applied in that case.
    """
    customer = (customer or (distributor.name if distributor else "")).strip()
    if distributor is None and not customer:
        raise ValueError("Veuillez selectionner un distributeur.")
    lines = _clean_items(items)
    if not lines:
        raise ValueError("La facture doit contenir au moins un article.")

    date = date or timezone.localdate()
    due_date = due_date or date + timedelta(days=settings.DEFAULT_INVOICE_TERM_DAYS)
    if due_date < date:
        raise ValueError("L'echeance ne peut pas preceder la date de facture.")

    discount = quantize_money(discount)
    tax_rate = to_decimal(tax_rate)
    if discount < 0:
        raise ValueError("La remise ne peut pas etre negative.")
    if tax_rate < 0:
        raise ValueError("Le taux de taxe ne peut pas etre negatif.")

    subtotal = sum((line["total"] for line in lines), ZERO)
    if discount > subtotal:
        raise ValueError("La remise ne peut pas depasser le sous-total.")
    taxable = subtotal - discount
    tax_amount = quantize_money(taxable * tax_rate / Decimal("100"))
    total = taxable + tax_amount

    payment_rows = _clean_payments(payments, date)
    paid = sum((p["amount"] for p in payment_rows), ZERO)
    if paid > total:
        raise ValueError(f"Le montant paye ({paid}) depasse le total de la facture ({total}).")

    # Check every line against locked, freshly read stock before writing.
    requested = defaultdict(int)
    for line in lines:
        if line["product_id"]:
            requested[str(line["product_id"])] += line["quantity"]
    goods = _lock_products(requested)
    for product_id, qty in requested.items():
        good = goods.get(product_id)
        if good is None:
            raise ValueError(f"Produit introuvable: {product_id}.")
        if good.quantity < qty:
            raise InsufficientStockError(good.product_name, good.quantity, qty)

    invoice = Invoice.objects.create(
        invoice_number=generate_invoice_number(date),
        distributor=distributor,
        customer=customer,
        customer_email=customer_email or (distributor.email if distributor else ""),
        salesperson=salesperson if getattr(salesperson, "pk", None) else None,
        date=date,
        due_date=due_date,
        subtotal=subtotal,
        discount=discount,
        tax_rate=tax_rate,
        tax_amount=tax_amount,
        total_amount=total,
        paid_amount=paid,
        due_amount=invoice_status.due_amount(total, paid),
        status=invoice_status.resolve_invoice_status(total, paid),
        notes=notes or "",
    )

    for line in lines:
        good = goods.get(str(line["product_id"])) if line["product_id"] else None
        InvoiceItem.objects.create(
            invoice=invoice,
            product=good,
            description=line["description"] or (good.product_name if good else ""),
            quantity=line["quantity"],
            unit_price=line["unit_price"],
            total=line["total"],
        )
        if good is not None:
            decrement_finished_good(
                good.pk,
                line["quantity"],
                movement_type=InventoryMovement.MovementType.SALE,
                reference=invoice.invoice_number,
                actor=salesperson,
            )

    InvoicePayment.objects.bulk_create([
        InvoicePayment(invoice=invoice, received_by=invoice.salesperson, **payment)
        for payment in payment_rows
    ])

    commissions = stage_commissions_for_invoice(invoice, distributor, salesperson, discount)

    create_audit_log(
        actor=salesperson,
        action="INVOICE_CREATED",
        entity_type="Invoice",
        entity_id=str(invoice.pk),
        after={
            "invoice_number": invoice.invoice_number,
            "customer": invoice.customer,
            "total_amount": str(invoice.total_amount),
            "paid_amount": str(invoice.paid_amount),
            "status": invoice.status,
            "items": len(lines),
            "commissions": len(commissions),
        },
    )

    logger.info(
        "Invoice %s created for %s (total=%s, paid=%s, status=%s, commissions=%d)",
        invoice.invoice_number, invoice.customer, invoice.total_amount,
        invoice.paid_amount, invoice.status, len(commissions),
    )
    return invoice


# ---------------------------------------------------------------------------
# cancel_invoice
# ---------------------------------------------------------------------------

@transaction.atomic
def cancel_invoice(invoice: Invoice, actor, reason: str = "") -> Invoice:
    """Cancel an unpaid or partially paid invoice and put its goods back.

    Units already taken back by a sales return are not restocked a
    second time.  Commission rows earned by the invoice are kept.

    Raises
    ------
    InvalidTransitionError
        If the invoice is Paid or already Cancelled.
    """
    invoice = Invoice.objects.select_for_update().get(pk=invoice.pk)
    if not invoice_status.can_cancel(invoice.status):
        raise InvalidTransitionError(invoice.invoice_number, invoice.status, Invoice.Status.CANCELLED)

    before = _invoice_snapshot(invoice)

    remaining = _returned_quantities(invoice)
    for item in invoice.items.filter(product__isnull=False).order_by("product_id"):
        already = min(remaining.get(str(item.product_id), 0), item.quantity)
        remaining[str(item.product_id)] = remaining.get(str(item.product_id), 0) - already
        qty = item.quantity - already
        if qty > 0:
            increment_finished_good(
                item.product_id,
                qty,
                movement_type=InventoryMovement.MovementType.SALE_CANCEL,
                reference=invoice.invoice_number,
                actor=actor,
            )

    invoice.status = Invoice.Status.CANCELLED
    invoice.paid_amount = ZERO
    invoice.due_amount = ZERO
    invoice.cancelled_at = timezone.now()
    invoice.cancellation_reason = (reason or "").strip()
    invoice.save(update_fields=[
        "status",
        "paid_amount",
        "due_amount",
        "cancelled_at",
        "cancellation_reason",
        "updated_at",
    ])

    create_audit_log(
        actor=actor,
        action="INVOICE_CANCELLED",
        entity_type="Invoice",
        entity_id=str(invoice.pk),
        before=before,
        after={**_invoice_snapshot(invoice), "reason": invoice.cancellation_reason},
    )
    logger.info("Invoice %s cancelled by %s. Reason: %s", invoice.invoice_number, actor, reason)
    return invoice


# ---------------------------------------------------------------------------
# record_invoice_payment
# ---------------------------------------------------------------------------

@transaction.atomic
def record_invoice_payment(invoice: Invoice, amount, method=PaymentMethod.CASH, actor=None,
                           date=None, reference="") -> InvoicePayment:
    """Record a payment against an invoice and refresh its status."""
    invoice = Invoice.objects.select_for_update().get(pk=invoice.pk)
    if invoice.status == Invoice.Status.CANCELLED:
        raise ValueError("Impossible d'encaisser un paiement sur une facture annulee.")

    amount = quantize_money(amount)
    if amount <= 0:
        raise ValueError("Le montant du paiement doit etre positif.")
    if amount > invoice.due_amount:
        raise ValueError(
            f"Le montant du paiement ({amount}) depasse le montant du ({invoice.due_amount})."
        )
    if method not in PaymentMethod.values:
        raise ValueError(f"Mode de paiement inconnu: {method}.")

    before = _invoice_snapshot(invoice)
    payment = InvoicePayment.objects.create(
        invoice=invoice,
        amount=amount,
        method=method,
        date=date or timezone.localdate(),
        reference=reference or "",
        received_by=actor if getattr(actor, "pk", None) else None,
    )

    invoice.paid_amount += amount
    invoice.due_amount = invoice_status.due_amount(invoice.total_amount, invoice.paid_amount)
    invoice.status = invoice_status.resolve_invoice_status(invoice.total_amount, invoice.paid_amount)
    invoice.save(update_fields=["paid_amount", "due_amount", "status", "updated_at"])

    create_audit_log(
        actor=actor,
        action="INVOICE_PAYMENT_RECORDED",
        entity_type="Invoice",
        entity_id=str(invoice.pk),
        before=before,
        after={**_invoice_snapshot(invoice), "payment_id": str(payment.pk), "method": method},
    )
    logger.info(
        "Payment of %s recorded on invoice %s (due=%s, status=%s)",
        amount, invoice.invoice_number, invoice.due_amount, invoice.status,
    )
    return payment


# ---------------------------------------------------------------------------
# process_sales_return
# ---------------------------------------------------------------------------

@transaction.atomic
def process_sales_return(invoice: Invoice, items, reason: str = "", actor=None,
                         valuation=None, date=None) -> SalesReturn:
    """Take goods back against an invoice that still has a balance due.

    Each returned unit is valued at the product's current selling price
    or at the price charged on the invoice, depending on ``valuation``
    (``settings.SALES_RETURN_VALUATION`` by default).  The value of the
    return comes off the invoice total and may not exceed what is still
    due.

    Raises
    ------
    InvalidTransitionError
        If the invoice is Paid or Cancelled.
    ReturnExceedsDueError
        If the return is worth more than the amount due.
    ValueError
        On any other invalid line.
    """
    valuation = valuation or getattr(settings, "SALES_RETURN_VALUATION", "selling_price")
    if valuation not in RETURN_VALUATIONS:
        raise ValueError(f"Mode de valorisation des retours inconnu: {valuation}.")

    invoice = Invoice.objects.select_for_update().get(pk=invoice.pk)
    if not invoice_status.can_return(invoice.status):
        raise InvalidTransitionError(invoice.invoice_number, invoice.status, "Returned")

    invoiced = defaultdict(int)
    invoiced_value = defaultdict(lambda: ZERO)
    for item in invoice.items.filter(product__isnull=False):
        invoiced[str(item.product_id)] += item.quantity
        invoiced_value[str(item.product_id)] += item.total
    already_returned = _returned_quantities(invoice)

    requested = defaultdict(int)
    for index, raw in enumerate(items or [], start=1):
        product_id = _normalize_id(raw.get("product_id") or raw.get("product"), index)
        quantity = _whole_quantity(raw.get("quantity"), index)
        if quantity <= 0:
            raise ValueError(f"Ligne {index}: la quantite retournee doit etre positive.")
        if product_id not in invoiced:
            raise ValueError(f"Ligne {index}: ce produit ne figure pas sur la facture {invoice.invoice_number}.")
        requested[product_id] += quantity
    if not requested:
        raise ValueError("Le retour doit contenir au moins un article.")

    goods = _lock_products(requested)
    lines = []
    return_total = ZERO
    for product_id, quantity in requested.items():
        good = goods[product_id]
        returnable = invoiced[product_id] - already_returned.get(product_id, 0)
        if quantity > returnable:
            raise ValueError(
                f"Quantite retournee pour '{good.product_name}' ({quantity}) superieure "
                f"a la quantite retournable ({returnable})."
            )
        if valuation == "selling_price":
            if good.selling_price is None:
                raise ValueError(f"Le produit '{good.product_name}' n'a pas de prix de vente.")
            unit_value = good.selling_price
        else:
            unit_value = quantize_money(invoiced_value[product_id] / invoiced[product_id])
        line_total = quantize_money(unit_value * quantity)
        return_total += line_total
        lines.append((good, quantity, unit_value, line_total))

    if return_total > invoice.due_amount:
        raise ReturnExceedsDueError(return_total, invoice.due_amount)

    before = _invoice_snapshot(invoice)
    sales_return = SalesReturn.objects.create(
        invoice=invoice,
        customer=invoice.customer,
        date=date or timezone.localdate(),
        total_amount=return_total,
        total_quantity=sum(line[1] for line in lines),
        reason=(reason or "").strip(),
        valuation=valuation,
        processed_by=actor if getattr(actor, "pk", None) else None,
    )
    for good, quantity, unit_value, line_total in lines:
        SalesReturnItem.objects.create(
            sales_return=sales_return,
            product=good,
            quantity=quantity,
            unit_value=unit_value,
            total=line_total,
        )
        increment_finished_good(
            good.pk,
            quantity,
            movement_type=InventoryMovement.MovementType.RETURN,
            reference=invoice.invoice_number,
            actor=actor,
        )

    invoice.total_amount = clamp_zero(invoice.total_amount - return_total)
    invoice.due_amount = invoice_status.due_amount(invoice.total_amount, invoice.paid_amount)
    invoice.status = invoice_status.resolve_status_after_return(
        invoice.total_amount, invoice.due_amount, invoice.paid_amount,
    )
    invoice.save(update_fields=["total_amount", "due_amount", "status", "updated_at"])

    create_audit_log(
        actor=actor,
        action="SALES_RETURN_PROCESSED",
        entity_type="Invoice",
        entity_id=str(invoice.pk),
        before=before,
        after={
            **_invoice_snapshot(invoice),
            "return_id": str(sales_return.pk),
            "return_amount": str(return_total),
        },
    )
    logger.info(
        "Return %s processed on invoice %s (amount=%s, units=%d, status=%s)",
        sales_return.pk, invoice.invoice_number, return_total,
        sales_return.total_quantity, invoice.status,
    )
    return sales_return


# ---------------------------------------------------------------------------
# Derived state
# ---------------------------------------------------------------------------

def is_overdue(invoice: Invoice, today=None) -> bool:
    """True once the due date has passed with a balance still owed."""
    today = today or timezone.localdate()
    if invoice.status == Invoice.Status.CANCELLED:
        return False
    return invoice.due_amount > 0 and invoice.due_date < today
