"""Service functions for the alerts app."""
import logging
from datetime import timedelta

from django.conf import settings
from django.utils import timezone

from alerts.models import Notification

logger = logging.getLogger("bizfin")


def create_notification(kind, level, title, message, reference, payload=None):
    """Create and return a new Notification."""
    notification = Notification.objects.create(
        kind=kind,
        level=level,
        title=title,
        message=message,
        reference=str(reference),
        payload=payload or {},
    )
    logger.info("Notification created: [%s] %s", kind, title)
    return notification


def _references_notified_today(kind):
    return set(
        Notification.objects.filter(
            kind=kind,
            created_at__date=timezone.localdate(),
        ).values_list("reference", flat=True)
    )


def sync_low_stock_notifications(threshold=None):
    """Raise a notice for every raw material below ``threshold``.

    Defaults to ``settings.LOW_STOCK_THRESHOLD``.  Returns the number of
    notifications created.
    """
    from inventory.models import RawMaterial

    if threshold is None:
        threshold = settings.LOW_STOCK_THRESHOLD

    already = _references_notified_today(Notification.Kind.LOW_STOCK)
    created = 0
    for material in RawMaterial.objects.filter(quantity__lt=threshold).order_by("name"):
        if str(material.pk) in already:
            continue
        create_notification(
            kind=Notification.Kind.LOW_STOCK,
            level=Notification.Level.WARNING,
            title=f"Stock faible : {material.name}",
            message=(
                f"La matiere premiere {material.name} n'a plus que "
                f"{material.quantity} {material.unit} en stock (seuil: {threshold})."
            ),
            reference=material.pk,
            payload={
                "raw_material_id": str(material.pk),
                "quantity": str(material.quantity),
                "threshold": str(threshold),
            },
        )
        created += 1
    return created


def sync_due_invoice_notifications(days_ahead=None):
    """Raise a notice for open invoices falling due within ``days_ahead`` days.

    Defaults to ``settings.INVOICE_DUE_SOON_DAYS``.  Returns the number of
    notifications created.
    """
    from sales.models import Invoice

    if days_ahead is None:
        days_ahead = settings.INVOICE_DUE_SOON_DAYS

    today = timezone.localdate()
    horizon = today + timedelta(days=days_ahead)
    invoices = (
        Invoice.objects
        .exclude(status__in=[Invoice.Status.PAID, Invoice.Status.CANCELLED])
        .filter(due_amount__gt=0, due_date__gte=today, due_date__lte=horizon)
        .order_by("due_date")
    )

    already = _references_notified_today(Notification.Kind.INVOICE_DUE)
    created = 0
    for invoice in invoices:
        if str(invoice.pk) in already:
            continue
        create_notification(
            kind=Notification.Kind.INVOICE_DUE,
            level=Notification.Level.INFO,
            title=f"Echeance proche : {invoice.invoice_number}",
            message=(
                f"La facture {invoice.invoice_number} de {invoice.customer} "
                f"arrive a echeance le {invoice.due_date:%d/%m/%Y} "
                f"(reste du: {invoice.due_amount} {settings.CURRENCY})."
            ),
            reference=invoice.pk,
            payload={
                "invoice_id": str(invoice.pk),
                "due_date": invoice.due_date.isoformat(),
                "due_amount": str(invoice.due_amount),
            },
        )
        created += 1
    return created
