"""Celery tasks for the alerts app."""
import logging

from celery import shared_task

logger = logging.getLogger("bizfin")


@shared_task(name="alerts.tasks.check_low_stock")
def check_low_stock(threshold=None):
    """Notify about raw materials running low."""
    from alerts.services import sync_low_stock_notifications

    count = sync_low_stock_notifications(threshold)
    logger.info("check_low_stock completed: %d notifications created.", count)
    return f"{count} notifications created"


@shared_task(name="alerts.tasks.check_invoices_due_soon")
def check_invoices_due_soon(days_ahead=None):
    """Notify about open invoices reaching their due date."""
    from alerts.services import sync_due_invoice_notifications

    count = sync_due_invoice_notifications(days_ahead)
    logger.info("check_invoices_due_soon completed: %d notifications created.", count)
    return f"{count} notifications created"
