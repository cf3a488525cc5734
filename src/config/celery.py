"""Celery configuration."""
import os
from celery import Celery
from celery.schedules import crontab

os.environ.setdefault(
    "DJANGO_SETTINGS_MODULE",
    os.getenv("DJANGO_SETTINGS_MODULE", "config.settings.prod"),
)

app = Celery("bizfin")
app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()

# Beat schedule
app.conf.beat_schedule = {
    "check-low-stock": {
        "task": "alerts.tasks.check_low_stock",
        "schedule": crontab(minute=0, hour="*/2"),  # Every 2 hours
    },
    "check-invoices-due-soon": {
        "task": "alerts.tasks.check_invoices_due_soon",
        "schedule": crontab(minute=0, hour=8),  # Daily at 8am
    },
}
