"""Models for the alerts app."""
from django.conf import settings
from django.db import models
from django.utils import timezone

from core.models import TimeStampedModel


class Notification(TimeStampedModel):
    """A notice raised by a periodic check.

    ``reference`` identifies the entity the notice is about so a check run
    several times a day raises it only once per day.
    """

    class Kind(models.TextChoices):
        LOW_STOCK = "LOW_STOCK", "Stock faible"
        INVOICE_DUE = "INVOICE_DUE", "Facture bientot echue"

    class Level(models.TextChoices):
        INFO = "info", "Information"
        WARNING = "warning", "Avertissement"

    kind = models.CharField("type", max_length=20, choices=Kind.choices, db_index=True)
    level = models.CharField("niveau", max_length=10, choices=Level.choices, default=Level.INFO)
    title = models.CharField("titre", max_length=200)
    message = models.TextField("message")
    reference = models.CharField("reference", max_length=64, db_index=True)
    payload = models.JSONField("donnees supplementaires", default=dict, blank=True)

    is_read = models.BooleanField("lu", default=False, db_index=True)
    read_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="read_notifications",
        verbose_name="lu par",
    )
    read_at = models.DateTimeField("lu le", null=True, blank=True)

    class Meta:
        verbose_name = "Notification"
        verbose_name_plural = "Notifications"
        ordering = ["-created_at"]

    def __str__(self):
        return f"[{self.get_kind_display()}] {self.title}"

    def mark_as_read(self, user):
        """Mark this notification as read by *user*."""
        self.is_read = True
        self.read_by = user
        self.read_at = timezone.now()
        self.save(update_fields=["is_read", "read_by", "read_at", "updated_at"])
