"""Shared abstract models and the audit log."""
import uuid

from django.conf import settings
from django.db import models, transaction


class TimeStampedModel(models.Model):
    """Abstract base with a generated UUID key and creation/update timestamps."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    created_at = models.DateTimeField("cree le", auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField("modifie le", auto_now=True)

    class Meta:
        abstract = True


class AuditLog(models.Model):
    """Immutable log of every workflow that changed business data."""

    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="audit_logs",
    )
    action = models.CharField(max_length=100)
    entity_type = models.CharField(max_length=100, db_index=True)
    entity_id = models.CharField(max_length=255)
    before_json = models.JSONField(null=True, blank=True)
    after_json = models.JSONField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Journal d'audit"
        verbose_name_plural = "Journaux d'audit"
        indexes = [
            models.Index(fields=["action", "created_at"], name="audit_action_created_idx"),
            models.Index(fields=["entity_type", "created_at"], name="audit_entity_created_idx"),
        ]

    def __str__(self):
        return f"[{self.created_at}] {self.action} on {self.entity_type} #{self.entity_id}"


class DailySequence(models.Model):
    """Per-prefix, per-day document counter, incremented under a row lock."""

    prefix = models.CharField(max_length=10)
    day = models.DateField("jour")
    last_number = models.PositiveIntegerField(default=0)

    class Meta:
        unique_together = [("prefix", "day")]
        verbose_name = "Sequence"
        verbose_name_plural = "Sequences"

    def __str__(self):
        return f"{self.prefix} {self.day:%y%m%d} #{self.last_number}"

    @classmethod
    def next_number(cls, prefix, day, limit=None):
        """Reserve and return the next number for ``prefix`` on ``day``, starting at 1.

        Raises ``ValueError`` once ``limit`` numbers have been handed out for the day.
        """
        with transaction.atomic():
            cls.objects.get_or_create(prefix=prefix, day=day)
            locked = cls.objects.select_for_update().get(prefix=prefix, day=day)
            if limit is not None and locked.last_number >= limit:
                raise ValueError(f"Limite de numerotation atteinte pour {prefix} le {day:%d/%m/%Y} ({limit}).")
            locked.last_number += 1
            locked.save(update_fields=["last_number"])
        return locked.last_number
