"""Operating expenses."""
from __future__ import annotations

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models

from core.models import TimeStampedModel


class Expense(TimeStampedModel):
    """An operating expense, counted in the income statement."""

    class Category(models.TextChoices):
        UTILITIES = "Utilities", "Charges"
        RENT = "Rent", "Loyer"
        TRANSPORT = "Transport", "Transport"
        MAINTENANCE = "Maintenance", "Entretien"
        MARKETING = "Marketing", "Marketing"
        OTHER = "Other", "Autre"

    category = models.CharField("categorie", max_length=50, default=Category.OTHER, db_index=True)
    description = models.CharField("description", max_length=255)
    date = models.DateField("date", db_index=True)
    amount = models.DecimalField(
        "montant", max_digits=14, decimal_places=2, validators=[MinValueValidator(0)],
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="expenses",
        verbose_name="saisi par",
    )

    class Meta:
        db_table = "expenses"
        verbose_name = "depense"
        verbose_name_plural = "depenses"
        ordering = ["-date", "-created_at"]

    def __str__(self) -> str:
        return f"{self.description} ({self.amount})"
