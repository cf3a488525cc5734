"""Production orders."""
from decimal import Decimal

from django.conf import settings
from django.db import models

from core.models import TimeStampedModel


class ProductionOrder(TimeStampedModel):
    """A costed run of a finished good."""

    class Status(models.TextChoices):
        PENDING = "Pending", "En attente"
        IN_PROGRESS = "In Progress", "En cours"
        COMPLETED = "Completed", "Terminee"
        CANCELLED = "Cancelled", "Annulee"

    finished_good = models.ForeignKey(
        "inventory.FinishedGood",
        on_delete=models.PROTECT,
        related_name="production_orders",
        verbose_name="produit fini",
    )
    product_name = models.CharField("produit", max_length=255)
    quantity = models.PositiveIntegerField("quantite")
    material_cost = models.DecimalField("cout matieres", max_digits=14, decimal_places=2)
    labour_cost = models.DecimalField("main d'oeuvre", max_digits=14, decimal_places=2, default=Decimal("0.00"))
    other_costs = models.DecimalField("autres couts", max_digits=14, decimal_places=2, default=Decimal("0.00"))
    wastage_value = models.DecimalField("pertes", max_digits=14, decimal_places=2, default=Decimal("0.00"))
    total_cost = models.DecimalField("cout total", max_digits=14, decimal_places=2)
    unit_cost = models.DecimalField("cout unitaire", max_digits=14, decimal_places=4)
    status = models.CharField(
        "statut", max_length=20, choices=Status.choices, default=Status.PENDING, db_index=True,
    )
    start_date = models.DateField("date de debut")
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="production_orders",
    )

    class Meta:
        db_table = "production_orders"
        ordering = ["-start_date", "-created_at"]
        verbose_name = "Ordre de production"
        verbose_name_plural = "Ordres de production"

    def __str__(self):
        return f"{self.product_name} x {self.quantity} ({self.get_status_display()})"
