"""HRM models: salary payments."""
from django.core.validators import MinValueValidator
from django.db import models

from core.models import TimeStampedModel


class SalaryPayment(TimeStampedModel):
    """Salaire verse a un employe."""

    employee_name = models.CharField("employe", max_length=255, db_index=True)
    position = models.CharField("poste", max_length=150, blank=True, default="")
    payment_date = models.DateField("date de paiement", db_index=True)
    amount = models.DecimalField(
        "montant", max_digits=14, decimal_places=2, validators=[MinValueValidator(0)],
    )
    notes = models.TextField("notes", blank=True, default="")

    class Meta:
        db_table = "salary_payments"
        verbose_name = "paiement de salaire"
        verbose_name_plural = "paiements de salaire"
        ordering = ["-payment_date", "employee_name"]

    def __str__(self):
        return f"{self.employee_name} - {self.payment_date} ({self.amount})"
