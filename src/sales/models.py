"""Models for the sales app: invoices, payments and returns."""
from decimal import Decimal

from django.conf import settings
from django.db import models

from core.models import TimeStampedModel


class PaymentMethod(models.TextChoices):
    CASH = "Cash", "Especes"
    CARD = "Card", "Carte"
    BANK_TRANSFER = "Bank Transfer", "Virement bancaire"


class Invoice(TimeStampedModel):
    """A sale of finished goods to a distributor.

    ``status`` and ``due_amount`` always follow from ``total_amount`` and
    ``paid_amount`` (see ``sales.status``), except once cancelled.
    """

    class Status(models.TextChoices):
        UNPAID = "Unpaid", "Non payee"
        PARTIALLY_PAID = "Partially Paid", "Partiellement payee"
        PAID = "Paid", "Payee"
        CANCELLED = "Cancelled", "Annulee"

    invoice_number = models.CharField("numero de facture", max_length=20, unique=True)
    distributor = models.ForeignKey(
        "distributors.Distributor",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="invoices",
        verbose_name="distributeur",
    )
    customer = models.CharField("client", max_length=255)
    customer_email = models.EmailField("e-mail du client", blank=True, default="")
    salesperson = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="invoices",
        verbose_name="commercial",
    )
    date = models.DateField("date", db_index=True)
    due_date = models.DateField("echeance", db_index=True)

    subtotal = models.DecimalField("sous-total", max_digits=14, decimal_places=2, default=Decimal("0.00"))
    discount = models.DecimalField("remise", max_digits=14, decimal_places=2, default=Decimal("0.00"))
    tax_rate = models.DecimalField("taux de taxe (%)", max_digits=5, decimal_places=2, default=Decimal("0.00"))
    tax_amount = models.DecimalField("taxe", max_digits=14, decimal_places=2, default=Decimal("0.00"))
    total_amount = models.DecimalField("total", max_digits=14, decimal_places=2, default=Decimal("0.00"))
    paid_amount = models.DecimalField("montant paye", max_digits=14, decimal_places=2, default=Decimal("0.00"))
    due_amount = models.DecimalField("montant du", max_digits=14, decimal_places=2, default=Decimal("0.00"))

    status = models.CharField(
        "statut",
        max_length=20,
        choices=Status.choices,
        default=Status.UNPAID,
        db_index=True,
    )
    notes = models.TextField("notes", blank=True, default="")
    cancelled_at = models.DateTimeField("annulee le", null=True, blank=True)
    cancellation_reason = models.TextField("motif d'annulation", blank=True, default="")

    class Meta:
        db_table = "invoices"
        ordering = ["-date", "-created_at"]
        verbose_name = "Facture"
        verbose_name_plural = "Factures"
        indexes = [
            models.Index(fields=["status", "due_date"]),
        ]

    def __str__(self):
        return f"{self.invoice_number} - {self.customer}"


class InvoiceItem(TimeStampedModel):
    """A line of an invoice."""

    invoice = models.ForeignKey(
        Invoice,
        on_delete=models.CASCADE,
        related_name="items",
        verbose_name="facture",
    )
    product = models.ForeignKey(
        "inventory.FinishedGood",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="invoice_items",
        verbose_name="produit",
    )
    description = models.CharField("designation", max_length=255)
    quantity = models.PositiveIntegerField("quantite")
    unit_price = models.DecimalField("prix unitaire", max_digits=14, decimal_places=2)
    total = models.DecimalField("total ligne", max_digits=14, decimal_places=2)

    class Meta:
        ordering = ["created_at"]
        verbose_name = "Ligne de facture"
        verbose_name_plural = "Lignes de facture"

    def __str__(self):
        return f"{self.quantity} x {self.description}"


class InvoicePayment(TimeStampedModel):
    """A payment received against an invoice."""

    invoice = models.ForeignKey(
        Invoice,
        on_delete=models.CASCADE,
        related_name="payments",
        verbose_name="facture",
    )
    amount = models.DecimalField("montant", max_digits=14, decimal_places=2)
    method = models.CharField("mode de paiement", max_length=20, choices=PaymentMethod.choices)
    date = models.DateField("date")
    reference = models.CharField("reference", max_length=255, blank=True, default="")
    received_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="invoice_payments",
        verbose_name="encaisse par",
    )

    class Meta:
        ordering = ["-date", "-created_at"]
        verbose_name = "Paiement de facture"
        verbose_name_plural = "Paiements de facture"

    def __str__(self):
        return f"{self.amount} ({self.get_method_display()}) - {self.invoice.invoice_number}"


class SalesReturn(TimeStampedModel):
    """Goods sent back against an unpaid or partially paid invoice."""

    invoice = models.ForeignKey(
        Invoice,
        on_delete=models.PROTECT,
        related_name="returns",
        verbose_name="facture",
    )
    customer = models.CharField("client", max_length=255)
    date = models.DateField("date")
    total_amount = models.DecimalField("montant du retour", max_digits=14, decimal_places=2)
    total_quantity = models.PositiveIntegerField("quantite retournee")
    reason = models.TextField("motif", blank=True, default="")
    valuation = models.CharField("valorisation", max_length=20)
    processed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="sales_returns",
        verbose_name="traite par",
    )

    class Meta:
        db_table = "sales_returns"
        ordering = ["-date", "-created_at"]
        verbose_name = "Retour client"
        verbose_name_plural = "Retours clients"

    def __str__(self):
        return f"Retour {self.invoice.invoice_number} ({self.total_amount})"


class SalesReturnItem(models.Model):
    sales_return = models.ForeignKey(
        SalesReturn,
        on_delete=models.CASCADE,
        related_name="items",
        verbose_name="retour",
    )
    product = models.ForeignKey(
        "inventory.FinishedGood",
        on_delete=models.PROTECT,
        related_name="return_items",
        verbose_name="produit",
    )
    quantity = models.PositiveIntegerField("quantite")
    unit_value = models.DecimalField("valeur unitaire", max_digits=14, decimal_places=2)
    total = models.DecimalField("total", max_digits=14, decimal_places=2)

    class Meta:
        verbose_name = "Ligne de retour"
        verbose_name_plural = "Lignes de retour"

    def __str__(self):
        return f"{self.quantity} x {self.product}"
