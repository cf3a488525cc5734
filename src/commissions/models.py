"""Commission rules and the sales-commission ledger."""
from decimal import Decimal

from django.conf import settings
from django.db import models

from core.models import TimeStampedModel


class CommissionType(models.TextChoices):
    PERCENTAGE = "Percentage", "Pourcentage"
    FIXED = "Fixed", "Montant fixe"


class CommissionRule(TimeStampedModel):
    """
    A matcher that earns a commission on qualifying invoice lines.

    ``applies_to`` is a list of tokens; the rule applies to a line when
    any token equals the product name, the distributor name or the
    distributor tier.
    """

    rule_name = models.CharField("nom de la regle", max_length=255)
    applies_to = models.JSONField("s'applique a", default=list, blank=True)
    type = models.CharField("type", max_length=20, choices=CommissionType.choices)
    rate = models.DecimalField("taux / montant", max_digits=12, decimal_places=2)
    is_active = models.BooleanField("active", default=True, db_index=True)

    class Meta:
        db_table = "commissions"
        ordering = ["rule_name"]
        verbose_name = "Regle de commission"
        verbose_name_plural = "Regles de commission"

    def __str__(self):
        return self.rule_name


class SalesCommission(TimeStampedModel):
    """One earned commission: a single (invoice line, rule) pair."""

    salesperson = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="sales_commissions",
        verbose_name="commercial",
    )
    invoice = models.ForeignKey(
        "sales.Invoice",
        on_delete=models.CASCADE,
        related_name="commissions",
        verbose_name="facture",
    )
    invoice_item = models.ForeignKey(
        "sales.InvoiceItem",
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="commissions",
        verbose_name="ligne de facture",
    )
    product = models.ForeignKey(
        "inventory.FinishedGood",
        on_delete=models.PROTECT,
        related_name="sales_commissions",
        verbose_name="produit",
    )
    product_name = models.CharField("produit", max_length=255)
    distributor = models.ForeignKey(
        "distributors.Distributor",
        on_delete=models.PROTECT,
        related_name="sales_commissions",
        verbose_name="distributeur",
    )
    distributor_name = models.CharField("distributeur", max_length=255)
    rule = models.ForeignKey(
        CommissionRule,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="sales_commissions",
        verbose_name="regle",
    )
    rule_name = models.CharField("regle", max_length=255)
    commission_type = models.CharField("type", max_length=20, choices=CommissionType.choices)
    commission_rate = models.DecimalField("taux", max_digits=12, decimal_places=2)
    sale_date = models.DateField("date de vente", db_index=True)
    sale_amount = models.DecimalField("montant de la vente", max_digits=14, decimal_places=2)
    discount_amount = models.DecimalField(
        "remise", max_digits=14, decimal_places=2, default=Decimal("0.00"),
    )
    net_sale_amount = models.DecimalField("montant net", max_digits=14, decimal_places=2)
    commission_amount = models.DecimalField("commission", max_digits=14, decimal_places=2)

    class Meta:
        db_table = "sales_commissions"
        ordering = ["-sale_date", "-created_at"]
        verbose_name = "Commission sur vente"
        verbose_name_plural = "Commissions sur ventes"
        constraints = [
            models.UniqueConstraint(
                fields=["invoice_item", "rule"],
                name="unique_commission_per_line_and_rule",
            ),
        ]

    def __str__(self):
        return f"{self.rule_name}: {self.commission_amount} ({self.product_name})"
