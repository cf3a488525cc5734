"""Models for raw materials, finished goods and their movements."""
from decimal import Decimal

from django.conf import settings
from django.db import models

from core.models import TimeStampedModel


class RawMaterial(TimeStampedModel):
    """An input bought from suppliers and consumed by production."""

    class Unit(models.TextChoices):
        KG = "kg", "Kilogramme"
        LITRE = "litre", "Litre"
        PCS = "pcs", "Pieces"
        ML = "ml", "Millilitre"
        GM = "gm", "Gramme"

    name = models.CharField("nom", max_length=255, db_index=True)
    category = models.CharField("categorie", max_length=100, blank=True, default="")
    quantity = models.DecimalField(
        "quantite en stock", max_digits=14, decimal_places=3, default=Decimal("0.000"),
    )
    unit = models.CharField("unite", max_length=10, choices=Unit.choices, default=Unit.KG)
    unit_cost = models.DecimalField(
        "cout unitaire", max_digits=14, decimal_places=4, default=Decimal("0.0000"),
    )

    class Meta:
        db_table = "raw_materials"
        ordering = ["name"]
        verbose_name = "Matiere premiere"
        verbose_name_plural = "Matieres premieres"
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gte=0),
                name="raw_material_quantity_non_negative",
            ),
        ]

    def __str__(self):
        return f"{self.name} ({self.quantity} {self.unit})"

    @property
    def stock_value(self):
        return self.quantity * self.unit_cost


class FinishedGood(TimeStampedModel):
    """A sellable product made from a formula of raw materials."""

    product_name = models.CharField("produit", max_length=255, unique=True)
    quantity = models.IntegerField("quantite en stock", default=0)
    unit_cost = models.DecimalField(
        "cout unitaire", max_digits=14, decimal_places=4, default=Decimal("0.0000"),
    )
    selling_price = models.DecimalField(
        "prix de vente", max_digits=14, decimal_places=2, null=True, blank=True,
    )

    class Meta:
        db_table = "finished_goods"
        ordering = ["product_name"]
        verbose_name = "Produit fini"
        verbose_name_plural = "Produits finis"
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gte=0),
                name="finished_good_quantity_non_negative",
            ),
        ]

    def __str__(self):
        return self.product_name


class FormulaComponent(models.Model):
    """One line of a finished good's bill of materials."""

    finished_good = models.ForeignKey(
        FinishedGood,
        on_delete=models.CASCADE,
        related_name="formula",
        verbose_name="produit fini",
    )
    raw_material = models.ForeignKey(
        RawMaterial,
        on_delete=models.PROTECT,
        related_name="formula_usages",
        verbose_name="matiere premiere",
    )
    quantity_per_unit = models.DecimalField("quantite par unite", max_digits=12, decimal_places=4)
    position = models.PositiveIntegerField("ordre", default=0)

    class Meta:
        ordering = ["finished_good", "position"]
        verbose_name = "Composant de formule"
        verbose_name_plural = "Composants de formule"

    def __str__(self):
        return f"{self.finished_good} <- {self.quantity_per_unit} x {self.raw_material.name}"


class InventoryMovement(TimeStampedModel):
    """Records every stock change on raw materials and finished goods."""

    class ItemKind(models.TextChoices):
        RAW_MATERIAL = "RAW_MATERIAL", "Matiere premiere"
        FINISHED_GOOD = "FINISHED_GOOD", "Produit fini"

    class MovementType(models.TextChoices):
        SALE = "SALE", "Vente"
        SALE_CANCEL = "SALE_CANCEL", "Annulation de vente"
        RETURN = "RETURN", "Retour"
        PURCHASE = "PURCHASE", "Achat"
        PRODUCTION = "PRODUCTION", "Production"
        ADJUST = "ADJUST", "Ajustement"

    item_kind = models.CharField("type d'article", max_length=20, choices=ItemKind.choices)
    item_id = models.UUIDField("article", db_index=True)
    item_name = models.CharField("libelle", max_length=255, blank=True, default="")
    movement_type = models.CharField("type de mouvement", max_length=20, choices=MovementType.choices)
    quantity = models.DecimalField(
        "quantite",
        max_digits=14,
        decimal_places=3,
        help_text="Positif pour les entrees, negatif pour les sorties.",
    )
    reference = models.CharField(
        "reference",
        max_length=255,
        blank=True,
        default="",
        help_text="Numero de facture, bon de commande, etc.",
    )
    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="inventory_movements",
        verbose_name="utilisateur",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Mouvement de stock"
        verbose_name_plural = "Mouvements de stock"

    def __str__(self):
        return f"{self.get_movement_type_display()} {self.item_name} ({self.quantity:+})"
