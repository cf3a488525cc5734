"""Models for the distributors app."""
from django.db import models

from core.models import TimeStampedModel


class Distributor(TimeStampedModel):
    """A customer buying finished goods for resale.

    ``tier`` is free text; the usual values are listed in ``Tier`` and
    commission rules may target either the tier or the distributor name.
    """

    class Tier(models.TextChoices):
        TIER_1 = "Tier 1", "Niveau 1"
        TIER_2 = "Tier 2", "Niveau 2"
        TIER_3 = "Tier 3", "Niveau 3"

    name = models.CharField("nom", max_length=255, unique=True)
    tier = models.CharField("niveau", max_length=50, blank=True, default="", db_index=True)
    location = models.CharField("localisation", max_length=255, blank=True, default="")
    email = models.EmailField("e-mail", blank=True, default="")
    phone = models.CharField("telephone", max_length=30, blank=True, default="")

    class Meta:
        db_table = "distributors"
        ordering = ["name"]
        verbose_name = "Distributeur"
        verbose_name_plural = "Distributeurs"

    def __str__(self):
        return self.name
