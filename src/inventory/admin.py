"""Admin configuration for the inventory app."""
from django.contrib import admin

from .models import FinishedGood, FormulaComponent, InventoryMovement, RawMaterial


class FormulaComponentInline(admin.TabularInline):
    model = FormulaComponent
    extra = 0
    autocomplete_fields = ("raw_material",)


@admin.register(RawMaterial)
class RawMaterialAdmin(admin.ModelAdmin):
    list_display = ("name", "category", "quantity", "unit", "unit_cost", "updated_at")
    list_filter = ("category", "unit")
    search_fields = ("name", "category")


@admin.register(FinishedGood)
class FinishedGoodAdmin(admin.ModelAdmin):
    list_display = ("product_name", "quantity", "unit_cost", "selling_price", "updated_at")
    search_fields = ("product_name",)
    inlines = [FormulaComponentInline]


@admin.register(InventoryMovement)
class InventoryMovementAdmin(admin.ModelAdmin):
    list_display = ("item_name", "item_kind", "movement_type", "quantity", "reference", "actor", "created_at")
    list_filter = ("item_kind", "movement_type", "created_at")
    search_fields = ("item_name", "reference")
    readonly_fields = ("created_at",)
    date_hierarchy = "created_at"
    list_select_related = ("actor",)
