from django.contrib import admin

from .models import ProductionOrder


@admin.register(ProductionOrder)
class ProductionOrderAdmin(admin.ModelAdmin):
    list_display = ("product_name", "quantity", "status", "total_cost", "unit_cost", "start_date")
    list_filter = ("status", "start_date")
    search_fields = ("product_name",)
    readonly_fields = ("material_cost", "total_cost", "unit_cost")
