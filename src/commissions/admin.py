from django.contrib import admin

from .models import CommissionRule, SalesCommission


@admin.register(CommissionRule)
class CommissionRuleAdmin(admin.ModelAdmin):
    list_display = ("rule_name", "type", "rate", "applies_to", "is_active")
    list_filter = ("type", "is_active")
    search_fields = ("rule_name",)


@admin.register(SalesCommission)
class SalesCommissionAdmin(admin.ModelAdmin):
    list_display = (
        "invoice", "product_name", "distributor_name", "rule_name",
        "sale_amount", "commission_amount", "salesperson", "sale_date",
    )
    list_filter = ("commission_type", "sale_date")
    search_fields = ("invoice__invoice_number", "product_name", "distributor_name", "rule_name")
    date_hierarchy = "sale_date"
    list_select_related = ("invoice", "salesperson")
    readonly_fields = ("created_at",)
