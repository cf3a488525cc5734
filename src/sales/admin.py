"""Admin configuration for the sales app."""
from django.contrib import admin

from sales.models import Invoice, InvoiceItem, InvoicePayment, SalesReturn, SalesReturnItem


class InvoiceItemInline(admin.TabularInline):
    model = InvoiceItem
    extra = 0
    readonly_fields = ("total",)
    fields = ("product", "description", "quantity", "unit_price", "total")


class InvoicePaymentInline(admin.TabularInline):
    model = InvoicePayment
    extra = 0
    fields = ("date", "amount", "method", "reference", "received_by")


@admin.register(Invoice)
class InvoiceAdmin(admin.ModelAdmin):
    """Invoices are changed through the workflows; totals stay read-only here."""

    list_display = (
        "invoice_number",
        "customer",
        "salesperson",
        "date",
        "due_date",
        "status",
        "total_amount",
        "paid_amount",
        "due_amount",
    )
    list_filter = ("status", "date", "due_date")
    search_fields = ("invoice_number", "customer", "customer_email")
    readonly_fields = (
        "id",
        "invoice_number",
        "subtotal",
        "tax_amount",
        "total_amount",
        "paid_amount",
        "due_amount",
        "status",
        "cancelled_at",
        "created_at",
        "updated_at",
    )
    raw_id_fields = ("distributor", "salesperson")
    inlines = [InvoiceItemInline, InvoicePaymentInline]
    date_hierarchy = "date"
    list_select_related = ("salesperson",)
    list_per_page = 50


class SalesReturnItemInline(admin.TabularInline):
    model = SalesReturnItem
    extra = 0


@admin.register(SalesReturn)
class SalesReturnAdmin(admin.ModelAdmin):
    list_display = ("invoice", "customer", "date", "total_amount", "total_quantity", "valuation")
    list_filter = ("valuation", "date")
    search_fields = ("invoice__invoice_number", "customer", "reason")
    inlines = [SalesReturnItemInline]
    list_select_related = ("invoice",)
