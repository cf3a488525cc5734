from django.contrib import admin

from .models import PurchaseOrder, PurchaseOrderItem, PurchasePayment, Supplier


@admin.register(Supplier)
class SupplierAdmin(admin.ModelAdmin):
    list_display = ("name", "category", "contact_person", "phone", "email", "status")
    list_filter = ("status", "category")
    search_fields = ("name", "contact_person", "phone", "email")


class PurchaseOrderItemInline(admin.TabularInline):
    model = PurchaseOrderItem
    extra = 0


class PurchasePaymentInline(admin.TabularInline):
    model = PurchasePayment
    extra = 0


@admin.register(PurchaseOrder)
class PurchaseOrderAdmin(admin.ModelAdmin):
    list_display = (
        "po_number", "supplier_name", "date", "amount", "paid_amount",
        "due_amount", "payment_status", "delivery_status",
    )
    list_filter = ("delivery_status", "payment_status", "date")
    search_fields = ("po_number", "supplier_name")
    readonly_fields = ("amount", "paid_amount", "due_amount", "payment_status", "delivery_status")
    inlines = [PurchaseOrderItemInline, PurchasePaymentInline]
    list_select_related = ("supplier", "created_by")
    date_hierarchy = "date"
