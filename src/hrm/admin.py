from django.contrib import admin

from .models import SalaryPayment


@admin.register(SalaryPayment)
class SalaryPaymentAdmin(admin.ModelAdmin):
    list_display = ("employee_name", "position", "payment_date", "amount")
    list_filter = ("payment_date",)
    search_fields = ("employee_name", "position")
    date_hierarchy = "payment_date"
