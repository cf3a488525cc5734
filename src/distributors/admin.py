from django.contrib import admin

from .models import Distributor


@admin.register(Distributor)
class DistributorAdmin(admin.ModelAdmin):
    list_display = ("name", "tier", "location", "email", "phone")
    list_filter = ("tier",)
    search_fields = ("name", "email", "phone", "location")
