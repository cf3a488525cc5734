"""FilterSets for API v1.

Every list endpoint accepts ``updated_after`` so clients can poll for
rows changed since their last fetch.
"""
import django_filters

from commissions.models import CommissionRule, SalesCommission
from inventory.models import FinishedGood, InventoryMovement, RawMaterial
from purchases.models import PurchaseOrder
from sales.models import Invoice


class UpdatedAfterFilterSet(django_filters.FilterSet):
    updated_after = django_filters.IsoDateTimeFilter(field_name="updated_at", lookup_expr="gt")


def updated_after_filterset(model_class, field_list):
    """Build a FilterSet for ``model_class`` with ``updated_after`` and exact filters on ``field_list``."""
    meta = type("Meta", (), {"model": model_class, "fields": list(field_list)})
    return type(f"{model_class.__name__}FilterSet", (UpdatedAfterFilterSet,), {"Meta": meta})


class InvoiceFilterSet(UpdatedAfterFilterSet):
    date_from = django_filters.DateFilter(field_name="date", lookup_expr="gte")
    date_to = django_filters.DateFilter(field_name="date", lookup_expr="lte")
    due_before = django_filters.DateFilter(field_name="due_date", lookup_expr="lte")

    class Meta:
        model = Invoice
        fields = ["status", "distributor", "salesperson"]


class PurchaseOrderFilterSet(UpdatedAfterFilterSet):
    date_from = django_filters.DateFilter(field_name="date", lookup_expr="gte")
    date_to = django_filters.DateFilter(field_name="date", lookup_expr="lte")

    class Meta:
        model = PurchaseOrder
        fields = ["supplier", "delivery_status", "payment_status"]


class RawMaterialFilterSet(UpdatedAfterFilterSet):
    below = django_filters.NumberFilter(field_name="quantity", lookup_expr="lt")

    class Meta:
        model = RawMaterial
        fields = ["category", "unit"]


class FinishedGoodFilterSet(UpdatedAfterFilterSet):
    in_stock = django_filters.BooleanFilter(method="filter_in_stock")

    class Meta:
        model = FinishedGood
        fields = []

    def filter_in_stock(self, queryset, name, value):
        if value:
            return queryset.filter(quantity__gt=0)
        return queryset.filter(quantity=0)


class CommissionRuleFilterSet(UpdatedAfterFilterSet):
    class Meta:
        model = CommissionRule
        fields = ["type", "is_active"]


class SalesCommissionFilterSet(UpdatedAfterFilterSet):
    date_from = django_filters.DateFilter(field_name="sale_date", lookup_expr="gte")
    date_to = django_filters.DateFilter(field_name="sale_date", lookup_expr="lte")

    class Meta:
        model = SalesCommission
        fields = ["salesperson", "distributor", "invoice", "rule"]


class InventoryMovementFilterSet(UpdatedAfterFilterSet):
    class Meta:
        model = InventoryMovement
        fields = ["item_kind", "item_id", "movement_type"]
