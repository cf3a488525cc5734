"""Serializers for API v1."""
from decimal import Decimal

from django.contrib.auth import get_user_model
from rest_framework import serializers

from alerts.models import Notification
from commissions.models import CommissionRule, CommissionType, SalesCommission
from distributors.models import Distributor
from expenses.models import Expense
from hrm.models import SalaryPayment
from inventory.models import FinishedGood, FormulaComponent, InventoryMovement, RawMaterial
from production.models import ProductionOrder
from purchases.models import PurchaseOrder, PurchaseOrderItem, PurchasePayment, Supplier
from sales.models import (
    Invoice,
    InvoiceItem,
    InvoicePayment,
    PaymentMethod,
    SalesReturn,
    SalesReturnItem,
)

User = get_user_model()


# ---------------------------------------------------------------------------
# Users / master data
# ---------------------------------------------------------------------------

class UserSerializer(serializers.ModelSerializer):
    full_name = serializers.CharField(source="get_full_name", read_only=True)

    class Meta:
        model = User
        fields = ["id", "email", "first_name", "last_name", "full_name", "phone", "role", "is_active"]
        read_only_fields = ["id"]


class DistributorSerializer(serializers.ModelSerializer):
    class Meta:
        model = Distributor
        fields = ["id", "name", "tier", "location", "email", "phone", "created_at", "updated_at"]
        read_only_fields = ["id", "created_at", "updated_at"]


class SupplierSerializer(serializers.ModelSerializer):
    class Meta:
        model = Supplier
        fields = [
            "id", "name", "category", "contact_person", "phone", "email", "address",
            "status", "created_at", "updated_at",
        ]
        read_only_fields = ["id", "created_at", "updated_at"]


# ---------------------------------------------------------------------------
# Inventory
# ---------------------------------------------------------------------------

class RawMaterialSerializer(serializers.ModelSerializer):
    class Meta:
        model = RawMaterial
        fields = ["id", "name", "category", "quantity", "unit", "unit_cost", "created_at", "updated_at"]
        read_only_fields = ["id", "quantity", "unit_cost", "created_at", "updated_at"]


class RawMaterialCreateSerializer(RawMaterialSerializer):
    """Opening stock and cost are only accepted when the material is created.

    Later changes go through purchase receipts.
    """

    class Meta(RawMaterialSerializer.Meta):
        read_only_fields = ["id", "created_at", "updated_at"]

    def validate_quantity(self, value):
        if value < 0:
            raise serializers.ValidationError("La quantite ne peut pas etre negative.")
        return value


class FormulaComponentSerializer(serializers.ModelSerializer):
    raw_material_name = serializers.CharField(source="raw_material.name", read_only=True)

    class Meta:
        model = FormulaComponent
        fields = ["raw_material", "raw_material_name", "quantity_per_unit", "position"]


class FinishedGoodSerializer(serializers.ModelSerializer):
    formula = FormulaComponentSerializer(many=True, read_only=True)

    class Meta:
        model = FinishedGood
        fields = [
            "id", "product_name", "quantity", "unit_cost", "selling_price",
            "formula", "created_at", "updated_at",
        ]
        read_only_fields = ["id", "quantity", "unit_cost", "created_at", "updated_at"]


class _FormulaComponentInputSerializer(serializers.Serializer):
    raw_material_id = serializers.UUIDField()
    quantity_per_unit = serializers.DecimalField(max_digits=12, decimal_places=4, min_value=Decimal("0.0001"))


class FormulaCreateSerializer(serializers.Serializer):
    product_name = serializers.CharField(max_length=255)
    selling_price = serializers.DecimalField(
        max_digits=14, decimal_places=2, min_value=Decimal("0.00"), required=False, allow_null=True,
    )
    components = _FormulaComponentInputSerializer(many=True)

    def validate_components(self, value):
        if not value:
            raise serializers.ValidationError("Au moins un composant est requis.")
        return value


class InventoryMovementSerializer(serializers.ModelSerializer):
    class Meta:
        model = InventoryMovement
        fields = [
            "id", "item_kind", "item_id", "item_name", "movement_type",
            "quantity", "reference", "actor", "created_at",
        ]
        read_only_fields = fields


# ---------------------------------------------------------------------------
# Commissions
# ---------------------------------------------------------------------------

class CommissionRuleSerializer(serializers.ModelSerializer):
    applies_to = serializers.ListField(child=serializers.CharField(max_length=255), allow_empty=True)

    class Meta:
        model = CommissionRule
        fields = ["id", "rule_name", "applies_to", "type", "rate", "is_active", "created_at", "updated_at"]
        read_only_fields = ["id", "created_at", "updated_at"]

    def validate(self, attrs):
        rate = attrs.get("rate", getattr(self.instance, "rate", None))
        kind = attrs.get("type", getattr(self.instance, "type", None))
        if rate is not None and rate < 0:
            raise serializers.ValidationError({"rate": "Le taux ne peut pas etre negatif."})
        if kind == CommissionType.PERCENTAGE and rate is not None and rate > 100:
            raise serializers.ValidationError({"rate": "Un pourcentage ne peut pas depasser 100."})
        return attrs


class SalesCommissionSerializer(serializers.ModelSerializer):
    invoice_number = serializers.CharField(source="invoice.invoice_number", read_only=True)

    class Meta:
        model = SalesCommission
        fields = [
            "id", "salesperson", "invoice", "invoice_number", "product", "product_name",
            "distributor", "distributor_name", "rule", "rule_name", "commission_type",
            "commission_rate", "sale_date", "sale_amount", "discount_amount",
            "net_sale_amount", "commission_amount", "created_at", "updated_at",
        ]
        read_only_fields = fields


# ---------------------------------------------------------------------------
# Sales
# ---------------------------------------------------------------------------

class InvoiceItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = InvoiceItem
        fields = ["id", "product", "description", "quantity", "unit_price", "total"]
        read_only_fields = fields


class InvoicePaymentSerializer(serializers.ModelSerializer):
    class Meta:
        model = InvoicePayment
        fields = ["id", "amount", "method", "date", "reference", "received_by", "created_at"]
        read_only_fields = fields


class InvoiceSerializer(serializers.ModelSerializer):
    items = InvoiceItemSerializer(many=True, read_only=True)
    payments = InvoicePaymentSerializer(many=True, read_only=True)
    salesperson_name = serializers.SerializerMethodField()
    is_overdue = serializers.SerializerMethodField()

    class Meta:
        model = Invoice
        fields = [
            "id", "invoice_number", "distributor", "customer", "customer_email",
            "salesperson", "salesperson_name", "date", "due_date", "subtotal",
            "discount", "tax_rate", "tax_amount", "total_amount", "paid_amount",
            "due_amount", "status", "is_overdue", "notes", "cancelled_at",
            "cancellation_reason", "items", "payments", "created_at", "updated_at",
        ]
        read_only_fields = fields

    def get_salesperson_name(self, obj):
        return obj.salesperson.get_full_name() if obj.salesperson else None

    def get_is_overdue(self, obj):
        from sales.services import is_overdue
        return is_overdue(obj)


class _InvoiceItemInputSerializer(serializers.Serializer):
    product_id = serializers.UUIDField(required=False, allow_null=True)
    description = serializers.CharField(required=False, allow_blank=True, default="")
    quantity = serializers.IntegerField(min_value=1)
    unit_price = serializers.DecimalField(max_digits=14, decimal_places=2, min_value=Decimal("0.00"))

    def validate(self, attrs):
        if not attrs.get("product_id") and not attrs.get("description"):
            raise serializers.ValidationError("Un produit ou une designation est requis.")
        return attrs


class _PaymentInputSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=14, decimal_places=2, min_value=Decimal("0.01"))
    method = serializers.ChoiceField(choices=PaymentMethod.choices, default=PaymentMethod.CASH)
    date = serializers.DateField(required=False)
    reference = serializers.CharField(required=False, allow_blank=True, default="")


class InvoiceCreateSerializer(serializers.Serializer):
    distributor = serializers.UUIDField(required=False, allow_null=True)
    customer = serializers.CharField(required=False, allow_blank=True, default="")
    customer_email = serializers.EmailField(required=False, allow_blank=True, default="")
    date = serializers.DateField(required=False)
    due_date = serializers.DateField(required=False)
    discount = serializers.DecimalField(max_digits=14, decimal_places=2, min_value=Decimal("0.00"), default=Decimal("0"))
    tax_rate = serializers.DecimalField(max_digits=5, decimal_places=2, min_value=Decimal("0.00"), default=Decimal("0"))
    notes = serializers.CharField(required=False, allow_blank=True, default="")
    items = _InvoiceItemInputSerializer(many=True)
    payments = _PaymentInputSerializer(many=True, required=False, default=list)

    def validate_items(self, value):
        if not value:
            raise serializers.ValidationError("La facture doit contenir au moins un article.")
        return value

    def validate(self, attrs):
        if not attrs.get("distributor") and not attrs.get("customer"):
            raise serializers.ValidationError({"distributor": "Veuillez selectionner un distributeur."})
        return attrs


class InvoiceCancelSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default="")


class InvoicePaymentCreateSerializer(_PaymentInputSerializer):
    pass


class _ReturnItemInputSerializer(serializers.Serializer):
    product_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)


class SalesReturnCreateSerializer(serializers.Serializer):
    items = _ReturnItemInputSerializer(many=True)
    reason = serializers.CharField(required=False, allow_blank=True, default="")
    date = serializers.DateField(required=False)

    def validate_items(self, value):
        if not value:
            raise serializers.ValidationError("Le retour doit contenir au moins un article.")
        return value


class SalesReturnItemSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source="product.product_name", read_only=True)

    class Meta:
        model = SalesReturnItem
        fields = ["id", "product", "product_name", "quantity", "unit_value", "total"]
        read_only_fields = fields


class SalesReturnSerializer(serializers.ModelSerializer):
    items = SalesReturnItemSerializer(many=True, read_only=True)
    invoice_number = serializers.CharField(source="invoice.invoice_number", read_only=True)

    class Meta:
        model = SalesReturn
        fields = [
            "id", "invoice", "invoice_number", "customer", "date", "total_amount",
            "total_quantity", "reason", "valuation", "processed_by", "items",
            "created_at", "updated_at",
        ]
        read_only_fields = fields


# ---------------------------------------------------------------------------
# Purchases
# ---------------------------------------------------------------------------

class PurchaseOrderItemSerializer(serializers.ModelSerializer):
    raw_material_name = serializers.CharField(source="raw_material.name", read_only=True)

    class Meta:
        model = PurchaseOrderItem
        fields = ["id", "raw_material", "raw_material_name", "quantity", "unit_cost", "line_total"]
        read_only_fields = fields


class PurchasePaymentSerializer(serializers.ModelSerializer):
    class Meta:
        model = PurchasePayment
        fields = ["id", "amount", "date", "reference", "paid_by", "created_at"]
        read_only_fields = fields


class PurchaseOrderSerializer(serializers.ModelSerializer):
    items = PurchaseOrderItemSerializer(many=True, read_only=True)
    payments = PurchasePaymentSerializer(many=True, read_only=True)

    class Meta:
        model = PurchaseOrder
        fields = [
            "id", "po_number", "supplier", "supplier_name", "created_by", "date",
            "subtotal", "discount", "tax", "amount", "paid_amount", "due_amount",
            "payment_status", "delivery_status", "received_at", "notes",
            "items", "payments", "created_at", "updated_at",
        ]
        read_only_fields = fields


class _PurchaseOrderItemInputSerializer(serializers.Serializer):
    raw_material_id = serializers.UUIDField()
    quantity = serializers.DecimalField(max_digits=14, decimal_places=3, min_value=Decimal("0.001"))
    unit_cost = serializers.DecimalField(max_digits=14, decimal_places=4, min_value=Decimal("0.0000"))


class PurchaseOrderCreateSerializer(serializers.Serializer):
    supplier = serializers.UUIDField()
    date = serializers.DateField(required=False)
    discount = serializers.DecimalField(max_digits=14, decimal_places=2, min_value=Decimal("0.00"), default=Decimal("0"))
    tax = serializers.DecimalField(max_digits=14, decimal_places=2, min_value=Decimal("0.00"), default=Decimal("0"))
    paid_amount = serializers.DecimalField(
        max_digits=14, decimal_places=2, min_value=Decimal("0.00"), default=Decimal("0"),
    )
    notes = serializers.CharField(required=False, allow_blank=True, default="")
    items = _PurchaseOrderItemInputSerializer(many=True)

    def validate_items(self, value):
        if not value:
            raise serializers.ValidationError("Au moins une ligne est requise.")
        return value


class PurchaseOrderCancelSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default="")


class PurchasePaymentCreateSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=14, decimal_places=2, min_value=Decimal("0.01"))
    date = serializers.DateField(required=False)
    reference = serializers.CharField(required=False, allow_blank=True, default="")


# ---------------------------------------------------------------------------
# Production / expenses / HRM / notifications
# ---------------------------------------------------------------------------

class ProductionOrderSerializer(serializers.ModelSerializer):
    class Meta:
        model = ProductionOrder
        fields = [
            "id", "finished_good", "product_name", "quantity", "material_cost",
            "labour_cost", "other_costs", "wastage_value", "total_cost", "unit_cost",
            "status", "start_date", "created_by", "created_at", "updated_at",
        ]
        read_only_fields = [
            "id", "product_name", "material_cost", "total_cost", "unit_cost",
            "created_by", "created_at", "updated_at",
        ]


class ProductionOrderCreateSerializer(serializers.Serializer):
    finished_good = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)
    labour_cost = serializers.DecimalField(max_digits=14, decimal_places=2, min_value=Decimal("0.00"), default=Decimal("0"))
    other_costs = serializers.DecimalField(max_digits=14, decimal_places=2, min_value=Decimal("0.00"), default=Decimal("0"))
    wastage_value = serializers.DecimalField(
        max_digits=14, decimal_places=2, min_value=Decimal("0.00"), default=Decimal("0"),
    )
    status = serializers.ChoiceField(choices=ProductionOrder.Status.choices, default=ProductionOrder.Status.PENDING)
    start_date = serializers.DateField(required=False)


class ExpenseSerializer(serializers.ModelSerializer):
    class Meta:
        model = Expense
        fields = ["id", "category", "description", "date", "amount", "created_by", "created_at", "updated_at"]
        read_only_fields = ["id", "created_by", "created_at", "updated_at"]


class SalaryPaymentSerializer(serializers.ModelSerializer):
    class Meta:
        model = SalaryPayment
        fields = ["id", "employee_name", "position", "payment_date", "amount", "notes", "created_at", "updated_at"]
        read_only_fields = ["id", "created_at", "updated_at"]


class NotificationSerializer(serializers.ModelSerializer):
    class Meta:
        model = Notification
        fields = [
            "id", "kind", "level", "title", "message", "reference", "payload",
            "is_read", "read_by", "read_at", "created_at", "updated_at",
        ]
        read_only_fields = fields
