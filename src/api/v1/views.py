"""ViewSets and API views for the BizFin API v1."""
import logging

from django.contrib.auth import get_user_model
from django.db import DatabaseError
from django.shortcuts import get_object_or_404
from django.utils import timezone
from django.utils.dateparse import parse_date
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from alerts.models import Notification
from commissions.models import CommissionRule, SalesCommission
from core.db import retry_on_conflict
from core.exceptions import InsufficientStockError
from distributors.models import Distributor
from expenses.models import Expense
from hrm.models import SalaryPayment
from inventory.models import FinishedGood, InventoryMovement, RawMaterial
from production.models import ProductionOrder
from purchases.models import PurchaseOrder, Supplier
from reports import services as report_services
from sales.models import Invoice, SalesReturn

from .filters import (
    CommissionRuleFilterSet,
    FinishedGoodFilterSet,
    InventoryMovementFilterSet,
    InvoiceFilterSet,
    PurchaseOrderFilterSet,
    RawMaterialFilterSet,
    SalesCommissionFilterSet,
    updated_after_filterset,
)
from .permissions import IsAdminOrReadOnly, IsAdminRole
from .serializers import (
    CommissionRuleSerializer,
    DistributorSerializer,
    ExpenseSerializer,
    FinishedGoodSerializer,
    FormulaCreateSerializer,
    InventoryMovementSerializer,
    InvoiceCancelSerializer,
    InvoiceCreateSerializer,
    InvoicePaymentCreateSerializer,
    InvoicePaymentSerializer,
    InvoiceSerializer,
    NotificationSerializer,
    ProductionOrderCreateSerializer,
    ProductionOrderSerializer,
    PurchaseOrderCancelSerializer,
    PurchaseOrderCreateSerializer,
    PurchaseOrderSerializer,
    PurchasePaymentCreateSerializer,
    PurchasePaymentSerializer,
    RawMaterialCreateSerializer,
    RawMaterialSerializer,
    SalaryPaymentSerializer,
    SalesCommissionSerializer,
    SalesReturnCreateSerializer,
    SalesReturnSerializer,
    SupplierSerializer,
    UserSerializer,
)

logger = logging.getLogger("bizfin")
User = get_user_model()


def run_workflow(func, *args, context="", **kwargs):
    """Call a service under ``retry_on_conflict`` and map its errors to responses.

    Returns ``(result, None)`` on success or ``(None, Response)`` on failure.
    ``context`` names the records involved and is logged on persistence
    failures.
    """
    try:
        result = retry_on_conflict(func, *args, **kwargs)
    except InsufficientStockError as exc:
        return None, Response(
            {
                "detail": str(exc),
                "product": exc.product_name,
                "available": exc.available,
                "requested": exc.requested,
            },
            status=status.HTTP_400_BAD_REQUEST,
        )
    except ValueError as exc:
        return None, Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
    except DatabaseError:
        logger.exception("Workflow %s failed to commit (%s)", func.__name__, context)
        return None, Response(
            {"detail": "L'operation n'a pas pu etre enregistree. Aucune modification n'a ete appliquee."},
            status=status.HTTP_503_SERVICE_UNAVAILABLE,
        )
    return result, None


# ---------------------------------------------------------------------------
# Master data
# ---------------------------------------------------------------------------

class UserViewSet(viewsets.ReadOnlyModelViewSet):
    serializer_class = UserSerializer
    queryset = User.objects.all()
    permission_classes = [IsAdminRole]
    filterset_class = updated_after_filterset(User, ["role", "is_active"])
    search_fields = ["email", "first_name", "last_name"]
    ordering_fields = ["last_name", "first_name", "email"]


class DistributorViewSet(viewsets.ModelViewSet):
    serializer_class = DistributorSerializer
    queryset = Distributor.objects.all()
    permission_classes = [IsAdminOrReadOnly]
    filterset_class = updated_after_filterset(Distributor, ["tier"])
    search_fields = ["name", "location", "email", "phone"]
    ordering_fields = ["name", "tier", "created_at", "updated_at"]


class SupplierViewSet(viewsets.ModelViewSet):
    serializer_class = SupplierSerializer
    queryset = Supplier.objects.all()
    permission_classes = [IsAdminOrReadOnly]
    filterset_class = updated_after_filterset(Supplier, ["status", "category"])
    search_fields = ["name", "contact_person", "email", "phone"]
    ordering_fields = ["name", "created_at", "updated_at"]


# ---------------------------------------------------------------------------
# Inventory
# ---------------------------------------------------------------------------

class RawMaterialViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.CreateModelMixin,
    mixins.UpdateModelMixin,
    viewsets.GenericViewSet,
):
    """Stock and cost move through purchase receipts once a material exists."""

    serializer_class = RawMaterialSerializer
    queryset = RawMaterial.objects.all()
    permission_classes = [IsAdminOrReadOnly]
    filterset_class = RawMaterialFilterSet
    search_fields = ["name", "category"]
    ordering_fields = ["name", "quantity", "unit_cost", "updated_at"]

    def get_serializer_class(self):
        if self.action == "create":
            return RawMaterialCreateSerializer
        return RawMaterialSerializer


class FinishedGoodViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.UpdateModelMixin,
    viewsets.GenericViewSet,
):
    """Finished goods are created with their formula through ``formula``."""

    serializer_class = FinishedGoodSerializer
    queryset = FinishedGood.objects.prefetch_related("formula", "formula__raw_material")
    permission_classes = [IsAdminOrReadOnly]
    filterset_class = FinishedGoodFilterSet
    search_fields = ["product_name"]
    ordering_fields = ["product_name", "quantity", "unit_cost", "selling_price", "updated_at"]

    @action(detail=False, methods=["post"], url_path="formula")
    def formula(self, request):
        from inventory.services import create_finished_good_formula

        serializer = FormulaCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        good, error = run_workflow(
            create_finished_good_formula,
            data["product_name"],
            [dict(component) for component in data["components"]],
            selling_price=data.get("selling_price"),
            actor=request.user,
            context=f"finished_goods name={data['product_name']}",
        )
        if error:
            return error
        return Response(FinishedGoodSerializer(good).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"], url_path="recompute-cost")
    def recompute_cost(self, request, pk=None):
        from inventory.services import recompute_formula_cost

        good, error = run_workflow(
            recompute_formula_cost,
            self.get_object(),
            actor=request.user,
            context=f"finished_goods id={pk}",
        )
        if error:
            return error
        return Response(FinishedGoodSerializer(good).data)


class InventoryMovementViewSet(viewsets.ReadOnlyModelViewSet):
    serializer_class = InventoryMovementSerializer
    queryset = InventoryMovement.objects.select_related("actor")
    filterset_class = InventoryMovementFilterSet
    search_fields = ["item_name", "reference"]
    ordering_fields = ["created_at"]


# ---------------------------------------------------------------------------
# Commissions
# ---------------------------------------------------------------------------

class CommissionRuleViewSet(viewsets.ModelViewSet):
    serializer_class = CommissionRuleSerializer
    queryset = CommissionRule.objects.all()
    permission_classes = [IsAdminOrReadOnly]
    filterset_class = CommissionRuleFilterSet
    search_fields = ["rule_name"]
    ordering_fields = ["rule_name", "rate", "updated_at"]


class SalesCommissionViewSet(viewsets.ReadOnlyModelViewSet):
    serializer_class = SalesCommissionSerializer
    queryset = SalesCommission.objects.select_related("invoice", "salesperson")
    filterset_class = SalesCommissionFilterSet
    search_fields = ["product_name", "distributor_name", "rule_name", "invoice__invoice_number"]
    ordering_fields = ["sale_date", "commission_amount", "created_at"]

    def get_queryset(self):
        qs = super().get_queryset()
        user = self.request.user
        if not user.is_admin:
            qs = qs.filter(salesperson=user)
        return qs


# ---------------------------------------------------------------------------
# Sales
# ---------------------------------------------------------------------------

class InvoiceViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.CreateModelMixin,
    viewsets.GenericViewSet,
):
    serializer_class = InvoiceSerializer
    queryset = Invoice.objects.select_related("salesperson", "distributor").prefetch_related("items", "payments")
    filterset_class = InvoiceFilterSet
    search_fields = ["invoice_number", "customer"]
    ordering_fields = ["date", "due_date", "invoice_number", "total_amount", "due_amount", "status"]

    def get_serializer_class(self):
        if self.action == "create":
            return InvoiceCreateSerializer
        return InvoiceSerializer

    def create(self, request, *args, **kwargs):
        from sales.services import create_invoice

        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        distributor = None
        if data.get("distributor"):
            distributor = Distributor.objects.filter(pk=data["distributor"]).first()
            if distributor is None:
                return Response({"detail": "Distributeur introuvable."}, status=status.HTTP_400_BAD_REQUEST)

        invoice, error = run_workflow(
            create_invoice,
            distributor,
            [dict(item) for item in data["items"]],
            request.user,
            date=data.get("date"),
            due_date=data.get("due_date"),
            discount=data["discount"],
            tax_rate=data["tax_rate"],
            payments=[dict(payment) for payment in data.get("payments", [])],
            notes=data.get("notes", ""),
            customer=data.get("customer") or None,
            customer_email=data.get("customer_email", ""),
            context=f"invoices, finished_goods, sales_commissions distributor={data.get('distributor')}",
        )
        if error:
            return error
        return Response(InvoiceSerializer(invoice).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"], url_path="cancel")
    def cancel(self, request, pk=None):
        from sales.services import cancel_invoice

        invoice = self.get_object()
        serializer = InvoiceCancelSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        invoice, error = run_workflow(
            cancel_invoice,
            invoice,
            request.user,
            serializer.validated_data.get("reason", ""),
            context=f"invoices id={invoice.pk}, finished_goods",
        )
        if error:
            return error
        return Response(InvoiceSerializer(invoice).data)

    @action(detail=True, methods=["post"], url_path="payments")
    def payments(self, request, pk=None):
        from sales.services import record_invoice_payment

        invoice = self.get_object()
        serializer = InvoicePaymentCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        payment, error = run_workflow(
            record_invoice_payment,
            invoice,
            data["amount"],
            method=data["method"],
            actor=request.user,
            date=data.get("date"),
            reference=data.get("reference", ""),
            context=f"invoices id={invoice.pk}",
        )
        if error:
            return error
        return Response(InvoicePaymentSerializer(payment).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"], url_path="returns")
    def returns(self, request, pk=None):
        from sales.services import process_sales_return

        invoice = self.get_object()
        serializer = SalesReturnCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        sales_return, error = run_workflow(
            process_sales_return,
            invoice,
            [dict(item) for item in data["items"]],
            reason=data.get("reason", ""),
            actor=request.user,
            date=data.get("date"),
            context=f"invoices id={invoice.pk}, finished_goods, sales_returns",
        )
        if error:
            return error
        return Response(SalesReturnSerializer(sales_return).data, status=status.HTTP_201_CREATED)


class SalesReturnViewSet(viewsets.ReadOnlyModelViewSet):
    serializer_class = SalesReturnSerializer
    queryset = SalesReturn.objects.select_related("invoice").prefetch_related("items", "items__product")
    filterset_class = updated_after_filterset(SalesReturn, ["invoice"])
    search_fields = ["invoice__invoice_number", "customer", "reason"]
    ordering_fields = ["date", "total_amount", "created_at"]


# ---------------------------------------------------------------------------
# Purchases
# ---------------------------------------------------------------------------

class PurchaseOrderViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.CreateModelMixin,
    viewsets.GenericViewSet,
):
    serializer_class = PurchaseOrderSerializer
    queryset = PurchaseOrder.objects.select_related("supplier", "created_by").prefetch_related(
        "items", "items__raw_material", "payments",
    )
    permission_classes = [IsAdminRole]
    filterset_class = PurchaseOrderFilterSet
    search_fields = ["po_number", "supplier_name"]
    ordering_fields = ["date", "po_number", "amount", "due_amount", "delivery_status", "payment_status"]

    def get_serializer_class(self):
        if self.action == "create":
            return PurchaseOrderCreateSerializer
        return PurchaseOrderSerializer

    def create(self, request, *args, **kwargs):
        from purchases.services import create_purchase_order

        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            supplier = Supplier.objects.get(pk=data["supplier"])
        except Supplier.DoesNotExist:
            return Response({"detail": "Fournisseur introuvable."}, status=status.HTTP_400_BAD_REQUEST)

        purchase_order, error = run_workflow(
            create_purchase_order,
            supplier=supplier,
            items=[dict(item) for item in data["items"]],
            actor=request.user,
            discount=data["discount"],
            tax=data["tax"],
            paid_amount=data["paid_amount"],
            date=data.get("date"),
            notes=data.get("notes", ""),
            context=f"purchase_orders supplier={supplier.pk}",
        )
        if error:
            return error
        return Response(PurchaseOrderSerializer(purchase_order).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"], url_path="ship")
    def ship(self, request, pk=None):
        from purchases.services import mark_purchase_order_shipped

        purchase_order, error = run_workflow(
            mark_purchase_order_shipped,
            self.get_object(),
            actor=request.user,
            context=f"purchase_orders id={pk}",
        )
        if error:
            return error
        return Response(PurchaseOrderSerializer(purchase_order).data)

    @action(detail=True, methods=["post"], url_path="receive")
    def receive(self, request, pk=None):
        from purchases.services import receive_purchase_order

        purchase_order, error = run_workflow(
            receive_purchase_order,
            self.get_object(),
            actor=request.user,
            context=f"purchase_orders id={pk}, raw_materials",
        )
        if error:
            return error
        return Response(PurchaseOrderSerializer(purchase_order).data)

    @action(detail=True, methods=["post"], url_path="cancel")
    def cancel(self, request, pk=None):
        from purchases.services import cancel_purchase_order

        purchase_order = self.get_object()
        serializer = PurchaseOrderCancelSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        purchase_order, error = run_workflow(
            cancel_purchase_order,
            purchase_order,
            actor=request.user,
            reason=serializer.validated_data.get("reason", ""),
            context=f"purchase_orders id={pk}",
        )
        if error:
            return error
        return Response(PurchaseOrderSerializer(purchase_order).data)

    @action(detail=True, methods=["post"], url_path="payments")
    def payments(self, request, pk=None):
        from purchases.services import record_purchase_payment

        purchase_order = self.get_object()
        serializer = PurchasePaymentCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        payment, error = run_workflow(
            record_purchase_payment,
            purchase_order,
            data["amount"],
            actor=request.user,
            date=data.get("date"),
            reference=data.get("reference", ""),
            context=f"purchase_orders id={pk}",
        )
        if error:
            return error
        return Response(PurchasePaymentSerializer(payment).data, status=status.HTTP_201_CREATED)


# ---------------------------------------------------------------------------
# Production / expenses / HRM
# ---------------------------------------------------------------------------

class ProductionOrderViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.CreateModelMixin,
    viewsets.GenericViewSet,
):
    serializer_class = ProductionOrderSerializer
    queryset = ProductionOrder.objects.select_related("finished_good")
    permission_classes = [IsAdminRole]
    filterset_class = updated_after_filterset(ProductionOrder, ["status", "finished_good"])
    search_fields = ["product_name"]
    ordering_fields = ["start_date", "total_cost", "created_at"]

    def get_serializer_class(self):
        if self.action == "create":
            return ProductionOrderCreateSerializer
        return ProductionOrderSerializer

    def create(self, request, *args, **kwargs):
        from production.services import create_production_order

        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        good = get_object_or_404(FinishedGood, pk=data["finished_good"])

        order, error = run_workflow(
            create_production_order,
            good,
            data["quantity"],
            labour_cost=data["labour_cost"],
            other_costs=data["other_costs"],
            wastage_value=data["wastage_value"],
            start_date=data.get("start_date"),
            status=data["status"],
            actor=request.user,
            context=f"production_orders finished_good={good.pk}",
        )
        if error:
            return error
        return Response(ProductionOrderSerializer(order).data, status=status.HTTP_201_CREATED)


class ExpenseViewSet(viewsets.ModelViewSet):
    serializer_class = ExpenseSerializer
    queryset = Expense.objects.select_related("created_by")
    permission_classes = [IsAdminRole]
    filterset_class = updated_after_filterset(Expense, ["category", "date"])
    search_fields = ["description", "category"]
    ordering_fields = ["date", "amount", "created_at"]

    def perform_create(self, serializer):
        serializer.save(created_by=self.request.user)


class SalaryPaymentViewSet(viewsets.ModelViewSet):
    serializer_class = SalaryPaymentSerializer
    queryset = SalaryPayment.objects.all()
    permission_classes = [IsAdminRole]
    filterset_class = updated_after_filterset(SalaryPayment, ["employee_name", "payment_date"])
    search_fields = ["employee_name", "position"]
    ordering_fields = ["payment_date", "amount", "employee_name"]


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------

class NotificationViewSet(viewsets.ReadOnlyModelViewSet):
    serializer_class = NotificationSerializer
    queryset = Notification.objects.all()
    filterset_class = updated_after_filterset(Notification, ["kind", "is_read"])
    ordering_fields = ["created_at"]

    @action(detail=True, methods=["post"], url_path="read")
    def mark_read(self, request, pk=None):
        notification = self.get_object()
        notification.mark_as_read(request.user)
        return Response(NotificationSerializer(notification).data)


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------

def _date_param(request, name, default=None):
    raw = request.query_params.get(name)
    if not raw:
        return default
    value = parse_date(raw)
    if value is None:
        raise ValueError(f"Date invalide pour '{name}': {raw}.")
    return value


class ReportView(APIView):
    """``GET /api/v1/reports/<name>/``"""

    permission_classes = [IsAuthenticated, IsAdminRole]

    def get(self, request, name):
        try:
            if name == "receivables":
                data = report_services.receivables_summary()
            elif name == "payables":
                data = report_services.payables_summary()
            elif name == "inventory-valuation":
                data = report_services.inventory_valuation()
            elif name == "commissions":
                data = report_services.commission_totals_by_distributor(
                    _date_param(request, "date_from"), _date_param(request, "date_to"),
                )
            elif name == "distributor-sales":
                data = report_services.distributor_sales_summary(
                    _date_param(request, "date_from"), _date_param(request, "date_to"),
                )
            elif name == "product-performance":
                data = report_services.product_performance(limit=max(int(request.query_params.get("limit", 10)), 1))
            elif name == "supplier-spend":
                data = report_services.supplier_spend()
            elif name == "income-statement":
                today = timezone.localdate()
                data = report_services.income_statement(
                    _date_param(request, "start", today.replace(day=1)),
                    _date_param(request, "end", today),
                )
            elif name == "outstanding-invoices":
                params = request.query_params
                data = report_services.outstanding_invoices(
                    search=params.get("search", ""),
                    status=params.get("status") or None,
                    sort=params.get("sort", "due_date"),
                    descending=params.get("descending") in ("1", "true", "True"),
                    page=int(params.get("page", 1)),
                    per_page=int(params.get("page_size", 25)),
                )
            else:
                return Response({"detail": "Rapport inconnu."}, status=status.HTTP_404_NOT_FOUND)
        except ValueError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        return Response(data)
