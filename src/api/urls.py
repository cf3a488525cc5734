"""Main API URL router for /api/v1/."""
from django.urls import include, path
from rest_framework.routers import DefaultRouter

from api.v1 import views as v1_views

router = DefaultRouter()
router.register(r"users", v1_views.UserViewSet, basename="user")
router.register(r"distributors", v1_views.DistributorViewSet, basename="distributor")
router.register(r"suppliers", v1_views.SupplierViewSet, basename="supplier")
router.register(r"raw-materials", v1_views.RawMaterialViewSet, basename="raw-material")
router.register(r"finished-goods", v1_views.FinishedGoodViewSet, basename="finished-good")
router.register(r"inventory-movements", v1_views.InventoryMovementViewSet, basename="inventory-movement")
router.register(r"commission-rules", v1_views.CommissionRuleViewSet, basename="commission-rule")
router.register(r"sales-commissions", v1_views.SalesCommissionViewSet, basename="sales-commission")
router.register(r"invoices", v1_views.InvoiceViewSet, basename="invoice")
router.register(r"sales-returns", v1_views.SalesReturnViewSet, basename="sales-return")
router.register(r"purchase-orders", v1_views.PurchaseOrderViewSet, basename="purchase-order")
router.register(r"production-orders", v1_views.ProductionOrderViewSet, basename="production-order")
router.register(r"expenses", v1_views.ExpenseViewSet, basename="expense")
router.register(r"salary-payments", v1_views.SalaryPaymentViewSet, basename="salary-payment")
router.register(r"notifications", v1_views.NotificationViewSet, basename="notification")

urlpatterns = [
    path("", include(router.urls)),
    path("reports/<slug:name>/", v1_views.ReportView.as_view(), name="report"),
]
