"""Read-only report builders.

Each function queries the ORM and returns plain dicts so the API, Celery
tasks and tests can share them.
"""
import logging
from decimal import Decimal

from django.db.models import Count, DecimalField, ExpressionWrapper, F, Q, Sum, Value
from django.db.models.functions import Coalesce
from django.utils import timezone

from core.query import filter_records, paginate, sort_records

logger = logging.getLogger("bizfin")

ZERO = Value(Decimal("0.00"))


def _sum(field):
    return Coalesce(Sum(field), ZERO, output_field=DecimalField(max_digits=16, decimal_places=2))


# ---------------------------------------------------------------------------
# Receivables / payables
# ---------------------------------------------------------------------------

def receivables_summary(today=None):
    """Outstanding customer balances, with the overdue share."""
    from sales.models import Invoice

    today = today or timezone.localdate()
    open_qs = Invoice.objects.exclude(status__in=[Invoice.Status.CANCELLED, Invoice.Status.PAID])
    totals = open_qs.aggregate(
        outstanding=_sum("due_amount"),
        invoices=Count("id"),
        overdue=Coalesce(
            Sum("due_amount", filter=Q(due_date__lt=today, due_amount__gt=0)),
            ZERO,
            output_field=DecimalField(max_digits=16, decimal_places=2),
        ),
        overdue_invoices=Count("id", filter=Q(due_date__lt=today, due_amount__gt=0)),
    )
    by_status = {
        row["status"]: {"count": row["count"], "due": row["due"]}
        for row in open_qs.values("status").annotate(count=Count("id"), due=_sum("due_amount"))
    }
    return {**totals, "by_status": by_status}


def payables_summary():
    """Outstanding supplier balances."""
    from purchases.models import PaymentStatus, PurchaseOrder

    open_qs = (
        PurchaseOrder.objects
        .exclude(delivery_status=PurchaseOrder.DeliveryStatus.CANCELLED)
        .exclude(payment_status=PaymentStatus.PAID)
    )
    totals = open_qs.aggregate(outstanding=_sum("due_amount"), orders=Count("id"))
    by_supplier = list(
        open_qs.values("supplier_name")
        .annotate(due=_sum("due_amount"), orders=Count("id"))
        .order_by("-due")
    )
    return {**totals, "by_supplier": by_supplier}


def outstanding_invoices(search="", status=None, sort="due_date", descending=False, page=1, per_page=25):
    """Page through open invoices with the in-memory list helpers."""
    from sales.models import Invoice
    from sales.services import is_overdue

    today = timezone.localdate()
    rows = [
        {
            "id": str(invoice.pk),
            "invoice_number": invoice.invoice_number,
            "customer": invoice.customer,
            "status": invoice.status,
            "due_date": invoice.due_date,
            "due_amount": invoice.due_amount,
            "overdue": is_overdue(invoice, today),
        }
        for invoice in Invoice.objects.exclude(status=Invoice.Status.CANCELLED).filter(due_amount__gt=0)
    ]
    rows = filter_records(rows, search=search, fields=("invoice_number", "customer"), status=status)
    rows = sort_records(rows, sort, descending=descending)
    result = paginate(rows, page=page, per_page=per_page)
    return {
        "count": result.total,
        "page": result.number,
        "num_pages": result.num_pages,
        "results": list(result.items),
    }


# ---------------------------------------------------------------------------
# Inventory / commissions
# ---------------------------------------------------------------------------

def inventory_valuation():
    """Stock value of raw materials and finished goods at current unit cost."""
    from inventory.models import FinishedGood, RawMaterial

    value = ExpressionWrapper(F("quantity") * F("unit_cost"), output_field=DecimalField(max_digits=20, decimal_places=4))
    raw = RawMaterial.objects.aggregate(
        items=Count("id"),
        value=Coalesce(Sum(value), Value(Decimal("0")), output_field=DecimalField(max_digits=20, decimal_places=4)),
    )
    finished = FinishedGood.objects.aggregate(
        items=Count("id"),
        units=Coalesce(Sum("quantity"), 0),
        value=Coalesce(Sum(value), Value(Decimal("0")), output_field=DecimalField(max_digits=20, decimal_places=4)),
    )
    raw["value"] = raw["value"].quantize(Decimal("0.01"))
    finished["value"] = finished["value"].quantize(Decimal("0.01"))
    return {
        "raw_materials": raw,
        "finished_goods": finished,
        "total_value": raw["value"] + finished["value"],
    }


def commission_totals_by_distributor(date_from=None, date_to=None):
    from commissions.models import SalesCommission

    qs = SalesCommission.objects.all()
    if date_from:
        qs = qs.filter(sale_date__gte=date_from)
    if date_to:
        qs = qs.filter(sale_date__lte=date_to)
    return list(
        qs.values("distributor_id", "distributor_name")
        .annotate(
            records=Count("id"),
            sales=_sum("sale_amount"),
            commission=_sum("commission_amount"),
        )
        .order_by("-commission", "distributor_name")
    )



def distributor_sales_summary(date_from=None, date_to=None):
    """Paid sales, open dues and earned commission per distributor, by name.

    Cancelled invoices are left out.  Distributors without activity in the
    window are listed with zeros.
    """
    from commissions.models import SalesCommission
    from distributors.models import Distributor
    from sales.models import Invoice

    invoices = Invoice.objects.filter(distributor__isnull=False).exclude(status=Invoice.Status.CANCELLED)
    commissions = SalesCommission.objects.filter(distributor__isnull=False)
    if date_from:
        invoices = invoices.filter(date__gte=date_from)
        commissions = commissions.filter(sale_date__gte=date_from)
    if date_to:
        invoices = invoices.filter(date__lte=date_to)
        commissions = commissions.filter(sale_date__lte=date_to)

    sales = {
        row["distributor_id"]: row
        for row in invoices.values("distributor_id").annotate(
            invoices=Count("id"), paid=_sum("paid_amount"), due=_sum("due_amount"),
        )
    }
    earned = {
        row["distributor_id"]: row["commission"]
        for row in commissions.values("distributor_id").annotate(commission=_sum("commission_amount"))
    }
    zero = Decimal("0.00")
    rows = []
    for distributor in Distributor.objects.order_by("name").only("id", "name", "tier"):
        totals = sales.get(distributor.pk, {})
        rows.append({
            "distributor_id": str(distributor.pk),
            "distributor_name": distributor.name,
            "tier": distributor.tier,
            "invoices": totals.get("invoices", 0),
            "total_sales": totals.get("paid", zero),
            "outstanding_dues": totals.get("due", zero),
            "commission": earned.get(distributor.pk, zero),
        })
    return rows


def product_performance(limit=10):
    """Best-selling lines by collected revenue, from paid and partially paid invoices."""
    from sales.models import Invoice, InvoiceItem

    return list(
        InvoiceItem.objects
        .filter(invoice__status__in=[Invoice.Status.PAID, Invoice.Status.PARTIALLY_PAID])
        .values("description")
        .annotate(revenue=_sum("total"), units=Coalesce(Sum("quantity"), 0))
        .order_by("-revenue", "description")[:limit]
    )


def supplier_spend():
    """Purchase order totals per supplier, cancelled orders excluded."""
    from purchases.models import PurchaseOrder

    return list(
        PurchaseOrder.objects
        .exclude(delivery_status=PurchaseOrder.DeliveryStatus.CANCELLED)
        .values("supplier_name")
        .annotate(spend=_sum("amount"), orders=Count("id"))
        .order_by("-spend", "supplier_name")
    )

# ---------------------------------------------------------------------------
# Income statement
# ---------------------------------------------------------------------------

def income_statement(start, end):
    """Sales less purchases, expenses and salaries between two dates, inclusive.

    Cancelled invoices and purchase orders are left out.
    """
    from expenses.models import Expense
    from hrm.models import SalaryPayment
    from purchases.models import PurchaseOrder
    from sales.models import Invoice

    if start > end:
        raise ValueError("La date de debut doit preceder la date de fin.")

    sales = (
        Invoice.objects
        .filter(date__gte=start, date__lte=end)
        .exclude(status=Invoice.Status.CANCELLED)
        .aggregate(total=_sum("total_amount"))["total"]
    )
    purchases = (
        PurchaseOrder.objects
        .filter(date__gte=start, date__lte=end)
        .exclude(delivery_status=PurchaseOrder.DeliveryStatus.CANCELLED)
        .aggregate(total=_sum("amount"))["total"]
    )
    expenses = Expense.objects.filter(date__gte=start, date__lte=end).aggregate(total=_sum("amount"))["total"]
    salaries = (
        SalaryPayment.objects
        .filter(payment_date__gte=start, payment_date__lte=end)
        .aggregate(total=_sum("amount"))["total"]
    )
    net = sales - purchases - expenses - salaries
    logger.debug("Income statement %s..%s: net=%s", start, end, net)
    return {
        "start": start,
        "end": end,
        "sales": sales,
        "purchases": purchases,
        "expenses": expenses,
        "salaries": salaries,
        "net_income": net,
    }
