"""Stage commission records for a newly created invoice."""
from __future__ import annotations

import logging
from decimal import Decimal

from django.db import transaction

from core.money import quantize_money, to_decimal

from .evaluator import SaleLine, evaluate_line
from .models import CommissionRule, SalesCommission

logger = logging.getLogger("bizfin")


def _prorate(amount, part, whole):
    if whole <= 0:
        return Decimal("0.00")
    return quantize_money(amount * part / whole)


@transaction.atomic
def stage_commissions_for_invoice(invoice, distributor, salesperson, discount_total=Decimal("0")):
    """
    Write the SalesCommission rows earned by ``invoice``.

    Runs inside the caller's transaction so the ledger commits or rolls
    back together with the invoice.  The invoice discount is spread over
    the lines in proportion to their amounts; it is recorded on each row
    but the commission is computed on the line's gross amount.

    An invoice without a distributor, or a line without a product record,
    earns nothing and is logged.

    Returns:
        The list of created SalesCommission instances.
    """
    if distributor is None:
        logger.warning(
            "Commission skipped for invoice %s: no distributor resolved",
            invoice.invoice_number,
        )
        return []

    rules = list(CommissionRule.objects.filter(is_active=True))
    if not rules:
        return []

    items = list(invoice.items.all())
    discount_total = to_decimal(discount_total)
    gross_total = sum((to_decimal(item.total) for item in items), Decimal("0"))

    records = []
    for item in items:
        if item.product_id is None:
            logger.warning(
                "Commission skipped for line '%s' of invoice %s: product not found",
                item.description, invoice.invoice_number,
            )
            continue

        sale_amount = quantize_money(item.total)
        discount_amount = _prorate(discount_total, sale_amount, gross_total)
        line = SaleLine(
            product_name=item.product.product_name,
            distributor_name=distributor.name,
            distributor_tier=distributor.tier,
            sale_amount=sale_amount,
        )
        for match in evaluate_line(rules, line):
            records.append(SalesCommission(
                salesperson=salesperson if getattr(salesperson, "pk", None) else None,
                invoice=invoice,
                invoice_item=item,
                product=item.product,
                product_name=line.product_name,
                distributor=distributor,
                distributor_name=distributor.name,
                rule=match.rule,
                rule_name=match.rule_name,
                commission_type=match.commission_type,
                commission_rate=match.commission_rate,
                sale_date=invoice.date,
                sale_amount=sale_amount,
                discount_amount=discount_amount,
                net_sale_amount=sale_amount - discount_amount,
                commission_amount=match.commission_amount,
            ))

    SalesCommission.objects.bulk_create(records)
    if records:
        logger.info(
            "Staged %d commission(s) for invoice %s",
            len(records), invoice.invoice_number,
        )
    return records
