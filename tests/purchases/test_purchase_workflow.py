import pytest
from datetime import date
from decimal import Decimal

from core.exceptions import InvalidTransitionError
from core.models import DailySequence
from inventory.models import InventoryMovement
from purchases.models import PurchaseOrder, Supplier
from purchases.services import (
    cancel_purchase_order,
    create_purchase_order,
    mark_purchase_order_shipped,
    receive_purchase_order,
    record_purchase_payment,
    resolve_payment_status,
)


def order(supplier, material, qty, unit_cost, **kwargs):
    return create_purchase_order(
        supplier=supplier,
        items=[{'raw_material_id': str(material.pk), 'quantity': qty, 'unit_cost': unit_cost}],
        **kwargs,
    )


@pytest.mark.django_db
class TestCreatePurchaseOrder:
    def test_amount_and_initial_status(self, supplier, resin, admin_user):
        po = order(supplier, resin, '50', '2', discount='10', tax='5', actor=admin_user, date=date(2026, 5, 2))
        assert po.po_number == 'PO-260502001'
        assert po.subtotal == Decimal('100.00')
        assert po.amount == Decimal('95.00')
        assert po.due_amount == Decimal('95.00')
        assert po.payment_status == 'Unpaid'
        assert po.delivery_status == 'Pending'
        assert po.supplier_name == 'Chemical Supply Inc.'

    def test_order_number_daily_limit(self, supplier, resin):
        day = date(2026, 3, 14)
        assert order(supplier, resin, '1', '2', date=day).po_number == 'PO-260314001'
        DailySequence.objects.filter(prefix='PO', day=day).update(last_number=999)
        with pytest.raises(ValueError):
            order(supplier, resin, '1', '2', date=day)
        assert PurchaseOrder.objects.count() == 1

    def test_amount_floored_at_zero(self, supplier, resin):
        po = order(supplier, resin, '1', '2', discount='5')
        assert po.amount == Decimal('0.00')
        assert po.payment_status == 'Paid'

    def test_initial_payment(self, supplier, resin):
        po = order(supplier, resin, '10', '3', paid_amount='10')
        assert po.payment_status == 'Partially Paid'
        assert po.payments.count() == 1

    def test_inactive_supplier_rejected(self, supplier, resin):
        supplier.status = Supplier.Status.INACTIVE
        supplier.save()
        with pytest.raises(ValueError):
            order(supplier, resin, '1', '1')

    @pytest.mark.parametrize('items', [
        [],
        [{'raw_material_id': '', 'quantity': '1', 'unit_cost': '1'}],
        [{'raw_material_id': 'nope', 'quantity': '1', 'unit_cost': '1'}],
    ])
    def test_invalid_items(self, supplier, items):
        with pytest.raises(ValueError):
            create_purchase_order(supplier=supplier, items=items)
        assert not PurchaseOrder.objects.exists()

    def test_non_positive_quantity(self, supplier, resin):
        with pytest.raises(ValueError):
            order(supplier, resin, '0', '1')


@pytest.mark.django_db
class TestReceivePurchaseOrder:
    def test_receipts_use_weighted_average(self, supplier, resin, admin_user):
        first = order(supplier, resin, '50', '2')
        receive_purchase_order(first, actor=admin_user)
        resin.refresh_from_db()
        assert resin.quantity == Decimal('50.000')
        assert resin.unit_cost == Decimal('2.0000')

        second = order(supplier, resin, '50', '4')
        mark_purchase_order_shipped(second, actor=admin_user)
        received = receive_purchase_order(second, actor=admin_user)
        resin.refresh_from_db()
        assert resin.quantity == Decimal('100.000')
        assert resin.unit_cost == Decimal('3.0000')
        assert received.delivery_status == 'Received'
        assert received.received_at is not None
        assert InventoryMovement.objects.filter(reference=second.po_number).count() == 1

    def test_receive_twice_rejected(self, supplier, resin):
        po = order(supplier, resin, '5', '1')
        receive_purchase_order(po)
        with pytest.raises(InvalidTransitionError):
            receive_purchase_order(po)
        resin.refresh_from_db()
        assert resin.quantity == Decimal('5.000')

    def test_ship_only_from_pending(self, supplier, resin):
        po = order(supplier, resin, '5', '1')
        mark_purchase_order_shipped(po)
        with pytest.raises(InvalidTransitionError):
            mark_purchase_order_shipped(po)


@pytest.mark.django_db
class TestCancelPurchaseOrder:
    def test_cancel_has_no_stock_effect(self, supplier, resin):
        po = order(supplier, resin, '5', '1')
        cancelled = cancel_purchase_order(po, reason='Wrong supplier')
        assert cancelled.delivery_status == 'Cancelled'
        assert 'Wrong supplier' in cancelled.notes
        resin.refresh_from_db()
        assert resin.quantity == Decimal('0.000')

    def test_received_order_cannot_be_cancelled(self, supplier, resin):
        po = order(supplier, resin, '5', '1')
        receive_purchase_order(po)
        with pytest.raises(InvalidTransitionError):
            cancel_purchase_order(po)

    def test_cancelled_order_cannot_be_received(self, supplier, resin):
        po = order(supplier, resin, '5', '1')
        cancel_purchase_order(po)
        with pytest.raises(InvalidTransitionError):
            receive_purchase_order(po)


@pytest.mark.django_db
class TestPurchasePayments:
    def test_payments_settle_order(self, supplier, resin, admin_user):
        po = order(supplier, resin, '10', '3.3333')
        assert po.amount == Decimal('33.33')
        record_purchase_payment(po, '13.33', actor=admin_user)
        po.refresh_from_db()
        assert po.payment_status == 'Partially Paid'
        record_purchase_payment(po, '20', actor=admin_user)
        po.refresh_from_db()
        assert po.due_amount == Decimal('0.00')
        assert po.payment_status == 'Paid'

    @pytest.mark.parametrize('amount', ['0', '-1', '30.01'])
    def test_invalid_amounts(self, supplier, resin, amount):
        po = order(supplier, resin, '10', '3')
        with pytest.raises(ValueError):
            record_purchase_payment(po, amount)

    def test_cancelled_order_rejects_payment(self, supplier, resin):
        po = order(supplier, resin, '10', '3')
        cancel_purchase_order(po)
        with pytest.raises(ValueError):
            record_purchase_payment(po, '5')

    @pytest.mark.parametrize('amount,paid,expected', [
        ('100', '0', 'Unpaid'),
        ('100', '99.99', 'Partially Paid'),
        ('100', '100', 'Paid'),
    ])
    def test_resolve_payment_status(self, amount, paid, expected):
        assert resolve_payment_status(Decimal(amount), Decimal(paid)) == expected
