import pytest
from datetime import timedelta
from decimal import Decimal
from unittest import mock

from django.db import DatabaseError, OperationalError
from django.utils import timezone

from distributors.models import Distributor
from purchases.models import PurchaseOrder
from sales.models import Invoice

API = '/api/v1'


@pytest.mark.django_db
class TestInvoiceEndpoints:
    def test_create_invoice(self, sales_client, distributor, widget, gold_rule):
        response = sales_client.post(f'{API}/invoices/', {
            'distributor': str(distributor.pk),
            'items': [{'product_id': str(widget.pk), 'quantity': 10, 'unit_price': '10.00'}],
        }, format='json')
        assert response.status_code == 201
        data = response.json()
        assert data['total_amount'] == '100.00'
        assert data['status'] == 'Unpaid'
        assert data['is_overdue'] is False
        widget.refresh_from_db()
        assert widget.quantity == 90

    def test_insufficient_stock_returns_details(self, sales_client, distributor, gadget):
        response = sales_client.post(f'{API}/invoices/', {
            'distributor': str(distributor.pk),
            'items': [{'product_id': str(gadget.pk), 'quantity': 8, 'unit_price': '35.00'}],
        }, format='json')
        assert response.status_code == 400
        data = response.json()
        assert data['product'] == 'Gadget'
        assert data['available'] == 5
        assert data['requested'] == 8
        assert 'Gadget' in data['detail']
        assert not Invoice.objects.exists()

    def test_unknown_distributor(self, sales_client, widget):
        response = sales_client.post(f'{API}/invoices/', {
            'distributor': '00000000-0000-0000-0000-000000000000',
            'items': [{'product_id': str(widget.pk), 'quantity': 1, 'unit_price': '10.00'}],
        }, format='json')
        assert response.status_code == 400

    def test_payment_cancel_and_return_actions(self, sales_client, distributor, widget):
        created = sales_client.post(f'{API}/invoices/', {
            'distributor': str(distributor.pk),
            'items': [{'product_id': str(widget.pk), 'quantity': 5, 'unit_price': '10.00'}],
        }, format='json').json()
        url = f"{API}/invoices/{created['id']}"

        response = sales_client.post(f'{url}/payments/', {'amount': '10.00', 'method': 'Card'}, format='json')
        assert response.status_code == 201

        response = sales_client.post(f'{url}/returns/', {
            'items': [{'product_id': str(widget.pk), 'quantity': 1}],
            'reason': 'Broken seal',
        }, format='json')
        assert response.status_code == 201
        assert response.json()['total_amount'] == '10.00'

        response = sales_client.post(f'{url}/cancel/', {'reason': 'Duplicate'}, format='json')
        assert response.status_code == 200
        assert response.json()['status'] == 'Cancelled'

        response = sales_client.post(f'{url}/cancel/', {}, format='json')
        assert response.status_code == 400
        widget.refresh_from_db()
        assert widget.quantity == 100

    def test_return_exceeding_due(self, sales_client, distributor, widget):
        created = sales_client.post(f'{API}/invoices/', {
            'distributor': str(distributor.pk),
            'items': [{'product_id': str(widget.pk), 'quantity': 2, 'unit_price': '10.00'}],
            'payments': [{'amount': '15.00'}],
        }, format='json').json()
        response = sales_client.post(f"{API}/invoices/{created['id']}/returns/", {
            'items': [{'product_id': str(widget.pk), 'quantity': 1}],
        }, format='json')
        assert response.status_code == 400

    def test_transient_conflict_is_retried(self, sales_client, distributor, widget):
        from sales import services

        real = services.create_invoice
        calls = []

        def flaky(*args, **kwargs):
            calls.append(1)
            if len(calls) == 1:
                raise OperationalError('database is locked')
            return real(*args, **kwargs)

        flaky.__name__ = 'create_invoice'
        with mock.patch('sales.services.create_invoice', flaky):
            response = sales_client.post(f'{API}/invoices/', {
                'distributor': str(distributor.pk),
                'items': [{'product_id': str(widget.pk), 'quantity': 1, 'unit_price': '10.00'}],
            }, format='json')
        assert response.status_code == 201
        assert len(calls) == 2

    def test_persistence_failure_returns_503(self, sales_client, distributor, widget, caplog):
        with mock.patch('sales.services.create_invoice', side_effect=DatabaseError('disk full')) as failing:
            failing.__name__ = 'create_invoice'
            response = sales_client.post(f'{API}/invoices/', {
                'distributor': str(distributor.pk),
                'items': [{'product_id': str(widget.pk), 'quantity': 1, 'unit_price': '10.00'}],
            }, format='json')
        assert response.status_code == 503
        assert 'failed to commit' in caplog.text


@pytest.mark.django_db
class TestPurchaseOrderEndpoints:
    def test_order_ship_receive_and_pay(self, admin_client, supplier, resin):
        response = admin_client.post(f'{API}/purchase-orders/', {
            'supplier': str(supplier.pk),
            'items': [{'raw_material_id': str(resin.pk), 'quantity': '50', 'unit_cost': '2'}],
        }, format='json')
        assert response.status_code == 201
        url = f"{API}/purchase-orders/{response.json()['id']}"

        assert admin_client.post(f'{url}/ship/').status_code == 200
        response = admin_client.post(f'{url}/receive/')
        assert response.status_code == 200
        assert response.json()['delivery_status'] == 'Received'
        resin.refresh_from_db()
        assert resin.quantity == Decimal('50.000')

        response = admin_client.post(f'{url}/payments/', {'amount': '100.00'}, format='json')
        assert response.status_code == 201
        assert PurchaseOrder.objects.get().payment_status == 'Paid'

        assert admin_client.post(f'{url}/cancel/', {}, format='json').status_code == 400

    def test_salesperson_cannot_order(self, sales_client, supplier, resin):
        response = sales_client.post(f'{API}/purchase-orders/', {
            'supplier': str(supplier.pk),
            'items': [{'raw_material_id': str(resin.pk), 'quantity': '1', 'unit_cost': '2'}],
        }, format='json')
        assert response.status_code == 403


@pytest.mark.django_db
class TestFormulaAndProductionEndpoints:
    def test_formula_then_production_order(self, admin_client, pigment):
        response = admin_client.post(f'{API}/finished-goods/formula/', {
            'product_name': 'Tint',
            'selling_price': '4.00',
            'components': [{'raw_material_id': str(pigment.pk), 'quantity_per_unit': '2'}],
        }, format='json')
        assert response.status_code == 201
        good = response.json()
        assert good['unit_cost'] == '1.0000'

        response = admin_client.post(f'{API}/production-orders/', {
            'finished_good': good['id'],
            'quantity': 10,
            'labour_cost': '5.00',
        }, format='json')
        assert response.status_code == 201
        assert response.json()['total_cost'] == '15.00'

    def test_duplicate_formula_name(self, admin_client, widget, pigment):
        response = admin_client.post(f'{API}/finished-goods/formula/', {
            'product_name': 'Widget',
            'components': [{'raw_material_id': str(pigment.pk), 'quantity_per_unit': '1'}],
        }, format='json')
        assert response.status_code == 400


@pytest.mark.django_db
class TestInventoryEndpoints:
    def test_raw_material_created_with_opening_stock(self, admin_client):
        response = admin_client.post(f'{API}/raw-materials/', {
            'name': 'Solvent', 'unit': 'litre', 'quantity': '12', 'unit_cost': '3.50',
        }, format='json')
        assert response.status_code == 201
        data = response.json()
        assert Decimal(data['quantity']) == Decimal('12')
        assert Decimal(data['unit_cost']) == Decimal('3.50')

    def test_raw_material_stock_and_cost_not_editable(self, admin_client, pigment):
        response = admin_client.patch(f'{API}/raw-materials/{pigment.pk}/', {
            'category': 'Colour', 'quantity': '9999', 'unit_cost': '0.01',
        }, format='json')
        assert response.status_code == 200
        pigment.refresh_from_db()
        assert pigment.category == 'Colour'
        assert pigment.quantity == Decimal('40')
        assert pigment.unit_cost == Decimal('0.5')

    def test_finished_good_stock_and_cost_not_editable(self, admin_client, widget):
        response = admin_client.patch(f'{API}/finished-goods/{widget.pk}/', {
            'selling_price': '12.00', 'quantity': 5000, 'unit_cost': '1.00',
        }, format='json')
        assert response.status_code == 200
        widget.refresh_from_db()
        assert widget.selling_price == Decimal('12.00')
        assert widget.quantity == 100
        assert widget.unit_cost == Decimal('6')

    def test_inventory_records_cannot_be_deleted(self, admin_client, widget, resin):
        assert admin_client.delete(f'{API}/finished-goods/{widget.pk}/').status_code == 405
        assert admin_client.delete(f'{API}/raw-materials/{resin.pk}/').status_code == 405
        widget.refresh_from_db()
        resin.refresh_from_db()


@pytest.mark.django_db
class TestListEndpoints:
    def test_requires_authentication(self, api_client):
        assert api_client.get(f'{API}/distributors/').status_code in (401, 403)

    def test_updated_after_filter(self, sales_client, distributor):
        Distributor.objects.filter(pk=distributor.pk).update(updated_at=timezone.now() - timedelta(days=2))
        fresh = Distributor.objects.create(name='Globex', tier='Tier 1')

        since = (timezone.now() - timedelta(days=1)).isoformat()
        response = sales_client.get(f'{API}/distributors/', {'updated_after': since})
        assert response.status_code == 200
        ids = [row['id'] for row in response.json()['results']]
        assert ids == [str(fresh.pk)]

    def test_salesperson_reads_but_cannot_write_master_data(self, sales_client):
        assert sales_client.get(f'{API}/raw-materials/').status_code == 200
        response = sales_client.post(f'{API}/distributors/', {'name': 'New'}, format='json')
        assert response.status_code == 403

    def test_salesperson_sees_own_commissions_only(self, sales_client, admin_user, distributor, widget, gold_rule):
        from sales.services import create_invoice

        create_invoice(distributor, [{'product_id': widget.pk, 'quantity': 1, 'unit_price': '10'}], admin_user)
        response = sales_client.get(f'{API}/sales-commissions/')
        assert response.json()['count'] == 0

    def test_raw_materials_below_filter(self, admin_client, resin, pigment):
        response = admin_client.get(f'{API}/raw-materials/', {'below': '10'})
        assert [row['name'] for row in response.json()['results']] == ['Resin']

    def test_notification_read_action(self, admin_client, resin):
        from alerts.services import sync_low_stock_notifications

        sync_low_stock_notifications(threshold=10)
        notification_id = admin_client.get(f'{API}/notifications/').json()['results'][0]['id']
        response = admin_client.post(f'{API}/notifications/{notification_id}/read/')
        assert response.status_code == 200
        assert response.json()['is_read'] is True


@pytest.mark.django_db
class TestReportEndpoints:
    def test_income_statement(self, admin_client):
        response = admin_client.get(f'{API}/reports/income-statement/', {'start': '2026-01-01', 'end': '2026-01-31'})
        assert response.status_code == 200
        assert Decimal(str(response.json()['net_income'])) == Decimal('0')

    def test_bad_date(self, admin_client):
        response = admin_client.get(f'{API}/reports/income-statement/', {'start': 'yesterday'})
        assert response.status_code == 400

    def test_unknown_report(self, admin_client):
        assert admin_client.get(f'{API}/reports/nothing/').status_code == 404

    def test_reports_are_admin_only(self, sales_client):
        assert sales_client.get(f'{API}/reports/receivables/').status_code == 403

    def test_breakdown_reports(self, admin_client, admin_user, distributor, widget, supplier, resin):
        from purchases.services import create_purchase_order
        from sales.services import create_invoice

        create_invoice(
            distributor, [{'product_id': widget.pk, 'quantity': 4, 'unit_price': '10'}], admin_user,
            payments=[{'amount': '40'}],
        )
        create_purchase_order(
            supplier=supplier, items=[{'raw_material_id': resin.pk, 'quantity': '3', 'unit_cost': '2'}],
        )

        rows = admin_client.get(f'{API}/reports/distributor-sales/').json()
        assert rows[0]['distributor_name'] == 'Acme'
        assert Decimal(rows[0]['total_sales']) == Decimal('40.00')

        rows = admin_client.get(f'{API}/reports/product-performance/', {'limit': '5'}).json()
        assert rows[0]['description'] == 'Widget'
        assert rows[0]['units'] == 4

        rows = admin_client.get(f'{API}/reports/supplier-spend/').json()
        assert rows[0]['supplier_name'] == supplier.name
        assert Decimal(rows[0]['spend']) == Decimal('6.00')

    def test_product_performance_bad_limit(self, admin_client):
        assert admin_client.get(f'{API}/reports/product-performance/', {'limit': 'many'}).status_code == 400
