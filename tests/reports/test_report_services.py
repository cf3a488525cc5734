import pytest
from datetime import date
from decimal import Decimal

from distributors.models import Distributor
from expenses.models import Expense
from hrm.models import SalaryPayment
from purchases.models import Supplier
from purchases.services import cancel_purchase_order, create_purchase_order, record_purchase_payment
from reports import services as reports
from sales.services import cancel_invoice, create_invoice


def sell(distributor, user, good, qty, price, **kwargs):
    return create_invoice(
        distributor, [{'product_id': good.pk, 'quantity': qty, 'unit_price': price}], user, **kwargs,
    )


@pytest.mark.django_db
class TestReceivablesAndPayables:
    def test_receivables_summary(self, distributor, widget, sales_user):
        sell(distributor, sales_user, widget, 5, '10', date=date(2026, 1, 1), due_date=date(2026, 1, 5))
        sell(distributor, sales_user, widget, 2, '10', date=date(2026, 1, 1), due_date=date(2026, 2, 1),
             payments=[{'amount': '5'}])
        sell(distributor, sales_user, widget, 1, '10', payments=[{'amount': '10'}])

        summary = reports.receivables_summary(today=date(2026, 1, 10))
        assert summary['invoices'] == 2
        assert summary['outstanding'] == Decimal('65.00')
        assert summary['overdue'] == Decimal('50.00')
        assert summary['overdue_invoices'] == 1
        assert summary['by_status']['Partially Paid']['due'] == Decimal('15.00')

    def test_payables_summary(self, supplier, resin):
        po = create_purchase_order(
            supplier=supplier, items=[{'raw_material_id': resin.pk, 'quantity': '10', 'unit_cost': '4'}],
        )
        record_purchase_payment(po, '15')
        cancelled = create_purchase_order(
            supplier=supplier, items=[{'raw_material_id': resin.pk, 'quantity': '1', 'unit_cost': '4'}],
        )
        cancel_purchase_order(cancelled)

        summary = reports.payables_summary()
        assert summary['orders'] == 1
        assert summary['outstanding'] == Decimal('25.00')
        assert summary['by_supplier'][0]['supplier_name'] == supplier.name

    def test_outstanding_invoices_page(self, distributor, widget, sales_user):
        for _ in range(3):
            sell(distributor, sales_user, widget, 1, '10')
        result = reports.outstanding_invoices(search='acme', per_page=2, page=2)
        assert result['count'] == 3
        assert result['num_pages'] == 2
        assert len(result['results']) == 1


@pytest.mark.django_db
class TestValuationAndCommissions:
    def test_inventory_valuation(self, widget, gadget, pigment):
        data = reports.inventory_valuation()
        assert data['finished_goods']['units'] == 105
        assert data['finished_goods']['value'] == Decimal('700.00')
        assert data['raw_materials']['value'] == Decimal('20.00')
        assert data['total_value'] == Decimal('720.00')

    def test_commission_totals_by_distributor(self, distributor, widget, sales_user, gold_rule):
        sell(distributor, sales_user, widget, 10, '10', date=date(2026, 4, 1))
        sell(distributor, sales_user, widget, 2, '10', date=date(2026, 4, 20))

        rows = reports.commission_totals_by_distributor(date_from=date(2026, 4, 1), date_to=date(2026, 4, 30))
        assert len(rows) == 1
        assert rows[0]['distributor_name'] == 'Acme'
        assert rows[0]['records'] == 2
        assert rows[0]['commission'] == Decimal('6.00')

        assert reports.commission_totals_by_distributor(date_from=date(2026, 5, 1)) == []


@pytest.mark.django_db
class TestIncomeStatement:
    def test_net_income(self, distributor, widget, sales_user, admin_user, supplier, resin):
        start, end = date(2026, 6, 1), date(2026, 6, 30)
        sell(distributor, sales_user, widget, 10, '10', date=date(2026, 6, 3))
        cancelled = sell(distributor, sales_user, widget, 5, '10', date=date(2026, 6, 4))
        cancel_invoice(cancelled, admin_user)
        sell(distributor, sales_user, widget, 1, '10', date=date(2026, 7, 1))
        create_purchase_order(
            supplier=supplier,
            items=[{'raw_material_id': resin.pk, 'quantity': '5', 'unit_cost': '4'}],
            date=date(2026, 6, 10),
        )
        Expense.objects.create(category='Rent', description='June rent', date=date(2026, 6, 1), amount=Decimal('30'))
        SalaryPayment.objects.create(employee_name='R. Ahmed', payment_date=date(2026, 6, 30), amount=Decimal('25'))

        statement = reports.income_statement(start, end)
        assert statement['sales'] == Decimal('100.00')
        assert statement['purchases'] == Decimal('20.00')
        assert statement['expenses'] == Decimal('30.00')
        assert statement['salaries'] == Decimal('25.00')
        assert statement['net_income'] == Decimal('25.00')

    def test_start_after_end_rejected(self):
        with pytest.raises(ValueError):
            reports.income_statement(date(2026, 2, 1), date(2026, 1, 1))


@pytest.mark.django_db
class TestSalesBreakdowns:
    def test_distributor_sales_summary(self, distributor, widget, sales_user, admin_user, gold_rule):
        quiet = Distributor.objects.create(name='Globex', tier='Silver')
        sell(distributor, sales_user, widget, 10, '10', date=date(2026, 3, 2), payments=[{'amount': '40'}])
        cancelled = sell(distributor, sales_user, widget, 2, '10', date=date(2026, 3, 5))
        cancel_invoice(cancelled, admin_user)
        sell(distributor, sales_user, widget, 1, '10', date=date(2026, 4, 1), payments=[{'amount': '10'}])

        rows = reports.distributor_sales_summary(date_from=date(2026, 3, 1), date_to=date(2026, 3, 31))
        assert [row['distributor_name'] for row in rows] == ['Acme', 'Globex']
        acme, globex = rows
        assert acme['invoices'] == 1
        assert acme['total_sales'] == Decimal('40.00')
        assert acme['outstanding_dues'] == Decimal('60.00')
        # Commission rows stay on the ledger after cancellation.
        assert acme['commission'] == Decimal('6.00')
        assert globex['distributor_id'] == str(quiet.pk)
        assert globex['total_sales'] == Decimal('0.00')
        assert globex['commission'] == Decimal('0.00')

    def test_product_performance(self, distributor, widget, gadget, sales_user):
        sell(distributor, sales_user, widget, 3, '10', payments=[{'amount': '30'}])
        sell(distributor, sales_user, gadget, 2, '35', payments=[{'amount': '10'}])
        sell(distributor, sales_user, widget, 1, '10')

        rows = reports.product_performance()
        assert [(row['description'], row['units'], row['revenue']) for row in rows] == [
            ('Gadget', 2, Decimal('70.00')),
            ('Widget', 3, Decimal('30.00')),
        ]
        assert [row['description'] for row in reports.product_performance(limit=1)] == ['Gadget']

    def test_supplier_spend(self, supplier, resin):
        other = Supplier.objects.create(name='Polymer Traders')
        create_purchase_order(
            supplier=supplier, items=[{'raw_material_id': resin.pk, 'quantity': '10', 'unit_cost': '4'}],
        )
        create_purchase_order(
            supplier=other, items=[{'raw_material_id': resin.pk, 'quantity': '2', 'unit_cost': '5'}],
        )
        cancelled = create_purchase_order(
            supplier=other, items=[{'raw_material_id': resin.pk, 'quantity': '100', 'unit_cost': '5'}],
        )
        cancel_purchase_order(cancelled)

        rows = reports.supplier_spend()
        assert [(row['supplier_name'], row['orders'], row['spend']) for row in rows] == [
            ('Chemical Supply Inc.', 1, Decimal('40.00')),
            ('Polymer Traders', 1, Decimal('10.00')),
        ]
