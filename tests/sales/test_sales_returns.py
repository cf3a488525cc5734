import pytest
from decimal import Decimal

from core.exceptions import InvalidTransitionError, ReturnExceedsDueError
from sales.models import SalesReturn
from sales.services import cancel_invoice, create_invoice, process_sales_return, record_invoice_payment


@pytest.fixture
def open_invoice(distributor, widget, sales_user):
    return create_invoice(
        distributor,
        [{'product_id': widget.pk, 'quantity': 10, 'unit_price': '8'}],
        sales_user,
    )


@pytest.mark.django_db
class TestSalesReturn:
    def test_return_at_selling_price(self, open_invoice, widget, admin_user):
        sales_return = process_sales_return(
            open_invoice, [{'product_id': widget.pk, 'quantity': 2}], reason='Damaged', actor=admin_user,
        )
        assert sales_return.valuation == 'selling_price'
        assert sales_return.total_amount == Decimal('20.00')
        assert sales_return.total_quantity == 2

        open_invoice.refresh_from_db()
        assert open_invoice.total_amount == Decimal('60.00')
        assert open_invoice.due_amount == Decimal('60.00')
        assert open_invoice.status == 'Unpaid'
        widget.refresh_from_db()
        assert widget.quantity == 92

    def test_return_at_invoice_price(self, open_invoice, widget):
        sales_return = process_sales_return(
            open_invoice, [{'product_id': str(widget.pk), 'quantity': 2}], valuation='invoice_price',
        )
        assert sales_return.total_amount == Decimal('16.00')
        assert sales_return.items.get().unit_value == Decimal('8.00')

    def test_valuation_from_settings(self, open_invoice, widget, settings):
        settings.SALES_RETURN_VALUATION = 'invoice_price'
        sales_return = process_sales_return(open_invoice, [{'product_id': widget.pk, 'quantity': 1}])
        assert sales_return.valuation == 'invoice_price'

    def test_unknown_valuation(self, open_invoice, widget):
        with pytest.raises(ValueError):
            process_sales_return(open_invoice, [{'product_id': widget.pk, 'quantity': 1}], valuation='cost')

    def test_missing_selling_price(self, open_invoice, widget):
        widget.selling_price = None
        widget.save()
        with pytest.raises(ValueError):
            process_sales_return(open_invoice, [{'product_id': widget.pk, 'quantity': 1}])

    def test_return_larger_than_due_rejected(self, open_invoice, widget, sales_user):
        record_invoice_payment(open_invoice, '70', actor=sales_user)
        with pytest.raises(ReturnExceedsDueError):
            process_sales_return(open_invoice, [{'product_id': widget.pk, 'quantity': 2}])
        open_invoice.refresh_from_db()
        widget.refresh_from_db()
        assert open_invoice.total_amount == Decimal('80.00')
        assert widget.quantity == 90
        assert not SalesReturn.objects.exists()

    def test_return_settling_balance_marks_paid(self, open_invoice, widget, sales_user):
        record_invoice_payment(open_invoice, '60', actor=sales_user)
        process_sales_return(open_invoice, [{'product_id': widget.pk, 'quantity': 2}])
        open_invoice.refresh_from_db()
        assert open_invoice.total_amount == Decimal('60.00')
        assert open_invoice.due_amount == Decimal('0.00')
        assert open_invoice.status == 'Paid'

    def test_partial_payment_stays_partially_paid(self, open_invoice, widget, sales_user):
        record_invoice_payment(open_invoice, '30', actor=sales_user)
        process_sales_return(open_invoice, [{'product_id': widget.pk, 'quantity': 1}])
        open_invoice.refresh_from_db()
        assert open_invoice.due_amount == Decimal('40.00')
        assert open_invoice.status == 'Partially Paid'

    def test_quantity_bounded_by_previous_returns(self, distributor, widget, sales_user):
        invoice = create_invoice(
            distributor, [{'product_id': widget.pk, 'quantity': 3, 'unit_price': '10'}], sales_user,
        )
        process_sales_return(invoice, [{'product_id': widget.pk, 'quantity': 2}])
        with pytest.raises(ValueError):
            process_sales_return(invoice, [{'product_id': widget.pk, 'quantity': 2}])
        process_sales_return(invoice, [{'product_id': widget.pk, 'quantity': 1}])
        widget.refresh_from_db()
        assert widget.quantity == 100

    @pytest.mark.parametrize('quantity', [1.5, '0.25'])
    def test_fractional_quantity_rejected(self, open_invoice, widget, quantity):
        with pytest.raises(ValueError, match='nombre entier'):
            process_sales_return(open_invoice, [{'product_id': widget.pk, 'quantity': quantity}])
        assert not SalesReturn.objects.exists()
        widget.refresh_from_db()
        assert widget.quantity == 90

    def test_whole_number_string_quantity(self, open_invoice, widget):
        sales_return = process_sales_return(open_invoice, [{'product_id': widget.pk, 'quantity': '2.0'}])
        assert sales_return.total_quantity == 2

    def test_product_not_on_invoice_rejected(self, open_invoice, gadget):
        with pytest.raises(ValueError):
            process_sales_return(open_invoice, [{'product_id': gadget.pk, 'quantity': 1}])

    def test_paid_invoice_rejected(self, open_invoice, widget, sales_user):
        record_invoice_payment(open_invoice, '80', actor=sales_user)
        with pytest.raises(InvalidTransitionError):
            process_sales_return(open_invoice, [{'product_id': widget.pk, 'quantity': 1}])

    def test_cancel_after_return_restocks_remaining_units_only(self, open_invoice, widget, admin_user):
        process_sales_return(open_invoice, [{'product_id': widget.pk, 'quantity': 4}])
        cancel_invoice(open_invoice, admin_user)
        widget.refresh_from_db()
        assert widget.quantity == 100
