import pytest
from decimal import Decimal

from core.money import clamp_zero, quantize_cost, quantize_money, to_decimal
from core.query import filter_records, paginate, sort_records


class TestMoney:
    def test_to_decimal_avoids_binary_floats(self):
        assert to_decimal(0.1) + to_decimal(0.2) == Decimal('0.3')

    def test_to_decimal_empty_uses_default(self):
        assert to_decimal(None) == Decimal('0')
        assert to_decimal('') == Decimal('0')

    def test_to_decimal_rejects_garbage(self):
        with pytest.raises(ValueError):
            to_decimal('abc')

    def test_quantize_rounds_half_up(self):
        assert quantize_money('2.345') == Decimal('2.35')
        assert quantize_cost('1.23455') == Decimal('1.2346')

    def test_clamp_zero(self):
        assert clamp_zero(Decimal('-3.10')) == Decimal('0')
        assert clamp_zero(Decimal('4.00')) == Decimal('4.00')


INVOICES = (
    {'number': 'INV#1', 'customer': 'Acme', 'status': 'Unpaid', 'due': Decimal('50')},
    {'number': 'INV#2', 'customer': 'Globex', 'status': 'Paid', 'due': Decimal('0')},
    {'number': 'INV#3', 'customer': 'Acme Retail', 'status': 'Unpaid', 'due': None},
    {'number': 'INV#4', 'customer': 'Initech', 'status': 'Partially Paid', 'due': Decimal('10')},
)


class TestQuery:
    def test_filter_by_search_and_equality(self):
        rows = filter_records(INVOICES, search='acme', fields=('customer',), status='Unpaid')
        assert [r['number'] for r in rows] == ['INV#1', 'INV#3']

    def test_filter_ignores_empty_criteria(self):
        assert len(filter_records(INVOICES, status=None)) == 4

    def test_sort_puts_missing_values_last(self):
        rows = sort_records(INVOICES, 'due', descending=True)
        assert [r['number'] for r in rows] == ['INV#1', 'INV#4', 'INV#2', 'INV#3']

    def test_sort_accepts_generators(self):
        rows = sort_records((r for r in INVOICES), 'number')
        assert len(rows) == 4

    def test_inputs_are_not_mutated(self):
        before = list(INVOICES)
        sort_records(INVOICES, 'customer')
        filter_records(INVOICES, search='x', fields=('customer',))
        assert list(INVOICES) == before

    def test_paginate(self):
        page = paginate(INVOICES, page=2, per_page=3)
        assert page.items == (INVOICES[3],)
        assert page.num_pages == 2
        assert not page.has_next

    def test_paginate_clamps_out_of_range_page(self):
        page = paginate(INVOICES, page=99, per_page=2)
        assert page.number == 2

    def test_paginate_empty(self):
        page = paginate([], page=1, per_page=5)
        assert page.items == ()
        assert page.num_pages == 1

    def test_paginate_rejects_bad_page_size(self):
        with pytest.raises(ValueError):
            paginate(INVOICES, per_page=0)
