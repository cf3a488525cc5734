import pytest
from datetime import date
from decimal import Decimal

from inventory.services import create_finished_good_formula
from production.models import ProductionOrder
from production.services import create_production_order


@pytest.fixture
def tinted_resin(resin, pigment):
    resin.unit_cost = Decimal('3.0000')
    resin.save()
    return create_finished_good_formula(
        'Tinted Resin',
        [
            {'raw_material_id': resin.pk, 'quantity_per_unit': '2'},
            {'raw_material_id': pigment.pk, 'quantity_per_unit': '4'},
        ],
    )


@pytest.mark.django_db
class TestProductionOrder:
    def test_costs_come_from_formula(self, tinted_resin, admin_user):
        order = create_production_order(
            tinted_resin, 10, labour_cost='40', other_costs='15', wastage_value='5',
            start_date=date(2026, 2, 1), actor=admin_user,
        )
        assert order.material_cost == Decimal('80.00')
        assert order.total_cost == Decimal('140.00')
        assert order.unit_cost == Decimal('14.0000')
        assert order.status == ProductionOrder.Status.PENDING
        assert order.product_name == 'Tinted Resin'

    def test_stock_is_untouched(self, tinted_resin, resin):
        create_production_order(tinted_resin, 5)
        tinted_resin.refresh_from_db()
        resin.refresh_from_db()
        assert tinted_resin.quantity == 0
        assert resin.quantity == Decimal('0.000')

    def test_product_without_formula_rejected(self, widget):
        with pytest.raises(ValueError):
            create_production_order(widget, 5)

    @pytest.mark.parametrize('quantity', [0, -1, 'ten'])
    def test_invalid_quantity(self, tinted_resin, quantity):
        with pytest.raises(ValueError):
            create_production_order(tinted_resin, quantity)

    def test_unknown_status(self, tinted_resin):
        with pytest.raises(ValueError):
            create_production_order(tinted_resin, 1, status='Paused')
        assert not ProductionOrder.objects.exists()
