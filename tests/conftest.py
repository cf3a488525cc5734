from decimal import Decimal

import pytest
from rest_framework.test import APIClient

from accounts.models import User
from commissions.models import CommissionRule
from distributors.models import Distributor
from inventory.models import FinishedGood, RawMaterial
from purchases.models import Supplier


@pytest.fixture
def admin_user(db):
    return User.objects.create_user(
        email="admin@test.com",
        password="testpass123",
        first_name="Admin",
        last_name="User",
        role=User.Role.ADMIN,
    )


@pytest.fixture
def sales_user(db):
    return User.objects.create_user(
        email="sales@test.com",
        password="testpass123",
        first_name="Sales",
        last_name="User",
        role=User.Role.SALESPERSON,
    )


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def admin_client(api_client, admin_user):
    api_client.force_authenticate(user=admin_user)
    return api_client


@pytest.fixture
def sales_client(api_client, sales_user):
    api_client.force_authenticate(user=sales_user)
    return api_client


@pytest.fixture
def distributor(db):
    return Distributor.objects.create(
        name="Acme",
        tier="Gold",
        location="Dhaka",
        email="orders@acme.test",
        phone="+8801700000000",
    )


@pytest.fixture
def widget(db):
    return FinishedGood.objects.create(
        product_name="Widget",
        quantity=100,
        unit_cost=Decimal("6.0000"),
        selling_price=Decimal("10.00"),
    )


@pytest.fixture
def gadget(db):
    return FinishedGood.objects.create(
        product_name="Gadget",
        quantity=5,
        unit_cost=Decimal("20.0000"),
        selling_price=Decimal("35.00"),
    )


@pytest.fixture
def gold_rule(db):
    return CommissionRule.objects.create(
        rule_name="Gold distributors 5%",
        applies_to=["Gold"],
        type="Percentage",
        rate=Decimal("5.00"),
    )


@pytest.fixture
def resin(db):
    return RawMaterial.objects.create(
        name="Resin",
        category="Chemicals",
        quantity=Decimal("0.000"),
        unit=RawMaterial.Unit.KG,
        unit_cost=Decimal("0.0000"),
    )


@pytest.fixture
def pigment(db):
    return RawMaterial.objects.create(
        name="Pigment",
        category="Chemicals",
        quantity=Decimal("40.000"),
        unit=RawMaterial.Unit.GM,
        unit_cost=Decimal("0.5000"),
    )


@pytest.fixture
def supplier(db):
    return Supplier.objects.create(
        name="Chemical Supply Inc.",
        category="Chemicals",
        contact_person="R. Karim",
        phone="+8801800000000",
    )
