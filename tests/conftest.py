import pytest
from decimal import Decimal

from rest_framework.test import APIClient

from accounts.models import User
from catalog.models import Product
from orders.services import place_order
from payments.gateway import GatewayResult
from wallet import services as wallet_services


@pytest.fixture
def dealer(db):
    return User.objects.create_user(
        email="dealer@test.com",
        password="testpass123",
        name="Dealer A",
        grade=User.Grade.DEALER,
    )


@pytest.fixture
def consumer(db):
    return User.objects.create_user(
        email="consumer@test.com",
        password="testpass123",
        name="Consumer B",
        grade=User.Grade.CONSUMER,
    )


@pytest.fixture
def staff_user(db):
    return User.objects.create_user(
        email="staff@test.com",
        password="testpass123",
        name="Operator",
        is_staff=True,
    )


@pytest.fixture
def product(db):
    return Product.objects.create(
        name="Red Ginseng Tonic",
        sku="RG-001",
        consumer_price=Decimal("12000.00"),
        dealer_price=Decimal("10000.00"),
        pv_value=Decimal("100.00"),
        stock_quantity=10,
    )


@pytest.fixture
def other_product(db):
    return Product.objects.create(
        name="Collagen Powder",
        sku="CP-002",
        consumer_price=Decimal("6000.00"),
        dealer_price=Decimal("5000.00"),
        pv_value=Decimal("40.00"),
        stock_quantity=5,
    )


@pytest.fixture
def shipping():
    return {
        "name": "Kim Recipient",
        "phone": "010-1234-5678",
        "address": "1 Teheran-ro, Gangnam-gu, Seoul",
        "memo": "Leave at the door",
    }


class FakeGatewayClient:
    """Stands in for CardGatewayClient; records calls and returns canned results."""

    def __init__(self):
        self.authorize_result = GatewayResult(success=True, transaction_id="TRAN-0001", code="0000")
        self.cancel_result = GatewayResult(success=True, code="0000")
        self.calls = []

    def authorize(self, **kwargs):
        self.calls.append(("authorize", kwargs))
        return self.authorize_result

    def cancel(self, **kwargs):
        self.calls.append(("cancel", kwargs))
        return self.cancel_result

    def calls_to(self, name):
        return [kwargs for call, kwargs in self.calls if call == name]


@pytest.fixture
def gateway(monkeypatch):
    client = FakeGatewayClient()
    monkeypatch.setattr("payments.services.get_client", lambda: client)
    return client


@pytest.fixture
def card_details():
    return {
        "card_number": "4111-1111-1111-1111",
        "card_expiry": "1228",
        "card_auth": "900101",
        "card_password": "12",
        "installment_months": "00",
    }


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def dealer_client(dealer):
    client = APIClient()
    client.force_authenticate(user=dealer)
    return client


@pytest.fixture
def staff_client(staff_user):
    client = APIClient()
    client.force_authenticate(user=staff_user)
    return client


@pytest.fixture
def funded_dealer(dealer):
    wallet_services.deposit(dealer, Decimal("25000"))
    return dealer


@pytest.fixture
def place_wallet_order(product, shipping):
    """Factory: settle an order paid entirely from the account's wallet."""
    def _place(account, quantity=2, target=None):
        target = target or product
        amount = target.unit_price_for(account.grade) * quantity
        return place_order(
            account,
            [{"product_id": str(target.pk), "quantity": quantity}],
            {"wallet": amount},
            shipping,
        )

    return _place
