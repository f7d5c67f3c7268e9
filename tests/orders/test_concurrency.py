import threading
from decimal import Decimal

import pytest
from django.db import connection, connections

from accounts.models import User
from catalog.models import Product
from core.exceptions import InsufficientStockError
from orders.models import Order
from orders.services import place_order
from wallet import services as wallet_services


def _last_unit_product():
    return Product.objects.create(
        name="Limited Edition Set",
        sku="LTD-001",
        consumer_price=Decimal("12000.00"),
        dealer_price=Decimal("10000.00"),
        pv_value=Decimal("100.00"),
        stock_quantity=1,
    )


def _funded_dealer(email):
    account = User.objects.create_user(email=email, password="testpass123", name=email, grade=User.Grade.DEALER)
    wallet_services.deposit(account, Decimal("10000"))
    return account


@pytest.mark.django_db
def test_second_order_for_last_unit_is_rejected(shipping):
    product = _last_unit_product()
    first, second = _funded_dealer("a@test.com"), _funded_dealer("b@test.com")
    items = [{"product_id": str(product.pk), "quantity": 1}]

    place_order(first, items, {"wallet": "10000"}, shipping)
    with pytest.raises(InsufficientStockError):
        place_order(second, items, {"wallet": "10000"}, shipping)

    product.refresh_from_db()
    assert product.stock_quantity == 0
    assert wallet_services.get_balance(second) == Decimal("10000.00")


@pytest.mark.skipif(connection.vendor != "postgresql", reason="row locks need PostgreSQL")
@pytest.mark.django_db(transaction=True)
def test_concurrent_orders_for_last_unit(shipping):
    product = _last_unit_product()
    accounts = [_funded_dealer("a@test.com"), _funded_dealer("b@test.com")]
    items = [{"product_id": str(product.pk), "quantity": 1}]
    barrier = threading.Barrier(len(accounts))
    outcomes = []

    def checkout(account):
        try:
            barrier.wait()
            place_order(account, items, {"wallet": "10000"}, shipping)
            outcomes.append("ok")
        except InsufficientStockError:
            outcomes.append("out_of_stock")
        finally:
            connections.close_all()

    threads = [threading.Thread(target=checkout, args=(account,)) for account in accounts]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sorted(outcomes) == ["ok", "out_of_stock"]
    product.refresh_from_db()
    assert product.stock_quantity == 0
    assert Order.objects.count() == 1
    balances = sorted(wallet_services.get_balance(account) for account in accounts)
    assert balances == [Decimal("0.00"), Decimal("10000.00")]
