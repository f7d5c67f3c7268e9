import pytest
from decimal import Decimal

from django.db import IntegrityError

from accounts.models import User
from catalog.models import Product


@pytest.mark.django_db
class TestProductPricing:
    def test_dealer_pays_dealer_price_and_earns_pv(self, product):
        assert product.unit_price_for(User.Grade.DEALER) == Decimal("10000.00")
        assert product.unit_pv_for(User.Grade.DEALER) == Decimal("100.00")

    def test_consumer_pays_consumer_price_without_pv(self, product):
        assert product.unit_price_for(User.Grade.CONSUMER) == Decimal("12000.00")
        assert product.unit_pv_for(User.Grade.CONSUMER) == Decimal("0.00")

    def test_stock_cannot_be_negative(self, product):
        with pytest.raises(IntegrityError):
            Product.objects.filter(pk=product.pk).update(stock_quantity=-1)
