import pytest
from decimal import Decimal

from django.db.models import Sum

from core.exceptions import InsufficientBalanceError, OrderValidationError
from points import services as point_services
from points.models import PointBalance, PointTransaction
from wallet import services as wallet_services


def ledger_sum(account, point_type="X"):
    total = (
        PointTransaction.objects
        .filter(account=account, point_type=point_type)
        .aggregate(total=Sum("amount"))["total"]
    )
    return total or Decimal("0.00")


@pytest.mark.django_db
class TestPointLedger:
    def test_grant_upserts_balance_row(self, dealer, staff_user):
        assert point_services.grant_points(dealer, Decimal("300"), "Welcome", actor=staff_user) == Decimal("300.00")
        assert point_services.grant_points(dealer, Decimal("200"), "Event") == Decimal("500.00")

        assert PointBalance.objects.filter(account=dealer).count() == 1
        balance = PointBalance.objects.get(account=dealer)
        assert balance.point_type == "X"
        assert balance.balance == Decimal("500.00")

    def test_deduct_refused_below_zero(self, dealer):
        point_services.grant_points(dealer, Decimal("100"))

        with pytest.raises(InsufficientBalanceError):
            point_services.deduct_points(dealer, Decimal("150"))

        assert point_services.get_balance(dealer) == Decimal("100.00")
        assert point_services.deduct_points(dealer, Decimal("100")) == Decimal("0.00")

    def test_retired_point_type_rejected(self, dealer):
        with pytest.raises(OrderValidationError):
            point_services.grant_points(dealer, Decimal("100"), point_type="P")

    def test_admin_deduct_entry_is_negative(self, dealer):
        point_services.grant_points(dealer, Decimal("100"))
        point_services.deduct_points(dealer, Decimal("40"), "Correction")

        tx = PointTransaction.objects.get(transaction_type=PointTransaction.TransactionType.ADMIN_DEDUCT)
        assert tx.amount == Decimal("-40.00")
        assert tx.balance_after == Decimal("60.00")
        assert ledger_sum(dealer) == point_services.get_balance(dealer)

    def test_get_balances_reports_wallet_points_and_escrow(self, dealer):
        wallet_services.deposit(dealer, Decimal("25000"))
        point_services.grant_points(dealer, Decimal("70"))

        balances = point_services.get_balances(dealer)

        assert balances == {
            "point_type": "X",
            "point_balance": Decimal("70.00"),
            "wallet_balance": Decimal("25000.00"),
            "pending_point_total": Decimal("0.00"),
        }

    def test_bulk_grant_and_deduct(self, dealer, consumer):
        result = point_services.bulk_grant([
            (dealer.email, "100", "Promo"),
            (consumer.email, "50", "Promo"),
        ])
        assert result.success_count == 2

        result = point_services.bulk_deduct([
            (dealer.email, "30", ""),
            (consumer.email, "80", ""),
            ("", "10", ""),
        ])
        assert result.success_count == 1
        assert [error["row"] for error in result.errors] == [2, 3]
        assert point_services.get_balance(dealer) == Decimal("70.00")
        assert point_services.get_balance(consumer) == Decimal("50.00")


@pytest.mark.django_db
def test_compute_reward_uses_configured_rate(settings):
    settings.POINT_REWARD_RATE = Decimal("0.5")
    assert point_services.compute_reward(Decimal("200")) == Decimal("100.00")

    settings.POINT_REWARD_RATE = Decimal("0.333")
    assert point_services.compute_reward(Decimal("10")) == Decimal("3.33")
