import pytest
from decimal import Decimal

from points import services as point_services
from points.models import PointTransaction
from wallet import services as wallet_services


@pytest.mark.django_db
class TestBalancesAPI:
    def test_own_balances(self, dealer_client, funded_dealer, place_wallet_order):
        place_wallet_order(funded_dealer)

        response = dealer_client.get("/api/v1/balances/")

        assert response.status_code == 200
        assert response.json() == {
            "account": str(funded_dealer.pk),
            "point_type": "X",
            "point_balance": "0.00",
            "wallet_balance": "5000.00",
            "pending_point_total": "100.00",
        }

    def test_staff_reads_another_account(self, staff_client, funded_dealer):
        response = staff_client.get("/api/v1/balances/", {"account": funded_dealer.email})
        assert response.json()["wallet_balance"] == "25000.00"

    def test_non_staff_cannot_read_another_account(self, dealer_client, dealer, consumer):
        wallet_services.deposit(consumer, Decimal("99"))
        response = dealer_client.get("/api/v1/balances/", {"account": consumer.email})
        assert response.json()["account"] == str(dealer.pk)


@pytest.mark.django_db
class TestLedgerHistoryAPI:
    def test_wallet_history_filtered_by_type(self, dealer_client, funded_dealer, place_wallet_order):
        place_wallet_order(funded_dealer)

        response = dealer_client.get("/api/v1/wallet-transactions/", {"transaction_type": "payment"})

        results = response.json()["results"]
        assert len(results) == 1
        assert results[0]["amount"] == "-20000.00"
        assert results[0]["order_number"].startswith("ORD")

    def test_point_history(self, dealer_client, dealer):
        point_services.grant_points(dealer, Decimal("10"))
        response = dealer_client.get("/api/v1/point-transactions/")
        assert response.json()["results"][0]["transaction_type"] == "grant"

    def test_historical_withdrawals_stay_readable(self, dealer_client, dealer):
        PointTransaction.objects.create(
            account=dealer,
            transaction_type=PointTransaction.TransactionType.WITHDRAWAL,
            amount=Decimal("-5.00"),
            balance_after=Decimal("0.00"),
            description="Legacy withdrawal",
        )

        response = dealer_client.get("/api/v1/point-transactions/", {"transaction_type": "withdrawal"})

        assert response.status_code == 200
        assert [row["description"] for row in response.json()["results"]] == ["Legacy withdrawal"]

    def test_pending_points(self, dealer_client, funded_dealer, place_wallet_order):
        order = place_wallet_order(funded_dealer)

        response = dealer_client.get("/api/v1/pending-points/", {"status": "pending"})

        results = response.json()["results"]
        assert results[0]["order_number"] == order.order_number
        assert results[0]["point_amount"] == "100.00"

    def test_manual_release_requires_staff(self, dealer_client, staff_client):
        assert dealer_client.post("/api/v1/pending-points/release/").status_code == 403
        response = staff_client.post("/api/v1/pending-points/release/")
        assert response.json() == {"released_count": 0, "total_amount": "0.00"}


@pytest.mark.django_db
class TestAdjustmentAPI:
    def test_deposit_and_deduct(self, staff_client, dealer):
        response = staff_client.post(
            "/api/v1/admin/wallet/deposit/",
            {"account": dealer.email, "amount": "1000", "reason": "promotion"},
            format="json",
        )
        assert response.json() == {"account": str(dealer.pk), "balance": "1000.00"}

        response = staff_client.post(
            "/api/v1/admin/wallet/deduct/", {"account": dealer.email, "amount": "5000"}, format="json",
        )
        assert response.status_code == 400
        assert wallet_services.get_balance(dealer) == Decimal("1000.00")

    def test_unknown_account_is_404(self, staff_client):
        response = staff_client.post(
            "/api/v1/admin/points/grant/", {"account": "ghost@test.com", "amount": "1"}, format="json",
        )
        assert response.status_code == 404

    def test_bulk_grant_reports_row_failures(self, staff_client, dealer, consumer):
        response = staff_client.post(
            "/api/v1/admin/points/bulk-grant/",
            {"rows": [
                {"account": dealer.email, "amount": "500"},
                {"account": "ghost@test.com", "amount": "500"},
                {"account": consumer.email, "amount": "0"},
            ]},
            format="json",
        )

        body = response.json()
        assert body["success_count"] == 1
        assert body["fail_count"] == 2
        assert [e["row"] for e in body["errors"]] == [2, 3]
        assert point_services.get_balance(dealer) == Decimal("500.00")

    def test_adjustments_require_staff(self, dealer_client, dealer):
        response = dealer_client.post(
            "/api/v1/admin/wallet/deposit/", {"account": dealer.email, "amount": "1000"}, format="json",
        )
        assert response.status_code == 403


@pytest.mark.django_db
def test_payment_callback_is_public(api_client):
    response = api_client.post("/api/v1/payments/callback/", {"orderid": "ORD1", "rescode": "0000"})
    assert response.status_code == 200
    assert response.json() == {"rescode": "0000", "resmsg": "SUCCESS"}
