import pytest
from decimal import Decimal

from django.db import DatabaseError

from payments.models import PaymentRequest
from payments.services import handle_payment_callback, record_declined_payment, reverse_card_payment


@pytest.fixture
def pending_request(db):
    return PaymentRequest.objects.create(
        order_ref="ORD250101-ABCDEF", amount=Decimal("20000.00"), payment_data={"card_last4": "1111"},
    )


@pytest.mark.django_db
class TestPaymentCallback:
    def test_success_completes_request(self, pending_request):
        ack = handle_payment_callback({
            "orderid": "ORD250101-ABCDEF", "rescode": "0000", "tranid": "T-9",
            "card_name": "VISA", "card_auth_no": "123456", "tran_date": "20250101",
        })

        assert ack == {"rescode": "0000", "resmsg": "SUCCESS"}
        pending_request.refresh_from_db()
        assert pending_request.status == PaymentRequest.Status.COMPLETED
        assert pending_request.gateway_transaction_id == "T-9"
        assert pending_request.payment_data == {
            "card_last4": "1111", "card_name": "VISA", "card_auth_no": "123456", "tran_date": "20250101",
        }

    def test_failure_marks_request_failed(self, pending_request):
        ack = handle_payment_callback({"orderid": "ORD250101-ABCDEF", "rescode": "P008"})

        assert ack["rescode"] == "0000"
        pending_request.refresh_from_db()
        assert pending_request.status == PaymentRequest.Status.FAILED
        assert pending_request.error_message == "Payment failed."

    @pytest.mark.parametrize("rescode", ["0000", "P008"])
    def test_late_callback_leaves_cancelled_request_alone(self, pending_request, rescode):
        PaymentRequest.objects.filter(pk=pending_request.pk).update(status=PaymentRequest.Status.CANCELLED)
        PaymentRequest.objects.create(order_ref="ORD250101-ABCDEF", amount=Decimal("5000.00"))

        ack = handle_payment_callback({"orderid": "ORD250101-ABCDEF", "rescode": rescode, "tranid": "T-LATE"})

        assert ack["rescode"] == "0000"
        pending_request.refresh_from_db()
        assert pending_request.status == PaymentRequest.Status.CANCELLED
        assert pending_request.gateway_transaction_id != "T-LATE"
        other = PaymentRequest.objects.exclude(pk=pending_request.pk).get()
        assert other.status != PaymentRequest.Status.PENDING

    def test_unknown_order_is_acknowledged(self, db):
        assert handle_payment_callback({"orderid": "nope", "rescode": "0000"})["rescode"] == "0000"

    def test_database_error_asks_for_resend(self, pending_request, monkeypatch):
        def broken(*args, **kwargs):
            raise DatabaseError("deadlock detected")

        monkeypatch.setattr(PaymentRequest.objects, "select_for_update", broken)

        assert handle_payment_callback({"orderid": "ORD250101-ABCDEF", "rescode": "0000"}) == {
            "rescode": "1000", "resmsg": "RETRY",
        }


@pytest.mark.django_db
class TestReversal:
    def test_success_cancels_latest_completed_request(self, pending_request, gateway):
        PaymentRequest.objects.filter(pk=pending_request.pk).update(
            status=PaymentRequest.Status.COMPLETED, gateway_transaction_id="T-1",
        )

        result = reverse_card_payment("ORD250101-ABCDEF", Decimal("20000.00"))

        assert result.success
        assert result.transaction_id == "T-1"
        pending_request.refresh_from_db()
        assert pending_request.status == PaymentRequest.Status.CANCELLED

    def test_rejection_is_returned_not_raised(self, pending_request, gateway):
        from payments.gateway import GatewayResult

        gateway.cancel_result = GatewayResult(success=False, code="P009", message="Transaction cannot be cancelled.")

        result = reverse_card_payment("ORD250101-ABCDEF", Decimal("20000.00"))

        assert not result.success
        assert result.error_code == "P009"

    def test_record_declined_payment(self, db):
        payment = record_declined_payment("ORD1", Decimal("5000"), "P003", "Duplicate order number.")
        assert payment.status == PaymentRequest.Status.FAILED
        assert payment.error_code == "P003"
