import pytest
from datetime import timedelta
from decimal import Decimal

from django.utils import timezone

from core.exceptions import (
    InvalidStatusTransitionError,
    NotFoundError,
    OrderFinalizedError,
    OrderValidationError,
)
from core.models import AuditLog
from orders.models import Order
from orders.services import (
    list_reversal_failures,
    place_order,
    retry_card_reversal,
    set_invoice_number,
    set_order_status,
)
from payments.gateway import GatewayResult
from payments.models import PaymentRequest
from points import services as point_services
from points.models import PendingPoint
from wallet import services as wallet_services
from wallet.models import WalletTransaction


@pytest.fixture
def wallet_order(funded_dealer, place_wallet_order):
    return place_wallet_order(funded_dealer)


@pytest.fixture
def card_order(dealer, product, shipping, card_details, gateway):
    return place_order(
        dealer,
        [{"product_id": str(product.pk), "quantity": 2}],
        {"wallet": "0", "card": "20000", "card_details": card_details},
        shipping,
    )


@pytest.mark.django_db
class TestCancelOrder:
    def test_cancel_restores_everything(self, funded_dealer, product, wallet_order):
        order = set_order_status(wallet_order.pk, Order.Status.CANCELLED)

        assert order.status == Order.Status.CANCELLED
        assert order.finalized_at is not None
        assert order.card_reversal_status == Order.CardReversalStatus.NOT_REQUIRED
        assert wallet_services.get_balance(funded_dealer) == Decimal("25000.00")
        product.refresh_from_db()
        assert product.stock_quantity == 10
        assert PendingPoint.objects.get(order=order).status == PendingPoint.Status.CANCELLED

        refund = WalletTransaction.objects.get(transaction_type=WalletTransaction.TransactionType.REFUND)
        assert refund.order == order
        assert refund.amount == Decimal("20000.00")
        assert AuditLog.objects.filter(action="ORDER_CANCELLED", entity_id=str(order.pk)).exists()

    def test_second_cancel_is_rejected_without_mutation(self, funded_dealer, product, wallet_order):
        set_order_status(wallet_order.pk, Order.Status.CANCELLED)

        with pytest.raises(OrderFinalizedError):
            set_order_status(wallet_order.pk, Order.Status.CANCELLED)

        assert wallet_services.get_balance(funded_dealer) == Decimal("25000.00")
        assert WalletTransaction.objects.filter(transaction_type="refund").count() == 1
        product.refresh_from_db()
        assert product.stock_quantity == 10

    def test_refund_after_cancel_is_rejected(self, wallet_order):
        set_order_status(wallet_order.pk, Order.Status.CANCELLED)
        with pytest.raises(OrderFinalizedError):
            set_order_status(wallet_order.pk, Order.Status.REFUNDED)

    def test_refund_from_shipped(self, funded_dealer, wallet_order):
        set_invoice_number(wallet_order.pk, "CJ-1234567890")

        order = set_order_status(wallet_order.pk, Order.Status.REFUNDED)

        assert order.status == Order.Status.REFUNDED
        assert wallet_services.get_balance(funded_dealer) == Decimal("25000.00")

    def test_delivered_order_cannot_be_cancelled(self, wallet_order):
        set_order_status(wallet_order.pk, Order.Status.DELIVERED)
        with pytest.raises(InvalidStatusTransitionError):
            set_order_status(wallet_order.pk, Order.Status.CANCELLED)

    def test_point_payment_is_refunded(self, funded_dealer, product, shipping):
        point_services.grant_points(funded_dealer, Decimal("5000"))
        order = place_order(
            funded_dealer,
            [{"product_id": str(product.pk), "quantity": 2}],
            {"wallet": "15000", "point": "5000"},
            shipping,
        )

        set_order_status(order.pk, Order.Status.CANCELLED)

        assert point_services.get_balance(funded_dealer) == Decimal("5000.00")
        assert wallet_services.get_balance(funded_dealer) == Decimal("25000.00")

    def test_released_reward_is_kept_after_cancel(self, funded_dealer, wallet_order):
        PendingPoint.objects.filter(order=wallet_order).update(scheduled_release_date="2000-01-01")
        point_services.release_pending_points()

        set_order_status(wallet_order.pk, Order.Status.CANCELLED)

        assert PendingPoint.objects.get(order=wallet_order).status == PendingPoint.Status.RELEASED
        assert point_services.get_balance(funded_dealer) == Decimal("100.00")

    def test_unknown_order(self, db):
        with pytest.raises(NotFoundError):
            set_order_status("00000000-0000-0000-0000-000000000000", Order.Status.CANCELLED)
        with pytest.raises(NotFoundError):
            set_order_status("not-a-uuid", Order.Status.CANCELLED)


@pytest.mark.django_db
class TestCardReversal:
    def test_card_charge_reversed_after_commit(self, card_order, gateway, django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks(execute=True) as callbacks:
            order = set_order_status(card_order.pk, Order.Status.CANCELLED)

        assert order.card_reversal_status == Order.CardReversalStatus.PENDING
        assert len(callbacks) == 1
        order.refresh_from_db()
        assert order.card_reversal_status == Order.CardReversalStatus.REVERSED
        cancel = gateway.calls_to("cancel")[0]
        assert cancel == {"order_ref": order.order_number, "amount": Decimal("20000.00")}
        request = PaymentRequest.objects.get(order_ref=order.order_number)
        assert request.status == PaymentRequest.Status.CANCELLED

    def test_rejected_reversal_keeps_local_reversal(self, card_order, product, gateway,
                                                    django_capture_on_commit_callbacks, caplog):
        gateway.cancel_result = GatewayResult(success=False, code="P999", message="Gateway internal error.")

        with caplog.at_level("ERROR", logger="xmall"):
            with django_capture_on_commit_callbacks(execute=True):
                set_order_status(card_order.pk, Order.Status.CANCELLED)

        order = Order.objects.get(pk=card_order.pk)
        assert order.status == Order.Status.CANCELLED
        assert order.card_reversal_status == Order.CardReversalStatus.FAILED
        assert order.card_reversal_error == "[P999] Gateway internal error."
        product.refresh_from_db()
        assert product.stock_quantity == 10
        assert "Card reversal failed" in caplog.text
        assert list(list_reversal_failures()) == [order]

    def test_retry_clears_the_failure(self, card_order, gateway, django_capture_on_commit_callbacks):
        gateway.cancel_result = GatewayResult(success=False, code="P999", message="Gateway internal error.")
        with django_capture_on_commit_callbacks(execute=True):
            set_order_status(card_order.pk, Order.Status.CANCELLED)

        gateway.cancel_result = GatewayResult(success=True, code="0000")
        order = retry_card_reversal(card_order.pk)

        assert order.card_reversal_status == Order.CardReversalStatus.REVERSED
        assert order.card_reversal_error == ""
        assert list(list_reversal_failures()) == []
        assert AuditLog.objects.filter(action="CARD_REVERSAL_RETRIED").exists()

    def test_retry_requires_an_unconfirmed_reversal(self, card_order):
        with pytest.raises(InvalidStatusTransitionError):
            retry_card_reversal(card_order.pk)

    def test_preauthorized_charge_reversed_under_its_gateway_ref(self, dealer, product, shipping, gateway,
                                                                 django_capture_on_commit_callbacks):
        order = place_order(
            dealer,
            [{"product_id": str(product.pk), "quantity": 1}],
            {"card": "10000", "card_details": {"transaction_id": "TRAN-PRE-1", "order_ref": "GW-CHECKOUT-42"}},
            shipping,
        )

        with django_capture_on_commit_callbacks(execute=True):
            set_order_status(order.pk, Order.Status.CANCELLED)

        assert gateway.calls_to("cancel") == [{"order_ref": "GW-CHECKOUT-42", "amount": Decimal("10000.00")}]
        order.refresh_from_db()
        assert order.card_reversal_status == Order.CardReversalStatus.REVERSED

    def test_reversal_is_claimed_before_the_gateway_call(self, card_order, gateway,
                                                         django_capture_on_commit_callbacks):
        seen = []
        original_cancel = gateway.cancel

        def cancel(**kwargs):
            seen.append(Order.objects.values_list("card_reversal_status", flat=True).get(pk=card_order.pk))
            return original_cancel(**kwargs)

        gateway.cancel = cancel
        with django_capture_on_commit_callbacks(execute=True):
            set_order_status(card_order.pk, Order.Status.CANCELLED)

        assert seen == [Order.CardReversalStatus.IN_PROGRESS]

    def test_retry_rejected_while_another_run_holds_the_claim(self, card_order, gateway):
        set_order_status(card_order.pk, Order.Status.CANCELLED)
        Order.objects.filter(pk=card_order.pk).update(
            card_reversal_status=Order.CardReversalStatus.IN_PROGRESS, updated_at=timezone.now(),
        )

        with pytest.raises(InvalidStatusTransitionError, match="in progress"):
            retry_card_reversal(card_order.pk)
        assert gateway.calls_to("cancel") == []

    def test_abandoned_claim_can_be_retried(self, card_order, gateway, settings):
        settings.CARD_GATEWAY_TIMEOUT = 10
        set_order_status(card_order.pk, Order.Status.CANCELLED)
        Order.objects.filter(pk=card_order.pk).update(
            card_reversal_status=Order.CardReversalStatus.IN_PROGRESS,
            updated_at=timezone.now() - timedelta(minutes=5),
        )
        assert list(list_reversal_failures()) == [Order.objects.get(pk=card_order.pk)]

        order = retry_card_reversal(card_order.pk)

        assert order.card_reversal_status == Order.CardReversalStatus.REVERSED
        assert len(gateway.calls_to("cancel")) == 1


@pytest.mark.django_db
class TestStatusFlow:
    def test_forward_moves(self, wallet_order):
        assert set_order_status(wallet_order.pk, "processing").status == "processing"
        assert set_order_status(wallet_order.pk, "delivered").status == "delivered"
        assert AuditLog.objects.filter(action="ORDER_STATUS_CHANGED").count() == 2

    @pytest.mark.parametrize("target", ["paid", "pending"])
    def test_backward_or_same_moves_rejected(self, wallet_order, target):
        with pytest.raises(InvalidStatusTransitionError):
            set_order_status(wallet_order.pk, target)

    def test_unknown_status(self, wallet_order):
        with pytest.raises(OrderValidationError):
            set_order_status(wallet_order.pk, "lost")

    def test_cancelled_order_accepts_no_change(self, wallet_order):
        set_order_status(wallet_order.pk, "cancelled")
        with pytest.raises(OrderFinalizedError):
            set_order_status(wallet_order.pk, "delivered")


@pytest.mark.django_db
class TestInvoiceNumber:
    def test_marks_order_shipped(self, wallet_order):
        order = set_invoice_number(wallet_order.pk, "  CJ-1234567890 ")

        assert order.status == Order.Status.SHIPPED
        assert order.tracking_number == "CJ-1234567890"
        assert AuditLog.objects.filter(action="ORDER_INVOICE_SET").exists()

    def test_can_be_corrected_while_shipped(self, wallet_order):
        set_invoice_number(wallet_order.pk, "CJ-1")
        assert set_invoice_number(wallet_order.pk, "CJ-2").tracking_number == "CJ-2"

    def test_blank_number_rejected(self, wallet_order):
        with pytest.raises(OrderValidationError):
            set_invoice_number(wallet_order.pk, " ")

    def test_cancelled_order_rejected(self, wallet_order):
        set_order_status(wallet_order.pk, "cancelled")
        with pytest.raises(OrderFinalizedError):
            set_invoice_number(wallet_order.pk, "CJ-1")

    def test_delivered_order_rejected(self, wallet_order):
        set_order_status(wallet_order.pk, "delivered")
        with pytest.raises(InvalidStatusTransitionError):
            set_invoice_number(wallet_order.pk, "CJ-1")
