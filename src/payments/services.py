"""Card payment collaborator: authorize, reverse and the gateway callback.

Authorize and reverse talk to the gateway synchronously and record each
attempt as a :class:`~payments.models.PaymentRequest`.  The callback only
updates those records; it never touches orders or balances.
"""
import logging
from dataclasses import dataclass

from django.conf import settings
from django.db import DatabaseError, transaction

from .gateway import SUCCESS_CODE, CardGatewayClient, describe_error
from .models import PaymentRequest

logger = logging.getLogger("xmall")


@dataclass(frozen=True)
class PaymentResult:
    success: bool
    transaction_id: str = ""
    error_code: str = ""
    message: str = ""


def get_client() -> CardGatewayClient:
    return CardGatewayClient(
        api_url=settings.CARD_GATEWAY_API_URL,
        api_key=settings.CARD_GATEWAY_API_KEY,
        timeout=settings.CARD_GATEWAY_TIMEOUT,
    )


def authorize_card_payment(order_ref, amount, card, *, product_name="", customer_name="",
                           customer_email="") -> PaymentResult:
    """Charge *amount* on *card* for *order_ref*.

    The PaymentRequest row is written in the caller's transaction, so a
    settlement that rolls back leaves no trace of it; see
    :func:`record_declined_payment`.
    """
    payment = PaymentRequest.objects.create(
        order_ref=order_ref,
        amount=amount,
        payment_data={
            "product_name": product_name,
            "customer_name": customer_name,
            "customer_email": customer_email,
            "installment_months": card.installment_months,
            "card_last4": card.card_number[-4:],
        },
    )
    result = get_client().authorize(
        order_ref=order_ref,
        amount=amount,
        card=card,
        product_name=product_name,
        customer_name=customer_name,
        customer_email=customer_email,
        reference=str(payment.pk),
    )

    if result.success:
        payment.status = PaymentRequest.Status.COMPLETED
        payment.gateway_transaction_id = result.transaction_id
        payment.save(update_fields=["status", "gateway_transaction_id", "updated_at"])
        logger.info("Card authorized: %s %s (tranid=%s)", order_ref, amount, result.transaction_id)
        return PaymentResult(success=True, transaction_id=result.transaction_id, message=result.message)

    payment.status = PaymentRequest.Status.FAILED
    payment.error_code = result.code
    payment.error_message = result.message
    payment.save(update_fields=["status", "error_code", "error_message", "updated_at"])
    logger.warning("Card declined: %s %s code=%s (%s)", order_ref, amount, result.code, result.message)
    return PaymentResult(success=False, error_code=result.code, message=result.message)


def record_declined_payment(order_ref, amount, error_code, message) -> PaymentRequest:
    """Persist a failed charge attempt once the settlement transaction has rolled back."""
    return PaymentRequest.objects.create(
        order_ref=order_ref,
        amount=amount,
        status=PaymentRequest.Status.FAILED,
        error_code=error_code or "",
        error_message=message or "",
    )


def reverse_card_payment(order_ref, amount) -> PaymentResult:
    """Cancel the card charge for *order_ref* on the gateway.

    Never raises for gateway-side failures; the caller decides what to do
    with an unsuccessful result.
    """
    result = get_client().cancel(order_ref=order_ref, amount=amount)
    if not result.success:
        logger.warning("Card reversal rejected: %s %s code=%s (%s)", order_ref, amount, result.code, result.message)
        return PaymentResult(success=False, error_code=result.code, message=result.message)

    payment = (
        PaymentRequest.objects
        .filter(order_ref=order_ref, status=PaymentRequest.Status.COMPLETED)
        .order_by("-created_at")
        .first()
    )
    if payment is not None:
        payment.status = PaymentRequest.Status.CANCELLED
        payment.save(update_fields=["status", "updated_at"])
    logger.info("Card reversed: %s %s", order_ref, amount)
    return PaymentResult(
        success=True,
        transaction_id=payment.gateway_transaction_id if payment else "",
        message=result.message,
    )


def handle_payment_callback(data) -> dict:
    """Apply a gateway result notification to the matching PaymentRequest rows.

    Returns the acknowledgement body the gateway expects: ``0000`` when
    processed, ``1000`` to ask for a resend.
    """
    order_ref = str(data.get("orderid") or "")
    code = str(data.get("rescode") or "")
    try:
        with transaction.atomic():
            # Cancelled requests were reversed already; a late notification leaves them alone.
            requests_for_order = (
                PaymentRequest.objects
                .select_for_update()
                .filter(order_ref=order_ref)
                .exclude(status=PaymentRequest.Status.CANCELLED)
            )
            if code == SUCCESS_CODE:
                for payment in requests_for_order:
                    payment.status = PaymentRequest.Status.COMPLETED
                    payment.gateway_transaction_id = str(data.get("tranid") or payment.gateway_transaction_id)
                    payment.payment_data = {
                        **(payment.payment_data or {}),
                        "card_name": data.get("card_name", ""),
                        "card_auth_no": data.get("card_auth_no", ""),
                        "tran_date": data.get("tran_date", ""),
                    }
                    payment.save(update_fields=["status", "gateway_transaction_id", "payment_data", "updated_at"])
                updated = len(requests_for_order)
            else:
                updated = requests_for_order.update(
                    status=PaymentRequest.Status.FAILED,
                    error_code=code,
                    error_message=describe_error(code, data.get("resmsg", "")),
                )
    except DatabaseError:
        logger.exception("Payment callback for %s could not be stored", order_ref)
        return {"rescode": "1000", "resmsg": "RETRY"}

    logger.info("Payment callback: %s rescode=%s (%d request(s) updated)", order_ref, code, updated)
    return {"rescode": SUCCESS_CODE, "resmsg": "SUCCESS"}
