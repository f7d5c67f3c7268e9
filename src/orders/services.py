"""Order settlement and reversal.

``place_order`` settles an order in one transaction: stock is locked and
decremented, payment instruments are applied in their fixed order, the
order row is inserted and the PV reward is escrowed.  ``set_order_status``
moves an order along its state machine; cancelling or refunding reverses
the local effects atomically and then asks the card gateway to reverse the
charge outside that transaction.

Settlement and reversal both mutate stock, then balances, then the order
row, then the escrow row, and lock products in primary-key order.
"""
import logging
import secrets
import string
import uuid
from datetime import timedelta
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.db.models import Q
from django.utils import timezone
from django.utils.dateparse import parse_date

from core.exceptions import (
    InsufficientStockError,
    InvalidStatusTransitionError,
    NotFoundError,
    OrderFinalizedError,
    OrderValidationError,
    PaymentGatewayError,
)
from core.services import CENT, create_audit_log
from payments import services as payment_services
from points import services as point_services
from stock.services import decrement_stock, lock_products, restore_stock
from wallet import services as wallet_services

from .models import Order, OrderItem
from .payments import Instrument, PaymentPlan

logger = logging.getLogger("xmall")

ORDER_NUMBER_ALPHABET = string.digits + string.ascii_uppercase

UNCONFIRMED_REVERSALS = (
    Order.CardReversalStatus.PENDING,
    Order.CardReversalStatus.IN_PROGRESS,
    Order.CardReversalStatus.FAILED,
)


def generate_order_number(today=None) -> str:
    """Return an unused order number such as ``ORD250117-7K2QZD``."""
    today = today or timezone.localdate()
    for _ in range(10):
        suffix = "".join(secrets.choice(ORDER_NUMBER_ALPHABET) for _ in range(6))
        candidate = f"ORD{today:%y%m%d}-{suffix}"
        if not Order.objects.filter(order_number=candidate).exists():
            return candidate
    raise RuntimeError("Could not allocate a unique order number.")


def _parse_items(items) -> dict:
    """Validate checkout lines and merge them into ``{product_id: quantity}``."""
    if not items:
        raise OrderValidationError("The order has no items.")
    quantities = {}
    for item in items:
        product_id = str(item.get("product_id") or "").strip()
        if not product_id:
            raise OrderValidationError("Every item needs a product_id.")
        try:
            product_id = str(uuid.UUID(product_id))
        except ValueError:
            raise NotFoundError(f"Product not found: {product_id}")
        try:
            quantity = int(item.get("quantity"))
        except (TypeError, ValueError):
            raise OrderValidationError(f"Invalid quantity for product {product_id}.")
        if quantity < 1:
            raise OrderValidationError(f"Invalid quantity for product {product_id}.")
        quantities[product_id] = quantities.get(product_id, 0) + quantity
    return quantities


def _parse_shipping(shipping) -> dict:
    shipping = shipping or {}
    parsed = {
        "shipping_name": str(shipping.get("name") or "").strip(),
        "shipping_phone": str(shipping.get("phone") or "").strip(),
        "shipping_address": str(shipping.get("address") or "").strip(),
        "shipping_memo": str(shipping.get("memo") or "").strip(),
    }
    missing = [
        field for field in ("name", "phone", "address")
        if not parsed[f"shipping_{field}"]
    ]
    if missing:
        raise OrderValidationError(f"Shipping information is missing: {', '.join(missing)}.")
    return parsed


def _price_lines(quantities, products, grade):
    """Price every line under lock and check availability.  Nothing is mutated."""
    lines = []
    total = Decimal("0.00")
    total_pv = Decimal("0.00")
    for product_id in sorted(quantities):
        product = products[product_id]
        quantity = quantities[product_id]
        if not product.is_active:
            raise OrderValidationError(f"Product '{product.name}' is not available for sale.")
        if product.stock_quantity < quantity:
            raise InsufficientStockError(product.name, product.stock_quantity, quantity)

        unit_price = product.unit_price_for(grade)
        unit_pv = product.unit_pv_for(grade)
        line = {
            "product": product,
            "quantity": quantity,
            "unit_price": unit_price,
            "unit_pv": unit_pv,
            "line_total": (unit_price * quantity).quantize(CENT),
            "line_pv": (unit_pv * quantity).quantize(CENT),
        }
        total += line["line_total"]
        total_pv += line["line_pv"]
        lines.append(line)
    return lines, total, total_pv


def _describe_lines(lines) -> str:
    name = lines[0]["product"].name
    if len(lines) > 1:
        name = f"{name} and {len(lines) - 1} more"
    return name[:100]


def _snapshot(order) -> dict:
    return {
        "status": order.status,
        "total_amount": str(order.total_amount),
        "payment_wallet": str(order.payment_wallet),
        "payment_point": str(order.payment_point),
        "payment_card": str(order.payment_card),
        "payment_bank": str(order.payment_bank),
        "tracking_number": order.tracking_number,
        "card_reversal_status": order.card_reversal_status,
    }


# ---------------------------------------------------------------------------
# Settlement
# ---------------------------------------------------------------------------

def place_order(account, items, payment, shipping, actor=None) -> Order:
    """
    Settle a new order for *account*.

    Args:
        account: The ordering User; its grade selects prices and PV.
        items: Iterable of ``{"product_id", "quantity"}`` mappings.
        payment: A :class:`~orders.payments.PaymentPlan` or the mapping
            accepted by :meth:`PaymentPlan.from_mapping`.
        shipping: ``{"name", "phone", "address", "memo"}``.
        actor: The User performing the action (defaults to the request user).

    Returns:
        The created Order, status ``paid``.

    Raises:
        OrderValidationError, PaymentMismatchError, NotFoundError,
        InsufficientStockError, InsufficientBalanceError, PaymentGatewayError.
        Nothing is persisted when any of them is raised.
    """
    if not account.is_active:
        raise OrderValidationError("Account is deactivated.")
    quantities = _parse_items(items)
    shipping_fields = _parse_shipping(shipping)
    if not isinstance(payment, PaymentPlan):
        payment = PaymentPlan.from_mapping(payment, point_services.default_point_type())

    charge = {}
    try:
        order = _settle(account, quantities, payment, shipping_fields, actor, charge)
    except PaymentGatewayError as exc:
        payment_services.record_declined_payment(
            charge.get("order_number", ""), payment.amount_for(Instrument.CARD), exc.error_code, str(exc),
        )
        raise
    except Exception:
        if charge.get("transaction_id"):
            # Authorized on the gateway but the settlement rolled back afterwards.
            result = payment_services.reverse_card_payment(charge["order_number"], charge["amount"])
            if not result.success:
                logger.error(
                    "Orphan card authorization %s for %s could not be reversed: %s",
                    charge["transaction_id"], charge["order_number"], result.message,
                )
        raise
    return order


@transaction.atomic
def _settle(account, quantities, plan, shipping_fields, actor, charge):
    products = lock_products(quantities)
    lines, total, total_pv = _price_lines(quantities, products, account.grade)

    tolerance = Decimal(str(getattr(settings, "PAYMENT_TOLERANCE", "1")))
    plan.reconcile(total, tolerance)

    order_id = uuid.uuid4()
    order_number = generate_order_number()
    charge["order_number"] = order_number

    for line in lines:
        decrement_stock(line["product"], line["quantity"], reference=order_number, actor=actor)

    gateway_transaction_id = ""
    gateway_order_ref = ""
    point_type = ""
    for payment in plan.ordered():
        if payment.instrument == Instrument.WALLET:
            wallet_services.pay_for_order(account, payment.amount, order_id, order_number, actor=actor)
        elif payment.instrument == Instrument.POINT:
            point_type = payment.point_type
            point_services.pay_for_order(
                account, payment.amount, order_id, order_number, point_type=point_type, actor=actor,
            )
        elif payment.instrument == Instrument.CARD:
            if payment.card.is_preauthorized:
                gateway_transaction_id = payment.card.transaction_id
                gateway_order_ref = payment.card.order_ref
                continue
            result = payment_services.authorize_card_payment(
                order_number,
                payment.amount,
                payment.card,
                product_name=_describe_lines(lines),
                customer_name=shipping_fields["shipping_name"],
                customer_email=account.email,
            )
            if not result.success:
                raise PaymentGatewayError(result.message, result.error_code)
            gateway_transaction_id = result.transaction_id
            gateway_order_ref = order_number
            charge.update(transaction_id=result.transaction_id, amount=payment.amount)
        # Bank transfers are recorded on the order only.

    order = Order.objects.create(
        id=order_id,
        order_number=order_number,
        account=account,
        status=Order.Status.PAID,
        total_amount=total,
        total_pv=total_pv,
        payment_wallet=plan.amount_for(Instrument.WALLET),
        payment_point=plan.amount_for(Instrument.POINT),
        payment_point_type=point_type,
        payment_card=plan.amount_for(Instrument.CARD),
        payment_bank=plan.amount_for(Instrument.BANK),
        gateway_transaction_id=gateway_transaction_id,
        gateway_order_ref=gateway_order_ref,
        paid_at=timezone.now(),
        **shipping_fields,
    )
    OrderItem.objects.bulk_create([
        OrderItem(
            order=order,
            product=line["product"],
            product_name=line["product"].name,
            quantity=line["quantity"],
            unit_price=line["unit_price"],
            unit_pv=line["unit_pv"],
            line_total=line["line_total"],
            line_pv=line["line_pv"],
        )
        for line in lines
    ])

    point_services.create_pending_point(account, order.pk, total_pv)

    create_audit_log(actor, "ORDER_PLACED", "Order", order.pk, after=_snapshot(order))
    logger.info(
        "Order placed: %s for %s total=%s pv=%s (wallet=%s point=%s card=%s bank=%s)",
        order_number, account.pk, total, total_pv,
        order.payment_wallet, order.payment_point, order.payment_card, order.payment_bank,
    )
    return order


# ---------------------------------------------------------------------------
# Status changes and reversal
# ---------------------------------------------------------------------------

def _lock_order(order_id) -> Order:
    try:
        return Order.objects.select_for_update().get(pk=order_id)
    except (Order.DoesNotExist, DjangoValidationError, ValueError):
        raise NotFoundError(f"Order not found: {order_id}")


def set_order_status(order_id, new_status, actor=None) -> Order:
    """
    Move an order to *new_status*.

    ``cancelled`` and ``refunded`` reverse the settlement; any other status
    must lie further along ``pending -> paid -> processing -> shipped ->
    delivered``.  Cancelled and refunded orders accept no further change.
    """
    if new_status not in Order.Status.values:
        raise OrderValidationError(f"Unknown order status: {new_status}")
    if new_status in Order.TERMINAL_STATUSES:
        return _reverse_order(order_id, new_status, actor)

    with transaction.atomic():
        order = _lock_order(order_id)
        if order.is_terminal:
            raise OrderFinalizedError(f"Order {order.order_number} is already {order.status}.")
        flow = [str(s) for s in Order.FORWARD_FLOW]
        if flow.index(new_status) <= flow.index(order.status):
            raise InvalidStatusTransitionError(
                f"Order {order.order_number} cannot move from {order.status} to {new_status}."
            )
        before = _snapshot(order)
        order.status = new_status
        order.save(update_fields=["status", "updated_at"])
        create_audit_log(actor, "ORDER_STATUS_CHANGED", "Order", order.pk, before=before, after=_snapshot(order))

    logger.info("Order %s: %s -> %s by %s", order.order_number, before["status"], new_status, actor)
    return order


def _reverse_order(order_id, new_status, actor) -> Order:
    with transaction.atomic():
        order = _lock_order(order_id)
        if order.is_terminal:
            raise OrderFinalizedError(f"Order {order.order_number} is already {order.status}.")
        if order.status not in Order.REVERSIBLE_STATUSES:
            raise InvalidStatusTransitionError(
                f"Order {order.order_number} cannot be {new_status} while {order.status}."
            )
        before = _snapshot(order)
        account = order.account

        items = list(order.items.order_by("product_id"))
        products = lock_products([item.product_id for item in items])
        for item in items:
            restore_stock(
                products[str(item.product_id)], item.quantity,
                reference=order.order_number, reason=f"Order {new_status}", actor=actor,
            )

        if order.payment_wallet > 0:
            wallet_services.refund_for_order(account, order.payment_wallet, order, actor=actor)
        if order.payment_point > 0:
            point_services.refund_for_order(
                account, order.payment_point, order, point_type=order.payment_point_type or None, actor=actor,
            )

        order.status = new_status
        order.finalized_at = timezone.now()
        update_fields = ["status", "finalized_at", "updated_at"]
        if order.payment_card > 0:
            order.card_reversal_status = Order.CardReversalStatus.PENDING
            update_fields.append("card_reversal_status")
        order.save(update_fields=update_fields)

        point_services.cancel_pending_points(order)

        create_audit_log(
            actor, f"ORDER_{new_status.upper()}", "Order", order.pk,
            before=before, after=_snapshot(order),
        )
        logger.info(
            "Order %s %s by %s: stock restored, wallet=%s point=%s refunded",
            order.order_number, new_status, actor, order.payment_wallet, order.payment_point,
        )

        if order.payment_card > 0:
            order_pk = order.pk
            transaction.on_commit(lambda: _run_card_reversal(order_pk), robust=True)

    order.refresh_from_db()
    return order


def _claim_card_reversal(order_id) -> bool:
    """Mark the order's card reversal as in progress unless another run holds it.

    Pending and failed reversals can be claimed; an in-progress claim older
    than twice the gateway timeout is treated as abandoned.
    """
    timeout = getattr(settings, "CARD_GATEWAY_TIMEOUT", 10)
    stale_before = timezone.now() - timedelta(seconds=2 * timeout)
    claimable = Q(card_reversal_status__in=[
        Order.CardReversalStatus.PENDING, Order.CardReversalStatus.FAILED,
    ]) | Q(card_reversal_status=Order.CardReversalStatus.IN_PROGRESS, updated_at__lt=stale_before)
    claimed = (
        Order.objects
        .filter(claimable, pk=order_id)
        .update(card_reversal_status=Order.CardReversalStatus.IN_PROGRESS, updated_at=timezone.now())
    )
    return claimed == 1


def _run_card_reversal(order_id):
    """Ask the gateway to reverse the card portion and record the outcome.

    The order row is claimed first and not locked during the gateway call.
    Returns ``None`` when another run already holds the reversal.  A
    rejected reversal leaves the local reversal in place and flags the
    order for reconciliation.
    """
    if not _claim_card_reversal(order_id):
        return None

    order = Order.objects.get(pk=order_id)
    gateway_ref = order.gateway_order_ref or order.order_number
    result = payment_services.reverse_card_payment(gateway_ref, order.payment_card)
    if result.success:
        order.card_reversal_status = Order.CardReversalStatus.REVERSED
        order.card_reversal_error = ""
        logger.info("Card reversal confirmed for order %s (gateway ref %s)", order.order_number, gateway_ref)
    else:
        order.card_reversal_status = Order.CardReversalStatus.FAILED
        order.card_reversal_error = f"[{result.error_code}] {result.message}" if result.error_code else result.message
        logger.error(
            "Card reversal failed for order %s (gateway ref %s, %s): %s",
            order.order_number, gateway_ref, order.payment_card, order.card_reversal_error,
        )
    order.save(update_fields=["card_reversal_status", "card_reversal_error", "updated_at"])
    return order


def retry_card_reversal(order_id, actor=None) -> Order:
    """Retry the gateway reversal of a cancelled/refunded order still flagged as unconfirmed."""
    order = get_order(order_id)
    if not order.is_terminal or order.card_reversal_status not in UNCONFIRMED_REVERSALS:
        raise InvalidStatusTransitionError(
            f"Order {order.order_number} has no card reversal to retry."
        )
    before = _snapshot(order)

    reversed_order = _run_card_reversal(order.pk)
    if reversed_order is None:
        raise InvalidStatusTransitionError(
            f"Card reversal for order {order.order_number} is already in progress."
        )
    create_audit_log(
        actor, "CARD_REVERSAL_RETRIED", "Order", reversed_order.pk,
        before=before, after=_snapshot(reversed_order),
    )
    return reversed_order


def list_reversal_failures():
    """Orders reversed locally whose card reversal is not confirmed yet."""
    return (
        Order.objects
        .filter(
            status__in=Order.TERMINAL_STATUSES,
            card_reversal_status__in=UNCONFIRMED_REVERSALS,
        )
        .select_related("account")
        .order_by("finalized_at")
    )


# ---------------------------------------------------------------------------
# Shipping
# ---------------------------------------------------------------------------

@transaction.atomic
def set_invoice_number(order_id, tracking_number, actor=None) -> Order:
    """Record the shipment tracking number and mark the order shipped."""
    tracking_number = str(tracking_number or "").strip()
    if not tracking_number:
        raise OrderValidationError("Tracking number is required.")

    order = _lock_order(order_id)
    if order.is_terminal:
        raise OrderFinalizedError(f"Order {order.order_number} is already {order.status}.")
    if order.status not in Order.REVERSIBLE_STATUSES:
        raise InvalidStatusTransitionError(
            f"Order {order.order_number} cannot be shipped while {order.status}."
        )
    before = _snapshot(order)
    order.tracking_number = tracking_number
    order.status = Order.Status.SHIPPED
    order.save(update_fields=["tracking_number", "status", "updated_at"])
    create_audit_log(actor, "ORDER_INVOICE_SET", "Order", order.pk, before=before, after=_snapshot(order))
    logger.info("Order %s shipped with tracking number %s", order.order_number, tracking_number)
    return order


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

def get_order(order_id, account=None) -> Order:
    """Return one order; when *account* is given it must own the order."""
    qs = Order.objects.select_related("account").prefetch_related("items")
    if account is not None:
        qs = qs.filter(account_id=account.pk)
    try:
        return qs.get(pk=order_id)
    except (Order.DoesNotExist, DjangoValidationError, ValueError):
        raise NotFoundError(f"Order not found: {order_id}")


def _parse_date(value, field):
    try:
        parsed = parse_date(str(value).strip())
    except ValueError:
        parsed = None
    if parsed is None:
        raise OrderValidationError(f"Invalid {field}: {value!r}; expected YYYY-MM-DD.")
    return parsed


def list_orders(account=None, status=None, date_from=None, date_to=None, search=None):
    """Orders newest first.  *search* matches order number, account name or email.

    Raises:
        OrderValidationError: If *date_from* or *date_to* is not a YYYY-MM-DD date.
    """
    qs = Order.objects.select_related("account").prefetch_related("items")
    if account is not None:
        qs = qs.filter(account_id=account.pk)
    if status:
        qs = qs.filter(status=status)
    if date_from:
        qs = qs.filter(created_at__date__gte=_parse_date(date_from, "date_from"))
    if date_to:
        qs = qs.filter(created_at__date__lte=_parse_date(date_to, "date_to"))
    if search:
        qs = qs.filter(
            Q(order_number__icontains=search)
            | Q(account__name__icontains=search)
            | Q(account__email__icontains=search)
        )
    return qs.order_by("-created_at")
