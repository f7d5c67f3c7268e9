"""Point ledger primitives, pending-point escrow and the release batch.

Balances are mutated with the same lock-then-mutate-then-append discipline
as the wallet.  Only the point type configured as ``DEFAULT_POINT_TYPE``
is active; callers may still name it explicitly.
"""
import logging
from datetime import timedelta
from decimal import ROUND_HALF_UP, Decimal

from django.conf import settings
from django.db import transaction
from django.db.models import Sum
from django.utils import timezone

from core.bulk import run_bulk
from core.exceptions import InsufficientBalanceError, OrderValidationError
from core.services import CENT, MAX_MONEY, create_audit_log, positive_money
from wallet import services as wallet_services

from .models import PendingPoint, PointBalance, PointTransaction

logger = logging.getLogger("xmall")


def default_point_type() -> str:
    return getattr(settings, "DEFAULT_POINT_TYPE", "X")


def _check_point_type(point_type):
    point_type = point_type or default_point_type()
    if point_type != default_point_type():
        raise OrderValidationError(f"Point type '{point_type}' is not active.")
    return point_type


def _lock_balance(account_id, point_type) -> PointBalance:
    """Return the (account, point_type) balance row locked, creating it if absent."""
    PointBalance.objects.get_or_create(account_id=account_id, point_type=point_type)
    return PointBalance.objects.select_for_update().get(account_id=account_id, point_type=point_type)


def _append(balance, transaction_type, delta, *, order_id=None, description="", actor=None):
    balance.balance += delta
    if balance.balance < 0:
        raise InsufficientBalanceError(
            f"{balance.point_type} point", balance.balance - delta, -delta,
        )
    if balance.balance >= MAX_MONEY:
        raise OrderValidationError(f"{balance.point_type} point balance would exceed {MAX_MONEY - CENT}.")
    balance.save(update_fields=["balance", "updated_at"])
    return PointTransaction.objects.create(
        account_id=balance.account_id,
        point_type=balance.point_type,
        transaction_type=transaction_type,
        amount=delta,
        balance_after=balance.balance,
        order_id=order_id,
        description=description[:255],
        created_by=actor,
    )


def get_balance(account, point_type=None) -> Decimal:
    point_type = point_type or default_point_type()
    row = (
        PointBalance.objects
        .filter(account_id=account.pk, point_type=point_type)
        .only("balance")
        .first()
    )
    return row.balance if row else Decimal("0.00")


def get_balances(account) -> dict:
    """Spendable point balance, wallet balance and points still in escrow."""
    escrow = (
        PendingPoint.objects
        .filter(account_id=account.pk, status=PendingPoint.Status.PENDING)
        .aggregate(total=Sum("point_amount"))["total"]
    )
    return {
        "point_type": default_point_type(),
        "point_balance": get_balance(account),
        "wallet_balance": wallet_services.get_balance(account),
        "pending_point_total": (escrow or Decimal("0")).quantize(CENT),
    }


# ---------------------------------------------------------------------------
# Administrative adjustments
# ---------------------------------------------------------------------------

@transaction.atomic
def grant_points(account, amount, reason="", actor=None, point_type=None) -> Decimal:
    """Credit points to an account and return the new balance."""
    amount = positive_money(amount)
    point_type = _check_point_type(point_type)
    balance = _lock_balance(account.pk, point_type)
    before = balance.balance
    tx = _append(
        balance, PointTransaction.TransactionType.GRANT, amount,
        description=reason or "Grant", actor=actor,
    )
    create_audit_log(
        actor, "POINT_GRANT", "PointBalance", account.pk,
        before={"balance": str(before), "point_type": point_type},
        after={"balance": str(tx.balance_after), "reason": reason},
    )
    logger.info("Points granted: %s +%s %s (now %s) by %s", account.pk, amount, point_type, tx.balance_after, actor)
    return tx.balance_after


@transaction.atomic
def deduct_points(account, amount, reason="", actor=None, point_type=None) -> Decimal:
    """
    Debit points from an account and return the new balance.

    Raises:
        InsufficientBalanceError: If fewer than *amount* points are available.
    """
    amount = positive_money(amount)
    point_type = _check_point_type(point_type)
    balance = _lock_balance(account.pk, point_type)
    before = balance.balance
    tx = _append(
        balance, PointTransaction.TransactionType.ADMIN_DEDUCT, -amount,
        description=reason or "Deduction", actor=actor,
    )
    create_audit_log(
        actor, "POINT_DEDUCT", "PointBalance", account.pk,
        before={"balance": str(before), "point_type": point_type},
        after={"balance": str(tx.balance_after), "reason": reason},
    )
    logger.info("Points deducted: %s -%s %s (now %s) by %s", account.pk, amount, point_type, tx.balance_after, actor)
    return tx.balance_after


def bulk_grant(rows, actor=None):
    return run_bulk(rows, lambda account, amount, reason: grant_points(account, amount, reason, actor), "point grant")


def bulk_deduct(rows, actor=None):
    return run_bulk(rows, lambda account, amount, reason: deduct_points(account, amount, reason, actor), "point deduct")


# ---------------------------------------------------------------------------
# Order settlement / reversal
# ---------------------------------------------------------------------------

@transaction.atomic
def pay_for_order(account, amount, order_id, order_number, point_type=None, actor=None) -> PointTransaction:
    amount = positive_money(amount, "point payment")
    point_type = _check_point_type(point_type)
    balance = _lock_balance(account.pk, point_type)
    tx = _append(
        balance, PointTransaction.TransactionType.PAYMENT, -amount,
        order_id=order_id, description=f"Payment for order {order_number}", actor=actor,
    )
    logger.info("Point payment: %s -%s %s for %s (now %s)", account.pk, amount, point_type, order_number, tx.balance_after)
    return tx


@transaction.atomic
def refund_for_order(account, amount, order, point_type=None, actor=None) -> PointTransaction:
    amount = positive_money(amount, "point refund")
    point_type = point_type or default_point_type()
    balance = _lock_balance(account.pk, point_type)
    tx = _append(
        balance, PointTransaction.TransactionType.REFUND, amount,
        order_id=order.pk, description=f"Refund for order {order.order_number}", actor=actor,
    )
    logger.info("Point refund: %s +%s %s for %s (now %s)", account.pk, amount, point_type, order.order_number, tx.balance_after)
    return tx


def compute_reward(total_pv) -> Decimal:
    """Reward earned for *total_pv*: PV times ``POINT_REWARD_RATE``, to the cent."""
    rate = Decimal(str(getattr(settings, "POINT_REWARD_RATE", "0.5")))
    return (Decimal(total_pv) * rate).quantize(CENT, rounding=ROUND_HALF_UP)


def create_pending_point(account, order_id, total_pv, placed_on=None):
    """Escrow the reward for an order; returns ``None`` when the order has no PV.

    The release date is *placed_on* (default: today in the local time zone)
    plus ``PENDING_POINT_VESTING_DAYS``.
    """
    if total_pv <= 0:
        return None
    placed_on = placed_on or timezone.localdate()
    vesting = getattr(settings, "PENDING_POINT_VESTING_DAYS", 14)
    pending = PendingPoint.objects.create(
        account_id=account.pk,
        order_id=order_id,
        point_type=default_point_type(),
        point_amount=compute_reward(total_pv),
        originating_value=total_pv,
        scheduled_release_date=placed_on + timedelta(days=vesting),
    )
    logger.info(
        "Pending point created: %s %s for order %s, release on %s",
        pending.point_amount, pending.point_type, order_id, pending.scheduled_release_date,
    )
    return pending


def cancel_pending_points(order) -> int:
    """Cancel the order's escrow row if it is still pending.  Returns rows cancelled (0 or 1)."""
    cancelled = (
        PendingPoint.objects
        .filter(order_id=order.pk, status=PendingPoint.Status.PENDING)
        .update(status=PendingPoint.Status.CANCELLED, cancelled_at=timezone.now(), updated_at=timezone.now())
    )
    if cancelled:
        logger.info("Pending point cancelled for order %s", order.order_number)
    return cancelled


# ---------------------------------------------------------------------------
# Release batch
# ---------------------------------------------------------------------------

@transaction.atomic
def release_pending_points(today=None) -> dict:
    """Release every pending row due on or before *today* into spendable points.

    The whole batch commits or rolls back together.  Rows already released
    or cancelled are never selected, so running it twice releases nothing
    the second time.
    """
    today = today or timezone.localdate()
    due = list(
        PendingPoint.objects
        .select_for_update(of=("self",))
        .filter(status=PendingPoint.Status.PENDING, scheduled_release_date__lte=today)
        .select_related("order")
        .order_by("account_id", "scheduled_release_date", "pk")
    )

    now = timezone.now()
    total = Decimal("0.00")
    for pending in due:
        balance = _lock_balance(pending.account_id, pending.point_type)
        _append(
            balance, PointTransaction.TransactionType.PV_REWARD, pending.point_amount,
            order_id=pending.order_id,
            description=f"PV reward for order {pending.order.order_number}",
        )
        pending.status = PendingPoint.Status.RELEASED
        pending.released_at = now
        pending.save(update_fields=["status", "released_at", "updated_at"])
        total += pending.point_amount

    logger.info("Pending points released: %d rows, %s points (as of %s)", len(due), total, today)
    return {"released_count": len(due), "total_amount": total}


def list_pending(account=None, status=None):
    qs = PendingPoint.objects.select_related("account", "order")
    if account is not None:
        qs = qs.filter(account_id=account.pk)
    if status:
        qs = qs.filter(status=status)
    return qs.order_by("scheduled_release_date", "created_at")


def get_transaction_history(account=None, transaction_type=None):
    qs = PointTransaction.objects.select_related("account", "order")
    if account is not None:
        qs = qs.filter(account_id=account.pk)
    if transaction_type:
        qs = qs.filter(transaction_type=transaction_type)
    return qs.order_by("-created_at")
