"""Wallet (X-pay) ledger primitives.

Every balance change follows the same discipline: lock the balance row,
check sufficiency under that lock, mutate, and append a
:class:`~wallet.models.WalletTransaction` carrying the signed delta and
the resulting balance.  The sum of an account's transaction amounts is
therefore always equal to its balance.
"""
import logging
from decimal import Decimal

from django.db import transaction

from core.bulk import run_bulk
from core.exceptions import InsufficientBalanceError, OrderValidationError
from core.services import CENT, MAX_MONEY, create_audit_log, positive_money

from .models import WalletBalance, WalletTransaction

logger = logging.getLogger("xmall")

INSTRUMENT = "wallet"


def _lock_balance(account) -> WalletBalance:
    """Return the account's balance row locked for update, creating it if absent."""
    WalletBalance.objects.get_or_create(account_id=account.pk)
    return WalletBalance.objects.select_for_update().get(account_id=account.pk)


def _append(balance, transaction_type, delta, *, order_id=None, description="", actor=None):
    balance.balance += delta
    if balance.balance < 0:
        raise InsufficientBalanceError(INSTRUMENT, balance.balance - delta, -delta)
    if balance.balance >= MAX_MONEY:
        raise OrderValidationError(f"Wallet balance would exceed {MAX_MONEY - CENT}.")
    balance.save(update_fields=["balance", "updated_at"])
    return WalletTransaction.objects.create(
        account_id=balance.account_id,
        transaction_type=transaction_type,
        amount=delta,
        balance_after=balance.balance,
        order_id=order_id,
        description=description[:255],
        created_by=actor,
    )


def get_balance(account) -> Decimal:
    """Current wallet balance; zero when the account never held X-pay."""
    row = WalletBalance.objects.filter(account_id=account.pk).only("balance").first()
    return row.balance if row else Decimal("0.00")


# ---------------------------------------------------------------------------
# Administrative adjustments
# ---------------------------------------------------------------------------

@transaction.atomic
def deposit(account, amount, reason="", actor=None) -> Decimal:
    """Credit *amount* to the account's wallet and return the new balance."""
    amount = positive_money(amount)
    balance = _lock_balance(account)
    before = balance.balance
    tx = _append(
        balance, WalletTransaction.TransactionType.DEPOSIT, amount,
        description=reason or "Deposit", actor=actor,
    )
    create_audit_log(
        actor, "WALLET_DEPOSIT", "WalletBalance", account.pk,
        before={"balance": str(before)},
        after={"balance": str(tx.balance_after), "reason": reason},
    )
    logger.info("Wallet deposit: %s +%s (now %s) by %s", account.pk, amount, tx.balance_after, actor)
    return tx.balance_after


@transaction.atomic
def deduct(account, amount, reason="", actor=None) -> Decimal:
    """
    Debit *amount* from the account's wallet and return the new balance.

    Raises:
        InsufficientBalanceError: If the balance is lower than *amount*.
    """
    amount = positive_money(amount)
    balance = _lock_balance(account)
    before = balance.balance
    tx = _append(
        balance, WalletTransaction.TransactionType.DEDUCT, -amount,
        description=reason or "Deduction", actor=actor,
    )
    create_audit_log(
        actor, "WALLET_DEDUCT", "WalletBalance", account.pk,
        before={"balance": str(before)},
        after={"balance": str(tx.balance_after), "reason": reason},
    )
    logger.info("Wallet deduct: %s -%s (now %s) by %s", account.pk, amount, tx.balance_after, actor)
    return tx.balance_after


def bulk_deposit(rows, actor=None):
    """Deposit for every (account, amount, reason) row; see :func:`core.bulk.run_bulk`."""
    return run_bulk(rows, lambda account, amount, reason: deposit(account, amount, reason, actor), "wallet deposit")


def bulk_deduct(rows, actor=None):
    return run_bulk(rows, lambda account, amount, reason: deduct(account, amount, reason, actor), "wallet deduct")


# ---------------------------------------------------------------------------
# Order settlement / reversal
# ---------------------------------------------------------------------------

@transaction.atomic
def pay_for_order(account, amount, order_id, order_number, actor=None) -> WalletTransaction:
    """Debit the wallet portion of an order being settled.

    *order_id* may reference an order row inserted later in the same
    transaction.
    """
    amount = positive_money(amount, "wallet payment")
    balance = _lock_balance(account)
    tx = _append(
        balance, WalletTransaction.TransactionType.PAYMENT, -amount,
        order_id=order_id, description=f"Payment for order {order_number}", actor=actor,
    )
    logger.info("Wallet payment: %s -%s for %s (now %s)", account.pk, amount, order_number, tx.balance_after)
    return tx


@transaction.atomic
def refund_for_order(account, amount, order, actor=None) -> WalletTransaction:
    """Credit back the wallet portion of a cancelled or refunded order."""
    amount = positive_money(amount, "wallet refund")
    balance = _lock_balance(account)
    tx = _append(
        balance, WalletTransaction.TransactionType.REFUND, amount,
        order_id=order.pk, description=f"Refund for order {order.order_number}", actor=actor,
    )
    logger.info("Wallet refund: %s +%s for %s (now %s)", account.pk, amount, order.order_number, tx.balance_after)
    return tx


def get_transaction_history(account=None, transaction_type=None):
    """Ledger rows newest first, optionally restricted to one account and type."""
    qs = WalletTransaction.objects.select_related("account", "order")
    if account is not None:
        qs = qs.filter(account_id=account.pk)
    if transaction_type:
        qs = qs.filter(transaction_type=transaction_type)
    return qs.order_by("-created_at")
