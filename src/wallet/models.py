"""Models for the wallet (X-pay) ledger."""
from decimal import Decimal

from django.conf import settings
from django.db import models
from django.db.models import Q

from core.models import TimeStampedModel


class WalletBalance(TimeStampedModel):
    """Current X-pay balance of an account.  Never negative."""

    account = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="wallet_balance",
        verbose_name="account",
    )
    balance = models.DecimalField(
        "balance",
        max_digits=14,
        decimal_places=2,
        default=Decimal("0.00"),
    )

    class Meta:
        verbose_name = "wallet balance"
        verbose_name_plural = "wallet balances"
        constraints = [
            models.CheckConstraint(
                condition=Q(balance__gte=0),
                name="wallet_balance_non_negative",
            ),
        ]

    def __str__(self):
        return f"X-pay {self.account}: {self.balance}"


class WalletTransaction(TimeStampedModel):
    """An immutable ledger entry.  ``amount`` is signed; ``balance_after`` is the
    balance right after this entry was applied."""

    class TransactionType(models.TextChoices):
        DEPOSIT = "deposit", "Deposit"
        PAYMENT = "payment", "Order payment"
        REFUND = "refund", "Order refund"
        DEDUCT = "deduct", "Administrative deduction"

    account = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="wallet_transactions",
        verbose_name="account",
    )
    transaction_type = models.CharField(
        "type",
        max_length=20,
        choices=TransactionType.choices,
    )
    amount = models.DecimalField("amount", max_digits=14, decimal_places=2)
    balance_after = models.DecimalField("balance after", max_digits=14, decimal_places=2)
    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="wallet_transactions",
        verbose_name="order",
    )
    description = models.CharField("description", max_length=255, blank=True, default="")
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
        verbose_name="created by",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "wallet transaction"
        verbose_name_plural = "wallet transactions"
        indexes = [
            models.Index(fields=["account", "created_at"], name="wallet_tx_account_idx"),
        ]

    def __str__(self):
        return f"{self.get_transaction_type_display()} {self.amount:+} ({self.account})"
