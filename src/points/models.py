"""Models for the point ledger and the pending-point escrow."""
from decimal import Decimal

from django.conf import settings
from django.db import models
from django.db.models import Q

from core.models import TimeStampedModel


class PointBalance(TimeStampedModel):
    """Spendable points of one type held by an account.  Never negative."""

    account = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="point_balances",
        verbose_name="account",
    )
    point_type = models.CharField("point type", max_length=10, default="X")
    balance = models.DecimalField(
        "balance",
        max_digits=14,
        decimal_places=2,
        default=Decimal("0.00"),
    )

    class Meta:
        verbose_name = "point balance"
        verbose_name_plural = "point balances"
        constraints = [
            models.UniqueConstraint(
                fields=["account", "point_type"],
                name="point_balance_unique_account_type",
            ),
            models.CheckConstraint(
                condition=Q(balance__gte=0),
                name="point_balance_non_negative",
            ),
        ]

    def __str__(self):
        return f"{self.point_type} points {self.account}: {self.balance}"


class PointTransaction(TimeStampedModel):
    """Immutable point ledger entry with a signed amount."""

    class TransactionType(models.TextChoices):
        GRANT = "grant", "Administrative grant"
        ADMIN_DEDUCT = "admin_deduct", "Administrative deduction"
        PV_REWARD = "pv_reward", "PV reward release"
        PAYMENT = "payment", "Order payment"
        REFUND = "refund", "Order refund"
        # Written only by the retired point-withdrawal flow; kept so historical rows still read.
        WITHDRAWAL = "withdrawal", "Withdrawal"

    account = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="point_transactions",
        verbose_name="account",
    )
    point_type = models.CharField("point type", max_length=10, default="X")
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
        related_name="point_transactions",
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
        verbose_name = "point transaction"
        verbose_name_plural = "point transactions"
        indexes = [
            models.Index(fields=["account", "point_type", "created_at"], name="point_tx_account_idx"),
        ]

    def __str__(self):
        return f"{self.get_transaction_type_display()} {self.amount:+} {self.point_type} ({self.account})"


class PendingPoint(TimeStampedModel):
    """A point reward held in escrow until its release date.

    ``pending`` moves once, either to ``released`` by the daily release run
    or to ``cancelled`` when the order is reversed first.
    """

    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        RELEASED = "released", "Released"
        CANCELLED = "cancelled", "Cancelled"

    account = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="pending_points",
        verbose_name="account",
    )
    order = models.OneToOneField(
        "orders.Order",
        on_delete=models.PROTECT,
        related_name="pending_point",
        verbose_name="order",
    )
    point_type = models.CharField("point type", max_length=10, default="X")
    point_amount = models.DecimalField("point amount", max_digits=14, decimal_places=2)
    originating_value = models.DecimalField(
        "originating PV",
        max_digits=14,
        decimal_places=2,
        help_text="Order PV the reward was computed from.",
    )
    scheduled_release_date = models.DateField("scheduled release date", db_index=True)
    status = models.CharField(
        "status",
        max_length=20,
        choices=Status.choices,
        default=Status.PENDING,
    )
    released_at = models.DateTimeField("released at", null=True, blank=True)
    cancelled_at = models.DateTimeField("cancelled at", null=True, blank=True)

    class Meta:
        ordering = ["scheduled_release_date", "created_at"]
        verbose_name = "pending point"
        verbose_name_plural = "pending points"
        indexes = [
            models.Index(fields=["status", "scheduled_release_date"], name="pending_point_due_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(point_amount__gte=0),
                name="pending_point_amount_non_negative",
            ),
        ]

    def __str__(self):
        return f"{self.point_amount} {self.point_type} for {self.account} ({self.status})"
