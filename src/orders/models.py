"""Models for the orders app."""
from decimal import Decimal

from django.conf import settings
from django.db import models

from core.models import TimeStampedModel


class Order(TimeStampedModel):
    """A settled customer order with its payment breakdown and shipping snapshot."""

    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        PAID = "paid", "Paid"
        PROCESSING = "processing", "Processing"
        SHIPPED = "shipped", "Shipped"
        DELIVERED = "delivered", "Delivered"
        CANCELLED = "cancelled", "Cancelled"
        REFUNDED = "refunded", "Refunded"

    class CardReversalStatus(models.TextChoices):
        NOT_REQUIRED = "not_required", "Not required"
        PENDING = "pending", "Pending"
        IN_PROGRESS = "in_progress", "In progress"
        REVERSED = "reversed", "Reversed"
        FAILED = "failed", "Failed"

    FORWARD_FLOW = [
        Status.PENDING,
        Status.PAID,
        Status.PROCESSING,
        Status.SHIPPED,
        Status.DELIVERED,
    ]
    TERMINAL_STATUSES = {Status.CANCELLED, Status.REFUNDED}
    REVERSIBLE_STATUSES = {Status.PAID, Status.PROCESSING, Status.SHIPPED}

    order_number = models.CharField("order number", max_length=30, unique=True)
    account = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="orders",
        verbose_name="account",
    )
    status = models.CharField(
        "status",
        max_length=20,
        choices=Status.choices,
        default=Status.PENDING,
        db_index=True,
    )
    total_amount = models.DecimalField("total amount", max_digits=14, decimal_places=2)
    total_pv = models.DecimalField("total PV", max_digits=14, decimal_places=2, default=Decimal("0.00"))

    payment_wallet = models.DecimalField("paid by wallet", max_digits=14, decimal_places=2, default=Decimal("0.00"))
    payment_point = models.DecimalField("paid by points", max_digits=14, decimal_places=2, default=Decimal("0.00"))
    payment_point_type = models.CharField("point type used", max_length=10, blank=True, default="")
    payment_card = models.DecimalField("paid by card", max_digits=14, decimal_places=2, default=Decimal("0.00"))
    payment_bank = models.DecimalField("paid by bank transfer", max_digits=14, decimal_places=2, default=Decimal("0.00"))

    shipping_name = models.CharField("recipient", max_length=100)
    shipping_phone = models.CharField("recipient phone", max_length=30)
    shipping_address = models.CharField("shipping address", max_length=500)
    shipping_memo = models.CharField("delivery memo", max_length=255, blank=True, default="")

    gateway_transaction_id = models.CharField(
        "gateway transaction id", max_length=100, blank=True, default="",
    )
    gateway_order_ref = models.CharField(
        "gateway order reference",
        max_length=50,
        blank=True,
        default="",
        help_text="Order id the card charge was authorized under on the gateway.",
    )
    tracking_number = models.CharField("tracking number", max_length=100, blank=True, default="")

    card_reversal_status = models.CharField(
        "card reversal",
        max_length=20,
        choices=CardReversalStatus.choices,
        default=CardReversalStatus.NOT_REQUIRED,
        db_index=True,
    )
    card_reversal_error = models.TextField("card reversal error", blank=True, default="")

    paid_at = models.DateTimeField("paid at", null=True, blank=True)
    finalized_at = models.DateTimeField("cancelled/refunded at", null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "order"
        verbose_name_plural = "orders"
        indexes = [
            models.Index(fields=["account", "created_at"], name="order_account_created_idx"),
        ]

    def __str__(self):
        return f"{self.order_number} ({self.get_status_display()})"

    @property
    def is_terminal(self):
        return self.status in self.TERMINAL_STATUSES


class OrderItem(models.Model):
    """A line of an order with the product snapshot taken at settlement."""

    order = models.ForeignKey(
        Order,
        on_delete=models.CASCADE,
        related_name="items",
        verbose_name="order",
    )
    product = models.ForeignKey(
        "catalog.Product",
        on_delete=models.PROTECT,
        related_name="order_items",
        verbose_name="product",
    )
    product_name = models.CharField("product name", max_length=255)
    quantity = models.PositiveIntegerField("quantity")
    unit_price = models.DecimalField("unit price", max_digits=14, decimal_places=2)
    unit_pv = models.DecimalField("unit PV", max_digits=14, decimal_places=2, default=Decimal("0.00"))
    line_total = models.DecimalField("line total", max_digits=14, decimal_places=2)
    line_pv = models.DecimalField("line PV", max_digits=14, decimal_places=2, default=Decimal("0.00"))

    class Meta:
        verbose_name = "order item"
        verbose_name_plural = "order items"

    def __str__(self):
        return f"{self.product_name} x {self.quantity}"
