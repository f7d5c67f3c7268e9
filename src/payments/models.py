"""Models for the payments app."""
from django.db import models

from core.models import TimeStampedModel


class PaymentRequest(TimeStampedModel):
    """One card charge attempt sent to the external gateway.

    The primary key doubles as the internal reference sent along with the
    charge, so gateway callbacks can be matched back.
    """

    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        COMPLETED = "completed", "Completed"
        FAILED = "failed", "Failed"
        CANCELLED = "cancelled", "Cancelled"

    order_ref = models.CharField("order reference", max_length=50, db_index=True)
    amount = models.DecimalField("amount", max_digits=14, decimal_places=2)
    status = models.CharField(
        "status",
        max_length=20,
        choices=Status.choices,
        default=Status.PENDING,
        db_index=True,
    )
    gateway_transaction_id = models.CharField(
        "gateway transaction id", max_length=100, blank=True, default="",
    )
    error_code = models.CharField("error code", max_length=20, blank=True, default="")
    error_message = models.TextField("error message", blank=True, default="")
    payment_data = models.JSONField("payment data", default=dict, blank=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "payment request"
        verbose_name_plural = "payment requests"

    def __str__(self):
        return f"{self.order_ref} {self.amount} ({self.status})"
