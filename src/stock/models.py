"""Models for the stock management app."""
from django.conf import settings
from django.db import models

from core.models import TimeStampedModel


class InventoryMovement(TimeStampedModel):
    """Records every stock movement for full traceability."""

    class MovementType(models.TextChoices):
        SALE = "SALE", "Sale"
        RETURN = "RETURN", "Return"
        ADJUST = "ADJUST", "Adjustment"

    product = models.ForeignKey(
        "catalog.Product",
        on_delete=models.PROTECT,
        related_name="inventory_movements",
        verbose_name="product",
    )
    movement_type = models.CharField(
        "movement type",
        max_length=20,
        choices=MovementType.choices,
    )
    quantity = models.IntegerField(
        "quantity",
        help_text="Positive for stock coming back in, negative for stock going out.",
    )
    quantity_after = models.PositiveIntegerField("quantity after")
    reference = models.CharField(
        "reference",
        max_length=255,
        blank=True,
        default="",
        help_text="Order number or other document reference.",
    )
    reason = models.TextField("reason", blank=True, default="")
    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="inventory_movements",
        verbose_name="user",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "inventory movement"
        verbose_name_plural = "inventory movements"

    def __str__(self):
        return (
            f"{self.get_movement_type_display()} - {self.product} "
            f"({self.quantity:+d})"
        )
