"""Models for the catalog app."""
from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models

from core.models import TimeStampedModel


class Product(TimeStampedModel):
    """A sellable product with per-grade pricing, a PV score and a stock counter."""

    name = models.CharField("name", max_length=255)
    sku = models.CharField(
        "SKU",
        max_length=50,
        unique=True,
        help_text="Unique internal product reference.",
    )
    description = models.TextField("description", blank=True, default="")
    consumer_price = models.DecimalField(
        "consumer price",
        max_digits=14,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    dealer_price = models.DecimalField(
        "dealer price",
        max_digits=14,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    pv_value = models.DecimalField(
        "PV value",
        max_digits=14,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0.00"))],
        help_text="Performance value earned per unit on dealer purchases.",
    )
    stock_quantity = models.PositiveIntegerField("stock quantity", default=0)
    is_active = models.BooleanField("active", default=True, db_index=True)

    class Meta:
        verbose_name = "product"
        verbose_name_plural = "products"
        ordering = ["name"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(stock_quantity__gte=0),
                name="product_stock_quantity_non_negative",
            ),
        ]

    def __str__(self):
        return f"{self.name} ({self.sku})"

    # ------------------------------------------------------------------
    # Grade-dependent pricing
    # ------------------------------------------------------------------

    def unit_price_for(self, grade) -> Decimal:
        """Dealers pay the dealer price; everyone else pays the consumer price."""
        from accounts.models import User

        if grade == User.Grade.DEALER:
            return self.dealer_price
        return self.consumer_price

    def unit_pv_for(self, grade) -> Decimal:
        """Only dealer purchases accrue performance value."""
        from accounts.models import User

        if grade == User.Grade.DEALER:
            return self.pv_value
        return Decimal("0.00")
