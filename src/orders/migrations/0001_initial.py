import uuid
from decimal import Decimal

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("catalog", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Order",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, verbose_name="created at")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="updated at")),
                ("order_number", models.CharField(max_length=30, unique=True, verbose_name="order number")),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("paid", "Paid"),
                            ("processing", "Processing"),
                            ("shipped", "Shipped"),
                            ("delivered", "Delivered"),
                            ("cancelled", "Cancelled"),
                            ("refunded", "Refunded"),
                        ],
                        db_index=True,
                        default="pending",
                        max_length=20,
                        verbose_name="status",
                    ),
                ),
                ("total_amount", models.DecimalField(decimal_places=2, max_digits=14, verbose_name="total amount")),
                ("total_pv", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14, verbose_name="total PV")),
                ("payment_wallet", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14, verbose_name="paid by wallet")),
                ("payment_point", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14, verbose_name="paid by points")),
                ("payment_point_type", models.CharField(blank=True, default="", max_length=10, verbose_name="point type used")),
                ("payment_card", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14, verbose_name="paid by card")),
                ("payment_bank", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14, verbose_name="paid by bank transfer")),
                ("shipping_name", models.CharField(max_length=100, verbose_name="recipient")),
                ("shipping_phone", models.CharField(max_length=30, verbose_name="recipient phone")),
                ("shipping_address", models.CharField(max_length=500, verbose_name="shipping address")),
                ("shipping_memo", models.CharField(blank=True, default="", max_length=255, verbose_name="delivery memo")),
                ("gateway_transaction_id", models.CharField(blank=True, default="", max_length=100, verbose_name="gateway transaction id")),
                ("tracking_number", models.CharField(blank=True, default="", max_length=100, verbose_name="tracking number")),
                (
                    "card_reversal_status",
                    models.CharField(
                        choices=[
                            ("not_required", "Not required"),
                            ("pending", "Pending"),
                            ("reversed", "Reversed"),
                            ("failed", "Failed"),
                        ],
                        db_index=True,
                        default="not_required",
                        max_length=20,
                        verbose_name="card reversal",
                    ),
                ),
                ("card_reversal_error", models.TextField(blank=True, default="", verbose_name="card reversal error")),
                ("paid_at", models.DateTimeField(blank=True, null=True, verbose_name="paid at")),
                ("finalized_at", models.DateTimeField(blank=True, null=True, verbose_name="cancelled/refunded at")),
                (
                    "account",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="orders",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="account",
                    ),
                ),
            ],
            options={
                "verbose_name": "order",
                "verbose_name_plural": "orders",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["account", "created_at"], name="order_account_created_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="OrderItem",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("product_name", models.CharField(max_length=255, verbose_name="product name")),
                ("quantity", models.PositiveIntegerField(verbose_name="quantity")),
                ("unit_price", models.DecimalField(decimal_places=2, max_digits=14, verbose_name="unit price")),
                ("unit_pv", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14, verbose_name="unit PV")),
                ("line_total", models.DecimalField(decimal_places=2, max_digits=14, verbose_name="line total")),
                ("line_pv", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14, verbose_name="line PV")),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="items",
                        to="orders.order",
                        verbose_name="order",
                    ),
                ),
                (
                    "product",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="order_items",
                        to="catalog.product",
                        verbose_name="product",
                    ),
                ),
            ],
            options={
                "verbose_name": "order item",
                "verbose_name_plural": "order items",
            },
        ),
    ]
