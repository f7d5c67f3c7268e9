import uuid

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
            name="InventoryMovement",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, verbose_name="created at")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="updated at")),
                (
                    "movement_type",
                    models.CharField(
                        choices=[("SALE", "Sale"), ("RETURN", "Return"), ("ADJUST", "Adjustment")],
                        max_length=20,
                        verbose_name="movement type",
                    ),
                ),
                (
                    "quantity",
                    models.IntegerField(
                        help_text="Positive for stock coming back in, negative for stock going out.",
                        verbose_name="quantity",
                    ),
                ),
                ("quantity_after", models.PositiveIntegerField(verbose_name="quantity after")),
                (
                    "reference",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="Order number or other document reference.",
                        max_length=255,
                        verbose_name="reference",
                    ),
                ),
                ("reason", models.TextField(blank=True, default="", verbose_name="reason")),
                (
                    "actor",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="inventory_movements",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="user",
                    ),
                ),
                (
                    "product",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="inventory_movements",
                        to="catalog.product",
                        verbose_name="product",
                    ),
                ),
            ],
            options={
                "verbose_name": "inventory movement",
                "verbose_name_plural": "inventory movements",
                "ordering": ["-created_at"],
            },
        ),
    ]
