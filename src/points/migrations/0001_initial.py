import uuid
from decimal import Decimal

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("orders", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="PointBalance",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, verbose_name="created at")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="updated at")),
                ("point_type", models.CharField(default="X", max_length=10, verbose_name="point type")),
                ("balance", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14, verbose_name="balance")),
                (
                    "account",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="point_balances",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="account",
                    ),
                ),
            ],
            options={
                "verbose_name": "point balance",
                "verbose_name_plural": "point balances",
                "constraints": [
                    models.UniqueConstraint(
                        fields=("account", "point_type"),
                        name="point_balance_unique_account_type",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(balance__gte=0),
                        name="point_balance_non_negative",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="PointTransaction",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, verbose_name="created at")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="updated at")),
                ("point_type", models.CharField(default="X", max_length=10, verbose_name="point type")),
                (
                    "transaction_type",
                    models.CharField(
                        choices=[
                            ("grant", "Administrative grant"),
                            ("admin_deduct", "Administrative deduction"),
                            ("pv_reward", "PV reward release"),
                            ("payment", "Order payment"),
                            ("refund", "Order refund"),
                            ("withdrawal", "Withdrawal"),
                        ],
                        max_length=20,
                        verbose_name="type",
                    ),
                ),
                ("amount", models.DecimalField(decimal_places=2, max_digits=14, verbose_name="amount")),
                ("balance_after", models.DecimalField(decimal_places=2, max_digits=14, verbose_name="balance after")),
                ("description", models.CharField(blank=True, default="", max_length=255, verbose_name="description")),
                (
                    "account",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="point_transactions",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="account",
                    ),
                ),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="created by",
                    ),
                ),
                (
                    "order",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="point_transactions",
                        to="orders.order",
                        verbose_name="order",
                    ),
                ),
            ],
            options={
                "verbose_name": "point transaction",
                "verbose_name_plural": "point transactions",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["account", "point_type", "created_at"], name="point_tx_account_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="PendingPoint",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, verbose_name="created at")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="updated at")),
                ("point_type", models.CharField(default="X", max_length=10, verbose_name="point type")),
                ("point_amount", models.DecimalField(decimal_places=2, max_digits=14, verbose_name="point amount")),
                (
                    "originating_value",
                    models.DecimalField(
                        decimal_places=2,
                        help_text="Order PV the reward was computed from.",
                        max_digits=14,
                        verbose_name="originating PV",
                    ),
                ),
                ("scheduled_release_date", models.DateField(db_index=True, verbose_name="scheduled release date")),
                (
                    "status",
                    models.CharField(
                        choices=[("pending", "Pending"), ("released", "Released"), ("cancelled", "Cancelled")],
                        default="pending",
                        max_length=20,
                        verbose_name="status",
                    ),
                ),
                ("released_at", models.DateTimeField(blank=True, null=True, verbose_name="released at")),
                ("cancelled_at", models.DateTimeField(blank=True, null=True, verbose_name="cancelled at")),
                (
                    "account",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="pending_points",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="account",
                    ),
                ),
                (
                    "order",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="pending_point",
                        to="orders.order",
                        verbose_name="order",
                    ),
                ),
            ],
            options={
                "verbose_name": "pending point",
                "verbose_name_plural": "pending points",
                "ordering": ["scheduled_release_date", "created_at"],
                "indexes": [
                    models.Index(fields=["status", "scheduled_release_date"], name="pending_point_due_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(point_amount__gte=0),
                        name="pending_point_amount_non_negative",
                    ),
                ],
            },
        ),
    ]
