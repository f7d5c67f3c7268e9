import uuid

from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="PaymentRequest",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, verbose_name="created at")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="updated at")),
                ("order_ref", models.CharField(db_index=True, max_length=50, verbose_name="order reference")),
                ("amount", models.DecimalField(decimal_places=2, max_digits=14, verbose_name="amount")),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("completed", "Completed"),
                            ("failed", "Failed"),
                            ("cancelled", "Cancelled"),
                        ],
                        db_index=True,
                        default="pending",
                        max_length=20,
                        verbose_name="status",
                    ),
                ),
                ("gateway_transaction_id", models.CharField(blank=True, default="", max_length=100, verbose_name="gateway transaction id")),
                ("error_code", models.CharField(blank=True, default="", max_length=20, verbose_name="error code")),
                ("error_message", models.TextField(blank=True, default="", verbose_name="error message")),
                ("payment_data", models.JSONField(blank=True, default=dict, verbose_name="payment data")),
            ],
            options={
                "verbose_name": "payment request",
                "verbose_name_plural": "payment requests",
                "ordering": ["-created_at"],
            },
        ),
    ]
