from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("orders", "0001_initial"),
    ]

    operations = [
        migrations.AddField(
            model_name="order",
            name="gateway_order_ref",
            field=models.CharField(
                blank=True,
                default="",
                help_text="Order id the card charge was authorized under on the gateway.",
                max_length=50,
                verbose_name="gateway order reference",
            ),
        ),
        migrations.AlterField(
            model_name="order",
            name="card_reversal_status",
            field=models.CharField(
                choices=[
                    ("not_required", "Not required"),
                    ("pending", "Pending"),
                    ("in_progress", "In progress"),
                    ("reversed", "Reversed"),
                    ("failed", "Failed"),
                ],
                db_index=True,
                default="not_required",
                max_length=20,
                verbose_name="card reversal",
            ),
        ),
    ]
