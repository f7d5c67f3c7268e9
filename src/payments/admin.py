"""Admin configuration for the payments app."""
from django.contrib import admin

from .models import PaymentRequest


@admin.register(PaymentRequest)
class PaymentRequestAdmin(admin.ModelAdmin):
    list_display = ("order_ref", "amount", "status", "gateway_transaction_id", "error_code", "created_at")
    list_filter = ("status", "created_at")
    search_fields = ("order_ref", "gateway_transaction_id")
    readonly_fields = (
        "order_ref", "amount", "status", "gateway_transaction_id",
        "error_code", "error_message", "payment_data", "created_at", "updated_at",
    )
    date_hierarchy = "created_at"
