"""Admin configuration for the orders app."""
from django.contrib import admin

from .models import Order, OrderItem


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    can_delete = False
    readonly_fields = ("product", "product_name", "quantity", "unit_price", "unit_pv", "line_total", "line_pv")


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = (
        "order_number", "account", "status", "total_amount", "total_pv",
        "card_reversal_status", "created_at",
    )
    list_filter = ("status", "card_reversal_status", "created_at")
    search_fields = ("order_number", "account__email", "account__name", "tracking_number")
    date_hierarchy = "created_at"
    list_select_related = ("account",)
    inlines = [OrderItemInline]
    # Status changes go through the settlement/reversal services.
    readonly_fields = (
        "order_number", "account", "status", "total_amount", "total_pv",
        "payment_wallet", "payment_point", "payment_point_type", "payment_card", "payment_bank",
        "gateway_order_ref", "gateway_transaction_id", "card_reversal_status", "card_reversal_error",
        "paid_at", "finalized_at", "created_at", "updated_at",
    )
