"""Admin configuration for the wallet app."""
from django.contrib import admin

from .models import WalletBalance, WalletTransaction


@admin.register(WalletBalance)
class WalletBalanceAdmin(admin.ModelAdmin):
    list_display = ("account", "balance", "updated_at")
    search_fields = ("account__email", "account__name")
    readonly_fields = ("account", "balance", "created_at", "updated_at")
    list_select_related = ("account",)


@admin.register(WalletTransaction)
class WalletTransactionAdmin(admin.ModelAdmin):
    list_display = ("account", "transaction_type", "amount", "balance_after", "order", "created_at")
    list_filter = ("transaction_type", "created_at")
    search_fields = ("account__email", "order__order_number", "description")
    readonly_fields = (
        "account", "transaction_type", "amount", "balance_after",
        "order", "description", "created_by", "created_at",
    )
    date_hierarchy = "created_at"
    list_select_related = ("account", "order")

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
