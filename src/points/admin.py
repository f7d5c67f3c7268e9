"""Admin configuration for the points app."""
from django.contrib import admin

from .models import PendingPoint, PointBalance, PointTransaction


@admin.register(PointBalance)
class PointBalanceAdmin(admin.ModelAdmin):
    list_display = ("account", "point_type", "balance", "updated_at")
    list_filter = ("point_type",)
    search_fields = ("account__email", "account__name")
    readonly_fields = ("account", "point_type", "balance", "created_at", "updated_at")
    list_select_related = ("account",)


@admin.register(PointTransaction)
class PointTransactionAdmin(admin.ModelAdmin):
    list_display = ("account", "point_type", "transaction_type", "amount", "balance_after", "order", "created_at")
    list_filter = ("transaction_type", "point_type", "created_at")
    search_fields = ("account__email", "order__order_number", "description")
    date_hierarchy = "created_at"
    list_select_related = ("account", "order")

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(PendingPoint)
class PendingPointAdmin(admin.ModelAdmin):
    list_display = ("account", "order", "point_amount", "scheduled_release_date", "status", "released_at")
    list_filter = ("status", "scheduled_release_date")
    search_fields = ("account__email", "order__order_number")
    readonly_fields = ("released_at", "cancelled_at", "created_at", "updated_at")
    list_select_related = ("account", "order")
