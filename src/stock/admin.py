"""Admin configuration for the stock app."""
from django.contrib import admin

from .models import InventoryMovement


@admin.register(InventoryMovement)
class InventoryMovementAdmin(admin.ModelAdmin):
    list_display = ("product", "movement_type", "quantity", "quantity_after", "reference", "actor", "created_at")
    list_filter = ("movement_type", "created_at")
    search_fields = ("product__name", "product__sku", "reference")
    readonly_fields = ("created_at",)
    date_hierarchy = "created_at"
    list_select_related = ("product", "actor")
