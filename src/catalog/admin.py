"""Admin configuration for the catalog app."""
from django.contrib import admin

from .models import Product


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = (
        "name",
        "sku",
        "consumer_price",
        "dealer_price",
        "pv_value",
        "stock_quantity",
        "is_active",
        "created_at",
    )
    list_filter = ("is_active",)
    search_fields = ("name", "sku")
    list_editable = ("is_active",)
    readonly_fields = ("id", "created_at", "updated_at")
