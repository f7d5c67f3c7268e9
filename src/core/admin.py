"""Admin site settings and the audit trail."""
from django.contrib import admin

from .models import AuditLog


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ("created_at", "actor", "action", "entity_type", "entity_id")
    list_filter = ("action", "entity_type")
    search_fields = ("entity_id", "actor__email", "actor__name", "action")
    readonly_fields = (
        "actor",
        "action",
        "entity_type",
        "entity_id",
        "before_json",
        "after_json",
        "ip_address",
        "created_at",
    )
    date_hierarchy = "created_at"
    list_select_related = ("actor",)

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False


admin.site.site_header = "X-Mall Administration"
admin.site.site_title = "X-Mall Admin"
admin.site.index_title = "Orders, ledgers and escrow"
