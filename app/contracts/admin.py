"""
Contract admin configuration.

Status fields are read only; contracts move through ContractService so
signatures and escrow checks are never bypassed.
"""

from django.contrib import admin

from contracts.models import Contract, Milestone


class MilestoneInline(admin.TabularInline):
    model = Milestone
    extra = 0
    fields = ["title", "amount", "due_date", "status"]
    readonly_fields = ["status"]
    show_change_link = True


@admin.register(Contract)
class ContractAdmin(admin.ModelAdmin):
    list_display = [
        "id",
        "title",
        "brand",
        "creator",
        "total_amount",
        "status",
        "created_at",
    ]
    list_filter = ["status", "created_at"]
    search_fields = ["id", "title", "brand__company_name", "creator__display_name"]
    readonly_fields = [
        "id",
        "brief",
        "brand",
        "creator",
        "status",
        "activated_at",
        "completed_at",
        "cancelled_at",
        "created_at",
        "updated_at",
    ]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]
    inlines = [MilestoneInline]

    fieldsets = (
        (None, {"fields": ("id", "brief", "brand", "creator", "title", "description")}),
        ("Terms", {"fields": ("terms", "deliverables", "total_amount", "start_date", "end_date")}),
        (
            "Status",
            {"fields": ("status", "activated_at", "completed_at", "cancelled_at")},
        ),
        ("Timestamps", {"fields": ("created_at", "updated_at")}),
    )

    def has_delete_permission(self, request, obj=None) -> bool:
        """Contracts back escrow payments and earnings (audit trail)."""
        return False


@admin.register(Milestone)
class MilestoneAdmin(admin.ModelAdmin):
    list_display = ["id", "title", "contract", "amount", "due_date", "status"]
    list_filter = ["status", "due_date"]
    search_fields = ["id", "title", "contract__title"]
    readonly_fields = [
        "id",
        "contract",
        "status",
        "submitted_at",
        "approved_at",
        "paid_at",
        "created_at",
        "updated_at",
    ]
    ordering = ["-created_at"]

    def has_delete_permission(self, request, obj=None) -> bool:
        return False
