"""
Payment admin configuration.

Escrow status, ledger rows and webhook events are read only here; money
moves through EscrowService, never through admin edits.
"""

from django.contrib import admin

from payments.models import (
    CreatorEarning,
    EscrowPayment,
    PayeeAccount,
    ReconciliationAlert,
    WebhookEvent,
)


class CreatorEarningInline(admin.TabularInline):
    """Ledger rows written for an escrow payment."""

    model = CreatorEarning
    fk_name = "escrow_payment"
    extra = 0
    fields = ["id", "earning_type", "amount", "created_at"]
    readonly_fields = fields
    can_delete = False

    def has_add_permission(self, request, obj=None) -> bool:
        return False


@admin.register(EscrowPayment)
class EscrowPaymentAdmin(admin.ModelAdmin):
    """
    Admin configuration for EscrowPayment.

    Status and gateway references are read only. Stuck rows are handled
    through the retry-release endpoint or the reconciliation alerts.
    """

    list_display = [
        "id",
        "contract",
        "milestone",
        "amount_display",
        "status",
        "release_attempts",
        "created_at",
    ]
    list_filter = ["status", "currency", "created_at"]
    search_fields = [
        "id",
        "contract__id",
        "gateway_hold_id",
        "gateway_transfer_id",
        "gateway_refund_id",
    ]
    readonly_fields = [
        "id",
        "contract",
        "milestone",
        "amount",
        "currency",
        "status",
        "gateway_hold_id",
        "gateway_transfer_id",
        "gateway_refund_id",
        "gateway_charge_id",
        "release_attempts",
        "hold_confirmed_at",
        "hold_captured_at",
        "released_at",
        "refunded_at",
        "release_failed_at",
        "created_at",
        "updated_at",
    ]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]
    inlines = [CreatorEarningInline]

    fieldsets = (
        (None, {"fields": ("id", "contract", "milestone", "amount", "currency")}),
        ("Status", {"fields": ("status", "release_reason", "refund_reason", "release_attempts")}),
        (
            "Gateway",
            {
                "fields": (
                    "gateway_hold_id",
                    "gateway_charge_id",
                    "gateway_transfer_id",
                    "gateway_refund_id",
                )
            },
        ),
        (
            "Timestamps",
            {
                "fields": (
                    "hold_confirmed_at",
                    "hold_captured_at",
                    "released_at",
                    "refunded_at",
                    "release_failed_at",
                    "created_at",
                    "updated_at",
                ),
            },
        ),
    )

    def amount_display(self, obj: EscrowPayment) -> str:
        """Display the amount formatted as currency."""
        return f"${obj.amount:.2f} {obj.currency.upper()}"

    amount_display.short_description = "Amount"

    def has_add_permission(self, request) -> bool:
        return False

    def has_delete_permission(self, request, obj=None) -> bool:
        """Disable delete for escrow payments (audit trail)."""
        return False


@admin.register(CreatorEarning)
class CreatorEarningAdmin(admin.ModelAdmin):
    """Append-only ledger; visible but never editable."""

    list_display = ["id", "creator", "earning_type", "amount", "contract", "created_at"]
    list_filter = ["earning_type", "created_at"]
    search_fields = ["id", "creator__display_name", "contract__id"]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]

    def has_add_permission(self, request) -> bool:
        return False

    def has_change_permission(self, request, obj=None) -> bool:
        return False

    def has_delete_permission(self, request, obj=None) -> bool:
        return False


@admin.register(PayeeAccount)
class PayeeAccountAdmin(admin.ModelAdmin):
    """Creator payee accounts and their cached capability flags."""

    list_display = [
        "id",
        "creator",
        "gateway_account_id",
        "onboarding_status",
        "payouts_enabled",
        "charges_enabled",
        "last_synced_at",
    ]
    list_filter = ["onboarding_status", "payouts_enabled", "charges_enabled"]
    search_fields = ["id", "gateway_account_id", "creator__user__email"]
    readonly_fields = ["id", "gateway_account_id", "last_synced_at", "created_at", "updated_at"]
    ordering = ["-created_at"]


@admin.register(WebhookEvent)
class WebhookEventAdmin(admin.ModelAdmin):
    list_display = [
        "gateway_event_id",
        "event_type",
        "status",
        "retry_count",
        "processed_at",
        "created_at",
    ]
    list_filter = ["status", "event_type", "created_at"]
    search_fields = ["gateway_event_id", "event_type"]
    readonly_fields = [
        "id",
        "gateway_event_id",
        "event_type",
        "payload",
        "status",
        "processed_at",
        "error_message",
        "retry_count",
        "created_at",
        "updated_at",
    ]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]

    def has_add_permission(self, request) -> bool:
        return False

    def has_change_permission(self, request, obj=None) -> bool:
        return False


@admin.register(ReconciliationAlert)
class ReconciliationAlertAdmin(admin.ModelAdmin):
    """
    Inconsistencies found by the webhook reconciler.

    Staff investigate and resolve them; resolving only records who looked
    at it, it does not move money.
    """

    list_display = [
        "id",
        "alert_type",
        "escrow_payment",
        "gateway_object_id",
        "is_resolved",
        "created_at",
    ]
    list_filter = ["alert_type", "resolved_at", "created_at"]
    search_fields = ["id", "gateway_object_id", "escrow_payment__id", "message"]
    readonly_fields = [
        "id",
        "alert_type",
        "escrow_payment",
        "gateway_object_id",
        "message",
        "details",
        "resolved_at",
        "resolved_by",
        "created_at",
        "updated_at",
    ]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]
    actions = ["mark_resolved"]

    @admin.display(boolean=True, description="Resolved")
    def is_resolved(self, obj: ReconciliationAlert) -> bool:
        return obj.is_resolved

    @admin.action(description="Mark selected alerts as resolved")
    def mark_resolved(self, request, queryset):
        count = 0
        for alert in queryset.filter(resolved_at__isnull=True):
            alert.resolve(request.user, notes="Resolved from admin")
            alert.save(update_fields=["resolved_at", "resolved_by", "resolution_notes", "updated_at"])
            count += 1
        self.message_user(request, f"Marked {count} alerts as resolved.")

    def has_add_permission(self, request) -> bool:
        return False

    def has_delete_permission(self, request, obj=None) -> bool:
        return False
