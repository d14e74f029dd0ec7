"""Django admin configuration for the refund workflow."""

from django.contrib import admin

from refunds.models import DonorRefundDecision, RefundRequest


class DonorRefundDecisionInline(admin.TabularInline):
    model = DonorRefundDecision
    extra = 0
    can_delete = False
    fields = ["donor", "donation", "refund_amount", "decision_type", "status", "processing_error"]
    readonly_fields = fields
    show_change_link = True


@admin.register(RefundRequest)
class RefundRequestAdmin(admin.ModelAdmin):
    """Admin for refund requests. Status changes go through the services."""

    list_display = [
        "id",
        "campaign",
        "milestone",
        "trigger_type",
        "status",
        "total_amount",
        "total_donors_count",
        "decision_deadline",
        "created_at",
    ]
    list_filter = ["status", "trigger_type", "auto_initiated"]
    search_fields = ["id", "campaign__title", "milestone__title", "rejection_reason"]
    raw_id_fields = ["milestone", "campaign", "charity", "created_by"]
    readonly_fields = ["status", "version", "completed_at", "created_at", "updated_at"]
    inlines = [DonorRefundDecisionInline]


@admin.register(DonorRefundDecision)
class DonorRefundDecisionAdmin(admin.ModelAdmin):
    """Admin for donor decisions."""

    list_display = [
        "id",
        "refund_request",
        "donor",
        "refund_amount",
        "decision_type",
        "status",
        "decided_at",
        "processed_at",
    ]
    list_filter = ["status", "decision_type"]
    search_fields = ["id", "donor__email", "refund_transaction_id"]
    raw_id_fields = [
        "refund_request",
        "donor",
        "donation",
        "milestone",
        "redirect_campaign",
        "new_donation",
    ]
    readonly_fields = ["status", "version", "decided_at", "processed_at", "created_at", "updated_at"]
