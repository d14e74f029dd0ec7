"""
Django admin configuration for campaign models.

Counters and refund guards are read-only here; they change only through
services so F() increments and compare-and-set guards stay intact.
"""

from django.contrib import admin

from campaigns.models import Campaign, Charity, Donation, Milestone, MilestoneAllocation


@admin.register(Charity)
class CharityAdmin(admin.ModelAdmin):
    list_display = ("name", "owner", "is_verified", "created_at")
    list_filter = ("is_verified",)
    search_fields = ("name", "owner__email")


class MilestoneInline(admin.TabularInline):
    model = Milestone
    extra = 0
    fields = ("title", "target_amount", "status", "funds_released", "refund_initiated")
    readonly_fields = ("refund_initiated",)


@admin.register(Campaign)
class CampaignAdmin(admin.ModelAdmin):
    list_display = (
        "title",
        "charity",
        "status",
        "goal_amount",
        "current_amount",
        "end_date",
    )
    list_filter = ("status",)
    search_fields = ("title", "charity__name")
    readonly_fields = (
        "current_amount",
        "donors_count",
        "total_refunded",
        "milestone_refund_count",
        "expiration_refund_initiated",
        "expiration_refund_completed",
        "grace_period_ends_at",
    )
    inlines = [MilestoneInline]


@admin.register(Milestone)
class MilestoneAdmin(admin.ModelAdmin):
    list_display = ("title", "campaign", "status", "target_amount", "refund_initiated")
    list_filter = ("status", "refund_initiated", "funds_released")
    search_fields = ("title", "campaign__title")
    readonly_fields = ("refund_initiated", "refund_initiated_at", "refund_completed")


@admin.register(Donation)
class DonationAdmin(admin.ModelAdmin):
    list_display = ("transaction_id", "user", "campaign", "amount", "status", "donated_at")
    list_filter = ("status", "payment_method", "provider")
    search_fields = ("transaction_id", "provider_payment_id", "user__email")
    raw_id_fields = ("user", "campaign")


@admin.register(MilestoneAllocation)
class MilestoneAllocationAdmin(admin.ModelAdmin):
    list_display = ("donation", "milestone", "donor", "allocated_amount", "is_released")
    list_filter = ("is_released",)
    raw_id_fields = ("milestone", "donation", "campaign", "donor")
