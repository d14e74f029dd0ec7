"""
Campaign domain models.

This module defines the fundraising collaborators the refund workflow
reads from and writes to:
- Charity: Organisation that owns campaigns
- Campaign: Fundraising campaign with a goal and raised-amount counters
- Milestone: Funding target inside a campaign, verified or rejected by admins
- Donation: Completed (or refunded) donor payment into a campaign
- MilestoneAllocation: Portion of one donation attributed to one milestone

Design Decisions:
    - All models use UUID primary keys
    - Money is DecimalField(12, 2); provider calls convert to minor units
    - Raised-amount counters are only ever changed with F() expressions
    - Allocations are written by campaigns.services.AllocationService and
      are read-only to the refund workflow

Usage:
    from campaigns.models import Campaign, CampaignStatus

    active = Campaign.objects.filter(status=CampaignStatus.ACTIVE)
"""

from __future__ import annotations

from decimal import Decimal

from django.conf import settings
from django.db import models
from django.utils import timezone

from core.model_mixins import MetadataMixin, UUIDPrimaryKeyMixin
from core.models import BaseModel

MONEY = {"max_digits": 12, "decimal_places": 2}


# =============================================================================
# Enums
# =============================================================================


class CampaignStatus(models.TextChoices):
    """
    Campaign lifecycle states.

    Only ACTIVE campaigns accept redirected donations. ACTIVE and PAUSED
    campaigns past their end date and under goal qualify for expiration
    refunds; CANCELLED campaigns qualify for cancellation refunds.
    """

    DRAFT = "draft", "Draft"
    PENDING = "pending", "Pending Review"
    ACTIVE = "active", "Active"
    PAUSED = "paused", "Paused"
    COMPLETED = "completed", "Completed"
    CANCELLED = "cancelled", "Cancelled"


class MilestoneStatus(models.TextChoices):
    """Milestone review states. Rejection triggers a refund request."""

    PENDING = "pending", "Pending"
    IN_PROGRESS = "in_progress", "In Progress"
    VERIFIED = "verified", "Verified"
    REJECTED = "rejected", "Rejected"


class DonationStatus(models.TextChoices):
    """Donation payment states. Only COMPLETED donations are refundable."""

    PENDING = "pending", "Pending"
    COMPLETED = "completed", "Completed"
    FAILED = "failed", "Failed"
    REFUNDED = "refunded", "Refunded"


# =============================================================================
# Charity
# =============================================================================


class Charity(UUIDPrimaryKeyMixin, BaseModel):
    """
    Organisation that runs campaigns.

    Fields:
        owner: User who manages the charity
        name: Public name
        is_verified: Whether the platform has verified the organisation
    """

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="charities",
        help_text="User who manages this charity",
    )
    name = models.CharField(max_length=200)
    is_verified = models.BooleanField(default=False)

    class Meta(BaseModel.Meta):
        verbose_name = "Charity"
        verbose_name_plural = "Charities"

    def __str__(self) -> str:
        return self.name


# =============================================================================
# Campaign
# =============================================================================


class Campaign(UUIDPrimaryKeyMixin, BaseModel):
    """
    Fundraising campaign.

    Fields:
        charity: Owning charity
        title: Public title, used in notification copy
        goal_amount: Funding goal
        current_amount: Amount raised so far (F() increments only)
        donors_count: Number of donations counted toward current_amount
        status: CampaignStatus
        start_date / end_date: Campaign window (end_date optional)
        total_refunded: Sum of provider refunds paid out of this campaign
        milestone_refund_count: Number of milestone refund requests started
        expiration_refund_initiated: One-shot guard for campaign-level refunds
        expiration_refund_completed: Set once every campaign-level decision settled
        grace_period_ends_at: Decision deadline of the campaign-level refund
    """

    # ==========================================================================
    # Identity
    # ==========================================================================

    charity = models.ForeignKey(
        Charity,
        on_delete=models.PROTECT,
        related_name="campaigns",
    )
    title = models.CharField(max_length=200)

    # ==========================================================================
    # Funding
    # ==========================================================================

    goal_amount = models.DecimalField(**MONEY)
    current_amount = models.DecimalField(default=Decimal("0"), **MONEY)
    donors_count = models.PositiveIntegerField(default=0)

    # ==========================================================================
    # Lifecycle
    # ==========================================================================

    status = models.CharField(
        max_length=20,
        choices=CampaignStatus.choices,
        default=CampaignStatus.DRAFT,
        db_index=True,
    )
    start_date = models.DateTimeField(default=timezone.now)
    end_date = models.DateTimeField(null=True, blank=True)

    # ==========================================================================
    # Refund Tracking
    # ==========================================================================

    total_refunded = models.DecimalField(default=Decimal("0"), **MONEY)
    milestone_refund_count = models.PositiveIntegerField(default=0)
    expiration_refund_initiated = models.BooleanField(default=False)
    expiration_refund_completed = models.BooleanField(default=False)
    grace_period_ends_at = models.DateTimeField(null=True, blank=True)

    class Meta(BaseModel.Meta):
        verbose_name = "Campaign"
        verbose_name_plural = "Campaigns"
        indexes = [
            models.Index(fields=["status", "end_date"], name="campaign_status_end_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(goal_amount__gt=0),
                name="campaign_goal_positive",
            ),
        ]

    def __str__(self) -> str:
        return self.title

    @property
    def is_funded(self) -> bool:
        """Check if the campaign has reached its goal."""
        return self.current_amount >= self.goal_amount


# =============================================================================
# Milestone
# =============================================================================


class Milestone(UUIDPrimaryKeyMixin, BaseModel):
    """
    Funding target inside a campaign.

    Fields:
        campaign: Parent campaign
        title: Public title
        target_amount: Amount this milestone needs
        status: MilestoneStatus
        funds_released: Whether allocated funds were paid out to the charity
        released_amount: Amount paid out
        refund_initiated: One-shot guard; set by conditional UPDATE only
        refund_initiated_at: When the refund request was created
        refund_completed: Set once every decision of its refund request settled
    """

    campaign = models.ForeignKey(
        Campaign,
        on_delete=models.CASCADE,
        related_name="milestones",
    )
    title = models.CharField(max_length=200)
    target_amount = models.DecimalField(**MONEY)
    status = models.CharField(
        max_length=20,
        choices=MilestoneStatus.choices,
        default=MilestoneStatus.PENDING,
        db_index=True,
    )

    # ==========================================================================
    # Fund Release
    # ==========================================================================

    funds_released = models.BooleanField(default=False)
    released_amount = models.DecimalField(default=Decimal("0"), **MONEY)

    # ==========================================================================
    # Refund Guard
    # ==========================================================================

    refund_initiated = models.BooleanField(default=False)
    refund_initiated_at = models.DateTimeField(null=True, blank=True)
    refund_completed = models.BooleanField(default=False)

    class Meta:
        ordering = ["created_at", "id"]
        verbose_name = "Milestone"
        verbose_name_plural = "Milestones"
        constraints = [
            models.CheckConstraint(
                condition=models.Q(target_amount__gt=0),
                name="milestone_target_positive",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.title} ({self.campaign_id})"


# =============================================================================
# Donation
# =============================================================================


class Donation(UUIDPrimaryKeyMixin, MetadataMixin, BaseModel):
    """
    A donor's payment into a campaign.

    Fields:
        user: Donor
        campaign: Campaign that received the money
        amount: Donated amount
        payment_method: "card", "redirected", ...
        transaction_id: Unique platform reference (REDIRECT_<decision id> for redirects)
        status: DonationStatus
        provider: Payment provider name
        provider_payment_id: Provider payment reference (Stripe PaymentIntent);
            required to refund through the provider
        donated_at: When the donation completed
        metadata: Provenance annotations (redirect source, original ids)
    """

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="donations",
    )
    campaign = models.ForeignKey(
        Campaign,
        on_delete=models.PROTECT,
        related_name="donations",
    )
    amount = models.DecimalField(**MONEY)
    payment_method = models.CharField(max_length=30, default="card")
    transaction_id = models.CharField(max_length=100, unique=True)
    status = models.CharField(
        max_length=20,
        choices=DonationStatus.choices,
        default=DonationStatus.COMPLETED,
        db_index=True,
    )
    provider = models.CharField(max_length=30, default="stripe")
    provider_payment_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        help_text="Stripe PaymentIntent ID (pi_xxx)",
    )
    donated_at = models.DateTimeField(default=timezone.now)

    class Meta(BaseModel.Meta):
        verbose_name = "Donation"
        verbose_name_plural = "Donations"
        indexes = [
            models.Index(fields=["campaign", "status"], name="donation_campaign_status_idx"),
            models.Index(fields=["user", "status"], name="donation_user_status_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount__gt=0),
                name="donation_amount_positive",
            ),
        ]

    def __str__(self) -> str:
        return f"Donation({self.id}, {self.amount}, {self.status})"


# =============================================================================
# Milestone Allocation
# =============================================================================


class MilestoneAllocation(UUIDPrimaryKeyMixin, BaseModel):
    """
    Portion of one donation attributed to one milestone.

    Fields:
        milestone / donation / campaign / donor: What was allocated where
        allocated_amount: Positive share of the donation
        allocation_percentage: allocated_amount / donation.amount * 100
        is_released: Set by the fund-release workflow once paid out
        released_at: When released

    Invariants:
        - One row per (milestone, donation)
        - Allocations of a donation never sum past the donation amount
    """

    milestone = models.ForeignKey(
        Milestone,
        on_delete=models.PROTECT,
        related_name="allocations",
    )
    donation = models.ForeignKey(
        Donation,
        on_delete=models.PROTECT,
        related_name="allocations",
    )
    campaign = models.ForeignKey(
        Campaign,
        on_delete=models.PROTECT,
        related_name="allocations",
    )
    donor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="milestone_allocations",
    )
    allocated_amount = models.DecimalField(**MONEY)
    allocation_percentage = models.DecimalField(max_digits=7, decimal_places=4)
    is_released = models.BooleanField(default=False)
    released_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["created_at", "id"]
        verbose_name = "Milestone Allocation"
        verbose_name_plural = "Milestone Allocations"
        indexes = [
            models.Index(fields=["milestone", "is_released"], name="allocation_milestone_rel_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["milestone", "donation"],
                name="allocation_unique_milestone_donation",
            ),
            models.CheckConstraint(
                condition=models.Q(allocated_amount__gt=0),
                name="allocation_amount_positive",
            ),
        ]

    def __str__(self) -> str:
        return f"Allocation({self.donation_id} -> {self.milestone_id}: {self.allocated_amount})"
