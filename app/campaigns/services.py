"""
Campaign services.

- AllocationService: The allocation ledger. Splits completed donations
  across a campaign's open milestones and answers refund-side queries.
- CampaignService: Atomic counter updates on campaigns.

Usage:
    from campaigns.services import AllocationService, CampaignService

    result = AllocationService.allocate(
        donation_id=donation.id,
        campaign_id=campaign.id,
        amount=donation.amount,
        donor_id=donor.id,
    )

    CampaignService.increment_raised_amount(campaign.id, Decimal("600.00"))
"""

from __future__ import annotations

import uuid
from decimal import Decimal
from typing import TYPE_CHECKING

from django.db.models import F, Sum
from django.utils import timezone

from campaigns.allocation import apportion, from_cents, to_cents
from campaigns.models import (
    Campaign,
    Donation,
    Milestone,
    MilestoneAllocation,
    MilestoneStatus,
)
from core.exceptions import NotFoundError
from core.services import BaseService, ServiceResult

if TYPE_CHECKING:
    from django.db.models import QuerySet


def _as_uuid(value) -> uuid.UUID:
    return value if isinstance(value, uuid.UUID) else uuid.UUID(str(value))


class AllocationService(BaseService):
    """
    Allocation ledger.

    Allocation is idempotent per donation: once a donation has any
    allocation rows, allocate() returns them unchanged.
    """

    @classmethod
    def allocate(
        cls,
        donation_id: uuid.UUID,
        campaign_id: uuid.UUID,
        amount: Decimal,
        donor_id,
    ) -> ServiceResult[list[MilestoneAllocation]]:
        """
        Distribute a donation across the campaign's open milestones.

        Open milestones are neither verified nor rejected and have not had
        their funds released. Shares follow campaigns.allocation.apportion
        over each milestone's unfunded target.

        Returns:
            ServiceResult with the donation's allocation rows, or failure with
            DONATION_NOT_FOUND, CAMPAIGN_MISMATCH, DONOR_MISMATCH or INVALID_AMOUNT
        """
        logger = cls.get_logger()
        amount = Decimal(amount)

        with cls.atomic():
            donation = (
                Donation.objects.select_for_update()
                .filter(pk=donation_id)
                .first()
            )
            if donation is None:
                return ServiceResult.failure(
                    "Donation not found",
                    error_code="DONATION_NOT_FOUND",
                )
            if donation.campaign_id != _as_uuid(campaign_id):
                return ServiceResult.failure(
                    "Donation belongs to a different campaign",
                    error_code="CAMPAIGN_MISMATCH",
                )
            if str(donation.user_id) != str(donor_id):
                return ServiceResult.failure(
                    "Donation belongs to a different donor",
                    error_code="DONOR_MISMATCH",
                )
            if amount <= 0 or amount != donation.amount:
                return ServiceResult.failure(
                    "Allocation amount must equal the donation amount",
                    error_code="INVALID_AMOUNT",
                )

            existing = list(
                MilestoneAllocation.objects.filter(donation=donation).order_by(
                    "created_at", "id"
                )
            )
            if existing:
                logger.info(
                    "Donation already allocated",
                    extra={"donation_id": str(donation.id)},
                )
                return ServiceResult.success(existing)

            # Locked so concurrent donations read each other's allocations
            milestones = list(
                Milestone.objects.select_for_update()
                .filter(campaign_id=donation.campaign_id, funds_released=False)
                .exclude(status__in=[MilestoneStatus.VERIFIED, MilestoneStatus.REJECTED])
                .order_by("created_at", "id")
            )
            allocated = dict(
                MilestoneAllocation.objects.filter(milestone__in=milestones)
                .values("milestone")
                .annotate(total=Sum("allocated_amount"))
                .values_list("milestone", "total")
            )
            unfunded = [
                to_cents(m.target_amount - allocated.get(m.id, Decimal("0")))
                for m in milestones
            ]
            shares = apportion(to_cents(amount), unfunded)

            rows = [
                MilestoneAllocation(
                    milestone=milestone,
                    donation=donation,
                    campaign_id=donation.campaign_id,
                    donor_id=donation.user_id,
                    allocated_amount=from_cents(share),
                    allocation_percentage=(from_cents(share) / amount * 100).quantize(
                        Decimal("0.0001")
                    ),
                )
                for milestone, share in zip(milestones, shares)
                if share > 0
            ]
            MilestoneAllocation.objects.bulk_create(rows)

        logger.info(
            "Donation allocated to milestones",
            extra={
                "donation_id": str(donation.id),
                "campaign_id": str(donation.campaign_id),
                "milestones": len(rows),
                "allocated": str(sum((r.allocated_amount for r in rows), Decimal("0"))),
            },
        )
        return ServiceResult.success(rows)

    @classmethod
    def get_allocations_for_milestone(
        cls,
        milestone_id: uuid.UUID,
        only_unreleased: bool = True,
    ) -> QuerySet[MilestoneAllocation]:
        """Allocations for a milestone, oldest first (ties broken by id)."""
        queryset = MilestoneAllocation.objects.filter(milestone_id=milestone_id)
        if only_unreleased:
            queryset = queryset.filter(is_released=False)
        return queryset.select_related("donation", "donor").order_by("created_at", "id")

    @classmethod
    def get_refundable_amount(cls, milestone_id: uuid.UUID) -> Decimal:
        """Sum of unreleased allocations for a milestone."""
        total = (
            MilestoneAllocation.objects.filter(milestone_id=milestone_id, is_released=False)
            .aggregate(total=Sum("allocated_amount"))["total"]
        )
        return total or Decimal("0")


class CampaignService(BaseService):
    """Atomic counter updates on Campaign rows."""

    @classmethod
    def increment_raised_amount(cls, campaign_id: uuid.UUID, amount: Decimal) -> None:
        """
        Add a donation to the campaign's raised amount and donor count.

        Raises:
            NotFoundError: If the campaign does not exist
        """
        updated = Campaign.objects.filter(pk=campaign_id).update(
            current_amount=F("current_amount") + Decimal(amount),
            donors_count=F("donors_count") + 1,
            updated_at=timezone.now(),
        )
        if not updated:
            raise NotFoundError(
                f"Campaign {campaign_id} not found",
                details={"campaign_id": str(campaign_id)},
            )

    @classmethod
    def record_refund(cls, campaign_id: uuid.UUID, amount: Decimal) -> None:
        """
        Add a provider refund to the campaign's refunded total.

        Raises:
            NotFoundError: If the campaign does not exist
        """
        updated = Campaign.objects.filter(pk=campaign_id).update(
            total_refunded=F("total_refunded") + Decimal(amount),
            updated_at=timezone.now(),
        )
        if not updated:
            raise NotFoundError(
                f"Campaign {campaign_id} not found",
                details={"campaign_id": str(campaign_id)},
            )
