"""
Campaign-level refunds.

When a campaign is cancelled, or ends underfunded and its grace period
runs out, every donor gets one decision covering all of their completed
donations to it. The decisions then follow the same decision, expiry and
settlement path as milestone refunds.

Usage:
    from refunds.services import CampaignRefundService

    eligibility = CampaignRefundService.check_eligibility(campaign.id).data
    if eligibility.is_eligible:
        CampaignRefundService.initiate_campaign_refund(
            campaign.id, eligibility.trigger_type, admin=request.user
        )
"""

from __future__ import annotations

import uuid
from collections import OrderedDict
from datetime import datetime, timedelta
from decimal import Decimal
from typing import TYPE_CHECKING

from django.db.models import Count, Sum
from django.utils import timezone

from audit.models import AuditEventType
from audit.services import AuditService
from campaigns.models import Campaign, CampaignStatus, Donation, DonationStatus
from core.effects import run_after_commit
from core.services import BaseService, ServiceResult
from notifications.models import NotificationKind
from notifications.services import NotificationService
from refunds import messages
from refunds.config import RefundPolicy, get_policy
from refunds.models import DonorRefundDecision, RefundRequest
from refunds.services.types import (
    CampaignBatchResult,
    CampaignRefundEligibility,
    RefundInitiationResult,
)
from refunds.state_machines import TriggerType

if TYPE_CHECKING:
    from authentication.models import User


CAMPAIGN_TRIGGERS = (TriggerType.CAMPAIGN_EXPIRATION, TriggerType.CAMPAIGN_CANCELLATION)

SYSTEM_REASONS = {
    TriggerType.CAMPAIGN_EXPIRATION: "Campaign ended without reaching its funding goal",
    TriggerType.CAMPAIGN_CANCELLATION: "Campaign was cancelled",
}


def _completed_donations(campaign_id: uuid.UUID):
    return Donation.objects.filter(campaign_id=campaign_id, status=DonationStatus.COMPLETED)


class CampaignRefundService(BaseService):
    """Refunds for expired and cancelled campaigns."""

    @classmethod
    def check_eligibility(
        cls,
        campaign_id: uuid.UUID,
        policy: RefundPolicy | None = None,
        now: datetime | None = None,
    ) -> ServiceResult[CampaignRefundEligibility]:
        """
        Decide whether a campaign qualifies for a campaign-level refund.

        Returns:
            ServiceResult with CampaignRefundEligibility, or failure with
            NOT_FOUND
        """
        policy = get_policy(policy)
        now = now or timezone.now()

        campaign = Campaign.objects.filter(pk=campaign_id).first()
        if campaign is None:
            return ServiceResult.failure("Campaign not found", error_code="NOT_FOUND")

        if campaign.expiration_refund_initiated:
            return ServiceResult.success(
                CampaignRefundEligibility(is_eligible=False, reason="Refund already initiated")
            )

        totals = _completed_donations(campaign.id).aggregate(
            amount=Sum("amount"),
            donors=Count("user", distinct=True),
        )
        amount = totals["amount"] or Decimal("0")
        donors = totals["donors"] or 0
        grace = timedelta(days=policy.campaign_grace_days)

        def _eligible(trigger_type: str, grace_period_ends: datetime) -> ServiceResult:
            return ServiceResult.success(
                CampaignRefundEligibility(
                    is_eligible=True,
                    trigger_type=trigger_type,
                    grace_period_ends=grace_period_ends,
                    refundable_amount=amount,
                    affected_donors=donors,
                )
            )

        def _not_eligible(reason: str) -> ServiceResult:
            return ServiceResult.success(
                CampaignRefundEligibility(
                    is_eligible=False,
                    refundable_amount=amount,
                    affected_donors=donors,
                    reason=reason,
                )
            )

        if not donors:
            return _not_eligible("No completed donations")

        if campaign.status == CampaignStatus.CANCELLED:
            return _eligible(TriggerType.CAMPAIGN_CANCELLATION, now + grace)

        if campaign.status in (CampaignStatus.ACTIVE, CampaignStatus.PAUSED):
            if campaign.end_date is None or campaign.end_date + grace > now:
                return _not_eligible("Campaign has not passed its grace period")
            if campaign.is_funded:
                return _not_eligible("Campaign reached its funding goal")
            return _eligible(TriggerType.CAMPAIGN_EXPIRATION, campaign.end_date + grace)

        return _not_eligible(f"Campaign status {campaign.status} is not refundable")

    @classmethod
    def initiate_campaign_refund(
        cls,
        campaign_id: uuid.UUID,
        trigger_type: str,
        admin: User | None = None,
        reason: str | None = None,
        policy: RefundPolicy | None = None,
    ) -> ServiceResult[RefundInitiationResult]:
        """
        Open a campaign-level refund request.

        One decision per donor, covering the sum of their completed
        donations. The decision points at the donor's latest donation.

        Returns:
            ServiceResult with RefundInitiationResult, or failure with
            NOT_FOUND, INVALID_TRIGGER_TYPE, ALREADY_INITIATED or NO_DONATIONS
        """
        logger = cls.get_logger()
        policy = get_policy(policy)

        campaign = Campaign.objects.select_related("charity").filter(pk=campaign_id).first()
        if campaign is None:
            return ServiceResult.failure("Campaign not found", error_code="NOT_FOUND")
        if trigger_type not in CAMPAIGN_TRIGGERS:
            return ServiceResult.failure(
                f"Unsupported trigger type for a campaign refund: {trigger_type}",
                error_code="INVALID_TRIGGER_TYPE",
            )
        if campaign.expiration_refund_initiated:
            return ServiceResult.failure(
                "Refund already initiated for this campaign",
                error_code="ALREADY_INITIATED",
            )

        per_donor: OrderedDict = OrderedDict()
        donations = _completed_donations(campaign.id).select_related("user").order_by(
            "-donated_at", "-created_at"
        )
        for donation in donations:
            entry = per_donor.setdefault(
                donation.user_id,
                {"donor": donation.user, "latest": donation, "amount": Decimal("0"), "count": 0},
            )
            entry["amount"] += donation.amount
            entry["count"] += 1
        if not per_donor:
            return ServiceResult.failure(
                "Campaign has no completed donations",
                error_code="NO_DONATIONS",
            )

        now = timezone.now()
        if trigger_type == TriggerType.CAMPAIGN_EXPIRATION and campaign.end_date:
            grace_period_ends = campaign.end_date + timedelta(days=policy.campaign_grace_days)
        else:
            grace_period_ends = now + timedelta(days=policy.campaign_grace_days)
        deadline = now + timedelta(days=policy.decision_window_days)
        total_amount = sum((entry["amount"] for entry in per_donor.values()), Decimal("0"))
        reason = reason or SYSTEM_REASONS[trigger_type]

        with cls.atomic():
            claimed = Campaign.objects.filter(
                pk=campaign.id,
                expiration_refund_initiated=False,
            ).update(
                expiration_refund_initiated=True,
                grace_period_ends_at=grace_period_ends,
                updated_at=now,
            )
            if not claimed:
                return ServiceResult.failure(
                    "Refund already initiated for this campaign",
                    error_code="ALREADY_INITIATED",
                )

            refund_request = RefundRequest.objects.create(
                milestone=None,
                campaign=campaign,
                charity=campaign.charity,
                trigger_type=trigger_type,
                auto_initiated=True,
                total_amount=total_amount,
                total_donors_count=len(per_donor),
                decision_deadline=deadline,
                grace_period_ends_at=grace_period_ends,
                rejection_reason=reason,
                created_by=admin,
            )
            DonorRefundDecision.objects.bulk_create(
                [
                    DonorRefundDecision(
                        refund_request=refund_request,
                        donor_id=donor_id,
                        donation=entry["latest"],
                        refund_amount=entry["amount"],
                        metadata={
                            "trigger_type": str(trigger_type),
                            "donation_count": entry["count"],
                        },
                    )
                    for donor_id, entry in per_donor.items()
                ]
            )

            for entry in per_donor.values():
                title, message = messages.campaign_refund(
                    campaign.title, trigger_type, entry["amount"], policy.decision_window_days
                )
                run_after_commit(
                    "notify_campaign_refund",
                    NotificationService.notify,
                    recipient=entry["donor"],
                    notification_type=NotificationKind.SYSTEM_ANNOUNCEMENT,
                    title=title,
                    message=message,
                    metadata={
                        "refund_request_id": str(refund_request.id),
                        "amount": str(entry["amount"]),
                        "deadline": deadline.isoformat(),
                        "trigger_type": str(trigger_type),
                    },
                )
            run_after_commit(
                "audit_campaign_refund_initiated",
                AuditService.log_event,
                actor=admin,
                event_type=AuditEventType.CAMPAIGN_REFUND_INITIATED,
                entity_type="campaign",
                entity_id=campaign.id,
                payload={
                    "refund_request_id": str(refund_request.id),
                    "trigger_type": str(trigger_type),
                    "total_amount": str(total_amount),
                    "affected_donors": len(per_donor),
                },
            )

        logger.info(
            "Campaign refund request created",
            extra={
                "refund_request_id": str(refund_request.id),
                "campaign_id": str(campaign.id),
                "trigger_type": str(trigger_type),
                "total_amount": str(total_amount),
                "affected_donors": len(per_donor),
            },
        )
        return ServiceResult.success(
            RefundInitiationResult(
                refund_request_id=refund_request.id,
                total_amount=total_amount,
                affected_donors=len(per_donor),
            )
        )

    @classmethod
    def process_expired_campaigns(
        cls,
        limit: int | None = None,
        policy: RefundPolicy | None = None,
        now: datetime | None = None,
    ) -> CampaignBatchResult:
        """
        Initiate refunds for every eligible expired or cancelled campaign.

        Expired campaigns go first (oldest end_date first), then cancelled
        ones (most recently updated first). A failing campaign is logged
        and skipped.
        """
        logger = cls.get_logger()
        policy = get_policy(policy)
        now = now or timezone.now()
        limit = limit or policy.campaign_batch_limit
        result = CampaignBatchResult()

        expired = list(
            Campaign.objects.filter(
                status__in=[CampaignStatus.ACTIVE, CampaignStatus.PAUSED],
                expiration_refund_initiated=False,
                end_date__lte=now - timedelta(days=policy.campaign_grace_days),
            )
            .order_by("end_date")
            .values_list("id", flat=True)[:limit]
        )
        cancelled = list(
            Campaign.objects.filter(
                status=CampaignStatus.CANCELLED,
                expiration_refund_initiated=False,
            )
            .order_by("-updated_at")
            .values_list("id", flat=True)[:limit]
        )

        for campaign_id in [*expired, *cancelled]:
            if len(result.initiated) >= limit:
                break
            try:
                eligibility = cls.check_eligibility(campaign_id, policy=policy, now=now)
                if not eligibility.success or not eligibility.data.is_eligible:
                    continue
                initiated = cls.initiate_campaign_refund(
                    campaign_id,
                    eligibility.data.trigger_type,
                    policy=policy,
                )
                if initiated.success:
                    result.initiated.append(str(campaign_id))
                else:
                    result.failed.append(
                        {"campaign_id": str(campaign_id), "error": initiated.error}
                    )
            except Exception as e:
                logger.exception(
                    "Campaign refund initiation failed",
                    extra={"campaign_id": str(campaign_id)},
                )
                result.failed.append({"campaign_id": str(campaign_id), "error": str(e)})

        if result.initiated or result.failed:
            logger.info(
                "Expired campaign sweep finished",
                extra={"initiated": len(result.initiated), "failed": len(result.failed)},
            )
        return result
