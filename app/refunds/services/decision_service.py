"""
Donor decision service.

Donors see their pending decisions and choose what happens to their
money: a refund, a redirect to another campaign, or a donation to the
platform.

Usage:
    from refunds.services import DecisionService
    from refunds.state_machines import DecisionType

    page = DecisionService.list_pending_decisions(request.user, page=1)

    result = DecisionService.submit_decision(
        decision_id=decision.id,
        donor=request.user,
        decision_type=DecisionType.REDIRECT_CAMPAIGN,
        redirect_campaign_id=target.id,
    )
"""

from __future__ import annotations

import uuid
from datetime import timedelta
from typing import TYPE_CHECKING

from django.core.paginator import Paginator
from django.utils import timezone

from campaigns.models import Campaign, CampaignStatus
from core.effects import run_after_commit
from core.services import BaseService, ServiceResult
from notifications.models import NotificationKind
from notifications.services import NotificationService
from refunds import messages
from refunds.config import RefundPolicy, get_policy
from refunds.models import DonorRefundDecision
from refunds.services.settlement_service import SettlementService
from refunds.state_machines import DecisionStatus, DecisionType, RefundRequestStatus

if TYPE_CHECKING:
    from django.core.paginator import Page
    from django.db.models import QuerySet

    from authentication.models import User


PENDING_ORDERINGS = {
    "created_at",
    "-created_at",
    "refund_amount",
    "-refund_amount",
    "refund_request__decision_deadline",
    "-refund_request__decision_deadline",
}


def apply_minimum_amount_rule(
    decision: DonorRefundDecision,
    decision_type: str,
    policy: RefundPolicy,
) -> str:
    """
    Turn a refund below the minimum into a platform donation.

    Returns the decision type to record. The conversion is annotated in
    the decision's metadata (not saved).
    """
    if decision_type != DecisionType.REFUND:
        return decision_type
    if decision.refund_amount >= policy.minimum_refund_amount:
        return decision_type

    decision.metadata = {
        **(decision.metadata or {}),
        "autoConverted": True,
        "reason": "below_minimum_refund_threshold",
        "originalDecision": DecisionType.REFUND.value,
        "minimumAmount": str(policy.minimum_refund_amount),
    }
    return DecisionType.DONATE_PLATFORM


def _lookup_uuid(value) -> uuid.UUID | None:
    try:
        return value if isinstance(value, uuid.UUID) else uuid.UUID(str(value))
    except (TypeError, ValueError):
        return None


class DecisionService(BaseService):
    """Donor-facing decision operations."""

    @classmethod
    def pending_decisions_queryset(
        cls,
        donor: User,
        ordering: str = "-created_at",
    ) -> QuerySet[DonorRefundDecision]:
        """Pending decisions of one donor; unknown orderings fall back to newest first."""
        if ordering not in PENDING_ORDERINGS:
            ordering = "-created_at"
        return (
            DonorRefundDecision.objects.filter(donor=donor, status=DecisionStatus.PENDING)
            .select_related("refund_request", "refund_request__campaign", "milestone", "donation")
            .order_by(ordering, "id")
        )

    @classmethod
    def list_pending_decisions(
        cls,
        donor: User,
        page: int = 1,
        page_size: int = 20,
        ordering: str = "-created_at",
    ) -> Page:
        """Pending decisions of one donor, one page at a time."""
        queryset = cls.pending_decisions_queryset(donor, ordering)
        return Paginator(queryset, page_size).get_page(page)

    @classmethod
    def submit_decision(
        cls,
        decision_id: uuid.UUID,
        donor: User,
        decision_type: str,
        redirect_campaign_id: uuid.UUID | None = None,
        policy: RefundPolicy | None = None,
    ) -> ServiceResult[DonorRefundDecision]:
        """
        Record a donor's decision and settle it.

        Checks run in order: ownership, status, deadline, then the
        minimum refund rule and the redirect target. A successful
        submission is returned even if settlement then fails; the
        outcome is on the decision.

        Returns:
            ServiceResult with the decision, or failure with NOT_FOUND,
            INVALID_STATUS, DEADLINE_EXPIRED, INVALID_DECISION_TYPE,
            MISSING_CAMPAIGN, INVALID_CAMPAIGN, INACTIVE_CAMPAIGN,
            CAMPAIGN_ENDING_SOON, CAMPAIGN_FUNDED or SAME_CAMPAIGN
        """
        logger = cls.get_logger()
        policy = get_policy(policy)

        decision_pk = _lookup_uuid(decision_id)
        decision = (
            DonorRefundDecision.objects.select_related("refund_request")
            .filter(pk=decision_pk, donor=donor)
            .first()
            if decision_pk
            else None
        )
        if decision is None:
            return ServiceResult.failure("Decision not found", error_code="NOT_FOUND")

        refund_request = decision.refund_request
        if (
            decision.status != DecisionStatus.PENDING
            or refund_request.status == RefundRequestStatus.CANCELLED
        ):
            return ServiceResult.failure(
                "Decision has already been made",
                error_code="INVALID_STATUS",
            )
        if refund_request.is_deadline_passed:
            return ServiceResult.failure(
                "Decision deadline has passed",
                error_code="DEADLINE_EXPIRED",
            )
        if decision_type not in DecisionType.values:
            return ServiceResult.failure(
                f"Unknown decision type: {decision_type}",
                error_code="INVALID_DECISION_TYPE",
            )

        final_type = apply_minimum_amount_rule(decision, decision_type, policy)
        if final_type != decision_type:
            logger.info(
                "Refund below minimum converted to platform donation",
                extra={
                    "decision_id": str(decision.id),
                    "amount": str(decision.refund_amount),
                    "minimum": str(policy.minimum_refund_amount),
                },
            )

        redirect_campaign = None
        if final_type == DecisionType.REDIRECT_CAMPAIGN:
            check = cls._validate_redirect_target(
                redirect_campaign_id, refund_request.campaign_id, policy
            )
            if not check.success:
                return check
            redirect_campaign = check.data

        with cls.atomic():
            locked = DonorRefundDecision.objects.select_for_update().get(pk=decision.pk)
            if locked.status != DecisionStatus.PENDING:
                return ServiceResult.failure(
                    "Decision has already been made",
                    error_code="INVALID_STATUS",
                )
            locked.metadata = decision.metadata
            locked.decide(final_type, redirect_campaign=redirect_campaign)
            locked.save()

            title, message = messages.decision_submitted(final_type, locked.refund_amount)
            run_after_commit(
                "notify_decision_submitted",
                NotificationService.notify,
                recipient=donor,
                notification_type=NotificationKind.DONATION_CONFIRMED,
                title=title,
                message=message,
                metadata={
                    "decision_id": str(locked.id),
                    "decision_type": final_type,
                    "amount": str(locked.refund_amount),
                },
            )

        logger.info(
            "Decision submitted",
            extra={
                "decision_id": str(locked.id),
                "refund_request_id": str(locked.refund_request_id),
                "decision_type": final_type,
            },
        )

        if policy.settle_on_submit:
            outcome = SettlementService.process_decision(locked.id, policy=policy)
            if not outcome.success:
                logger.warning(
                    "Settlement after submission did not succeed",
                    extra={"decision_id": str(locked.id), "error": outcome.error},
                )

        return ServiceResult.success(DonorRefundDecision.objects.get(pk=locked.pk))

    @classmethod
    def _validate_redirect_target(
        cls,
        redirect_campaign_id,
        source_campaign_id: uuid.UUID,
        policy: RefundPolicy,
    ) -> ServiceResult[Campaign]:
        if not redirect_campaign_id:
            return ServiceResult.failure(
                "A campaign is required to redirect a donation",
                error_code="MISSING_CAMPAIGN",
            )

        campaign_pk = _lookup_uuid(redirect_campaign_id)
        target = Campaign.objects.filter(pk=campaign_pk).first() if campaign_pk else None
        if target is None:
            return ServiceResult.failure(
                "Selected campaign does not exist",
                error_code="INVALID_CAMPAIGN",
            )
        if target.status != CampaignStatus.ACTIVE:
            return ServiceResult.failure(
                "Selected campaign is not active",
                error_code="INACTIVE_CAMPAIGN",
            )
        if target.end_date is not None and target.end_date - timezone.now() < timedelta(
            days=policy.redirect_min_days_remaining
        ):
            return ServiceResult.failure(
                f"Selected campaign ends in less than {policy.redirect_min_days_remaining} days",
                error_code="CAMPAIGN_ENDING_SOON",
            )
        if target.is_funded:
            return ServiceResult.failure(
                "Selected campaign is already fully funded",
                error_code="CAMPAIGN_FUNDED",
            )
        if target.id == source_campaign_id:
            return ServiceResult.failure(
                "Cannot redirect to the campaign being refunded",
                error_code="SAME_CAMPAIGN",
            )
        return ServiceResult.success(target)
