"""
Refund request service.

Creates the refund aggregate when an admin rejects a milestone, and lets
an admin withdraw it again before any donor has acted.

Usage:
    from refunds.services import RefundRequestService

    result = RefundRequestService.initiate_refund(
        milestone_id=milestone.id,
        proof_id=proof.id,
        rejection_reason="Receipts do not match the milestone",
        admin=request.user,
    )
    if result.success:
        print(result.data.refund_request_id, result.data.affected_donors)
"""

from __future__ import annotations

import uuid
from collections import OrderedDict
from datetime import timedelta
from decimal import Decimal
from typing import TYPE_CHECKING

from django.db import IntegrityError
from django.db.models import F
from django.utils import timezone

from audit.models import AuditEventType
from audit.services import AuditService
from campaigns.models import Campaign, Milestone, MilestoneStatus
from campaigns.services import AllocationService
from core.effects import run_after_commit
from core.services import BaseService, ServiceResult
from notifications.models import NotificationKind
from notifications.services import NotificationService
from refunds import messages
from refunds.config import RefundPolicy, get_policy
from refunds.models import DonorRefundDecision, RefundRequest
from refunds.services.types import RefundInitiationResult
from refunds.state_machines import DecisionStatus, RefundRequestStatus, TriggerType

if TYPE_CHECKING:
    from authentication.models import User

ONE_REQUEST_PER_MILESTONE = "refund_request_one_per_milestone"


def _lost_initiation_race(exc: IntegrityError, milestone_id) -> bool:
    """True when the error comes from another request already holding the milestone."""
    if ONE_REQUEST_PER_MILESTONE in str(exc):
        return True
    # sqlite names the column, not the constraint
    return RefundRequest.objects.filter(milestone_id=milestone_id).exists()


class RefundRequestService(BaseService):
    """Creates and cancels milestone refund requests."""

    @classmethod
    def initiate_refund(
        cls,
        milestone_id: uuid.UUID,
        proof_id: uuid.UUID | None,
        rejection_reason: str,
        admin: User | None,
        policy: RefundPolicy | None = None,
    ) -> ServiceResult[RefundInitiationResult]:
        """
        Open a refund request for a rejected milestone.

        Every unreleased allocation of the milestone becomes one pending
        decision for its donor. Donors are notified once each, after the
        transaction commits.

        Returns:
            ServiceResult with RefundInitiationResult, or failure with
            NOT_FOUND, ALREADY_INITIATED, NO_ALLOCATIONS or CREATION_FAILED
        """
        logger = cls.get_logger()
        policy = get_policy(policy)

        milestone = (
            Milestone.objects.select_related("campaign", "campaign__charity")
            .filter(pk=milestone_id)
            .first()
        )
        if milestone is None:
            return ServiceResult.failure("Milestone not found", error_code="NOT_FOUND")
        if milestone.refund_initiated:
            return ServiceResult.failure(
                "Refund already initiated for this milestone",
                error_code="ALREADY_INITIATED",
            )

        allocations = list(AllocationService.get_allocations_for_milestone(milestone.id))
        if not allocations:
            return ServiceResult.failure(
                "No unreleased allocations for this milestone",
                error_code="NO_ALLOCATIONS",
            )

        total_amount = sum((a.allocated_amount for a in allocations), Decimal("0"))
        per_donor: OrderedDict = OrderedDict()
        for allocation in allocations:
            donor_total = per_donor.get(allocation.donor_id, (allocation.donor, Decimal("0")))
            per_donor[allocation.donor_id] = (
                allocation.donor,
                donor_total[1] + allocation.allocated_amount,
            )

        now = timezone.now()
        deadline = now + timedelta(days=policy.decision_window_days)
        campaign = milestone.campaign

        try:
            with cls.atomic():
                claimed = Milestone.objects.filter(
                    pk=milestone.id,
                    refund_initiated=False,
                ).update(
                    refund_initiated=True,
                    refund_initiated_at=now,
                    status=MilestoneStatus.REJECTED,
                )
                if not claimed:
                    return ServiceResult.failure(
                        "Refund already initiated for this milestone",
                        error_code="ALREADY_INITIATED",
                    )
                Campaign.objects.filter(pk=campaign.id).update(
                    milestone_refund_count=F("milestone_refund_count") + 1,
                    updated_at=now,
                )

                refund_request = RefundRequest.objects.create(
                    milestone=milestone,
                    campaign=campaign,
                    charity=campaign.charity,
                    milestone_proof_id=proof_id,
                    trigger_type=TriggerType.MILESTONE_REJECTION,
                    total_amount=total_amount,
                    total_donors_count=len(per_donor),
                    decision_deadline=deadline,
                    rejection_reason=rejection_reason or "",
                    created_by=admin,
                )
                DonorRefundDecision.objects.bulk_create(
                    [
                        DonorRefundDecision(
                            refund_request=refund_request,
                            donor_id=allocation.donor_id,
                            donation_id=allocation.donation_id,
                            milestone=milestone,
                            refund_amount=allocation.allocated_amount,
                            metadata={
                                "allocation_id": str(allocation.id),
                                "allocation_percentage": str(allocation.allocation_percentage),
                            },
                        )
                        for allocation in allocations
                    ]
                )

                for donor, amount in per_donor.values():
                    title, message = messages.milestone_rejected(
                        campaign.title, amount, policy.decision_window_days
                    )
                    run_after_commit(
                        "notify_milestone_rejected",
                        NotificationService.notify,
                        recipient=donor,
                        notification_type=NotificationKind.SYSTEM_ANNOUNCEMENT,
                        title=title,
                        message=message,
                        metadata={
                            "refund_request_id": str(refund_request.id),
                            "amount": str(amount),
                            "deadline": deadline.isoformat(),
                        },
                    )
                run_after_commit(
                    "audit_refund_initiated",
                    AuditService.log_event,
                    actor=admin,
                    event_type=AuditEventType.REFUND_INITIATED,
                    entity_type="milestone",
                    entity_id=milestone.id,
                    payload={
                        "refund_request_id": str(refund_request.id),
                        "proof_id": str(proof_id) if proof_id else None,
                        "total_amount": str(total_amount),
                        "affected_donors": len(per_donor),
                        "rejection_reason": rejection_reason,
                    },
                )
        except IntegrityError as exc:
            if _lost_initiation_race(exc, milestone.id):
                logger.warning(
                    "Concurrent refund initiation lost the race",
                    extra={"milestone_id": str(milestone.id)},
                )
                return ServiceResult.failure(
                    "Refund already initiated for this milestone",
                    error_code="ALREADY_INITIATED",
                )
            logger.exception(
                "Refund request creation failed",
                extra={"milestone_id": str(milestone.id)},
            )
            return ServiceResult.from_exception(exc, error_code="CREATION_FAILED")

        logger.info(
            "Refund request created",
            extra={
                "refund_request_id": str(refund_request.id),
                "milestone_id": str(milestone.id),
                "total_amount": str(total_amount),
                "affected_donors": len(per_donor),
                "decisions": len(allocations),
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
    def cancel_refund_request(
        cls,
        refund_request_id: uuid.UUID,
        admin: User | None,
        notes: str = "",
    ) -> ServiceResult[RefundRequest]:
        """
        Withdraw a refund request nobody has acted on yet.

        Returns:
            ServiceResult with the cancelled request, or failure with
            NOT_FOUND or INVALID_STATUS
        """
        with cls.atomic():
            refund_request = (
                RefundRequest.objects.select_for_update().filter(pk=refund_request_id).first()
            )
            if refund_request is None:
                return ServiceResult.failure("Refund request not found", error_code="NOT_FOUND")

            acted_on = refund_request.decisions.exclude(status=DecisionStatus.PENDING).exists()
            if refund_request.status != RefundRequestStatus.PENDING_DONOR_DECISION or acted_on:
                return ServiceResult.failure(
                    "Only untouched refund requests can be cancelled",
                    error_code="INVALID_STATUS",
                )

            refund_request.cancel()
            if notes:
                stamp = timezone.now().strftime("%Y-%m-%d %H:%M")
                entry = f"[{stamp}] Cancelled: {notes}"
                refund_request.admin_notes = (
                    f"{refund_request.admin_notes}\n{entry}" if refund_request.admin_notes else entry
                )
            refund_request.save()

            run_after_commit(
                "audit_refund_cancelled",
                AuditService.log_event,
                actor=admin,
                event_type=AuditEventType.REFUND_CANCELLED,
                entity_type="milestone_refund_request",
                entity_id=refund_request.id,
                payload={"notes": notes},
            )

        cls.get_logger().info(
            "Refund request cancelled",
            extra={"refund_request_id": str(refund_request.id)},
        )
        return ServiceResult.success(refund_request)
