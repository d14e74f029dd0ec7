"""
Settlement of donor refund decisions.

Every path that moves money (donor submission, the admin batch run, the
expiry sweep) goes through process_decision(). It claims the decision
under a row lock first, so overlapping paths settle a decision at most
once.

Refund flow:
    1. Claim: DECIDED / AUTO_REFUNDED -> PROCESSING (select_for_update)
    2. Dispatch on decision_type:
       - refund: Stripe refund with retry and backoff
       - redirect_campaign: new donation on the target campaign
       - donate_platform: nothing to move
    3. PROCESSING -> COMPLETED, or FAILED with processing_error
    4. Refresh the parent refund request's status

Usage:
    from refunds.services import SettlementService

    outcome = SettlementService.process_decision(decision.id)

    # Tests
    SettlementService.set_stripe_adapter(FakeStripeAdapter)
"""

from __future__ import annotations

import uuid
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING

from django.utils import timezone

from audit.models import AuditEventType
from audit.services import AuditService
from campaigns.models import Campaign, Donation, DonationStatus, Milestone
from campaigns.services import AllocationService, CampaignService
from core.effects import run_after_commit
from core.retry import retry_with_backoff
from core.services import BaseService, ServiceResult
from notifications.models import NotificationKind
from notifications.services import NotificationService
from refunds import messages
from refunds.adapters import IdempotencyKeyGenerator, StripeAdapter
from refunds.config import RefundPolicy, get_policy
from refunds.exceptions import (
    MissingProviderReferenceError,
    SettlementError,
    is_retryable_provider_error,
)
from refunds.models import DonorRefundDecision, RefundRequest
from refunds.services.types import ProcessingResult, SettlementOutcome
from refunds.state_machines import (
    OUTSTANDING_STATUSES,
    READY_STATUSES,
    DecisionStatus,
    DecisionType,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from authentication.models import User


NOT_READY = "NOT_READY"
UNKNOWN_DECISION_TYPE = "Unknown decision type"


def _to_minor_units(amount: Decimal) -> int:
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _allocate_redirected_donation(donation: Donation) -> None:
    result = AllocationService.allocate(
        donation_id=donation.id,
        campaign_id=donation.campaign_id,
        amount=donation.amount,
        donor_id=donation.user_id,
    )
    if not result.success:
        SettlementService.get_logger().warning(
            "Redirected donation could not be allocated",
            extra={"donation_id": str(donation.id), "error_code": result.error_code},
        )


class SettlementService(BaseService):
    """
    Settles decided and auto-refunded decisions.

    Settlement never raises to its caller: a failure is recorded on the
    decision as processing_error and reported in the SettlementOutcome.
    """

    _stripe_adapter: type | None = None

    @classmethod
    def get_stripe_adapter(cls) -> type:
        """Get the Stripe adapter class."""
        return cls._stripe_adapter or StripeAdapter

    @classmethod
    def set_stripe_adapter(cls, adapter: type | None) -> None:
        """Set the Stripe adapter class (for testing)."""
        cls._stripe_adapter = adapter

    # =========================================================================
    # Single Decision
    # =========================================================================

    @classmethod
    def process_decision(
        cls,
        decision_id: uuid.UUID,
        policy: RefundPolicy | None = None,
        sleep: Callable[[float], None] | None = None,
    ) -> SettlementOutcome:
        """
        Settle one decision.

        Args:
            decision_id: Decision to settle
            policy: Retry settings (defaults to settings)
            sleep: Replacement for time.sleep between provider attempts

        Returns:
            SettlementOutcome; error is NOT_READY when the decision was not
            claimable, otherwise the recorded processing_error
        """
        logger = cls.get_logger()
        policy = get_policy(policy)

        decision = cls._claim(decision_id)
        if decision is None:
            return SettlementOutcome(success=False, error=NOT_READY)

        log_context = {
            "decision_id": str(decision.id),
            "refund_request_id": str(decision.refund_request_id),
            "decision_type": decision.decision_type,
        }
        logger.info("Settling decision", extra=log_context)

        try:
            if decision.decision_type == DecisionType.REFUND:
                cls._settle_refund(decision, policy, sleep)
            elif decision.decision_type == DecisionType.REDIRECT_CAMPAIGN:
                cls._settle_redirect(decision)
            elif decision.decision_type == DecisionType.DONATE_PLATFORM:
                cls._settle_platform_donation(decision)
            else:
                raise SettlementError(UNKNOWN_DECISION_TYPE)
            outcome = SettlementOutcome(success=True)
        except Exception as e:
            error = getattr(e, "message", None) or str(e) or type(e).__name__
            logger.warning(
                "Decision settlement failed",
                extra={**log_context, "error": error},
            )
            cls._fail_decision(decision.id, error)
            outcome = SettlementOutcome(success=False, error=error)

        cls.refresh_request_status(decision.refund_request_id)

        if outcome.success:
            logger.info("Decision settled", extra=log_context)
        return outcome

    @classmethod
    def _claim(cls, decision_id: uuid.UUID) -> DonorRefundDecision | None:
        """Lock the decision and move it to PROCESSING, or return None."""
        with cls.atomic():
            decision = (
                DonorRefundDecision.objects.select_for_update()
                .filter(pk=decision_id)
                .first()
            )
            if decision is None or decision.status not in READY_STATUSES:
                return None
            decision.start_processing()
            decision.save()

        return (
            DonorRefundDecision.objects.select_related(
                "donor", "donation", "redirect_campaign", "refund_request"
            ).get(pk=decision.pk)
        )

    @classmethod
    def _settle_refund(
        cls,
        decision: DonorRefundDecision,
        policy: RefundPolicy,
        sleep: Callable[[float], None] | None,
    ) -> None:
        donation = decision.donation
        if not donation.provider_payment_id:
            raise MissingProviderReferenceError(
                "Donation has no payment reference to refund",
                details={"donation_id": str(donation.id)},
            )

        adapter = cls.get_stripe_adapter()

        def _attempt(attempt: int):
            return adapter.create_refund(
                payment_intent_id=donation.provider_payment_id,
                idempotency_key=IdempotencyKeyGenerator.generate(
                    operation="refund_decision",
                    entity_id=decision.id,
                    attempt=attempt,
                ),
                amount_cents=_to_minor_units(decision.refund_amount),
                reason="requested_by_customer",
                metadata={
                    "decision_id": str(decision.id),
                    "refund_request_id": str(decision.refund_request_id),
                    "note": f"Milestone rejection refund - Decision ID: {decision.id}",
                },
            )

        refund = retry_with_backoff(
            _attempt,
            max_attempts=policy.provider_max_attempts,
            backoff=policy.provider_backoff(),
            is_retryable=is_retryable_provider_error,
            sleep=sleep,
            operation="create_refund",
        )

        with cls.atomic():
            locked = DonorRefundDecision.objects.select_for_update().get(pk=decision.pk)
            locked.complete(refund_transaction_id=refund.id)
            locked.save()
            CampaignService.record_refund(decision.refund_request.campaign_id, decision.refund_amount)

            title, message = messages.refund_processed(decision.refund_amount)
            run_after_commit(
                "notify_refund_processed",
                NotificationService.notify,
                recipient=decision.donor,
                notification_type=NotificationKind.DONATION_CONFIRMED,
                title=title,
                message=message,
                metadata={
                    "decision_id": str(decision.id),
                    "refund_transaction_id": refund.id,
                    "amount": str(decision.refund_amount),
                },
            )

    @classmethod
    def _settle_redirect(cls, decision: DonorRefundDecision) -> None:
        target = decision.redirect_campaign
        with cls.atomic():
            new_donation = Donation.objects.create(
                user=decision.donor,
                campaign=target,
                amount=decision.refund_amount,
                payment_method="redirected",
                transaction_id=f"REDIRECT_{decision.id}",
                status=DonationStatus.COMPLETED,
                provider="internal",
                metadata={
                    "source": "milestone_rejection_redirect",
                    "original_donation_id": str(decision.donation_id),
                    "original_campaign_id": str(decision.refund_request.campaign_id),
                    "decision_id": str(decision.id),
                },
            )
            CampaignService.increment_raised_amount(target.id, decision.refund_amount)

            locked = DonorRefundDecision.objects.select_for_update().get(pk=decision.pk)
            locked.complete(new_donation=new_donation)
            locked.save()

            run_after_commit(
                "allocate_redirected_donation",
                _allocate_redirected_donation,
                new_donation,
            )
            title, message = messages.donation_redirected(decision.refund_amount, target.title)
            run_after_commit(
                "notify_donation_redirected",
                NotificationService.notify,
                recipient=decision.donor,
                notification_type=NotificationKind.DONATION_RECEIVED,
                title=title,
                message=message,
                metadata={
                    "decision_id": str(decision.id),
                    "campaign_id": str(target.id),
                    "donation_id": str(new_donation.id),
                    "amount": str(decision.refund_amount),
                },
            )

    @classmethod
    def _settle_platform_donation(cls, decision: DonorRefundDecision) -> None:
        with cls.atomic():
            locked = DonorRefundDecision.objects.select_for_update().get(pk=decision.pk)
            locked.complete()
            locked.save()

            title, message = messages.platform_donation_received(decision.refund_amount)
            run_after_commit(
                "notify_platform_donation",
                NotificationService.notify,
                recipient=decision.donor,
                notification_type=NotificationKind.THANK_YOU_MESSAGE,
                title=title,
                message=message,
                metadata={
                    "decision_id": str(decision.id),
                    "amount": str(decision.refund_amount),
                },
            )

    @classmethod
    def _fail_decision(cls, decision_id: uuid.UUID, error: str) -> None:
        with cls.atomic():
            decision = DonorRefundDecision.objects.select_for_update().get(pk=decision_id)
            if decision.status != DecisionStatus.PROCESSING:
                return
            decision.fail(error)
            decision.save()

    # =========================================================================
    # Aggregate Status
    # =========================================================================

    @classmethod
    def refresh_request_status(cls, refund_request_id: uuid.UUID) -> str:
        """
        Re-derive a refund request's status from its decisions.

        Once no decision is outstanding, the milestone (or campaign) is
        flagged as refund-completed.

        Returns:
            The request's status after the refresh
        """
        with cls.atomic():
            refund_request = RefundRequest.objects.select_for_update().get(pk=refund_request_id)
            statuses = list(refund_request.decisions.values_list("status", flat=True))

            if refund_request.apply_status(RefundRequest.derive_status(statuses)):
                refund_request.save()
                cls.get_logger().info(
                    "Refund request status changed",
                    extra={
                        "refund_request_id": str(refund_request.id),
                        "status": refund_request.status,
                    },
                )

            if not any(s in OUTSTANDING_STATUSES for s in statuses):
                if refund_request.milestone_id:
                    Milestone.objects.filter(
                        pk=refund_request.milestone_id, refund_completed=False
                    ).update(refund_completed=True)
                else:
                    Campaign.objects.filter(
                        pk=refund_request.campaign_id, expiration_refund_completed=False
                    ).update(expiration_refund_completed=True, updated_at=timezone.now())

        return refund_request.status

    # =========================================================================
    # Batch
    # =========================================================================

    @classmethod
    def process_refund_request(
        cls,
        refund_request_id: uuid.UUID,
        admin: User | None = None,
        policy: RefundPolicy | None = None,
        sleep: Callable[[float], None] | None = None,
    ) -> ServiceResult[ProcessingResult]:
        """
        Settle every ready decision of a refund request.

        Decisions already claimed by another path are skipped.

        Returns:
            ServiceResult with ProcessingResult, or failure with NOT_FOUND
            or NO_DECISIONS
        """
        logger = cls.get_logger()
        policy = get_policy(policy)

        refund_request = RefundRequest.objects.filter(pk=refund_request_id).first()
        if refund_request is None:
            return ServiceResult.failure("Refund request not found", error_code="NOT_FOUND")

        ready = list(
            refund_request.decisions.filter(status__in=READY_STATUSES)
            .order_by("created_at", "id")
            .values_list("id", "decision_type")
        )
        if not ready:
            return ServiceResult.failure(
                "No decisions ready for processing",
                error_code="NO_DECISIONS",
            )

        result = ProcessingResult()
        type_counters = {
            DecisionType.REFUND: "refund_count",
            DecisionType.REDIRECT_CAMPAIGN: "redirect_count",
            DecisionType.DONATE_PLATFORM: "platform_count",
        }
        for decision_id, decision_type in ready:
            outcome = cls.process_decision(decision_id, policy=policy, sleep=sleep)
            if outcome.error == NOT_READY:
                continue

            result.total_processed += 1
            if outcome.success:
                result.success_count += 1
                counter = type_counters.get(decision_type)
                if counter:
                    setattr(result, counter, getattr(result, counter) + 1)
            else:
                result.failure_count += 1
                result.errors.append({"decision_id": str(decision_id), "error": outcome.error})

        result.status = RefundRequest.objects.values_list("status", flat=True).get(
            pk=refund_request.pk
        )

        if admin is not None:
            run_after_commit(
                "audit_refund_processed",
                AuditService.log_event,
                actor=admin,
                event_type=AuditEventType.REFUND_PROCESSED,
                entity_type="milestone_refund_request",
                entity_id=refund_request.id,
                payload={
                    "total_processed": result.total_processed,
                    "success_count": result.success_count,
                    "failure_count": result.failure_count,
                    "status": result.status,
                },
            )

        logger.info(
            "Refund request batch processed",
            extra={
                "refund_request_id": str(refund_request.id),
                "total_processed": result.total_processed,
                "success_count": result.success_count,
                "failure_count": result.failure_count,
            },
        )
        return ServiceResult.success(result)
