"""
Expiry sweep for decisions donors never made.

Run hourly by refunds.tasks.auto_process_expired_decisions. Each pending
decision whose deadline has passed is resolved as a refund (or a platform
donation when below the minimum) and settled straight away. Decisions a
previous sweep resolved but never settled are picked up again.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from django.utils import timezone

from core.services import BaseService
from refunds.config import RefundPolicy, get_policy
from refunds.models import DonorRefundDecision
from refunds.services.decision_service import apply_minimum_amount_rule
from refunds.services.settlement_service import NOT_READY, SettlementService
from refunds.services.types import AutoProcessResult
from refunds.state_machines import DecisionStatus, DecisionType, RefundRequestStatus

if TYPE_CHECKING:
    from collections.abc import Callable

    from django.db.models import QuerySet


class ExpiryService(BaseService):
    """Resolves and settles expired pending decisions."""

    @classmethod
    def _expired(cls, status: str, now: datetime) -> QuerySet[DonorRefundDecision]:
        return (
            DonorRefundDecision.objects.filter(
                status=status,
                refund_request__decision_deadline__lt=now,
            )
            .exclude(refund_request__status=RefundRequestStatus.CANCELLED)
            .order_by("created_at", "id")
        )

    @classmethod
    def auto_process_expired(
        cls,
        policy: RefundPolicy | None = None,
        now: datetime | None = None,
        sleep: Callable[[float], None] | None = None,
    ) -> AutoProcessResult:
        """
        Resolve up to ``policy.sweep_batch_size`` expired decisions.

        Only pending decisions are resolved, so a re-run after a crash
        never resolves a decision twice. Auto-refunded decisions left
        unsettled by a crashed run are settled alongside; the settlement
        claim keeps that safe. Rows locked by a concurrent sweep are
        skipped.
        """
        logger = cls.get_logger()
        policy = get_policy(policy)
        now = now or timezone.now()

        with cls.atomic():
            expired = list(
                cls._expired(DecisionStatus.PENDING, now)
                .select_for_update(skip_locked=True, of=("self",))[: policy.sweep_batch_size]
            )
            for decision in expired:
                decision_type = apply_minimum_amount_rule(decision, DecisionType.REFUND, policy)
                decision.auto_resolve(decision_type)
                decision.save()

        stranded = list(
            cls._expired(DecisionStatus.AUTO_REFUNDED, now)
            .exclude(pk__in=[d.pk for d in expired])[: policy.sweep_batch_size]
        )
        if stranded:
            logger.warning(
                "Settling auto-refunded decisions left by an earlier sweep",
                extra={"count": len(stranded)},
            )

        result = AutoProcessResult()
        for decision in [*expired, *stranded]:
            outcome = SettlementService.process_decision(decision.id, policy=policy, sleep=sleep)
            if outcome.error == NOT_READY:
                continue
            result.processed_count += 1
            result.total_amount += decision.refund_amount
            result.decisions.append(
                {
                    "decision_id": str(decision.id),
                    "donor_id": str(decision.donor_id),
                    "amount": str(decision.refund_amount),
                    "decision_type": decision.decision_type,
                    "success": outcome.success,
                }
            )

        if result.processed_count:
            logger.info(
                "Expired decisions auto-processed",
                extra={
                    "processed_count": result.processed_count,
                    "total_amount": str(result.total_amount),
                    "failures": sum(1 for d in result.decisions if not d["success"]),
                },
            )
        return result
