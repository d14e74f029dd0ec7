"""
Deadline reminders for donors who have not decided yet.
"""

from __future__ import annotations

import math
from collections import OrderedDict
from datetime import datetime, timedelta
from decimal import Decimal

from django.db.models import Q
from django.utils import timezone

from core.effects import run_after_commit
from core.services import BaseService
from notifications.models import NotificationKind
from notifications.services import NotificationService
from refunds import messages
from refunds.config import RefundPolicy, get_policy
from refunds.models import RefundRequest
from refunds.services.types import ReminderResult
from refunds.state_machines import DecisionStatus, RefundRequestStatus


class ReminderService(BaseService):
    """
    Sends at most two reminders per refund request.

    The first goes out once ``first_reminder_days_before`` days remain,
    the final one once ``final_reminder_days_before`` days remain. A
    request that is already inside the final window when first seen gets
    only the final reminder.
    """

    @classmethod
    def send_due_reminders(
        cls,
        policy: RefundPolicy | None = None,
        now: datetime | None = None,
    ) -> ReminderResult:
        policy = get_policy(policy)
        now = now or timezone.now()
        result = ReminderResult()

        first_cutoff = now + timedelta(days=policy.first_reminder_days_before)
        final_cutoff = now + timedelta(days=policy.final_reminder_days_before)

        due = (
            RefundRequest.objects.filter(
                status=RefundRequestStatus.PENDING_DONOR_DECISION,
                decision_deadline__gt=now,
            )
            .filter(
                Q(first_reminder_sent_at__isnull=True, decision_deadline__lte=first_cutoff)
                | Q(final_reminder_sent_at__isnull=True, decision_deadline__lte=final_cutoff)
            )
            .order_by("decision_deadline")
        )

        for refund_request in due:
            final = (
                refund_request.final_reminder_sent_at is None
                and refund_request.decision_deadline <= final_cutoff
            )
            sent = cls._remind(refund_request, final=final, now=now)
            result.notifications_sent += sent
            if final:
                result.final_reminders += 1
            else:
                result.first_reminders += 1

        if result.notifications_sent:
            cls.get_logger().info(
                "Refund reminders sent",
                extra={
                    "first_reminders": result.first_reminders,
                    "final_reminders": result.final_reminders,
                    "notifications_sent": result.notifications_sent,
                },
            )
        return result

    @classmethod
    def _remind(cls, refund_request: RefundRequest, final: bool, now: datetime) -> int:
        kind = "final" if final else "first"
        days_left = max(
            1, math.ceil((refund_request.decision_deadline - now).total_seconds() / 86400)
        )

        per_donor: OrderedDict = OrderedDict()
        pending = refund_request.decisions.filter(status=DecisionStatus.PENDING).select_related(
            "donor"
        )
        for decision in pending:
            donor, amount = per_donor.get(decision.donor_id, (decision.donor, Decimal("0")))
            per_donor[decision.donor_id] = (donor, amount + decision.refund_amount)

        with cls.atomic():
            for donor, amount in per_donor.values():
                title, message = messages.decision_reminder(amount, days_left, final=final)
                run_after_commit(
                    "notify_refund_reminder",
                    NotificationService.notify,
                    recipient=donor,
                    notification_type=NotificationKind.SYSTEM_ANNOUNCEMENT,
                    title=title,
                    message=message,
                    metadata={
                        "refund_request_id": str(refund_request.id),
                        "amount": str(amount),
                        "deadline": refund_request.decision_deadline.isoformat(),
                        "reminder": kind,
                    },
                    idempotency_key=f"refund-reminder:{kind}:{refund_request.id}:{donor.id}",
                )

            refund_request.final_reminder_sent_at = (
                now if final else refund_request.final_reminder_sent_at
            )
            if refund_request.first_reminder_sent_at is None:
                refund_request.first_reminder_sent_at = now
            refund_request.save()

        return len(per_donor)
