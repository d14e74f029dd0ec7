"""
Admin reporting over refund requests and decisions.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from django.core.paginator import Paginator
from django.db.models import Count, Sum

from core.services import BaseService, ServiceResult
from refunds.models import DonorRefundDecision, RefundRequest
from refunds.state_machines import DecisionType, RefundRequestStatus

if TYPE_CHECKING:
    from typing import Any

    from django.core.paginator import Page

    from authentication.models import User


def _forbidden(admin) -> ServiceResult | None:
    if admin is None or not getattr(admin, "is_staff", False):
        return ServiceResult.failure("Admin access required", error_code="FORBIDDEN")
    return None


def _as_date(value) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value))


class RefundReportingService(BaseService):
    """Read-only queries for the admin refund dashboard."""

    @classmethod
    def get_refund_requests(
        cls,
        admin: User,
        filters: dict[str, Any] | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> ServiceResult[Page]:
        """
        Refund requests, newest first.

        Filters: status, charity_id, campaign_id, date_from, date_to
        (inclusive, on created_at).
        """
        denied = _forbidden(admin)
        if denied:
            return denied

        filters = filters or {}
        queryset = RefundRequest.objects.select_related(
            "campaign", "charity", "milestone", "created_by"
        )
        if filters.get("status"):
            queryset = queryset.filter(status=filters["status"])
        if filters.get("charity_id"):
            queryset = queryset.filter(charity_id=filters["charity_id"])
        if filters.get("campaign_id"):
            queryset = queryset.filter(campaign_id=filters["campaign_id"])

        date_from = _as_date(filters.get("date_from"))
        date_to = _as_date(filters.get("date_to"))
        if date_from:
            queryset = queryset.filter(created_at__date__gte=date_from)
        if date_to:
            queryset = queryset.filter(created_at__date__lte=date_to)

        queryset = queryset.order_by("-created_at", "id")
        return ServiceResult.success(Paginator(queryset, page_size).get_page(page))

    @classmethod
    def get_refund_stats(cls, admin: User) -> ServiceResult[dict[str, Any]]:
        """Dashboard counters over all refund requests."""
        denied = _forbidden(admin)
        if denied:
            return denied

        pending = RefundRequest.objects.filter(status=RefundRequestStatus.PENDING_DONOR_DECISION)
        pending_totals = pending.aggregate(
            amount=Sum("total_amount"),
            donors=Sum("total_donors_count"),
        )

        status_counts = {status: 0 for status in RefundRequestStatus.values}
        for row in RefundRequest.objects.values("status").annotate(count=Count("id")):
            status_counts[row["status"]] = row["count"]

        decided = DonorRefundDecision.objects.filter(
            decision_type__isnull=False,
            decided_at__isnull=False,
        )
        response_days = [
            (decided_at - created_at).total_seconds() / 86400
            for created_at, decided_at in decided.values_list("created_at", "decided_at")
        ]
        average_response = (
            round(sum(response_days) / len(response_days), 1) if response_days else 0.0
        )

        distribution = {decision_type: 0 for decision_type in DecisionType.values}
        for row in decided.values("decision_type").annotate(count=Count("id")):
            distribution[row["decision_type"]] = row["count"]

        return ServiceResult.success(
            {
                "total_requests": sum(status_counts.values()),
                "pending_requests": status_counts[RefundRequestStatus.PENDING_DONOR_DECISION],
                "total_pending_amount": pending_totals["amount"] or Decimal("0"),
                "total_donors_affected": pending_totals["donors"] or 0,
                "average_response_time_days": average_response,
                "decision_type_distribution": distribution,
                "status_counts": status_counts,
            }
        )
