"""
Tests for RefundReportingService.
"""

from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone
from freezegun import freeze_time

from campaigns.tests.factories import CampaignFactory, MilestoneFactory
from refunds.services import RefundReportingService
from refunds.state_machines import DecisionType, RefundRequestStatus
from refunds.tests.factories import DonorRefundDecisionFactory, RefundRequestFactory


@pytest.mark.django_db
class TestGetRefundRequests:
    """Tests for RefundReportingService.get_refund_requests()."""

    def test_requires_staff(self, donor):
        result = RefundReportingService.get_refund_requests(donor)

        assert result.error_code == "FORBIDDEN"

    def test_newest_first(self, admin_user):
        with freeze_time("2026-01-01"):
            older = RefundRequestFactory()
        with freeze_time("2026-02-01"):
            newer = RefundRequestFactory()

        page = RefundReportingService.get_refund_requests(admin_user).data

        assert [r.id for r in page.object_list] == [newer.id, older.id]

    def test_filters_by_status(self, admin_user):
        open_request = RefundRequestFactory()
        cancelled = RefundRequestFactory()
        cancelled.cancel()
        cancelled.save()

        page = RefundReportingService.get_refund_requests(
            admin_user, {"status": RefundRequestStatus.PENDING_DONOR_DECISION}
        ).data

        assert [r.id for r in page.object_list] == [open_request.id]

    def test_filters_by_campaign_and_charity(self, admin_user):
        campaign = CampaignFactory()
        mine = RefundRequestFactory(milestone=MilestoneFactory(campaign=campaign, refund_initiated=True))
        RefundRequestFactory()

        by_campaign = RefundReportingService.get_refund_requests(
            admin_user, {"campaign_id": campaign.id}
        ).data
        by_charity = RefundReportingService.get_refund_requests(
            admin_user, {"charity_id": campaign.charity_id}
        ).data

        assert [r.id for r in by_campaign.object_list] == [mine.id]
        assert [r.id for r in by_charity.object_list] == [mine.id]

    def test_date_range_is_inclusive(self, admin_user):
        with freeze_time("2026-03-01 10:00:00"):
            first = RefundRequestFactory()
        with freeze_time("2026-03-05 23:00:00"):
            last = RefundRequestFactory()
        with freeze_time("2026-03-09 10:00:00"):
            RefundRequestFactory()

        page = RefundReportingService.get_refund_requests(
            admin_user, {"date_from": "2026-03-01", "date_to": "2026-03-05"}
        ).data

        assert {r.id for r in page.object_list} == {first.id, last.id}

    def test_paginates(self, admin_user):
        for _ in range(3):
            RefundRequestFactory()

        page = RefundReportingService.get_refund_requests(admin_user, page=2, page_size=2).data

        assert page.paginator.count == 3
        assert len(page.object_list) == 1


@pytest.mark.django_db
class TestGetRefundStats:
    """Tests for RefundReportingService.get_refund_stats()."""

    def test_requires_staff(self, donor):
        assert RefundReportingService.get_refund_stats(donor).error_code == "FORBIDDEN"

    def test_empty(self, admin_user):
        stats = RefundReportingService.get_refund_stats(admin_user).data

        assert stats["total_requests"] == 0
        assert stats["total_pending_amount"] == Decimal("0")
        assert stats["average_response_time_days"] == 0.0
        assert stats["decision_type_distribution"] == {
            DecisionType.REFUND: 0,
            DecisionType.REDIRECT_CAMPAIGN: 0,
            DecisionType.DONATE_PLATFORM: 0,
        }
        assert set(stats["status_counts"]) == set(RefundRequestStatus.values)

    def test_counts_and_amounts(self, admin_user):
        RefundRequestFactory(total_amount=Decimal("600.00"), total_donors_count=3)
        RefundRequestFactory(total_amount=Decimal("400.00"), total_donors_count=2)
        done = RefundRequestFactory(total_amount=Decimal("50.00"))
        done.mark_completed()
        done.save()

        stats = RefundReportingService.get_refund_stats(admin_user).data

        assert stats["total_requests"] == 3
        assert stats["pending_requests"] == 2
        assert stats["total_pending_amount"] == Decimal("1000.00")
        assert stats["total_donors_affected"] == 5
        assert stats["status_counts"][RefundRequestStatus.COMPLETED] == 1

    def test_response_time_and_distribution(self, admin_user):
        start = timezone.now()
        with freeze_time(start):
            fast = DonorRefundDecisionFactory()
            slow = DonorRefundDecisionFactory()
            DonorRefundDecisionFactory()
        with freeze_time(start + timedelta(days=1)):
            fast.decide(DecisionType.REFUND)
            fast.save()
        with freeze_time(start + timedelta(days=4)):
            slow.decide(DecisionType.DONATE_PLATFORM)
            slow.save()

        stats = RefundReportingService.get_refund_stats(admin_user).data

        assert stats["average_response_time_days"] == 2.5
        assert stats["decision_type_distribution"][DecisionType.REFUND] == 1
        assert stats["decision_type_distribution"][DecisionType.DONATE_PLATFORM] == 1
        assert stats["decision_type_distribution"][DecisionType.REDIRECT_CAMPAIGN] == 0
