"""
Tests for CampaignRefundService: eligibility, initiation and the scheduled sweep.
"""

import uuid
from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from audit.models import AuditEventType, AuditLog
from campaigns.models import Campaign, CampaignStatus, DonationStatus
from campaigns.tests.factories import CampaignFactory, DonationFactory
from notifications.models import Notification
from refunds.models import DonorRefundDecision, RefundRequest
from refunds.services import CampaignRefundService
from refunds.state_machines import DecisionStatus, RefundRequestStatus, TriggerType


@pytest.fixture
def expired_campaign(db):
    """Underfunded campaign that ended ten days ago."""
    return CampaignFactory(end_date=timezone.now() - timedelta(days=10))


@pytest.fixture
def cancelled_campaign(db):
    return CampaignFactory(status=CampaignStatus.CANCELLED)


def _donate(campaign, user, amount, **kwargs):
    return DonationFactory(campaign=campaign, user=user, amount=Decimal(amount), **kwargs)


@pytest.mark.django_db
class TestCheckEligibility:
    """Tests for CampaignRefundService.check_eligibility()."""

    def test_expired_underfunded_campaign(self, expired_campaign, donor, other_donor):
        _donate(expired_campaign, donor, "100.00")
        _donate(expired_campaign, donor, "50.00")
        _donate(expired_campaign, other_donor, "25.00")

        eligibility = CampaignRefundService.check_eligibility(expired_campaign.id).data

        assert eligibility.is_eligible
        assert eligibility.trigger_type == TriggerType.CAMPAIGN_EXPIRATION
        assert eligibility.grace_period_ends == expired_campaign.end_date + timedelta(days=7)
        assert eligibility.refundable_amount == Decimal("175.00")
        assert eligibility.affected_donors == 2

    def test_cancelled_campaign(self, cancelled_campaign, donor):
        _donate(cancelled_campaign, donor, "100.00")
        now = timezone.now()

        eligibility = CampaignRefundService.check_eligibility(cancelled_campaign.id, now=now).data

        assert eligibility.is_eligible
        assert eligibility.trigger_type == TriggerType.CAMPAIGN_CANCELLATION
        assert eligibility.grace_period_ends == now + timedelta(days=7)

    def test_still_in_grace_period(self, donor):
        campaign = CampaignFactory(end_date=timezone.now() - timedelta(days=3))
        _donate(campaign, donor, "100.00")

        eligibility = CampaignRefundService.check_eligibility(campaign.id).data

        assert not eligibility.is_eligible
        assert eligibility.refundable_amount == Decimal("100.00")

    def test_funded_campaign(self, donor):
        campaign = CampaignFactory(
            end_date=timezone.now() - timedelta(days=10),
            goal_amount=Decimal("100.00"),
            current_amount=Decimal("100.00"),
        )
        _donate(campaign, donor, "100.00")

        assert not CampaignRefundService.check_eligibility(campaign.id).data.is_eligible

    def test_completed_campaign(self, donor):
        campaign = CampaignFactory(
            status=CampaignStatus.COMPLETED,
            end_date=timezone.now() - timedelta(days=30),
        )
        _donate(campaign, donor, "100.00")

        assert not CampaignRefundService.check_eligibility(campaign.id).data.is_eligible

    def test_only_completed_donations_count(self, expired_campaign, donor):
        _donate(expired_campaign, donor, "100.00", status=DonationStatus.PENDING)

        eligibility = CampaignRefundService.check_eligibility(expired_campaign.id).data

        assert not eligibility.is_eligible
        assert eligibility.affected_donors == 0

    def test_already_initiated(self, expired_campaign, donor):
        _donate(expired_campaign, donor, "100.00")
        Campaign.objects.filter(pk=expired_campaign.pk).update(expiration_refund_initiated=True)

        assert not CampaignRefundService.check_eligibility(expired_campaign.id).data.is_eligible

    def test_missing_campaign(self, db):
        assert CampaignRefundService.check_eligibility(uuid.uuid4()).error_code == "NOT_FOUND"


@pytest.mark.django_db
class TestInitiateCampaignRefund:
    """Tests for CampaignRefundService.initiate_campaign_refund()."""

    def test_one_decision_per_donor(self, cancelled_campaign, donor, other_donor, admin_user):
        _donate(cancelled_campaign, donor, "100.00", donated_at=timezone.now() - timedelta(days=2))
        latest = _donate(cancelled_campaign, donor, "50.00", donated_at=timezone.now() - timedelta(days=1))
        _donate(cancelled_campaign, other_donor, "25.00")

        result = CampaignRefundService.initiate_campaign_refund(
            cancelled_campaign.id, TriggerType.CAMPAIGN_CANCELLATION, admin=admin_user
        )

        assert result.success
        assert result.data.total_amount == Decimal("175.00")
        assert result.data.affected_donors == 2

        refund_request = RefundRequest.objects.get(id=result.data.refund_request_id)
        assert refund_request.milestone_id is None
        assert refund_request.trigger_type == TriggerType.CAMPAIGN_CANCELLATION
        assert refund_request.auto_initiated is True
        assert refund_request.rejection_reason == "Campaign was cancelled"
        assert refund_request.status == RefundRequestStatus.PENDING_DONOR_DECISION

        mine = DonorRefundDecision.objects.get(refund_request=refund_request, donor=donor)
        assert mine.refund_amount == Decimal("150.00")
        assert mine.donation_id == latest.id
        assert mine.milestone_id is None
        assert mine.status == DecisionStatus.PENDING
        assert mine.get_meta("donation_count") == 2

    def test_flags_campaign(self, expired_campaign, donor):
        _donate(expired_campaign, donor, "100.00")

        CampaignRefundService.initiate_campaign_refund(
            expired_campaign.id, TriggerType.CAMPAIGN_EXPIRATION
        )

        campaign = Campaign.objects.get(id=expired_campaign.id)
        assert campaign.expiration_refund_initiated is True
        assert campaign.grace_period_ends_at == expired_campaign.end_date + timedelta(days=7)

    def test_custom_reason(self, cancelled_campaign, donor):
        _donate(cancelled_campaign, donor, "100.00")

        result = CampaignRefundService.initiate_campaign_refund(
            cancelled_campaign.id,
            TriggerType.CAMPAIGN_CANCELLATION,
            reason="Charity lost its registration",
        )

        refund_request = RefundRequest.objects.get(id=result.data.refund_request_id)
        assert refund_request.rejection_reason == "Charity lost its registration"

    def test_notifies_and_audits(
        self, cancelled_campaign, donor, admin_user, django_capture_on_commit_callbacks
    ):
        _donate(cancelled_campaign, donor, "100.00")

        with django_capture_on_commit_callbacks(execute=True):
            CampaignRefundService.initiate_campaign_refund(
                cancelled_campaign.id, TriggerType.CAMPAIGN_CANCELLATION, admin=admin_user
            )

        notification = Notification.objects.get(recipient=donor)
        assert notification.title == "Campaign Refund - Decision Required"
        assert "was cancelled" in notification.message
        entry = AuditLog.objects.get(event_type=AuditEventType.CAMPAIGN_REFUND_INITIATED)
        assert entry.entity_type == "campaign"
        assert entry.entity_id == str(cancelled_campaign.id)

    def test_second_initiation_is_rejected(self, cancelled_campaign, donor):
        _donate(cancelled_campaign, donor, "100.00")
        CampaignRefundService.initiate_campaign_refund(
            cancelled_campaign.id, TriggerType.CAMPAIGN_CANCELLATION
        )

        result = CampaignRefundService.initiate_campaign_refund(
            cancelled_campaign.id, TriggerType.CAMPAIGN_CANCELLATION
        )

        assert result.error_code == "ALREADY_INITIATED"
        assert RefundRequest.objects.filter(campaign=cancelled_campaign).count() == 1

    def test_milestone_trigger_is_rejected(self, cancelled_campaign, donor):
        _donate(cancelled_campaign, donor, "100.00")

        result = CampaignRefundService.initiate_campaign_refund(
            cancelled_campaign.id, TriggerType.MILESTONE_REJECTION
        )

        assert result.error_code == "INVALID_TRIGGER_TYPE"

    def test_no_donations(self, cancelled_campaign):
        result = CampaignRefundService.initiate_campaign_refund(
            cancelled_campaign.id, TriggerType.CAMPAIGN_CANCELLATION
        )

        assert result.error_code == "NO_DONATIONS"
        assert Campaign.objects.get(id=cancelled_campaign.id).expiration_refund_initiated is False

    def test_missing_campaign(self, db):
        result = CampaignRefundService.initiate_campaign_refund(
            uuid.uuid4(), TriggerType.CAMPAIGN_CANCELLATION
        )

        assert result.error_code == "NOT_FOUND"


@pytest.mark.django_db
class TestProcessExpiredCampaigns:
    """Tests for CampaignRefundService.process_expired_campaigns()."""

    def test_initiates_expired_then_cancelled(self, expired_campaign, cancelled_campaign, donor):
        _donate(expired_campaign, donor, "100.00")
        _donate(cancelled_campaign, donor, "100.00")
        running = CampaignFactory()
        _donate(running, donor, "100.00")

        result = CampaignRefundService.process_expired_campaigns()

        assert result.initiated == [str(expired_campaign.id), str(cancelled_campaign.id)]
        assert result.failed == []
        assert not RefundRequest.objects.filter(campaign=running).exists()

    def test_skips_campaigns_without_donations(self, expired_campaign):
        result = CampaignRefundService.process_expired_campaigns()

        assert result.initiated == []
        assert result.failed == []

    def test_respects_limit(self, donor):
        for days in (20, 15, 10):
            campaign = CampaignFactory(end_date=timezone.now() - timedelta(days=days))
            _donate(campaign, donor, "100.00")

        result = CampaignRefundService.process_expired_campaigns(limit=2)

        assert len(result.initiated) == 2
        assert RefundRequest.objects.count() == 2

    def test_one_failure_does_not_stop_the_sweep(self, expired_campaign, cancelled_campaign, donor, mocker):
        _donate(expired_campaign, donor, "100.00")
        _donate(cancelled_campaign, donor, "100.00")
        original = CampaignRefundService.initiate_campaign_refund.__func__

        def _flaky(cls, campaign_id, trigger_type, **kwargs):
            if campaign_id == expired_campaign.id:
                raise RuntimeError("database hiccup")
            return original(cls, campaign_id, trigger_type, **kwargs)

        mocker.patch.object(
            CampaignRefundService,
            "initiate_campaign_refund",
            classmethod(_flaky),
        )

        result = CampaignRefundService.process_expired_campaigns()

        assert result.initiated == [str(cancelled_campaign.id)]
        assert result.failed == [{"campaign_id": str(expired_campaign.id), "error": "database hiccup"}]

    def test_rerun_is_a_noop(self, expired_campaign, donor):
        _donate(expired_campaign, donor, "100.00")
        CampaignRefundService.process_expired_campaigns()

        result = CampaignRefundService.process_expired_campaigns()

        assert result.initiated == []
        assert RefundRequest.objects.count() == 1
