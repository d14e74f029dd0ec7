"""
Tests for DecisionService: listing and submitting donor decisions.
"""

import uuid
from dataclasses import replace
from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone
from freezegun import freeze_time

from campaigns.models import Campaign, CampaignStatus, Donation
from campaigns.tests.factories import CampaignFactory
from notifications.models import Notification, NotificationKind
from refunds.models import DonorRefundDecision, RefundRequest
from refunds.services import DecisionService, RefundRequestService
from refunds.state_machines import DecisionStatus, DecisionType, RefundRequestStatus
from refunds.tests.factories import DonorRefundDecisionFactory, RefundRequestFactory


@pytest.fixture
def deferred(policy):
    """Policy that records decisions without settling them."""
    return replace(policy, settle_on_submit=False)


@pytest.fixture
def decision(donor):
    """Pending 100.00 decision owned by ``donor``."""
    return DonorRefundDecisionFactory(donation__user=donor, refund_amount=Decimal("100.00"))


@pytest.mark.django_db
class TestListPendingDecisions:
    """Tests for DecisionService.list_pending_decisions()."""

    def test_only_own_pending_decisions(self, donor, other_donor):
        mine = DonorRefundDecisionFactory(donation__user=donor)
        decided = DonorRefundDecisionFactory(donation__user=donor)
        decided.decide(DecisionType.REFUND)
        decided.save()
        DonorRefundDecisionFactory(donation__user=other_donor)

        page = DecisionService.list_pending_decisions(donor)

        assert [d.id for d in page.object_list] == [mine.id]

    def test_orders_by_amount(self, donor):
        small = DonorRefundDecisionFactory(donation__user=donor, refund_amount=Decimal("10.00"))
        large = DonorRefundDecisionFactory(donation__user=donor, refund_amount=Decimal("90.00"))

        page = DecisionService.list_pending_decisions(donor, ordering="-refund_amount")

        assert [d.id for d in page.object_list] == [large.id, small.id]

    def test_unknown_ordering_falls_back(self, donor):
        DonorRefundDecisionFactory(donation__user=donor)

        page = DecisionService.list_pending_decisions(donor, ordering="donor__password")

        assert len(page.object_list) == 1

    def test_paginates(self, donor):
        for _ in range(3):
            DonorRefundDecisionFactory(donation__user=donor)

        page = DecisionService.list_pending_decisions(donor, page=2, page_size=2)

        assert page.number == 2
        assert len(page.object_list) == 1
        assert page.paginator.count == 3


@pytest.mark.django_db
class TestSubmitDecision:
    """Tests for DecisionService.submit_decision() validation and recording."""

    def test_records_refund_decision(self, decision, donor, deferred, django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks(execute=True):
            result = DecisionService.submit_decision(
                decision.id, donor, DecisionType.REFUND, policy=deferred
            )

        assert result.success
        assert result.data.status == DecisionStatus.DECIDED
        assert result.data.decision_type == DecisionType.REFUND
        assert result.data.decided_at is not None

        notification = Notification.objects.get(recipient=donor)
        assert notification.title == "Decision Submitted"
        assert notification.notification_type == NotificationKind.DONATION_CONFIRMED

    def test_settles_immediately(self, decision, donor, fake_stripe):
        result = DecisionService.submit_decision(decision.id, donor, DecisionType.REFUND)

        assert result.success
        assert result.data.status == DecisionStatus.COMPLETED
        assert result.data.refund_transaction_id == "re_test_1"
        assert len(fake_stripe.calls) == 1

    def test_settlement_failure_still_records_decision(self, donor, fake_stripe):
        decision = DonorRefundDecisionFactory(
            donation__user=donor,
            donation__provider_payment_id=None,
        )

        result = DecisionService.submit_decision(decision.id, donor, DecisionType.REFUND)

        assert result.success
        assert result.data.status == DecisionStatus.FAILED
        assert result.data.decision_type == DecisionType.REFUND

    def test_other_donors_decision_is_not_found(self, decision, other_donor, deferred):
        result = DecisionService.submit_decision(
            decision.id, other_donor, DecisionType.REFUND, policy=deferred
        )

        assert result.error_code == "NOT_FOUND"

    def test_malformed_id_is_not_found(self, donor, deferred):
        result = DecisionService.submit_decision("not-a-uuid", donor, DecisionType.REFUND, policy=deferred)

        assert result.error_code == "NOT_FOUND"

    def test_second_submission_is_rejected(self, decision, donor, deferred):
        DecisionService.submit_decision(decision.id, donor, DecisionType.REFUND, policy=deferred)

        result = DecisionService.submit_decision(
            decision.id, donor, DecisionType.DONATE_PLATFORM, policy=deferred
        )

        assert result.error_code == "INVALID_STATUS"
        reloaded = DonorRefundDecision.objects.get(id=decision.id)
        assert reloaded.decision_type == DecisionType.REFUND

    def test_cancelled_request_rejects_decisions(self, decision, donor, admin_user, deferred):
        RefundRequestService.cancel_refund_request(decision.refund_request_id, admin_user)

        result = DecisionService.submit_decision(decision.id, donor, DecisionType.REFUND, policy=deferred)

        assert result.error_code == "INVALID_STATUS"

    def test_deadline_passed(self, decision, donor, deferred):
        with freeze_time(timezone.now() + timedelta(days=15)):
            result = DecisionService.submit_decision(
                decision.id, donor, DecisionType.REFUND, policy=deferred
            )

        assert result.error_code == "DEADLINE_EXPIRED"
        assert DonorRefundDecision.objects.get(id=decision.id).status == DecisionStatus.PENDING

    def test_submission_at_the_deadline_is_accepted(self, decision, donor, deferred):
        with freeze_time(decision.refund_request.decision_deadline):
            result = DecisionService.submit_decision(
                decision.id, donor, DecisionType.REFUND, policy=deferred
            )

        assert result.success

    def test_unknown_decision_type(self, decision, donor, deferred):
        result = DecisionService.submit_decision(decision.id, donor, "keep_it", policy=deferred)

        assert result.error_code == "INVALID_DECISION_TYPE"


@pytest.mark.django_db
class TestMinimumRefundRule:
    """Refunds below the minimum become platform donations."""

    def test_small_refund_is_converted(self, donor, deferred):
        decision = DonorRefundDecisionFactory(donation__user=donor, refund_amount=Decimal("40.00"))

        result = DecisionService.submit_decision(decision.id, donor, DecisionType.REFUND, policy=deferred)

        assert result.success
        assert result.data.decision_type == DecisionType.DONATE_PLATFORM
        assert result.data.metadata["autoConverted"] is True
        assert result.data.metadata["reason"] == "below_minimum_refund_threshold"
        assert result.data.metadata["originalDecision"] == DecisionType.REFUND
        assert result.data.metadata["minimumAmount"] == "50"

    def test_minimum_itself_is_refundable(self, donor, deferred):
        decision = DonorRefundDecisionFactory(donation__user=donor, refund_amount=Decimal("50.00"))

        result = DecisionService.submit_decision(decision.id, donor, DecisionType.REFUND, policy=deferred)

        assert result.data.decision_type == DecisionType.REFUND
        assert "autoConverted" not in result.data.metadata

    def test_small_redirect_is_not_converted(self, donor, target_campaign, deferred):
        decision = DonorRefundDecisionFactory(donation__user=donor, refund_amount=Decimal("10.00"))

        result = DecisionService.submit_decision(
            decision.id,
            donor,
            DecisionType.REDIRECT_CAMPAIGN,
            redirect_campaign_id=target_campaign.id,
            policy=deferred,
        )

        assert result.data.decision_type == DecisionType.REDIRECT_CAMPAIGN

    def test_custom_minimum(self, decision, donor, deferred):
        policy = replace(deferred, minimum_refund_amount=Decimal("150"))

        result = DecisionService.submit_decision(decision.id, donor, DecisionType.REFUND, policy=policy)

        assert result.data.decision_type == DecisionType.DONATE_PLATFORM

    def test_converted_small_refund_is_settled_without_provider(self, donor, fake_stripe):
        decision = DonorRefundDecisionFactory(donation__user=donor, refund_amount=Decimal("40.00"))

        result = DecisionService.submit_decision(decision.id, donor, DecisionType.REFUND)

        assert result.data.status == DecisionStatus.COMPLETED
        assert fake_stripe.calls == []


@pytest.mark.django_db
class TestRedirectTarget:
    """Redirect targets must be able to take the money."""

    def _submit(self, decision, donor, campaign_id, policy):
        return DecisionService.submit_decision(
            decision.id,
            donor,
            DecisionType.REDIRECT_CAMPAIGN,
            redirect_campaign_id=campaign_id,
            policy=policy,
        )

    def test_valid_target(self, decision, donor, target_campaign, deferred):
        result = self._submit(decision, donor, target_campaign.id, deferred)

        assert result.success
        assert result.data.redirect_campaign_id == target_campaign.id

    def test_missing_target(self, decision, donor, deferred):
        assert self._submit(decision, donor, None, deferred).error_code == "MISSING_CAMPAIGN"

    def test_unknown_target(self, decision, donor, deferred):
        assert self._submit(decision, donor, uuid.uuid4(), deferred).error_code == "INVALID_CAMPAIGN"

    def test_inactive_target(self, decision, donor, deferred):
        paused = CampaignFactory(status=CampaignStatus.PAUSED)

        assert self._submit(decision, donor, paused.id, deferred).error_code == "INACTIVE_CAMPAIGN"

    def test_target_ending_soon(self, decision, donor, deferred):
        ending = CampaignFactory(end_date=timezone.now() + timedelta(days=6, hours=23))

        assert self._submit(decision, donor, ending.id, deferred).error_code == "CAMPAIGN_ENDING_SOON"

    def test_target_with_exactly_seven_days_left(self, decision, donor, deferred):
        with freeze_time("2026-05-01 12:00:00"):
            target = CampaignFactory(end_date=timezone.now() + timedelta(days=7))

            assert self._submit(decision, donor, target.id, deferred).success

    def test_funded_target(self, decision, donor, policy):
        funded = CampaignFactory(goal_amount=Decimal("100.00"), current_amount=Decimal("100.00"))

        result = self._submit(decision, donor, funded.id, policy)

        assert result.error_code == "CAMPAIGN_FUNDED"
        assert not Donation.objects.filter(campaign=funded).exists()
        assert Campaign.objects.get(id=funded.id).current_amount == Decimal("100.00")
        assert DonorRefundDecision.objects.get(id=decision.id).status == DecisionStatus.PENDING

    def test_same_campaign(self, decision, donor, deferred):
        source_id = decision.refund_request.campaign_id

        assert self._submit(decision, donor, source_id, deferred).error_code == "SAME_CAMPAIGN"

    def test_failed_check_leaves_decision_pending(self, decision, donor, deferred):
        self._submit(decision, donor, None, deferred)

        assert DonorRefundDecision.objects.get(id=decision.id).status == DecisionStatus.PENDING

    def test_redirect_settles_into_new_donation(self, decision, donor, target_campaign, fake_stripe, policy):
        result = self._submit(decision, donor, target_campaign.id, policy)

        assert result.data.status == DecisionStatus.COMPLETED
        assert result.data.new_donation.campaign_id == target_campaign.id
        assert fake_stripe.calls == []


@pytest.mark.django_db
class TestRequestStatusAfterSubmission:
    """Immediate settlement moves the parent request along."""

    def test_last_decision_completes_request(self, donor, fake_stripe):
        refund_request = RefundRequestFactory()
        decision = DonorRefundDecisionFactory(refund_request=refund_request, donation__user=donor)

        DecisionService.submit_decision(decision.id, donor, DecisionType.DONATE_PLATFORM)

        refund_request = RefundRequest.objects.get(id=refund_request.id)
        assert refund_request.status == RefundRequestStatus.COMPLETED
        assert refund_request.completed_at is not None
