"""
Tests for refund workflow models: constraints, versioning and properties.
"""

from datetime import timedelta
from decimal import Decimal

import pytest
from django.db import IntegrityError, transaction
from django.utils import timezone

from refunds.models import DonorRefundDecision, RefundRequest
from refunds.state_machines import DecisionType, TriggerType
from refunds.tests.factories import DonorRefundDecisionFactory, RefundRequestFactory


@pytest.mark.django_db
class TestRefundRequestModel:
    """Tests for RefundRequest."""

    def test_one_request_per_milestone(self):
        refund_request = RefundRequestFactory()

        with pytest.raises(IntegrityError), transaction.atomic():
            RefundRequestFactory(milestone=refund_request.milestone)

    def test_milestone_rejection_requires_milestone(self, campaign):
        with pytest.raises(IntegrityError), transaction.atomic():
            RefundRequest.objects.create(
                milestone=None,
                campaign=campaign,
                charity=campaign.charity,
                trigger_type=TriggerType.MILESTONE_REJECTION,
                total_amount=Decimal("10.00"),
                total_donors_count=1,
                decision_deadline=timezone.now() + timedelta(days=14),
                rejection_reason="x",
            )

    def test_campaign_level_request_has_no_milestone(self, campaign):
        refund_request = RefundRequest.objects.create(
            milestone=None,
            campaign=campaign,
            charity=campaign.charity,
            trigger_type=TriggerType.CAMPAIGN_CANCELLATION,
            total_amount=Decimal("10.00"),
            total_donors_count=1,
            decision_deadline=timezone.now() + timedelta(days=14),
            rejection_reason="Campaign was cancelled",
        )

        assert refund_request.milestone_id is None

    def test_total_amount_must_be_positive(self):
        with pytest.raises(IntegrityError), transaction.atomic():
            RefundRequestFactory(total_amount=Decimal("0"))

    def test_version_increments_on_save(self):
        refund_request = RefundRequestFactory()
        assert refund_request.version == 1

        refund_request.admin_notes = "checked"
        refund_request.save()

        assert refund_request.version == 2

    def test_deadline_passed(self):
        assert RefundRequestFactory(expired=True).is_deadline_passed is True
        assert RefundRequestFactory().is_deadline_passed is False


@pytest.mark.django_db
class TestDonorRefundDecisionModel:
    """Tests for DonorRefundDecision."""

    def test_one_decision_per_request_and_donation(self):
        decision = DonorRefundDecisionFactory()

        with pytest.raises(IntegrityError), transaction.atomic():
            DonorRefundDecisionFactory(
                refund_request=decision.refund_request,
                donation=decision.donation,
            )

    def test_redirect_requires_campaign(self):
        decision = DonorRefundDecisionFactory()
        decision.decide(DecisionType.REDIRECT_CAMPAIGN, redirect_campaign=None)

        with pytest.raises(IntegrityError), transaction.atomic():
            decision.save()

    def test_refund_type_rejects_redirect_campaign(self, target_campaign):
        with pytest.raises(IntegrityError), transaction.atomic():
            DonorRefundDecisionFactory(
                decision_type=DecisionType.REFUND,
                redirect_campaign=target_campaign,
            )

    def test_pending_decision_without_type_is_valid(self):
        decision = DonorRefundDecisionFactory()

        decision = DonorRefundDecision.objects.get(id=decision.id)
        assert decision.decision_type is None
        assert decision.is_pending
        assert not decision.is_settled
