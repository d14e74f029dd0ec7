"""
Tests for RefundRequestService: initiating and cancelling milestone refunds.
"""

import uuid
from datetime import timedelta
from decimal import Decimal

import pytest
from django.db import IntegrityError
from django.utils import timezone
from freezegun import freeze_time

from audit.models import AuditEventType, AuditLog
from campaigns.models import Campaign, Milestone, MilestoneStatus
from campaigns.services import AllocationService
from notifications.models import Notification, NotificationKind
from refunds.models import DonorRefundDecision, RefundRequest
from refunds.services import RefundRequestService
from refunds.state_machines import DecisionStatus, DecisionType, RefundRequestStatus, TriggerType
from refunds.tests.factories import DonorRefundDecisionFactory, RefundRequestFactory


@pytest.mark.django_db
class TestInitiateRefund:
    """Tests for RefundRequestService.initiate_refund()."""

    def test_creates_request_and_one_decision_per_allocation(
        self, rejected_milestone, admin_user, donor, other_donor
    ):
        proof_id = uuid.uuid4()

        result = RefundRequestService.initiate_refund(
            rejected_milestone.id, proof_id, "Receipts do not match", admin_user
        )

        assert result.success
        assert result.data.total_amount == Decimal("1000.00")
        assert result.data.affected_donors == 2

        refund_request = RefundRequest.objects.get(id=result.data.refund_request_id)
        assert refund_request.status == RefundRequestStatus.PENDING_DONOR_DECISION
        assert refund_request.trigger_type == TriggerType.MILESTONE_REJECTION
        assert refund_request.milestone_proof_id == proof_id
        assert refund_request.created_by == admin_user
        assert refund_request.total_donors_count == 2

        decisions = DonorRefundDecision.objects.filter(refund_request=refund_request)
        assert {(d.donor_id, d.refund_amount) for d in decisions} == {
            (donor.id, Decimal("600.00")),
            (other_donor.id, Decimal("400.00")),
        }
        assert all(d.status == DecisionStatus.PENDING for d in decisions)
        assert all(d.decision_type is None for d in decisions)
        assert all(d.get_meta("allocation_id") for d in decisions)

    def test_totals_match_decision_sum(self, rejected_milestone, admin_user):
        result = RefundRequestService.initiate_refund(rejected_milestone.id, None, "x", admin_user)

        refund_request = RefundRequest.objects.get(id=result.data.refund_request_id)
        decision_total = sum(d.refund_amount for d in refund_request.decisions.all())
        assert decision_total == refund_request.total_amount

    @freeze_time("2026-03-01 12:00:00")
    def test_deadline_is_fourteen_days_out(self, rejected_milestone, admin_user):
        result = RefundRequestService.initiate_refund(rejected_milestone.id, None, "x", admin_user)

        refund_request = RefundRequest.objects.get(id=result.data.refund_request_id)
        assert refund_request.decision_deadline == timezone.now() + timedelta(days=14)

    def test_marks_milestone_and_campaign(self, rejected_milestone, admin_user):
        RefundRequestService.initiate_refund(rejected_milestone.id, None, "x", admin_user)

        milestone = Milestone.objects.get(id=rejected_milestone.id)
        assert milestone.refund_initiated is True
        assert milestone.refund_initiated_at is not None
        assert milestone.status == MilestoneStatus.REJECTED
        assert Campaign.objects.get(id=milestone.campaign_id).milestone_refund_count == 1

    def test_multiple_donations_from_one_donor_count_once(
        self, milestone, allocate, donor, admin_user
    ):
        allocate(donor, "30.00")
        allocate(donor, "70.00")

        result = RefundRequestService.initiate_refund(milestone.id, None, "x", admin_user)

        assert result.data.affected_donors == 1
        assert result.data.total_amount == Decimal("100.00")
        assert DonorRefundDecision.objects.filter(donor=donor).count() == 2

    def test_notifies_each_donor_once_after_commit(
        self, rejected_milestone, admin_user, donor, django_capture_on_commit_callbacks
    ):
        with django_capture_on_commit_callbacks(execute=True):
            result = RefundRequestService.initiate_refund(
                rejected_milestone.id, None, "Receipts do not match", admin_user
            )

        notifications = Notification.objects.filter(
            notification_type=NotificationKind.SYSTEM_ANNOUNCEMENT
        )
        assert notifications.count() == 2
        mine = notifications.get(recipient=donor)
        assert mine.title == "Milestone Rejected - Decision Required"
        assert "₱600.00" in mine.message
        assert "14 days" in mine.message
        assert mine.metadata["refund_request_id"] == str(result.data.refund_request_id)

    def test_audits_initiation(self, rejected_milestone, admin_user, django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks(execute=True):
            RefundRequestService.initiate_refund(rejected_milestone.id, None, "bad proof", admin_user)

        entry = AuditLog.objects.get(event_type=AuditEventType.REFUND_INITIATED)
        assert entry.actor == admin_user
        assert entry.entity_type == "milestone"
        assert entry.entity_id == str(rejected_milestone.id)
        assert entry.payload["affected_donors"] == 2

    def test_nothing_is_sent_when_not_committed(self, rejected_milestone, admin_user):
        RefundRequestService.initiate_refund(rejected_milestone.id, None, "x", admin_user)

        assert not Notification.objects.exists()

    def test_missing_milestone(self, admin_user):
        result = RefundRequestService.initiate_refund(uuid.uuid4(), None, "x", admin_user)

        assert not result.success
        assert result.error_code == "NOT_FOUND"

    def test_second_initiation_is_rejected(self, rejected_milestone, admin_user):
        RefundRequestService.initiate_refund(rejected_milestone.id, None, "x", admin_user)

        result = RefundRequestService.initiate_refund(rejected_milestone.id, None, "x", admin_user)

        assert not result.success
        assert result.error_code == "ALREADY_INITIATED"
        assert RefundRequest.objects.filter(milestone=rejected_milestone).count() == 1
        assert Campaign.objects.get(id=rejected_milestone.campaign_id).milestone_refund_count == 1

    def test_lost_race_on_flag_is_rejected(self, rejected_milestone, admin_user, mocker):
        allocations = list(AllocationService.get_allocations_for_milestone(rejected_milestone.id))

        def _concurrent_initiation(milestone_id):
            # Another admin flips the flag between the read and the update
            Milestone.objects.filter(pk=milestone_id).update(refund_initiated=True)
            return allocations

        mocker.patch.object(
            AllocationService,
            "get_allocations_for_milestone",
            side_effect=_concurrent_initiation,
        )

        result = RefundRequestService.initiate_refund(rejected_milestone.id, None, "x", admin_user)

        assert not result.success
        assert result.error_code == "ALREADY_INITIATED"
        assert not RefundRequest.objects.exists()

    def test_lost_race_on_unique_request_is_rejected(self, rejected_milestone, admin_user, mocker):
        allocations = list(AllocationService.get_allocations_for_milestone(rejected_milestone.id))

        def _concurrent_request(milestone_id):
            # Another initiator committed its request but the flag read raced
            RefundRequestFactory(milestone=rejected_milestone)
            return allocations

        mocker.patch.object(
            AllocationService,
            "get_allocations_for_milestone",
            side_effect=_concurrent_request,
        )

        result = RefundRequestService.initiate_refund(rejected_milestone.id, None, "x", admin_user)

        assert result.error_code == "ALREADY_INITIATED"
        assert RefundRequest.objects.filter(milestone=rejected_milestone).count() == 1

    def test_failed_decision_insert_rolls_back_everything(
        self, rejected_milestone, admin_user, mocker, django_capture_on_commit_callbacks
    ):
        mocker.patch.object(
            DonorRefundDecision.objects,
            "bulk_create",
            side_effect=IntegrityError("decision insert failed"),
        )

        with django_capture_on_commit_callbacks(execute=True) as callbacks:
            result = RefundRequestService.initiate_refund(
                rejected_milestone.id, None, "x", admin_user
            )

        assert not result.success
        assert result.error_code == "CREATION_FAILED"
        assert "decision insert failed" in result.error
        assert not RefundRequest.objects.exists()
        assert not DonorRefundDecision.objects.exists()
        milestone = Milestone.objects.get(id=rejected_milestone.id)
        assert milestone.refund_initiated is False
        assert milestone.status != MilestoneStatus.REJECTED
        assert Campaign.objects.get(id=milestone.campaign_id).milestone_refund_count == 0
        assert callbacks == []
        assert not Notification.objects.exists()

    def test_no_allocations(self, milestone, admin_user):
        result = RefundRequestService.initiate_refund(milestone.id, None, "x", admin_user)

        assert not result.success
        assert result.error_code == "NO_ALLOCATIONS"
        assert Milestone.objects.get(id=milestone.id).refund_initiated is False

    def test_released_allocations_are_not_refundable(self, milestone, allocate, donor, admin_user):
        allocation = allocate(donor, "100.00")
        allocation.is_released = True
        allocation.save()

        result = RefundRequestService.initiate_refund(milestone.id, None, "x", admin_user)

        assert result.error_code == "NO_ALLOCATIONS"


@pytest.mark.django_db
class TestCancelRefundRequest:
    """Tests for RefundRequestService.cancel_refund_request()."""

    def test_cancels_untouched_request(self, admin_user, django_capture_on_commit_callbacks):
        decision = DonorRefundDecisionFactory()

        with django_capture_on_commit_callbacks(execute=True):
            result = RefundRequestService.cancel_refund_request(
                decision.refund_request_id, admin_user, notes="Proof re-reviewed"
            )

        assert result.success
        refund_request = RefundRequest.objects.get(id=decision.refund_request_id)
        assert refund_request.status == RefundRequestStatus.CANCELLED
        assert "Cancelled: Proof re-reviewed" in refund_request.admin_notes
        entry = AuditLog.objects.get(event_type=AuditEventType.REFUND_CANCELLED)
        assert entry.entity_type == "milestone_refund_request"
        assert entry.actor == admin_user

    def test_notes_are_appended(self, admin_user):
        refund_request = RefundRequestFactory(admin_notes="Earlier note")

        RefundRequestService.cancel_refund_request(refund_request.id, admin_user, notes="Withdrawn")

        notes = RefundRequest.objects.get(id=refund_request.id).admin_notes
        assert notes.startswith("Earlier note\n[")
        assert notes.endswith("Cancelled: Withdrawn")

    def test_rejects_when_a_donor_already_decided(self, admin_user):
        decision = DonorRefundDecisionFactory()
        decision.decide(DecisionType.REFUND)
        decision.save()

        result = RefundRequestService.cancel_refund_request(decision.refund_request_id, admin_user)

        assert not result.success
        assert result.error_code == "INVALID_STATUS"
        assert (
            RefundRequest.objects.get(id=decision.refund_request_id).status
            == RefundRequestStatus.PENDING_DONOR_DECISION
        )

    def test_rejects_processing_request(self, admin_user):
        refund_request = RefundRequestFactory()
        refund_request.begin_processing()
        refund_request.save()

        result = RefundRequestService.cancel_refund_request(refund_request.id, admin_user)

        assert result.error_code == "INVALID_STATUS"

    def test_missing_request(self, admin_user):
        result = RefundRequestService.cancel_refund_request(uuid.uuid4(), admin_user)

        assert result.error_code == "NOT_FOUND"
