"""
RefundRequest model: the aggregate created when donors are owed a decision.

A RefundRequest is created once per rejected milestone (or once per
expired/cancelled campaign) and owns one DonorRefundDecision per
affected donation. Its status is derived from the decision set.

Usage:
    from refunds.models import RefundRequest
    from refunds.state_machines import RefundRequestStatus

    open_requests = RefundRequest.objects.filter(
        status=RefundRequestStatus.PENDING_DONOR_DECISION,
    )

    # State transitions using django-fsm
    refund_request.begin_processing()
    refund_request.save()
"""

from __future__ import annotations

from collections.abc import Iterable

from django.conf import settings
from django.db import models
from django.utils import timezone

from django_fsm import FSMField, can_proceed, transition

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import VersionedModel
from refunds.state_machines import (
    OUTSTANDING_STATUSES,
    DecisionStatus,
    RefundRequestStatus,
    TriggerType,
)

MONEY = {"max_digits": 12, "decimal_places": 2}


class RefundRequest(UUIDPrimaryKeyMixin, VersionedModel):
    """
    Aggregate for one refund event.

    State Flow:
        PENDING_DONOR_DECISION -> PROCESSING -> COMPLETED
        PENDING_DONOR_DECISION -> PROCESSING -> PARTIALLY_COMPLETED
        PENDING_DONOR_DECISION -> CANCELLED

    Invariants:
        - total_amount equals the sum of the decisions' refund_amount at
          creation; total_donors_count equals their distinct donors
        - A milestone_rejection request has a milestone; campaign-level
          requests have none
        - At most one request per milestone
    """

    # ==========================================================================
    # Relationships
    # ==========================================================================

    milestone = models.ForeignKey(
        "campaigns.Milestone",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="refund_requests",
        help_text="Rejected milestone (null for campaign-level refunds)",
    )
    campaign = models.ForeignKey(
        "campaigns.Campaign",
        on_delete=models.PROTECT,
        related_name="refund_requests",
    )
    charity = models.ForeignKey(
        "campaigns.Charity",
        on_delete=models.PROTECT,
        related_name="refund_requests",
    )
    milestone_proof_id = models.UUIDField(
        null=True,
        blank=True,
        help_text="Proof submission that was rejected",
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="initiated_refund_requests",
        help_text="Admin who initiated the refund (null for automatic)",
    )

    # ==========================================================================
    # Amounts
    # ==========================================================================

    total_amount = models.DecimalField(**MONEY)
    total_donors_count = models.PositiveIntegerField()

    # ==========================================================================
    # State
    # ==========================================================================

    status = FSMField(
        default=RefundRequestStatus.PENDING_DONOR_DECISION,
        choices=RefundRequestStatus.choices,
        db_index=True,
        protected=True,
        help_text="Current status of the refund request (managed by FSM)",
    )
    trigger_type = models.CharField(
        max_length=30,
        choices=TriggerType.choices,
        default=TriggerType.MILESTONE_REJECTION,
    )
    auto_initiated = models.BooleanField(default=False)

    # ==========================================================================
    # Deadlines & Reminders
    # ==========================================================================

    decision_deadline = models.DateTimeField(db_index=True)
    grace_period_ends_at = models.DateTimeField(null=True, blank=True)
    first_reminder_sent_at = models.DateTimeField(null=True, blank=True)
    final_reminder_sent_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    # ==========================================================================
    # Notes
    # ==========================================================================

    rejection_reason = models.TextField()
    admin_notes = models.TextField(blank=True, default="")

    # ==========================================================================
    # Meta & Methods
    # ==========================================================================

    class Meta(VersionedModel.Meta):
        verbose_name = "Refund Request"
        verbose_name_plural = "Refund Requests"
        indexes = [
            models.Index(fields=["status", "decision_deadline"], name="refund_req_status_dl_idx"),
            models.Index(fields=["campaign", "status"], name="refund_req_campaign_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["milestone"],
                condition=models.Q(milestone__isnull=False),
                name="refund_request_one_per_milestone",
            ),
            models.CheckConstraint(
                condition=(
                    models.Q(trigger_type=TriggerType.MILESTONE_REJECTION, milestone__isnull=False)
                    | (
                        ~models.Q(trigger_type=TriggerType.MILESTONE_REJECTION)
                        & models.Q(milestone__isnull=True)
                    )
                ),
                name="refund_request_milestone_matches_trigger",
            ),
            models.CheckConstraint(
                condition=models.Q(total_amount__gt=0),
                name="refund_request_amount_positive",
            ),
        ]

    def __str__(self) -> str:
        return f"RefundRequest({self.id}, {self.status}, {self.total_amount})"

    # ==========================================================================
    # State Transitions (django-fsm)
    # ==========================================================================

    @transition(
        field=status,
        source=RefundRequestStatus.PENDING_DONOR_DECISION,
        target=RefundRequestStatus.PROCESSING,
    )
    def begin_processing(self):
        """First decision settled while others are still outstanding."""

    @transition(
        field=status,
        source=[
            RefundRequestStatus.PENDING_DONOR_DECISION,
            RefundRequestStatus.PROCESSING,
            RefundRequestStatus.PARTIALLY_COMPLETED,
        ],
        target=RefundRequestStatus.COMPLETED,
    )
    def mark_completed(self):
        """Every decision settled successfully."""
        self.completed_at = timezone.now()

    @transition(
        field=status,
        source=[
            RefundRequestStatus.PENDING_DONOR_DECISION,
            RefundRequestStatus.PROCESSING,
        ],
        target=RefundRequestStatus.PARTIALLY_COMPLETED,
    )
    def mark_partially_completed(self):
        """Every decision settled, some of them failed."""

    @transition(
        field=status,
        source=RefundRequestStatus.PENDING_DONOR_DECISION,
        target=RefundRequestStatus.CANCELLED,
    )
    def cancel(self):
        """Admin withdrew the request before any donor acted."""

    # ==========================================================================
    # Derived Status
    # ==========================================================================

    @staticmethod
    def derive_status(decision_statuses: Iterable[str]) -> str:
        """
        Compute the aggregate status from the decisions' statuses.

        - Something outstanding: pending_donor_decision until the first
          decision settles, processing afterwards
        - All settled: completed with zero failures, partially_completed
          for a mix, processing when nothing succeeded
        """
        statuses = list(decision_statuses)
        completed = statuses.count(DecisionStatus.COMPLETED)
        failed = statuses.count(DecisionStatus.FAILED)
        outstanding = sum(1 for s in statuses if s in OUTSTANDING_STATUSES)

        if outstanding:
            if completed or failed:
                return RefundRequestStatus.PROCESSING
            return RefundRequestStatus.PENDING_DONOR_DECISION

        if failed == 0:
            return RefundRequestStatus.COMPLETED
        if completed:
            return RefundRequestStatus.PARTIALLY_COMPLETED
        # Nothing succeeded; left in processing for an admin to look at
        return RefundRequestStatus.PROCESSING

    def apply_status(self, target: str) -> bool:
        """
        Move to ``target`` through the matching transition.

        Returns True if the status changed. Targets the FSM does not
        allow from the current status are ignored, so the aggregate never
        moves backwards.
        """
        if target == self.status:
            return False

        transitions = {
            RefundRequestStatus.PROCESSING: self.begin_processing,
            RefundRequestStatus.COMPLETED: self.mark_completed,
            RefundRequestStatus.PARTIALLY_COMPLETED: self.mark_partially_completed,
        }
        method = transitions.get(target)
        if method is None:
            return False

        if not can_proceed(method):
            return False
        method()
        return True

    # ==========================================================================
    # Properties
    # ==========================================================================

    @property
    def is_deadline_passed(self) -> bool:
        return timezone.now() > self.decision_deadline

    @property
    def is_open(self) -> bool:
        """Still waiting on donor decisions."""
        return self.status == RefundRequestStatus.PENDING_DONOR_DECISION
