"""
DonorRefundDecision model: one donor's choice for one donation's stake.

Usage:
    from refunds.models import DonorRefundDecision
    from refunds.state_machines import DecisionStatus, DecisionType

    decision.decide(DecisionType.REFUND)
    decision.save()

    decision.start_processing()
    decision.complete(refund_transaction_id="re_123")
    decision.save()
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.utils import timezone

from django_fsm import FSMField, transition

from core.model_mixins import MetadataMixin, UUIDPrimaryKeyMixin
from core.models import VersionedModel
from refunds.state_machines import DecisionStatus, DecisionType

MONEY = {"max_digits": 12, "decimal_places": 2}


class DonorRefundDecision(UUIDPrimaryKeyMixin, MetadataMixin, VersionedModel):
    """
    A donor's decision about money held against a refund request.

    State Flow:
        PENDING -> DECIDED -> PROCESSING -> COMPLETED / FAILED
        PENDING -> AUTO_REFUNDED -> PROCESSING -> COMPLETED / FAILED

    Fields:
        refund_request: Parent aggregate
        donor / donation / milestone: Whose money and where it came from
        refund_amount: Amount the donor decides about
        decision_type: refund / redirect_campaign / donate_platform (null until decided)
        redirect_campaign: Target campaign, only for redirect_campaign
        status: Current FSM state
        refund_transaction_id: Provider refund id (re_xxx) on success
        new_donation: Donation created by a redirect
        processing_error: Why settlement failed
        metadata: Audit annotations (auto-conversion, allocation ids)
    """

    # ==========================================================================
    # Relationships
    # ==========================================================================

    refund_request = models.ForeignKey(
        "refunds.RefundRequest",
        on_delete=models.CASCADE,
        related_name="decisions",
    )
    donor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="refund_decisions",
    )
    donation = models.ForeignKey(
        "campaigns.Donation",
        on_delete=models.PROTECT,
        related_name="refund_decisions",
    )
    milestone = models.ForeignKey(
        "campaigns.Milestone",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="refund_decisions",
    )

    # ==========================================================================
    # Decision
    # ==========================================================================

    refund_amount = models.DecimalField(**MONEY)
    decision_type = models.CharField(
        max_length=30,
        choices=DecisionType.choices,
        null=True,
        blank=True,
    )
    redirect_campaign = models.ForeignKey(
        "campaigns.Campaign",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="redirected_decisions",
    )

    # ==========================================================================
    # State
    # ==========================================================================

    status = FSMField(
        default=DecisionStatus.PENDING,
        choices=DecisionStatus.choices,
        db_index=True,
        protected=True,
        help_text="Current status of the decision (managed by FSM)",
    )
    decided_at = models.DateTimeField(null=True, blank=True)
    processed_at = models.DateTimeField(null=True, blank=True)

    # ==========================================================================
    # Settlement Outcome
    # ==========================================================================

    refund_transaction_id = models.CharField(max_length=255, null=True, blank=True)
    new_donation = models.ForeignKey(
        "campaigns.Donation",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="redirected_from_decisions",
    )
    processing_error = models.TextField(null=True, blank=True)

    # ==========================================================================
    # Meta & Methods
    # ==========================================================================

    class Meta(VersionedModel.Meta):
        verbose_name = "Donor Refund Decision"
        verbose_name_plural = "Donor Refund Decisions"
        indexes = [
            models.Index(fields=["donor", "status"], name="decision_donor_status_idx"),
            models.Index(fields=["refund_request", "status"], name="decision_request_status_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["refund_request", "donation"],
                name="decision_unique_request_donation",
            ),
            models.CheckConstraint(
                condition=(
                    models.Q(
                        decision_type=DecisionType.REDIRECT_CAMPAIGN,
                        redirect_campaign__isnull=False,
                    )
                    | (
                        ~models.Q(decision_type=DecisionType.REDIRECT_CAMPAIGN)
                        & models.Q(redirect_campaign__isnull=True)
                    )
                ),
                name="decision_redirect_campaign_matches_type",
            ),
            models.CheckConstraint(
                condition=models.Q(refund_amount__gt=0),
                name="decision_amount_positive",
            ),
        ]

    def __str__(self) -> str:
        return f"Decision({self.id}, {self.status}, {self.decision_type}, {self.refund_amount})"

    # ==========================================================================
    # State Transitions (django-fsm)
    # ==========================================================================

    @transition(
        field=status,
        source=DecisionStatus.PENDING,
        target=DecisionStatus.DECIDED,
    )
    def decide(self, decision_type: str, redirect_campaign=None):
        """
        Record the donor's choice.

        Transition: PENDING -> DECIDED
        """
        self.decision_type = decision_type
        self.redirect_campaign = (
            redirect_campaign if decision_type == DecisionType.REDIRECT_CAMPAIGN else None
        )
        self.decided_at = timezone.now()

    @transition(
        field=status,
        source=DecisionStatus.PENDING,
        target=DecisionStatus.AUTO_REFUNDED,
    )
    def auto_resolve(self, decision_type: str = DecisionType.REFUND):
        """
        Resolve a decision the donor never made.

        Transition: PENDING -> AUTO_REFUNDED
        """
        self.decision_type = decision_type
        self.redirect_campaign = None
        self.decided_at = timezone.now()
        self.set_meta("auto_processed", True, save=False)

    @transition(
        field=status,
        source=[DecisionStatus.DECIDED, DecisionStatus.AUTO_REFUNDED],
        target=DecisionStatus.PROCESSING,
    )
    def start_processing(self):
        """
        Claim the decision for settlement.

        Transition: DECIDED / AUTO_REFUNDED -> PROCESSING
        """

    @transition(
        field=status,
        source=DecisionStatus.PROCESSING,
        target=DecisionStatus.COMPLETED,
    )
    def complete(self, refund_transaction_id: str | None = None, new_donation=None):
        """
        Mark settlement as successful.

        Transition: PROCESSING -> COMPLETED
        """
        self.processed_at = timezone.now()
        self.processing_error = None
        if refund_transaction_id:
            self.refund_transaction_id = refund_transaction_id
        if new_donation is not None:
            self.new_donation = new_donation

    @transition(
        field=status,
        source=DecisionStatus.PROCESSING,
        target=DecisionStatus.FAILED,
    )
    def fail(self, error: str):
        """
        Mark settlement as failed.

        Transition: PROCESSING -> FAILED
        """
        self.processed_at = timezone.now()
        self.processing_error = error or "Unknown error"

    # ==========================================================================
    # Properties
    # ==========================================================================

    @property
    def is_pending(self) -> bool:
        return self.status == DecisionStatus.PENDING

    @property
    def is_settled(self) -> bool:
        return self.status in (DecisionStatus.COMPLETED, DecisionStatus.FAILED)
