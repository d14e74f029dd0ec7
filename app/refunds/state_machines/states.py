"""
State enums for refund workflow models.

These are Django TextChoices for database storage and admin integration,
used as FSMField choices by the refund models.

State Machines Overview:

RefundRequest Status:
    pending_donor_decision → processing → completed / partially_completed
    pending_donor_decision → completed / partially_completed (all settled at once)
    partially_completed → completed (failed decisions reprocessed)
    pending_donor_decision → cancelled

DonorRefundDecision Status:
    pending → decided → processing → completed / failed
    pending → auto_refunded → processing → completed / failed
"""

from django.db import models


class RefundRequestStatus(models.TextChoices):
    """
    Status of a RefundRequest aggregate.

    Terminal states: COMPLETED, CANCELLED

    The status is derived from the decision set by
    RefundRequest.derive_status() once settlement starts.
    """

    PENDING_DONOR_DECISION = "pending_donor_decision", "Pending Donor Decision"
    PROCESSING = "processing", "Processing"
    COMPLETED = "completed", "Completed"
    PARTIALLY_COMPLETED = "partially_completed", "Partially Completed"
    CANCELLED = "cancelled", "Cancelled"


class DecisionStatus(models.TextChoices):
    """
    Status of a single donor's refund decision.

    Terminal states: COMPLETED, FAILED

    State Flow:
        PENDING → DECIDED → PROCESSING → COMPLETED
        PENDING → AUTO_REFUNDED → PROCESSING → FAILED
    """

    PENDING = "pending", "Pending"
    DECIDED = "decided", "Decided"
    PROCESSING = "processing", "Processing"
    COMPLETED = "completed", "Completed"
    FAILED = "failed", "Failed"
    AUTO_REFUNDED = "auto_refunded", "Auto Refunded"


class DecisionType(models.TextChoices):
    """What a donor chose to do with their stake."""

    REFUND = "refund", "Refund"
    REDIRECT_CAMPAIGN = "redirect_campaign", "Redirect to Campaign"
    DONATE_PLATFORM = "donate_platform", "Donate to Platform"


class TriggerType(models.TextChoices):
    """Event that created a refund request."""

    MILESTONE_REJECTION = "milestone_rejection", "Milestone Rejection"
    CAMPAIGN_EXPIRATION = "campaign_expiration", "Campaign Expiration"
    CAMPAIGN_CANCELLATION = "campaign_cancellation", "Campaign Cancellation"


# Decisions the settlement processor may claim
READY_STATUSES = (DecisionStatus.DECIDED, DecisionStatus.AUTO_REFUNDED)

# Decisions that still need donor or processor action
OUTSTANDING_STATUSES = (
    DecisionStatus.PENDING,
    DecisionStatus.DECIDED,
    DecisionStatus.AUTO_REFUNDED,
    DecisionStatus.PROCESSING,
)

SETTLED_STATUSES = (DecisionStatus.COMPLETED, DecisionStatus.FAILED)
