"""
Result types returned by the refund services.

Usage:
    from refunds.services.types import SettlementOutcome

    outcome = SettlementService.process_decision(decision_id)
    if not outcome.success:
        logger.warning(outcome.error)
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any


@dataclass(frozen=True)
class RefundInitiationResult:
    """Outcome of initiate_refund / initiate_campaign_refund."""

    refund_request_id: uuid.UUID
    total_amount: Decimal
    affected_donors: int


@dataclass(frozen=True)
class SettlementOutcome:
    """
    Outcome of settling one decision.

    error is "NOT_READY" when the decision could not be claimed
    (already claimed or settled by another path).
    """

    success: bool
    error: str | None = None


@dataclass
class ProcessingResult:
    """Tallies of one process_refund_request run."""

    total_processed: int = 0
    success_count: int = 0
    failure_count: int = 0
    refund_count: int = 0
    redirect_count: int = 0
    platform_count: int = 0
    errors: list[dict[str, Any]] = field(default_factory=list)
    status: str | None = None


@dataclass
class AutoProcessResult:
    """Outcome of one expiry sweep."""

    processed_count: int = 0
    total_amount: Decimal = Decimal("0")
    decisions: list[dict[str, Any]] = field(default_factory=list)


@dataclass(frozen=True)
class CampaignRefundEligibility:
    """Whether a campaign qualifies for a campaign-level refund."""

    is_eligible: bool
    trigger_type: str | None = None
    grace_period_ends: datetime | None = None
    refundable_amount: Decimal = Decimal("0")
    affected_donors: int = 0
    reason: str | None = None


@dataclass
class CampaignBatchResult:
    """Outcome of process_expired_campaigns."""

    initiated: list[str] = field(default_factory=list)
    failed: list[dict[str, Any]] = field(default_factory=list)


@dataclass
class ReminderResult:
    """Outcome of one reminder run."""

    first_reminders: int = 0
    final_reminders: int = 0
    notifications_sent: int = 0
