"""
Refund workflow services.

This module provides:
- RefundRequestService: Opens (and cancels) refunds for rejected milestones
- DecisionService: Donor decisions and their validation
- SettlementService: Moves the money for decided decisions
- ExpiryService: Auto-resolves decisions past their deadline
- RefundReportingService: Admin listing and statistics
- CampaignRefundService: Refunds for expired and cancelled campaigns
- ReminderService: Deadline reminders

Usage:
    from refunds.services import RefundRequestService

    result = RefundRequestService.initiate_refund(
        milestone_id=milestone.id,
        proof_id=proof.id,
        rejection_reason="Receipts missing",
        admin=request.user,
    )

    from refunds.services import DecisionService

    result = DecisionService.submit_decision(
        decision_id=decision.id,
        donor=request.user,
        decision_type="refund",
    )
"""

from refunds.services.campaign_refund_service import CampaignRefundService
from refunds.services.decision_service import DecisionService
from refunds.services.expiry_service import ExpiryService
from refunds.services.refund_request_service import RefundRequestService
from refunds.services.reminder_service import ReminderService
from refunds.services.reporting_service import RefundReportingService
from refunds.services.settlement_service import SettlementService
from refunds.services.types import (
    AutoProcessResult,
    CampaignBatchResult,
    CampaignRefundEligibility,
    ProcessingResult,
    RefundInitiationResult,
    ReminderResult,
    SettlementOutcome,
)

__all__ = [
    # Services
    "CampaignRefundService",
    "DecisionService",
    "ExpiryService",
    "RefundReportingService",
    "RefundRequestService",
    "ReminderService",
    "SettlementService",
    # Result types
    "AutoProcessResult",
    "CampaignBatchResult",
    "CampaignRefundEligibility",
    "ProcessingResult",
    "RefundInitiationResult",
    "ReminderResult",
    "SettlementOutcome",
]
