"""
Refunds application.

Key components:
    - RefundRequest, DonorRefundDecision models (django-fsm state machines)
    - RefundRequestService / CampaignRefundService: Open refund requests
    - DecisionService: Donor decisions
    - SettlementService: Stripe refunds, redirects and platform donations
    - ExpiryService / ReminderService: Scheduled sweeps (see refunds.tasks)

Usage:
    from refunds.services import DecisionService, RefundRequestService
"""
