"""
Campaigns application.

Key components:
    - Charity, Campaign, Milestone, Donation, MilestoneAllocation models
    - AllocationService: Proportional allocation ledger
    - CampaignService: Atomic raised/refunded counters

Usage:
    from campaigns.models import Campaign
    from campaigns.services import AllocationService
"""
