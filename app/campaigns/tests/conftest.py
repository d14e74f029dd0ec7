"""
Pytest fixtures for campaign tests.
"""

from decimal import Decimal

import pytest

from campaigns.tests.factories import (
    CampaignFactory,
    DonationFactory,
    MilestoneFactory,
)


@pytest.fixture
def campaign(db):
    """Active campaign with a 10,000 goal."""
    return CampaignFactory()


@pytest.fixture
def milestones(campaign):
    """Three milestones with targets 1000 / 2000 / 1000, oldest first."""
    return [
        MilestoneFactory(campaign=campaign, target_amount=Decimal("1000.00")),
        MilestoneFactory(campaign=campaign, target_amount=Decimal("2000.00")),
        MilestoneFactory(campaign=campaign, target_amount=Decimal("1000.00")),
    ]


@pytest.fixture
def donation(campaign):
    """Completed 400.00 donation into the campaign."""
    return DonationFactory(campaign=campaign, amount=Decimal("400.00"))
