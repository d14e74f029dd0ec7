"""
Factory Boy factories for campaign test data.

Usage:
    from campaigns.tests.factories import (
        CampaignFactory,
        DonationFactory,
        MilestoneFactory,
        MilestoneAllocationFactory,
    )

    campaign = CampaignFactory(goal_amount=Decimal("5000.00"))
    milestone = MilestoneFactory(campaign=campaign)
    donation = DonationFactory(campaign=campaign, amount=Decimal("600.00"))
    MilestoneAllocationFactory(milestone=milestone, donation=donation)
"""

import uuid
from datetime import timedelta
from decimal import Decimal

import factory
from django.utils import timezone

from authentication.tests.factories import UserFactory
from campaigns.models import (
    Campaign,
    CampaignStatus,
    Charity,
    Donation,
    DonationStatus,
    Milestone,
    MilestoneAllocation,
    MilestoneStatus,
)


class CharityFactory(factory.django.DjangoModelFactory):
    """Factory for verified charities."""

    class Meta:
        model = Charity
        skip_postgeneration_save = True

    owner = factory.SubFactory(UserFactory)
    name = factory.Sequence(lambda n: f"Charity {n}")
    is_verified = True


class CampaignFactory(factory.django.DjangoModelFactory):
    """
    Factory for Campaign instances.

    Default creates an ACTIVE campaign with a 10,000 goal ending in 30 days.

    Example:
        ending_soon = CampaignFactory(end_date=timezone.now() + timedelta(days=3))
        funded = CampaignFactory(goal_amount=100, current_amount=100)
    """

    class Meta:
        model = Campaign
        skip_postgeneration_save = True

    charity = factory.SubFactory(CharityFactory)
    title = factory.Sequence(lambda n: f"Campaign {n}")
    goal_amount = Decimal("10000.00")
    current_amount = Decimal("0.00")
    status = CampaignStatus.ACTIVE
    start_date = factory.LazyFunction(lambda: timezone.now() - timedelta(days=30))
    end_date = factory.LazyFunction(lambda: timezone.now() + timedelta(days=30))


class MilestoneFactory(factory.django.DjangoModelFactory):
    """Factory for Milestone instances (IN_PROGRESS by default)."""

    class Meta:
        model = Milestone
        skip_postgeneration_save = True

    campaign = factory.SubFactory(CampaignFactory)
    title = factory.Sequence(lambda n: f"Milestone {n}")
    target_amount = Decimal("1000.00")
    status = MilestoneStatus.IN_PROGRESS


class DonationFactory(factory.django.DjangoModelFactory):
    """
    Factory for completed card donations with a Stripe PaymentIntent reference.

    Example:
        no_reference = DonationFactory(provider_payment_id=None)
    """

    class Meta:
        model = Donation
        skip_postgeneration_save = True

    user = factory.SubFactory(UserFactory)
    campaign = factory.SubFactory(CampaignFactory)
    amount = Decimal("100.00")
    payment_method = "card"
    transaction_id = factory.Sequence(lambda n: f"TXN_{n}_{uuid.uuid4().hex[:8]}")
    status = DonationStatus.COMPLETED
    provider = "stripe"
    provider_payment_id = factory.Sequence(lambda n: f"pi_test_{n}")
    metadata = factory.LazyFunction(dict)


class MilestoneAllocationFactory(factory.django.DjangoModelFactory):
    """
    Factory for allocation ledger rows.

    Defaults allocate the whole donation to the milestone; campaign and
    donor are taken from the donation.
    """

    class Meta:
        model = MilestoneAllocation
        skip_postgeneration_save = True

    milestone = factory.SubFactory(MilestoneFactory)
    donation = factory.SubFactory(
        DonationFactory,
        campaign=factory.SelfAttribute("..milestone.campaign"),
    )
    campaign = factory.SelfAttribute("donation.campaign")
    donor = factory.SelfAttribute("donation.user")
    allocated_amount = factory.SelfAttribute("donation.amount")
    allocation_percentage = Decimal("100.0000")
    is_released = False
