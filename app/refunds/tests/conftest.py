"""
Pytest fixtures for refund workflow tests.

Usage:
    def test_refund(rejected_milestone, fake_stripe, admin_user):
        result = RefundRequestService.initiate_refund(
            rejected_milestone.id, None, "Bad proof", admin_user
        )
"""

from decimal import Decimal

import pytest
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from authentication.tests.factories import UserFactory
from campaigns.tests.factories import (
    CampaignFactory,
    DonationFactory,
    MilestoneAllocationFactory,
    MilestoneFactory,
)
from refunds.adapters import RefundResult
from refunds.config import RefundPolicy
from refunds.services import SettlementService


# =============================================================================
# Fake Stripe Adapter
# =============================================================================


class FakeStripeAdapter:
    """
    Stand-in for StripeAdapter used through SettlementService.set_stripe_adapter().

    ``errors`` is consumed one item per call; once empty, calls succeed.
    """

    calls: list = []
    errors: list = []

    @classmethod
    def reset(cls):
        cls.calls = []
        cls.errors = []

    @classmethod
    def create_refund(
        cls,
        payment_intent_id,
        idempotency_key,
        amount_cents=None,
        reason=None,
        metadata=None,
        trace_id=None,
    ):
        cls.calls.append(
            {
                "payment_intent_id": payment_intent_id,
                "idempotency_key": idempotency_key,
                "amount_cents": amount_cents,
                "reason": reason,
                "metadata": metadata,
            }
        )
        if cls.errors:
            raise cls.errors.pop(0)
        return RefundResult(
            id=f"re_test_{len(cls.calls)}",
            amount_cents=amount_cents,
            currency="php",
            status="succeeded",
            payment_intent_id=payment_intent_id,
            metadata=metadata or {},
        )


@pytest.fixture
def fake_stripe():
    """Route settlement refunds through FakeStripeAdapter."""
    FakeStripeAdapter.reset()
    SettlementService.set_stripe_adapter(FakeStripeAdapter)
    yield FakeStripeAdapter
    SettlementService.set_stripe_adapter(None)
    FakeStripeAdapter.reset()


@pytest.fixture
def no_sleep(mocker):
    """Record provider backoff delays instead of sleeping."""
    return mocker.patch("tenacity.nap.time.sleep")


@pytest.fixture
def policy():
    """Default refund policy, independent of settings."""
    return RefundPolicy()


# =============================================================================
# User Fixtures
# =============================================================================


@pytest.fixture
def admin_user(db):
    """Platform admin who rejects milestones and processes refunds."""
    return UserFactory(is_staff=True)


@pytest.fixture
def donor(db):
    return UserFactory()


@pytest.fixture
def other_donor(db):
    return UserFactory()


# =============================================================================
# Campaign Fixtures
# =============================================================================


@pytest.fixture
def campaign(db):
    """Active campaign being refunded from."""
    return CampaignFactory(title="Clean Water Wells", current_amount=Decimal("1000.00"))


@pytest.fixture
def target_campaign(db):
    """Active, underfunded campaign that accepts redirects."""
    return CampaignFactory(title="School Supplies Drive")


@pytest.fixture
def milestone(campaign):
    return MilestoneFactory(campaign=campaign, target_amount=Decimal("1000.00"))


@pytest.fixture
def allocate(milestone):
    """
    Create a donation from ``donor`` fully allocated to ``milestone``.

    Usage:
        allocation = allocate(donor, Decimal("600.00"))
    """

    def _allocate(user, amount, **donation_kwargs):
        donation = DonationFactory(
            user=user,
            campaign=milestone.campaign,
            amount=Decimal(amount),
            **donation_kwargs,
        )
        return MilestoneAllocationFactory(milestone=milestone, donation=donation)

    return _allocate


@pytest.fixture
def rejected_milestone(milestone, allocate, donor, other_donor):
    """Milestone holding 600.00 from ``donor`` and 400.00 from ``other_donor``."""
    allocate(donor, "600.00")
    allocate(other_donor, "400.00")
    return milestone


# =============================================================================
# API Client Fixtures
# =============================================================================


def _jwt_client(user):
    client = APIClient()
    refresh = RefreshToken.for_user(user)
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {refresh.access_token}")
    return client


@pytest.fixture
def api_client():
    """Unauthenticated API client."""
    return APIClient()


@pytest.fixture
def donor_client(donor):
    """API client authenticated as ``donor``."""
    return _jwt_client(donor)


@pytest.fixture
def staff_client(admin_user):
    """API client authenticated as ``admin_user``."""
    return _jwt_client(admin_user)
