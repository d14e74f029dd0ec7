"""
Refund workflow policy.

All tunable rules of the refund workflow live on one frozen object built
from Django settings. Services take an optional ``policy`` argument so
tests can override a single value:

    from dataclasses import replace
    from refunds.config import RefundPolicy

    policy = replace(RefundPolicy.from_settings(), minimum_refund_amount=Decimal("150"))
    DecisionService.submit_decision(..., policy=policy)

Settings (see config/settings.py):
    REFUND_DECISION_WINDOW_DAYS, REFUND_MINIMUM_AMOUNT,
    REFUND_REDIRECT_MIN_DAYS_REMAINING, REFUND_PROVIDER_MAX_ATTEMPTS,
    REFUND_PROVIDER_BACKOFF_BASE_SECONDS, REFUND_SETTLE_ON_SUBMIT,
    REFUND_CAMPAIGN_GRACE_DAYS, REFUND_CAMPAIGN_BATCH_LIMIT,
    REFUND_FIRST_REMINDER_DAYS_BEFORE, REFUND_FINAL_REMINDER_DAYS_BEFORE,
    REFUND_SWEEP_BATCH_SIZE
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from django.conf import settings

from core.retry import exponential_backoff


@dataclass(frozen=True)
class RefundPolicy:
    """
    Business rules for the refund workflow.

    Attributes:
        decision_window_days: Days donors have to decide
        minimum_refund_amount: Refunds below this become platform donations
        redirect_min_days_remaining: Redirect targets must run at least this long
        provider_max_attempts: Payment provider attempts per refund
        provider_backoff_base_seconds: First retry delay; doubles each attempt
        settle_on_submit: Settle a decision as soon as the donor submits it
        campaign_grace_days: Days after end_date before an expired campaign refunds
        campaign_batch_limit: Campaigns initiated per scheduled run
        first_reminder_days_before: Days before the deadline for reminder one
        final_reminder_days_before: Days before the deadline for the last reminder
        sweep_batch_size: Expired decisions picked up per sweep
    """

    decision_window_days: int = 14
    minimum_refund_amount: Decimal = Decimal("50")
    redirect_min_days_remaining: int = 7
    provider_max_attempts: int = 3
    provider_backoff_base_seconds: float = 2.0
    settle_on_submit: bool = True
    campaign_grace_days: int = 7
    campaign_batch_limit: int = 50
    first_reminder_days_before: int = 7
    final_reminder_days_before: int = 2
    sweep_batch_size: int = 100

    def __post_init__(self) -> None:
        if self.decision_window_days <= 0:
            raise ValueError("decision_window_days must be positive")
        if self.provider_max_attempts < 1:
            raise ValueError("provider_max_attempts must be at least 1")
        if self.minimum_refund_amount < 0:
            raise ValueError("minimum_refund_amount cannot be negative")
        if self.final_reminder_days_before > self.first_reminder_days_before:
            raise ValueError("final reminder must not come before the first reminder")

    @classmethod
    def from_settings(cls) -> RefundPolicy:
        """Build the policy from Django settings, falling back to defaults."""
        defaults = cls.__dataclass_fields__
        return cls(
            decision_window_days=getattr(
                settings, "REFUND_DECISION_WINDOW_DAYS", defaults["decision_window_days"].default
            ),
            minimum_refund_amount=Decimal(
                str(getattr(settings, "REFUND_MINIMUM_AMOUNT", defaults["minimum_refund_amount"].default))
            ),
            redirect_min_days_remaining=getattr(
                settings,
                "REFUND_REDIRECT_MIN_DAYS_REMAINING",
                defaults["redirect_min_days_remaining"].default,
            ),
            provider_max_attempts=getattr(
                settings, "REFUND_PROVIDER_MAX_ATTEMPTS", defaults["provider_max_attempts"].default
            ),
            provider_backoff_base_seconds=float(
                getattr(
                    settings,
                    "REFUND_PROVIDER_BACKOFF_BASE_SECONDS",
                    defaults["provider_backoff_base_seconds"].default,
                )
            ),
            settle_on_submit=getattr(
                settings, "REFUND_SETTLE_ON_SUBMIT", defaults["settle_on_submit"].default
            ),
            campaign_grace_days=getattr(
                settings, "REFUND_CAMPAIGN_GRACE_DAYS", defaults["campaign_grace_days"].default
            ),
            campaign_batch_limit=getattr(
                settings, "REFUND_CAMPAIGN_BATCH_LIMIT", defaults["campaign_batch_limit"].default
            ),
            first_reminder_days_before=getattr(
                settings,
                "REFUND_FIRST_REMINDER_DAYS_BEFORE",
                defaults["first_reminder_days_before"].default,
            ),
            final_reminder_days_before=getattr(
                settings,
                "REFUND_FINAL_REMINDER_DAYS_BEFORE",
                defaults["final_reminder_days_before"].default,
            ),
            sweep_batch_size=getattr(
                settings, "REFUND_SWEEP_BATCH_SIZE", defaults["sweep_batch_size"].default
            ),
        )

    def provider_backoff(self):
        """Delay function for provider retries: base, 2*base, 4*base, ..."""
        return exponential_backoff(base=self.provider_backoff_base_seconds)


def get_policy(policy: RefundPolicy | None = None) -> RefundPolicy:
    """Return ``policy`` or the one configured in settings."""
    return policy if policy is not None else RefundPolicy.from_settings()
