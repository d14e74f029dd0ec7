"""
Refund workflow exceptions.

Business outcomes a caller can correct (deadline passed, campaign funded)
are ServiceResult failures, not exceptions. The classes here cover
settlement and infrastructure failures.

Exception Hierarchy:
    RefundWorkflowError (base for refund domain)
    └── SettlementError - Settlement could not run
        └── MissingProviderReferenceError - Donation has no provider payment id

    ProviderError - Payment provider call failed (retryable by default)
    └── StripeError - Base for Stripe errors, carries is_retryable
        ├── StripeCardDeclinedError - Card declined (permanent)
        ├── StripeInvalidRequestError - Invalid request params (permanent)
        ├── StripeRateLimitError - Rate limited (transient, retry)
        ├── StripeAPIUnavailableError - API unavailable (transient, retry)
        └── StripeTimeoutError - Request timeout (transient, retry)

    RetryExhaustedError - All provider attempts failed (from core.retry)
    LockAcquisitionError - Distributed lock held elsewhere (inherits ConflictError)
    InvalidStateTransitionError - FSM transition not allowed (inherits ConflictError)

Usage:
    from refunds.exceptions import StripeError

    try:
        StripeAdapter.create_refund(...)
    except StripeError as e:
        if e.is_retryable:
            ...
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.exceptions import BaseApplicationError, ConflictError, ExternalServiceError
from core.retry import RetryExhaustedError

if TYPE_CHECKING:
    from typing import Any


# =============================================================================
# Refund Domain Exceptions
# =============================================================================


class RefundWorkflowError(BaseApplicationError):
    """Base exception for refund workflow operations."""

    default_error_code: str = "REFUND_WORKFLOW_ERROR"


class SettlementError(RefundWorkflowError):
    """Settlement of a decision could not be carried out."""

    default_error_code: str = "SETTLEMENT_ERROR"
    is_retryable: bool = False


class MissingProviderReferenceError(SettlementError):
    """
    The donation has no provider payment id to refund against.

    Retrying cannot help; the decision fails immediately.
    """

    default_error_code: str = "MISSING_PROVIDER_REFERENCE"
    is_retryable: bool = False


# =============================================================================
# Payment Provider Exceptions
# =============================================================================


class ProviderError(ExternalServiceError):
    """
    A payment provider call failed.

    A generic provider failure is assumed to be transient.
    Subclasses override is_retryable where the provider says otherwise.
    """

    default_error_code: str = "PROVIDER_ERROR"
    is_retryable: bool = True


class StripeError(ProviderError):
    """
    Base exception for all Stripe-related errors.

    Attributes:
        stripe_code: Stripe's internal error code
        decline_code: Card decline code (if applicable)
        is_retryable: Whether the operation can be retried
    """

    default_error_code: str = "STRIPE_ERROR"
    is_retryable: bool = False

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        stripe_code: str | None = None,
        decline_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        if stripe_code:
            details["stripe_code"] = stripe_code
        if decline_code:
            details["decline_code"] = decline_code
        super().__init__(message, error_code=error_code, details=details)
        self.stripe_code = stripe_code
        self.decline_code = decline_code


# -----------------------------------------------------------------------------
# Permanent Errors (do not retry)
# -----------------------------------------------------------------------------


class StripeCardDeclinedError(StripeError):
    """The card behind the original payment refused the refund."""

    default_error_code: str = "CARD_DECLINED"
    is_retryable: bool = False


class StripeInvalidRequestError(StripeError):
    """
    Invalid request parameters sent to Stripe.

    Possible causes:
    - Unknown payment intent id
    - Refund larger than the remaining captured amount
    - Charge already fully refunded
    - Bad API key
    """

    default_error_code: str = "INVALID_STRIPE_REQUEST"
    is_retryable: bool = False


# -----------------------------------------------------------------------------
# Transient Errors (safe to retry with backoff)
# -----------------------------------------------------------------------------


class StripeRateLimitError(StripeError):
    """Rate limited by Stripe API."""

    default_error_code: str = "STRIPE_RATE_LIMITED"
    is_retryable: bool = True


class StripeAPIUnavailableError(StripeError):
    """
    Stripe API is temporarily unavailable.

    Covers network failures and Stripe 5xx responses.
    """

    default_error_code: str = "STRIPE_UNAVAILABLE"
    is_retryable: bool = True


class StripeTimeoutError(StripeError):
    """
    Stripe API call timed out.

    The refund may have been created on Stripe's side; the next attempt
    uses a new idempotency key, so check the dashboard before retrying
    by hand.
    """

    default_error_code: str = "STRIPE_TIMEOUT"
    is_retryable: bool = True


# =============================================================================
# Concurrency Control Exceptions
# =============================================================================


class LockAcquisitionError(ConflictError):
    """
    Raised when a distributed lock cannot be acquired.

    Scheduled sweeps treat this as "another worker is already on it".
    """

    default_error_code: str = "LOCK_ACQUISITION_FAILED"


class InvalidStateTransitionError(ConflictError):
    """
    Raised when a state machine transition is not allowed.

    Wraps django-fsm's TransitionNotAllowed with our error format.
    """

    default_error_code: str = "INVALID_STATE_TRANSITION"


def is_retryable_provider_error(error: Exception) -> bool:
    """
    Classify a settlement failure for the retry loop.

    Provider errors carry their own verdict; anything else (including a
    missing payment reference) is terminal.
    """
    if isinstance(error, ProviderError):
        return getattr(error, "is_retryable", False)
    return False


# =============================================================================
# Exports
# =============================================================================

__all__ = [
    # Refund domain
    "RefundWorkflowError",
    "SettlementError",
    "MissingProviderReferenceError",
    # Provider
    "ProviderError",
    "StripeError",
    "StripeCardDeclinedError",
    "StripeInvalidRequestError",
    "StripeRateLimitError",
    "StripeAPIUnavailableError",
    "StripeTimeoutError",
    "RetryExhaustedError",
    "is_retryable_provider_error",
    # Concurrency control
    "LockAcquisitionError",
    "InvalidStateTransitionError",
]
