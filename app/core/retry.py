"""
Retry-with-backoff helper for calls to flaky external services.

A thin layer over tenacity: the caller decides which failures are worth
retrying and how long to wait; tenacity runs the attempts. Exhaustion is
reported as RetryExhaustedError so callers stay inside the application's
error hierarchy.

Usage:
    from core.retry import exponential_backoff, retry_with_backoff

    result = retry_with_backoff(
        lambda attempt: StripeAdapter.create_refund(..., idempotency_key=key(attempt)),
        max_attempts=3,
        backoff=exponential_backoff(base=2.0),   # 2s, 4s, 8s
        is_retryable=lambda exc: getattr(exc, "is_retryable", False),
    )
"""

from __future__ import annotations

import logging
import random
from typing import TYPE_CHECKING, TypeVar

from tenacity import (
    RetryError,
    Retrying,
    nap,
    retry_if_exception,
    stop_after_attempt,
)

from core.exceptions import ExternalServiceError

if TYPE_CHECKING:
    from collections.abc import Callable

    from tenacity import RetryCallState

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryExhaustedError(ExternalServiceError):
    """
    Raised when every attempt failed with a retryable error.

    Attributes:
        attempts: Number of attempts made
        last_error: The exception raised by the final attempt
    """

    default_error_code: str = "RETRY_EXHAUSTED"

    def __init__(self, message: str, attempts: int, last_error: Exception):
        super().__init__(
            message,
            details={"attempts": attempts, "last_error": str(last_error)},
        )
        self.attempts = attempts
        self.last_error = last_error


def exponential_backoff(
    base: float = 1.0,
    max_delay: float = 60.0,
    jitter: float = 0.0,
) -> Callable[[int], float]:
    """
    Build a delay function for 1-indexed attempt numbers.

    Attempt 1 waits ``base``, attempt 2 waits ``2 * base``, attempt 3
    waits ``4 * base``, capped at ``max_delay``. ``jitter`` adds up to that
    fraction of the delay at random.
    """

    def _delay(attempt: int) -> float:
        delay = min(base * (2 ** (attempt - 1)), max_delay)
        if jitter:
            delay += delay * random.uniform(0, jitter)
        return delay

    return _delay


def _log_backoff(operation: str, max_attempts: int) -> Callable[[RetryCallState], None]:
    def _before_sleep(retry_state: RetryCallState) -> None:
        logger.warning(
            "Retryable failure, backing off",
            extra={
                "operation": operation,
                "attempt": retry_state.attempt_number,
                "max_attempts": max_attempts,
                "delay_seconds": retry_state.next_action.sleep if retry_state.next_action else None,
                "error": str(retry_state.outcome.exception()),
            },
        )

    return _before_sleep


def retry_with_backoff(
    func: Callable[[int], T],
    *,
    max_attempts: int,
    backoff: Callable[[int], float],
    is_retryable: Callable[[BaseException], bool],
    sleep: Callable[[float], None] | None = None,
    operation: str = "operation",
) -> T:
    """
    Call ``func(attempt)`` until it succeeds or attempts run out.

    Non-retryable errors propagate immediately. The delay after attempt N
    is ``backoff(N)``; there is no sleep after the final attempt.

    Args:
        sleep: Replacement for tenacity's sleep (tests pass a recorder)

    Raises:
        RetryExhaustedError: All attempts failed with retryable errors
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    retrying = Retrying(
        stop=stop_after_attempt(max_attempts),
        wait=lambda retry_state: backoff(retry_state.attempt_number),
        retry=retry_if_exception(is_retryable),
        before_sleep=_log_backoff(operation, max_attempts),
        sleep=sleep or nap.sleep,
    )

    try:
        for attempt in retrying:
            with attempt:
                result = func(attempt.retry_state.attempt_number)
    except RetryError as exc:
        last_error = exc.last_attempt.exception()
        logger.error(
            "Retries exhausted",
            extra={
                "operation": operation,
                "attempts": max_attempts,
                "error": str(last_error),
            },
        )
        raise RetryExhaustedError(
            f"{operation} failed after {max_attempts} attempts: {last_error}",
            attempts=max_attempts,
            last_error=last_error,
        ) from last_error

    return result
