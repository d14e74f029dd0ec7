"""
Payment provider adapters for the refund workflow.

Usage:
    from refunds.adapters import StripeAdapter, IdempotencyKeyGenerator
"""

from refunds.adapters.stripe_adapter import (
    IdempotencyKeyGenerator,
    RefundResult,
    StripeAdapter,
)

__all__ = [
    "IdempotencyKeyGenerator",
    "RefundResult",
    "StripeAdapter",
]
