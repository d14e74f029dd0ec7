"""
Refund workflow models.

- RefundRequest: Aggregate created per rejected milestone or refunded campaign
- DonorRefundDecision: One donor's decision for one donation's stake
"""

from refunds.models.decision import DonorRefundDecision
from refunds.models.refund_request import RefundRequest

__all__ = [
    "DonorRefundDecision",
    "RefundRequest",
]
