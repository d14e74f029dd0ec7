"""
State machine enums for refund workflow models.

This module defines the state enums used by refund models with django-fsm.
"""

from refunds.state_machines.states import (
    OUTSTANDING_STATUSES,
    READY_STATUSES,
    SETTLED_STATUSES,
    DecisionStatus,
    DecisionType,
    RefundRequestStatus,
    TriggerType,
)

__all__ = [
    "DecisionStatus",
    "DecisionType",
    "OUTSTANDING_STATUSES",
    "READY_STATUSES",
    "RefundRequestStatus",
    "SETTLED_STATUSES",
    "TriggerType",
]
