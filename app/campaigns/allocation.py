"""
Largest-remainder apportionment of a donation across milestones.

Pure functions on integer cents so the rule can be tested without a
database. AllocationService converts Decimals at the boundary.

Rule:
    allocatable = min(amount, sum(unfunded))
    share_i     = floor(allocatable * unfunded_i / sum(unfunded))
    Leftover cents go one each by descending remainder; ties go to the
    earlier (older) milestone.

Guarantees:
    - sum(shares) == min(amount, sum(unfunded))
    - share_i <= unfunded_i for every milestone
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

CENT = Decimal("0.01")


def to_cents(amount: Decimal) -> int:
    """Convert a money Decimal to integer minor units."""
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_cents(cents: int) -> Decimal:
    """Convert integer minor units back to a 2dp Decimal."""
    return (Decimal(cents) / 100).quantize(CENT)


def apportion(amount_cents: int, unfunded_cents: Sequence[int]) -> list[int]:
    """
    Split ``amount_cents`` proportionally to each milestone's unfunded target.

    Args:
        amount_cents: Donation amount in cents
        unfunded_cents: Remaining target per milestone, oldest milestone first.
            Negative values (over-allocated milestones) count as zero.

    Returns:
        Share per milestone, in the same order as ``unfunded_cents``
    """
    unfunded = [max(0, u) for u in unfunded_cents]
    total = sum(unfunded)
    if amount_cents <= 0 or total <= 0:
        return [0] * len(unfunded)

    allocatable = min(amount_cents, total)
    shares = []
    remainders = []
    for u in unfunded:
        share, remainder = divmod(allocatable * u, total)
        shares.append(share)
        remainders.append(remainder)

    leftover = allocatable - sum(shares)
    by_remainder = sorted(range(len(unfunded)), key=lambda i: (-remainders[i], i))
    for i in by_remainder[:leftover]:
        shares[i] += 1

    return shares
