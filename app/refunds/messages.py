"""
Donor-facing notification texts for the refund workflow.

Each builder returns (title, message). Titles are stable; clients and
tests match on them.
"""

from __future__ import annotations

from decimal import Decimal

from refunds.state_machines import DecisionType, TriggerType

CURRENCY_SYMBOL = "₱"


def format_amount(amount: Decimal | int | float) -> str:
    """₱1,234.50"""
    return f"{CURRENCY_SYMBOL}{Decimal(str(amount)):,.2f}"


def milestone_rejected(campaign_title: str, amount: Decimal, window_days: int) -> tuple[str, str]:
    return (
        "Milestone Rejected - Decision Required",
        f'A milestone for "{campaign_title}" was rejected. You have '
        f"{format_amount(amount)} to reallocate. Please make your decision "
        f"within {window_days} days.",
    )


def campaign_refund(
    campaign_title: str, trigger_type: str, amount: Decimal, window_days: int
) -> tuple[str, str]:
    if trigger_type == TriggerType.CAMPAIGN_CANCELLATION:
        what_happened = "was cancelled"
    else:
        what_happened = "expired without reaching its funding goal"
    return (
        "Campaign Refund - Decision Required",
        f'The campaign "{campaign_title}" {what_happened}. You have '
        f"{format_amount(amount)} to reallocate. Please make your decision "
        f"within {window_days} days.",
    )


def decision_submitted(decision_type: str, amount: Decimal) -> tuple[str, str]:
    formatted = format_amount(amount)
    if decision_type == DecisionType.REFUND:
        message = (
            f"Your refund request of {formatted} has been submitted. "
            "Processing will begin shortly."
        )
    elif decision_type == DecisionType.REDIRECT_CAMPAIGN:
        message = f"Your donation of {formatted} will be redirected to your selected campaign."
    else:
        message = (
            f"Thank you for supporting the platform! Your {formatted} "
            "contribution helps us keep the platform running."
        )
    return "Decision Submitted", message


def refund_processed(amount: Decimal) -> tuple[str, str]:
    return (
        "Refund Processed Successfully",
        f"Your refund of {format_amount(amount)} has been processed successfully. "
        "The funds will be returned to your payment method within 3-5 business days.",
    )


def donation_redirected(amount: Decimal, campaign_title: str) -> tuple[str, str]:
    return (
        "Donation Redirected Successfully",
        f'Your donation of {format_amount(amount)} has been redirected to "{campaign_title}". '
        "Thank you for continuing your support!",
    )


def platform_donation_received(amount: Decimal) -> tuple[str, str]:
    return (
        "Thank You for Supporting the Platform",
        f"Your generous donation of {format_amount(amount)} to support the platform "
        "has been received. Your contribution helps us maintain transparency and "
        "accountability in charitable giving.",
    )


def decision_reminder(amount: Decimal, days_left: int, final: bool) -> tuple[str, str]:
    title = "Final Reminder - Refund Decision Due" if final else "Reminder - Refund Decision Pending"
    day_word = "day" if days_left == 1 else "days"
    return (
        title,
        f"You still have {format_amount(amount)} awaiting your decision. "
        f"{days_left} {day_word} left before it is refunded to your original "
        "payment method automatically.",
    )
