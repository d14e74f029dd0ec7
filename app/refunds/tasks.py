"""
Celery tasks for the refund workflow.

All three run from celery-beat (see migrations/0002_refund_schedules.py):
- auto_process_expired_decisions: hourly, resolves and settles expired decisions
- send_refund_reminders: every 6 hours, deadline reminders
- process_expired_campaigns: daily, opens campaign-level refunds

Each run holds a Redis lock for its whole scan. A tick that finds the
lock held returns {"status": "skipped"} instead of sweeping twice.

Usage:
    from refunds.tasks import auto_process_expired_decisions

    auto_process_expired_decisions.delay()
"""

from __future__ import annotations

import logging

from celery import shared_task

from refunds.exceptions import LockAcquisitionError
from refunds.locks import sweep_lock

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

EXPIRY_SWEEP_LOCK = "refunds:expiry-sweep"
REMINDER_LOCK = "refunds:reminders"
CAMPAIGN_SWEEP_LOCK = "refunds:campaign-sweep"

# Lock TTLs (seconds); longer than a slow run, shorter than the schedule
EXPIRY_SWEEP_LOCK_TTL = 45 * 60
REMINDER_LOCK_TTL = 30 * 60
CAMPAIGN_SWEEP_LOCK_TTL = 60 * 60


def _skipped(task_name: str, lock_key: str) -> dict:
    logger.info(
        "Refund task skipped, previous run still holds the lock",
        extra={"task": task_name, "lock": lock_key},
    )
    return {"status": "skipped", "reason": "already_running"}


# =============================================================================
# Periodic Tasks
# =============================================================================


@shared_task(
    bind=True,
    autoretry_for=(Exception,),
    retry_backoff=True,
    retry_backoff_max=300,
    retry_kwargs={"max_retries": 3},
)
def auto_process_expired_decisions(self) -> dict:
    """
    Resolve and settle decisions whose deadline has passed.

    Returns:
        Dict with status, processed_count, total_amount and failed_count
    """
    from refunds.services import ExpiryService

    try:
        with sweep_lock(EXPIRY_SWEEP_LOCK, ttl=EXPIRY_SWEEP_LOCK_TTL):
            result = ExpiryService.auto_process_expired()
    except LockAcquisitionError:
        return _skipped("auto_process_expired_decisions", EXPIRY_SWEEP_LOCK)

    return {
        "status": "completed",
        "processed_count": result.processed_count,
        "total_amount": str(result.total_amount),
        "failed_count": sum(1 for d in result.decisions if not d["success"]),
    }


@shared_task(
    bind=True,
    autoretry_for=(Exception,),
    retry_backoff=True,
    retry_backoff_max=300,
    retry_kwargs={"max_retries": 3},
)
def send_refund_reminders(self) -> dict:
    """Send first and final deadline reminders that are due."""
    from refunds.services import ReminderService

    try:
        with sweep_lock(REMINDER_LOCK, ttl=REMINDER_LOCK_TTL):
            result = ReminderService.send_due_reminders()
    except LockAcquisitionError:
        return _skipped("send_refund_reminders", REMINDER_LOCK)

    return {
        "status": "completed",
        "first_reminders": result.first_reminders,
        "final_reminders": result.final_reminders,
        "notifications_sent": result.notifications_sent,
    }


@shared_task(
    bind=True,
    autoretry_for=(Exception,),
    retry_backoff=True,
    retry_backoff_max=300,
    retry_kwargs={"max_retries": 3},
)
def process_expired_campaigns(self, limit: int | None = None) -> dict:
    """
    Open campaign-level refunds for expired and cancelled campaigns.

    Args:
        limit: Maximum campaigns to initiate (default: REFUND_CAMPAIGN_BATCH_LIMIT)
    """
    from refunds.services import CampaignRefundService

    try:
        with sweep_lock(CAMPAIGN_SWEEP_LOCK, ttl=CAMPAIGN_SWEEP_LOCK_TTL):
            result = CampaignRefundService.process_expired_campaigns(limit=limit)
    except LockAcquisitionError:
        return _skipped("process_expired_campaigns", CAMPAIGN_SWEEP_LOCK)

    return {
        "status": "completed",
        "initiated": result.initiated,
        "failed": result.failed,
    }
