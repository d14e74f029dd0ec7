"""
Side effects that run after the surrounding transaction commits.

Notifications and audit writes must never fire for work that is later
rolled back, and their failure must never undo the work that triggered
them. Services register them here instead of calling them inline.

Usage:
    from core.effects import run_after_commit

    with transaction.atomic():
        refund_request = RefundRequest.objects.create(...)
        run_after_commit(
            "notify_donor",
            NotificationService.notify,
            recipient=donor,
            notification_type=NotificationKind.SYSTEM_ANNOUNCEMENT,
            title="...",
            message="...",
        )

    # In tests
    def test_notifies(django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks(execute=True):
            RefundRequestService.initiate_refund(...)

Note:
    Outside a transaction (autocommit) Django runs the callback at once.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from django.db import transaction

if TYPE_CHECKING:
    from collections.abc import Callable
    from typing import Any

logger = logging.getLogger(__name__)


def run_after_commit(name: str, func: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
    """
    Register ``func(*args, **kwargs)`` to run once the transaction commits.

    Failures are logged with the effect name and dropped.
    """

    def _run() -> None:
        try:
            func(*args, **kwargs)
        except Exception:
            logger.exception(
                "Deferred effect failed",
                extra={"effect": name},
            )

    transaction.on_commit(_run)
