"""
Celery tasks for notification delivery.

Tasks:
    send_notification_email: Send the email copy of a notification

Design:
    - Tasks receive notification_id (as a string) so payloads stay small
    - Re-running the task for an already-emailed notification is a no-op
    - SMTP failures bubble up so Celery retries with backoff

Usage:
    from notifications.tasks import send_notification_email

    # Called automatically by NotificationService.notify()
    send_notification_email.delay(notification_id="42")
"""

from __future__ import annotations

import logging

from celery import shared_task
from django.conf import settings
from django.core.mail import send_mail
from django.utils import timezone as django_timezone

from notifications.models import Notification

logger = logging.getLogger(__name__)


@shared_task(
    bind=True,
    autoretry_for=(Exception,),
    retry_backoff=True,
    retry_kwargs={"max_retries": 3},
)
def send_notification_email(self, notification_id: str) -> bool:
    """
    Send a notification by email.

    Returns:
        True if sent or nothing to do, False if the notification is gone
    """
    try:
        notification = Notification.objects.select_related("recipient").get(
            id=notification_id
        )
    except Notification.DoesNotExist:
        logger.warning(f"Notification {notification_id} not found for email")
        return False

    if notification.email_sent_at is not None:
        return True

    recipient = notification.recipient
    if not recipient.email:
        logger.info(
            f"Email skipped for notification {notification_id}: recipient has no email"
        )
        return True

    send_mail(
        subject=notification.title,
        message=notification.message,
        from_email=settings.DEFAULT_FROM_EMAIL,
        recipient_list=[recipient.email],
    )

    notification.email_sent_at = django_timezone.now()
    notification.save(update_fields=["email_sent_at", "updated_at"])

    logger.info(
        f"Email sent for notification {notification_id} to {recipient.email}"
    )
    return True
