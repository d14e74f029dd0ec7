"""
Notification models.

This module defines the in-app notification inbox:
- NotificationKind: The notification types the donation workflows emit
- Notification: One message delivered to one user

Email delivery is a side channel handled by notifications.tasks; the row
here is the source of truth for what the user was told.

Usage:
    from notifications.models import Notification, NotificationKind

    unread = Notification.objects.filter(recipient=user, is_read=False)
"""

from __future__ import annotations

from django.conf import settings
from django.db import models

from core.models import BaseModel


class NotificationKind(models.TextChoices):
    """Notification types. Values are stable identifiers used by clients."""

    SYSTEM_ANNOUNCEMENT = "system_announcement", "System Announcement"
    DONATION_CONFIRMED = "donation_confirmed", "Donation Confirmed"
    DONATION_RECEIVED = "donation_received", "Donation Received"
    THANK_YOU_MESSAGE = "thank_you_message", "Thank You Message"


class Notification(BaseModel):
    """
    A notification sent to a user.

    Fields:
        recipient: User receiving the notification
        notification_type: One of NotificationKind
        title: Short headline
        message: Full message text
        metadata: Structured data for clients (ids, amounts, deadlines)
        is_read: Whether the user has read it
        idempotency_key: Optional key preventing duplicate sends
        email_sent_at: When the email copy went out (null if never)
    """

    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="notifications",
        help_text="User receiving this notification",
    )
    notification_type = models.CharField(
        max_length=40,
        choices=NotificationKind.choices,
        help_text="Notification type identifier",
    )
    title = models.CharField(max_length=200)
    message = models.TextField()
    metadata = models.JSONField(default=dict, blank=True)
    is_read = models.BooleanField(default=False, db_index=True)
    idempotency_key = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        help_text="Prevents the same notification from being created twice",
    )
    email_sent_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "notifications_notification"
        ordering = ["-created_at"]  # Newest first
        indexes = [
            models.Index(
                fields=["recipient", "is_read"],
                name="notif_recipient_read_idx",
            ),
        ]
        constraints = [
            # Unique constraint on idempotency_key when not null
            models.UniqueConstraint(
                fields=["idempotency_key"],
                name="notif_idempotency_key_unique",
                condition=models.Q(idempotency_key__isnull=False),
            ),
        ]

    def __str__(self) -> str:
        return f"{self.notification_type} -> {self.recipient_id}: {self.title}"
