"""
Notification services.

NotificationService is the notification sink for the donation workflows:
it stores the in-app notification and queues the email copy.

Design:
    - Services are stateless (use class methods)
    - All methods return ServiceResult
    - Email goes out through a Celery task once the row is committed

Usage:
    from notifications.models import NotificationKind
    from notifications.services import NotificationService

    result = NotificationService.notify(
        recipient=donor,
        notification_type=NotificationKind.DONATION_CONFIRMED,
        title="Refund Processed Successfully",
        message="Your refund of $40.00 has been processed.",
        metadata={"decision_id": str(decision.id)},
        idempotency_key=f"refund-processed-{decision.id}",
    )
"""

from __future__ import annotations

from functools import partial
from typing import TYPE_CHECKING, Any

from django.db import transaction

from core.services import BaseService, ServiceResult
from notifications.models import Notification, NotificationKind

if TYPE_CHECKING:
    from authentication.models import User


class NotificationService(BaseService):
    """
    Service for creating and reading notifications.

    Methods:
        notify: Create a notification and queue its email
        mark_as_read: Mark one notification as read
        mark_all_as_read: Mark all of a user's notifications as read
    """

    @classmethod
    def notify(
        cls,
        recipient: User,
        notification_type: str,
        title: str,
        message: str,
        metadata: dict[str, Any] | None = None,
        idempotency_key: str | None = None,
    ) -> ServiceResult[Notification]:
        """
        Create a notification for a user.

        Args:
            recipient: User receiving the notification
            notification_type: A NotificationKind value
            title: Headline
            message: Body text
            metadata: JSON-serializable data for clients
            idempotency_key: Optional key to prevent duplicate notifications

        Returns:
            ServiceResult with the created Notification

        Error codes:
            INVALID_TYPE: notification_type is not a NotificationKind
            DUPLICATE: Notification with this idempotency_key already exists
        """
        # Import tasks here to avoid circular imports
        from notifications import tasks

        if notification_type not in NotificationKind.values:
            return ServiceResult.failure(
                f"Unknown notification type: {notification_type}",
                error_code="INVALID_TYPE",
            )

        with transaction.atomic():
            # Idempotency check with SELECT FOR UPDATE to prevent races
            if idempotency_key:
                existing = (
                    Notification.objects.select_for_update()
                    .filter(idempotency_key=idempotency_key)
                    .first()
                )
                if existing:
                    cls.get_logger().info(
                        "Duplicate notification prevented",
                        extra={"idempotency_key": idempotency_key},
                    )
                    return ServiceResult.failure(
                        f"Notification with idempotency_key already exists: {idempotency_key}",
                        error_code="DUPLICATE",
                    )

            notification = Notification.objects.create(
                recipient=recipient,
                notification_type=str(notification_type),
                title=title,
                message=message,
                metadata=metadata or {},
                idempotency_key=idempotency_key,
            )

            if recipient.email:
                transaction.on_commit(
                    partial(tasks.send_notification_email.delay, str(notification.id))
                )

        cls.get_logger().info(
            "Notification created",
            extra={
                "notification_id": notification.id,
                "notification_type": notification.notification_type,
                "recipient_id": recipient.pk,
            },
        )
        return ServiceResult.success(notification)

    @classmethod
    def mark_as_read(
        cls,
        notification: Notification,
        user: User,
    ) -> ServiceResult[Notification]:
        """
        Mark a single notification as read.

        Operation is idempotent - marking an already-read notification succeeds.

        Error codes:
            NOT_OWNER: User doesn't own the notification
        """
        if notification.recipient_id != user.id:
            cls.get_logger().warning(
                f"User {user.id} attempted to mark notification {notification.id} "
                f"owned by user {notification.recipient_id}"
            )
            return ServiceResult.failure(
                "Cannot mark notification you don't own",
                error_code="NOT_OWNER",
            )

        if not notification.is_read:
            notification.is_read = True
            notification.save(update_fields=["is_read", "updated_at"])

        return ServiceResult.success(notification)

    @classmethod
    def mark_all_as_read(cls, user: User) -> ServiceResult[int]:
        """Mark every unread notification of ``user`` as read; returns the count."""
        count = Notification.objects.filter(
            recipient=user,
            is_read=False,
        ).update(is_read=True)

        cls.get_logger().info(
            f"Marked {count} notifications as read for user {user.id}"
        )
        return ServiceResult.success(count)
