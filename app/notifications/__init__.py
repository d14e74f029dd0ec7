"""
Notifications app for in-app notifications with an email copy.

This app provides:
- Notification model for storing user notifications
- NotificationService.notify, the sink the refund workflows call
- A Celery task that emails each notification
- REST API for listing and managing notifications

Usage:
    from notifications.models import NotificationKind
    from notifications.services import NotificationService

    result = NotificationService.notify(
        recipient=donor,
        notification_type=NotificationKind.SYSTEM_ANNOUNCEMENT,
        title="Milestone Rejected - Decision Required",
        message="...",
    )
"""
