"""Django admin configuration for notifications."""

from django.contrib import admin

from notifications.models import Notification


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    """Admin for the notification inbox."""

    list_display = [
        "id",
        "recipient",
        "notification_type",
        "title",
        "is_read",
        "email_sent_at",
        "created_at",
    ]
    list_filter = ["notification_type", "is_read"]
    search_fields = ["title", "recipient__email", "idempotency_key"]
    raw_id_fields = ["recipient"]
    readonly_fields = ["created_at", "updated_at", "email_sent_at"]
