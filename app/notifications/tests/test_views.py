"""
API tests for notification endpoints.

Test Classes:
    TestNotificationList: Tests for GET /api/v1/notifications/
    TestNotificationDetail: Tests for GET /api/v1/notifications/{id}/
    TestUnreadCount: Tests for GET /api/v1/notifications/unread-count/
    TestMarkSingleRead: Tests for POST /api/v1/notifications/{id}/read/
    TestMarkAllRead: Tests for POST /api/v1/notifications/read-all/
"""

from django.urls import reverse
from rest_framework import status

from notifications.models import Notification, NotificationKind
from notifications.tests.factories import NotificationFactory


class TestNotificationList:
    """Tests for GET /api/v1/notifications/."""

    def test_returns_users_notifications(
        self, db, authenticated_client, notification, other_user_notifications
    ):
        """Returns only the authenticated user's notifications."""
        url = reverse("notifications:notification-list")
        response = authenticated_client.get(url)

        assert response.status_code == status.HTTP_200_OK
        assert response.data["count"] == 1
        assert response.data["results"][0]["id"] == notification.id
        assert response.data["results"][0]["title"] == notification.title

    def test_filter_by_is_read(
        self, db, authenticated_client, notification, read_notification
    ):
        url = reverse("notifications:notification-list")
        response = authenticated_client.get(url, {"is_read": "false"})

        assert response.status_code == status.HTTP_200_OK
        assert [r["id"] for r in response.data["results"]] == [notification.id]

    def test_filter_by_type(self, db, authenticated_client, user):
        NotificationFactory(recipient=user)
        confirmed = NotificationFactory(
            recipient=user, notification_type=NotificationKind.DONATION_CONFIRMED
        )

        url = reverse("notifications:notification-list")
        response = authenticated_client.get(url, {"type": "donation_confirmed"})

        assert [r["id"] for r in response.data["results"]] == [confirmed.id]

    def test_pagination(self, db, authenticated_client, user):
        """Returns pages of 20."""
        NotificationFactory.create_batch(25, recipient=user)

        url = reverse("notifications:notification-list")
        response = authenticated_client.get(url)

        assert response.data["count"] == 25
        assert len(response.data["results"]) == 20
        assert response.data["next"] is not None

    def test_requires_authentication(self, db, api_client):
        url = reverse("notifications:notification-list")
        response = api_client.get(url)

        assert response.status_code == status.HTTP_401_UNAUTHORIZED


class TestNotificationDetail:
    """Tests for GET /api/v1/notifications/{id}/."""

    def test_returns_own_notification(self, db, authenticated_client, notification):
        url = reverse("notifications:notification-detail", args=[notification.id])
        response = authenticated_client.get(url)

        assert response.status_code == status.HTTP_200_OK
        assert response.data["message"] == notification.message
        assert response.data["notification_type"] == "system_announcement"

    def test_other_users_notification_is_404(
        self, db, authenticated_client, other_user_notifications
    ):
        url = reverse(
            "notifications:notification-detail",
            args=[other_user_notifications[0].id],
        )
        response = authenticated_client.get(url)

        assert response.status_code == status.HTTP_404_NOT_FOUND


class TestUnreadCount:
    """Tests for GET /api/v1/notifications/unread-count/."""

    def test_counts_unread(
        self, db, authenticated_client, notification, read_notification
    ):
        url = reverse("notifications:notification-unread-count")
        response = authenticated_client.get(url)

        assert response.status_code == status.HTTP_200_OK
        assert response.data == {"unread_count": 1}


class TestMarkSingleRead:
    """Tests for POST /api/v1/notifications/{id}/read/."""

    def test_marks_as_read(self, db, authenticated_client, notification):
        url = reverse("notifications:notification-read", args=[notification.id])
        response = authenticated_client.post(url)

        assert response.status_code == status.HTTP_200_OK
        assert response.data["is_read"] is True
        assert Notification.objects.get(id=notification.id).is_read is True

    def test_other_users_notification_is_404(
        self, db, authenticated_client, other_user_notifications
    ):
        target = other_user_notifications[0]
        url = reverse("notifications:notification-read", args=[target.id])
        response = authenticated_client.post(url)

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert Notification.objects.get(id=target.id).is_read is False


class TestMarkAllRead:
    """Tests for POST /api/v1/notifications/read-all/."""

    def test_marks_all(self, db, authenticated_client, user, other_user_notifications):
        NotificationFactory.create_batch(2, recipient=user)

        url = reverse("notifications:notification-read-all")
        response = authenticated_client.post(url)

        assert response.status_code == status.HTTP_200_OK
        assert response.data == {"marked_count": 2}
        assert Notification.objects.filter(is_read=False).count() == 3
