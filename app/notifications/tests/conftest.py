"""
Test configuration and fixtures for notification tests.

Usage:
    def test_example(user, notification, authenticated_client):
        response = authenticated_client.get('/api/v1/notifications/')
        assert response.status_code == 200
"""

import pytest
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from authentication.tests.factories import UserFactory
from notifications.tests.factories import NotificationFactory


# =============================================================================
# User Fixtures
# =============================================================================


@pytest.fixture
def user(db):
    """User who receives notifications."""
    return UserFactory()


@pytest.fixture
def other_user(db):
    """Another user for ownership tests."""
    return UserFactory()


# =============================================================================
# Notification Fixtures
# =============================================================================


@pytest.fixture
def notification(user):
    """Single unread notification for ``user``."""
    return NotificationFactory(recipient=user)


@pytest.fixture
def read_notification(user):
    """Single read notification for ``user``."""
    return NotificationFactory(recipient=user, is_read=True)


@pytest.fixture
def other_user_notifications(other_user):
    """Three notifications that belong to ``other_user``."""
    return NotificationFactory.create_batch(3, recipient=other_user)


# =============================================================================
# API Client Fixtures
# =============================================================================


@pytest.fixture
def api_client():
    """Unauthenticated API client."""
    return APIClient()


@pytest.fixture
def authenticated_client(user):
    """API client authenticated with JWT token for the default user fixture."""
    client = APIClient()
    refresh = RefreshToken.for_user(user)
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {refresh.access_token}")
    return client
