"""
Tests for notifications app.

- test_models.py: Notification model tests
- test_services.py: NotificationService tests
- test_tasks.py: email delivery task tests
- test_views.py: API endpoint tests

Usage:
    pytest notifications/tests/
"""
