"""
Authentication application.

Provides the email-based User model shared by donors, charity owners and
platform admins. API authentication is JWT (simplejwt); see config.urls.

Usage:
    from authentication.models import User
"""
