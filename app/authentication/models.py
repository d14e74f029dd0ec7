"""
Authentication models.

- User: Custom user model with email-based authentication

Donors, charity owners and platform admins are all Users. Admin-only refund
operations check ``is_staff``.

Related files:
    - managers.py: Custom user manager for email-based creation
"""

from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin
from django.db import models

from authentication.managers import UserManager


class User(AbstractBaseUser, PermissionsMixin):
    """
    Custom User model using email as the primary identifier.

    Fields:
        email: Primary identifier, unique, used for login and notification email
        full_name: Display name used in notification copy
        is_active: Whether the user account is active
        is_staff: Platform admin; may initiate, process and report on refunds
        date_joined: When the user account was created
        updated_at: When the user record was last modified

    Usage:
        donor = User.objects.create_user(
            email="donor@example.com",
            password="securepassword",
        )

        admin = User.objects.create_superuser(
            email="admin@example.com",
            password="adminpassword",
        )
    """

    email = models.EmailField(
        unique=True,
        db_index=True,
        max_length=254,
        help_text="User's email address (primary identifier)",
    )
    full_name = models.CharField(
        max_length=150,
        blank=True,
        help_text="Display name",
    )

    # Account status flags
    is_active = models.BooleanField(
        default=True,
        help_text="Whether this user account is active. Deselect instead of deleting.",
    )
    is_staff = models.BooleanField(
        default=False,
        help_text="Whether the user is a platform admin.",
    )

    # Timestamps
    date_joined = models.DateTimeField(
        auto_now_add=True,
        help_text="When the user account was created",
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        help_text="When the user record was last modified",
    )

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = []

    objects = UserManager()

    class Meta:
        verbose_name = "user"
        verbose_name_plural = "users"
        ordering = ["-date_joined"]

    def __str__(self):
        return self.email

    def get_full_name(self):
        """Return the display name, falling back to the email."""
        return self.full_name or self.email

    def get_short_name(self):
        """Return the first word of the name, or the email local part."""
        if self.full_name:
            return self.full_name.split()[0]
        return self.email.split("@")[0]
