"""
Campaigns app configuration.

Holds the fundraising collaborators of the refund workflow: charities,
campaigns, milestones, donations and the milestone allocation ledger.
"""

from django.apps import AppConfig


class CampaignsConfig(AppConfig):
    """Configuration for the campaigns application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "campaigns"
    verbose_name = "Campaigns"
