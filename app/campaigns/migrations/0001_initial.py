import uuid
from decimal import Decimal

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


def _uuid_pk():
    return (
        "id",
        models.UUIDField(
            default=uuid.uuid4,
            editable=False,
            help_text="Unique identifier for this record",
            primary_key=True,
            serialize=False,
        ),
    )


def _timestamps():
    return [
        (
            "created_at",
            models.DateTimeField(
                auto_now_add=True,
                db_index=True,
                help_text="Timestamp when this record was created",
            ),
        ),
        (
            "updated_at",
            models.DateTimeField(
                auto_now=True,
                help_text="Timestamp when this record was last modified",
            ),
        ),
    ]


def _money(**kwargs):
    return models.DecimalField(decimal_places=2, max_digits=12, **kwargs)


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Charity",
            fields=[
                *_timestamps(),
                _uuid_pk(),
                ("name", models.CharField(max_length=200)),
                ("is_verified", models.BooleanField(default=False)),
                (
                    "owner",
                    models.ForeignKey(
                        help_text="User who manages this charity",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="charities",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Charity",
                "verbose_name_plural": "Charities",
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="Campaign",
            fields=[
                *_timestamps(),
                _uuid_pk(),
                ("title", models.CharField(max_length=200)),
                ("goal_amount", _money()),
                ("current_amount", _money(default=Decimal("0"))),
                ("donors_count", models.PositiveIntegerField(default=0)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("draft", "Draft"),
                            ("pending", "Pending Review"),
                            ("active", "Active"),
                            ("paused", "Paused"),
                            ("completed", "Completed"),
                            ("cancelled", "Cancelled"),
                        ],
                        db_index=True,
                        default="draft",
                        max_length=20,
                    ),
                ),
                ("start_date", models.DateTimeField(default=django.utils.timezone.now)),
                ("end_date", models.DateTimeField(blank=True, null=True)),
                ("total_refunded", _money(default=Decimal("0"))),
                ("milestone_refund_count", models.PositiveIntegerField(default=0)),
                ("expiration_refund_initiated", models.BooleanField(default=False)),
                ("expiration_refund_completed", models.BooleanField(default=False)),
                ("grace_period_ends_at", models.DateTimeField(blank=True, null=True)),
                (
                    "charity",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="campaigns",
                        to="campaigns.charity",
                    ),
                ),
            ],
            options={
                "verbose_name": "Campaign",
                "verbose_name_plural": "Campaigns",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["status", "end_date"],
                        name="campaign_status_end_idx",
                    ),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("goal_amount__gt", 0)),
                        name="campaign_goal_positive",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Milestone",
            fields=[
                *_timestamps(),
                _uuid_pk(),
                ("title", models.CharField(max_length=200)),
                ("target_amount", _money()),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("in_progress", "In Progress"),
                            ("verified", "Verified"),
                            ("rejected", "Rejected"),
                        ],
                        db_index=True,
                        default="pending",
                        max_length=20,
                    ),
                ),
                ("funds_released", models.BooleanField(default=False)),
                ("released_amount", _money(default=Decimal("0"))),
                ("refund_initiated", models.BooleanField(default=False)),
                ("refund_initiated_at", models.DateTimeField(blank=True, null=True)),
                ("refund_completed", models.BooleanField(default=False)),
                (
                    "campaign",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="milestones",
                        to="campaigns.campaign",
                    ),
                ),
            ],
            options={
                "verbose_name": "Milestone",
                "verbose_name_plural": "Milestones",
                "ordering": ["created_at", "id"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("target_amount__gt", 0)),
                        name="milestone_target_positive",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Donation",
            fields=[
                *_timestamps(),
                (
                    "metadata",
                    models.JSONField(
                        blank=True,
                        default=dict,
                        help_text="Flexible key-value metadata storage",
                    ),
                ),
                _uuid_pk(),
                ("amount", _money()),
                ("payment_method", models.CharField(default="card", max_length=30)),
                ("transaction_id", models.CharField(max_length=100, unique=True)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("completed", "Completed"),
                            ("failed", "Failed"),
                            ("refunded", "Refunded"),
                        ],
                        db_index=True,
                        default="completed",
                        max_length=20,
                    ),
                ),
                ("provider", models.CharField(default="stripe", max_length=30)),
                (
                    "provider_payment_id",
                    models.CharField(
                        blank=True,
                        help_text="Stripe PaymentIntent ID (pi_xxx)",
                        max_length=255,
                        null=True,
                    ),
                ),
                ("donated_at", models.DateTimeField(default=django.utils.timezone.now)),
                (
                    "campaign",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="donations",
                        to="campaigns.campaign",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="donations",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Donation",
                "verbose_name_plural": "Donations",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["campaign", "status"],
                        name="donation_campaign_status_idx",
                    ),
                    models.Index(
                        fields=["user", "status"],
                        name="donation_user_status_idx",
                    ),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("amount__gt", 0)),
                        name="donation_amount_positive",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="MilestoneAllocation",
            fields=[
                *_timestamps(),
                _uuid_pk(),
                ("allocated_amount", _money()),
                (
                    "allocation_percentage",
                    models.DecimalField(decimal_places=4, max_digits=7),
                ),
                ("is_released", models.BooleanField(default=False)),
                ("released_at", models.DateTimeField(blank=True, null=True)),
                (
                    "campaign",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="allocations",
                        to="campaigns.campaign",
                    ),
                ),
                (
                    "donation",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="allocations",
                        to="campaigns.donation",
                    ),
                ),
                (
                    "donor",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="milestone_allocations",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "milestone",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="allocations",
                        to="campaigns.milestone",
                    ),
                ),
            ],
            options={
                "verbose_name": "Milestone Allocation",
                "verbose_name_plural": "Milestone Allocations",
                "ordering": ["created_at", "id"],
                "indexes": [
                    models.Index(
                        fields=["milestone", "is_released"],
                        name="allocation_milestone_rel_idx",
                    ),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("milestone", "donation"),
                        name="allocation_unique_milestone_donation",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("allocated_amount__gt", 0)),
                        name="allocation_amount_positive",
                    ),
                ],
            },
        ),
    ]
