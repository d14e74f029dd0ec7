import uuid

import django.db.models.deletion
import django_fsm
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


def _version():
    return (
        "version",
        models.PositiveIntegerField(
            default=1,
            help_text="Version for optimistic locking - incremented on each save",
        ),
    )


def _money(**kwargs):
    return models.DecimalField(decimal_places=2, max_digits=12, **kwargs)


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("campaigns", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="RefundRequest",
            fields=[
                *_timestamps(),
                _version(),
                _uuid_pk(),
                (
                    "milestone_proof_id",
                    models.UUIDField(
                        blank=True,
                        help_text="Proof submission that was rejected",
                        null=True,
                    ),
                ),
                ("total_amount", _money()),
                ("total_donors_count", models.PositiveIntegerField()),
                (
                    "status",
                    django_fsm.FSMField(
                        choices=[
                            ("pending_donor_decision", "Pending Donor Decision"),
                            ("processing", "Processing"),
                            ("completed", "Completed"),
                            ("partially_completed", "Partially Completed"),
                            ("cancelled", "Cancelled"),
                        ],
                        db_index=True,
                        default="pending_donor_decision",
                        help_text="Current status of the refund request (managed by FSM)",
                        max_length=50,
                        protected=True,
                    ),
                ),
                (
                    "trigger_type",
                    models.CharField(
                        choices=[
                            ("milestone_rejection", "Milestone Rejection"),
                            ("campaign_expiration", "Campaign Expiration"),
                            ("campaign_cancellation", "Campaign Cancellation"),
                        ],
                        default="milestone_rejection",
                        max_length=30,
                    ),
                ),
                ("auto_initiated", models.BooleanField(default=False)),
                ("decision_deadline", models.DateTimeField(db_index=True)),
                ("grace_period_ends_at", models.DateTimeField(blank=True, null=True)),
                ("first_reminder_sent_at", models.DateTimeField(blank=True, null=True)),
                ("final_reminder_sent_at", models.DateTimeField(blank=True, null=True)),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
                ("rejection_reason", models.TextField()),
                ("admin_notes", models.TextField(blank=True, default="")),
                (
                    "campaign",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="refund_requests",
                        to="campaigns.campaign",
                    ),
                ),
                (
                    "charity",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="refund_requests",
                        to="campaigns.charity",
                    ),
                ),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        help_text="Admin who initiated the refund (null for automatic)",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="initiated_refund_requests",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "milestone",
                    models.ForeignKey(
                        blank=True,
                        help_text="Rejected milestone (null for campaign-level refunds)",
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="refund_requests",
                        to="campaigns.milestone",
                    ),
                ),
            ],
            options={
                "verbose_name": "Refund Request",
                "verbose_name_plural": "Refund Requests",
                "ordering": ["-created_at"],
                "abstract": False,
                "indexes": [
                    models.Index(
                        fields=["status", "decision_deadline"],
                        name="refund_req_status_dl_idx",
                    ),
                    models.Index(
                        fields=["campaign", "status"],
                        name="refund_req_campaign_idx",
                    ),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("milestone__isnull", False)),
                        fields=("milestone",),
                        name="refund_request_one_per_milestone",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            models.Q(
                                ("milestone__isnull", False),
                                ("trigger_type", "milestone_rejection"),
                            ),
                            models.Q(
                                models.Q(("trigger_type", "milestone_rejection"), _negated=True),
                                ("milestone__isnull", True),
                            ),
                            _connector="OR",
                        ),
                        name="refund_request_milestone_matches_trigger",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("total_amount__gt", 0)),
                        name="refund_request_amount_positive",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="DonorRefundDecision",
            fields=[
                *_timestamps(),
                _version(),
                (
                    "metadata",
                    models.JSONField(
                        blank=True,
                        default=dict,
                        help_text="Flexible key-value metadata storage",
                    ),
                ),
                _uuid_pk(),
                ("refund_amount", _money()),
                (
                    "decision_type",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("refund", "Refund"),
                            ("redirect_campaign", "Redirect to Campaign"),
                            ("donate_platform", "Donate to Platform"),
                        ],
                        max_length=30,
                        null=True,
                    ),
                ),
                (
                    "status",
                    django_fsm.FSMField(
                        choices=[
                            ("pending", "Pending"),
                            ("decided", "Decided"),
                            ("processing", "Processing"),
                            ("completed", "Completed"),
                            ("failed", "Failed"),
                            ("auto_refunded", "Auto Refunded"),
                        ],
                        db_index=True,
                        default="pending",
                        help_text="Current status of the decision (managed by FSM)",
                        max_length=50,
                        protected=True,
                    ),
                ),
                ("decided_at", models.DateTimeField(blank=True, null=True)),
                ("processed_at", models.DateTimeField(blank=True, null=True)),
                (
                    "refund_transaction_id",
                    models.CharField(blank=True, max_length=255, null=True),
                ),
                ("processing_error", models.TextField(blank=True, null=True)),
                (
                    "donation",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="refund_decisions",
                        to="campaigns.donation",
                    ),
                ),
                (
                    "donor",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="refund_decisions",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "milestone",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="refund_decisions",
                        to="campaigns.milestone",
                    ),
                ),
                (
                    "new_donation",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="redirected_from_decisions",
                        to="campaigns.donation",
                    ),
                ),
                (
                    "redirect_campaign",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="redirected_decisions",
                        to="campaigns.campaign",
                    ),
                ),
                (
                    "refund_request",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="decisions",
                        to="refunds.refundrequest",
                    ),
                ),
            ],
            options={
                "verbose_name": "Donor Refund Decision",
                "verbose_name_plural": "Donor Refund Decisions",
                "ordering": ["-created_at"],
                "abstract": False,
                "indexes": [
                    models.Index(
                        fields=["donor", "status"],
                        name="decision_donor_status_idx",
                    ),
                    models.Index(
                        fields=["refund_request", "status"],
                        name="decision_request_status_idx",
                    ),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("refund_request", "donation"),
                        name="decision_unique_request_donation",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            models.Q(
                                ("decision_type", "redirect_campaign"),
                                ("redirect_campaign__isnull", False),
                            ),
                            models.Q(
                                models.Q(("decision_type", "redirect_campaign"), _negated=True),
                                ("redirect_campaign__isnull", True),
                            ),
                            _connector="OR",
                        ),
                        name="decision_redirect_campaign_matches_type",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("refund_amount__gt", 0)),
                        name="decision_amount_positive",
                    ),
                ],
            },
        ),
    ]
