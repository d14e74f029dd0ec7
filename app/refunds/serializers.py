"""
Serializers for the refund workflow API.

Serializers:
    DonorRefundDecisionSerializer: Read-only decision for its donor
    DecisionSubmitSerializer: Input for submitting a decision
    RefundRequestSerializer / RefundRequestDetailSerializer: Admin views
    RefundRequestFilterSerializer: Query params for the admin list
    MilestoneRejectSerializer / CampaignRefundInitiateSerializer / CancelRequestSerializer: Admin input
    RefundInitiationResultSerializer, ProcessingResultSerializer,
    CampaignRefundEligibilitySerializer, RefundStatsSerializer: Service results
"""

from __future__ import annotations

from rest_framework import serializers

from refunds.models import DonorRefundDecision, RefundRequest
from refunds.services.campaign_refund_service import CAMPAIGN_TRIGGERS
from refunds.state_machines import DecisionType, RefundRequestStatus, TriggerType

# =============================================================================
# Decisions
# =============================================================================


class DonorRefundDecisionSerializer(serializers.ModelSerializer):
    """Read-only serializer for DonorRefundDecision."""

    campaign_id = serializers.UUIDField(source="refund_request.campaign_id", read_only=True)
    campaign_title = serializers.CharField(source="refund_request.campaign.title", read_only=True)
    milestone_title = serializers.CharField(
        source="milestone.title", read_only=True, default=None
    )
    decision_deadline = serializers.DateTimeField(
        source="refund_request.decision_deadline", read_only=True
    )

    class Meta:
        model = DonorRefundDecision
        fields = [
            "id",
            "refund_request",
            "campaign_id",
            "campaign_title",
            "milestone",
            "milestone_title",
            "donation",
            "refund_amount",
            "decision_type",
            "redirect_campaign",
            "status",
            "decision_deadline",
            "decided_at",
            "processed_at",
            "refund_transaction_id",
            "new_donation",
            "processing_error",
            "metadata",
            "created_at",
        ]
        read_only_fields = fields


class DecisionSubmitSerializer(serializers.Serializer):
    """Input for POST decisions/{id}/submit/."""

    decision_type = serializers.ChoiceField(choices=DecisionType.choices)
    redirect_campaign_id = serializers.UUIDField(required=False, allow_null=True)


# =============================================================================
# Refund Requests
# =============================================================================


class RefundRequestSerializer(serializers.ModelSerializer):
    """Admin list serializer for RefundRequest."""

    campaign_title = serializers.CharField(source="campaign.title", read_only=True)
    milestone_title = serializers.CharField(
        source="milestone.title", read_only=True, default=None
    )

    class Meta:
        model = RefundRequest
        fields = [
            "id",
            "campaign",
            "campaign_title",
            "charity",
            "milestone",
            "milestone_title",
            "milestone_proof_id",
            "trigger_type",
            "auto_initiated",
            "status",
            "total_amount",
            "total_donors_count",
            "decision_deadline",
            "grace_period_ends_at",
            "rejection_reason",
            "created_by",
            "completed_at",
            "created_at",
        ]
        read_only_fields = fields


class RefundRequestDetailSerializer(RefundRequestSerializer):
    """Admin detail serializer, with decisions."""

    decisions = DonorRefundDecisionSerializer(many=True, read_only=True)

    class Meta(RefundRequestSerializer.Meta):
        fields = [
            *RefundRequestSerializer.Meta.fields,
            "admin_notes",
            "first_reminder_sent_at",
            "final_reminder_sent_at",
            "decisions",
        ]
        read_only_fields = fields


class RefundRequestFilterSerializer(serializers.Serializer):
    """Query parameters for GET requests/."""

    status = serializers.ChoiceField(choices=RefundRequestStatus.choices, required=False)
    charity_id = serializers.UUIDField(required=False)
    campaign_id = serializers.UUIDField(required=False)
    date_from = serializers.DateField(required=False)
    date_to = serializers.DateField(required=False)
    page = serializers.IntegerField(min_value=1, default=1)
    page_size = serializers.IntegerField(min_value=1, max_value=100, default=20)

    def validate(self, attrs):
        date_from = attrs.get("date_from")
        date_to = attrs.get("date_to")
        if date_from and date_to and date_from > date_to:
            raise serializers.ValidationError({"date_to": "Must not be before date_from."})
        return attrs


class MilestoneRejectSerializer(serializers.Serializer):
    """Input for POST milestones/{id}/reject/."""

    rejection_reason = serializers.CharField(max_length=2000)
    proof_id = serializers.UUIDField(required=False, allow_null=True)


class CancelRequestSerializer(serializers.Serializer):
    """Input for POST requests/{id}/cancel/."""

    notes = serializers.CharField(required=False, allow_blank=True, default="")


class CampaignRefundInitiateSerializer(serializers.Serializer):
    """
    Input for POST campaigns/{id}/initiate-refund/.

    Without trigger_type the campaign's eligibility decides it.
    """

    trigger_type = serializers.ChoiceField(
        choices=[(t.value, t.label) for t in TriggerType if t in CAMPAIGN_TRIGGERS],
        required=False,
    )
    reason = serializers.CharField(required=False, allow_blank=True, max_length=2000)


# =============================================================================
# Service Results
# =============================================================================


class RefundInitiationResultSerializer(serializers.Serializer):
    refund_request_id = serializers.UUIDField()
    total_amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    affected_donors = serializers.IntegerField()


class ProcessingResultSerializer(serializers.Serializer):
    total_processed = serializers.IntegerField()
    success_count = serializers.IntegerField()
    failure_count = serializers.IntegerField()
    refund_count = serializers.IntegerField()
    redirect_count = serializers.IntegerField()
    platform_count = serializers.IntegerField()
    errors = serializers.ListField(child=serializers.DictField())
    status = serializers.CharField()


class CampaignRefundEligibilitySerializer(serializers.Serializer):
    is_eligible = serializers.BooleanField()
    trigger_type = serializers.CharField(allow_null=True)
    grace_period_ends = serializers.DateTimeField(allow_null=True)
    refundable_amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    affected_donors = serializers.IntegerField()
    reason = serializers.CharField(allow_null=True)


class RefundStatsSerializer(serializers.Serializer):
    total_requests = serializers.IntegerField()
    pending_requests = serializers.IntegerField()
    total_pending_amount = serializers.DecimalField(max_digits=14, decimal_places=2)
    total_donors_affected = serializers.IntegerField()
    average_response_time_days = serializers.FloatField()
    decision_type_distribution = serializers.DictField(child=serializers.IntegerField())
    status_counts = serializers.DictField(child=serializers.IntegerField())
