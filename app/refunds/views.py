"""
Views for the refund workflow API.

Endpoints (donor):
    GET  /api/v1/refunds/decisions/pending/ - Pending decisions (paginated)
    GET  /api/v1/refunds/decisions/{id}/ - One of the donor's decisions
    POST /api/v1/refunds/decisions/{id}/submit/ - Submit a decision

Endpoints (admin):
    GET  /api/v1/refunds/requests/ - Filtered, paginated refund requests
    GET  /api/v1/refunds/requests/stats/ - Dashboard statistics
    GET  /api/v1/refunds/requests/{id}/ - Request with its decisions
    POST /api/v1/refunds/requests/{id}/process/ - Settle ready decisions
    POST /api/v1/refunds/requests/{id}/cancel/ - Cancel an untouched request
    POST /api/v1/refunds/milestones/{id}/reject/ - Initiate a milestone refund
    POST /api/v1/refunds/campaigns/{id}/initiate-refund/ - Initiate a campaign refund
    GET  /api/v1/refunds/campaigns/{id}/refund-eligibility/ - Campaign refund eligibility

Service failures are returned through core.views.service_failure_response.
"""

from __future__ import annotations

from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAdminUser, IsAuthenticated
from rest_framework.response import Response
from rest_framework.utils.urls import remove_query_param, replace_query_param

from drf_spectacular.utils import (
    extend_schema,
    extend_schema_view,
    OpenApiParameter,
    OpenApiResponse,
)

from core.services import ServiceResult
from core.views import service_failure_response
from refunds.models import DonorRefundDecision, RefundRequest
from refunds.serializers import (
    CampaignRefundEligibilitySerializer,
    CampaignRefundInitiateSerializer,
    CancelRequestSerializer,
    DecisionSubmitSerializer,
    DonorRefundDecisionSerializer,
    MilestoneRejectSerializer,
    ProcessingResultSerializer,
    RefundInitiationResultSerializer,
    RefundRequestDetailSerializer,
    RefundRequestFilterSerializer,
    RefundRequestSerializer,
    RefundStatsSerializer,
)
from refunds.services import (
    CampaignRefundService,
    DecisionService,
    RefundReportingService,
    RefundRequestService,
    SettlementService,
)

UUID_LOOKUP_REGEX = "[0-9a-fA-F-]{36}"


# =============================================================================
# Donor Decisions
# =============================================================================


@extend_schema_view(
    retrieve=extend_schema(
        operation_id="get_refund_decision",
        summary="Get refund decision",
        tags=["Refund Decisions"],
    ),
)
class DonorRefundDecisionViewSet(mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    """
    The authenticated donor's refund decisions.

    Other donors' decisions are 404.
    """

    permission_classes = [IsAuthenticated]
    serializer_class = DonorRefundDecisionSerializer
    lookup_value_regex = UUID_LOOKUP_REGEX

    def get_queryset(self):
        return DonorRefundDecision.objects.filter(donor=self.request.user).select_related(
            "refund_request", "refund_request__campaign", "milestone"
        )

    @extend_schema(
        operation_id="list_pending_refund_decisions",
        summary="List pending refund decisions",
        parameters=[
            OpenApiParameter(
                name="ordering",
                type=str,
                location=OpenApiParameter.QUERY,
                description="created_at, refund_amount or refund_request__decision_deadline (prefix - for descending)",
                required=False,
            ),
        ],
        responses={200: DonorRefundDecisionSerializer(many=True)},
        tags=["Refund Decisions"],
    )
    @action(detail=False, methods=["get"])
    def pending(self, request):
        queryset = DecisionService.pending_decisions_queryset(
            request.user,
            ordering=request.query_params.get("ordering", "-created_at"),
        )
        page = self.paginate_queryset(queryset)
        serializer = self.get_serializer(page, many=True)
        return self.get_paginated_response(serializer.data)

    @extend_schema(
        operation_id="submit_refund_decision",
        summary="Submit a refund decision",
        description=(
            "Choose refund, redirect_campaign (with redirect_campaign_id) or "
            "donate_platform. Refunds below the minimum become platform donations."
        ),
        request=DecisionSubmitSerializer,
        responses={
            200: DonorRefundDecisionSerializer,
            400: OpenApiResponse(description="Validation failed (see error_code)"),
            404: OpenApiResponse(description="Decision not found"),
            409: OpenApiResponse(description="Decision already made"),
        },
        tags=["Refund Decisions"],
    )
    @action(detail=True, methods=["post"])
    def submit(self, request, pk=None):
        serializer = DecisionSubmitSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = DecisionService.submit_decision(
            decision_id=pk,
            donor=request.user,
            decision_type=serializer.validated_data["decision_type"],
            redirect_campaign_id=serializer.validated_data.get("redirect_campaign_id"),
        )
        if not result.success:
            return service_failure_response(result)

        return Response(DonorRefundDecisionSerializer(result.data).data)


# =============================================================================
# Admin: Refund Requests
# =============================================================================


@extend_schema_view(
    retrieve=extend_schema(
        operation_id="get_refund_request",
        summary="Get refund request",
        tags=["Refund Admin"],
    ),
)
class RefundRequestViewSet(mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    """Admin listing and operations on refund requests."""

    permission_classes = [IsAdminUser]
    serializer_class = RefundRequestDetailSerializer
    lookup_value_regex = UUID_LOOKUP_REGEX
    queryset = RefundRequest.objects.select_related(
        "campaign", "milestone", "charity", "created_by"
    ).prefetch_related("decisions", "decisions__milestone", "decisions__refund_request__campaign")

    @extend_schema(
        operation_id="list_refund_requests",
        summary="List refund requests",
        parameters=[RefundRequestFilterSerializer],
        responses={200: RefundRequestSerializer(many=True)},
        tags=["Refund Admin"],
    )
    def list(self, request):
        params = RefundRequestFilterSerializer(data=request.query_params)
        params.is_valid(raise_exception=True)
        filters = dict(params.validated_data)
        page_number = filters.pop("page")
        page_size = filters.pop("page_size")

        result = RefundReportingService.get_refund_requests(
            request.user, filters=filters, page=page_number, page_size=page_size
        )
        if not result.success:
            return service_failure_response(result)

        page = result.data
        url = request.build_absolute_uri()
        next_link = (
            replace_query_param(url, "page", page.next_page_number()) if page.has_next() else None
        )
        previous_link = None
        if page.has_previous():
            previous_number = page.previous_page_number()
            previous_link = (
                remove_query_param(url, "page")
                if previous_number == 1
                else replace_query_param(url, "page", previous_number)
            )

        return Response(
            {
                "count": page.paginator.count,
                "next": next_link,
                "previous": previous_link,
                "results": RefundRequestSerializer(page.object_list, many=True).data,
            }
        )

    @extend_schema(
        operation_id="get_refund_stats",
        summary="Refund statistics",
        responses={200: RefundStatsSerializer},
        tags=["Refund Admin"],
    )
    @action(detail=False, methods=["get"])
    def stats(self, request):
        result = RefundReportingService.get_refund_stats(request.user)
        if not result.success:
            return service_failure_response(result)
        return Response(RefundStatsSerializer(result.data).data)

    @extend_schema(
        operation_id="process_refund_request",
        summary="Process ready decisions",
        description="Settles every decided or auto-refunded decision of the request.",
        request=None,
        responses={
            200: ProcessingResultSerializer,
            400: OpenApiResponse(description="No decisions ready"),
            404: OpenApiResponse(description="Refund request not found"),
        },
        tags=["Refund Admin"],
    )
    @action(detail=True, methods=["post"])
    def process(self, request, pk=None):
        result = SettlementService.process_refund_request(pk, admin=request.user)
        if not result.success:
            return service_failure_response(result)
        return Response(ProcessingResultSerializer(result.data).data)

    @extend_schema(
        operation_id="cancel_refund_request",
        summary="Cancel refund request",
        request=CancelRequestSerializer,
        responses={
            200: RefundRequestDetailSerializer,
            404: OpenApiResponse(description="Refund request not found"),
            409: OpenApiResponse(description="Request already acted on"),
        },
        tags=["Refund Admin"],
    )
    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):
        serializer = CancelRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = RefundRequestService.cancel_refund_request(
            pk, admin=request.user, notes=serializer.validated_data["notes"]
        )
        if not result.success:
            return service_failure_response(result)
        return Response(self.get_serializer(self.get_queryset().get(pk=result.data.pk)).data)


# =============================================================================
# Admin: Initiation
# =============================================================================


def _initiation_response(result: ServiceResult) -> Response:
    if not result.success:
        return service_failure_response(result)
    return Response(
        RefundInitiationResultSerializer(result.data).data,
        status=status.HTTP_201_CREATED,
    )


class MilestoneRefundViewSet(viewsets.GenericViewSet):
    """Admin entry point for milestone rejection refunds."""

    permission_classes = [IsAdminUser]
    lookup_value_regex = UUID_LOOKUP_REGEX

    @extend_schema(
        operation_id="reject_milestone",
        summary="Reject milestone and initiate refund",
        request=MilestoneRejectSerializer,
        responses={
            201: RefundInitiationResultSerializer,
            400: OpenApiResponse(description="No allocations to refund"),
            404: OpenApiResponse(description="Milestone not found"),
            409: OpenApiResponse(description="Refund already initiated"),
        },
        tags=["Refund Admin"],
    )
    @action(detail=True, methods=["post"])
    def reject(self, request, pk=None):
        serializer = MilestoneRejectSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = RefundRequestService.initiate_refund(
            milestone_id=pk,
            proof_id=serializer.validated_data.get("proof_id"),
            rejection_reason=serializer.validated_data["rejection_reason"],
            admin=request.user,
        )
        return _initiation_response(result)


class CampaignRefundViewSet(viewsets.GenericViewSet):
    """Admin entry points for campaign-level refunds."""

    permission_classes = [IsAdminUser]
    lookup_value_regex = UUID_LOOKUP_REGEX

    @extend_schema(
        operation_id="initiate_campaign_refund",
        summary="Initiate campaign refund",
        request=CampaignRefundInitiateSerializer,
        responses={
            201: RefundInitiationResultSerializer,
            400: OpenApiResponse(description="Not eligible or no donations"),
            404: OpenApiResponse(description="Campaign not found"),
            409: OpenApiResponse(description="Refund already initiated"),
        },
        tags=["Refund Admin"],
    )
    @action(detail=True, methods=["post"], url_path="initiate-refund")
    def initiate_refund(self, request, pk=None):
        serializer = CampaignRefundInitiateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        trigger_type = serializer.validated_data.get("trigger_type")
        if not trigger_type:
            eligibility = CampaignRefundService.check_eligibility(pk)
            if not eligibility.success:
                return service_failure_response(eligibility)
            if not eligibility.data.is_eligible:
                return service_failure_response(
                    ServiceResult.failure(
                        eligibility.data.reason or "Campaign is not eligible for a refund",
                        error_code="NOT_ELIGIBLE",
                    )
                )
            trigger_type = eligibility.data.trigger_type

        result = CampaignRefundService.initiate_campaign_refund(
            pk,
            trigger_type,
            admin=request.user,
            reason=serializer.validated_data.get("reason") or None,
        )
        return _initiation_response(result)

    @extend_schema(
        operation_id="get_campaign_refund_eligibility",
        summary="Campaign refund eligibility",
        responses={
            200: CampaignRefundEligibilitySerializer,
            404: OpenApiResponse(description="Campaign not found"),
        },
        tags=["Refund Admin"],
    )
    @action(detail=True, methods=["get"], url_path="refund-eligibility")
    def refund_eligibility(self, request, pk=None):
        result = CampaignRefundService.check_eligibility(pk)
        if not result.success:
            return service_failure_response(result)
        return Response(CampaignRefundEligibilitySerializer(result.data).data)
