"""
URL configuration for the refund workflow API.

Routes:
    /decisions/pending/                    - Donor's pending decisions (GET)
    /decisions/{id}/                       - Donor's decision (GET)
    /decisions/{id}/submit/                - Submit a decision (POST)
    /requests/                             - Refund requests (admin, GET)
    /requests/stats/                       - Statistics (admin, GET)
    /requests/{id}/                        - Refund request detail (admin, GET)
    /requests/{id}/process/                - Process ready decisions (admin, POST)
    /requests/{id}/cancel/                 - Cancel request (admin, POST)
    /milestones/{id}/reject/               - Initiate milestone refund (admin, POST)
    /campaigns/{id}/initiate-refund/       - Initiate campaign refund (admin, POST)
    /campaigns/{id}/refund-eligibility/    - Campaign refund eligibility (admin, GET)
"""

from rest_framework.routers import DefaultRouter

from refunds.views import (
    CampaignRefundViewSet,
    DonorRefundDecisionViewSet,
    MilestoneRefundViewSet,
    RefundRequestViewSet,
)

router = DefaultRouter()
router.register(r"decisions", DonorRefundDecisionViewSet, basename="decision")
router.register(r"requests", RefundRequestViewSet, basename="refund-request")
router.register(r"milestones", MilestoneRefundViewSet, basename="milestone")
router.register(r"campaigns", CampaignRefundViewSet, basename="campaign")

app_name = "refunds"
urlpatterns = router.urls
