"""
Root URL configuration.

URL Structure:
    /                                   - ReDoc API documentation
    /admin/                             - Django admin interface
    /health/                            - Health check endpoint
    /schema/                            - OpenAPI schema (YAML)
    /api/v1/auth/token/                 - Obtain JWT pair (email + password)
    /api/v1/auth/token/refresh/         - Refresh access token
    /api/v1/refunds/                    - Refund workflow endpoints
        decisions/pending/              - Donor's pending decisions
        decisions/{id}/                 - Donor's own decision
        decisions/{id}/submit/          - Submit a decision (POST)
        requests/                       - Refund requests (admin)
        requests/stats/                 - Refund statistics (admin)
        requests/{id}/                  - Refund request detail (admin)
        requests/{id}/process/          - Batch-process decisions (admin, POST)
        requests/{id}/cancel/           - Cancel an untouched request (admin, POST)
        milestones/{id}/reject/         - Initiate milestone refund (admin, POST)
        campaigns/{id}/initiate-refund/ - Initiate campaign refund (admin, POST)
        campaigns/{id}/refund-eligibility/ - Campaign refund eligibility (admin)
    /api/v1/notifications/              - In-app notifications
        {id}/read/                      - Mark one as read (POST)
        read-all/                       - Mark all as read (POST)
"""

from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularRedocView
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from core.views import health_check

# =============================================================================
# API v1 Routes
# =============================================================================
api_v1_patterns = [
    # JWT authentication
    path("auth/token/", TokenObtainPairView.as_view(), name="token_obtain_pair"),
    path("auth/token/refresh/", TokenRefreshView.as_view(), name="token_refresh"),
    # Refund workflow
    path("refunds/", include("refunds.urls")),
    # Notifications
    path("notifications/", include("notifications.urls")),
]

urlpatterns = [
    # Documentation
    path("", SpectacularRedocView.as_view(url_name="schema"), name="redoc"),
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    # Admin
    path("admin/", admin.site.urls),
    # Health check (Docker, Kubernetes, load balancers)
    path("health/", health_check, name="health_check"),
    # API v1
    path("api/v1/", include(api_v1_patterns)),
]

# =============================================================================
# Admin Site Customization
# =============================================================================
admin.site.site_header = "Refund Workflow Admin"
admin.site.site_title = "Refund Admin"
admin.site.index_title = "Milestone refunds and donor decisions"
