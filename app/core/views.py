"""
Core views and view helpers shared by the API apps.

- health_check: liveness and readiness check for load balancers and Docker
- service_failure_response: turn a failed ServiceResult into a DRF Response
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from django.core.cache import cache
from django.db import connection
from django.http import JsonResponse
from rest_framework import status
from rest_framework.response import Response

if TYPE_CHECKING:
    from core.services import ServiceResult

# Error codes that map to something other than 400 Bad Request
ERROR_CODE_STATUS = {
    "NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "FORBIDDEN": status.HTTP_403_FORBIDDEN,
    "ALREADY_INITIATED": status.HTTP_409_CONFLICT,
    "INVALID_STATUS": status.HTTP_409_CONFLICT,
    "INVALID_STATE_TRANSITION": status.HTTP_409_CONFLICT,
}


def service_failure_response(result: ServiceResult) -> Response:
    """
    Build the error response for a failed service call.

    Body:
        {"detail": "...", "error_code": "...", "errors": {...}}
    """
    body = {"detail": result.error, "error_code": result.error_code}
    if result.errors:
        body["errors"] = result.errors
    return Response(
        body,
        status=ERROR_CODE_STATUS.get(result.error_code, status.HTTP_400_BAD_REQUEST),
    )


def health_check(request):
    """
    Report database and cache connectivity.

    Returns 200 when the database answers and 503 otherwise. A dead
    cache only downgrades the "cache" field.

    Example Response:
        {"status": "healthy", "database": "connected", "cache": "connected"}
    """
    payload = {"status": "healthy", "database": "connected", "cache": "connected"}

    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
    except Exception:
        payload["database"] = "disconnected"
        payload["status"] = "unhealthy"

    try:
        cache.set("health_check", "ok", timeout=1)
        if cache.get("health_check") != "ok":
            payload["cache"] = "disconnected"
    except Exception:
        payload["cache"] = "disconnected"

    return JsonResponse(
        payload,
        status=200 if payload["status"] == "healthy" else 503,
    )
