"""
Core views providing infrastructure endpoints.

Contains views that are not part of the payment domain but are needed
to run the service behind a load balancer, such as health checks.
"""

from django.db import connection
from django.http import JsonResponse
from django.views.decorators.http import require_GET


@require_GET
def health_check(request):
    """
    Health check endpoint for Docker and load balancer probes.

    Returns:
        JsonResponse with status and database connectivity:
        - 200: {"status": "healthy", "database": "connected"}
        - 503: {"status": "unhealthy", "database": "disconnected"}
    """
    health_status = {"status": "healthy", "database": "unknown"}

    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
        health_status["database"] = "connected"
    except Exception:
        health_status["database"] = "disconnected"
        health_status["status"] = "unhealthy"
        return JsonResponse(health_status, status=503)

    return JsonResponse(health_status, status=200)
