"""
Core views providing infrastructure endpoints.

This module contains views that are not part of the business domain but are
essential for application infrastructure, such as health checks.
"""

from django.db import connection
from django.http import JsonResponse


def health_check(request):
    """
    Health check endpoint for monitoring and orchestration.

    This endpoint is used by:
    - Docker health checks
    - Kubernetes liveness/readiness probes
    - Load balancers (AWS ALB, nginx)
    - Monitoring systems (Datadog, New Relic)

    Returns:
        JsonResponse with status and component health:
        - status: "healthy" or "unhealthy"
        - database: "connected" or "disconnected"
        - broker: "connected" or "disconnected" (not fatal)

    HTTP Status Codes:
        200: All systems operational
        503: One or more systems unhealthy

    Example Response:
        {
            "status": "healthy",
            "database": "connected",
            "broker": "connected"
        }
    """
    health_status = {
        "status": "healthy",
        "database": "unknown",
        "broker": "unknown",
    }
    is_healthy = True

    # Check database connectivity
    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
        health_status["database"] = "connected"
    except Exception:
        health_status["database"] = "disconnected"
        health_status["status"] = "unhealthy"
        is_healthy = False

    # Check Celery broker connectivity
    try:
        from config.celery import app as celery_app

        with celery_app.connection_for_write() as conn:
            conn.ensure_connection(max_retries=1)
        health_status["broker"] = "connected"
    except Exception:
        health_status["broker"] = "disconnected"
        # Workers queue nothing while the broker is down, but the API still answers

    # Return appropriate HTTP status
    status_code = 200 if is_healthy else 503

    return JsonResponse(health_status, status=status_code)
